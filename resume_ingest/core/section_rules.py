"""
Section pattern tables.

Immutable, versioned data consumed by the section classifier. A different
SectionRuleSet (another locale, a tenant-specific tweak) can be passed to
classify_sections without touching module state.
"""

import re
from dataclasses import dataclass, field
from typing import Literal, Pattern, Tuple, Union

from resume_ingest.core.schemas import SectionType

RuleKind = Literal["contains", "before", "after", "structure"]


@dataclass(frozen=True)
class ContextRule:
    kind: RuleKind
    pattern: Union[Pattern[str], str]  # structure rules name a shape check
    weight: float
    description: str = ""


@dataclass(frozen=True)
class SectionRules:
    name: SectionType
    patterns: Tuple[Pattern[str], ...]
    keywords: Tuple[str, ...]
    context_rules: Tuple[ContextRule, ...]
    confidence: float


@dataclass(frozen=True)
class FallbackRule:
    """Lines matching any pattern count toward a pseudo-section when no headers exist."""
    name: SectionType
    patterns: Tuple[Pattern[str], ...]
    min_matches: int = 1  # pattern hits needed on a single line
    max_line_index: int = -1  # only scan the first N lines; -1 scans everything
    min_length: int = 0


@dataclass(frozen=True)
class SectionRuleSet:
    version: str
    sections: Tuple[SectionRules, ...]
    fallback: Tuple[FallbackRule, ...] = ()
    min_line_length: int = 3
    header_threshold: float = 0.6
    contextual_threshold: float = 0.5
    keyword_boost_step: float = 0.1
    keyword_boost_cap: float = 0.3
    context_window: int = 10
    context_lines: int = 3
    fallback_window: int = 2
    fallback_confidence: float = 0.4
    essential_sections: Tuple[SectionType, ...] = field(
        default=(SectionType.CONTACT, SectionType.EXPERIENCE, SectionType.EDUCATION)
    )

    def get(self, name: SectionType) -> SectionRules:
        for s in self.sections:
            if s.name == name:
                return s
        raise KeyError(name)


def _re(pattern: str, flags: int = re.IGNORECASE) -> Pattern[str]:
    return re.compile(pattern, flags)


# ============================================================================
# Shared vocabularies (also used by the entity extractors)
# ============================================================================

MONTH_NAMES_RE = r"(?:jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|jun(?:e)?|jul(?:y)?|aug(?:ust)?|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)"

JOB_TITLE_WORDS = (
    "manager", "director", "engineer", "developer", "analyst", "specialist",
    "coordinator", "assistant", "lead", "senior", "junior", "intern",
    "consultant", "architect", "designer", "administrator", "associate",
    "officer", "supervisor", "technician", "scientist", "programmer",
    "representative", "executive", "president", "vp", "head", "principal",
    "staff", "founder", "co-founder", "owner", "partner", "accountant",
    "teacher", "instructor", "nurse", "editor", "writer", "recruiter",
    "strategist", "advisor", "producer", "tester", "fellow", "researcher",
)
JOB_TITLE_RE = _re(r"\b(?:" + "|".join(re.escape(w) for w in JOB_TITLE_WORDS) + r")s?\b")

DATE_RANGE_RE = _re(
    r"(?:\b" + MONTH_NAMES_RE + r"\.?\s+)?\b(?:19|20)\d{2}\s*(?:[-–—]+|to|until)\s*"
    r"(?:(?:" + MONTH_NAMES_RE + r"\.?\s+)?(?:19|20)\d{2}|present|current|now|today)\b"
)
DEGREE_RE = _re(
    r"\b(?:bachelor|master|ph\.?\s?d|doctorate|doctor\s+of|associate(?:'s)?\s+(?:of|degree)|diploma|certificate"
    r"|b\.s\.|b\.a\.|m\.s\.|m\.a\.|m\.b\.a\.|b\.?sc|m\.?sc|mba|b\.?eng|m\.?eng"
    r"|(?-i:BS|BA|MS|MA)(?=\s+(?:in|of)\b))(?!\w)"
)
INSTITUTION_RE = _re(r"\b(?:university|college|institute|school|academy|polytechnic)\b")
TECH_SKILL_RE = _re(
    r"\b(?:javascript|typescript|python|java|react|angular|vue|node(?:\.js)?|sql|aws|azure|docker|"
    r"kubernetes|git|linux|html|css|c\+\+|c#|golang|rust|ruby|php|django|flask|spring|postgresql|mysql|mongodb)(?![\w+#])"
)
EMAIL_LINE_RE = re.compile(r"@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
PHONE_LINE_RE = re.compile(r"\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}")


# ============================================================================
# Default English rule set
# ============================================================================

DEFAULT_SECTION_RULES = SectionRuleSet(
    version="en-1.0",
    sections=(
        SectionRules(
            name=SectionType.CONTACT,
            patterns=(
                _re(r"^(CONTACT|CONTACT\s+INFO|CONTACT\s+INFORMATION|PERSONAL\s+INFO|PERSONAL\s+INFORMATION)$"),
                _re(r"^(Contact|Personal\s+Information|Contact\s+Details)$"),
            ),
            keywords=("email", "phone", "address", "linkedin", "website"),
            context_rules=(
                ContextRule("contains", EMAIL_LINE_RE, 0.8, "Contains email address"),
                ContextRule("contains", PHONE_LINE_RE, 0.7, "Contains phone number"),
            ),
            confidence=0.9,
        ),
        SectionRules(
            name=SectionType.SUMMARY,
            patterns=(
                _re(r"^(SUMMARY|PROFESSIONAL\s+SUMMARY|CAREER\s+SUMMARY|EXECUTIVE\s+SUMMARY|SUMMARY\s+OF\s+QUALIFICATIONS)$"),
                _re(r"^(PROFILE|PROFESSIONAL\s+PROFILE|CAREER\s+PROFILE|ABOUT\s+ME)$"),
                _re(r"^(OVERVIEW|PROFESSIONAL\s+OVERVIEW|CAREER\s+OVERVIEW)$"),
                _re(r"^\d+\.\s*(SUMMARY|PROFILE)$"),
            ),
            keywords=("summary", "profile", "overview", "professional", "career"),
            context_rules=(
                ContextRule("structure", "intro_paragraph", 0.6, "Paragraph text near the top"),
                ContextRule("before", _re(r"\b(experience|education|skills)\b"), 0.5, "Usually appears before main sections"),
            ),
            confidence=0.85,
        ),
        SectionRules(
            name=SectionType.OBJECTIVE,
            patterns=(
                _re(r"^(OBJECTIVE|CAREER\s+OBJECTIVE|PROFESSIONAL\s+OBJECTIVE)$"),
                _re(r"^(GOAL|CAREER\s+GOAL|PROFESSIONAL\s+GOAL)$"),
            ),
            keywords=("objective", "goal", "seeking", "looking", "career"),
            context_rules=(
                ContextRule("structure", "intro_paragraph", 0.6, "Paragraph text near the top"),
                ContextRule("contains", _re(r"\b(seeking|looking\s+for|career\s+(objective|goal))\b"), 0.7, "Contains objective language"),
            ),
            confidence=0.8,
        ),
        SectionRules(
            name=SectionType.EXPERIENCE,
            patterns=(
                _re(r"^(PROFESSIONAL\s+EXPERIENCE|WORK\s+EXPERIENCE|EXPERIENCE|EMPLOYMENT\s+HISTORY)$"),
                _re(r"^(CAREER\s+HISTORY|WORK\s+HISTORY|EMPLOYMENT|CAREER\s+EXPERIENCE|RELEVANT\s+EXPERIENCE)$"),
                _re(r"^(PROFESSIONAL\s+BACKGROUND|WORK\s+BACKGROUND|JOB\s+EXPERIENCE)$"),
                _re(r"^(Work|Career|Professional|Job\s+History)$"),
                # Common misspellings
                _re(r"^(EXPERIEN[C]?E|EXPERENCE|EXPIERENCE|WORKING\s+EXPERIENCE|WORK\s+EXPERIEN[C]?E)$"),
                _re(r"^\d+\.\s*(EXPERIENCE|WORK|EMPLOYMENT|CAREER|EXPERIEN[C]?E)$"),
                _re(r"^(EXPERIENCE|WORK\s+EXPERIENCE|EMPLOYMENT)[\s_:-]*$"),
            ),
            keywords=("experience", "employment", "career", "position"),
            context_rules=(
                ContextRule("contains", _re(r"\d{4}\s*[-–—]\s*(\d{4}|present|current)"), 0.9, "Contains date ranges"),
                ContextRule("contains", _re(MONTH_NAMES_RE + r"\.?\s+\d{4}"), 0.8, "Contains month/year dates"),
                ContextRule("structure", "job_title_company", 0.7, "Job title and company"),
            ),
            confidence=0.95,
        ),
        SectionRules(
            name=SectionType.EDUCATION,
            patterns=(
                _re(r"^(EDUCATION|ACADEMIC\s+BACKGROUND|QUALIFICATIONS|EDUCATIONAL\s+BACKGROUND)$"),
                _re(r"^(ACADEMICS|SCHOOLING|STUDIES|EDUCATION\s+AND\s+TRAINING|EDUCATION\s*&\s*TRAINING)$"),
                _re(r"^(EDUCATON|EDUCTION|EDUCATN)$"),
                _re(r"^\d+\.\s*(EDUCATION|ACADEMICS|SCHOOLING|STUDIES)$"),
                _re(r"^(EDUCATION|ACADEMICS|SCHOOLING)[\s_:-]*$"),
            ),
            keywords=("education", "degree", "university", "college", "school", "bachelor", "master", "phd"),
            context_rules=(
                ContextRule("contains", _re(r"\b(bachelor|master|ph\.?d|doctorate|associate|diploma|certificate)"), 0.9, "Contains degree types"),
                ContextRule("contains", INSTITUTION_RE, 0.8, "Contains educational institutions"),
                ContextRule("contains", _re(r"\b(19|20)\d{2}\b"), 0.7, "Contains graduation years"),
            ),
            confidence=0.9,
        ),
        SectionRules(
            name=SectionType.SKILLS,
            patterns=(
                _re(r"^(SKILLS|TECHNICAL\s+SKILLS|CORE\s+COMPETENCIES|EXPERTISE|AREAS\s+OF\s+EXPERTISE)$"),
                _re(r"^(TECHNICAL\s+EXPERTISE|COMPETENCIES|TECHNOLOGIES|PROFICIENCIES|TECHNICAL\s+PROFICIENCIES)$"),
                _re(r"^(CORE\s+SKILLS|KEY\s+SKILLS|RELEVANT\s+SKILLS|SKILLS\s*(&|AND)\s*TOOLS|TOOLS)$"),
                _re(r"^\d+\.\s*(SKILLS|TECHNICAL\s+SKILLS)$"),
                _re(r"^(SKILLS|TECHNICAL\s+SKILLS)[\s_:-]*$"),
            ),
            keywords=("skills", "technologies", "competencies", "expertise", "proficient", "experienced"),
            context_rules=(
                ContextRule("structure", "skill_list", 0.8, "Separator-delimited list of short items"),
                ContextRule("contains", TECH_SKILL_RE, 0.7, "Contains common technical skills"),
            ),
            confidence=0.85,
        ),
        SectionRules(
            name=SectionType.PROJECTS,
            patterns=(
                _re(r"^(PROJECTS|PERSONAL\s+PROJECTS|PROFESSIONAL\s+PROJECTS|KEY\s+PROJECTS|ACADEMIC\s+PROJECTS)$"),
                _re(r"^(PORTFOLIO|WORK\s+SAMPLES|NOTABLE\s+PROJECTS|SIDE\s+PROJECTS)$"),
            ),
            keywords=("projects", "portfolio", "developed", "built", "created", "designed"),
            context_rules=(
                ContextRule("contains", _re(r"\b(github|gitlab|portfolio|demo|live)\b"), 0.7, "Project links or repositories"),
                ContextRule("structure", "project_description", 0.6, "Project description"),
            ),
            confidence=0.8,
        ),
        SectionRules(
            name=SectionType.CERTIFICATIONS,
            patterns=(
                _re(r"^(CERTIFICATIONS|CERTIFICATES|PROFESSIONAL\s+CERTIFICATIONS|CERTIFICATION)$"),
                _re(r"^(LICENSES|CREDENTIALS|LICENSES\s*(&|AND)\s*CERTIFICATIONS|CERTIFICATIONS\s*(&|AND)\s*LICENSES)$"),
            ),
            keywords=("certification", "certificate", "license", "credential", "certified", "licensed"),
            context_rules=(
                ContextRule("contains", _re(r"\b(certified|certification|licensed|license|credential)\b"), 0.8, "Certification wording"),
                ContextRule("structure", "header_like", 0.8, "Short, header-shaped line"),
            ),
            confidence=0.85,
        ),
        SectionRules(
            name=SectionType.LANGUAGES,
            patterns=(
                _re(r"^(LANGUAGES|LANGUAGE\s+SKILLS|FOREIGN\s+LANGUAGES|SPOKEN\s+LANGUAGES)$"),
                _re(r"^(LINGUISTIC\s+SKILLS|MULTILINGUAL\s+ABILITIES)$"),
            ),
            keywords=("languages", "fluent", "native", "conversational", "proficient"),
            context_rules=(
                ContextRule(
                    "contains",
                    _re(r"\b(english|spanish|french|german|chinese|mandarin|japanese|portuguese|italian|arabic|hindi|korean|russian|fluent|bilingual|conversational|native\s+speaker)\b"),
                    0.8,
                    "Language names or proficiency levels",
                ),
                ContextRule("structure", "header_like", 0.8, "Short, header-shaped line"),
            ),
            confidence=0.8,
        ),
        SectionRules(
            name=SectionType.VOLUNTEER,
            patterns=(
                _re(r"^(VOLUNTEER\s+EXPERIENCE|VOLUNTEER\s+WORK|COMMUNITY\s+SERVICE|VOLUNTEERING)$"),
                _re(r"^(VOLUNTEER\s+ACTIVITIES|COMMUNITY\s+INVOLVEMENT|CIVIC\s+ENGAGEMENT|VOLUNTEER)$"),
            ),
            keywords=("volunteer", "community", "nonprofit", "charity", "civic"),
            context_rules=(
                ContextRule("contains", _re(r"\b(volunteer(ed|ing)?|non-?profit|charity|community\s+service)\b"), 0.8, "Volunteer wording"),
                ContextRule("structure", "header_like", 0.8, "Short, header-shaped line"),
            ),
            confidence=0.8,
        ),
        SectionRules(
            name=SectionType.PUBLICATIONS,
            patterns=(
                _re(r"^(PUBLICATIONS|RESEARCH|PAPERS|ARTICLES)$"),
                _re(r"^(PUBLISHED\s+WORKS|ACADEMIC\s+PUBLICATIONS|RESEARCH\s+PAPERS|RESEARCH\s+EXPERIENCE)$"),
            ),
            keywords=("publications", "research", "paper", "article", "journal", "conference"),
            context_rules=(
                ContextRule("contains", _re(r"\b(journal|conference|proceedings|published|publication)\b"), 0.8, "Publication wording"),
                ContextRule("structure", "header_like", 0.8, "Short, header-shaped line"),
            ),
            confidence=0.8,
        ),
        SectionRules(
            name=SectionType.AWARDS,
            patterns=(
                _re(r"^(AWARDS|HONORS|HONOURS|ACHIEVEMENTS|RECOGNITION)$"),
                _re(r"^(HONORS\s+(AND|&)\s+AWARDS|AWARDS\s+(AND|&)\s+HONORS|ACHIEVEMENTS\s+(AND|&)\s+AWARDS)$"),
            ),
            keywords=("award", "honor", "achievement", "recognition", "winner", "recipient"),
            context_rules=(
                ContextRule("contains", _re(r"\b(awards?|honou?rs?|winner|recipient|dean'?s\s+list)\b"), 0.8, "Award wording"),
                ContextRule("structure", "header_like", 0.8, "Short, header-shaped line"),
            ),
            confidence=0.8,
        ),
        SectionRules(
            name=SectionType.REFERENCES,
            patterns=(
                _re(r"^(REFERENCES|PROFESSIONAL\s+REFERENCES|PERSONAL\s+REFERENCES)$"),
                _re(r"^(RECOMMENDATIONS|REFEREES)$"),
            ),
            keywords=("references", "available", "upon", "request", "referee"),
            context_rules=(
                ContextRule("contains", _re(r"(available\s+upon\s+request|references\s+available)"), 0.9, "Reference availability statement"),
            ),
            confidence=0.85,
        ),
    ),
    fallback=(
        FallbackRule(SectionType.CONTACT, (EMAIL_LINE_RE, PHONE_LINE_RE), max_line_index=15),
        FallbackRule(
            SectionType.SUMMARY,
            (_re(r"\b(experienced|professional|years?\s+of\s+experience|passionate|results-driven|skilled|dedicated|proven)\b"),),
            max_line_index=15,
            min_length=80,
        ),
        FallbackRule(SectionType.EXPERIENCE, (JOB_TITLE_RE, DATE_RANGE_RE)),
        FallbackRule(SectionType.EDUCATION, (DEGREE_RE, INSTITUTION_RE)),
        FallbackRule(SectionType.SKILLS, (TECH_SKILL_RE,), min_matches=2),
    ),
)
