"""
Skills extraction.

Two passes over the skills section (or the whole text when there is none):

1. Keyword families, matched in priority order. A hit yields the family's
   canonical spelling ("postgresql" -> "PostgreSQL").
2. List splitting. Lines are split on commas, semicolons, pipes and bullets,
   and short tokens that look technical are kept as written.

Duplicates are dropped case-insensitively (first spelling wins) and the
result is reordered so languages, frameworks, databases and cloud tooling
lead.
"""

import logging
import re
from typing import Dict, List, Optional, Tuple

from resume_ingest.core.date_parser import month_index
from resume_ingest.core.section_classifier import header_section
from resume_ingest.core.text_normalization import split_lines, strip_bullet

logger = logging.getLogger(__name__)

MAX_SKILLS = 50

# (family, core tier?, canonical names). Order is priority order.
SKILL_FAMILIES: Tuple[Tuple[str, bool, Tuple[str, ...]], ...] = (
    ("languages", True, (
        "Python", "JavaScript", "TypeScript", "Java", "C++", "C#", "Golang", "Rust", "Ruby",
        "PHP", "Swift", "Kotlin", "Scala", "Perl", "MATLAB", "Objective-C", "Dart", "Elixir",
        "Haskell", "Lua", "Bash", "PowerShell", "SQL", "HTML", "CSS", "Sass", "GraphQL",
    )),
    ("frameworks", True, (
        "React", "Angular", "Vue.js", "Svelte", "Next.js", "Node.js", "Express", "Django",
        "Flask", "FastAPI", "Spring Boot", "Spring", "Rails", "Laravel", "ASP.NET", ".NET",
        "jQuery", "Bootstrap", "Tailwind", "React Native", "Flutter", "Pandas", "NumPy",
        "Redux",
    )),
    ("databases", True, (
        "PostgreSQL", "MySQL", "SQLite", "MongoDB", "Redis", "Oracle Database", "SQL Server",
        "DynamoDB", "Cassandra", "Elasticsearch", "Snowflake", "BigQuery", "Firebase",
        "MariaDB", "Neo4j",
    )),
    ("cloud", True, (
        "AWS", "Azure", "Google Cloud", "GCP", "Docker", "Kubernetes", "Terraform", "Ansible",
        "Jenkins", "GitHub Actions", "GitLab CI", "CI/CD", "Linux", "Git", "Nginx", "Helm",
        "CloudFormation", "Serverless", "Microservices", "REST", "Kafka", "RabbitMQ",
    )),
    ("tools", False, (
        "Figma", "Sketch", "Adobe XD", "Photoshop", "Illustrator", "InDesign", "Excel",
        "PowerPoint", "Word", "Tableau", "Power BI", "Looker", "Salesforce", "HubSpot",
        "Jira", "Confluence", "Trello", "Asana", "SAP", "QuickBooks", "Google Analytics",
        "Agile", "Scrum", "Kanban", "Project Management", "Product Management", "SEO",
    )),
    ("emerging", False, (
        "Machine Learning", "Deep Learning", "Artificial Intelligence", "Natural Language Processing",
        "NLP", "Computer Vision", "TensorFlow", "PyTorch", "scikit-learn", "Keras", "LLM",
        "Generative AI", "Blockchain", "Data Science", "Data Analysis", "Spark", "Hadoop",
        "Airflow",
    )),
    ("soft", False, (
        "Leadership", "Communication", "Teamwork", "Problem Solving", "Mentoring",
        "Public Speaking", "Negotiation", "Time Management", "Stakeholder Management",
    )),
)

# Ordinary English words; only the capitalized spelling counts
CASE_SENSITIVE = {
    "Rust", "Ruby", "Swift", "Dart", "Express", "Spring", "Rails", "Word", "Sketch", "Spark",
    "Helm", "Git", "REST", "React", "Excel",
}

LIST_SPLIT_RE = re.compile(r"\s*[,;|•·]\s*|\s+[-–—]\s+|[()]")
LABEL_RE = re.compile(r"^[A-Za-z][A-Za-z &/]{0,30}:\s*")
TECH_SUFFIXES = ("script", "base", "ware")

NOT_SKILLS = {
    "skills", "technical skills", "tools", "technologies", "languages", "frameworks",
    "databases", "other", "and", "etc", "including", "proficient", "familiar", "experience",
    "the", "with", "in", "of", "i", "a",
}


def _skill_pattern(name: str) -> re.Pattern:
    flags = 0 if name in CASE_SENSITIVE else re.IGNORECASE
    return re.compile(r"(?<![A-Za-z0-9.])" + re.escape(name) + r"(?![A-Za-z0-9+#])", flags)


_FAMILY_PATTERNS: List[Tuple[str, bool, re.Pattern]] = [
    (name, core, _skill_pattern(name))
    for _, core, names in SKILL_FAMILIES
    for name in names
]
_CORE_SKILLS: Dict[str, bool] = {name.lower(): core for name, core, _ in _FAMILY_PATTERNS}


def looks_technical(token: str) -> bool:
    """
    Heuristic for a free-form list item: all-caps acronym, a single
    capitalized word, a *script / *base / *ware name, or anything with + or #.
    """
    t = token.strip()
    if not 2 <= len(t) <= 30 or re.search(r"\b(19|20)\d{2}\b", t) or t.isdigit():
        return False
    if t.lower() in NOT_SKILLS or month_index(t) is not None:
        return False
    if "+" in t or "#" in t:
        return True
    if t.lower().endswith(TECH_SUFFIXES):
        return True
    if re.fullmatch(r"[A-Z][A-Z0-9.&/-]{1,9}", t):
        return True
    return bool(re.fullmatch(r"[A-Z][a-z0-9]+(?:[.-][A-Za-z0-9]+)*", t))


def _list_items(line: str) -> List[str]:
    body = LABEL_RE.sub("", strip_bullet(line))
    items = []
    for part in LIST_SPLIT_RE.split(body):
        item = re.sub(r"^(?:and|&)\s+", "", part.strip(), flags=re.IGNORECASE).strip(" .:")
        if item:
            items.append(item)
    return items


def _is_list_line(items: List[str]) -> bool:
    return len(items) >= 3 and all(len(i) <= 30 and len(i.split()) <= 4 for i in items)


class _SkillSet:
    """Insertion-ordered, case-insensitive collection with an optional cap."""

    def __init__(self, limit: Optional[int]):
        self.limit = limit
        self.items: List[str] = []
        self._seen: set = set()

    @property
    def full(self) -> bool:
        return self.limit is not None and len(self.items) >= self.limit

    def add(self, skill: str) -> None:
        key = skill.lower()
        if key in self._seen or self.full:
            return
        self._seen.add(key)
        self.items.append(skill)


def reorder_by_tier(skills: List[str]) -> List[str]:
    """Recognized core skills first, each tier keeping first-seen order."""
    core = [s for s in skills if _CORE_SKILLS.get(s.lower(), False)]
    rest = [s for s in skills if not _CORE_SKILLS.get(s.lower(), False)]
    return core + rest


def extract_skills(full_text: str, section_text: str = "", limit: Optional[int] = MAX_SKILLS) -> List[str]:
    """
    Extract a deduplicated skill list.

    ``limit=None`` disables the cap so a caller can see how many skills the
    text really produced.
    """
    has_section = bool(section_text and section_text.strip())
    search_text = section_text if has_section else full_text
    if not search_text or not search_text.strip():
        return []

    found = _SkillSet(limit)

    # Keyword families keep the position of their first hit
    hits: List[Tuple[int, int, str]] = []
    for priority, (name, _, pattern) in enumerate(_FAMILY_PATTERNS):
        m = pattern.search(search_text)
        if m:
            hits.append((priority, m.start(), name))
    for _, _, name in sorted(hits):
        found.add(name)

    for line in split_lines(search_text):
        if found.full:
            break
        if header_section(line):
            continue
        items = _list_items(line)
        # Outside a skills section only list-shaped lines are trusted
        if not has_section and not _is_list_line(items):
            continue
        for item in items:
            if looks_technical(item):
                found.add(item)

    skills = reorder_by_tier(found.items)
    logger.debug("Extracted %d skills (%s)", len(skills), "section" if has_section else "full text")
    return skills
