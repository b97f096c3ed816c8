import logging
import re

import pytest

from resume_ingest.core.schemas import SectionType
from resume_ingest.core.section_classifier import (
    CONTEXTUAL,
    classify_sections,
    find_section_boundaries,
    header_section,
)
from resume_ingest.core.section_rules import DEFAULT_SECTION_RULES, ContextRule, SectionRules, SectionRuleSet


def test_sample_resume_boundaries(sample_resume):
    result = classify_sections(sample_resume)

    starts = [(b.name, b.start) for b in result.boundaries]
    assert starts == [
        (SectionType.CONTACT, 1),
        (SectionType.SUMMARY, 2),
        (SectionType.EXPERIENCE, 4),
        (SectionType.EDUCATION, 12),
        (SectionType.SKILLS, 14),
    ]
    assert result.boundary(SectionType.CONTACT).matched_pattern == CONTEXTUAL
    assert result.used_fallback is False
    assert result.confidence >= 0.9
    assert result.is_usable()


def test_boundaries_are_sorted_and_non_overlapping(sample_resume):
    result = classify_sections(sample_resume)
    for cur, nxt in zip(result.boundaries, result.boundaries[1:]):
        assert cur.start < nxt.start
        assert cur.end == nxt.start
    for b in result.boundaries:
        assert 0.0 <= b.confidence <= 1.0


def test_section_content_excludes_header(sample_resume):
    result = classify_sections(sample_resume)
    assert result.section(SectionType.SKILLS) == "Python, PostgreSQL, Docker, Kubernetes"
    assert result.section(SectionType.EXPERIENCE).startswith("Senior Engineer at Acme Corp")
    assert "EDUCATION" not in result.section(SectionType.EXPERIENCE)


def test_classification_is_deterministic(sample_resume):
    assert classify_sections(sample_resume) == classify_sections(sample_resume)


def test_first_header_wins_and_duplicate_is_reported():
    text = (
        "EXPERIENCE\nSenior Engineer at Acme Corp\nJan 2020 - Present\n"
        "SKILLS\nPython, Docker, Linux\n"
        "EXPERIENCE\nEngineer at Initech\n2015 - 2017"
    )
    result = classify_sections(text)

    assert result.boundary(SectionType.EXPERIENCE).start == 0
    assert len(result.duplicates) == 1
    assert result.duplicates[0].name == SectionType.EXPERIENCE
    assert result.duplicates[0].start == 5


def test_no_headers_falls_back_to_keyword_density():
    result = classify_sections("Senior Engineer at Acme Corp\nLed backend work in Python and Docker")

    assert result.used_fallback is True
    names = {b.name for b in result.boundaries}
    assert {SectionType.EXPERIENCE, SectionType.SKILLS} <= names
    assert all(b.matched_pattern.startswith("fallback:") for b in result.boundaries)
    assert all(b.confidence == 0.4 for b in result.boundaries)
    assert "No section headers found; sections were inferred from keyword density" in result.warnings


def test_empty_text():
    result = classify_sections("")
    assert result.boundaries == []
    assert result.confidence == 0.0
    assert not result.is_usable()


def test_custom_rule_set_is_used_as_given():
    rules = SectionRuleSet(
        version="test-1",
        sections=(
            SectionRules(
                name=SectionType.SKILLS,
                patterns=(re.compile(r"^TOOLBOX$"),),
                keywords=(),
                context_rules=(),
                confidence=0.9,
            ),
        ),
    )
    result = classify_sections("TOOLBOX\nhammer, saw, drill", rules)

    assert [b.name for b in result.boundaries] == [SectionType.SKILLS]
    assert result.section(SectionType.SKILLS) == "hammer, saw, drill"
    # the default table is untouched
    assert classify_sections("TOOLBOX\nhammer, saw, drill", DEFAULT_SECTION_RULES).boundary(SectionType.SKILLS) is None


def test_header_section():
    assert header_section("EXPERIENCE") == SectionType.EXPERIENCE
    assert header_section("Skills:") == SectionType.SKILLS
    assert header_section("Professional Summary") == SectionType.SUMMARY
    assert header_section("Python, Docker") is None
    assert header_section("ab") is None


# ============================================================================
# Contextual header rules
# ============================================================================

EXPERIENCE_WORD = re.compile(r"\bexperience\b", re.IGNORECASE)
LINES = ["Jane Doe", "Builds billing software", "EXPERIENCE", "Acme Corp"]


def summary_rules(*context_rules, keywords=(), **options) -> SectionRuleSet:
    """A one-section rule set with no literal header patterns, only context rules."""
    return SectionRuleSet(
        version="test-context",
        sections=(
            SectionRules(
                name=SectionType.SUMMARY,
                patterns=(),
                keywords=keywords,
                context_rules=context_rules,
                confidence=0.85,
            ),
        ),
        **options,
    )


def test_before_rule_looks_at_following_lines():
    rules = summary_rules(ContextRule("before", EXPERIENCE_WORD, 1.0), context_window=1)
    boundaries, duplicates = find_section_boundaries(LINES, rules)

    assert [(b.name, b.start) for b in boundaries] == [(SectionType.SUMMARY, 1)]
    assert boundaries[0].matched_pattern == CONTEXTUAL
    assert boundaries[0].confidence == 1.0
    assert duplicates == []


def test_after_rule_looks_at_preceding_lines():
    rules = summary_rules(ContextRule("after", "experience", 1.0), context_window=1)
    boundaries, _ = find_section_boundaries(LINES, rules)
    assert [b.start for b in boundaries] == [3]


def test_wider_window_reaches_further():
    rules = summary_rules(ContextRule("before", EXPERIENCE_WORD, 1.0), context_window=2)
    boundaries, _ = find_section_boundaries(LINES, rules)
    assert [b.start for b in boundaries] == [0]


def test_structure_rule_runs_named_check():
    rules = summary_rules(ContextRule("structure", "skill_list", 1.0))
    boundaries, _ = find_section_boundaries(["Jane Doe", "Python, Go, SQL, Docker"], rules)
    assert [b.start for b in boundaries] == [1]


def test_unknown_structure_check_never_matches():
    rules = summary_rules(ContextRule("structure", "no_such_shape", 1.0))
    assert find_section_boundaries(["Python, Go, SQL, Docker"], rules) == ([], [])


def test_partial_context_needs_keyword_boost_to_clear_header_threshold():
    rules = [
        ContextRule("before", EXPERIENCE_WORD, 0.6),
        ContextRule("contains", "github", 0.4),
    ]
    # 0.6 of the rule weight clears the contextual threshold but not the header threshold
    assert find_section_boundaries(LINES, summary_rules(*rules, context_window=1)) == ([], [])

    boosted = summary_rules(*rules, keywords=("billing",), context_window=1)
    boundaries, _ = find_section_boundaries(LINES, boosted)
    assert [b.start for b in boundaries] == [1]
    assert boundaries[0].confidence == pytest.approx(0.7)


def test_skill_list_line_is_classified_without_a_header():
    result = classify_sections("Jane Doe\nPython, Go, SQL, Docker, Kubernetes")

    skills = result.boundary(SectionType.SKILLS)
    assert skills.start == 1
    assert skills.matched_pattern == CONTEXTUAL
    assert skills.confidence == 1.0
    assert result.used_fallback is False


def test_contextual_duplicate_is_dropped_and_logged(caplog):
    caplog.set_level(logging.DEBUG, logger="resume_ingest.core.section_classifier")
    rules = summary_rules(ContextRule("structure", "skill_list", 1.0))
    lines = ["Python, Go, SQL", "Docker, Kubernetes, Linux"]

    boundaries, duplicates = find_section_boundaries(lines, rules)

    assert [b.start for b in boundaries] == [0]
    assert duplicates == []
    assert "Ignoring contextual summary match at line 1" in caplog.text


# ============================================================================
# Warnings
# ============================================================================

def test_low_confidence_boundary_is_warned():
    rules = summary_rules(
        ContextRule("before", EXPERIENCE_WORD, 0.65),
        ContextRule("contains", "github", 0.35),
        context_window=1,
    )
    result = classify_sections("\n".join(LINES), rules)

    assert result.boundary(SectionType.SUMMARY).confidence == pytest.approx(0.65)
    assert "Low confidence in identifying: summary" in result.warnings


def test_confident_header_is_not_warned():
    rules = SectionRuleSet(
        version="test-header",
        sections=(
            SectionRules(
                name=SectionType.SUMMARY,
                patterns=(re.compile(r"^SUMMARY$"),),
                keywords=(),
                context_rules=(),
                confidence=0.9,
            ),
        ),
    )
    result = classify_sections("SUMMARY\nBuilds billing software for clinics", rules)
    assert not any(w.startswith("Low confidence") for w in result.warnings)
