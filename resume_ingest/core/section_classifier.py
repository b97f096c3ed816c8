"""
Section Classification Engine.

Splits extracted text into lines, scores every line against each section's
header patterns, contextual rules and keywords, and turns the accepted
headers into sorted, non-overlapping section spans. When a document has no
recognizable headers at all, sections are synthesized from keyword density.

classify_sections is pure and deterministic: same text and rule set in, same
result out.
"""

import logging
import re
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from resume_ingest.core.confidence_calculator import ConfidenceCalculator
from resume_ingest.core.schemas import ClassificationResult, SectionBoundary, SectionType
from resume_ingest.core.section_rules import (
    DEFAULT_SECTION_RULES,
    JOB_TITLE_RE,
    ContextRule,
    FallbackRule,
    SectionRules,
    SectionRuleSet,
)
from resume_ingest.core.text_normalization import split_lines

logger = logging.getLogger(__name__)

CONTEXTUAL = "contextual_rules"


# ============================================================================
# Structure checks
# ============================================================================

StructureCheck = Callable[[str, Sequence[str], int], bool]

STRUCTURE_BULLET_RE = re.compile(r"^[-•*]\s")
TITLE_COMPANY_RES = (
    re.compile(r"^(.+?)\s+(?:at|@)\s+(.+)$", re.IGNORECASE),
    re.compile(r"^(.+?)\s*[\|–—]\s*(.+)$"),
    re.compile(r"^(.+?)\s+-\s+(.+)$"),
    re.compile(r"^(.+?),\s*(.+)$"),
)
BUILD_VERB_RE = re.compile(r"\b(built|developed|created|designed|implemented|launched|prototyped)\b", re.IGNORECASE)
LIST_SEPARATOR_RE = re.compile(r"\s*[,;|•·]\s*")


def _is_paragraph(line: str, lines: Sequence[str], index: int) -> bool:
    return len(line) > 50


def _is_intro_paragraph(line: str, lines: Sequence[str], index: int) -> bool:
    return index < 15 and len(line) > 50 and not STRUCTURE_BULLET_RE.match(line)


def _is_bullet(line: str, lines: Sequence[str], index: int) -> bool:
    return bool(STRUCTURE_BULLET_RE.match(line))


def _is_job_title_company(line: str, lines: Sequence[str], index: int) -> bool:
    if len(line) > 80 or STRUCTURE_BULLET_RE.match(line):
        return False
    for rx in TITLE_COMPANY_RES:
        m = rx.match(line)
        if m and JOB_TITLE_RE.search(m.group(1)) and m.group(2).strip():
            return True
    return False


def _is_project_description(line: str, lines: Sequence[str], index: int) -> bool:
    return len(line) > 60 and not STRUCTURE_BULLET_RE.match(line) and bool(BUILD_VERB_RE.search(line))


def _is_skill_list(line: str, lines: Sequence[str], index: int) -> bool:
    body = re.sub(r"^[^:]{1,30}:\s*", "", line)  # "Languages: Python, Go" -> items after the label
    items = [i for i in LIST_SEPARATOR_RE.split(body) if i.strip()]
    if len(items) < 3:
        return False
    return all(len(i) <= 30 and len(i.split()) <= 4 for i in items)


def _is_header_like(line: str, lines: Sequence[str], index: int) -> bool:
    return (
        len(line) <= 50
        and len(line.split()) <= 5
        and not line.rstrip().endswith(".")
        and not STRUCTURE_BULLET_RE.match(line)
    )


STRUCTURE_CHECKS: Dict[str, StructureCheck] = {
    "paragraph": _is_paragraph,
    "intro_paragraph": _is_intro_paragraph,
    "bullet_list": _is_bullet,
    "job_title_company": _is_job_title_company,
    "project_description": _is_project_description,
    "skill_list": _is_skill_list,
    "header_like": _is_header_like,
}


# ============================================================================
# Header matching
# ============================================================================

def _rule_matches(rule: ContextRule, line: str, lines: Sequence[str], index: int, window: int) -> bool:
    if rule.kind == "structure":
        check = STRUCTURE_CHECKS.get(str(rule.pattern))
        if check is None:
            logger.debug("Unknown structure check %r", rule.pattern)
            return False
        return check(line, lines, index)

    if rule.kind == "contains":
        if isinstance(rule.pattern, str):
            return rule.pattern.lower() in line.lower()
        return bool(rule.pattern.search(line))

    if rule.kind == "before":
        text = " ".join(lines[index + 1:index + 1 + window])
    else:  # "after"
        text = " ".join(lines[max(0, index - window):index])

    if isinstance(rule.pattern, str):
        return rule.pattern.lower() in text.lower()
    return bool(rule.pattern.search(text))


def _match_header(
    line: str,
    section: SectionRules,
    lines: Sequence[str],
    index: int,
    rules: SectionRuleSet,
) -> Optional[Tuple[float, str]]:
    """Return (confidence, matched_pattern) when the line qualifies as this section's header."""
    confidence = 0.0
    matched_pattern = ""

    for pattern in section.patterns:
        if pattern.search(line):
            confidence = section.confidence
            matched_pattern = pattern.pattern
            break

    if confidence == 0.0 and section.context_rules:
        total = sum(r.weight for r in section.context_rules)
        matched = sum(
            r.weight for r in section.context_rules
            if _rule_matches(r, line, lines, index, rules.context_window)
        )
        contextual = ConfidenceCalculator.contextual(matched, total)
        if contextual > rules.contextual_threshold:
            confidence = contextual
            matched_pattern = CONTEXTUAL

    boost = ConfidenceCalculator.keyword_boost(
        line, section.keywords, rules.keyword_boost_step, rules.keyword_boost_cap
    )
    confidence = ConfidenceCalculator.header(confidence, boost)

    if confidence > rules.header_threshold:
        return round(confidence, 4), matched_pattern
    return None


def header_section(line: str, rules: SectionRuleSet = DEFAULT_SECTION_RULES) -> Optional[SectionType]:
    """Section type when the line is a literal section header ("EXPERIENCE", "Skills:"), else None."""
    t = line.strip().rstrip(":").strip()
    if len(t) < rules.min_line_length:
        return None
    for section in rules.sections:
        if any(p.search(t) for p in section.patterns):
            return section.name
    return None


def _context(lines: Sequence[str], index: int, size: int) -> List[str]:
    return list(lines[max(0, index - size):min(len(lines), index + size + 1)])


def find_section_boundaries(
    lines: Sequence[str],
    rules: SectionRuleSet = DEFAULT_SECTION_RULES,
) -> Tuple[List[SectionBoundary], List[SectionBoundary]]:
    """
    Scan lines for section headers.

    Returns (boundaries, duplicates). The first header found for a section
    wins; a later line that matches an already-found section is tried against
    the remaining section types. Duplicates that matched a literal header
    pattern are returned separately so callers can report them.
    """
    boundaries: List[SectionBoundary] = []
    duplicates: List[SectionBoundary] = []
    found: Dict[SectionType, SectionBoundary] = {}

    for i, line in enumerate(lines):
        if len(line) < rules.min_line_length:
            continue

        for section in rules.sections:
            if section.name == SectionType.UNKNOWN:
                continue
            match = _match_header(line, section, lines, i, rules)
            if match is None:
                continue

            confidence, matched_pattern = match
            boundary = SectionBoundary(
                name=section.name,
                start=i,
                end=len(lines),
                header_line=line,
                confidence=confidence,
                matched_pattern=matched_pattern,
                context=_context(lines, i, rules.context_lines),
            )

            if section.name in found:
                if matched_pattern != CONTEXTUAL:
                    logger.debug(
                        "Duplicate %s header at line %d (%r), keeping line %d",
                        section.name.value, i, line, found[section.name].start,
                    )
                    duplicates.append(boundary)
                else:
                    logger.debug(
                        "Ignoring contextual %s match at line %d (%r), section already found at line %d",
                        section.name.value, i, line, found[section.name].start,
                    )
                continue

            found[section.name] = boundary
            boundaries.append(boundary)
            logger.debug(
                "Found %s section at line %d: %r (confidence %.2f, %s)",
                section.name.value, i, line, confidence, matched_pattern,
            )
            break

    boundaries.sort(key=lambda b: b.start)
    for cur, nxt in zip(boundaries, boundaries[1:]):
        cur.end = nxt.start

    return boundaries, duplicates


# ============================================================================
# Fallback: keyword density
# ============================================================================

def _fallback_hits(rule: FallbackRule, line: str) -> int:
    return sum(len(p.findall(line)) for p in rule.patterns)


def _fallback_sections(
    lines: Sequence[str],
    rules: SectionRuleSet,
) -> Tuple[List[SectionBoundary], Dict[SectionType, str]]:
    boundaries: List[SectionBoundary] = []
    sections: Dict[SectionType, str] = {}

    for rule in rules.fallback:
        covered: List[int] = []
        matched_any = False
        limit = len(lines) if rule.max_line_index < 0 else min(len(lines), rule.max_line_index)

        for i in range(limit):
            line = lines[i]
            if len(line) < rule.min_length or _fallback_hits(rule, line) < rule.min_matches:
                continue
            matched_any = True
            for j in range(i, min(len(lines), i + rules.fallback_window + 1)):
                if j not in covered:
                    covered.append(j)

        if not matched_any:
            continue

        covered.sort()
        start = covered[0]
        boundaries.append(
            SectionBoundary(
                name=rule.name,
                start=start,
                end=covered[-1] + 1,
                header_line=lines[start],
                confidence=rules.fallback_confidence,
                matched_pattern=f"fallback:{rule.name.value}",
                context=_context(lines, start, rules.context_lines),
            )
        )
        sections[rule.name] = "\n".join(lines[j] for j in covered)
        logger.debug("Fallback %s: %d lines from line %d", rule.name.value, len(covered), start)

    boundaries.sort(key=lambda b: b.start)
    return boundaries, sections


# ============================================================================
# Public API
# ============================================================================

def _section_content(lines: Sequence[str], boundaries: Sequence[SectionBoundary]) -> Dict[SectionType, str]:
    sections: Dict[SectionType, str] = {}
    for b in boundaries:
        sections[b.name] = "\n".join(lines[b.start + 1:b.end]).strip()
    return sections


def _warnings(
    boundaries: Sequence[SectionBoundary],
    sections: Dict[SectionType, str],
    rules: SectionRuleSet,
) -> List[str]:
    warnings: List[str] = []

    for name in rules.essential_sections:
        if len(sections.get(name, "")) < 10:
            warnings.append(f"Missing or insufficient {name.value} section")

    low = [b.name.value for b in boundaries if b.confidence < 0.7]
    if low:
        warnings.append(f"Low confidence in identifying: {', '.join(low)}")

    short = [name.value for name, content in sections.items() if len(content) < 20]
    if short:
        warnings.append(f"Very short sections detected: {', '.join(short)}")

    return warnings


def classify_sections(text: str, rules: SectionRuleSet = DEFAULT_SECTION_RULES) -> ClassificationResult:
    lines = split_lines(text)
    boundaries, duplicates = find_section_boundaries(lines, rules)
    used_fallback = False

    if boundaries:
        sections = _section_content(lines, boundaries)
    else:
        boundaries, sections = _fallback_sections(lines, rules)
        used_fallback = True

    confidence = ConfidenceCalculator.overall(boundaries)
    warnings = _warnings(boundaries, sections, rules)
    if used_fallback:
        warnings.append("No section headers found; sections were inferred from keyword density")

    logger.debug(
        "Classified %d lines into %d sections (confidence %.2f, %d warnings, rules %s)",
        len(lines), len(boundaries), confidence, len(warnings), rules.version,
    )

    return ClassificationResult(
        sections=sections,
        boundaries=boundaries,
        confidence=round(confidence, 4),
        warnings=warnings,
        used_fallback=used_fallback,
        duplicates=duplicates,
    )
