"""
Summary extraction.

Strategies, first hit wins:
1. the dedicated summary/objective section, once contact and header lines are removed
2. sentences dense in "professional summary" vocabulary, plus their continuation lines
3. objective statements ("Seeking a ...", "To obtain ...")
4. the first substantial paragraph after the contact block
5. the first one or two meaningful lines
"""

import logging
import re
from typing import List, Optional

from resume_ingest.core.contact_parser import CONTACT_MARKER_RE, EMAIL_RE, find_phone
from resume_ingest.core.date_parser import looks_like_date_line
from resume_ingest.core.experience_parser import is_title_line
from resume_ingest.core.section_classifier import header_section
from resume_ingest.core.text_normalization import collapse_spaces, is_bullet_line, split_lines

logger = logging.getLogger(__name__)

MIN_SECTION_SUMMARY = 50
MAX_SUMMARY_LENGTH = 1000
MAX_CONTINUATION_LINES = 3
CONTACT_BLOCK_LINES = 15

SUMMARY_KEYWORDS = (
    "experienced", "experience", "professional", "years", "skilled", "expertise",
    "proven", "track record", "passionate", "dedicated", "results-driven", "specializing",
    "specialized", "background in", "accomplished", "motivated", "seasoned", "adept",
)
OBJECTIVE_RES = (
    re.compile(r"^(?:career\s+)?objective\s*[:\-–]\s*(.{20,})$", re.IGNORECASE),
    re.compile(r"\b(?:seeking|looking\s+for)\s+(?:a|an)\s+[^.]{10,}", re.IGNORECASE),
    re.compile(r"\bto\s+(?:obtain|secure|leverage|contribute|apply)\b[^.]{10,}", re.IGNORECASE),
)
PROFESSIONAL_VOCAB_RE = re.compile(
    r"\b(experience[d]?|professional|skills?|expertise|background|career|specializ\w+|"
    r"industry|leadership|develop\w*|manag\w+|team|clients?|solutions?)\b",
    re.IGNORECASE,
)


def _is_contact_line(line: str) -> bool:
    return bool(EMAIL_RE.search(line) or CONTACT_MARKER_RE.search(line) or find_phone(line))


def _is_noise(line: str) -> bool:
    """Lines that never belong in a summary."""
    return (
        len(line) < 3
        or header_section(line) is not None
        or _is_contact_line(line)
        or looks_like_date_line(line)
    )


def _trim(text: str) -> str:
    text = collapse_spaces(text).strip()
    if len(text) <= MAX_SUMMARY_LENGTH:
        return text
    cut = text[:MAX_SUMMARY_LENGTH]
    end = cut.rfind(". ")
    return cut[:end + 1] if end > MAX_SUMMARY_LENGTH // 2 else cut.rstrip()


def _keyword_hits(line: str) -> int:
    lower = line.lower()
    return sum(1 for k in SUMMARY_KEYWORDS if re.search(r"\b" + re.escape(k) + r"\b", lower))


def _continuation(lines: List[str], start: int) -> List[str]:
    """Prose lines directly after ``start`` that read as part of the same paragraph."""
    out: List[str] = []
    for line in lines[start + 1:start + 1 + MAX_CONTINUATION_LINES]:
        if _is_noise(line) or is_bullet_line(line) or is_title_line(line) or len(line) < 30:
            break
        out.append(line)
    return out


def _from_section(section_text: str) -> Optional[str]:
    kept = [ln for ln in split_lines(section_text) if not _is_noise(ln)]
    text = " ".join(kept)
    if len(text) > MIN_SECTION_SUMMARY:
        return text
    return None


def _from_keywords(lines: List[str]) -> Optional[str]:
    for i, line in enumerate(lines):
        if _is_noise(line) or is_bullet_line(line):
            continue
        hits = _keyword_hits(line)
        if hits >= 2 or (hits >= 1 and len(line) > 100):
            return " ".join([line] + _continuation(lines, i))
    return None


def _from_objective(lines: List[str]) -> Optional[str]:
    for line in lines:
        if _is_contact_line(line) or len(line) < 30:
            continue
        for rx in OBJECTIVE_RES:
            m = rx.search(line)
            if m:
                return m.group(1) if m.groups() else line
    return None


def _contact_block_end(lines: List[str]) -> int:
    last = -1
    for i, line in enumerate(lines[:CONTACT_BLOCK_LINES]):
        if _is_contact_line(line):
            last = i
    return last + 1


def _from_first_paragraph(lines: List[str]) -> Optional[str]:
    for i in range(_contact_block_end(lines), len(lines)):
        line = lines[i]
        if len(line) < 80 or _is_noise(line) or is_bullet_line(line):
            continue
        if PROFESSIONAL_VOCAB_RE.search(line):
            return " ".join([line] + _continuation(lines, i))
    return None


def _from_meaningful_lines(lines: List[str]) -> Optional[str]:
    picked: List[str] = []
    for line in lines:
        if not 40 <= len(line) <= 300:
            continue
        if _is_noise(line) or is_bullet_line(line) or is_title_line(line):
            continue
        picked.append(line)
        if len(picked) == 2:
            break
    return " ".join(picked) or None


def extract_summary(full_text: str, section_text: str = "") -> str:
    if section_text and section_text.strip():
        found = _from_section(section_text)
        if found:
            logger.debug("Summary taken from its own section")
            return _trim(found)

    lines = split_lines(full_text)
    for name, strategy in (
        ("keywords", _from_keywords),
        ("objective", _from_objective),
        ("first paragraph", _from_first_paragraph),
        ("meaningful lines", _from_meaningful_lines),
    ):
        found = strategy(lines)
        if found:
            logger.debug("Summary found by %s strategy", name)
            return _trim(found)
    return ""
