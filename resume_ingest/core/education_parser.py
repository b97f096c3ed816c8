"""
Education parsing module for extracting the degree, school and graduation date.

Degree and institution lines are detected independently by keyword, then
paired when they sit within a few lines of each other. Field of study comes
from the degree line ("in <field>", "of <field>", "for <field>"); the
graduation year is the latest plausible year in the block.
"""

import calendar
import re
from datetime import date
from typing import List, Optional, Tuple

from resume_ingest.core.contact_parser import find_location
from resume_ingest.core.schemas import Education
from resume_ingest.core.text_normalization import split_lines, strip_bullet


# ===== DEGREE KEYWORDS (Strong Signal) =====

DEGREE_KEYWORDS = {
    "bachelor of",
    "bachelor's",
    "bachelors",
    "master of",
    "master's",
    "masters",
    "associate of",
    "associate's",
    "b.s.",
    "b.a.",
    "m.s.",
    "m.a.",
    "m.b.a.",
    "mba",
    "b.sc",
    "m.sc",
    "ph.d",
    "phd",
    "doctorate",
    "doctor of",
    "doctoral",
    "graduate degree",
    "postgraduate",
    "diploma",
    "certificate",
}

# ===== INSTITUTION KEYWORDS =====

INSTITUTION_KEYWORDS = {
    "university",
    "college",
    "institute",
    "school",
    "academy",
    "polytechnic",
    "conservatory",
}

PAIRING_DISTANCE = 5
MIN_GRAD_YEAR = 1980

MONTH_BEFORE_YEAR_RE = r"\b(jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|aug(?:ust)?|sept?(?:ember)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)\.?,?\s*"
MONTH_ABBREVIATIONS = {name[:3].lower(): i for i, name in enumerate(calendar.month_name) if name}


def has_degree_keyword(text: str) -> bool:
    """
    Check if text contains degree keywords.
    This is a STRONG signal that a line is education, not experience.
    """
    text_lower = text.lower()
    if any(keyword in text_lower for keyword in DEGREE_KEYWORDS):
        return True
    # Bare "BS in ..." / "MA in ..." only in capitals, so "ms office" stays out
    return bool(re.search(r"\b(BS|BA|MS|MA|BSc|MSc|BEng|MEng)\s+(in|of)\b", text))


def is_institution_keyword(text: str) -> bool:
    text_lower = text.lower()
    return any(re.search(r"\b" + k + r"\b", text_lower) for k in INSTITUTION_KEYWORDS)


def extract_degree_from_text(text: str) -> Optional[str]:
    """
    Extract degree name from text.

    Examples:
        "Bachelor of Science in Computer Science" -> "Bachelor of Science"
        "M.S. in Engineering" -> "M.S."
        "PhD" -> "PhD"
    """
    text_lower = text.lower()

    # Longer degree names first (longer match wins)
    degree_patterns = [
        r"(bachelor of (?:science|arts|engineering|fine arts|business administration|applied science)"
        r"|master of (?:science|arts|engineering|fine arts|business administration|public health|education)"
        r"|doctor of (?:philosophy|medicine|education)|associate of (?:science|arts|applied science)"
        r"|bachelor'?s degree|master'?s degree|associate'?s degree)",
        r"(b\.s\.|b\.a\.|m\.s\.|m\.a\.|m\.b\.a\.|ph\.d\.?|b\.sc\.?|m\.sc\.?)",
        r"(bachelor'?s?|master'?s?|associate'?s?|doctorate|doctoral|phd|mba|graduate degree|postgraduate degree|diploma|certificate)",
    ]

    for pattern in degree_patterns:
        match = re.search(r"\b" + pattern, text_lower)
        if match:
            # Preserve the original casing
            return text[match.start():match.end()].strip()

    m = re.search(r"\b(BS|BA|MS|MA|BSc|MSc|BEng|MEng)(?=\s+(?:in|of)\b)", text)
    if m:
        return m.group(1)
    return None


def extract_field_of_study_from_degree_line(text: str, degree: Optional[str] = None) -> Optional[str]:
    """
    Extract field of study from a degree line.

    Examples:
        "Bachelor of Science in Computer Science" -> "Computer Science"
        "Master of Business Administration" -> None (the field is the degree)
        "Certificate for Data Analytics, 2020" -> "Data Analytics"
    """
    remainder = text
    if degree:
        idx = text.find(degree)
        if idx >= 0:
            remainder = text[idx + len(degree):]

    # Stop at common delimiters so the school or location isn't captured
    for prep in ("in", "of", "for"):
        match = re.search(
            r"\b" + prep + r"\s+([A-Za-z][A-Za-z\s&/\-]*?)(?=\s*(?:,|;|\||–|—|\(|\s-\s|\d|$))",
            remainder,
            re.IGNORECASE,
        )
        if not match:
            continue
        field = match.group(1).strip()
        if len(field) > 2 and field.lower() not in {"states", "united states"} and not is_institution_keyword(field):
            return field
    return None


def _school_from_line(line: str) -> Optional[str]:
    """The comma/pipe-delimited segment of a line that names the institution."""
    for segment in re.split(r"\s*[,|•·–—]\s*|\s+-\s+", line):
        seg = strip_bullet(segment).strip()
        if seg and is_institution_keyword(seg) and not has_degree_keyword(seg):
            # "Example University 2021" -> "Example University"
            return re.sub(r"\s*\(?\b(19|20)\d{2}\b.*$", "", seg).strip()
    return None


def _grad_date(text: str) -> Tuple[str, str]:
    """(year, month) of the latest plausible year and the month name next to it."""
    max_year = date.today().year + 10
    years = [int(y) for y in re.findall(r"\b((?:19|20)\d{2})\b", text)]
    years = [y for y in years if MIN_GRAD_YEAR <= y <= max_year]
    if not years:
        return "", ""
    year = max(years)

    month = ""
    m = re.search(MONTH_BEFORE_YEAR_RE + str(year) + r"\b", text, re.IGNORECASE)
    if m:
        idx = MONTH_ABBREVIATIONS.get(m.group(1)[:3].lower())
        if idx:
            month = calendar.month_name[idx]
    return str(year), month


def _nearest(lines: List[str], center: int, predicate) -> Optional[int]:
    for distance in range(1, PAIRING_DISTANCE + 1):
        for idx in (center - distance, center + distance):
            if 0 <= idx < len(lines) and predicate(lines[idx]):
                return idx
    return None


def _parse_lines(lines: List[str]) -> Education:
    edu = Education()
    degree_idx = next((i for i, ln in enumerate(lines) if has_degree_keyword(ln)), None)
    school_idx = next((i for i, ln in enumerate(lines) if _school_from_line(ln)), None)

    # Pair a lone degree with a school nearby, and vice versa
    if degree_idx is not None and school_idx is None:
        school_idx = _nearest(lines, degree_idx, lambda ln: bool(_school_from_line(ln)))
    if school_idx is not None and degree_idx is None:
        degree_idx = _nearest(lines, school_idx, has_degree_keyword)
    if degree_idx is not None and school_idx is not None and abs(degree_idx - school_idx) > PAIRING_DISTANCE:
        closer = _nearest(lines, degree_idx, lambda ln: bool(_school_from_line(ln)))
        if closer is not None:
            school_idx = closer

    if degree_idx is not None:
        line = strip_bullet(lines[degree_idx])
        edu.degree = extract_degree_from_text(line) or ""
        edu.field = extract_field_of_study_from_degree_line(line, edu.degree or None) or ""

    if school_idx is not None:
        edu.school = _school_from_line(lines[school_idx]) or ""
        for idx in (school_idx, school_idx + 1, school_idx - 1):
            if 0 <= idx < len(lines):
                loc = find_location(lines[idx])
                if loc:
                    city, state, _ = loc
                    if city not in edu.school:
                        edu.location = f"{city}, {state}"
                        break

    edu.grad_year, edu.grad_month = _grad_date("\n".join(lines))
    return edu


def extract_education(full_text: str, section_text: str = "") -> Education:
    """
    Extract education from the education section, falling back to the whole
    text when the section is blank or yields neither a degree nor a school.
    """
    if section_text and section_text.strip():
        edu = _parse_lines(split_lines(section_text))
        if edu.degree or edu.school:
            return edu

    edu = _parse_lines(split_lines(full_text))
    if not (edu.degree or edu.school):
        # A stray year elsewhere in the résumé is not a graduation date
        return Education()
    return edu
