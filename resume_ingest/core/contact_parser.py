"""
Contact extraction: name, email, phone, location, links.

Every lookup tries a few regex variants in order and the first hit wins.
The name is the hard part and falls through four strategies, ending with
the local part of the email address.
"""

import logging
import re
from typing import Callable, List, Optional, Tuple

from resume_ingest.core.schemas import ContactInfo
from resume_ingest.core.section_classifier import header_section
from resume_ingest.core.section_rules import JOB_TITLE_WORDS
from resume_ingest.core.text_normalization import extract_email_flexible, split_lines, title_case_each_word

logger = logging.getLogger(__name__)


# ============================================================================
# Patterns
# ============================================================================

EMAIL_RE = re.compile(r"\b[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}\b", re.IGNORECASE)
# "jane [at] example [dot] com", "jane(at)example(dot)com"
OBFUSCATED_EMAIL_RE = re.compile(
    r"\b([A-Z0-9._%+-]+)\s*[\[(]\s*at\s*[\])]\s*([A-Z0-9-]+(?:\.[A-Z0-9-]+)*)\s*(?:[\[(]\s*dot\s*[\])]|\.)\s*([A-Z]{2,})\b",
    re.IGNORECASE,
)

PHONE_PATTERNS = (
    # NANP with separators: (555) 123-4567, 555.123.4567, +1 555 123 4567
    re.compile(r"(?<![\d])(?:\+?1[\s.-]?)?(?:\(\s*\d{3}\s*\)|\d{3})[\s.-]?\d{3}[\s.-]\d{4}(?![\d])"),
    # International: +44 20 7946 0958, +49-30-1234567
    re.compile(r"(?<![\d])\+\d{1,3}(?:[\s.-]?\(?\d{1,4}\)?){2,5}(?![\d])"),
    # Bare ten digits
    re.compile(r"(?<![\d])\d{10}(?![\d])"),
)

LINKEDIN_RE = re.compile(r"\b(?:https?://)?(?:[a-z]{2,3}\.)?linkedin\.com/(?:in|pub)/[A-Za-z0-9_%.-]+/?", re.IGNORECASE)
URL_RE = re.compile(r"\b(?:https?://|www\.)[^\s,;|)>\]]+", re.IGNORECASE)
BARE_DOMAIN_RE = re.compile(
    r"(?<![@\w.])(?:[a-z0-9-]+\.)+(?:com|io|dev|me|net|org|co|site|tech|app|design)(?:/[^\s,;|)]*)?\b"
)

US_STATES = {
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA", "HI", "ID", "IL", "IN",
    "IA", "KS", "KY", "LA", "ME", "MD", "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV",
    "NH", "NJ", "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC", "SD", "TN",
    "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY", "DC",
}
STATE_NAMES = (
    "Alabama", "Alaska", "Arizona", "Arkansas", "California", "Colorado", "Connecticut",
    "Delaware", "Florida", "Georgia", "Hawaii", "Idaho", "Illinois", "Indiana", "Iowa",
    "Kansas", "Kentucky", "Louisiana", "Maine", "Maryland", "Massachusetts", "Michigan",
    "Minnesota", "Mississippi", "Missouri", "Montana", "Nebraska", "Nevada", "New Hampshire",
    "New Jersey", "New Mexico", "New York", "North Carolina", "North Dakota", "Ohio",
    "Oklahoma", "Oregon", "Pennsylvania", "Rhode Island", "South Carolina", "South Dakota",
    "Tennessee", "Texas", "Utah", "Vermont", "Virginia", "Washington", "West Virginia",
    "Wisconsin", "Wyoming", "District of Columbia", "Puerto Rico",
)

CITY = r"([A-Z][A-Za-z.'-]+(?:\s+[A-Z][A-Za-z.'-]+){0,2})"
CITY_STATE_RE = re.compile(CITY + r",\s*([A-Z]{2})\b\.?(?:\s+(\d{5}(?:-\d{4})?))?")
CITY_STATE_NAME_RE = re.compile(
    CITY + r",\s*(" + "|".join(re.escape(s) for s in STATE_NAMES) + r")\b(?:\s+(\d{5}(?:-\d{4})?))?"
)

CONTACT_MARKER_RE = re.compile(r"@|https?:|www\.|\bresume\b|\bcurriculum\s+vitae\b|\bcv\b|linkedin|github", re.IGNORECASE)
NAME_TOKEN_RE = re.compile(r"^[A-Za-z][A-Za-z.'’-]*$")

NAME_FALLBACK_PATTERNS = (
    re.compile(r"^\s*name\s*[:\-]\s*([A-Za-z][A-Za-z.'-]+(?:\s+[A-Za-z][A-Za-z.'-]+){1,3})", re.IGNORECASE),
    # "Jane Q. Doe | Software Engineer", "Jane Doe - jane@x.com"
    re.compile(r"^([A-Z][a-z]+(?:\s+[A-Z]\.?)?\s+[A-Z][a-zA-Z'-]+)\s*(?:[|,•·–—-]|\s{2,}|$)"),
    # "JANE DOE  SOFTWARE ENGINEER"
    re.compile(r"^([A-Z]{2,}(?:\s+[A-Z]\.?)?\s+[A-Z]{2,}(?:-[A-Z]{2,})?)\b"),
)

GENERIC_EMAIL_LOCALS = {"info", "contact", "admin", "hello", "mail", "email", "resume", "jobs", "careers", "me", "hi"}
TITLE_WORDS = set(JOB_TITLE_WORDS)
NOT_NAME_WORDS = {
    "inc", "llc", "ltd", "corp", "corporation", "co", "company", "group", "technologies",
    "solutions", "systems", "services", "university", "college", "institute", "school",
    "present", "current", "references", "available", "upon", "request", "page",
}


# ============================================================================
# Email / phone
# ============================================================================

def _first_match(lines: List[str], finder: Callable[[str], Optional[str]]) -> str:
    for line in lines:
        value = finder(line)
        if value:
            return value
    return ""


def _find_email(line: str) -> Optional[str]:
    m = EMAIL_RE.search(line)
    if m:
        return m.group(0)
    m = OBFUSCATED_EMAIL_RE.search(line)
    if m:
        return f"{m.group(1)}@{m.group(2)}.{m.group(3)}"
    return extract_email_flexible(line)


def find_phone(line: str) -> Optional[str]:
    # Dates and ZIP+4 codes share digit shapes with phones; drop obvious ranges first
    scrubbed = re.sub(r"\b(19|20)\d{2}\s*[-–—]\s*(19|20)\d{2}\b", " ", line)
    for rx in PHONE_PATTERNS:
        m = rx.search(scrubbed)
        if not m:
            continue
        digits = re.sub(r"\D", "", m.group(0))
        if 10 <= len(digits) <= 15:
            return m.group(0).strip()
    return None


# ============================================================================
# Name
# ============================================================================

def _normalize_name(name: str) -> str:
    """If it's all-caps, convert to Title Case."""
    t = re.sub(r"\s+", " ", name.strip())
    if t.isupper():
        return title_case_each_word(t)
    return t


def _is_rejected_name_line(line: str) -> bool:
    if not line or len(line) > 60:
        return True
    if line[0].isdigit():
        return True
    if CONTACT_MARKER_RE.search(line) or find_phone(line):
        return True
    if header_section(line) is not None:
        return True
    return False


def _tokens_look_like_name(tokens: List[str], *, require_capitals: bool) -> bool:
    if not 2 <= len(tokens) <= 4:
        return False
    for i, tok in enumerate(tokens):
        bare = tok.strip(".,")
        if not NAME_TOKEN_RE.match(bare):
            return False
        if bare.lower() in TITLE_WORDS or bare.lower() in NOT_NAME_WORDS:
            return False
        # Middle initials are the only short tokens allowed
        if len(bare) < 2 and not 0 < i < len(tokens) - 1:
            return False
        if len(bare) > 15:
            return False
        if require_capitals and not bare[0].isupper():
            return False
    return True


def _split_name(full: str) -> Tuple[str, str]:
    parts = _normalize_name(full).split()
    if not parts:
        return "", ""
    if len(parts) == 1:
        return parts[0], ""
    return parts[0], parts[-1]


def _name_from_top_lines(lines: List[str]) -> Optional[str]:
    for line in lines[:15]:
        if _is_rejected_name_line(line):
            continue
        if "," in line:
            continue
        if _tokens_look_like_name(line.split(), require_capitals=True):
            return line
    return None


def _name_from_first_line(lines: List[str]) -> Optional[str]:
    if not lines:
        return None
    tokens = lines[0].split()
    if not 2 <= len(tokens) <= 4:
        return None
    if all(t.isalpha() and 2 <= len(t) <= 15 and t.lower() not in TITLE_WORDS for t in tokens):
        return lines[0]
    return None


def _name_from_patterns(lines: List[str]) -> Optional[str]:
    for rx in NAME_FALLBACK_PATTERNS:
        for line in lines[:5]:
            m = rx.search(line)
            if not m:
                continue
            candidate = m.group(1).strip()
            if header_section(candidate) is None and _tokens_look_like_name(candidate.split(), require_capitals=False):
                return candidate
    return None


def name_from_email(email: str) -> Tuple[str, str]:
    """
    Derive a name from the email local part.

    Examples:
        "jane.doe@example.com" -> ("Jane", "Doe")
        "john_smith42@mail.com" -> ("John", "Smith")
    """
    if not email or "@" not in email:
        return "", ""
    local = email.split("@", 1)[0]
    local = local.split("+", 1)[0]
    pieces = [re.sub(r"\d+", "", p) for p in re.split(r"[._-]+", local)]
    pieces = [p for p in pieces if len(p) >= 2]
    if not pieces or pieces[0].lower() in GENERIC_EMAIL_LOCALS:
        return "", ""
    first = pieces[0].capitalize()
    last = pieces[-1].capitalize() if len(pieces) > 1 else ""
    return first, last


# ============================================================================
# Location / links
# ============================================================================

def find_location(line: str) -> Optional[Tuple[str, str, str]]:
    """(city, state, zip) from a "City, ST 12345" or "City, State" substring."""
    for m in CITY_STATE_RE.finditer(line):
        if m.group(2) in US_STATES:
            return m.group(1), m.group(2), m.group(3) or ""
    m = CITY_STATE_NAME_RE.search(line)
    if m:
        return m.group(1), m.group(2), m.group(3) or ""
    return None


def _find_linkedin(line: str) -> Optional[str]:
    m = LINKEDIN_RE.search(line)
    return m.group(0).rstrip("/.") if m else None


def _find_links(lines: List[str], email: str) -> Tuple[str, str]:
    linkedin = ""
    website = ""
    email_domain = email.split("@", 1)[1].lower() if "@" in email else ""

    for line in lines:
        if not linkedin:
            linkedin = _find_linkedin(line) or ""
        if not website:
            # Blank out emails so their domains don't look like sites
            scrubbed = EMAIL_RE.sub(" ", line)
            for rx in (URL_RE, BARE_DOMAIN_RE):
                for m in rx.finditer(scrubbed):
                    url = m.group(0).rstrip("/.")
                    low = url.lower()
                    if "linkedin.com" in low or (email_domain and low == email_domain):
                        continue
                    website = url
                    break
                if website:
                    break
        if linkedin and website:
            break

    return linkedin, website


# ============================================================================
# Public API
# ============================================================================

def extract_contact(full_text: str, section_text: str = "") -> ContactInfo:
    """
    Extract contact details.

    The contact section is searched first, then the whole document. Name
    detection always looks at the top of the whole document, since the name
    usually sits above any "Contact" header.
    """
    full_lines = split_lines(full_text)
    section_lines = split_lines(section_text) if section_text and section_text.strip() else []
    search_lines = section_lines + full_lines

    email = _first_match(search_lines, _find_email)
    phone = _first_match(search_lines, find_phone)

    first, last = "", ""
    name = (
        _name_from_top_lines(full_lines)
        or _name_from_first_line(full_lines)
        or _name_from_patterns(full_lines)
    )
    if name:
        first, last = _split_name(name)
    elif email:
        first, last = name_from_email(email)
        if first:
            logger.debug("Name derived from email local part")

    city = state = zip_code = ""
    for line in section_lines + full_lines[:15]:
        loc = find_location(line)
        if loc:
            city, state, zip_code = loc
            break

    linkedin, website = _find_links(section_lines + full_lines[:15], email)
    if not linkedin:
        linkedin = _first_match(full_lines, _find_linkedin)

    return ContactInfo(
        first_name=first,
        last_name=last,
        email=email,
        phone=phone,
        city=city,
        state=state,
        zip=zip_code,
        linkedin=linkedin,
        website=website,
    )
