"""
Work-experience extraction.

Entry detection is line-driven. A candidate title line opens an entry, then a
bounded look-ahead collects its dates, employer, location and accomplishment
bullets until the next candidate or section header. When nothing structured
is found, lines are ranked by job/company keyword density instead.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Tuple

from resume_ingest.core.contact_parser import find_location
from resume_ingest.core.date_parser import DateRange, looks_like_date_line, parse_date_range
from resume_ingest.core.schemas import WorkExperience
from resume_ingest.core.section_classifier import header_section
from resume_ingest.core.section_rules import DATE_RANGE_RE, INSTITUTION_RE, JOB_TITLE_RE, MONTH_NAMES_RE
from resume_ingest.core.text_normalization import is_bullet_line, normalize_bullet_text, split_lines

logger = logging.getLogger(__name__)

LOOKAHEAD = 15
MAX_FALLBACK_ENTRIES = 5

ACTION_VERBS = {
    "achieved", "analyzed", "architected", "automated", "built", "collaborated", "conducted",
    "coordinated", "created", "defined", "delivered", "designed", "developed", "directed",
    "drove", "established", "executed", "generated", "grew", "implemented", "improved",
    "increased", "launched", "led", "maintained", "managed", "mentored", "migrated",
    "negotiated", "optimized", "organized", "oversaw", "owned", "partnered", "planned",
    "reduced", "resolved", "shipped", "spearheaded", "streamlined", "supervised",
    "supported", "trained", "wrote",
}

# "Title at Company", "Title | Company", "Title – Company", "Title - Company", "Title, Company"
AT_SPLIT_RE = re.compile(r"^(.+?)\s+(?:at|@)\s+(.+)$", re.IGNORECASE)
DELIM_SPLIT_RES = (
    re.compile(r"^(.+?)\s*[\|–—]\s*(.+)$"),
    re.compile(r"^(.+?)\s+-\s+(.+)$"),
    re.compile(r"^(.+?),\s*(.+)$"),
)
COMPANY_HINT_RE = re.compile(
    r"\b(inc|llc|l\.l\.c|ltd|corp|corporation|co|company|group|technologies|solutions|systems|labs|partners|agency|bank|consulting)\b\.?",
    re.IGNORECASE,
)
REMOTE_RE = re.compile(r"\b(remote|work\s+from\s+home|wfh)\b", re.IGNORECASE)
DATE_STRIP_RE = re.compile(
    r"\(?\s*(?:" + MONTH_NAMES_RE + r"\.?,?\s*)?(?:'?\d{2}\b|(?:19|20)\d{2}|\d{1,2}/\d{2,4})"
    r"(?:\s*(?:[-–—]+|to|until|through)\s*(?:(?:" + MONTH_NAMES_RE + r"\.?,?\s*)?(?:(?:19|20)\d{2}|'?\d{2}\b|\d{1,2}/\d{2,4})|present|current|now|today))?\s*\)?",
    re.IGNORECASE,
)


@dataclass
class _Entry:
    job_title: str = ""
    employer: str = ""
    location: str = ""
    remote: bool = False
    dates: Optional[DateRange] = None
    accomplishments: List[str] = field(default_factory=list)
    structural: bool = False  # opened by the shape heuristic, not a title keyword

    def has_content(self) -> bool:
        return bool(self.job_title or self.employer or self.location or self.accomplishments)

    def to_model(self, id_: int) -> WorkExperience:
        start: Optional[date] = self.dates.start if self.dates else None
        end: Optional[date] = self.dates.end if self.dates else None
        current = bool(self.dates and self.dates.current)
        return WorkExperience(
            id=id_,
            job_title=self.job_title,
            employer=self.employer,
            location=self.location,
            remote=self.remote,
            start_date=start,
            end_date=None if current else end,
            current=current,
            accomplishments="\n".join(self.accomplishments),
        )


# ============================================================================
# Line classification
# ============================================================================

def _clean(text: str) -> str:
    t = re.sub(r"\s+", " ", text).strip()
    return t.strip(" ,;|–—-:").strip()


def _first_word(line: str) -> str:
    m = re.match(r"[A-Za-z]+", line.strip())
    return m.group(0).lower() if m else ""


def is_accomplishment_line(line: str) -> bool:
    return is_bullet_line(line) or _first_word(line) in ACTION_VERBS


def is_title_line(line: str) -> bool:
    """
    Strong candidate: a short line naming a job title, or "X at Y".

    Bullets, sentences, and lines starting with an action verb never qualify.
    """
    t = line.strip()
    if not t or len(t) > 100 or is_bullet_line(t):
        return False
    if _first_word(t) in ACTION_VERBS or t.endswith("."):
        return False
    if looks_like_date_line(t):
        return False
    if JOB_TITLE_RE.search(t) and len(t) <= 80:
        return True
    m = AT_SPLIT_RE.match(t)
    if m and 1 <= len(m.group(1).split()) <= 5 and m.group(1)[:1].isupper() and m.group(2)[:1].isupper():
        return True
    return False


def _is_structural_candidate(lines: List[str], i: int) -> bool:
    """Short capitalized line, not a date or school, with a date range right below it."""
    t = lines[i].strip()
    words = t.split()
    if not 1 <= len(words) <= 6 or len(t) > 60 or any(c.isdigit() for c in t):
        return False
    if is_bullet_line(t) or t.endswith(".") or INSTITUTION_RE.search(t) or find_location(t):
        return False
    if not all(w[:1].isupper() or not w[:1].isalpha() for w in words):
        return False
    return any(parse_date_range(ln) for ln in lines[i + 1:i + 3])


def _looks_like_company(line: str) -> bool:
    t = line.strip()
    if not t or len(t) > 80 or is_bullet_line(t) or t.endswith("."):
        return False
    if looks_like_date_line(t) or _first_word(t) in ACTION_VERBS:
        return False
    if COMPANY_HINT_RE.search(t):
        return True
    words = t.split()
    return len(words) <= 8 and t[:1].isupper()


# ============================================================================
# Parsing one title line
# ============================================================================

def _strip_dates(text: str) -> str:
    return _clean(DATE_STRIP_RE.sub(" ", text))


def _split_title_company(text: str) -> Tuple[str, str]:
    m = AT_SPLIT_RE.match(text)
    if m:
        return _clean(m.group(1)), _clean(m.group(2))
    for rx in DELIM_SPLIT_RES:
        m = rx.match(text)
        if not m:
            continue
        left, right = _clean(m.group(1)), _clean(m.group(2))
        if not left or not right:
            continue
        # "Acme Corp | Senior Engineer" -> title on the right
        if JOB_TITLE_RE.search(right) and not JOB_TITLE_RE.search(left):
            return right, left
        return left, right
    return _clean(text), ""


def _parse_title_line(line: str) -> _Entry:
    entry = _Entry()
    text = line.strip()

    rng = parse_date_range(text)
    if rng is not None:
        entry.dates = rng
        text = _strip_dates(text)

    if REMOTE_RE.search(text):
        entry.remote = True
        entry.location = "Remote"
        text = _clean(REMOTE_RE.sub(" ", text))

    loc = find_location(text)
    if loc and not entry.location:
        city, state, _ = loc
        entry.location = f"{city}, {state}"
        text = _clean(text.replace(f"{city}, {state}", " "))

    entry.job_title, entry.employer = _split_title_company(text)
    return entry


def _absorb_company_line(entry: _Entry, line: str) -> None:
    text = line.strip()
    rng = parse_date_range(text)
    if rng is not None and entry.dates is None:
        entry.dates = rng
    if rng is not None:
        text = _strip_dates(text)
    if REMOTE_RE.search(text):
        entry.remote = True
        entry.location = entry.location or "Remote"
        text = _clean(REMOTE_RE.sub(" ", text))
    loc = find_location(text)
    if loc and not entry.location:
        city, state, _ = loc
        entry.location = f"{city}, {state}"
        text = text.replace(f"{city}, {state}", " ")
    entry.employer = _clean(text.split("|")[0])


# ============================================================================
# Extraction
# ============================================================================

def _scan_entries(lines: List[str]) -> List[_Entry]:
    entries: List[_Entry] = []
    i = 0

    while i < len(lines):
        line = lines[i]
        strong = is_title_line(line)
        if not strong and not _is_structural_candidate(lines, i):
            i += 1
            continue
        if header_section(line) is not None:
            i += 1
            continue

        entry = _parse_title_line(line)
        entry.structural = not strong
        seen_body = False
        j = i + 1

        while j < len(lines):
            nxt = lines[j]
            if header_section(nxt) is not None:
                break

            if is_accomplishment_line(nxt):
                entry.accomplishments.append(normalize_bullet_text(nxt))
                seen_body = True
                j += 1
                continue

            if j - i > LOOKAHEAD:
                break

            if is_title_line(nxt):
                # "Acme Corp" then "Senior Engineer": the first line was the employer
                if entry.structural and not entry.employer and entry.dates is None and not entry.accomplishments:
                    employer = entry.job_title
                    merged = _parse_title_line(nxt)
                    merged.employer = merged.employer or employer
                    merged.location = merged.location or entry.location
                    entry = merged
                    j += 1
                    continue
                break

            if entry.dates is None and not seen_body and parse_date_range(nxt):
                if looks_like_date_line(nxt):
                    entry.dates = parse_date_range(nxt)
                    rest = _strip_dates(nxt)
                    if rest and REMOTE_RE.search(rest):
                        entry.remote = True
                        entry.location = entry.location or "Remote"
                    elif rest and find_location(rest) and not entry.location:
                        city, state, _ = find_location(rest)
                        entry.location = f"{city}, {state}"
                elif not entry.employer:
                    _absorb_company_line(entry, nxt)
                    seen_body = True
                j += 1
                continue

            if REMOTE_RE.fullmatch(nxt.strip()):
                entry.remote = True
                entry.location = entry.location or "Remote"
                j += 1
                continue

            if not entry.location and find_location(nxt) and len(nxt) <= 40:
                city, state, _ = find_location(nxt)
                entry.location = f"{city}, {state}"
                j += 1
                continue

            if not entry.employer and _looks_like_company(nxt):
                _absorb_company_line(entry, nxt)
                seen_body = True
                j += 1
                continue

            if entry.accomplishments and nxt[:1].islower():
                # Wrapped bullet
                entry.accomplishments[-1] = f"{entry.accomplishments[-1]} {nxt.strip()}"
                j += 1
                continue

            if entry.employer and entry.dates is not None and _is_structural_candidate(lines, j):
                break

            j += 1

        if REMOTE_RE.search(" ".join(lines[i:j])):
            entry.remote = True

        if entry.has_content():
            entries.append(entry)
        i = max(j, i + 1)

    return entries


def _fallback_entries(lines: List[str]) -> List[_Entry]:
    """Rank lines by job/company keyword density plus a nearby-date bonus."""
    scored: List[Tuple[float, int]] = []
    for i, line in enumerate(lines):
        if len(line) > 100 or is_bullet_line(line) or header_section(line) is not None:
            continue
        score = 2.0 * len(JOB_TITLE_RE.findall(line)) + 1.0 * len(COMPANY_HINT_RE.findall(line))
        if score == 0:
            continue
        window = " ".join(lines[max(0, i - 2):i + 3])
        if DATE_RANGE_RE.search(window):
            score += 2.0
        scored.append((score, i))

    top = sorted(scored, key=lambda s: (-s[0], s[1]))[:MAX_FALLBACK_ENTRIES]
    entries: List[_Entry] = []
    for _, i in sorted(top, key=lambda s: s[1]):
        entry = _parse_title_line(lines[i])
        if entry.dates is None:
            for ln in lines[i + 1:i + 3]:
                rng = parse_date_range(ln)
                if rng is not None:
                    entry.dates = rng
                    break
        entries.append(entry)
    return entries


def extract_work_experience(full_text: str, section_text: str = "") -> List[WorkExperience]:
    """
    Extract work-experience entries.

    Scans the experience section, or the whole text when the section is
    blank. Never returns an empty list: when nothing is found the result is
    a single all-empty placeholder.
    """
    source = section_text if section_text and section_text.strip() else full_text
    lines = split_lines(source)

    entries = _scan_entries(lines)
    if not entries:
        entries = _fallback_entries(lines)
        if entries:
            logger.debug("Experience keyword fallback produced %d entries", len(entries))

    entries = [e for e in entries if e.has_content()]
    if not entries:
        return [WorkExperience(id=1)]

    return [e.to_model(i) for i, e in enumerate(entries, start=1)]
