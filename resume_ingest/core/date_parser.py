"""
Date and date-range parsing for résumé lines.

Dates resolve to the first day of their month (January for a bare year).
Anything unparseable yields None; nothing here raises on bad input.

Examples:
    "Jan 2020 - Present"     -> 2020-01-01 .. None, current
    "2018 – 2021"            -> 2018-01-01 .. 2021-01-01
    "03/2019 to 11/2020"     -> 2019-03-01 .. 2020-11-01
    "Sept '19 - Jun '21"     -> 2019-09-01 .. 2021-06-01
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

MONTHS = {
    "jan": 1, "january": 1,
    "feb": 2, "february": 2,
    "mar": 3, "march": 3,
    "apr": 4, "april": 4,
    "may": 5,
    "jun": 6, "june": 6,
    "jul": 7, "july": 7,
    "aug": 8, "august": 8,
    "sep": 9, "sept": 9, "september": 9,
    "oct": 10, "october": 10,
    "nov": 11, "november": 11,
    "dec": 12, "december": 12,
}

YEAR_PIVOT = 50

_MONTH = r"(jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|aug(?:ust)?|sept?(?:ember)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)\.?"
_YEAR = r"((?:19|20)\d{2}|'?\d{2})"
_SEP = r"\s*(?:-+|–|—|to|until|through|thru)\s*"
_NOW = r"(present|current|now|today|date)"

CURRENT_RE = re.compile(r"\b(present|current|now|today|to\s+date)\b", re.IGNORECASE)

MONTH_YEAR_RANGE_RE = re.compile(
    r"\b" + _MONTH + r",?\s*" + _YEAR + r"\b" + _SEP + r"(?:\b" + _MONTH + r",?\s*" + _YEAR + r"\b|\b" + _NOW + r"\b|\b((?:19|20)\d{2})\b)",
    re.IGNORECASE,
)
YEAR_RANGE_RE = re.compile(
    r"\b((?:19|20)\d{2})\b" + _SEP + r"\b((?:19|20)\d{2}|present|current|now|today)\b",
    re.IGNORECASE,
)
NUMERIC_RANGE_RE = re.compile(
    r"\b(\d{1,2})/(\d{4}|\d{2})\b" + _SEP + r"(?:\b(\d{1,2})/(\d{4}|\d{2})\b|\b" + _NOW + r"\b)",
    re.IGNORECASE,
)

MONTH_YEAR_TOKEN_RE = re.compile(r"\b" + _MONTH + r",?\s*" + _YEAR + r"\b", re.IGNORECASE)
NUMERIC_TOKEN_RE = re.compile(r"\b(\d{1,2})/(\d{4}|\d{2})\b")
ISO_TOKEN_RE = re.compile(r"\b((?:19|20)\d{2})-(\d{2})\b")
YEAR_TOKEN_RE = re.compile(r"\b((?:19|20)\d{2})\b")


@dataclass(frozen=True)
class DateRange:
    start: Optional[date]
    end: Optional[date]
    current: bool = False


def month_index(name: str) -> Optional[int]:
    """1-based month number for a month name or abbreviation, case-insensitive."""
    if not name:
        return None
    return MONTHS.get(name.strip().rstrip(".").lower())


def expand_year(value: str) -> Optional[int]:
    """
    Normalize a year token. Two-digit years pivot at 50:
    "19" -> 2019, "87" -> 1987, "'05" -> 2005.
    """
    v = (value or "").strip().lstrip("'")
    if not v.isdigit():
        return None
    n = int(v)
    if len(v) == 2:
        return 2000 + n if n < YEAR_PIVOT else 1900 + n
    if len(v) == 4 and 1900 <= n <= 2100:
        return n
    return None


def _make_date(year: Optional[int], month: Optional[int] = 1) -> Optional[date]:
    if year is None or month is None or not 1 <= month <= 12:
        return None
    return date(year, month, 1)


def _month_year(month: str, year: str) -> Optional[date]:
    return _make_date(expand_year(year), month_index(month))


def _numeric(month: str, year: str) -> Optional[date]:
    return _make_date(expand_year(year), int(month))


def parse_date(text: str) -> Optional[date]:
    """Parse one date token: "Jan 2020", "03/2019", "2019-03", "2019"."""
    if not text:
        return None
    t = text.strip()
    for rx, build in (
        (MONTH_YEAR_TOKEN_RE, lambda m: _month_year(m.group(1), m.group(2))),
        (NUMERIC_TOKEN_RE, lambda m: _numeric(m.group(1), m.group(2))),
        (ISO_TOKEN_RE, lambda m: _make_date(int(m.group(1)), int(m.group(2)))),
        (YEAR_TOKEN_RE, lambda m: _make_date(int(m.group(1)))),
    ):
        m = rx.search(t)
        if m:
            d = build(m)
            if d is not None:
                return d
    return None


def _collect_dates(text: str) -> List[date]:
    found: List[date] = []
    consumed = list(text)

    def _blank(m: re.Match) -> None:
        for i in range(m.start(), m.end()):
            consumed[i] = " "

    for m in MONTH_YEAR_TOKEN_RE.finditer(text):
        d = _month_year(m.group(1), m.group(2))
        if d:
            found.append(d)
            _blank(m)
    for m in NUMERIC_TOKEN_RE.finditer(text):
        d = _numeric(m.group(1), m.group(2))
        if d:
            found.append(d)
            _blank(m)
    for m in ISO_TOKEN_RE.finditer(text):
        month = int(m.group(2))
        d = _make_date(int(m.group(1)), month)
        if d:
            found.append(d)
            _blank(m)

    # Bare years last, skipping those already part of a richer token
    rest = "".join(consumed)
    for m in YEAR_TOKEN_RE.finditer(rest):
        d = _make_date(int(m.group(1)))
        if d:
            found.append(d)

    return sorted(found)


def parse_date_range(text: str) -> Optional[DateRange]:
    """
    Parse a start/end date range out of a line.

    Tries month-year ranges, year ranges, and MM/YYYY ranges in that order,
    then falls back to every date-like token in the line (earliest is start,
    latest is end). Returns None if the line holds no date at all.
    """
    if not text:
        return None

    current = bool(CURRENT_RE.search(text))
    start: Optional[date] = None
    end: Optional[date] = None

    m = MONTH_YEAR_RANGE_RE.search(text)
    if m:
        start = _month_year(m.group(1), m.group(2))
        if m.group(3) and m.group(4):
            end = _month_year(m.group(3), m.group(4))
        elif m.group(5):
            current = True
        elif m.group(6):
            # "Mar 2020 - 2022"
            end = _make_date(int(m.group(6)))

    if start is None:
        m = YEAR_RANGE_RE.search(text)
        if m:
            start = _make_date(int(m.group(1)))
            second = m.group(2)
            if second.isdigit():
                end = _make_date(int(second))
            else:
                current = True

    if start is None:
        m = NUMERIC_RANGE_RE.search(text)
        if m:
            start = _numeric(m.group(1), m.group(2))
            if m.group(3) and m.group(4):
                end = _numeric(m.group(3), m.group(4))
            elif m.group(5):
                current = True

    if start is None:
        dates = _collect_dates(text)
        if not dates:
            return None
        start = dates[0]
        end = dates[-1] if len(dates) > 1 else None

    if current:
        end = None
    return DateRange(start=start, end=end, current=current)


def looks_like_date_line(text: str) -> bool:
    """A short line that is mostly a date or date range."""
    t = (text or "").strip()
    if not t or len(t) > 60:
        return False
    rng = parse_date_range(t)
    if rng is None:
        return False
    letters = re.sub(r"(?i)\b(present|current|now|today|to|until|through|thru)\b", "", t)
    letters = MONTH_YEAR_TOKEN_RE.sub("", letters)
    letters = re.sub(r"[^A-Za-z]", "", letters)
    return len(letters) <= 3
