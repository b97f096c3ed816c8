"""
Text normalization utilities shared by the classifier and the entity extractors.

Handles line splitting, bullet glyphs, and email recovery from extraction
artifacts (spaces around '@' or '.', phone digits glued to the user part).
"""

import re
from typing import List, Optional


# ============================================================================
# Lines and whitespace
# ============================================================================

BULLET_GLYPHS = "•●○◦▪▫■□►▸‣⁃·∙*-–—>+"
BULLET_RE = re.compile(r"^\s*[•●○◦▪▫■□►▸‣⁃·∙*\-–—>+]+\s*")
# Strict form used for "looks like a bullet": glyph followed by whitespace
BULLET_LINE_RE = re.compile(r"^\s*[•●○◦▪▫■□►▸‣⁃·∙*\-–—>+]\s+\S")


def split_lines(text: str) -> List[str]:
    """
    Normalize line endings, expand tabs, and return trimmed non-empty lines.

    This is the single line model used everywhere, so line indices reported
    by the classifier line up with what the extractors see.
    """
    if not text:
        return []
    t = text.replace("\r\n", "\n").replace("\r", "\n").replace("\t", " ")
    return [ln.strip() for ln in t.split("\n") if ln.strip()]


def collapse_spaces(text: str) -> str:
    return re.sub(r"[  ]+", " ", text).strip()


def is_bullet_line(text: str) -> bool:
    return bool(BULLET_LINE_RE.match(text))


def strip_bullet(text: str) -> str:
    return BULLET_RE.sub("", text).strip()


def normalize_bullet_text(text: str, prefix: str = "• ") -> str:
    """
    Return a bullet line with a single normalized prefix.

    Examples:
    - "- Led a team" -> "• Led a team"
    - "●  Shipped v2" -> "• Shipped v2"
    - "Improved latency" -> "• Improved latency"
    """
    body = collapse_spaces(strip_bullet(text))
    return f"{prefix}{body}" if body else ""


# ============================================================================
# Email recovery
# ============================================================================

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
EMAIL_FLEX_RE = re.compile(r"([^\s@]+(?:\s+[^\s@]+)*)\s*(@)\s*([^\s@]+(?:\s+[^\s@]+)*)\s*\.\s*([A-Za-z]{2,})")


def extract_email_flexible(text: str) -> Optional[str]:
    """
    Extract email from text, handling accidental spaces around @, ., and within user/domain.

    Examples:
    - "annaford0719@gmail.com" → "annaford0719@gmail.com"
    - "annaford0719 @ gmail . com" → "annaford0719@gmail.com"

    REJECTS phone+email concatenations:
    - "(856)366-5713k.o.harbaugh@gmail.com" → None (user part looks like phone)
    """
    if not text:
        return None

    def _user_looks_like_phone(user: str) -> bool:
        digit_count = sum(1 for c in user if c.isdigit())
        has_parens = "(" in user or ")" in user
        has_plus = user.startswith("+")
        has_digits_and_hyphens = digit_count >= 7 and "-" in user
        return has_parens or has_plus or has_digits_and_hyphens

    m = EMAIL_FLEX_RE.search(text)
    if m:
        # Only the token touching '@' belongs to the user part
        user = m.group(1).split()[-1]
        domain = m.group(3).replace(" ", "")
        tld = m.group(4)
        if not _user_looks_like_phone(user) and re.fullmatch(r"[A-Za-z0-9._%+-]+", user):
            return f"{user}@{domain}.{tld}"

    m2 = re.search(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}", text)
    if m2:
        user = m2.group(0).split("@")[0]
        if not _user_looks_like_phone(user):
            return m2.group(0)

    return None


def title_case_each_word(text: str) -> str:
    """
    Lowercase everything then uppercase the first letter of each word.
    Works better than str.title() for apostrophes ("O'NEIL" -> "O'neil" vs "O'Neil").
    """
    words = text.split()
    return " ".join(w[0].upper() + w[1:].lower() if w else "" for w in words)
