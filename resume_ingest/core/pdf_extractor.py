"""
Native PDF text-layer reader.

pdfplumber decides where one word ends and the next begins from the gap
between characters, and résumé templates are wildly inconsistent about
letter spacing: the same x_tolerance that keeps "Senior Engineer" apart on
one page glues "SeniorSoftwareEngineerAtAcme" together on another, or shreds
a spaced-out heading into single letters. Each page is therefore read at
every configured tolerance and the reading with the fewest artifacts is kept.
"""

import logging
import re
from io import BytesIO
from itertools import groupby
from typing import Callable, List, NamedTuple, Optional

import pdfplumber

from resume_ingest.core.config import ParserSettings, get_settings

logger = logging.getLogger(__name__)

PageCallback = Callable[[int, int], None]

GLUED_TOKEN_PENALTY = 10
EXTRA_SINGLE_LETTER_PENALTY = 3
ALPHA_TOKEN_RE = re.compile(r"[A-Za-z]+")


class PdfPage(NamedTuple):
    text: str
    x_tolerance: float
    artifacts: int


def respace_line(text: str) -> str:
    """
    Put back spaces the text layer lost at obvious boundaries.

    - "NewYork,NewYork" -> "New York, New York"
    - "January2024" -> "January 2024"
    - "ACME:ENGINEER" -> "ACME: ENGINEER"

    Short alphanumerics like "S3" or "Python3" are left alone.
    """
    t = re.sub(r"([a-z])([A-Z])", r"\1 \2", text)
    t = re.sub(r"([a-zA-Z]{3,})(\d{4})\b", r"\1 \2", t)
    t = re.sub(r"\b(\d{4})([a-zA-Z]{3,})", r"\1 \2", t)
    t = re.sub(r"([:,])([A-Z])", r"\1 \2", t)
    return re.sub(r"[ \t]+", " ", t).strip()


def count_artifacts(text: str, glued_length: int = 18, single_letter_allowance: int = 10) -> Optional[int]:
    """
    Weighted count of extraction artifacts in one page reading; lower is better.

    Alphabetic tokens of glued_length or more are words run together. Single
    letters beyond single_letter_allowance are a word split into pieces
    ("a", "I" and initials account for the allowance). None means the reading
    has no letters at all and cannot be judged.
    """
    tokens = ALPHA_TOKEN_RE.findall(text)
    if not tokens:
        return None
    glued = sum(1 for t in tokens if len(t) >= glued_length)
    singles = sum(1 for t in tokens if len(t) == 1)
    return GLUED_TOKEN_PENALTY * glued + EXTRA_SINGLE_LETTER_PENALTY * max(0, singles - single_letter_allowance)


def read_lines(page, x_tolerance: float, line_tolerance: float) -> List[str]:
    """Word-level reading of one page: words sharing a rounded top form a line, left to right."""
    words = page.extract_words(
        x_tolerance=x_tolerance,
        y_tolerance=2,
        keep_blank_chars=False,
        use_text_flow=True,
    )

    def row(w) -> int:
        return round(w["top"] / line_tolerance)

    ordered = sorted(words, key=lambda w: (row(w), w["x0"]))
    return [" ".join(w["text"] for w in group) for _, group in groupby(ordered, key=row)]


def read_page(page, settings: ParserSettings) -> PdfPage:
    best: Optional[PdfPage] = None
    best_lines: List[str] = []

    for x_tolerance in settings.pdf_x_tolerances:
        lines = read_lines(page, x_tolerance, settings.pdf_line_tolerance)
        artifacts = count_artifacts(
            "\n".join(lines), settings.pdf_glued_token_length, settings.pdf_single_letter_allowance
        )
        if artifacts is None:
            continue
        if best is None or artifacts < best.artifacts:
            best = PdfPage("", x_tolerance, artifacts)
            best_lines = lines

    if best is None:
        # No letters at any tolerance: an image-only page
        return PdfPage("", 0.0, 0)

    text = "\n".join(respace_line(ln) for ln in best_lines if ln.strip())
    return best._replace(text=text)


def extract_pdf_pages(
    pdf_bytes: bytes,
    settings: Optional[ParserSettings] = None,
    on_page: Optional[PageCallback] = None,
) -> List[PdfPage]:
    """
    Read the text layer of every page.

    Image-only pages come back with empty text, which is how the orchestrator
    notices a scanned document. on_page(page_number, page_count) is called
    after each page.
    """
    settings = settings or get_settings()
    pages: List[PdfPage] = []

    with pdfplumber.open(BytesIO(pdf_bytes)) as pdf:
        total = len(pdf.pages)
        for number, page in enumerate(pdf.pages, start=1):
            result = read_page(page, settings)
            logger.debug(
                "PDF page %d/%d: %d chars (x_tolerance=%s, artifacts=%d)",
                number, total, len(result.text), result.x_tolerance, result.artifacts,
            )
            pages.append(result)
            if on_page is not None:
                on_page(number, total)

    return pages
