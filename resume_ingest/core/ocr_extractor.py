"""
OCR extraction: rasterize pages or images and run Tesseract over them.

Sources are PDF pages (rendered by pdfplumber), standalone images (every
frame of a multi-frame TIFF), or images embedded in a DOCX package. Each page
is recognized independently; a page that fails is logged and skipped, and the
run only fails when no page produced anything.

A page goes through the primary Tesseract config first and through the
fallback configs only while no pass has reached ocr_good_confidence; the most
confident pass wins. Confidence is the mean per-word score Tesseract reports.
"""

import logging
import re
from io import BytesIO
from typing import Callable, Dict, Iterable, Iterator, List, NamedTuple, Optional, Tuple

import pdfplumber
import pytesseract
from PIL import Image, ImageOps, ImageSequence

from resume_ingest.core.config import ParserSettings

logger = logging.getLogger(__name__)

PageCallback = Callable[[int, int], None]


class OcrFailedError(RuntimeError):
    """Every page failed recognition (or there were no pages at all)."""


# ============================================================================
# Cleanup
# ============================================================================

ORDINAL_SUFFIX_RE = re.compile(r"(\d)(st|nd|rd|th)\b", re.IGNORECASE)


def clean_ocr_text(text: str, aggressive: bool = False) -> str:
    """
    Clean common OCR artifacts.

    - "|" is almost always a misread capital I
    - spaces go back in at lower/upper and letter/digit boundaries
    - runs of spaces and blank lines collapse

    With aggressive=True, every "0" becomes "O" and every "1" becomes "l".
    That fixes "J0HN" but breaks phone numbers and years, so it is opt-in.
    """
    if not text:
        return ""

    t = text.replace("\r\n", "\n").replace("\r", "\n")
    t = t.replace("|", "I")

    if aggressive:
        t = t.replace("0", "O").replace("1", "l")

    t = re.sub(r"([a-z])([A-Z])", r"\1 \2", t)
    t = re.sub(r"([A-Za-z])(\d)", r"\1 \2", t)
    # "2021Present" -> "2021 Present", leaving "1st" / "3rd" intact
    t = re.sub(r"(\d)([A-Za-z])", lambda m: m.group(0) if ORDINAL_SUFFIX_RE.match(t, m.start()) else f"{m.group(1)} {m.group(2)}", t)

    lines = [re.sub(r"[ \t]+", " ", ln).strip() for ln in t.split("\n")]
    out: List[str] = []
    for ln in lines:
        if not ln and (not out or not out[-1]):
            continue
        out.append(ln)
    return "\n".join(out).strip()


# ============================================================================
# Recognition
# ============================================================================

class Recognition(NamedTuple):
    """One Tesseract pass over one image."""
    text: str
    confidence: float  # mean word confidence, 0-100
    words: int
    config: str = ""


class OcrResult(NamedTuple):
    text: str
    confidence: float  # word-weighted mean over recognized pages, 0-100
    pages: Tuple[Recognition, ...] = ()


def _preprocess_image(image: Image.Image) -> Image.Image:
    """Greyscale and stretch contrast; Tesseract does better on clean grey input."""
    if image.mode != "L":
        image = image.convert("L")
    return ImageOps.autocontrast(image)


def recognition_from_data(data: Dict[str, list], config: str = "") -> Recognition:
    """
    Rebuild text and mean word confidence from pytesseract.image_to_data output.

    Only word-level boxes carry text; block, paragraph and line boxes report a
    confidence of -1 and are skipped. Words are regrouped into lines by their
    (block, paragraph, line) numbers, which Tesseract emits in reading order.
    """
    lines: Dict[Tuple[int, int, int], List[str]] = {}
    confidences: List[float] = []

    for i, word in enumerate(data.get("text", [])):
        word = (word or "").strip()
        conf = float(data["conf"][i])
        if not word or conf < 0:
            continue
        key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
        lines.setdefault(key, []).append(word)
        confidences.append(conf)

    text = "\n".join(" ".join(words) for words in lines.values())
    mean = sum(confidences) / len(confidences) if confidences else 0.0
    return Recognition(text=text, confidence=round(mean, 1), words=len(confidences), config=config)


def recognize_image(image: Image.Image, settings: ParserSettings, config: str) -> Recognition:
    processed = _preprocess_image(image)
    try:
        data = pytesseract.image_to_data(
            processed,
            lang=settings.ocr_language,
            config=config,
            output_type=pytesseract.Output.DICT,
        )
    finally:
        if processed is not image:
            processed.close()
    return recognition_from_data(data, config)


def recognize_best(image: Image.Image, settings: ParserSettings) -> Recognition:
    """
    Run the primary config, then the fallbacks, keeping the most confident pass.

    Stops as soon as a pass reaches ocr_good_confidence. Raises the last error
    only if every config failed.
    """
    best: Optional[Recognition] = None
    last_error: Optional[Exception] = None

    for config in (settings.ocr_config, *settings.ocr_fallback_configs):
        try:
            candidate = recognize_image(image, settings, config)
        except Exception as e:
            logger.warning("OCR config %r failed: %s", config, e)
            last_error = e
            continue
        logger.debug("OCR config %r: %d words at %.1f%%", config, candidate.words, candidate.confidence)
        if best is None or candidate.confidence > best.confidence:
            best = candidate
        if best.confidence >= settings.ocr_good_confidence:
            break

    if best is None:
        raise last_error or OcrFailedError("No OCR config configured")
    return best


def _run_pages(
    pages: Iterable[Tuple[int, Image.Image]],
    total: int,
    settings: ParserSettings,
    on_page: Optional[PageCallback],
) -> OcrResult:
    recognized: List[Recognition] = []

    for page_no, image in pages:
        try:
            page = recognize_best(image, settings)
        except Exception as e:
            logger.warning("OCR failed on page %d/%d: %s", page_no, total, e)
            page = None
        finally:
            image.close()

        if page is not None:
            recognized.append(page)
            logger.debug("OCR page %d/%d: %d chars at %.1f%%", page_no, total, len(page.text.strip()), page.confidence)
        if on_page is not None:
            on_page(page_no, total)

    if not recognized:
        raise OcrFailedError(f"OCR produced no output (0/{total} pages recognized)")

    words = sum(p.words for p in recognized)
    confidence = sum(p.confidence * p.words for p in recognized) / words if words else 0.0
    text = clean_ocr_text(
        "\n".join(p.text.strip() for p in recognized if p.text.strip()),
        settings.ocr_aggressive_substitutions,
    )
    return OcrResult(text=text, confidence=round(confidence, 1), pages=tuple(recognized))


def _rasterize_pdf(pdf, scale: float) -> Iterator[Tuple[int, Image.Image]]:
    resolution = int(72 * scale)
    for page_i, page in enumerate(pdf.pages, start=1):
        try:
            image = page.to_image(resolution=resolution).original.copy()
        except Exception as e:
            logger.warning("Could not rasterize PDF page %d: %s", page_i, e)
            continue
        yield page_i, image


def ocr_pdf(pdf_bytes: bytes, settings: ParserSettings, on_page: Optional[PageCallback] = None) -> OcrResult:
    with pdfplumber.open(BytesIO(pdf_bytes)) as pdf:
        total = len(pdf.pages)
        return _run_pages(_rasterize_pdf(pdf, settings.ocr_scale), total, settings, on_page)


def _image_frames(image_bytes: bytes) -> List[Image.Image]:
    with Image.open(BytesIO(image_bytes)) as img:
        # Copy each frame so the source file can be closed
        return [frame.copy() for frame in ImageSequence.Iterator(img)]


def ocr_image(image_bytes: bytes, settings: ParserSettings, on_page: Optional[PageCallback] = None) -> OcrResult:
    frames = _image_frames(image_bytes)
    return _run_pages(enumerate(frames, start=1), len(frames), settings, on_page)


def ocr_images(blobs: List[bytes], settings: ParserSettings, on_page: Optional[PageCallback] = None) -> OcrResult:
    """OCR a list of image blobs (e.g. pictures embedded in a DOCX) as pages."""
    frames: List[Image.Image] = []
    for i, blob in enumerate(blobs, start=1):
        try:
            frames.extend(_image_frames(blob))
        except OSError as e:
            logger.warning("Skipping unreadable embedded image %d: %s", i, e)
    return _run_pages(enumerate(frames, start=1), len(frames), settings, on_page)
