"""
Extraction Orchestrator.

Turns an UploadedDocument into a single best ExtractionResult:

1. validate (empty, too large, not allow-listed) before any extractor runs
2. route by sniffed type to the native extractor
3. escalate to OCR when native output is too short or the extractor failed
4. keep whichever output is strictly longer, OCR only if it clears its own floor

The ladder only moves forward: native -> OCR -> exhausted.
"""

import logging
import time
from typing import Callable, List, Optional, Tuple, TypeVar

from resume_ingest.core.confidence_calculator import ConfidenceCalculator
from resume_ingest.core.config import ParserSettings, get_settings
from resume_ingest.core.docx_extractor import extract_docx_images, extract_docx_text
from resume_ingest.core.errors import (
    EmptyFileError,
    ExtractionExhaustedError,
    FileTooLargeError,
    UnsupportedFormatError,
)
from resume_ingest.core.ocr_extractor import OcrResult, ocr_image, ocr_images, ocr_pdf
from resume_ingest.core.pdf_extractor import extract_pdf_pages
from resume_ingest.core.schemas import (
    ExtractionResult,
    ExtractionStrategy,
    ParseDiagnostics,
    Provenance,
    StrategyAttempt,
    UploadedDocument,
)
from resume_ingest.core.sniffing import DocumentKind, is_allowed, sniff_document
from resume_ingest.core.text_extractor import decode_text

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]
T = TypeVar("T")

TRANSIENT_ERRORS = (OSError, TimeoutError)


class _Progress:
    """Wraps an optional caller callback; a failing callback never breaks extraction."""

    def __init__(self, callback: Optional[ProgressCallback]):
        self._callback = callback

    def __call__(self, done: int, total: int, label: str) -> None:
        if self._callback is None:
            return
        try:
            self._callback(done, total, label)
        except Exception as e:
            logger.warning("Progress callback raised, ignoring: %s", e)


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


def _run_with_retry(
    strategy: ExtractionStrategy,
    fn: Callable[[], T],
    settings: ParserSettings,
) -> Tuple[Optional[T], StrategyAttempt]:
    """
    Run one extraction strategy.

    Transient I/O errors are retried with linear backoff; anything else fails
    the strategy immediately. Failures are recorded on the attempt, never raised.
    """
    start = time.perf_counter()
    max_tries = 1 + max(0, settings.retry_attempts)
    tries = 0
    last_error = ""

    while tries < max_tries:
        tries += 1
        try:
            value = fn()
            return value, StrategyAttempt(
                strategy=strategy, outcome="success", attempts=tries, elapsed_ms=_elapsed_ms(start)
            )
        except TRANSIENT_ERRORS as e:
            last_error = f"{type(e).__name__}: {e}"
            logger.warning("%s attempt %d/%d failed: %s", strategy.value, tries, max_tries, last_error)
            if tries < max_tries and settings.retry_backoff_seconds > 0:
                time.sleep(settings.retry_backoff_seconds * tries)
        except Exception as e:
            last_error = f"{type(e).__name__}: {e}"
            logger.warning("%s failed: %s", strategy.value, last_error, exc_info=True)
            break

    return None, StrategyAttempt(
        strategy=strategy, outcome="failed", attempts=tries, elapsed_ms=_elapsed_ms(start), error=last_error
    )


def _diagnostics(document: UploadedDocument, attempts: List[StrategyAttempt], start: float) -> ParseDiagnostics:
    return ParseDiagnostics(
        file_name=document.file_name,
        media_type=document.media_type,
        strategies_tried=[a.model_copy() for a in attempts],
        char_counts={a.strategy.value: a.char_count for a in attempts if a.outcome != "skipped"},
        elapsed_ms=_elapsed_ms(start),
    )


def validate_document(document: UploadedDocument, settings: ParserSettings) -> None:
    if not document.content or document.size == 0:
        raise EmptyFileError(f"{document.file_name or 'upload'} is empty (0 bytes)")

    size = max(document.size, len(document.content))
    if size > settings.max_file_size:
        limit_mb = settings.max_file_size / (1024 * 1024)
        raise FileTooLargeError(
            f"{document.file_name or 'upload'} is {size} bytes; limit is {settings.max_file_size}",
            user_message=f"The file is too large to process. Maximum size is {limit_mb:.0f} MB.",
        )

    if not is_allowed(document, settings):
        raise UnsupportedFormatError(
            f"Unsupported file type: media_type={document.media_type!r} extension={document.extension!r}"
        )


def _native_strategy(kind: DocumentKind) -> Optional[ExtractionStrategy]:
    if kind == DocumentKind.PDF:
        return ExtractionStrategy.NATIVE_PDF
    if kind == DocumentKind.DOCX:
        return ExtractionStrategy.DOCX_MARKUP
    if kind in (DocumentKind.TEXT, DocumentKind.RTF, DocumentKind.LEGACY_DOC):
        return ExtractionStrategy.RAW_TEXT
    return None


def extract_document(
    document: UploadedDocument,
    progress: Optional[ProgressCallback] = None,
    settings: Optional[ParserSettings] = None,
) -> ExtractionResult:
    """
    Extract the best plain text from an uploaded document.

    Raises EmptyFileError, FileTooLargeError, UnsupportedFormatError before
    any extractor runs, and ExtractionExhaustedError when no strategy produced
    at least min_ocr_text_length characters. Plain text is never exhausted.
    """
    settings = settings or get_settings()
    report = _Progress(progress)
    start = time.perf_counter()

    report(0, 1, "Validating file")
    validate_document(document, settings)

    kind = sniff_document(document)
    logger.debug("Sniffed %r as %s", document.file_name, kind.value)
    if kind == DocumentKind.UNKNOWN:
        raise UnsupportedFormatError(f"Could not determine the type of {document.file_name or 'upload'}")

    attempts: List[StrategyAttempt] = []
    page_count = 0
    content = document.content

    # ---- Native ----------------------------------------------------------
    native_strategy = _native_strategy(kind)
    native_text = ""
    native_failed = False

    if native_strategy == ExtractionStrategy.NATIVE_PDF:
        def on_pdf_page(i: int, n: int) -> None:
            report(i, n, f"Extracting text (page {i} of {n})")

        pages, attempt = _run_with_retry(
            native_strategy, lambda: extract_pdf_pages(content, settings, on_pdf_page), settings
        )
        if pages is not None:
            page_count = len(pages)
            native_text = "\n".join(p.text for p in pages if p.text.strip())
            attempt.notes = [
                f"page {i}: x_tolerance={p.x_tolerance:g}, artifacts={p.artifacts}"
                for i, p in enumerate(pages, start=1)
            ]
    elif native_strategy == ExtractionStrategy.DOCX_MARKUP:
        report(0, 1, "Reading document")
        text, attempt = _run_with_retry(native_strategy, lambda: extract_docx_text(content), settings)
        native_text = text or ""
    elif native_strategy == ExtractionStrategy.RAW_TEXT:
        report(0, 1, "Decoding text")
        text, attempt = _run_with_retry(
            native_strategy,
            lambda: decode_text(content, rtf=kind == DocumentKind.RTF, binary=kind == DocumentKind.LEGACY_DOC),
            settings,
        )
        native_text = text or ""
    else:
        attempt = None

    if attempt is not None:
        native_failed = attempt.outcome == "failed"
        native_text = native_text.strip()
        attempt.char_count = len(native_text)
        if not native_failed and attempt.char_count < settings.min_text_length:
            attempt.outcome = "too_short"
        attempts.append(attempt)

    # Plain text is authoritative: what we decoded is what there is
    if kind in (DocumentKind.TEXT, DocumentKind.RTF):
        report(1, 1, "Done")
        return ExtractionResult(
            text=native_text,
            strategy=native_strategy,
            provenance=Provenance.NATIVE,
            attempts=attempts,
            char_count=len(native_text),
            failed=not native_text,
            elapsed_ms=_elapsed_ms(start),
        )

    # ---- OCR -------------------------------------------------------------
    ocr_text = ""
    ocr_confidence: Optional[float] = None
    needs_ocr = native_failed or len(native_text) < settings.min_text_length
    ocr_attempt: Optional[StrategyAttempt] = None

    if needs_ocr:
        ocr_source = _ocr_source(kind, content, settings)
        if ocr_source is None:
            ocr_attempt = StrategyAttempt(strategy=ExtractionStrategy.OCR, outcome="skipped")
        else:
            logger.info(
                "Escalating %r to OCR (native %d chars, threshold %d)",
                document.file_name, len(native_text), settings.min_text_length,
            )
            report(0, max(page_count, 1), "Running OCR")

            def on_ocr_page(i: int, n: int) -> None:
                report(i, n, f"OCR page {i} of {n}")

            recognized, ocr_attempt = _run_with_retry(
                ExtractionStrategy.OCR, lambda: ocr_source(on_ocr_page), settings
            )
            if recognized is not None:
                ocr_text = recognized.text.strip()
                ocr_confidence = recognized.confidence
                ocr_attempt.confidence = recognized.confidence
                ocr_attempt.notes = [
                    f"page {i}: {p.words} words at {p.confidence:.1f}% ({p.config})"
                    for i, p in enumerate(recognized.pages, start=1)
                ]
            ocr_attempt.char_count = len(ocr_text)
            if ocr_attempt.outcome == "success" and len(ocr_text) < settings.min_ocr_text_length:
                ocr_attempt.outcome = "too_short"
        attempts.append(ocr_attempt)

    # ---- Selection ---------------------------------------------------------
    ocr_viable = len(ocr_text) >= settings.min_ocr_text_length
    warnings: List[str] = []
    if ocr_viable and len(ocr_text) > len(native_text):
        text, strategy, provenance = ocr_text, ExtractionStrategy.OCR, Provenance.OCR
        warning = ConfidenceCalculator.ocr_warning(
            ocr_confidence or 0.0, settings.ocr_low_confidence, settings.ocr_moderate_confidence
        )
        if warning:
            logger.warning("%r: %s", document.file_name, warning)
            warnings.append(warning)
    else:
        ocr_confidence = None
        text = native_text
        strategy = native_strategy
        provenance = Provenance.FALLBACK if kind == DocumentKind.LEGACY_DOC else Provenance.NATIVE
        if ocr_attempt is not None and ocr_attempt.outcome == "success":
            # OCR worked but lost to the native text
            ocr_attempt.outcome = "too_short"

    if len(text) < settings.min_ocr_text_length:
        logger.error(
            "Extraction exhausted for %r: %s",
            document.file_name,
            ", ".join(f"{a.strategy.value}={a.outcome}({a.char_count})" for a in attempts),
        )
        raise ExtractionExhaustedError(
            f"No strategy produced at least {settings.min_ocr_text_length} characters",
            diagnostics=_diagnostics(document, attempts, start),
        )

    report(1, 1, "Done")
    return ExtractionResult(
        text=text,
        strategy=strategy,
        provenance=provenance,
        attempts=attempts,
        char_count=len(text),
        failed=False,
        page_count=page_count,
        elapsed_ms=_elapsed_ms(start),
        ocr_confidence=ocr_confidence,
        warnings=warnings,
    )


def _ocr_source(
    kind: DocumentKind,
    content: bytes,
    settings: ParserSettings,
) -> Optional[Callable[[Callable[[int, int], None]], OcrResult]]:
    """Return a callable running OCR for this document, or None if OCR does not apply."""
    if not settings.enable_ocr:
        return None
    if kind == DocumentKind.PDF:
        return lambda on_page: ocr_pdf(content, settings, on_page)
    if kind == DocumentKind.IMAGE:
        return lambda on_page: ocr_image(content, settings, on_page)
    if kind == DocumentKind.DOCX:
        try:
            blobs = extract_docx_images(content)
        except Exception as e:
            logger.warning("Could not read embedded images: %s", e)
            return None
        if not blobs:
            return None
        return lambda on_page: ocr_images(blobs, settings, on_page)
    return None
