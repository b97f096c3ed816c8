"""
Tests for the extraction orchestrator: validation, routing, OCR escalation,
best-of selection, retries and progress reporting.

Native readers and OCR are monkeypatched on the orchestrator module so no
tesseract binary or real PDF is needed.
"""

from io import BytesIO

import pytest
from docx import Document

from resume_ingest.core import orchestrator
from resume_ingest.core.config import ParserSettings
from resume_ingest.core.errors import (
    EmptyFileError,
    ExtractionExhaustedError,
    FileTooLargeError,
    UnsupportedFormatError,
)
from resume_ingest.core.ocr_extractor import OcrResult, Recognition
from resume_ingest.core.orchestrator import extract_document
from resume_ingest.core.pdf_extractor import PdfPage
from resume_ingest.core.schemas import ExtractionStrategy, Provenance, UploadedDocument

LONG_TEXT = (
    "Jane Doe\njane.doe@example.com\nEXPERIENCE\nSenior Engineer at Acme Corp\n"
    "Jan 2020 - Present\n- Led a team of five engineers\n"
)
FAKE_PDF = b"%PDF-1.4\n% not a real pdf\n"


def settings(**overrides) -> ParserSettings:
    values = {"retry_backoff_seconds": 0.0}
    values.update(overrides)
    return ParserSettings(**values)


def pdf_document() -> UploadedDocument:
    return UploadedDocument(content=FAKE_PDF, media_type="application/pdf", file_name="resume.pdf")


def docx_bytes(*paragraphs: str) -> bytes:
    doc = Document()
    for p in paragraphs:
        doc.add_paragraph(p)
    buf = BytesIO()
    doc.save(buf)
    return buf.getvalue()


def native_pages(*texts: str, x_tolerance: float = 2.0):
    """Stand-in for extract_pdf_pages returning one PdfPage per text."""
    return lambda content, s, on_page=None: [PdfPage(t, x_tolerance, 0) for t in texts]


def ocr_result(text: str, confidence: float = 91.0):
    """Stand-in for ocr_pdf returning a single recognized page."""
    page = Recognition(text=text, confidence=confidence, words=len(text.split()), config="--psm 3")
    return lambda content, s, on_page=None: OcrResult(text=text, confidence=confidence, pages=(page,))


def _explode(*args, **kwargs):
    raise AssertionError("extractor must not run")


# ============================================================================
# Validation
# ============================================================================

class TestValidation:
    def test_zero_bytes_fails_before_any_extractor(self, monkeypatch):
        monkeypatch.setattr(orchestrator, "extract_pdf_pages", _explode)
        monkeypatch.setattr(orchestrator, "ocr_pdf", _explode)
        doc = UploadedDocument(content=b"", media_type="application/pdf", file_name="resume.pdf")

        with pytest.raises(EmptyFileError):
            extract_document(doc, settings=settings())

    def test_too_large(self, monkeypatch):
        monkeypatch.setattr(orchestrator, "extract_pdf_pages", _explode)
        with pytest.raises(FileTooLargeError) as exc:
            extract_document(pdf_document(), settings=settings(max_file_size=10))
        assert "too large" in exc.value.user_message

    def test_unsupported_media_type(self):
        doc = UploadedDocument(content=b"hello world", media_type="application/zip", file_name="resume.zip")
        with pytest.raises(UnsupportedFormatError):
            extract_document(doc, settings=settings())

    def test_empty_media_type_is_routed_by_content(self):
        doc = UploadedDocument(content=LONG_TEXT.encode(), media_type="", file_name="")
        result = extract_document(doc, settings=settings())
        assert result.strategy == ExtractionStrategy.RAW_TEXT
        assert "Senior Engineer" in result.text

    def test_octet_stream_accepted_by_extension(self):
        doc = UploadedDocument(
            content=LONG_TEXT.encode(), media_type="application/octet-stream", file_name="resume.txt"
        )
        assert extract_document(doc, settings=settings()).text.startswith("Jane Doe")


# ============================================================================
# Plain text is authoritative
# ============================================================================

class TestPlainText:
    def test_short_text_is_never_exhausted(self):
        doc = UploadedDocument(content=b"Jane Doe", media_type="text/plain", file_name="a.txt")
        result = extract_document(doc, settings=settings())
        assert result.text == "Jane Doe"
        assert result.failed is False
        assert result.provenance == Provenance.NATIVE

    def test_blank_text_returns_empty_and_failed(self):
        doc = UploadedDocument(content=b"   \n\n  ", media_type="text/plain", file_name="a.txt")
        result = extract_document(doc, settings=settings())
        assert result.text == ""
        assert result.failed is True

    def test_rtf_is_stripped(self):
        rtf = rb"{\rtf1\ansi{\fonttbl\f0\fswiss Helvetica;}\f0\pard Jane Doe\par Senior Engineer\par}"
        doc = UploadedDocument(content=rtf, media_type="application/rtf", file_name="cv.rtf")
        result = extract_document(doc, settings=settings())
        assert "Jane Doe" in result.text
        assert "Senior Engineer" in result.text
        assert "\\par" not in result.text

    def test_legacy_doc_is_decoded_best_effort(self):
        content = (
            b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 8
            + b"Jane Doe\r\nSenior Engineer at Acme Corp\r\njane.doe@example.com\x00\x01"
        )
        doc = UploadedDocument(content=content, media_type="application/msword", file_name="cv.doc")
        result = extract_document(doc, settings=settings())
        assert result.text.splitlines() == ["Jane Doe", "Senior Engineer at Acme Corp", "jane.doe@example.com"]
        assert result.strategy == ExtractionStrategy.RAW_TEXT
        assert result.provenance == Provenance.FALLBACK


# ============================================================================
# PDF escalation and best-of selection
# ============================================================================

class TestPdfEscalation:
    def test_text_pdf_does_not_run_ocr(self, monkeypatch):
        monkeypatch.setattr(orchestrator, "extract_pdf_pages", native_pages(LONG_TEXT))
        monkeypatch.setattr(orchestrator, "ocr_pdf", _explode)

        result = extract_document(pdf_document(), settings=settings())
        assert result.strategy == ExtractionStrategy.NATIVE_PDF
        assert result.provenance == Provenance.NATIVE
        assert result.page_count == 1
        assert [a.strategy for a in result.attempts] == [ExtractionStrategy.NATIVE_PDF]

    def test_scanned_pdf_uses_ocr(self, monkeypatch):
        monkeypatch.setattr(orchestrator, "extract_pdf_pages", native_pages("", ""))
        monkeypatch.setattr(orchestrator, "ocr_pdf", ocr_result(LONG_TEXT))

        result = extract_document(pdf_document(), settings=settings())
        assert result.provenance == Provenance.OCR
        assert result.strategy == ExtractionStrategy.OCR
        assert result.text == LONG_TEXT.strip()
        assert result.attempts[0].outcome == "too_short"
        assert result.attempts[1].outcome == "success"

    def test_native_kept_when_ocr_is_not_strictly_longer(self, monkeypatch):
        native = "x" * 60
        monkeypatch.setattr(orchestrator, "extract_pdf_pages", native_pages(native))
        monkeypatch.setattr(orchestrator, "ocr_pdf", ocr_result("y" * 60))

        result = extract_document(pdf_document(), settings=settings())
        assert result.text == native
        assert result.provenance == Provenance.NATIVE

    def test_ocr_wins_when_longer(self, monkeypatch):
        monkeypatch.setattr(orchestrator, "extract_pdf_pages", native_pages("x" * 60))
        monkeypatch.setattr(orchestrator, "ocr_pdf", ocr_result("y" * 90))

        result = extract_document(pdf_document(), settings=settings())
        assert result.text == "y" * 90
        assert result.provenance == Provenance.OCR

    def test_native_failure_falls_through_to_ocr(self, monkeypatch):
        def broken(content, s, on_page=None):
            raise ValueError("corrupt xref table")

        monkeypatch.setattr(orchestrator, "extract_pdf_pages", broken)
        monkeypatch.setattr(orchestrator, "ocr_pdf", ocr_result(LONG_TEXT))

        result = extract_document(pdf_document(), settings=settings())
        assert result.provenance == Provenance.OCR
        assert result.attempts[0].outcome == "failed"
        assert "corrupt xref table" in result.attempts[0].error
        assert result.attempts[0].attempts == 1

    def test_exhausted_when_nothing_clears_the_floor(self, monkeypatch):
        monkeypatch.setattr(orchestrator, "extract_pdf_pages", native_pages("abc"))
        monkeypatch.setattr(orchestrator, "ocr_pdf", ocr_result("too short"))

        with pytest.raises(ExtractionExhaustedError) as exc:
            extract_document(pdf_document(), settings=settings())
        diagnostics = exc.value.diagnostics
        assert diagnostics is not None
        assert [a.strategy for a in diagnostics.strategies_tried] == [
            ExtractionStrategy.NATIVE_PDF,
            ExtractionStrategy.OCR,
        ]

    def test_ocr_disabled_is_recorded_as_skipped(self, monkeypatch):
        monkeypatch.setattr(orchestrator, "extract_pdf_pages", native_pages("x" * 50))
        monkeypatch.setattr(orchestrator, "ocr_pdf", _explode)

        result = extract_document(pdf_document(), settings=settings(enable_ocr=False))
        assert result.text == "x" * 50
        assert result.attempts[-1].outcome == "skipped"

    def test_native_attempt_notes_chosen_tolerance(self, monkeypatch):
        monkeypatch.setattr(orchestrator, "extract_pdf_pages", native_pages(LONG_TEXT, "", x_tolerance=1.5))
        monkeypatch.setattr(orchestrator, "ocr_pdf", _explode)

        result = extract_document(pdf_document(), settings=settings())
        assert result.attempts[0].notes == [
            "page 1: x_tolerance=1.5, artifacts=0",
            "page 2: x_tolerance=1.5, artifacts=0",
        ]


# ============================================================================
# OCR confidence
# ============================================================================

class TestOcrConfidence:
    def test_confident_ocr_has_no_warning(self, monkeypatch):
        monkeypatch.setattr(orchestrator, "extract_pdf_pages", native_pages(""))
        monkeypatch.setattr(orchestrator, "ocr_pdf", ocr_result(LONG_TEXT, confidence=88.0))

        result = extract_document(pdf_document(), settings=settings())
        assert result.ocr_confidence == 88.0
        assert result.warnings == []
        assert result.attempts[1].confidence == 88.0
        assert result.attempts[1].notes[0].startswith("page 1:")
        assert "88.0%" in result.attempts[1].notes[0]

    @pytest.mark.parametrize(
        "confidence,expected",
        [
            (62.0, "OCR confidence is moderate (62%); some text may be inaccurate"),
            (41.0, "OCR confidence is low (41%); recognized text may be inaccurate"),
        ],
    )
    def test_weak_ocr_is_flagged(self, monkeypatch, confidence, expected):
        monkeypatch.setattr(orchestrator, "extract_pdf_pages", native_pages(""))
        monkeypatch.setattr(orchestrator, "ocr_pdf", ocr_result(LONG_TEXT, confidence=confidence))

        result = extract_document(pdf_document(), settings=settings())
        assert result.provenance == Provenance.OCR
        assert result.warnings == [expected]

    def test_losing_ocr_reports_no_confidence(self, monkeypatch):
        monkeypatch.setattr(orchestrator, "extract_pdf_pages", native_pages("x" * 60))
        monkeypatch.setattr(orchestrator, "ocr_pdf", ocr_result("y" * 60, confidence=30.0))

        result = extract_document(pdf_document(), settings=settings())
        assert result.provenance == Provenance.NATIVE
        assert result.ocr_confidence is None
        assert result.warnings == []
        # the attempt still records what OCR managed
        assert result.attempts[1].confidence == 30.0


# ============================================================================
# Retry
# ============================================================================

class TestRetry:
    def test_transient_error_is_retried(self, monkeypatch):
        calls = {"n": 0}

        def flaky(content, s, on_page=None):
            calls["n"] += 1
            if calls["n"] == 1:
                raise OSError("temporarily unavailable")
            return native_pages(LONG_TEXT)(content, s)

        monkeypatch.setattr(orchestrator, "extract_pdf_pages", flaky)
        result = extract_document(pdf_document(), settings=settings())

        assert calls["n"] == 2
        assert result.attempts[0].attempts == 2
        assert result.attempts[0].outcome == "success"

    def test_retries_are_bounded(self, monkeypatch):
        calls = {"n": 0}

        def always_down(content, s, on_page=None):
            calls["n"] += 1
            raise TimeoutError("still down")

        monkeypatch.setattr(orchestrator, "extract_pdf_pages", always_down)
        monkeypatch.setattr(orchestrator, "ocr_pdf", ocr_result(LONG_TEXT))

        result = extract_document(pdf_document(), settings=settings(retry_attempts=2))
        assert calls["n"] == 3
        assert result.attempts[0].outcome == "failed"
        assert result.provenance == Provenance.OCR


# ============================================================================
# DOCX
# ============================================================================

class TestDocx:
    def test_docx_markup(self):
        content = docx_bytes("Jane Doe", "jane.doe@example.com", "EXPERIENCE", "Senior Engineer at Acme Corp",
                             "Jan 2020 - Present", "- Led a team of five engineers")
        doc = UploadedDocument(
            content=content,
            media_type="application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            file_name="resume.docx",
        )
        result = extract_document(doc, settings=settings())
        assert result.strategy == ExtractionStrategy.DOCX_MARKUP
        assert "Senior Engineer at Acme Corp" in result.text

    def test_docx_sniffed_despite_wrong_extension(self):
        content = docx_bytes("Jane Doe", "Senior Engineer at Acme Corp", "x" * 120)
        doc = UploadedDocument(content=content, media_type="", file_name="resume.bin")
        result = extract_document(doc, settings=settings())
        assert result.strategy == ExtractionStrategy.DOCX_MARKUP


# ============================================================================
# Progress
# ============================================================================

class TestProgress:
    def test_progress_labels(self, monkeypatch):
        def pages(content, s, on_page=None):
            for i in (1, 2):
                if on_page:
                    on_page(i, 2)
            return native_pages(LONG_TEXT, "page two")(content, s)

        monkeypatch.setattr(orchestrator, "extract_pdf_pages", pages)
        seen = []
        extract_document(pdf_document(), progress=lambda d, t, label: seen.append(label), settings=settings())

        assert seen[0] == "Validating file"
        assert "Extracting text (page 1 of 2)" in seen
        assert "Extracting text (page 2 of 2)" in seen
        assert seen[-1] == "Done"

    def test_failing_callback_is_ignored(self):
        def boom(done, total, label):
            raise RuntimeError("ui went away")

        doc = UploadedDocument(content=LONG_TEXT.encode(), media_type="text/plain", file_name="a.txt")
        result = extract_document(doc, progress=boom, settings=settings())
        assert result.text.startswith("Jane Doe")
