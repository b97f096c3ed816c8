"""
Tests for the native readers (raw text, RTF, DOCX, PDF line helpers) and the
OCR pass. Tesseract itself is replaced by a stub; everything around it
(frame handling, per-page failures, cleanup) runs for real.
"""

from io import BytesIO

import pytest
from docx import Document
from PIL import Image

from resume_ingest.core import ocr_extractor
from resume_ingest.core.config import ParserSettings
from resume_ingest.core.docx_extractor import extract_docx_images, extract_docx_lines, extract_docx_text
from resume_ingest.core.ocr_extractor import (
    OcrFailedError,
    Recognition,
    clean_ocr_text,
    ocr_image,
    ocr_images,
    recognition_from_data,
    recognize_best,
)
from resume_ingest.core.orchestrator import extract_document
from resume_ingest.core.pdf_extractor import PdfPage, count_artifacts, read_page, respace_line
from resume_ingest.core.schemas import ExtractionStrategy, Provenance, UploadedDocument
from resume_ingest.core.text_extractor import decode_text, strip_rtf

SCANNED_TEXT = (
    "Jane Doe\njane.doe@example.com\n(555) 123-4567\nEXPERIENCE\n"
    "Senior Engineer at Acme Corp\nJan 2020 - Present\n"
)


def _image_bytes(fmt: str = "PNG", frames: int = 1) -> bytes:
    images = [Image.new("RGB", (20, 10), (255, 255, 255)) for _ in range(frames)]
    buf = BytesIO()
    if frames > 1:
        images[0].save(buf, format=fmt, save_all=True, append_images=images[1:])
    else:
        images[0].save(buf, format=fmt)
    return buf.getvalue()


# ============================================================================
# Raw text / RTF
# ============================================================================

class TestDecodeText:
    def test_utf8_with_bom(self):
        assert decode_text("﻿José Núñez".encode("utf-8")) == "José Núñez"

    def test_utf16_with_bom(self):
        assert decode_text("Jane Doe\r\nEngineer".encode("utf-16")) == "Jane Doe\nEngineer"

    def test_cp1252_fallback(self):
        # 0x93/0x94 are curly quotes in cp1252 and invalid as UTF-8
        assert decode_text(b"\x93Team player\x94") == "“Team player”"

    def test_rtf_detected_even_without_flag(self):
        assert decode_text(rb"{\rtf1 Jane Doe\par Engineer}") == "Jane Doe\nEngineer"

    def test_legacy_doc_keeps_printable_runs(self):
        blob = b"\xd0\xcf\x11\xe0\x00\x00\x01Jane Doe Senior Engineer\x00\x00\x02\x03jane@example.com\x00"
        text = decode_text(blob, binary=True)
        assert "Jane Doe Senior Engineer" in text
        assert "jane@example.com" in text


def test_strip_rtf_escapes_and_tables():
    rtf = (
        r"{\rtf1\ansi{\fonttbl{\f0 Arial;}}{\colortbl;\red0\green0\blue0;}"
        r"\f0 Ren\'e9 Dupont\par Caf\u233? owner\par Braces \{ok\}}"
    )
    text = strip_rtf(rtf)
    assert text.splitlines() == ["René Dupont", "Café owner", "Braces {ok}"]


# ============================================================================
# DOCX
# ============================================================================

def test_docx_paragraphs_and_tables_in_order():
    doc = Document()
    doc.add_paragraph("Jane Doe")
    table = doc.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "SKILLS"
    table.rows[0].cells[1].text = "Python, SQL"
    doc.add_paragraph("EDUCATION")
    buf = BytesIO()
    doc.save(buf)

    lines = extract_docx_lines(buf.getvalue())
    assert lines == ["Jane Doe", "SKILLS", "Python, SQL", "EDUCATION"]
    assert extract_docx_text(buf.getvalue()).startswith("Jane Doe\nSKILLS")


def test_docx_embedded_images():
    doc = Document()
    doc.add_paragraph("Scanned resume below")
    doc.add_picture(BytesIO(_image_bytes()))
    buf = BytesIO()
    doc.save(buf)

    images = extract_docx_images(buf.getvalue())
    assert len(images) == 1
    assert images[0].startswith(b"\x89PNG")


# ============================================================================
# PDF text layer
# ============================================================================

class TestRespaceLine:
    def test_camel_and_comma(self):
        assert respace_line("NewYork,NewYork") == "New York, New York"

    def test_word_and_year(self):
        assert respace_line("January2024") == "January 2024"

    def test_keeps_short_alnum_tokens(self):
        assert respace_line("AWS S3 and Python3") == "AWS S3 and Python3"


class TestCountArtifacts:
    def test_glued_words_cost_more_than_spaced(self):
        assert count_artifacts("Senior software engineer with experience") == 0
        assert count_artifacts("Seniorsoftwareengineerwithexperience") == 10

    def test_single_letters_beyond_allowance(self):
        assert count_artifacts("a b c d e f g h i j k l") == 6
        assert count_artifacts("a b c d e f g h i j k l", single_letter_allowance=12) == 0

    def test_no_letters_cannot_be_judged(self):
        assert count_artifacts("") is None
        assert count_artifacts("2019 - 2021") is None


class GluingPage:
    """pdfplumber page stand-in that runs words together at tight x_tolerance."""

    WORDS = "Senior Software Engineer At Acme Corp".split()

    def __init__(self, glue_below: float = 2.5):
        self.glue_below = glue_below
        self.tolerances = []

    def extract_words(self, x_tolerance, **kwargs):
        self.tolerances.append(x_tolerance)
        if x_tolerance < self.glue_below:
            return [{"text": "".join(w.lower() for w in self.WORDS), "top": 10.0, "x0": 0.0}]
        return [{"text": w, "top": 10.0, "x0": 40.0 * i} for i, w in enumerate(self.WORDS)]


class EmptyPage:
    def extract_words(self, x_tolerance, **kwargs):
        return []


class TestReadPage:
    def test_tolerance_with_fewest_artifacts_wins(self):
        page = GluingPage()
        result = read_page(page, ParserSettings())

        assert result == PdfPage("Senior Software Engineer At Acme Corp", 2.5, 0)
        assert page.tolerances == [1.5, 2.0, 2.5, 3.0]

    def test_tolerances_come_from_settings(self):
        page = GluingPage(glue_below=10.0)
        result = read_page(page, ParserSettings(pdf_x_tolerances=[4.0, 12.0]))

        assert page.tolerances == [4.0, 12.0]
        assert result.x_tolerance == 12.0

    def test_image_only_page_is_empty(self):
        assert read_page(EmptyPage(), ParserSettings()) == PdfPage("", 0.0, 0)


# ============================================================================
# OCR
# ============================================================================

class TestCleanOcrText:
    def test_pipe_and_blank_lines(self):
        assert clean_ocr_text("Jane Doe\n\n\n|nformation   Systems") == "Jane Doe\n\nInformation Systems"

    def test_boundaries(self):
        assert clean_ocr_text("SeniorEngineer2021Present") == "Senior Engineer 2021 Present"

    def test_ordinals_preserved(self):
        assert clean_ocr_text("Ranked 1st of 40") == "Ranked 1st of 40"

    def test_digit_substitution_is_opt_in(self):
        assert clean_ocr_text("Call 555-123-4567") == "Call 555-123-4567"
        assert clean_ocr_text("J0HN", aggressive=True) == "JOHN"


def recognized(text: str, confidence: float = 95.0, config: str = "") -> Recognition:
    return Recognition(text=text, confidence=confidence, words=len(text.split()), config=config)


def tesseract_data(*rows):
    """image_to_data-style dict from (block, par, line, text, conf) rows."""
    data = {"block_num": [], "par_num": [], "line_num": [], "text": [], "conf": []}
    for block, par, line, text, conf in rows:
        data["block_num"].append(block)
        data["par_num"].append(par)
        data["line_num"].append(line)
        data["text"].append(text)
        data["conf"].append(conf)
    return data


class TestRecognitionFromData:
    def test_words_regrouped_into_lines(self):
        data = tesseract_data(
            (1, 1, 0, "", -1),
            (1, 1, 1, "Jane", 96),
            (1, 1, 1, "Doe", 90),
            (1, 1, 2, "Senior", 80),
            (1, 1, 2, "Engineer", 70),
            (2, 1, 1, " ", 95),
        )
        result = recognition_from_data(data, config="--psm 3")
        assert result.text == "Jane Doe\nSenior Engineer"
        assert result.words == 4
        assert result.confidence == 84.0
        assert result.config == "--psm 3"

    def test_nothing_recognized(self):
        result = recognition_from_data(tesseract_data((1, 0, 0, "", -1)))
        assert result == Recognition(text="", confidence=0.0, words=0, config="")


class TestRecognizeBest:
    settings = ParserSettings(
        ocr_config="primary",
        ocr_fallback_configs=["block", "column"],
        ocr_good_confidence=80.0,
    )

    def test_most_confident_config_wins(self, monkeypatch):
        scores = {"primary": 40.0, "block": 75.0, "column": 60.0}
        tried = []

        def fake(image, settings, config):
            tried.append(config)
            return recognized(f"read with {config}", scores[config], config)

        monkeypatch.setattr(ocr_extractor, "recognize_image", fake)
        result = recognize_best(Image.new("L", (10, 10)), self.settings)

        assert tried == ["primary", "block", "column"]
        assert result.config == "block"
        assert result.confidence == 75.0

    def test_stops_once_confident(self, monkeypatch):
        tried = []

        def fake(image, settings, config):
            tried.append(config)
            return recognized("clean scan", 92.0, config)

        monkeypatch.setattr(ocr_extractor, "recognize_image", fake)
        assert recognize_best(Image.new("L", (10, 10)), self.settings).config == "primary"
        assert tried == ["primary"]

    def test_failing_config_falls_through(self, monkeypatch):
        def fake(image, settings, config):
            if config == "primary":
                raise RuntimeError("bad psm")
            return recognized("fallback text", 65.0, config)

        monkeypatch.setattr(ocr_extractor, "recognize_image", fake)
        assert recognize_best(Image.new("L", (10, 10)), self.settings).text == "fallback text"

    def test_every_config_failing_raises_last_error(self, monkeypatch):
        def fake(image, settings, config):
            raise RuntimeError(f"{config} crashed")

        monkeypatch.setattr(ocr_extractor, "recognize_image", fake)
        with pytest.raises(RuntimeError, match="column crashed"):
            recognize_best(Image.new("L", (10, 10)), self.settings)


class TestOcrRuns:
    settings = ParserSettings()

    def test_image_frames_are_pages(self, monkeypatch):
        calls = []

        def fake(image, settings, config):
            calls.append(image.size)
            return recognized(f"page {len(calls)} text")

        monkeypatch.setattr(ocr_extractor, "recognize_image", fake)
        pages = []
        result = ocr_image(_image_bytes("TIFF", frames=2), self.settings, on_page=lambda i, n: pages.append((i, n)))

        assert result.text == "page 1 text\npage 2 text"
        assert len(result.pages) == 2
        assert pages == [(1, 2), (2, 2)]

    def test_confidence_is_weighted_by_words(self, monkeypatch):
        outputs = iter([recognized("one two three", 90.0), recognized("four", 50.0)])
        monkeypatch.setattr(ocr_extractor, "recognize_best", lambda image, settings: next(outputs))

        result = ocr_image(_image_bytes("TIFF", frames=2), self.settings)
        assert result.confidence == 80.0

    def test_failed_page_is_skipped(self, monkeypatch):
        first = []

        def fake(image, settings, config):
            if not first:
                first.append(image)
            if image is first[0]:
                raise RuntimeError("tesseract crashed")
            return recognized("second page survives")

        monkeypatch.setattr(ocr_extractor, "recognize_image", fake)
        result = ocr_image(_image_bytes("TIFF", frames=2), self.settings)
        assert result.text == "second page survives"
        assert len(result.pages) == 1

    def test_all_pages_failing_raises(self, monkeypatch):
        def fake(image, settings, config):
            raise RuntimeError("no tesseract")

        monkeypatch.setattr(ocr_extractor, "recognize_image", fake)
        with pytest.raises(OcrFailedError):
            ocr_image(_image_bytes(), self.settings)

    def test_unreadable_blob_is_skipped(self, monkeypatch):
        monkeypatch.setattr(ocr_extractor, "recognize_image", lambda image, settings, config: recognized("ok text"))
        assert ocr_images([b"not an image", _image_bytes()], self.settings).text == "ok text"

    def test_image_upload_goes_straight_to_ocr(self, monkeypatch):
        monkeypatch.setattr(
            ocr_extractor, "recognize_image", lambda image, settings, config: recognized(SCANNED_TEXT, 58.0)
        )
        doc = UploadedDocument(content=_image_bytes(), media_type="image/png", file_name="scan.png")

        result = extract_document(doc, settings=ParserSettings(retry_backoff_seconds=0))
        assert result.strategy == ExtractionStrategy.OCR
        assert result.provenance == Provenance.OCR
        assert "Senior Engineer at Acme Corp" in result.text
        assert [a.strategy for a in result.attempts] == [ExtractionStrategy.OCR]
        assert result.ocr_confidence == 58.0
        assert result.warnings == ["OCR confidence is moderate (58%); some text may be inaccurate"]
