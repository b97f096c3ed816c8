"""
End-to-end résumé parsing.

    bytes -> extract_document -> classify_sections -> extractors -> assemble_resume

parse_resume_text is pure. parse_document blocks for the whole run (OCR can
take a while), so async callers use parse_document_async, which runs it in a
worker thread under a timeout.
"""

import asyncio
import logging
import time
from typing import List, Optional

from resume_ingest.core.assembler import assemble_resume
from resume_ingest.core.confidence_calculator import ConfidenceCalculator
from resume_ingest.core.config import ParserSettings, get_settings
from resume_ingest.core.contact_parser import extract_contact
from resume_ingest.core.education_parser import extract_education
from resume_ingest.core.errors import ProcessingTimeoutError
from resume_ingest.core.experience_parser import extract_work_experience
from resume_ingest.core.orchestrator import ProgressCallback, extract_document
from resume_ingest.core.schemas import (
    ClassificationResult,
    ExtractionResult,
    ParseDiagnostics,
    ParseResponse,
    Provenance,
    SectionType,
    UploadedDocument,
)
from resume_ingest.core.section_classifier import CONTEXTUAL, classify_sections
from resume_ingest.core.section_rules import DEFAULT_SECTION_RULES, SectionRuleSet
from resume_ingest.core.skills_parser import extract_skills
from resume_ingest.core.summary_parser import extract_summary

logger = logging.getLogger(__name__)


def section_input(classification: ClassificationResult, name: SectionType) -> str:
    """
    Text handed to a section's extractor.

    A header found by contextual rules is a content line itself ("Bachelor of
    Science, ..." opening the education block), so it is kept.
    """
    text = classification.section(name)
    boundary = classification.boundary(name)
    if boundary is not None and boundary.matched_pattern == CONTEXTUAL:
        text = "\n".join(t for t in (boundary.header_line, text) if t)
    return text


def _duplicate_warnings(classification: ClassificationResult) -> List[str]:
    return [
        f"Duplicate {d.name.value} header ignored at line {d.start + 1}: {d.header_line!r}"
        for d in classification.duplicates
    ]


def parse_resume_text(text: str, rules: SectionRuleSet = DEFAULT_SECTION_RULES) -> ParseResponse:
    """Classify and extract an already-extracted plain text résumé."""
    text = text or ""
    classification = classify_sections(text, rules)

    contact = extract_contact(text, section_input(classification, SectionType.CONTACT))
    experiences = extract_work_experience(text, section_input(classification, SectionType.EXPERIENCE))
    education = extract_education(text, section_input(classification, SectionType.EDUCATION))
    # Uncapped here; the assembler caps and reports the overflow
    skills = extract_skills(text, section_input(classification, SectionType.SKILLS), limit=None)
    summary = extract_summary(
        text,
        section_input(classification, SectionType.SUMMARY) or section_input(classification, SectionType.OBJECTIVE),
    )

    resume, warnings = assemble_resume(
        contact=contact,
        experiences=experiences,
        education=education,
        skills=skills,
        summary=summary,
        raw_text=text,
    )
    warnings = warnings + _duplicate_warnings(classification)

    usable = classification.is_usable()
    field_confidences = {
        "full_name": ConfidenceCalculator.full_name(resume.contact.first_name, resume.contact.last_name)[0],
        "email": ConfidenceCalculator.email(resume.contact.email)[0],
        "phone": ConfidenceCalculator.phone(resume.contact.phone)[0],
    }
    quality = ConfidenceCalculator.calculate_overall_parse_quality(
        classification.confidence, usable, field_confidences
    )

    return ParseResponse(
        resume=resume,
        parse_quality=quality,
        confidence=classification.confidence,
        usable=usable,
        warnings=warnings,
        diagnostics=ParseDiagnostics(
            classification_confidence=classification.confidence,
            classifier_warnings=list(classification.warnings),
            warnings=list(warnings),
        ),
    )


def _extraction_diagnostics(document: UploadedDocument, extraction: ExtractionResult) -> dict:
    return {
        "file_name": document.file_name,
        "media_type": document.media_type,
        "strategies_tried": [a.model_copy() for a in extraction.attempts],
        "selected_strategy": extraction.strategy,
        "provenance": extraction.provenance,
        "char_counts": {a.strategy.value: a.char_count for a in extraction.attempts if a.outcome != "skipped"},
        "ocr_confidence": extraction.ocr_confidence,
    }


def parse_document(
    document: UploadedDocument,
    progress: Optional[ProgressCallback] = None,
    settings: Optional[ParserSettings] = None,
) -> ParseResponse:
    """
    Parse an uploaded document end to end.

    Raises EmptyFileError, FileTooLargeError, UnsupportedFormatError or
    ExtractionExhaustedError from the extraction stage. Everything after
    extraction reports problems as warnings.
    """
    settings = settings or get_settings()
    start = time.perf_counter()

    extraction = extract_document(document, progress=progress, settings=settings)
    response = parse_resume_text(extraction.text)

    warnings = list(response.warnings)
    if extraction.failed:
        warnings.insert(0, "No text could be read from the document")
    if extraction.provenance == Provenance.OCR:
        warnings.append("Text was recognized by OCR; check names and dates for recognition errors")
    warnings.extend(extraction.warnings)

    diagnostics = response.diagnostics.model_copy(
        update={
            **_extraction_diagnostics(document, extraction),
            "elapsed_ms": round((time.perf_counter() - start) * 1000, 2),
            "warnings": warnings,
        }
    )
    logger.info(
        "Parsed %r via %s (%d chars, quality %s, %.0f ms)",
        document.file_name,
        extraction.strategy.value if extraction.strategy else "none",
        extraction.char_count,
        response.parse_quality,
        diagnostics.elapsed_ms,
    )
    return response.model_copy(update={"warnings": warnings, "diagnostics": diagnostics})


async def parse_document_async(
    document: UploadedDocument,
    progress: Optional[ProgressCallback] = None,
    settings: Optional[ParserSettings] = None,
    timeout: Optional[float] = None,
) -> ParseResponse:
    """
    Run parse_document in a worker thread and give up after ``timeout``
    seconds (default settings.max_processing_seconds).

    On timeout the caller gets ProcessingTimeoutError. The worker thread is
    abandoned, not killed; its result is discarded.
    """
    settings = settings or get_settings()
    limit = timeout if timeout is not None else settings.max_processing_seconds
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(parse_document, document, progress, settings),
            timeout=limit,
        )
    except asyncio.TimeoutError:
        logger.error("Parsing %r exceeded %.1f s, abandoning", document.file_name, limit)
        raise ProcessingTimeoutError(
            f"Processing exceeded {limit:g} seconds",
            diagnostics=ParseDiagnostics(
                file_name=document.file_name,
                media_type=document.media_type,
                elapsed_ms=round(limit * 1000, 2),
            ),
        ) from None
