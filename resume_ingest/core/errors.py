"""
Typed failures raised by the ingestion pipeline.

Only input validation and total extraction failure are exceptions. Anything
heuristic (low classification confidence, missing fields) is reported as
warnings on the result instead.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from resume_ingest.core.schemas import ParseDiagnostics


class ErrorKind(str, Enum):
    EMPTY_FILE = "empty_file"
    FILE_TOO_LARGE = "file_too_large"
    UNSUPPORTED_FORMAT = "unsupported_format"
    EXTRACTION_EXHAUSTED = "extraction_exhausted"
    PROCESSING_TIMEOUT = "processing_timeout"


class ParseError(Exception):
    kind: ErrorKind = ErrorKind.EXTRACTION_EXHAUSTED
    default_user_message = "An error occurred while processing your resume. Please try again."
    default_suggestions: List[str] = []

    def __init__(
        self,
        message: str,
        *,
        user_message: Optional[str] = None,
        suggestions: Optional[List[str]] = None,
        diagnostics: Optional[ParseDiagnostics] = None,
    ):
        self.message = message
        self.user_message = user_message or self.default_user_message
        self.suggestions = list(suggestions if suggestions is not None else self.default_suggestions)
        self.diagnostics = diagnostics
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "user_message": self.user_message,
            "suggestions": self.suggestions,
            "diagnostics": self.diagnostics.model_dump(mode="json") if self.diagnostics else None,
        }


class EmptyFileError(ParseError):
    kind = ErrorKind.EMPTY_FILE
    default_user_message = "The selected file appears to be empty. Please choose a different file."
    default_suggestions = ["Check that the file was saved correctly before uploading"]


class FileTooLargeError(ParseError):
    kind = ErrorKind.FILE_TOO_LARGE
    default_user_message = "The file is too large to process."
    default_suggestions = [
        "Reduce the file size, e.g. by compressing images or exporting a text-based PDF",
    ]


class UnsupportedFormatError(ParseError):
    kind = ErrorKind.UNSUPPORTED_FORMAT
    default_user_message = (
        "This file type is not supported. Please upload a PDF, DOCX, TXT, RTF, or image file."
    )
    default_suggestions = ["Convert the document to PDF or DOCX and upload it again"]


class ExtractionExhaustedError(ParseError):
    kind = ErrorKind.EXTRACTION_EXHAUSTED
    default_user_message = "No readable text could be extracted from this document."
    default_suggestions = [
        "Try a text-based PDF instead of a scanned one",
        "If the document is a scan, rescan it at a higher resolution",
        "Image quality may be too low for OCR",
    ]


class ProcessingTimeoutError(ParseError):
    kind = ErrorKind.PROCESSING_TIMEOUT
    default_user_message = "Processing took too long and was abandoned."
    default_suggestions = ["Try a smaller file or a text-based format"]
