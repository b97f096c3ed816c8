import logging

from fastapi import APIRouter, File, HTTPException, UploadFile

from resume_ingest.core.config import get_settings
from resume_ingest.core.errors import (
    EmptyFileError,
    ExtractionExhaustedError,
    FileTooLargeError,
    ParseError,
    ProcessingTimeoutError,
    UnsupportedFormatError,
)
from resume_ingest.core.pipeline import parse_document_async
from resume_ingest.core.schemas import ParseResponse, UploadedDocument

logger = logging.getLogger(__name__)

router = APIRouter(tags=["parse"])

ERROR_STATUS = {
    EmptyFileError: 400,
    FileTooLargeError: 413,
    UnsupportedFormatError: 415,
    ExtractionExhaustedError: 422,
    ProcessingTimeoutError: 504,
}


def status_for(error: ParseError) -> int:
    for cls, status in ERROR_STATUS.items():
        if isinstance(error, cls):
            return status
    return 500


@router.post(
    "/parse",
    response_model=ParseResponse,
    summary="Parse Resume",
    description="Extract structured résumé data from a PDF, DOCX, plain text, RTF or image upload. Scanned documents fall back to OCR.",
    responses={
        200: {
            "description": "Successfully parsed resume",
            "content": {
                "application/json": {
                    "example": {
                        "resume": {
                            "contact": {
                                "first_name": "John",
                                "last_name": "Doe",
                                "email": "john@example.com",
                                "phone": "(555) 123-4567",
                                "city": "San Francisco",
                                "state": "CA",
                            },
                            "work_experiences": [
                                {
                                    "id": 1,
                                    "job_title": "Senior Engineer",
                                    "employer": "Tech Corp",
                                    "start_date": "2020-01-01",
                                    "end_date": None,
                                    "current": True,
                                    "accomplishments": "• Led the platform team",
                                }
                            ],
                            "skills": ["Python", "FastAPI", "PostgreSQL"],
                        },
                        "parse_quality": "high",
                        "confidence": 0.92,
                        "usable": True,
                        "warnings": [],
                    }
                }
            }
        },
        400: {"description": "Empty file uploaded"},
        413: {"description": "File too large"},
        415: {"description": "Unsupported file format"},
        422: {"description": "No readable text could be extracted"},
        504: {"description": "Processing timed out"},
    }
)
async def parse_resume(
    file: UploadFile = File(..., description="Resume file (PDF, DOCX, TXT, RTF, or image)")
):
    """
    Parse a resume file and extract candidate information.

    **Supported formats:**
    - PDF (.pdf), text layer first, OCR for scanned pages
    - DOCX (.docx), best-effort legacy DOC (.doc)
    - Plain text, Markdown, RTF
    - PNG, JPEG, GIF, BMP, TIFF, WebP (OCR)

    Errors carry `{"detail": {"kind", "message", "user_message", "suggestions", "diagnostics"}}`.
    """
    raw = await file.read()
    document = UploadedDocument(
        content=raw,
        media_type=(file.content_type or "").lower(),
        file_name=file.filename or "",
        size=len(raw),
    )

    try:
        return await parse_document_async(document, settings=get_settings())
    except ParseError as e:
        status = status_for(e)
        logger.info("Rejected %r with %d: %s", document.file_name, status, e.message)
        raise HTTPException(status_code=status, detail=e.to_dict())
