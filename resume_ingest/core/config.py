from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class ParserSettings(BaseSettings):
    """
    Tunable knobs for the ingestion pipeline.

    Every field can be overridden through the environment with the
    RESUME_INGEST_ prefix, e.g. RESUME_INGEST_MIN_TEXT_LENGTH=150.
    """

    model_config = SettingsConfigDict(env_prefix="RESUME_INGEST_", extra="ignore")

    # Input validation
    max_file_size: int = 50 * 1024 * 1024  # 50 MB
    allowed_extensions: List[str] = [
        ".pdf", ".docx", ".doc", ".txt", ".text", ".md", ".markdown", ".rtf",
        ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".tif", ".tiff", ".webp",
    ]
    allowed_media_types: List[str] = [
        "application/pdf",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/msword",
        "text/plain",
        "text/markdown",
        "text/rtf",
        "application/rtf",
        "image/png",
        "image/jpeg",
        "image/gif",
        "image/bmp",
        "image/tiff",
        "image/webp",
    ]

    # Escalation thresholds (characters)
    min_text_length: int = 100
    min_ocr_text_length: int = 30

    # End-to-end ceiling for parse_document_async
    max_processing_seconds: float = 120.0

    # Native PDF reading: each page is read at every x_tolerance, fewest artifacts wins
    pdf_x_tolerances: List[float] = [1.5, 2.0, 2.5, 3.0]
    pdf_line_tolerance: float = 3.0  # words whose tops round together share a line
    pdf_glued_token_length: int = 18
    pdf_single_letter_allowance: int = 10

    # OCR
    enable_ocr: bool = True
    ocr_language: str = "eng"
    ocr_scale: float = 2.0  # rasterize at 72 * scale DPI
    ocr_config: str = "--oem 1 --psm 3 -c preserve_interword_spaces=1"
    # Tried in order when the primary config is not confident enough on a page
    ocr_fallback_configs: List[str] = [
        "--oem 1 --psm 6 -c preserve_interword_spaces=1",  # uniform block of text
        "--oem 1 --psm 4 -c preserve_interword_spaces=1",  # single column
    ]
    ocr_good_confidence: float = 80.0
    ocr_moderate_confidence: float = 70.0
    ocr_low_confidence: float = 50.0
    ocr_aggressive_substitutions: bool = False

    # Retry of transient extractor failures
    retry_attempts: int = 2
    retry_backoff_seconds: float = 0.5

    log_level: str = "INFO"


@lru_cache()
def get_settings() -> ParserSettings:
    return ParserSettings()
