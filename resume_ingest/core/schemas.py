from datetime import date
from enum import Enum
from pathlib import PurePath
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


ParseQuality = Literal["high", "medium", "low"]
ConfidenceScore = float  # 0.0 to 1.0


class ExtractionStrategy(str, Enum):
    NATIVE_PDF = "native_pdf"
    DOCX_MARKUP = "docx_markup"
    RAW_TEXT = "raw_text"
    OCR = "ocr"


class Provenance(str, Enum):
    NATIVE = "native"
    OCR = "ocr"
    FALLBACK = "fallback"


AttemptOutcome = Literal["success", "too_short", "failed", "skipped"]


class SectionType(str, Enum):
    CONTACT = "contact"
    SUMMARY = "summary"
    OBJECTIVE = "objective"
    EXPERIENCE = "experience"
    EDUCATION = "education"
    SKILLS = "skills"
    PROJECTS = "projects"
    CERTIFICATIONS = "certifications"
    LANGUAGES = "languages"
    VOLUNTEER = "volunteer"
    PUBLICATIONS = "publications"
    AWARDS = "awards"
    REFERENCES = "references"
    UNKNOWN = "unknown"


class UploadedDocument(BaseModel):
    """Raw upload as handed over by the ingestion layer. Immutable."""
    model_config = ConfigDict(frozen=True)

    content: bytes
    media_type: str = ""
    file_name: str = ""
    size: int = 0

    @model_validator(mode="before")
    @classmethod
    def _default_size(cls, data):
        if isinstance(data, dict) and data.get("size") is None:
            data = {**data, "size": len(data.get("content") or b"")}
        return data

    @property
    def extension(self) -> str:
        return PurePath(self.file_name or "").suffix.lower()


class StrategyAttempt(BaseModel):
    strategy: ExtractionStrategy
    outcome: AttemptOutcome
    char_count: int = 0
    attempts: int = 0
    elapsed_ms: float = 0.0
    error: str = ""
    confidence: Optional[float] = None  # OCR mean word confidence, 0-100
    notes: List[str] = Field(default_factory=list)


class ExtractionResult(BaseModel):
    text: str = ""
    strategy: Optional[ExtractionStrategy] = None
    provenance: Provenance = Provenance.NATIVE
    attempts: List[StrategyAttempt] = Field(default_factory=list)
    char_count: int = 0
    failed: bool = False
    page_count: int = 0
    elapsed_ms: float = 0.0
    ocr_confidence: Optional[float] = None
    warnings: List[str] = Field(default_factory=list)


class SectionBoundary(BaseModel):
    name: SectionType
    start: int
    end: int
    header_line: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    matched_pattern: str = ""
    context: List[str] = Field(default_factory=list)


class ClassificationResult(BaseModel):
    sections: Dict[SectionType, str] = Field(default_factory=dict)
    boundaries: List[SectionBoundary] = Field(default_factory=list)
    confidence: float = 0.0
    warnings: List[str] = Field(default_factory=list)
    used_fallback: bool = False
    duplicates: List[SectionBoundary] = Field(default_factory=list)  # later headers that lost to the first

    def section(self, name: SectionType) -> str:
        return self.sections.get(name, "")

    def boundary(self, name: SectionType) -> Optional[SectionBoundary]:
        return next((b for b in self.boundaries if b.name == name), None)

    def is_usable(self) -> bool:
        from resume_ingest.core.confidence_calculator import ConfidenceCalculator
        return ConfidenceCalculator.is_usable(self)


class ContactInfo(BaseModel):
    """Contact block. Missing values are empty strings, never None."""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    linkedin: str = ""
    website: str = ""
    summary: str = ""


class WorkExperience(BaseModel):
    id: int = 0
    job_title: str = ""
    employer: str = ""
    location: str = ""
    remote: bool = False
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    current: bool = False
    accomplishments: str = ""  # newline-joined bullet lines

    @model_validator(mode="after")
    def _current_has_no_end(self) -> "WorkExperience":
        if self.current and self.end_date is not None:
            self.end_date = None
        return self

    def is_empty(self) -> bool:
        return not any(
            (v or "").strip()
            for v in (self.job_title, self.employer, self.location, self.accomplishments)
        )


class Education(BaseModel):
    school: str = ""
    location: str = ""
    degree: str = ""
    field: str = ""
    grad_year: str = ""
    grad_month: str = ""


class ParsedResumeData(BaseModel):
    contact: ContactInfo = Field(default_factory=ContactInfo)
    work_experiences: List[WorkExperience] = Field(default_factory=lambda: [WorkExperience(id=1)])
    education: Education = Field(default_factory=Education)
    skills: List[str] = Field(default_factory=list)
    summary: str = ""
    raw_text: str = ""


class ParseDiagnostics(BaseModel):
    """Structured diagnostics that travel with both results and errors."""
    file_name: str = ""
    media_type: str = ""
    strategies_tried: List[StrategyAttempt] = Field(default_factory=list)
    selected_strategy: Optional[ExtractionStrategy] = None
    provenance: Optional[Provenance] = None
    char_counts: Dict[str, int] = Field(default_factory=dict)
    ocr_confidence: Optional[float] = None
    elapsed_ms: float = 0.0
    classification_confidence: float = 0.0
    classifier_warnings: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class ParseResponse(BaseModel):
    resume: ParsedResumeData
    parse_quality: ParseQuality
    confidence: ConfidenceScore = 0.0
    usable: bool = False
    warnings: List[str] = Field(default_factory=list)
    diagnostics: ParseDiagnostics = Field(default_factory=ParseDiagnostics)
