"""
Confidence scoring for section classification and extracted fields.

Confidence is a heuristic in [0, 1], not a calibrated probability. It drives
warnings and the usable / parse-quality verdicts, never exceptions.

Confidence Scale:
  1.0   = Exact match (regex, known value)
  0.9   = Very high confidence (direct header match)
  0.7   = Medium-high confidence (heuristic with good signals)
  0.5   = Low-medium confidence (ambiguous but extractable)
  0.4   = Keyword-density fallback, no headers found
  <0.5  = Low confidence (should be surfaced to the user)
"""

import re
from typing import Dict, Iterable, Optional, Sequence, Tuple

from resume_ingest.core.schemas import ClassificationResult, ParseQuality, SectionBoundary, SectionType


class ConfidenceCalculator:
    """Central place for all confidence logic."""

    # ---- Section classification ------------------------------------------

    @staticmethod
    def contextual(matched_weight: float, total_weight: float) -> float:
        """Share of a section's contextual rule weight that matched."""
        if total_weight <= 0:
            return 0.0
        return matched_weight / total_weight

    @staticmethod
    def keyword_boost(line: str, keywords: Iterable[str], step: float = 0.1, cap: float = 0.3) -> float:
        """Whole-word keyword hits; "work" does not count inside "Networking"."""
        hits = sum(1 for k in keywords if re.search(r"\b" + re.escape(k) + r"\b", line, re.IGNORECASE))
        return min(cap, hits * step)

    @staticmethod
    def header(base: float, boost: float) -> float:
        return min(1.0, base + boost)

    @staticmethod
    def overall(boundaries: Sequence[SectionBoundary]) -> float:
        """Mean boundary confidence, 0 when nothing was found."""
        if not boundaries:
            return 0.0
        return sum(b.confidence for b in boundaries) / len(boundaries)

    @staticmethod
    def is_usable(result: ClassificationResult) -> bool:
        """
        A classification is usable when it found contact or experience content,
        its overall confidence is above 0.3, and it raised fewer than 5 warnings.
        Callers may proceed anyway but should flag the result as low confidence.
        """
        has_essential = bool(result.sections.get(SectionType.CONTACT) or result.sections.get(SectionType.EXPERIENCE))
        return has_essential and result.confidence > 0.3 and len(result.warnings) < 5

    @staticmethod
    def ocr_warning(confidence: float, low: float = 50.0, moderate: float = 70.0) -> Optional[str]:
        """Warning for a mean Tesseract word confidence (0-100), or None when it is fine."""
        if confidence < low:
            return f"OCR confidence is low ({confidence:.0f}%); recognized text may be inaccurate"
        if confidence < moderate:
            return f"OCR confidence is moderate ({confidence:.0f}%); some text may be inaccurate"
        return None

    # ---- Extracted fields -----------------------------------------------

    @staticmethod
    def email(email_value: str) -> Tuple[float, str]:
        if not email_value:
            return 0.0, "no_email_found"
        if not re.match(r"^[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}$", email_value, re.IGNORECASE):
            return 0.4, "invalid_email_format"
        return 1.0, "regex_exact"

    @staticmethod
    def phone(phone_value: str) -> Tuple[float, str]:
        if not phone_value:
            return 0.0, "no_phone_found"
        digits_only = re.sub(r"\D", "", phone_value)
        if len(digits_only) < 7:
            return 0.3, "too_few_digits"
        return 1.0, "regex_exact"

    @staticmethod
    def full_name(first_name: str, last_name: str) -> Tuple[float, str]:
        name = f"{first_name} {last_name}".strip()
        if not name:
            return 0.0, "no_name_found"
        if any(c.isdigit() for c in name):
            return 0.3, "name_contains_digits"
        if not last_name:
            return 0.6, "single_token_name"
        return 0.9, "first_and_last"

    @staticmethod
    def calculate_overall_parse_quality(
        classification_confidence: float,
        usable: bool,
        field_confidences: Dict[str, float],
    ) -> ParseQuality:
        """
        Determine overall parse quality.

        Quality tiers:
          "high"   : classification confidence >= 0.8 and name, email, phone all found
          "medium" : classification is usable
          "low"    : Otherwise
        """
        core_fields = ["full_name", "email", "phone"]
        core_found = all(field_confidences.get(f, 0.0) > 0.0 for f in core_fields)

        if classification_confidence >= 0.8 and core_found:
            return "high"
        elif usable:
            return "medium"
        else:
            return "low"
