"""
Result assembly and validation.

Merges the extractor outputs into one ParsedResumeData, fills safe defaults,
and reports what is missing as warnings. Nothing here raises on incomplete
data.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from resume_ingest.core.schemas import ContactInfo, Education, ParsedResumeData, WorkExperience
from resume_ingest.core.skills_parser import MAX_SKILLS

logger = logging.getLogger(__name__)


def dedupe_skills(skills: Sequence[str]) -> List[str]:
    """Drop blank and case-insensitive duplicate skills, keeping the first spelling."""
    seen = set()
    out: List[str] = []
    for s in skills:
        s = (s or "").strip()
        if not s or s.lower() in seen:
            continue
        seen.add(s.lower())
        out.append(s)
    return out


def _clean_experiences(experiences: Sequence[WorkExperience]) -> List[WorkExperience]:
    kept: List[WorkExperience] = []
    for exp in experiences:
        if exp.is_empty():
            continue
        update = {"id": len(kept) + 1}
        if exp.current:
            update["end_date"] = None
        kept.append(exp.model_copy(update=update))
    if not kept:
        kept = [WorkExperience(id=1)]
    return kept


def assemble_resume(
    contact: Optional[ContactInfo] = None,
    experiences: Sequence[WorkExperience] = (),
    education: Optional[Education] = None,
    skills: Sequence[str] = (),
    summary: str = "",
    raw_text: str = "",
) -> Tuple[ParsedResumeData, List[str]]:
    """
    Build the final record.

    Returns (resume, warnings). Empty experiences are dropped and the rest
    renumbered from 1; there is always at least one experience entry.
    """
    warnings: List[str] = []
    summary = (summary or "").strip()

    contact = (contact or ContactInfo()).model_copy(update={"summary": summary})
    work = _clean_experiences(experiences)
    education = (education or Education()).model_copy()

    unique_skills = dedupe_skills(skills)
    if len(unique_skills) > MAX_SKILLS:
        warnings.append(
            f"Found {len(unique_skills)} skills; kept the first {MAX_SKILLS} (the rest are likely noise)"
        )
        unique_skills = unique_skills[:MAX_SKILLS]

    if not (contact.first_name or contact.last_name):
        warnings.append("No name found")
    if not contact.email:
        warnings.append("No email address found")
    if not contact.phone:
        warnings.append("No phone number found")
    if not any(w.job_title for w in work):
        warnings.append("No work experience with a job title found")
    if not (education.school or education.degree):
        warnings.append("No education found")
    if not unique_skills:
        warnings.append("No skills found")

    resume = ParsedResumeData(
        contact=contact,
        work_experiences=work,
        education=education,
        skills=unique_skills,
        summary=summary,
        raw_text=raw_text or "",
    )
    logger.debug(
        "Assembled resume: %d experiences, %d skills, %d warnings",
        len(work), len(unique_skills), len(warnings),
    )
    return resume, warnings
