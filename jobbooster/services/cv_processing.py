# filename: cv_processing.py
# location: jobbooster/services/

"""LLM extraction pipeline for stored CV records.

Status machine::

    UPLOADED -> PROCESSING -> COMPLETED
                           -> FAILED
    COMPLETED / FAILED -> PROCESSING   (force only)

Every status change is a conditional UPDATE on the current status, so two
requests racing on the same record cannot both enter PROCESSING.
"""
import logging
import time
from datetime import datetime

from jobbooster.extensions import db
from jobbooster.models import CvData, ProcessingStatus
from jobbooster.schemas import (
    Certification, Education, LanguageSkill, Project, SoftSkill, TechnicalSkill,
    WorkExperience, coerce_items, coerce_personal_info,
)
from jobbooster.services.openai_service import CompletionError, UpstreamUnavailable
from jobbooster.services.prompts import build_cv_processing_prompt
from jobbooster.services.response_parser import Failed, ParseError, parse_model_output

logger = logging.getLogger(__name__)

ANALYSIS_VERSION = "1.0.0"

ALLOWED_TRANSITIONS = {
    ProcessingStatus.UPLOADED: {ProcessingStatus.PROCESSING},
    ProcessingStatus.PROCESSING: {ProcessingStatus.COMPLETED, ProcessingStatus.FAILED},
    ProcessingStatus.COMPLETED: set(),
    ProcessingStatus.FAILED: set(),
}

# reachable only when the caller asks for reprocessing
FORCED_TRANSITIONS = {
    ProcessingStatus.COMPLETED: {ProcessingStatus.PROCESSING},
    ProcessingStatus.FAILED: {ProcessingStatus.PROCESSING},
}

PERSONAL_COLUMNS = (
    "first_name", "last_name", "full_name", "email", "phone",
    "nationality", "linkedin_url", "website_url", "github_url",
)


class InvalidTransition(Exception):
    def __init__(self, current, target):
        super().__init__(f"Cannot move CV from {current.value} to {target.value}")
        self.current = current
        self.target = target


class ProcessingConflict(Exception):
    """Another request already moved the record out of the expected status."""


def can_transition(current, target, force=False):
    if target in ALLOWED_TRANSITIONS.get(current, set()):
        return True
    return force and target in FORCED_TRANSITIONS.get(current, set())


def sources_for(target, force=False):
    return [status for status in ProcessingStatus if can_transition(status, target, force)]


def _transition(cv, target, values, force=False):
    """Move cv to target iff its stored status is still a valid source."""
    sources = sources_for(target, force)
    if cv.processing_status not in sources:
        if cv.processing_status == ProcessingStatus.PROCESSING:
            raise ProcessingConflict("CV is already being processed")
        raise InvalidTransition(cv.processing_status, target)

    values = {**values, "processing_status": target, "updated_at": datetime.utcnow()}
    updated = (
        CvData.query
        .filter(CvData.id == cv.id, CvData.processing_status.in_(sources))
        .update({getattr(CvData, key): value for key, value in values.items()},
                synchronize_session=False)
    )
    db.session.commit()
    if updated == 0:
        raise ProcessingConflict("CV is already being processed")

    db.session.refresh(cv)
    return cv


def begin_processing(cv, force=False):
    return _transition(cv, ProcessingStatus.PROCESSING, {
        "processing_started_at": datetime.utcnow(),
        "processing_error": None,
    }, force=force)


def fail_processing(cv, error):
    logger.warning("CV %s processing failed: %s", cv.id, error)
    return _transition(cv, ProcessingStatus.FAILED, {
        "processing_error": str(error)[:512],
        "processing_completed_at": datetime.utcnow(),
    })


def complete_processing(cv, values):
    return _transition(cv, ProcessingStatus.COMPLETED, {
        **values,
        "processing_completed_at": datetime.utcnow(),
    })


def _parse_date(value):
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.strptime(value[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def build_update(cv, result, completion, request_id, elapsed_ms):
    """Map the parsed LLM result onto CvData column values."""
    personal = coerce_personal_info(result.get("personalInfo"))
    analysis = result.get("analysis") if isinstance(result.get("analysis"), dict) else {}

    values = {
        # personal fields keep their stored value when the model has none
        column: personal.get(column) or getattr(cv, column)
        for column in PERSONAL_COLUMNS
    }
    values["date_of_birth"] = _parse_date(personal.get("date_of_birth")) or cv.date_of_birth
    values.update({
        "professional_summary": result.get("professionalSummary"),
        "technical_skills": coerce_items(TechnicalSkill, result.get("technicalSkills")),
        "soft_skills": coerce_items(SoftSkill, result.get("softSkills")),
        "languages": coerce_items(LanguageSkill, result.get("languages")),
        "certifications": coerce_items(Certification, result.get("certifications")),
        "education": coerce_items(Education, result.get("education")),
        "work_experience": coerce_items(WorkExperience, result.get("workExperience")),
        "projects": coerce_items(Project, result.get("projects")),
        "processing_time": elapsed_ms,
        "analysis_count": (cv.analysis_count or 0) + 1,
        "last_analyzed_at": datetime.utcnow(),
    })

    values["meta"] = {
        **(cv.meta or {}),
        "llmProcessing": {
            "requestId": request_id,
            "model": completion.model,
            "processingTime": completion.duration_ms,
            "timestamp": datetime.utcnow().isoformat(),
            "analysisVersion": ANALYSIS_VERSION,
        },
        "analysisScores": {
            "completenessScore": analysis.get("completenessScore"),
            "readabilityScore": analysis.get("readabilityScore"),
            "atsScore": analysis.get("atsScore"),
            "overallQuality": analysis.get("overallQuality"),
        },
        "careerLevel": analysis.get("careerLevel"),
        "industry": analysis.get("industry"),
        "yearsOfExperience": analysis.get("yearsOfExperience"),
        "improvementSuggestions": analysis.get("improvementSuggestions"),
        "usage": completion.usage,
    }
    return values


def process_cv(cv, client, request_id=None, force=False):
    """Run the full extraction for one CV record.

    Returns ``(cv, result)`` where ``result`` is the parsed model output.
    Raises ``ProcessingConflict``/``InvalidTransition`` before any LLM
    call, and re-raises completion and parse errors after marking the
    record FAILED.
    """
    started = time.perf_counter()
    begin_processing(cv, force=force)
    logger.info("Processing CV %s (%d chars)", cv.id, len(cv.extracted_text or ""))

    try:
        messages = build_cv_processing_prompt(cv.id, cv.file_name, cv.extracted_text)
        completion = client.complete(messages, temperature=0.1, max_tokens=8000)

        outcome = parse_model_output(completion.content)
        if isinstance(outcome, Failed):
            raise ParseError(outcome.reason)

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        values = build_update(cv, outcome.data, completion, request_id, elapsed_ms)
    except UpstreamUnavailable:
        fail_processing(cv, "AI service unavailable")
        raise
    except ParseError:
        fail_processing(cv, "Invalid response format from AI service")
        raise
    except CompletionError as e:
        fail_processing(cv, e)
        raise
    except Exception as e:
        db.session.rollback()
        fail_processing(cv, e)
        raise

    complete_processing(cv, values)
    logger.info(
        "CV %s processed: %d technical skills, %d experiences",
        cv.id, len(cv.technical_skills or []), len(cv.work_experience or []),
    )
    return cv, outcome.data
