# jobbooster/routes/generation_routes.py
from flask import Blueprint, jsonify, request

from jobbooster.databases import find_owned_cv, save_generated_content
from jobbooster.logging_setup import request_logger
from jobbooster.services.auth import resolve_owner_id
from jobbooster.services.content_generator import (
    COVER_LETTER, EMAIL, content_type_or_default, generate_mail as run_mail, persist_generated,
    stream_cover_letter, stream_email,
)
from jobbooster.services.openai_service import get_completion_client
from jobbooster.services.prompts import resolve_language
from jobbooster.services.streaming import sse_response

generation_bp = Blueprint("generation", __name__)


def _generation_input(data):
    """Validate the common body; returns (error_response, cv_data)."""
    cv_data = data.get("cvData")
    if not cv_data or not isinstance(cv_data, dict):
        return (jsonify({"error": "CV data is required"}), 400), None
    if not data.get("jobOffer") and not data.get("jobAnalysis"):
        return (jsonify({"error": "Job offer or job analysis is required"}), 400), None
    return None, cv_data


def _persistence_callback(data, kind):
    """on_complete for the relay when the client names a stored CV."""
    cv_id = data.get("cvId")
    if not cv_id:
        return None, None

    owner_id, _ = resolve_owner_id(data.get("sessionId"))
    if not find_owned_cv(cv_id, owner_id):
        return None, (jsonify({"error": "CV not found"}), 404)

    client = get_completion_client()
    callback = persist_generated(
        owner_id,
        kind,
        cv_data_id=cv_id,
        job_data_id=data.get("jobId"),
        language=data.get("language"),
        content_type=data.get("type") or "application",
        model=client.model,
    )
    return callback, None


@generation_bp.route("/generate-email", methods=["POST"])
def generate_email():
    data = request.get_json(silent=True) or {}
    error, cv_data = _generation_input(data)
    if error:
        return error

    on_complete, error = _persistence_callback(data, EMAIL)
    if error:
        return error

    chunks = stream_email(
        get_completion_client(),
        cv_data,
        data.get("jobOffer"),
        data.get("language"),
        data.get("type") or "application",
        data.get("jobAnalysis"),
    )
    return sse_response(chunks, on_complete)


@generation_bp.route("/generate-letter", methods=["POST"])
def generate_letter():
    data = request.get_json(silent=True) or {}
    error, cv_data = _generation_input(data)
    if error:
        return error

    on_complete, error = _persistence_callback(data, COVER_LETTER)
    if error:
        return error

    chunks = stream_cover_letter(
        get_completion_client(),
        cv_data,
        data.get("jobOffer"),
        data.get("language"),
        data.get("tone") or "professional",
        data.get("jobAnalysis"),
    )
    return sse_response(chunks, on_complete)


@generation_bp.route("/generate-mail", methods=["POST"])
def generate_mail():
    log = request_logger(__name__)
    data = request.get_json(silent=True) or {}
    cv_data = data.get("cvData")
    job_analysis = data.get("jobAnalysis")

    if not isinstance(cv_data, dict) or not cv_data or not isinstance(job_analysis, dict) or not job_analysis:
        return jsonify({"error": "CV data and job analysis are required"}), 400

    completion, subject = run_mail(
        get_completion_client(), cv_data, job_analysis, data.get("language"), data.get("type") or "application"
    )

    if data.get("cvId"):
        owner_id, _ = resolve_owner_id(data.get("sessionId"))
        if find_owned_cv(data["cvId"], owner_id):
            item = save_generated_content(
                owner_id,
                EMAIL,
                completion.content,
                content_type=content_type_or_default(data.get("type")),
                language=resolve_language(data.get("language")).code,
                title=subject,
                cv_data_id=data["cvId"],
                job_data_id=data.get("jobId"),
                usage=completion.usage,
                generation_time=completion.duration_ms,
                model=completion.model,
            )
            log.info("Saved generated mail %s", item.id)

    return jsonify({
        "content": completion.content,
        "usage": completion.usage,
        "subject": subject,
    }), 200
