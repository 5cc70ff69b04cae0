# jobbooster/routes/cv_data_routes.py
import time

from flask import Blueprint, jsonify, request

from jobbooster.databases import (
    create_cv, cv_data_to_dict, find_owned_cv, get_or_create_profile, list_cvs, pagination,
    soft_delete_cv, update_cv,
)
from jobbooster.extensions import db
from jobbooster.logging_setup import current_request_id, request_logger
from jobbooster.models import CvData, ProcessingStatus
from jobbooster.services.auth import resolve_owner_id
from jobbooster.services.cv_processing import InvalidTransition, ProcessingConflict, process_cv
from jobbooster.services.openai_service import UpstreamUnavailable, get_completion_client
from jobbooster.services.response_parser import ParseError

cv_data_bp = Blueprint("cv_data", __name__)


def _elapsed(started):
    return int((time.perf_counter() - started) * 1000)


@cv_data_bp.route("", methods=["GET"])
def get_cv_data():
    started = time.perf_counter()
    owner_id, is_authenticated = resolve_owner_id(request.args.get("sessionId"))
    include_archived = request.args.get("includeArchived") == "true"

    cv_id = request.args.get("id")
    if cv_id:
        cv = find_owned_cv(cv_id, owner_id, include_archived=include_archived)
        if not cv:
            return jsonify({"error": "CV data not found"}), 404
        return jsonify({"success": True, "data": cv_data_to_dict(cv), "processingTime": _elapsed(started)}), 200

    limit = max(1, min(request.args.get("limit", 50, type=int), 100))
    offset = max(0, request.args.get("offset", 0, type=int))

    # signed-in users may browse another user's public CVs
    user_id = request.args.get("userId")
    public_of = user_id if user_id and is_authenticated and user_id != owner_id else None

    items, total = list_cvs(owner_id, include_archived, limit, offset, public_of=public_of)
    return jsonify({
        "success": True,
        "data": [cv_data_to_dict(cv, include_text=False) for cv in items],
        "pagination": pagination(total, limit, offset),
        "processingTime": _elapsed(started),
    }), 200


@cv_data_bp.route("", methods=["POST"])
def create_cv_data():
    started = time.perf_counter()
    body = request.get_json(silent=True) or {}
    if not body.get("fileName") or not body.get("fileUrl"):
        return jsonify({"error": "fileName and fileUrl are required"}), 400

    owner_id, is_authenticated = resolve_owner_id(body.get("sessionId"))
    try:
        cv = create_cv(owner_id, body, current_request_id(), is_authenticated)
    except Exception as e:
        db.session.rollback()
        request_logger(__name__).error("Error creating CV data: %s", e)
        return jsonify({"error": "Failed to create CV data"}), 500

    return jsonify({"success": True, "data": cv_data_to_dict(cv), "processingTime": _elapsed(started)}), 200


@cv_data_bp.route("", methods=["PUT"])
def update_cv_data():
    started = time.perf_counter()
    body = request.get_json(silent=True) or {}
    if not body.get("id"):
        return jsonify({"error": "CV ID is required for update"}), 400

    owner_id, _ = resolve_owner_id(body.get("sessionId"))
    cv = find_owned_cv(body["id"], owner_id)
    if not cv:
        return jsonify({"error": "CV not found or no permission to update"}), 404

    try:
        update_cv(cv, body)
    except Exception as e:
        db.session.rollback()
        request_logger(__name__).error("Error updating CV %s: %s", cv.id, e)
        return jsonify({"error": "Failed to update CV data"}), 500

    return jsonify({"success": True, "data": cv_data_to_dict(cv), "processingTime": _elapsed(started)}), 200


@cv_data_bp.route("", methods=["DELETE"])
def delete_cv_data():
    cv_id = request.args.get("id")
    if not cv_id:
        return jsonify({"error": "CV ID is required for deletion"}), 400

    owner_id, is_authenticated = resolve_owner_id(request.args.get("sessionId"))
    cv = find_owned_cv(cv_id, owner_id)
    if not cv:
        return jsonify({"error": "CV not found or no permission to delete"}), 404

    soft_delete_cv(cv, owner_id if is_authenticated else "anonymous")
    return jsonify({"success": True, "message": "CV deleted successfully", "data": {"id": cv.id}}), 200


@cv_data_bp.route("/llm-process", methods=["POST"])
def llm_process():
    log = request_logger(__name__)
    started = time.perf_counter()

    body = request.get_json(silent=True)
    if body is None:
        return jsonify({"error": "Invalid JSON in request body"}), 400
    if not isinstance(body, dict):
        return jsonify({"error": "Request body must be a valid JSON object"}), 400

    cv_id = body.get("cvId")
    force = body.get("forceReprocess", False)
    if not isinstance(cv_id, str) or not cv_id.strip():
        return jsonify({"error": "CV ID is required and must be a non-empty string"}), 400
    if not isinstance(force, bool):
        return jsonify({"error": "forceReprocess must be a boolean"}), 400

    owner_id, is_authenticated = resolve_owner_id(body.get("sessionId"))
    if not is_authenticated:
        get_or_create_profile(owner_id)
        db.session.commit()

    cv = CvData.query.filter_by(id=cv_id, user_id=owner_id, is_deleted=False).first()
    if not cv:
        log.warning("CV %s not found for owner", cv_id)
        return jsonify({"error": "CV not found or no permission to process"}), 404

    if not force and cv.processing_status == ProcessingStatus.COMPLETED:
        return jsonify({
            "success": True,
            "data": cv_data_to_dict(cv),
            "message": "CV already processed",
            "processingTime": _elapsed(started),
        }), 200

    try:
        cv, analysis = process_cv(cv, get_completion_client(), current_request_id(), force=force)
    except ProcessingConflict as e:
        return jsonify({"error": str(e)}), 409
    except InvalidTransition:
        return jsonify({"error": "CV processing failed previously; set forceReprocess to retry"}), 409
    except UpstreamUnavailable:
        return jsonify({"error": "AI service temporarily unavailable. Please try again later."}), 503
    except ParseError:
        return jsonify({"error": "Invalid response format from AI service"}), 500

    return jsonify({
        "success": True,
        "data": cv_data_to_dict(cv),
        "analysis": analysis,
        "processingTime": _elapsed(started),
        "llmProcessingTime": cv.meta["llmProcessing"]["processingTime"],
    }), 200
