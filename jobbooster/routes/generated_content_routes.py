from datetime import datetime

from flask import Blueprint, jsonify, request

from jobbooster.databases import (
    generated_content_to_dict, list_generated_content, pagination, save_generated_content,
)
from jobbooster.extensions import db
from jobbooster.logging_setup import request_logger
from jobbooster.models import GeneratedContent
from jobbooster.services.auth import resolve_owner_id
from jobbooster.services.content_generator import COVER_LETTER, EMAIL
from jobbooster.services.prompts import EMAIL_TYPES, resolve_language

generated_content_bp = Blueprint("generated_content", __name__)


@generated_content_bp.route("", methods=["GET"])
def get_generated_content():
    owner_id, _ = resolve_owner_id(request.args.get("sessionId"))
    limit = max(1, min(request.args.get("limit", 50, type=int), 100))
    offset = max(0, request.args.get("offset", 0, type=int))

    items, total = list_generated_content(
        owner_id,
        content_type=request.args.get("type"),
        include_archived=request.args.get("includeArchived") == "true",
        limit=limit,
        offset=offset,
    )
    return jsonify({
        "success": True,
        "data": [generated_content_to_dict(item) for item in items],
        "pagination": pagination(total, limit, offset),
    }), 200


@generated_content_bp.route("", methods=["POST"])
def create_generated_content():
    body = request.get_json(silent=True) or {}
    content_type = body.get("type")
    content = body.get("content")
    kind = body.get("kind") or EMAIL

    if not content_type or not content:
        return jsonify({"error": "Missing required fields: type and content"}), 400
    if content_type not in EMAIL_TYPES or kind not in (EMAIL, COVER_LETTER):
        return jsonify({"error": "Invalid content type"}), 400

    owner_id, _ = resolve_owner_id(body.get("sessionId"))
    try:
        item = save_generated_content(
            owner_id,
            kind,
            content,
            content_type=content_type,
            language=resolve_language(body.get("language")).code,
            title=body.get("title"),
            cv_data_id=body.get("cvDataId"),
            job_data_id=body.get("jobDataId"),
            metadata=body.get("metadata"),
        )
    except Exception as e:
        db.session.rollback()
        request_logger(__name__).error("Failed to create generated content: %s", e)
        return jsonify({"error": "Failed to create generated content"}), 500

    return jsonify({"success": True, "data": generated_content_to_dict(item)}), 200


@generated_content_bp.route("/<content_id>", methods=["DELETE"])
def delete_generated_content(content_id):
    owner_id, _ = resolve_owner_id(request.args.get("sessionId"))
    item = GeneratedContent.query.filter_by(id=content_id, user_id=owner_id, is_deleted=False).first()
    if not item:
        return jsonify({"error": "Generated content not found"}), 404

    item.is_deleted = True
    item.meta = {**(item.meta or {}), "deletedAt": datetime.utcnow().isoformat()}
    db.session.commit()
    return jsonify({"success": True, "message": "Generated content deleted"}), 200
