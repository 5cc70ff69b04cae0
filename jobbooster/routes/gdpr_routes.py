from flask import Blueprint, Response, jsonify, request
from flask_jwt_extended import get_jwt, get_jwt_identity, jwt_required

from jobbooster.logging_setup import request_logger
from jobbooster.services.auth import AuthService
from jobbooster.services.gdpr import (
    EXPORT_FORMATS, GdprDeletionError, data_summary, delete_user_data, deletion_options,
    export_user_data, get_consent, update_consent,
)

gdpr_bp = Blueprint("gdpr", __name__)


@gdpr_bp.route("/delete", methods=["GET"])
@jwt_required()
def deletion_preview():
    return jsonify({"dataSummary": data_summary(get_jwt_identity())}), 200


@gdpr_bp.route("/delete", methods=["POST"])
@jwt_required()
def delete_data():
    log = request_logger(__name__)
    body = request.get_json(silent=True) or {}
    reason = body.get("reason") or ""
    if not isinstance(reason, str) or not reason.strip():
        return jsonify({"error": "Deletion reason is required"}), 400

    try:
        options = deletion_options(body)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    user_id = get_jwt_identity()
    try:
        deleted_records, deletion_log = delete_user_data(user_id, options, reason.strip())
    except GdprDeletionError:
        return jsonify({"error": "Failed to delete data"}), 500

    # sign out; a no-op when the session rows were part of the deletion
    AuthService.revoke_session(get_jwt()["jti"])
    log.info("Data deletion completed: %d records", deleted_records)

    return jsonify({
        "success": True,
        "message": "Data deleted successfully",
        "deletedRecords": deleted_records,
        "deletionLog": deletion_log,
    }), 200


@gdpr_bp.route("/export", methods=["POST"])
@jwt_required()
def export_data():
    body = request.get_json(silent=True) or {}
    fmt = body.get("format", "json")
    if fmt not in EXPORT_FORMATS:
        return jsonify({"error": "Invalid format. Must be json, csv, or txt"}), 400

    content, content_type, filename = export_user_data(get_jwt_identity(), fmt)
    return Response(
        content,
        mimetype=content_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@gdpr_bp.route("/consent", methods=["GET"])
@jwt_required()
def consent_status():
    consent = get_consent(get_jwt_identity())
    if consent is None:
        return jsonify({"error": "Profile not found"}), 404
    return jsonify(consent), 200


@gdpr_bp.route("/consent", methods=["POST"])
@jwt_required()
def save_consent():
    body = request.get_json(silent=True) or {}
    consent = body.get("consent")
    if not consent or not isinstance(consent, dict):
        return jsonify({"error": "Invalid consent data"}), 400

    update_consent(
        get_jwt_identity(),
        consent,
        consent_date=body.get("consentDate"),
        consent_version=body.get("consentVersion"),
        email=get_jwt().get("email"),
    )
    return jsonify({"success": True, "message": "Consent updated successfully"}), 200
