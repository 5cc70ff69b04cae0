from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required, get_jwt_identity

from jobbooster.databases import create_job, job_data_to_dict, list_jobs, update_job
from jobbooster.extensions import db
from jobbooster.logging_setup import request_logger
from jobbooster.models import JobData

job_data_bp = Blueprint("job_data", __name__)


def _owned_job(job_id):
    return JobData.query.filter_by(id=job_id, user_id=get_jwt_identity()).first()


@job_data_bp.route("", methods=["GET"])
@jwt_required()
def get_job_list():
    page = max(1, request.args.get("page", 1, type=int))
    limit = max(1, min(request.args.get("limit", 10, type=int), 100))
    archived = request.args.get("archived") == "true"

    items, total = list_jobs(get_jwt_identity(), page, limit, archived, request.args.get("status"))
    return jsonify({
        "data": [job_data_to_dict(job) for job in items],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
    }), 200


@job_data_bp.route("", methods=["POST"])
@jwt_required()
def create_job_data():
    body = request.get_json(silent=True) or {}
    if not body.get("content"):
        return jsonify({"error": "Content is required"}), 400

    try:
        job = create_job(get_jwt_identity(), body)
    except Exception as e:
        db.session.rollback()
        request_logger(__name__).error("Error creating job data: %s", e)
        return jsonify({"error": "Failed to create job data"}), 500

    return jsonify(job_data_to_dict(job)), 201


@job_data_bp.route("/<job_id>", methods=["GET"])
@jwt_required()
def get_job_data(job_id):
    job = _owned_job(job_id)
    if not job:
        return jsonify({"error": "Job data not found"}), 404
    return jsonify(job_data_to_dict(job)), 200


@job_data_bp.route("/<job_id>", methods=["PUT"])
@jwt_required()
def update_job_data(job_id):
    job = _owned_job(job_id)
    if not job:
        return jsonify({"error": "Job data not found"}), 404

    body = request.get_json(silent=True) or {}
    if "content" in body and not body["content"]:
        return jsonify({"error": "Content cannot be empty"}), 400

    update_job(job, body)
    return jsonify(job_data_to_dict(job)), 200


@job_data_bp.route("/<job_id>", methods=["DELETE"])
@jwt_required()
def delete_job_data(job_id):
    job = _owned_job(job_id)
    if not job:
        return jsonify({"error": "Job data not found"}), 404

    db.session.delete(job)
    db.session.commit()
    return jsonify({"message": "Job data deleted successfully"}), 200
