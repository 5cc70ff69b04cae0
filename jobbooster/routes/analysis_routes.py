# jobbooster/routes/analysis_routes.py
import os
import time
import uuid

from flask import Blueprint, current_app, jsonify, request
from werkzeug.utils import secure_filename

from jobbooster.databases import attach_job_analysis
from jobbooster.extensions import db
from jobbooster.logging_setup import current_request_id, request_logger
from jobbooster.models import CvData, CvUpload, JobData
from jobbooster.services.analysis import (
    MIN_JOB_CONTENT_LENGTH, AnalysisShapeError, analyze_cv as run_cv_analysis, analyze_job as run_job_analysis,
    extract_cv_content as run_extraction, flatten_skills,
)
from jobbooster.services.auth import is_anonymous, resolve_owner_id
from jobbooster.services.cv_parser import ALLOWED_MIME_TYPES, extract_text, guess_mime_type
from jobbooster.services.openai_service import CompletionError, get_completion_client
from jobbooster.services.response_parser import ParseError

analysis_bp = Blueprint("analysis", __name__)


@analysis_bp.route("/analyze-cv", methods=["POST"])
def analyze_cv():
    data = request.get_json(silent=True) or {}
    cv_data = data.get("cvData")
    job_offer = data.get("jobOffer")

    if not cv_data or not job_offer:
        return jsonify({"error": "CV data and job offer are required"}), 400
    if not isinstance(cv_data, dict) or not isinstance(job_offer, str):
        return jsonify({"error": "cvData must be an object and jobOffer a string"}), 400

    try:
        result, processing_time = run_cv_analysis(get_completion_client(), cv_data, job_offer, data.get("language"))
    except AnalysisShapeError:
        return jsonify({"error": "Invalid analysis structure from AI service. Expected fields: analysis, jobMatch"}), 500

    return jsonify({"success": True, "result": result, "processingTime": processing_time}), 200


@analysis_bp.route("/analyze-job", methods=["POST"])
def analyze_job():
    log = request_logger(__name__)
    data = request.get_json(silent=True) or {}
    job_content = data.get("jobContent")

    if not job_content or not isinstance(job_content, str):
        return jsonify({"error": "Job content is required and must be a string"}), 400
    if len(job_content.strip()) < MIN_JOB_CONTENT_LENGTH:
        return jsonify({"error": f"Job content must be at least {MIN_JOB_CONTENT_LENGTH} characters long"}), 400

    job = None
    if data.get("jobId"):
        owner_id, _ = resolve_owner_id(data.get("sessionId"))
        job = JobData.query.filter_by(id=data["jobId"], user_id=owner_id).first()
        if not job:
            return jsonify({"error": "Job data not found"}), 404

    outcome, processing_time = run_job_analysis(get_completion_client(), job_content)

    response = {
        "success": True,
        "analysis": outcome.data,
        "processingTime": processing_time,
        "contentLength": len(job_content),
    }
    if outcome.degraded:
        response["degraded"] = True
        response["degradedReason"] = outcome.reason
    elif job is not None:
        if attach_job_analysis(job, outcome.data):
            log.info("Attached analysis to job %s", job.id)
        response["jobId"] = job.id

    return jsonify(response), 200


@analysis_bp.route("/extract-cv-content", methods=["POST"])
def extract_cv_content():
    data = request.get_json(silent=True) or {}
    cv_content = data.get("cvContent")
    if not cv_content or not isinstance(cv_content, str):
        return jsonify({"error": "CV content is required"}), 400

    started = time.perf_counter()
    cv_data, extracted = run_extraction(get_completion_client(), cv_content, data.get("filename"))

    return jsonify({
        "success": True,
        "cvData": cv_data,
        "extractedData": extracted,
        "processingTime": int((time.perf_counter() - started) * 1000),
    }), 200


@analysis_bp.route("/upload-cv", methods=["POST"])
def upload_cv():
    log = request_logger(__name__)
    started = time.perf_counter()

    if "file" not in request.files or request.files["file"].filename == "":
        return jsonify({"error": "No file provided"}), 400

    cv_file = request.files["file"]
    content = cv_file.read()
    max_mb = current_app.config.get("MAX_UPLOAD_MB", 10)

    if len(content) > max_mb * 1024 * 1024:
        return jsonify({"error": f"File size exceeds {max_mb}MB limit"}), 400

    mime_type = guess_mime_type(cv_file.filename, cv_file.mimetype)
    if mime_type not in ALLOWED_MIME_TYPES:
        return jsonify({"error": "Only PDF, DOC, and DOCX files are allowed"}), 400

    text = extract_text(content, mime_type)
    if not text:
        return jsonify({"error": "Could not read any text from the uploaded file"}), 400

    owner_id, _ = resolve_owner_id(request.form.get("sessionId"))
    filename = secure_filename(cv_file.filename) or "cv"

    folder = os.path.join(current_app.config["UPLOAD_FOLDER"], owner_id)
    os.makedirs(folder, exist_ok=True)
    storage_path = os.path.join(folder, f"{uuid.uuid4()}_{filename}")

    try:
        with open(storage_path, "wb") as fh:
            fh.write(content)

        cv = CvData(
            user_id=owner_id,
            file_name=filename,
            file_url=storage_path,
            file_size=len(content),
            mime_type=mime_type,
            extracted_text=text,
            meta={"createdVia": "upload", "requestId": current_request_id()},
        )
        db.session.add(cv)
        db.session.flush()
        db.session.add(CvUpload(
            user_id=owner_id,
            cv_data_id=cv.id,
            file_name=filename,
            file_size=len(content),
            file_type=mime_type,
            storage_path=storage_path,
        ))
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        if os.path.exists(storage_path):
            os.remove(storage_path)
        log.error("Failed to store upload %s: %s", filename, e)
        return jsonify({"error": "Failed to process CV upload"}), 500

    extracted_skills = []
    warning = None
    try:
        _, extracted = run_extraction(get_completion_client(), text, filename)
        extracted_skills = flatten_skills(extracted.get("skills"))
    except (CompletionError, ParseError) as e:
        log.warning("Skill extraction skipped for CV %s: %s", cv.id, e)
        warning = "Skill extraction unavailable; run LLM processing later"

    response = {
        "success": True,
        "cvData": {
            "id": cv.id,
            "filename": filename,
            "size": len(content),
            "mimeType": mime_type,
            "uploadDate": cv.created_at.isoformat() if cv.created_at else None,
            "processedContent": text,
            "status": cv.processing_status.value,
        },
        "processingTime": int((time.perf_counter() - started) * 1000),
        "extractedSkills": extracted_skills,
    }
    if is_anonymous(owner_id):
        response["sessionId"] = owner_id
    if warning:
        response["warning"] = warning
    return jsonify(response), 200
