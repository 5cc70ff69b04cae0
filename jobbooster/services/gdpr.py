# filename: gdpr.py
# location: jobbooster/services/

"""Consent, export and erasure of a user's personal data."""
import csv
import hashlib
import io
import json
import logging
from datetime import datetime

from jobbooster.databases import get_or_create_profile, log_activity, remove_upload_files
from jobbooster.extensions import db
from jobbooster.models import (
    CvData, CvUpload, GeneratedContent, JobData, Profile, User, UserActivity, UserSession,
)

logger = logging.getLogger(__name__)

EXPORT_FORMATS = {
    "json": "application/json",
    "csv": "text/csv",
    "txt": "text/plain",
}

DELETION_OPTIONS = ("deleteProfile", "deleteCvData", "deleteActivityLogs", "deleteCommunications", "deleteSessions")


class GdprDeletionError(Exception):
    """The deletion transaction was rolled back; nothing was removed."""


def subject_hash(user_id):
    return hashlib.sha256(user_id.encode("utf-8")).hexdigest()


def data_summary(user_id):
    return {
        "profile": Profile.query.filter_by(user_id=user_id).count(),
        "cvData": CvData.query.filter_by(user_id=user_id).count(),
        "generatedContent": GeneratedContent.query.filter_by(user_id=user_id).count(),
        "activityLogs": UserActivity.query.filter_by(user_id=user_id).count(),
        "sessions": UserSession.query.filter_by(user_id=user_id).count(),
    }


# ==================== DELETION ====================

def _delete(model, user_id):
    return model.query.filter_by(user_id=user_id).delete(synchronize_session=False)


def delete_sessions(user_id, log):
    count = _delete(UserSession, user_id)
    log.append(f"Deleted {count} user sessions")
    return count


def delete_activity_logs(user_id, log):
    count = _delete(UserActivity, user_id)
    log.append(f"Deleted {count} activity logs")
    return count


def delete_generated_content(user_id, log):
    count = _delete(GeneratedContent, user_id)
    log.append(f"Deleted {count} generated content items")
    return count


def delete_cv_data(user_id, log):
    cv_count = _delete(CvData, user_id)
    log.append(f"Deleted {cv_count} CV data records")
    upload_count = _delete(CvUpload, user_id)
    log.append(f"Deleted {upload_count} CV uploads")
    job_count = _delete(JobData, user_id)
    log.append(f"Deleted {job_count} job records")
    return cv_count + upload_count + job_count


def delete_profile(user_id, log):
    count = _delete(Profile, user_id)
    count += User.query.filter_by(id=user_id).delete(synchronize_session=False)
    log.append("Deleted user profile")
    return count


# (step, enabled-by options). Order matters: the profile goes last since
# every other table references the user by id.
DELETION_STEPS = [
    (delete_sessions, ("deleteSessions",)),
    (delete_activity_logs, ("deleteActivityLogs",)),
    (delete_generated_content, ("deleteCvData", "deleteCommunications")),
    (delete_cv_data, ("deleteCvData",)),
    (delete_profile, ("deleteProfile",)),
]


def deletion_options(body):
    """Every option defaults to on. Raises ValueError for a non-boolean flag."""
    options = {}
    for key in DELETION_OPTIONS:
        value = body.get(key, True)
        if not isinstance(value, bool):
            raise ValueError(f"{key} must be true or false")
        options[key] = value
    return options


def delete_user_data(user_id, options, reason):
    """
    Run the enabled deletion steps in one transaction.

    The audit row is keyed by a hash of the user id instead of the id
    itself, so nothing in the per-user summary survives the erasure.
    Uploaded files are removed from disk only after the commit.
    """
    deletion_log = []
    deleted_records = 0
    storage_paths = []

    try:
        if options.get("deleteCvData"):
            storage_paths = [u.storage_path for u in CvUpload.query.filter_by(user_id=user_id).all()]

        for step, enabled_by in DELETION_STEPS:
            if any(options.get(flag) for flag in enabled_by):
                deleted_records += step(user_id, deletion_log)

        log_activity(
            None,
            "data_deletion",
            resource_type="privacy",
            subject_hash=subject_hash(user_id),
            metadata={
                "reason": reason,
                "deletionOptions": options,
                "deletedRecords": deleted_records,
                "deletionLog": deletion_log,
                "deletionDate": datetime.utcnow().isoformat(),
            },
            commit=False,
        )
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error("Data deletion rolled back for subject %s: %s", subject_hash(user_id)[:12], e)
        raise GdprDeletionError("Failed to delete data") from e

    remove_upload_files(storage_paths)

    logger.info("Deleted %d records for subject %s", deleted_records, subject_hash(user_id)[:12])
    return deleted_records, deletion_log


# ==================== EXPORT ====================

def _iso(value):
    return value.isoformat() if value else None


def collect_user_data(user_id):
    profile = Profile.query.filter_by(user_id=user_id).first()
    user = db.session.get(User, user_id)

    return {
        "exportInfo": {
            "exportDate": datetime.utcnow().isoformat(),
            "userId": user_id,
            "dataVersion": "1.0",
        },
        "profile": {
            "fullName": profile.full_name,
            "email": profile.email,
            "username": profile.username,
            "preferences": profile.preferences or {},
            "gdprConsent": profile.gdpr_consent,
            "consentDate": _iso(profile.consent_date),
            "consentVersion": profile.consent_version,
            "createdAt": _iso(profile.created_at),
            "updatedAt": _iso(profile.updated_at),
            "user": {
                "id": user.id,
                "email": user.email,
                "createdAt": _iso(user.created_at),
                "lastSignInAt": _iso(user.last_sign_in_at),
            } if user else None,
        } if profile else None,
        "cvData": [
            {
                "id": cv.id,
                "fileName": cv.file_name,
                "fileSize": cv.file_size,
                "mimeType": cv.mime_type,
                "processingStatus": cv.processing_status.value if cv.processing_status else None,
                "createdAt": _iso(cv.created_at),
                "updatedAt": _iso(cv.updated_at),
                # raw CV text is not exported
                "hasContent": bool(cv.extracted_text),
            }
            for cv in CvData.query.filter_by(user_id=user_id).order_by(CvData.created_at.desc())
        ],
        "generatedContent": [
            {
                "id": item.id,
                "kind": item.content_kind,
                "type": item.type,
                "title": item.title,
                "content": item.content,
                "createdAt": _iso(item.created_at),
                "updatedAt": _iso(item.updated_at),
            }
            for item in GeneratedContent.query.filter_by(user_id=user_id).order_by(GeneratedContent.created_at.desc())
        ],
        "activityLogs": [
            {
                "id": activity.id,
                "action": activity.action,
                "resourceType": activity.resource_type,
                "createdAt": _iso(activity.created_at),
                "metadata": activity.meta,
            }
            for activity in UserActivity.query.filter_by(user_id=user_id)
            .order_by(UserActivity.created_at.desc()).limit(100)
        ],
        "sessions": [
            {
                "id": session.id,
                "ipAddress": session.ip_address,
                "userAgent": session.user_agent,
                "createdAt": _iso(session.created_at),
                "lastActiveAt": _iso(session.last_active_at),
            }
            for session in UserSession.query.filter_by(user_id=user_id).order_by(UserSession.created_at.desc())
        ],
        "uploads": [
            {
                "id": upload.id,
                "fileName": upload.file_name,
                "fileSize": upload.file_size,
                "fileType": upload.file_type,
                "status": upload.status,
                "createdAt": _iso(upload.created_at),
            }
            for upload in CvUpload.query.filter_by(user_id=user_id).order_by(CvUpload.created_at.desc())
        ],
        "jobData": [
            {
                "id": job.id,
                "title": job.title,
                "company": job.company,
                "content": job.content,
                "createdAt": _iso(job.created_at),
            }
            for job in JobData.query.filter_by(user_id=user_id).order_by(JobData.created_at.desc())
        ],
    }


def to_csv(data):
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(["Data Type", "Field", "Value", "Date"])

    profile = data.get("profile")
    if profile:
        for key, value in profile.items():
            if isinstance(value, dict):
                for sub_key, sub_value in value.items():
                    writer.writerow(["Profile", f"{key}.{sub_key}", sub_value, profile.get("updatedAt") or "N/A"])
            else:
                writer.writerow(["Profile", key, value, profile.get("updatedAt") or "N/A"])

    sections = [
        ("CV Data", "cvData"),
        ("Generated Content", "generatedContent"),
        ("Activity", "activityLogs"),
        ("Session", "sessions"),
        ("Upload", "uploads"),
        ("Job Data", "jobData"),
    ]
    for label, key in sections:
        for index, row in enumerate(data.get(key) or []):
            for field, value in row.items():
                if isinstance(value, (dict, list)):
                    value = json.dumps(value)
                writer.writerow([f"{label} {index + 1}", field, value, row.get("createdAt") or "N/A"])

    return buffer.getvalue()


def to_text(data):
    lines = [
        "USER DATA EXPORT",
        "================",
        f"Export Date: {data['exportInfo']['exportDate']}",
        f"User ID: {data['exportInfo']['userId']}",
        "",
    ]
    profile = data.get("profile")
    if profile:
        lines.append("PROFILE")
        lines.append("-------")
        for key, value in profile.items():
            if not isinstance(value, dict):
                lines.append(f"{key}: {value}")
        lines.append("")

    for title, key in (("CV DATA", "cvData"), ("GENERATED CONTENT", "generatedContent"),
                       ("ACTIVITY LOGS", "activityLogs"), ("SESSIONS", "sessions"),
                       ("UPLOADS", "uploads"), ("JOB DATA", "jobData")):
        rows = data.get(key) or []
        lines.append(f"{title} ({len(rows)})")
        lines.append("-" * len(title))
        for row in rows:
            lines.append(", ".join(f"{k}: {v}" for k, v in row.items() if not isinstance(v, (dict, list))))
        lines.append("")

    return "\n".join(lines)


def export_user_data(user_id, fmt):
    """Returns ``(body, content_type, filename)`` and logs the export."""
    data = collect_user_data(user_id)
    if fmt == "json":
        body = json.dumps(data, indent=2, ensure_ascii=False)
    elif fmt == "csv":
        body = to_csv(data)
    else:
        body = to_text(data)

    filename = f"user-data-export-{datetime.utcnow().date().isoformat()}.{fmt}"
    log_activity(user_id, "data_export", resource_type="privacy", metadata={
        "format": fmt,
        "exportDate": datetime.utcnow().isoformat(),
        "dataSize": len(body),
    })
    return body, EXPORT_FORMATS[fmt], filename


# ==================== CONSENT ====================

def get_consent(user_id):
    profile = Profile.query.filter_by(user_id=user_id).first()
    if not profile:
        return None
    return {
        "consent": profile.preferences or {},
        "consentDate": _iso(profile.consent_date),
        "consentVersion": profile.consent_version,
        "gdprConsent": profile.gdpr_consent,
    }


def _parse_consent_date(value):
    if not value:
        return datetime.utcnow()
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        return datetime.utcnow()


def update_consent(user_id, consent, consent_date=None, consent_version=None, email=None):
    profile = get_or_create_profile(user_id, email=email)
    profile.gdpr_consent = True
    profile.consent_date = _parse_consent_date(consent_date)
    profile.consent_version = consent_version or "1.0"
    profile.preferences = {**consent, "lastUpdated": datetime.utcnow().isoformat()}

    log_activity(user_id, "consent_updated", resource_type="privacy", metadata={
        "consent": consent,
        "consentDate": consent_date,
        "consentVersion": consent_version,
    }, commit=False)
    db.session.commit()
    return profile
