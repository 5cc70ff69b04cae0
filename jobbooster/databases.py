import logging
import os
from datetime import datetime

from jobbooster.extensions import db
from jobbooster.models import CvData, CvUpload, JobData, GeneratedContent, Profile, UserActivity, UserSession

logger = logging.getLogger(__name__)


def _iso(value):
    return value.isoformat() if value else None


def _status(value):
    return value.value if hasattr(value, "value") else value


# ==================== CV DATA ====================

# non-LLM fields a client may write through /api/cv-data
CV_WRITABLE_FIELDS = {
    "firstName": "first_name",
    "lastName": "last_name",
    "fullName": "full_name",
    "email": "email",
    "phone": "phone",
    "nationality": "nationality",
    "linkedinUrl": "linkedin_url",
    "websiteUrl": "website_url",
    "githubUrl": "github_url",
    "isPublic": "is_public",
    "gdprConsent": "gdpr_consent",
    "dataClassification": "data_classification",
}


def cv_data_to_dict(cv: CvData, include_text=True):
    data = {
        "id": cv.id,
        "userId": cv.user_id,
        "fileName": cv.file_name,
        "fileUrl": cv.file_url,
        "fileSize": cv.file_size,
        "mimeType": cv.mime_type,
        "firstName": cv.first_name,
        "lastName": cv.last_name,
        "fullName": cv.full_name,
        "email": cv.email,
        "phone": cv.phone,
        "nationality": cv.nationality,
        "linkedinUrl": cv.linkedin_url,
        "websiteUrl": cv.website_url,
        "githubUrl": cv.github_url,
        "dateOfBirth": _iso(cv.date_of_birth),
        "professionalSummary": cv.professional_summary,
        "technicalSkills": cv.technical_skills or [],
        "softSkills": cv.soft_skills or [],
        "languages": cv.languages or [],
        "certifications": cv.certifications or [],
        "education": cv.education or [],
        "workExperience": cv.work_experience or [],
        "projects": cv.projects or [],
        "processingStatus": _status(cv.processing_status),
        "processingStartedAt": _iso(cv.processing_started_at),
        "processingCompletedAt": _iso(cv.processing_completed_at),
        "processingTime": cv.processing_time,
        "processingError": cv.processing_error,
        "analysisCount": cv.analysis_count,
        "lastAnalyzedAt": _iso(cv.last_analyzed_at),
        "isPublic": cv.is_public,
        "gdprConsent": cv.gdpr_consent,
        "dataClassification": cv.data_classification,
        "isArchived": cv.is_archived,
        "isDeleted": cv.is_deleted,
        "isLatest": cv.is_latest,
        "version": cv.version,
        "metadata": cv.meta or {},
        "createdAt": _iso(cv.created_at),
        "updatedAt": _iso(cv.updated_at),
    }
    if include_text:
        data["extractedText"] = cv.extracted_text
    return data


def find_owned_cv(cv_id, owner_id, include_archived=True):
    """Ambil satu CV yang belum dihapus dan dimiliki owner_id (objek ORM)."""
    query = CvData.query.filter_by(id=cv_id, user_id=owner_id, is_deleted=False)
    if not include_archived:
        query = query.filter_by(is_archived=False)
    return query.first()


def list_cvs(owner_id, include_archived=False, limit=50, offset=0, public_of=None):
    """
    List CV records for an owner. When public_of is given, list that
    user's public CVs instead.
    """
    query = CvData.query.filter_by(is_deleted=False)
    if public_of:
        query = query.filter_by(user_id=public_of, is_public=True)
    else:
        query = query.filter_by(user_id=owner_id)
    if not include_archived:
        query = query.filter_by(is_archived=False)

    total = query.count()
    items = (
        query.order_by(CvData.is_latest.desc(), CvData.created_at.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
    return items, total


def create_cv(owner_id, body, request_id=None, is_authenticated=False):
    cv = CvData(
        user_id=owner_id,
        file_name=body["fileName"],
        file_url=body["fileUrl"],
        file_size=body.get("fileSize"),
        mime_type=body.get("mimeType"),
        extracted_text=body.get("extractedText"),
        is_public=bool(body.get("isPublic", False)),
        gdpr_consent=bool(body.get("gdprConsent", False)) if is_authenticated else False,
        data_classification=body.get("dataClassification") or "internal",
        meta={
            **(body.get("metadata") or {}),
            "createdVia": "api",
            "requestId": request_id,
            "isAuthenticated": is_authenticated,
            "createdAt": datetime.utcnow().isoformat(),
        },
    )
    for key, column in CV_WRITABLE_FIELDS.items():
        if key in ("isPublic", "gdprConsent", "dataClassification"):
            continue
        if body.get(key):
            setattr(cv, column, body[key])

    db.session.add(cv)
    db.session.commit()
    return cv


def update_cv(cv: CvData, body):
    """Apply allowed non-LLM fields; everything else in body is ignored."""
    for key, column in CV_WRITABLE_FIELDS.items():
        if key in body:
            setattr(cv, column, body[key])

    cv.meta = {
        **(cv.meta or {}),
        **(body.get("metadata") or {}),
        "lastUpdatedVia": "api",
        "lastUpdateTime": datetime.utcnow().isoformat(),
    }
    db.session.commit()
    return cv


def soft_delete_cv(cv: CvData, deleted_by):
    cv.is_deleted = True
    cv.deleted_at = datetime.utcnow()
    cv.meta = {
        **(cv.meta or {}),
        "deletedVia": "api",
        "deletedBy": deleted_by,
        "deletionTime": datetime.utcnow().isoformat(),
    }
    db.session.commit()
    return cv


def purge_deleted_cvs(older_than, dry_run=False):
    """Hard-delete soft-deleted CV records whose deleted_at is before older_than.

    Upload rows pointing at those records go in the same commit; their files
    are removed once the commit has succeeded.
    """
    query = CvData.query.filter(CvData.is_deleted.is_(True), CvData.deleted_at < older_than)
    cv_ids = [row.id for row in query.with_entities(CvData.id)]
    if dry_run or not cv_ids:
        return len(cv_ids)

    uploads = CvUpload.query.filter(CvUpload.cv_data_id.in_(cv_ids))
    storage_paths = [row.storage_path for row in uploads.with_entities(CvUpload.storage_path)]
    uploads.delete(synchronize_session=False)
    CvData.query.filter(CvData.id.in_(cv_ids)).delete(synchronize_session=False)
    db.session.commit()

    remove_upload_files(storage_paths)
    return len(cv_ids)


def remove_upload_files(paths):
    for path in paths:
        try:
            if path and os.path.exists(path):
                os.remove(path)
        except OSError as e:
            logger.warning("Could not remove upload %s: %s", path, e)



def purge_expired_sessions(older_than, dry_run=False):
    """Delete session rows that are revoked or were issued before older_than.

    A token whose row is missing counts as revoked, so dropping these rows
    never re-enables a token.
    """
    query = UserSession.query.filter(
        db.or_(UserSession.revoked_at.isnot(None), UserSession.created_at < older_than)
    )
    if dry_run:
        return query.count()
    count = query.delete(synchronize_session=False)
    db.session.commit()
    return count

# ==================== JOB DATA ====================

JOB_WRITABLE_FIELDS = {
    "content": "content",
    "title": "title",
    "company": "company",
    "jobType": "job_type",
    "location": "location",
    "remoteType": "remote_type",
    "salaryRange": "salary_range",
    "experienceLevel": "experience_level",
    "industry": "industry",
    "department": "department",
    "employmentType": "employment_type",
    "dataClassification": "data_classification",
    "isArchived": "is_archived",
}


def job_data_to_dict(job: JobData):
    return {
        "id": job.id,
        "userId": job.user_id,
        "content": job.content,
        "title": job.title,
        "company": job.company,
        "jobType": job.job_type,
        "location": job.location,
        "remoteType": job.remote_type,
        "salaryRange": job.salary_range,
        "experienceLevel": job.experience_level,
        "industry": job.industry,
        "department": job.department,
        "employmentType": job.employment_type,
        "dataClassification": job.data_classification,
        "analysis": job.analysis_json,
        "skills": job.skills_json or [],
        "requirements": job.requirements_json or [],
        "keywords": job.keywords_json or [],
        "analyzedAt": _iso(job.analyzed_at),
        "processingStatus": job.processing_status,
        "isArchived": job.is_archived,
        "createdAt": _iso(job.created_at),
        "updatedAt": _iso(job.updated_at),
    }


def list_jobs(owner_id, page=1, limit=10, archived=False, status=None):
    query = JobData.query.filter_by(user_id=owner_id, is_archived=archived)
    if status:
        query = query.filter_by(processing_status=status)

    total = query.count()
    items = (
        query.order_by(JobData.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def create_job(owner_id, body):
    job = JobData(user_id=owner_id, processing_status="uploaded")
    for key, column in JOB_WRITABLE_FIELDS.items():
        if key in body:
            setattr(job, column, body[key])
    if not job.data_classification:
        job.data_classification = "internal"

    db.session.add(job)
    db.session.commit()
    return job


def update_job(job: JobData, body):
    for key, column in JOB_WRITABLE_FIELDS.items():
        if key in body:
            setattr(job, column, body[key])
    db.session.commit()
    return job


def attach_job_analysis(job: JobData, analysis):
    """
    Attach the LLM analysis to a job record. Only the first analysis is
    kept; returns False if the record already had one.
    """
    if job.analyzed_at is not None:
        return False

    job.analysis_json = analysis
    job.skills_json = analysis.get("skills") or []
    job.requirements_json = analysis.get("requirements") or []
    job.keywords_json = analysis.get("keywords") or []
    job.title = job.title or analysis.get("title")
    job.company = job.company or analysis.get("company")
    job.experience_level = job.experience_level or analysis.get("experienceLevel")
    job.industry = job.industry or analysis.get("industry")
    job.location = job.location or analysis.get("location")
    job.salary_range = job.salary_range or analysis.get("salaryRange")
    job.department = job.department or analysis.get("department")
    job.analyzed_at = datetime.utcnow()
    job.processing_status = "completed"
    db.session.commit()
    return True


# ==================== GENERATED CONTENT ====================

def generated_content_to_dict(item: GeneratedContent):
    return {
        "id": item.id,
        "userId": item.user_id,
        "cvDataId": item.cv_data_id,
        "jobDataId": item.job_data_id,
        "kind": item.content_kind,
        "type": item.type,
        "language": item.language,
        "title": item.title,
        "content": item.content,
        "usage": {
            "promptTokens": item.prompt_tokens,
            "completionTokens": item.completion_tokens,
            "totalTokens": item.total_tokens,
        },
        "generationTime": item.generation_time,
        "wordCount": item.word_count,
        "model": item.model,
        "isArchived": item.is_archived,
        "metadata": item.meta or {},
        "createdAt": _iso(item.created_at),
        "updatedAt": _iso(item.updated_at),
    }


def save_generated_content(owner_id, kind, content, content_type="application", language="en",
                           title=None, cv_data_id=None, job_data_id=None, usage=None,
                           generation_time=None, model=None, metadata=None):
    usage = usage or {}
    item = GeneratedContent(
        user_id=owner_id,
        cv_data_id=cv_data_id,
        job_data_id=job_data_id,
        content_kind=kind,
        type=content_type,
        language=language,
        title=title,
        content=content,
        prompt_tokens=usage.get("prompt_tokens"),
        completion_tokens=usage.get("completion_tokens"),
        total_tokens=usage.get("total_tokens"),
        generation_time=generation_time,
        word_count=len(content.split()),
        model=model,
        meta=metadata,
    )
    db.session.add(item)
    db.session.commit()
    return item


def list_generated_content(owner_id, content_type=None, include_archived=False, limit=50, offset=0):
    query = GeneratedContent.query.filter_by(user_id=owner_id, is_deleted=False)
    if not include_archived:
        query = query.filter_by(is_archived=False)
    if content_type:
        query = query.filter_by(type=content_type)

    total = query.count()
    items = query.order_by(GeneratedContent.created_at.desc()).limit(limit).offset(offset).all()
    return items, total


# ==================== PROFILE / ACTIVITY ====================

def get_or_create_profile(owner_id, email=None, full_name=None):
    """Fungsi helper untuk mencari profile atau membuatnya jika belum ada."""
    profile = Profile.query.filter_by(user_id=owner_id).first()
    if profile:
        return profile

    profile = Profile(
        user_id=owner_id,
        email=email or f"anonymous-{owner_id}@temp.local",
        full_name=full_name or f"Anonymous User {owner_id[:13]}",
        preferences={},
    )
    db.session.add(profile)
    db.session.flush()
    return profile


def log_activity(user_id, action, resource_type=None, metadata=None, subject_hash=None, commit=True):
    activity = UserActivity(
        user_id=user_id,
        subject_hash=subject_hash,
        action=action,
        resource_type=resource_type,
        meta=metadata or {},
    )
    db.session.add(activity)
    if commit:
        db.session.commit()
    return activity


def pagination(total, limit, offset):
    return {
        "total": total,
        "limit": limit,
        "offset": offset,
        "hasMore": offset + limit < total,
    }
