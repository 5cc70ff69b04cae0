from ..extensions import db
from datetime import datetime
import enum
import uuid


class ProcessingStatus(str, enum.Enum):
    UPLOADED = "UPLOADED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class CvData(db.Model):
    __tablename__ = "cv_data"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # authenticated user id or anonymous session id (anon_...)
    user_id = db.Column(db.String(64), nullable=False, index=True)

    file_name = db.Column(db.String(255), nullable=False)
    file_url = db.Column(db.String(512), nullable=False)
    file_size = db.Column(db.Integer)
    mime_type = db.Column(db.String(255))
    extracted_text = db.Column(db.Text)

    first_name = db.Column(db.String(255))
    last_name = db.Column(db.String(255))
    full_name = db.Column(db.String(255))
    email = db.Column(db.String(255))
    phone = db.Column(db.String(50))
    nationality = db.Column(db.String(100))
    linkedin_url = db.Column(db.String(512))
    website_url = db.Column(db.String(512))
    github_url = db.Column(db.String(512))
    date_of_birth = db.Column(db.Date)

    # LLM-derived fields, only written by the processing pipeline
    professional_summary = db.Column(db.Text)
    technical_skills = db.Column(db.JSON, default=list)
    soft_skills = db.Column(db.JSON, default=list)
    languages = db.Column(db.JSON, default=list)
    certifications = db.Column(db.JSON, default=list)
    education = db.Column(db.JSON, default=list)
    work_experience = db.Column(db.JSON, default=list)
    projects = db.Column(db.JSON, default=list)

    processing_status = db.Column(
        db.Enum(ProcessingStatus, name="processing_status"),
        default=ProcessingStatus.UPLOADED,
        nullable=False,
    )
    processing_started_at = db.Column(db.DateTime)
    processing_completed_at = db.Column(db.DateTime)
    processing_time = db.Column(db.Integer)
    processing_error = db.Column(db.String(512))
    analysis_count = db.Column(db.Integer, default=0, nullable=False)
    last_analyzed_at = db.Column(db.DateTime)

    is_public = db.Column(db.Boolean, default=False, nullable=False)
    gdpr_consent = db.Column(db.Boolean, default=False, nullable=False)
    data_classification = db.Column(db.String(50), default="internal")
    is_archived = db.Column(db.Boolean, default=False, nullable=False)
    is_deleted = db.Column(db.Boolean, default=False, nullable=False)
    deleted_at = db.Column(db.DateTime)
    is_latest = db.Column(db.Boolean, default=True, nullable=False)
    version = db.Column(db.Integer, default=1, nullable=False)

    meta = db.Column("metadata", db.JSON, default=dict)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<CvData {self.id} {self.processing_status}>"


class CvUpload(db.Model):
    __tablename__ = "cv_uploads"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(64), nullable=False, index=True)
    cv_data_id = db.Column(db.String(36), index=True)
    file_name = db.Column(db.String(255))
    file_size = db.Column(db.Integer)
    file_type = db.Column(db.String(255))
    storage_path = db.Column(db.String(512), nullable=False)
    status = db.Column(db.String(50), default="uploaded")
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
