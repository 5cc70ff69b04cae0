from ..extensions import db
from datetime import datetime
import uuid


class JobData(db.Model):
    __tablename__ = "job_data"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(64), nullable=False, index=True)
    content = db.Column(db.Text, nullable=False)
    title = db.Column(db.String(255))
    company = db.Column(db.String(255))
    job_type = db.Column(db.String(50))
    location = db.Column(db.String(255))
    remote_type = db.Column(db.String(50))
    salary_range = db.Column(db.String(100))
    experience_level = db.Column(db.String(50))
    industry = db.Column(db.String(255))
    department = db.Column(db.String(255))
    employment_type = db.Column(db.String(50))
    data_classification = db.Column(db.String(50), default="internal")

    # attached once, after the first successful analysis
    analysis_json = db.Column(db.JSON)
    skills_json = db.Column(db.JSON)
    requirements_json = db.Column(db.JSON)
    keywords_json = db.Column(db.JSON)
    analyzed_at = db.Column(db.DateTime)

    processing_status = db.Column(db.String(50), default="uploaded")
    is_archived = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
