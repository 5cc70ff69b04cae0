from ..extensions import db
from datetime import datetime
import uuid


class GeneratedContent(db.Model):
    __tablename__ = "generated_contents"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(64), nullable=False, index=True)
    cv_data_id = db.Column(db.String(36), index=True)
    job_data_id = db.Column(db.String(36), index=True)

    content_kind = db.Column(db.Enum("email", "cover_letter", name="content_kind"), default="email", nullable=False)
    type = db.Column(db.Enum("application", "follow-up", "inquiry", name="content_type"), default="application", nullable=False)
    language = db.Column(db.String(10), default="en")
    title = db.Column(db.String(255))
    content = db.Column(db.Text, nullable=False)

    prompt_tokens = db.Column(db.Integer)
    completion_tokens = db.Column(db.Integer)
    total_tokens = db.Column(db.Integer)
    generation_time = db.Column(db.Integer)
    word_count = db.Column(db.Integer)
    model = db.Column(db.String(100))

    is_archived = db.Column(db.Boolean, default=False, nullable=False)
    is_deleted = db.Column(db.Boolean, default=False, nullable=False)
    meta = db.Column("metadata", db.JSON)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
