from ..extensions import db
from datetime import datetime
import uuid


class UserSession(db.Model):
    __tablename__ = "user_sessions"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(64), nullable=False, index=True)
    jti = db.Column(db.String(64), unique=True, nullable=False)
    ip_address = db.Column(db.String(64))
    user_agent = db.Column(db.String(512))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    last_active_at = db.Column(db.DateTime, default=datetime.utcnow)
    revoked_at = db.Column(db.DateTime)


class UserActivity(db.Model):
    """Audit trail. Rows written after a GDPR erasure carry only subject_hash."""

    __tablename__ = "user_activities"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(64), index=True)
    subject_hash = db.Column(db.String(64))
    action = db.Column(db.String(100), nullable=False)
    resource_type = db.Column(db.String(100))
    meta = db.Column("metadata", db.JSON)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
