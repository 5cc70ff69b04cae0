from ..extensions import db
from datetime import datetime
import uuid


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(255))
    email = db.Column(db.String(255), unique=True, nullable=False)
    password = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    last_sign_in_at = db.Column(db.DateTime)

    # for string representation
    def __repr__(self):
        return f"<User {self.email}>"


class Profile(db.Model):
    """Per-owner profile; anonymous owners get a placeholder row too."""

    __tablename__ = "profiles"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(64), unique=True, nullable=False, index=True)
    email = db.Column(db.String(255))
    full_name = db.Column(db.String(255))
    username = db.Column(db.String(100))
    preferences = db.Column(db.JSON, default=dict)

    gdpr_consent = db.Column(db.Boolean, default=False, nullable=False)
    consent_date = db.Column(db.DateTime)
    consent_version = db.Column(db.String(20))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Profile {self.user_id}>"
