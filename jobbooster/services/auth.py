# jobbooster/services/auth.py
import logging
import secrets
from datetime import datetime, timedelta

from flask import current_app, has_request_context, request
from flask_jwt_extended import create_access_token, get_jti, get_jwt_identity, verify_jwt_in_request

from jobbooster.extensions import db, bcrypt
from jobbooster.models import Profile, User, UserSession

logger = logging.getLogger(__name__)

ANONYMOUS_PREFIX = "anon_"


def is_anonymous(owner_id):
    return bool(owner_id) and owner_id.startswith(ANONYMOUS_PREFIX)


def new_anonymous_id():
    return f"{ANONYMOUS_PREFIX}{secrets.token_urlsafe(12)}"


class AuthService:
    @staticmethod
    def _issue_token(user):
        """
        Create a JWT for user and record the matching session row.
        Deleting or revoking that row signs the token out.
        """
        hours = current_app.config.get("JWT_ACCESS_TOKEN_HOURS", 3)
        access_token = create_access_token(
            identity=str(user.id),
            additional_claims={"email": user.email},
            expires_delta=timedelta(hours=hours),
        )

        session = UserSession(
            user_id=user.id,
            jti=get_jti(access_token),
            ip_address=request.remote_addr if has_request_context() else None,
            user_agent=(request.headers.get("User-Agent") or "")[:512] if has_request_context() else None,
        )
        user.last_sign_in_at = datetime.utcnow()
        db.session.add(session)
        db.session.commit()
        return access_token

    @staticmethod
    def authenticate_user(email, password):
        """
        Check email & password using bcrypt.
        Return (token, None) if valid, else (None, error).
        """
        logger.info("Auth attempt: %s", email)

        user = User.query.filter_by(email=email).first()
        if not user or not bcrypt.check_password_hash(user.password, password):
            logger.info("Auth failed for %s", email)
            return None, "Invalid email or password"

        return AuthService._issue_token(user), None

    @staticmethod
    def register(name, email, password):
        """
        Create a new account and its profile.
        Return JWT after successful registration.
        """
        logger.info("Register attempt: %s", email)

        if User.query.filter_by(email=email).first():
            return None, "Email already registered"

        user = User(
            name=name,
            email=email,
            password=bcrypt.generate_password_hash(password).decode("utf-8"),
        )

        try:
            db.session.add(user)
            db.session.flush()
            db.session.add(Profile(user_id=user.id, email=email, full_name=name, preferences={}))
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error("Registration failed for %s: %s", email, e)
            return None, "Registration failed"

        return AuthService._issue_token(user), None

    @staticmethod
    def revoke_session(jti):
        """Mark the session for jti as signed out. Missing sessions are ignored."""
        session = UserSession.query.filter_by(jti=jti).first()
        if session and session.revoked_at is None:
            session.revoked_at = datetime.utcnow()
            db.session.commit()
            return True
        return False


def current_user_id():
    """Identity from an optional bearer token, or None."""
    verify_jwt_in_request(optional=True)
    return get_jwt_identity()


def resolve_owner_id(session_id=None):
    """
    Owner for endpoints that also work without an account: the signed-in
    user, else the client's anonymous session id, else a fresh one.
    Returns (owner_id, is_authenticated).
    """
    user_id = current_user_id()
    if user_id:
        return user_id, True

    session_id = session_id or request.headers.get("X-Session-Id")
    if session_id and is_anonymous(session_id):
        return session_id, False
    return new_anonymous_id(), False
