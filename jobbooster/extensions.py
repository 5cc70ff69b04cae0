from flask import jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_bcrypt import Bcrypt
from flask_cors import CORS

cors = CORS()

db = SQLAlchemy()
migrate = Migrate()

# JWT accounts; each token is backed by a row in user_sessions
jwt = JWTManager()

bcrypt = Bcrypt()


@jwt.token_in_blocklist_loader
def is_token_revoked(jwt_header, jwt_payload):
    """A token is only valid while its session row exists and is not revoked."""
    from jobbooster.models import UserSession

    session = UserSession.query.filter_by(jti=jwt_payload["jti"]).first()
    return session is None or session.revoked_at is not None


@jwt.unauthorized_loader
def missing_token(reason):
    return jsonify({"error": "Unauthorized"}), 401


@jwt.invalid_token_loader
def invalid_token(reason):
    return jsonify({"error": "Invalid token"}), 401


@jwt.expired_token_loader
def expired_token(jwt_header, jwt_payload):
    return jsonify({"error": "Token has expired"}), 401


@jwt.revoked_token_loader
def revoked_token(jwt_header, jwt_payload):
    return jsonify({"error": "Session has been signed out"}), 401
