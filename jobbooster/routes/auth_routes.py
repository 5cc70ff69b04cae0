from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required, get_jwt

from jobbooster.logging_setup import request_logger
from jobbooster.services.auth import AuthService

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/register", methods=["POST"])
def register():
    log = request_logger(__name__)
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "No JSON data provided"}), 400

    name = (data.get("name") or "").strip()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    if not email or not password:
        return jsonify({"error": "Email and password are required"}), 400
    if len(password) < 8:
        return jsonify({"error": "Password must be at least 8 characters long"}), 400

    token, error = AuthService.register(name or email.split("@")[0], email, password)
    if not token:
        status = 409 if error == "Email already registered" else 500
        return jsonify({"error": error}), status

    log.info("Registered %s", email)
    return jsonify({"access_token": token}), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "No JSON data provided"}), 400

    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    if not email or not password:
        return jsonify({"error": "Email and password are required"}), 400

    token, error = AuthService.authenticate_user(email, password)
    if not token:
        return jsonify({"error": error}), 401

    return jsonify({"access_token": token}), 200


@auth_bp.route("/logout", methods=["POST"])
@jwt_required()
def logout():
    AuthService.revoke_session(get_jwt()["jti"])
    return jsonify({"success": True, "message": "Signed out"}), 200
