from flask import Blueprint, current_app, jsonify

health_bp = Blueprint("health", __name__)


@health_bp.route("/health", methods=["GET"])
def health():
    client = current_app.extensions["completion_client"]
    return jsonify({"status": "ok", "model": client.model}), 200
