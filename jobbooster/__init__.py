from flask import Flask, jsonify, request
from config import Config
from .extensions import *
from .models import *
from .logging_setup import init_logging, request_logger
from .routes.auth_routes import auth_bp
from .routes.analysis_routes import analysis_bp
from .routes.generation_routes import generation_bp
from .routes.cv_data_routes import cv_data_bp
from .routes.job_data_routes import job_data_bp
from .routes.generated_content_routes import generated_content_bp
from .routes.gdpr_routes import gdpr_bp
from .routes.health_routes import health_bp
from .services.openai_service import CompletionClient, CompletionError, UpstreamUnavailable
from .services.response_parser import ParseError
from .services.cv_processing import InvalidTransition, ProcessingConflict
from .services.gdpr import GdprDeletionError
from .database.seed.seed_all import seed_all
from .database.retention import purge_deleted, purge_sessions


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    init_logging(app)

    # Allow CORS from the web client
    cors.init_app(app, resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}})

    # extensions initialization
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    bcrypt.init_app(app)

    app.extensions["completion_client"] = CompletionClient.from_config(app.config)

    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(analysis_bp, url_prefix="/api")
    app.register_blueprint(generation_bp, url_prefix="/api")
    app.register_blueprint(health_bp, url_prefix="/api")
    app.register_blueprint(cv_data_bp, url_prefix="/api/cv-data")
    app.register_blueprint(job_data_bp, url_prefix="/api/job-data")
    app.register_blueprint(generated_content_bp, url_prefix="/api/generated-content")
    app.register_blueprint(gdpr_bp, url_prefix="/api/gdpr")

    register_error_handlers(app)

    app.cli.add_command(seed_all)
    app.cli.add_command(purge_deleted)
    app.cli.add_command(purge_sessions)

    return app


def register_error_handlers(app):
    @app.errorhandler(UpstreamUnavailable)
    def upstream_unavailable(e):
        return jsonify({"error": "AI service temporarily unavailable. Please try again later."}), 503

    @app.errorhandler(CompletionError)
    def completion_failed(e):
        return jsonify({"error": str(e)}), 500

    @app.errorhandler(ParseError)
    def parse_failed(e):
        request_logger(__name__).warning("Unparseable model output: %s", e)
        return jsonify({"error": "Invalid response format from AI service"}), 500

    @app.errorhandler(ProcessingConflict)
    @app.errorhandler(InvalidTransition)
    def processing_conflict(e):
        return jsonify({"error": str(e)}), 409

    @app.errorhandler(GdprDeletionError)
    def deletion_failed(e):
        return jsonify({"error": "Failed to delete data"}), 500

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(413)
    def too_large(e):
        return jsonify({"error": f"File size exceeds {app.config.get('MAX_UPLOAD_MB', 10)}MB limit"}), 400

    @app.errorhandler(500)
    def internal_error(e):
        db.session.rollback()
        request_logger(__name__).error("Unhandled error on %s %s: %s", request.method, request.path,
                                       getattr(e, "original_exception", e))
        return jsonify({"error": "Internal server error"}), 500
