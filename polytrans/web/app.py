"""Flask application configuration and blueprint registration."""

from __future__ import annotations

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from polytrans.exceptions import ErrorKind, PolyTransError
from polytrans.logger import get_logger
from polytrans.web.services import EXTENSION_KEY, PolyTransServices

from .routes.translation import translation_bp
from .routes.status import status_bp
from .routes.posts import posts_bp
from .routes.jobs import jobs_bp
from .routes.settings import settings_bp

logger = get_logger(__name__)

ERROR_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.CONFIGURATION: 400,
    ErrorKind.AUTHENTICATION: 403,
    ErrorKind.PROVIDER: 502,
    ErrorKind.DELIVERY: 502,
    ErrorKind.CREATION: 500,
    ErrorKind.INTERNAL: 500,
}


def build_app(services: PolyTransServices) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)

    # Ensure JSON responses keep Unicode data.
    app.json.ensure_ascii = False

    app.extensions[EXTENSION_KEY] = services

    register_blueprints(app)
    register_default_routes(app)
    register_error_handlers(app)

    return app


def register_blueprints(app: Flask) -> None:
    """Register Flask blueprints."""
    app.register_blueprint(translation_bp, url_prefix="/api/translation")
    app.register_blueprint(status_bp, url_prefix="/api/translation/status")
    app.register_blueprint(posts_bp, url_prefix="/api/posts")
    app.register_blueprint(jobs_bp, url_prefix="/api/jobs")
    app.register_blueprint(settings_bp, url_prefix="/api/settings")


def register_default_routes(app: Flask) -> None:
    """Register default health route."""

    @app.get("/health")
    def health_check():
        logger.debug("Health check requested")
        return jsonify({"status": "ok"})


def register_error_handlers(app: Flask) -> None:
    """Every error leaves as JSON."""

    @app.errorhandler(PolyTransError)
    def polytrans_error(e: PolyTransError):
        status = ERROR_STATUS.get(e.kind, 500)
        if e.kind == ErrorKind.AUTHENTICATION:
            return jsonify({"error": "Forbidden"}), status
        logger.warning("%s error: %s", e.kind.value, e.message)
        return jsonify(e.to_dict()), status

    @app.errorhandler(HTTPException)
    def http_error(e: HTTPException):
        return jsonify({"error": e.description}), e.code

    @app.errorhandler(500)
    def internal_error(e):
        logger.exception("Internal server error: %s", e)
        return jsonify({"error": "Internal server error"}), 500
