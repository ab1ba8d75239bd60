"""Translate and receive endpoints used between sites."""

from __future__ import annotations

from typing import Any, Dict

from flask import Blueprint, jsonify, request

from polytrans.exceptions import AuthenticationError, ErrorKind
from polytrans.logger import get_logger
from polytrans.web.services import get_services

translation_bp = Blueprint("translation", __name__)
logger = get_logger(__name__)


def _forbidden():
    return jsonify({"error": "Forbidden"}), 403


@translation_bp.post("/translate")
def translate():
    """Translate a job with the configured provider and deliver the result."""
    services = get_services()
    try:
        services.extension.authenticate(request)
    except AuthenticationError:
        return _forbidden()

    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON data"}), 400

    body, status = services.extension.handle_translate(payload)
    return jsonify(body), status


@translation_bp.post("/receive-post")
def receive_post():
    """Build the translated post from a delivered result."""
    services = get_services()
    try:
        services.extension.authenticate(request)
    except AuthenticationError:
        return _forbidden()

    data: Dict[str, Any] = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON data"}), 400

    try:
        result = services.coordinator.process_translation(data)
    except Exception as e:
        logger.exception("Unexpected error while receiving translation: %s", e)
        return jsonify({"error": "Translation processing failed"}), 500

    if result.success:
        return jsonify({
            "created_post_id": result.created_post_id,
            "status": result.status,
            "original_post_id": data.get("original_post_id"),
            "target_language": data.get("target_language"),
            "message": "Translation received and post created",
        }), 201

    response = {"error": result.error}
    if result.code:
        response["code"] = result.code
    if result.error_kind == ErrorKind.VALIDATION:
        return jsonify(response), 400
    return jsonify(response), 500
