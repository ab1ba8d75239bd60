"""Translation status API routes."""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from polytrans.logger import get_logger
from polytrans.receiver.validator import is_valid_language_code
from polytrans.web.services import get_services

status_bp = Blueprint("status", __name__)
logger = get_logger(__name__)


@status_bp.get("/summary")
def status_summary():
    return jsonify(get_services().status_manager.summary())


@status_bp.post("/check-stuck")
def check_stuck():
    """Fail translations stuck in progress for longer than timeout_hours."""
    data = request.get_json(silent=True) or {}
    timeout_hours = data.get("timeout_hours", 24)
    try:
        timeout_hours = float(timeout_hours)
    except (TypeError, ValueError):
        return jsonify({"error": "timeout_hours must be a number"}), 400
    if timeout_hours <= 0:
        return jsonify({"error": "timeout_hours must be greater than zero"}), 400

    return jsonify(get_services().status_manager.check_stuck(timeout_hours))


@status_bp.get("/<int:original_post_id>/<language>")
def get_status(original_post_id: int, language: str):
    if not is_valid_language_code(language):
        return jsonify({"error": "Invalid language code provided"}), 400
    status = get_services().status_manager.get(original_post_id, language)
    return jsonify(status.to_dict())


@status_bp.delete("/<int:original_post_id>/<language>")
def clear_status(original_post_id: int, language: str):
    if not is_valid_language_code(language):
        return jsonify({"error": "Invalid language code provided"}), 400
    get_services().status_manager.clear(original_post_id, language)
    return jsonify({"message": "Translation status cleared"})
