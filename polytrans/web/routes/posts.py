"""Scheduling translations of local posts."""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from polytrans.exceptions import ConfigError, ValidationError
from polytrans.logger import get_logger
from polytrans.web.services import get_services
from polytrans.web.tasks import create_dispatch_job

posts_bp = Blueprint("posts", __name__)
logger = get_logger(__name__)


@posts_bp.post("/<int:post_id>/schedule")
def schedule_translation(post_id: int):
    """Mark target languages pending and dispatch one request per language."""
    data = request.get_json(silent=True) or {}
    targets = data.get("targets")
    if not isinstance(targets, list) or not targets:
        return jsonify({"error": "targets must be a non-empty list of language codes"}), 400

    services = get_services()
    try:
        requests = services.scheduler.schedule(post_id, targets, needs_review=bool(data.get("needs_review")))
    except ValidationError as e:
        status = 404 if e.code == "not_found" else 400
        return jsonify({"error": e.message, "code": e.code}), status
    except ConfigError as e:
        return jsonify({"error": e.message, "code": e.code}), 400

    jobs = [create_dispatch_job(services.scheduler, payload) for payload in requests]
    return jsonify({
        "message": "Translation scheduled",
        "post_id": post_id,
        "languages": [payload["target_language"] for payload in requests],
        "jobs": {job.language: job.job_id for job in jobs},
    }), 202
