"""Dispatch job status routes."""

from __future__ import annotations

from flask import Blueprint, jsonify

from polytrans.web.tasks import get_job

jobs_bp = Blueprint("jobs", __name__)


@jobs_bp.get("/<job_id>")
def job_status(job_id: str):
    job = get_job(job_id)
    if not job:
        return jsonify({"error": "Job not found"}), 404
    return jsonify(job.to_dict())
