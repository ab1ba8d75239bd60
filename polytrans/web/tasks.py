"""
Background dispatch of scheduled translation requests.
"""

from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional

from polytrans.exceptions import PolyTransError
from polytrans.logger import get_logger
from polytrans.translation.scheduler import TranslationScheduler

logger = get_logger(__name__)


@dataclass
class JobState:
    """In-memory representation of one dispatch."""

    job_id: str
    post_id: int
    language: str
    state: str = "pending"  # pending|running|completed|failed
    created_at: float = field(default_factory=time.time)
    started_at: Optional[float] = None
    finished_at: Optional[float] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


_jobs: Dict[str, JobState] = {}
_jobs_lock = threading.Lock()
_JOB_RETENTION_SECONDS = 600  # Retain job info for 10 minutes after completion


def create_dispatch_job(scheduler: TranslationScheduler, payload: Dict[str, Any]) -> JobState:
    """
    Launch a background thread that sends one translation request.

    Returns:
        JobState for the new job (already registered and running).
    """
    job_id = uuid.uuid4().hex
    job = JobState(
        job_id=job_id,
        post_id=payload["original_post_id"],
        language=payload["target_language"],
    )

    with _jobs_lock:
        _cleanup_jobs_locked()
        _jobs[job_id] = job

    thread = threading.Thread(
        target=_run_dispatch_job,
        args=(job, scheduler, payload),
        name=f"dispatch-job-{job_id}",
        daemon=True,
    )
    thread.start()
    logger.info("Dispatch job %s started for post %s (%s)", job_id, job.post_id, job.language)
    return job


def get_job(job_id: str) -> Optional[JobState]:
    """Fetch a job by ID (if still retained)."""
    with _jobs_lock:
        job = _jobs.get(job_id)
        if job and job.finished_at and (time.time() - job.finished_at) > _JOB_RETENTION_SECONDS:
            _jobs.pop(job_id, None)
            return None
        return job


def _run_dispatch_job(job: JobState, scheduler: TranslationScheduler, payload: Dict[str, Any]):
    """Worker function executed in a background thread."""
    job.state = "running"
    job.started_at = time.time()
    try:
        job.result = scheduler.dispatch(payload)
        job.state = "completed"
        logger.info("Dispatch job %s finished for post %s (%s)", job.job_id, job.post_id, job.language)
    except PolyTransError as exc:
        job.state = "failed"
        job.error = exc.message
        logger.warning("Dispatch job %s failed: %s", job.job_id, exc.message)
    except Exception as exc:
        job.state = "failed"
        job.error = f"{type(exc).__name__}: {exc}"
        logger.exception("Dispatch job %s failed for post %s", job.job_id, job.post_id)
    finally:
        job.finished_at = time.time()


def _cleanup_jobs_locked():
    """Remove completed jobs that exceeded retention period (call with lock held)."""
    now = time.time()
    expired = [
        job_id
        for job_id, job in _jobs.items()
        if job.finished_at and (now - job.finished_at) > _JOB_RETENTION_SECONDS
    ]
    for job_id in expired:
        _jobs.pop(job_id, None)
