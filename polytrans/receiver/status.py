"""
Translation status tracking.

One record per (original post, target language). Every write replaces the
record in a single statement, so the last writer wins and no history is
kept.
"""

import time
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from polytrans.core import database as db
from polytrans.logger import get_logger

logger = get_logger(__name__)

NOT_STARTED = "not_started"
PENDING = "pending"
TRANSLATING = "translating"
SUCCEEDED = "succeeded"
FAILED = "failed"

IN_PROGRESS = (PENDING, TRANSLATING)


@dataclass(frozen=True)
class TranslationStatus:
    original_post_id: int
    language: str
    status: str = NOT_STARTED
    new_post_id: Optional[int] = None
    error: Optional[str] = None
    started_at: Optional[float] = None
    updated_at: Optional[float] = None

    @property
    def in_progress(self) -> bool:
        return self.status in IN_PROGRESS

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class StatusManager:
    def mark_pending(self, original_post_id: int, language: str):
        db.upsert_translation_status(original_post_id, language, PENDING, restart=True)
        logger.debug(f"Translation {original_post_id}/{language} pending")

    def mark_translating(self, original_post_id: int, language: str):
        db.upsert_translation_status(original_post_id, language, TRANSLATING)
        logger.debug(f"Translation {original_post_id}/{language} translating")

    def mark_succeeded(self, original_post_id: int, language: str, new_post_id: int):
        db.upsert_translation_status(original_post_id, language, SUCCEEDED, new_post_id=new_post_id)
        logger.info(f"Translation {original_post_id}/{language} succeeded (post {new_post_id})")

    def mark_failed(self, original_post_id: int, language: str, reason: str, new_post_id: int = None):
        db.upsert_translation_status(original_post_id, language, FAILED, new_post_id=new_post_id, error=reason)
        logger.warning(f"Translation {original_post_id}/{language} failed: {reason}")

    def get(self, original_post_id: int, language: str) -> TranslationStatus:
        row = db.get_translation_status(original_post_id, language)
        if not row:
            return TranslationStatus(original_post_id=original_post_id, language=language)
        return TranslationStatus(**row)

    def is_tracking(self, original_post_id: int, language: str) -> bool:
        """True while a translation for this pair is pending or translating."""
        return self.get(original_post_id, language).in_progress

    def clear(self, original_post_id: int, language: str):
        db.delete_translation_status(original_post_id, language)
        logger.info(f"Cleared translation status {original_post_id}/{language}")

    def check_stuck(self, timeout_hours: float = 24) -> Dict[str, Any]:
        """
        Fail translations that have been in progress longer than timeout_hours.

        Returns:
            {"checked": n, "fixed": n, "stuck": [{"original_post_id", "language", "hours"}, ...]}
        """
        cutoff = time.time() - timeout_hours * 3600
        rows = db.get_translation_statuses_by_status(IN_PROGRESS)
        stuck = []

        for row in rows:
            started_at = row.get("started_at") or row.get("updated_at") or 0
            if started_at > cutoff:
                continue
            hours = round((time.time() - started_at) / 3600, 1)
            self.mark_failed(
                row["original_post_id"],
                row["language"],
                f"Translation timed out after {hours} hours",
            )
            stuck.append({
                "original_post_id": row["original_post_id"],
                "language": row["language"],
                "hours": hours,
            })

        if stuck:
            logger.warning(f"Marked {len(stuck)} stuck translation(s) as failed")
        return {"checked": len(rows), "fixed": len(stuck), "stuck": stuck}

    def summary(self) -> Dict[str, int]:
        counts = db.count_translation_statuses()
        counts["total"] = sum(counts.values())
        return counts
