"""
Tests for translation status tracking.
"""

import time

import polytrans.core.database as db
from polytrans.receiver.status import (
    FAILED,
    NOT_STARTED,
    PENDING,
    SUCCEEDED,
    TRANSLATING,
    StatusManager,
)


def backdate(original_post_id, language, hours):
    with db.get_connection() as conn:
        conn.execute(
            "UPDATE translation_status SET started_at = ? WHERE original_post_id = ? AND language = ?",
            (time.time() - hours * 3600, original_post_id, language),
        )
        conn.commit()


class TestStatusManager:
    def test_unknown_pair_is_not_started(self, temp_db):
        status = StatusManager().get(1, "fr")
        assert status.status == NOT_STARTED
        assert not status.in_progress

    def test_lifecycle(self, temp_db):
        manager = StatusManager()

        manager.mark_pending(1, "fr")
        assert manager.get(1, "fr").status == PENDING
        assert manager.is_tracking(1, "fr")

        manager.mark_translating(1, "fr")
        assert manager.get(1, "fr").status == TRANSLATING

        manager.mark_succeeded(1, "fr", 55)
        status = manager.get(1, "fr")
        assert status.status == SUCCEEDED
        assert status.new_post_id == 55
        assert status.error is None
        assert not manager.is_tracking(1, "fr")

    def test_last_write_wins(self, temp_db):
        manager = StatusManager()

        manager.mark_failed(1, "fr", "network")
        manager.mark_succeeded(1, "fr", 9)
        assert manager.get(1, "fr").status == SUCCEEDED

        manager.mark_succeeded(2, "de", 10)
        manager.mark_failed(2, "de", "late failure")
        status = manager.get(2, "de")
        assert status.status == FAILED
        assert status.error == "late failure"

    def test_languages_are_independent(self, temp_db):
        manager = StatusManager()
        manager.mark_pending(1, "fr")
        manager.mark_failed(1, "de", "x")

        assert manager.get(1, "fr").status == PENDING
        assert manager.get(1, "de").status == FAILED

    def test_translating_keeps_started_at(self, temp_db):
        manager = StatusManager()
        manager.mark_pending(1, "fr")
        backdate(1, "fr", 2)
        started = manager.get(1, "fr").started_at

        manager.mark_translating(1, "fr")

        assert manager.get(1, "fr").started_at == started

    def test_pending_restarts_clock(self, temp_db):
        manager = StatusManager()
        manager.mark_pending(1, "fr")
        backdate(1, "fr", 30)

        manager.mark_pending(1, "fr")

        assert manager.get(1, "fr").started_at > time.time() - 60

    def test_clear(self, temp_db):
        manager = StatusManager()
        manager.mark_pending(1, "fr")
        manager.clear(1, "fr")
        assert manager.get(1, "fr").status == NOT_STARTED

    def test_check_stuck(self, temp_db):
        manager = StatusManager()
        manager.mark_pending(1, "fr")
        manager.mark_translating(2, "de")
        manager.mark_pending(3, "es")
        manager.mark_succeeded(4, "it", 40)
        backdate(1, "fr", 30)
        backdate(2, "de", 25)
        backdate(4, "it", 100)

        report = manager.check_stuck(timeout_hours=24)

        assert report["checked"] == 3
        assert report["fixed"] == 2
        assert {(s["original_post_id"], s["language"]) for s in report["stuck"]} == {(1, "fr"), (2, "de")}
        failed = manager.get(1, "fr")
        assert failed.status == FAILED
        assert failed.error.startswith("Translation timed out after 30")
        assert manager.get(3, "es").status == PENDING
        assert manager.get(4, "it").status == SUCCEEDED

    def test_summary(self, temp_db):
        manager = StatusManager()
        manager.mark_pending(1, "fr")
        manager.mark_pending(1, "de")
        manager.mark_failed(2, "fr", "x")

        assert manager.summary() == {"pending": 2, "failed": 1, "total": 3}
