"""
Timed-quiz clock.

The start time is persisted per (assignment, user) so reloading the page
resumes the countdown instead of resetting it. Expiry only stops the
countdown at zero; it never submits on the student's behalf.
"""

import logging
from datetime import datetime, timezone

from coursework.services.draft_store import StorageError

logger = logging.getLogger(__name__)


def quiz_start_key(assignment_id, user_id) -> str:
    return f"quiz_start_{assignment_id}_{user_id}"


def _utcnow():
    return datetime.now(timezone.utc)


def format_time_left(seconds) -> str:
    """'1 Hour, 2 Minutes, 3 Seconds' style countdown label."""
    if not seconds or seconds <= 0:
        return '0 Hours, 0 Minutes, 0 Seconds'
    seconds = int(seconds)
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60

    def unit(value, name):
        return f"{value} {name}{'' if value == 1 else 's'}"

    return f"{unit(hours, 'Hour')}, {unit(minutes, 'Minute')}, {unit(secs, 'Second')}"


class QuizClock:
    """Countdown for one student's attempt at a timed quiz.

    Usage:
        clock = QuizClock(store, assignment_id, user_id, limit_minutes=30)
        clock.resume()          # picks up a start time saved earlier
        clock.start()           # or starts fresh
        clock.remaining()       # seconds left, 0 once expired
    """

    def __init__(self, store, assignment_id, user_id, limit_minutes, now=None):
        self.store = store
        self.key = quiz_start_key(assignment_id, user_id)
        self.limit_seconds = int(float(limit_minutes or 0) * 60)
        self._now = now or _utcnow
        self.started_at = None
        # a saved start was found already past the limit
        self.lapsed = False

    @property
    def started(self) -> bool:
        return self.started_at is not None

    def start(self):
        """Record the start time and begin counting down."""
        self.started_at = self._now()
        self.lapsed = False
        try:
            self.store.set(self.key, self.started_at.isoformat())
        except StorageError as e:
            logger.error("Error saving quiz start %s: %s", self.key, e)
        logger.info("Quiz started: %s", self.key)
        return self.started_at

    def resume(self) -> bool:
        """
        Restore a previously saved start time. A start that is already past
        the limit is discarded and the student must start again.
        """
        try:
            stored = self.store.get(self.key)
        except StorageError as e:
            logger.error("Error reading quiz start %s: %s", self.key, e)
            return False
        if not stored:
            return False

        try:
            started_at = datetime.fromisoformat(stored)
        except ValueError:
            logger.warning("Discarding unreadable quiz start under %s", self.key)
            self._discard()
            return False
        if started_at.tzinfo is None:
            started_at = started_at.replace(tzinfo=timezone.utc)

        if self._elapsed_since(started_at) < self.limit_seconds:
            self.started_at = started_at
            return True

        logger.info("Quiz start expired, clearing %s", self.key)
        self.lapsed = True
        self._discard()
        return False

    def _discard(self):
        self.started_at = None
        try:
            self.store.clear(self.key)
        except StorageError as e:
            logger.error("Error clearing quiz start %s: %s", self.key, e)

    def _elapsed_since(self, started_at) -> int:
        return int((self._now() - started_at).total_seconds())

    def elapsed(self):
        if not self.started:
            return None
        return self._elapsed_since(self.started_at)

    def remaining(self):
        """Seconds left, clamped at 0; None before the quiz is started."""
        if not self.started:
            return None
        return max(self.limit_seconds - self.elapsed(), 0)

    @property
    def expired(self) -> bool:
        return self.started and self.remaining() <= 0

    def status(self) -> dict:
        remaining = self.remaining()
        return {
            "started": self.started,
            "started_at": self.started_at.isoformat() if self.started else None,
            "limit_seconds": self.limit_seconds,
            "remaining_seconds": remaining,
            "expired": self.expired,
            "lapsed": self.lapsed,
            "time_left": format_time_left(remaining) if remaining is not None else None,
        }
