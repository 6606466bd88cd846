"""Lesson timer — accrues foreground seconds on a lesson and flushes deltas.

One timer lives for one lesson view. Each tick adds a second while the view
is visible. Every ``save_interval_seconds`` of unflushed time is handed to
``flush`` as a delta (the store adds it to what it has), and whatever is left
is flushed once when the view is torn down.

The client keeps the timer alive by calling ``touch()`` (any read or
visibility report). After ``idle_timeout_seconds`` ticks without contact the
timer is ``expired`` and accrues nothing more; its owner is expected to
``stop()`` it.
"""

import logging
from typing import Callable, Optional

from course_portal.config import TIME_SAVE_INTERVAL_SECONDS, TIMER_IDLE_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

FlushFn = Callable[[str, str, str, int], None]


class LessonTimer:
    def __init__(
        self,
        user_id: Optional[str],
        course_id: str,
        lesson_id: str,
        initial_time_spent: int,
        flush: FlushFn,
        save_interval_seconds: int = TIME_SAVE_INTERVAL_SECONDS,
        idle_timeout_seconds: int = TIMER_IDLE_TIMEOUT_SECONDS,
    ):
        if save_interval_seconds < 1:
            raise ValueError("save_interval_seconds must be at least 1")
        self.user_id = user_id
        self.course_id = course_id
        self.lesson_id = lesson_id
        self.initial_time_spent = initial_time_spent
        self.save_interval_seconds = save_interval_seconds
        self.idle_timeout_seconds = max(idle_timeout_seconds, 0)
        self._flush = flush

        self.session_seconds = 0
        self.last_flushed_seconds = 0
        self.idle_seconds = 0
        self.visible = True
        self.stopped = False

    @property
    def total_time_spent(self) -> int:
        return self.initial_time_spent + self.session_seconds

    @property
    def unflushed_seconds(self) -> int:
        return self.session_seconds - self.last_flushed_seconds

    @property
    def expired(self) -> bool:
        """True once the client has been silent for the idle timeout."""
        return bool(self.idle_timeout_seconds) and self.idle_seconds >= self.idle_timeout_seconds

    def touch(self) -> None:
        """Record contact from the client."""
        self.idle_seconds = 0

    def set_visible(self, visible: bool) -> None:
        self.touch()
        if visible != self.visible:
            logger.debug("Lesson %s visibility changed: %s",
                         self.lesson_id, "visible" if visible else "hidden")
        self.visible = visible

    def tick(self) -> None:
        """Advance one second if the view is visible, flushing on the interval."""
        if self.stopped or self.expired:
            return
        self.idle_seconds += 1
        if not self.visible:
            return
        self.session_seconds += 1
        if self.unflushed_seconds >= self.save_interval_seconds:
            self._send(self.save_interval_seconds, "periodic")

    def stop(self) -> int:
        """Tear down: flush the unflushed tail once. Returns the seconds sent."""
        if self.stopped:
            return 0
        self.stopped = True
        remainder = self.unflushed_seconds
        if remainder > 0:
            self._send(remainder, "teardown")
        return remainder

    def _send(self, seconds: int, trigger: str) -> None:
        # The high-water mark moves even if the write fails: a second is
        # offered to the store exactly once.
        self.last_flushed_seconds += seconds
        if not self.user_id:
            return
        logger.debug("Saving %ds on lesson %s (%s)", seconds, self.lesson_id, trigger)
        try:
            self._flush(self.user_id, self.course_id, self.lesson_id, seconds)
        except Exception as e:
            logger.warning("Failed to save %ds on lesson %s for %s: %s",
                           seconds, self.lesson_id, self.user_id, e)

    def snapshot(self) -> dict:
        return {
            "course_id": self.course_id,
            "lesson_id": self.lesson_id,
            "session_seconds": self.session_seconds,
            "total_time_spent": self.total_time_spent,
            "visible": self.visible,
            "stopped": self.stopped,
            "expired": self.expired,
        }
