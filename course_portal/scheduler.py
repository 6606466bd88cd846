"""APScheduler — drives the one-second tick of every open lesson timer."""

import logging
import threading
import uuid
from typing import Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from course_portal.config import (
    TIME_SAVE_INTERVAL_SECONDS,
    TIMER_IDLE_TIMEOUT_SECONDS,
    TIMER_TICK_SECONDS,
)
from course_portal.errors import StoreError
from course_portal.services import progress
from course_portal.services.lesson_timer import FlushFn, LessonTimer

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


async def _tick(registry: "TimerRegistry", timer_id: str):
    """Advance one timer; a timer whose client has gone silent is stopped."""
    timer = registry.get(timer_id)
    if timer is None:
        return
    timer.tick()
    if timer.expired:
        logger.info("Timer %s idle for %ds, stopping", timer_id, timer.idle_seconds)
        registry.stop(timer_id)


class TimerRegistry:
    """Open lesson timers, each ticked by its own interval job."""

    def __init__(self, job_scheduler):
        self._scheduler = job_scheduler
        self._timers: dict[str, LessonTimer] = {}
        self._owners: dict[str, Optional[str]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def job_id(timer_id: str) -> str:
        return f"lesson-timer:{timer_id}"

    def start(self, timer: LessonTimer, owner_id: Optional[str] = None) -> str:
        timer_id = uuid.uuid4().hex
        with self._lock:
            self._timers[timer_id] = timer
            self._owners[timer_id] = owner_id
        self._scheduler.add_job(
            _tick, "interval", seconds=TIMER_TICK_SECONDS, args=[self, timer_id],
            id=self.job_id(timer_id), max_instances=1,
        )
        logger.info("Timer %s started on lesson %s (initial %ds)",
                    timer_id, timer.lesson_id, timer.initial_time_spent)
        return timer_id

    def get(self, timer_id: str) -> Optional[LessonTimer]:
        return self._timers.get(timer_id)

    def owned_by(self, timer_id: str, owner_id: Optional[str]) -> Optional[LessonTimer]:
        """The timer if it exists and was opened by owner_id."""
        with self._lock:
            if timer_id not in self._timers or self._owners.get(timer_id) != owner_id:
                return None
            return self._timers[timer_id]

    def stop(self, timer_id: str) -> Optional[int]:
        """Remove a timer and flush its tail. None if the timer is unknown."""
        with self._lock:
            timer = self._timers.pop(timer_id, None)
            self._owners.pop(timer_id, None)
        if timer is None:
            return None
        try:
            self._scheduler.remove_job(self.job_id(timer_id))
        except JobLookupError:
            logger.debug("Timer job %s already gone", timer_id)
        flushed = timer.stop()
        logger.info("Timer %s stopped: %ds this session, %ds flushed at teardown",
                    timer_id, timer.session_seconds, flushed)
        return flushed

    def stop_all(self) -> None:
        for timer_id in list(self._timers):
            self.stop(timer_id)

    def __len__(self):
        return len(self._timers)


timers = TimerRegistry(scheduler)


def start_timer(
    user_id: Optional[str],
    course_id: str,
    lesson_id: str,
    initial_time_spent: Optional[int] = None,
    flush: FlushFn = progress.add_time_spent,
    save_interval_seconds: int = TIME_SAVE_INTERVAL_SECONDS,
    registry: Optional[TimerRegistry] = None,
    owner_id: Optional[str] = None,
    idle_timeout_seconds: int = TIMER_IDLE_TIMEOUT_SECONDS,
) -> tuple[str, LessonTimer]:
    """Open a timer for a lesson view and start ticking it.

    Without an explicit initial_time_spent the stored value is used; an
    unreadable record starts the display at zero. owner_id defaults to
    user_id and is the only caller the timer answers to.
    """
    if initial_time_spent is None:
        initial_time_spent = 0
        if user_id:
            try:
                record = progress.get_progress(user_id, course_id, lesson_id)
                if record is not None:
                    initial_time_spent = record.time_spent
            except StoreError as e:
                logger.warning("Could not read stored time for %s/%s: %s", course_id, lesson_id, e)

    timer = LessonTimer(user_id, course_id, lesson_id, initial_time_spent, flush,
                        save_interval_seconds=save_interval_seconds,
                        idle_timeout_seconds=idle_timeout_seconds)
    timer_id = (registry or timers).start(timer, owner_id=owner_id or user_id)
    return timer_id, timer
