"""Lesson timers — the client opens a timer on lesson entry and closes it on
navigation away. Visibility reports and reads count as heartbeats; a timer
not heard from for TIMER_IDLE_TIMEOUT_SECONDS is stopped by the scheduler."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from course_portal.errors import StoreError
from course_portal.scheduler import start_timer, timers
from course_portal.services import progress
from course_portal.services.preview import ViewerContext
from course_portal.routers.identity import current_viewer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/timers", tags=["Timers"])


class TimerStart(BaseModel):
    course_id: str
    lesson_id: str


class Visibility(BaseModel):
    visible: bool


def _get_timer(timer_id: str, viewer: ViewerContext):
    # Another caller's timer id answers as unknown
    timer = timers.owned_by(timer_id, viewer.actor_id)
    if timer is None:
        raise HTTPException(status_code=404, detail="Timer not found")
    return timer


@router.post("")
async def open_timer(body: TimerStart, viewer: ViewerContext = Depends(current_viewer)):
    """Start timing a lesson view.

    In preview mode the clock runs against the student's stored time but
    nothing is saved.
    """
    subject = viewer.subject_id()
    initial = 0
    try:
        record = progress.get_progress(subject, body.course_id, body.lesson_id)
        if record is not None:
            initial = record.time_spent
    except StoreError as e:
        logger.warning("Stored time unavailable for %s/%s: %s", body.course_id, body.lesson_id, e)

    user_id = None if viewer.preview.preview_enabled else subject
    if user_id:
        try:
            progress.mark_started(user_id, body.course_id, body.lesson_id)
        except StoreError as e:
            logger.warning("Could not mark %s/%s started: %s", body.course_id, body.lesson_id, e)

    timer_id, timer = start_timer(user_id, body.course_id, body.lesson_id,
                                  initial_time_spent=initial, owner_id=viewer.actor_id)
    return {"timer_id": timer_id, **timer.snapshot()}


@router.get("/{timer_id}")
async def read_timer(timer_id: str, viewer: ViewerContext = Depends(current_viewer)):
    """Read a timer. Doubles as the client heartbeat."""
    timer = _get_timer(timer_id, viewer)
    timer.touch()
    return {"timer_id": timer_id, **timer.snapshot()}


@router.post("/{timer_id}/visibility")
async def set_visibility(timer_id: str, body: Visibility,
                         viewer: ViewerContext = Depends(current_viewer)):
    timer = _get_timer(timer_id, viewer)
    timer.set_visible(body.visible)
    return {"timer_id": timer_id, **timer.snapshot()}


@router.delete("/{timer_id}")
async def close_timer(timer_id: str, viewer: ViewerContext = Depends(current_viewer)):
    timer = _get_timer(timer_id, viewer)
    flushed = timers.stop(timer_id)
    return {"timer_id": timer_id, "flushed_seconds": flushed or 0, **timer.snapshot()}
