"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from course_portal.config import TIMER_TICK_SECONDS
from course_portal.routers import admin, lessons, timers

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the timer scheduler; on shutdown flush every open timer."""
    from course_portal.scheduler import scheduler, timers as open_timers

    try:
        scheduler.start()
        logger.info("Scheduler started: lesson timers tick every %ss", TIMER_TICK_SECONDS)
    except Exception as e:
        logger.warning("Scheduler failed to start: %s", e)

    yield

    open_timers.stop_all()
    if scheduler.running:
        scheduler.shutdown(wait=False)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Course Portal",
        description=(
            "Lesson progression, quiz gating, time tracking and per-student "
            "locks for the course portal."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    @app.get("/health", include_in_schema=False)
    async def health():
        return {"status": "ok"}

    for r in [lessons, timers, admin]:
        app.include_router(r.router)

    return app
