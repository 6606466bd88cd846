"""Admin API — per-student locks, pass-mark settings, preview mode."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from course_portal.errors import StoreError
from course_portal.models import QuizSettings
from course_portal.services import courses, locks
from course_portal.services.preview import ViewerContext, overlay
from course_portal.services.quiz_gate import get_quiz_settings, update_quiz_settings
from course_portal.routers.identity import current_viewer, require_admin

router = APIRouter(prefix="/api/admin", tags=["Admin"])


def admin_viewer(viewer: ViewerContext = Depends(current_viewer)) -> ViewerContext:
    return require_admin(viewer)


class PreviewRequest(BaseModel):
    student_id: Optional[str] = None


def _preview_body(actor_id: str) -> dict:
    state = overlay.state(actor_id)
    return {
        "preview_enabled": state.preview_enabled,
        "impersonated_user_id": state.impersonated_user_id,
    }


# ---------------------------------------------------------------------------
# Locks
# ---------------------------------------------------------------------------

@router.get("/locks/{user_id}/{course_id}")
async def get_locks(user_id: str, course_id: str, admin: ViewerContext = Depends(admin_viewer)):
    try:
        course = courses.get_course(course_id)
        if course is None:
            raise HTTPException(status_code=404, detail=f"Course {course_id} not found")
        lesson_ids = [lesson.id for lesson in course.ordered_lessons()]
        return {"user_id": user_id, "course_id": course_id,
                **locks.lock_map(user_id, course_id, lesson_ids)}
    except StoreError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.post("/locks/courses/{user_id}/{course_id}")
async def lock_course(user_id: str, course_id: str, admin: ViewerContext = Depends(admin_viewer)):
    try:
        locks.lock_course(user_id, course_id, admin_id=admin.actor_id)
    except StoreError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"user_id": user_id, "course_id": course_id, "locked": True}


@router.delete("/locks/courses/{user_id}/{course_id}")
async def unlock_course(user_id: str, course_id: str, admin: ViewerContext = Depends(admin_viewer)):
    try:
        removed = locks.unlock_course(user_id, course_id, admin_id=admin.actor_id)
    except StoreError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"user_id": user_id, "course_id": course_id, "locked": False, "changed": removed}


@router.post("/locks/lessons/{user_id}/{course_id}/{lesson_id}")
async def lock_lesson(user_id: str, course_id: str, lesson_id: str,
                      admin: ViewerContext = Depends(admin_viewer)):
    try:
        locks.lock_lesson(user_id, course_id, lesson_id, admin_id=admin.actor_id)
    except StoreError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"user_id": user_id, "course_id": course_id, "lesson_id": lesson_id, "locked": True}


@router.delete("/locks/lessons/{user_id}/{course_id}/{lesson_id}")
async def unlock_lesson(user_id: str, course_id: str, lesson_id: str,
                        admin: ViewerContext = Depends(admin_viewer)):
    try:
        removed = locks.unlock_lesson(user_id, course_id, lesson_id, admin_id=admin.actor_id)
    except StoreError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"user_id": user_id, "course_id": course_id, "lesson_id": lesson_id,
            "locked": False, "changed": removed}


# ---------------------------------------------------------------------------
# Quiz settings
# ---------------------------------------------------------------------------

@router.get("/quiz-settings")
async def read_quiz_settings(admin: ViewerContext = Depends(admin_viewer)):
    return get_quiz_settings().model_dump()


@router.put("/quiz-settings")
async def write_quiz_settings(settings: QuizSettings, admin: ViewerContext = Depends(admin_viewer)):
    try:
        return update_quiz_settings(settings, admin_id=admin.actor_id).model_dump()
    except StoreError as e:
        raise HTTPException(status_code=502, detail=str(e))


# ---------------------------------------------------------------------------
# Preview mode
# ---------------------------------------------------------------------------

@router.get("/preview")
async def read_preview(admin: ViewerContext = Depends(admin_viewer)):
    return _preview_body(admin.actor_id)


@router.post("/preview")
async def enable_preview(body: PreviewRequest, admin: ViewerContext = Depends(admin_viewer)):
    overlay.enable(admin.actor_id, body.student_id)
    return _preview_body(admin.actor_id)


@router.delete("/preview")
async def exit_preview(admin: ViewerContext = Depends(admin_viewer)):
    overlay.exit(admin.actor_id)
    return _preview_body(admin.actor_id)
