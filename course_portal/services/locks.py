"""Lock registry — administrator-imposed course and lesson locks per student."""

import logging

from course_portal import supabase_client as db
from course_portal.errors import StoreError

logger = logging.getLogger(__name__)


def is_course_locked(user_id: str, course_id: str) -> bool:
    """True if a course lock row exists. Raises StoreError if the read fails."""
    try:
        return db.get_course_lock(user_id, course_id) is not None
    except Exception as e:
        raise StoreError("course lock lookup", e) from e


def is_lesson_locked(user_id: str, course_id: str, lesson_id: str) -> bool:
    """True if a lesson lock row exists. Raises StoreError if the read fails."""
    try:
        return db.get_lesson_lock(user_id, course_id, lesson_id) is not None
    except Exception as e:
        raise StoreError("lesson lock lookup", e) from e


def locked_lesson_ids(user_id: str, course_id: str) -> set[str]:
    """IDs of every locked lesson of a student in a course."""
    try:
        return {row["lesson_id"] for row in db.get_lesson_locks(user_id, course_id)}
    except Exception as e:
        raise StoreError("lesson lock listing", e) from e


def lock_map(user_id: str, course_id: str, lesson_ids: list[str]) -> dict:
    """Course lock flag plus a lesson_id -> locked map for the admin view."""
    locked = locked_lesson_ids(user_id, course_id)
    return {
        "course_locked": is_course_locked(user_id, course_id),
        "lessons": {lesson_id: lesson_id in locked for lesson_id in lesson_ids},
    }


# ---------------------------------------------------------------------------
# Admin mutations
# ---------------------------------------------------------------------------

def lock_course(user_id: str, course_id: str, admin_id: str = "") -> dict:
    try:
        row = db.add_course_lock(user_id, course_id, locked_by=admin_id)
        db.log_action("course_locked", "course", course_id,
                      f"Course locked for {user_id}", actor_id=admin_id)
    except Exception as e:
        raise StoreError("course lock", e) from e
    logger.info("Course %s locked for %s by %s", course_id, user_id, admin_id or "unknown")
    return row


def unlock_course(user_id: str, course_id: str, admin_id: str = "") -> bool:
    """Remove a course lock. Returns False if there was nothing to remove."""
    try:
        removed = db.remove_course_lock(user_id, course_id)
        if not removed:
            return False
        db.log_action("course_unlocked", "course", course_id,
                      f"Course unlocked for {user_id}", actor_id=admin_id)
    except Exception as e:
        raise StoreError("course unlock", e) from e
    logger.info("Course %s unlocked for %s by %s", course_id, user_id, admin_id or "unknown")
    return True


def lock_lesson(user_id: str, course_id: str, lesson_id: str, admin_id: str = "") -> dict:
    try:
        row = db.add_lesson_lock(user_id, course_id, lesson_id, locked_by=admin_id)
        db.log_action("lesson_locked", "lesson", lesson_id,
                      f"Lesson locked for {user_id} in course {course_id}", actor_id=admin_id)
    except Exception as e:
        raise StoreError("lesson lock", e) from e
    logger.info("Lesson %s locked for %s by %s", lesson_id, user_id, admin_id or "unknown")
    return row


def unlock_lesson(user_id: str, course_id: str, lesson_id: str, admin_id: str = "") -> bool:
    """Remove a lesson lock. Returns False if there was nothing to remove."""
    try:
        removed = db.remove_lesson_lock(user_id, course_id, lesson_id)
        if not removed:
            return False
        db.log_action("lesson_unlocked", "lesson", lesson_id,
                      f"Lesson unlocked for {user_id} in course {course_id}", actor_id=admin_id)
    except Exception as e:
        raise StoreError("lesson unlock", e) from e
    logger.info("Lesson %s unlocked for %s by %s", lesson_id, user_id, admin_id or "unknown")
    return True
