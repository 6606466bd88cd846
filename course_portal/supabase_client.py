"""Supabase connection and query helpers for the course tables."""

import threading
from datetime import datetime, timezone

from supabase import Client, create_client

from course_portal.config import (
    AUDIT_LOG_TABLE,
    COURSE_LOCKS_TABLE,
    COURSES_TABLE,
    LESSON_LOCKS_TABLE,
    LESSONS_TABLE,
    PROGRESS_TABLE,
    QUIZ_QUESTIONS_TABLE,
    QUIZ_SETS_TABLE,
    QUIZ_SETTINGS_TABLE,
    SUPABASE_SERVICE_KEY,
    SUPABASE_URL,
)

_client: Client | None = None
_client_lock = threading.Lock()


def get_client() -> Client:
    """Return the Supabase client singleton (thread-safe)."""
    global _client
    if _client is None:
        with _client_lock:
            if _client is None:
                if not SUPABASE_URL or not SUPABASE_SERVICE_KEY:
                    raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set")
                _client = create_client(SUPABASE_URL, SUPABASE_SERVICE_KEY)
    return _client


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Generic helpers
# ---------------------------------------------------------------------------

def _table(name: str):
    """Return a table query builder."""
    return get_client().table(name)


def insert(table: str, data: dict) -> dict:
    """Insert a row and return it."""
    result = _table(table).insert(data).execute()
    return result.data[0] if result.data else {}


def upsert(table: str, data: dict, on_conflict: str = "") -> dict:
    """Upsert a row and return it."""
    if on_conflict:
        q = _table(table).upsert(data, on_conflict=on_conflict)
    else:
        q = _table(table).upsert(data)
    result = q.execute()
    return result.data[0] if result.data else {}


def update(table: str, data: dict, match: dict) -> dict:
    """Update rows matching conditions."""
    q = _table(table).update(data)
    for k, v in match.items():
        q = q.eq(k, v)
    result = q.execute()
    return result.data[0] if result.data else {}


def delete(table: str, match: dict) -> list:
    """Delete rows matching conditions."""
    q = _table(table).delete()
    for k, v in match.items():
        q = q.eq(k, v)
    result = q.execute()
    return result.data


def select(table: str, columns: str = "*", match: dict | None = None,
           order: str | None = None, order_desc: bool = False,
           limit: int | None = None) -> list[dict]:
    """Select rows with optional filtering, ordering, and limit."""
    q = _table(table).select(columns)
    if match:
        for k, v in match.items():
            q = q.eq(k, v)
    if order:
        q = q.order(order, desc=order_desc)
    if limit:
        q = q.limit(limit)
    result = q.execute()
    return result.data or []


def select_one(table: str, columns: str = "*", match: dict | None = None) -> dict | None:
    """Select a single row."""
    rows = select(table, columns, match, limit=1)
    return rows[0] if rows else None


# ---------------------------------------------------------------------------
# Courses & lessons (read-only)
# ---------------------------------------------------------------------------

def get_course(course_id: str) -> dict | None:
    """Get a course row by ID."""
    return select_one(COURSES_TABLE, match={"id": course_id})


def get_lessons(course_id: str) -> list[dict]:
    """Get all lesson rows of a course, ordered by their `order` column."""
    return select(LESSONS_TABLE, match={"course_id": course_id}, order="order")


# ---------------------------------------------------------------------------
# Quiz sets & settings
# ---------------------------------------------------------------------------

def get_quiz_set(quiz_set_id: str) -> dict | None:
    """Get a quiz set row by ID."""
    return select_one(QUIZ_SETS_TABLE, match={"id": quiz_set_id})


def get_quiz_questions(quiz_set_id: str) -> list[dict]:
    """Get the questions of a quiz set in creation order."""
    return select(QUIZ_QUESTIONS_TABLE, match={"quiz_set_id": quiz_set_id}, order="created_at")


def get_quiz_settings_row() -> dict | None:
    """Get the single quiz_settings row, if any."""
    return select_one(QUIZ_SETTINGS_TABLE)


def save_quiz_settings_row(data: dict) -> dict:
    """Update the quiz_settings row, creating it when missing."""
    data["updated_at"] = _now()
    existing = get_quiz_settings_row()
    if existing:
        return update(QUIZ_SETTINGS_TABLE, data, {"id": existing["id"]})
    return insert(QUIZ_SETTINGS_TABLE, data)


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------

def _progress_key(user_id: str, course_id: str, lesson_id: str) -> dict:
    return {"user_id": user_id, "course_id": course_id, "lesson_id": lesson_id}


def get_progress_rows(user_id: str, course_id: str) -> list[dict]:
    """Get every progress row of a user within a course."""
    return select(PROGRESS_TABLE, match={"user_id": user_id, "course_id": course_id})


def get_progress_row(user_id: str, course_id: str, lesson_id: str) -> dict | None:
    """Get the progress row for one lesson."""
    return select_one(PROGRESS_TABLE, match=_progress_key(user_id, course_id, lesson_id))


def _new_progress_row(user_id: str, course_id: str, lesson_id: str, **fields) -> dict:
    row = {
        **_progress_key(user_id, course_id, lesson_id),
        "started": True,
        "completed": False,
        "time_spent": 0,
        "pdf_viewed": False,
        "quiz_score": None,
        "quiz_attempts": 0,
    }
    row.update(fields)
    return row


def increment_time_spent(user_id: str, course_id: str, lesson_id: str, seconds: int) -> dict:
    """Add seconds to time_spent, creating the progress row if needed.

    Only the time_spent column is written on an existing row.
    """
    existing = get_progress_row(user_id, course_id, lesson_id)
    if existing:
        return update(PROGRESS_TABLE, {
            "time_spent": (existing.get("time_spent") or 0) + seconds,
            "updated_at": _now(),
        }, {"id": existing["id"]})
    return insert(PROGRESS_TABLE, _new_progress_row(
        user_id, course_id, lesson_id, time_spent=seconds,
    ))


def write_completion(user_id: str, course_id: str, lesson_id: str,
                     quiz_score: int | None) -> dict:
    """Set completed and overwrite quiz_score on a lesson's progress row."""
    existing = get_progress_row(user_id, course_id, lesson_id)
    attempts_delta = 1 if quiz_score is not None else 0
    if existing:
        return update(PROGRESS_TABLE, {
            "started": True,
            "completed": True,
            "quiz_score": quiz_score,
            "quiz_attempts": (existing.get("quiz_attempts") or 0) + attempts_delta,
            "updated_at": _now(),
        }, {"id": existing["id"]})
    return insert(PROGRESS_TABLE, _new_progress_row(
        user_id, course_id, lesson_id,
        completed=True, pdf_viewed=True,
        quiz_score=quiz_score, quiz_attempts=attempts_delta,
    ))


def mark_started(user_id: str, course_id: str, lesson_id: str) -> dict:
    """Flag a lesson as started and its content as viewed."""
    existing = get_progress_row(user_id, course_id, lesson_id)
    if existing:
        return update(PROGRESS_TABLE, {
            "started": True,
            "pdf_viewed": True,
            "updated_at": _now(),
        }, {"id": existing["id"]})
    return insert(PROGRESS_TABLE, _new_progress_row(
        user_id, course_id, lesson_id, pdf_viewed=True,
    ))


# ---------------------------------------------------------------------------
# Locks (presence of a row means locked)
# ---------------------------------------------------------------------------

def get_course_lock(user_id: str, course_id: str) -> dict | None:
    """Get the course lock row for a student, if any."""
    return select_one(COURSE_LOCKS_TABLE, match={"user_id": user_id, "course_id": course_id})


def get_lesson_lock(user_id: str, course_id: str, lesson_id: str) -> dict | None:
    """Get the lesson lock row for a student, if any."""
    return select_one(LESSON_LOCKS_TABLE, match={
        "user_id": user_id, "course_id": course_id, "lesson_id": lesson_id,
    })


def get_lesson_locks(user_id: str, course_id: str) -> list[dict]:
    """Get every lesson lock row of a student within a course."""
    return select(LESSON_LOCKS_TABLE, columns="lesson_id",
                  match={"user_id": user_id, "course_id": course_id})


def add_course_lock(user_id: str, course_id: str, locked_by: str = "") -> dict:
    """Create a course lock row."""
    return upsert(COURSE_LOCKS_TABLE, {
        "user_id": user_id, "course_id": course_id, "locked_by": locked_by,
    }, on_conflict="user_id,course_id")


def remove_course_lock(user_id: str, course_id: str) -> list:
    """Delete a course lock row."""
    return delete(COURSE_LOCKS_TABLE, {"user_id": user_id, "course_id": course_id})


def add_lesson_lock(user_id: str, course_id: str, lesson_id: str, locked_by: str = "") -> dict:
    """Create a lesson lock row."""
    return upsert(LESSON_LOCKS_TABLE, {
        "user_id": user_id, "course_id": course_id, "lesson_id": lesson_id,
        "locked_by": locked_by,
    }, on_conflict="user_id,course_id,lesson_id")


def remove_lesson_lock(user_id: str, course_id: str, lesson_id: str) -> list:
    """Delete a lesson lock row."""
    return delete(LESSON_LOCKS_TABLE, {
        "user_id": user_id, "course_id": course_id, "lesson_id": lesson_id,
    })


# ---------------------------------------------------------------------------
# Audit Log
# ---------------------------------------------------------------------------

def log_action(action: str, entity_type: str = "", entity_id: str = "",
               details: str = "", actor_id: str = "") -> dict:
    """Log an administrator action."""
    return insert(AUDIT_LOG_TABLE, {
        "action": action,
        "entity_type": entity_type,
        "entity_id": entity_id,
        "details": details,
        "actor_id": actor_id,
    })
