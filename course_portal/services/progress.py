"""Progress store — per-(user, course, lesson) progress reads, writes and summaries."""

import logging

from course_portal import supabase_client as db
from course_portal.errors import StoreError
from course_portal.models import Course, ProgressRecord, QuizSet

logger = logging.getLogger(__name__)


def get_progress(user_id: str, course_id: str, lesson_id: str) -> ProgressRecord | None:
    """Progress record for one lesson, or None if the student never touched it."""
    try:
        row = db.get_progress_row(user_id, course_id, lesson_id)
    except Exception as e:
        raise StoreError("progress lookup", e) from e
    return ProgressRecord.from_row(row) if row else None


def get_course_progress(user_id: str, course_id: str) -> list[ProgressRecord]:
    """Every progress record of a student within a course."""
    try:
        rows = db.get_progress_rows(user_id, course_id)
    except Exception as e:
        raise StoreError("course progress lookup", e) from e
    return [ProgressRecord.from_row(r) for r in rows]


def add_time_spent(user_id: str, course_id: str, lesson_id: str, seconds: int) -> None:
    """Add a delta of foreground seconds to a lesson's time_spent."""
    if seconds <= 0:
        return
    try:
        db.increment_time_spent(user_id, course_id, lesson_id, seconds)
    except Exception as e:
        raise StoreError("time spent update", e) from e


def record_completion(user_id: str, course_id: str, lesson_id: str,
                      quiz_score: int | None) -> None:
    """Persist completed=True and the (overwriting) quiz score."""
    try:
        db.write_completion(user_id, course_id, lesson_id, quiz_score)
    except Exception as e:
        raise StoreError("lesson completion", e) from e


def mark_started(user_id: str, course_id: str, lesson_id: str) -> None:
    try:
        db.mark_started(user_id, course_id, lesson_id)
    except Exception as e:
        raise StoreError("lesson start", e) from e


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------

def completed_lessons_count(course: Course, records: list[ProgressRecord]) -> int:
    """Completed lessons that still belong to the course."""
    lesson_ids = {lesson.id for lesson in course.lessons}
    return sum(1 for r in records if r.completed and r.lesson_id in lesson_ids)


def total_quiz_score(course: Course, records: list[ProgressRecord],
                     quiz_sets: dict[str, QuizSet]) -> dict:
    """Sum of stored quiz scores against the sum of question counts."""
    score = sum(r.quiz_score for r in records if r.quiz_score is not None)
    possible = 0
    for lesson in course.lessons:
        quiz_set = quiz_sets.get(lesson.quiz_set_id) if lesson.quiz_set_id else None
        if quiz_set:
            possible += len(quiz_set.questions)
    return {"score": score, "total": possible}


def format_time_spent(seconds: int) -> str:
    """Format seconds as e.g. '1h 10m 25s'."""
    if not seconds or seconds <= 0:
        return "0s"
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    remaining = seconds % 60

    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0 or hours > 0:
        parts.append(f"{minutes}m")
    parts.append(f"{remaining}s")
    return " ".join(parts)


def course_summary(course: Course, records: list[ProgressRecord],
                   quiz_sets: dict[str, QuizSet]) -> dict:
    """Progress overview for the course page."""
    total_lessons = len(course.lessons)
    completed = completed_lessons_count(course, records)
    time_spent = sum(r.time_spent for r in records)
    return {
        "course_id": course.id,
        "completed_lessons": completed,
        "total_lessons": total_lessons,
        "progress_percentage": round(completed / total_lessons * 100) if total_lessons else 0,
        "is_completed": total_lessons > 0 and completed >= total_lessons,
        "quiz": total_quiz_score(course, records, quiz_sets),
        "time_spent": time_spent,
        "time_spent_formatted": format_time_spent(time_spent),
    }
