"""Course catalogue reads — courses with their lessons, quiz sets with their questions."""

import json

from course_portal import supabase_client as db
from course_portal.errors import StoreError
from course_portal.models import Course, Lesson, QuizQuestion, QuizSet


def get_course(course_id: str) -> Course | None:
    """Load a course and its lessons. Lessons are not re-sorted here."""
    try:
        row = db.get_course(course_id)
        if not row:
            return None
        lesson_rows = db.get_lessons(course_id)
    except Exception as e:
        raise StoreError("course lookup", e) from e

    return Course(
        id=row["id"],
        title=row.get("title", ""),
        description=row.get("description", ""),
        lessons=[_lesson_from_row(r) for r in lesson_rows],
    )


def _lesson_from_row(row: dict) -> Lesson:
    return Lesson(
        id=row["id"],
        course_id=row.get("course_id"),
        order=row["order"],
        title=row.get("title", ""),
        description=row.get("description", ""),
        pdf_url=row.get("pdf_url", ""),
        quiz_set_id=row.get("quiz_set_id"),
        instructor_notes=row.get("instructor_notes") or "",
    )


def get_quiz_set(quiz_set_id: str | None) -> QuizSet | None:
    """Load a quiz set with its questions, or None if there is none."""
    if not quiz_set_id:
        return None
    try:
        row = db.get_quiz_set(quiz_set_id)
        if not row:
            return None
        question_rows = db.get_quiz_questions(quiz_set_id)
    except Exception as e:
        raise StoreError("quiz set lookup", e) from e

    return QuizSet(
        id=row["id"],
        title=row.get("title", ""),
        questions=[
            QuizQuestion(
                id=q["id"],
                question=q.get("question", ""),
                options=_options(q.get("options")),
                correct_answer=q.get("correct_answer", 0),
            )
            for q in question_rows
        ],
    )


def _options(raw) -> list[str]:
    # Older rows store options as a JSON-encoded string
    if isinstance(raw, str):
        return json.loads(raw)
    return raw or []


def get_quiz_sets_for(course: Course) -> dict[str, QuizSet]:
    """Quiz sets referenced by a course's lessons, keyed by ID."""
    quiz_sets = {}
    for lesson in course.lessons:
        if lesson.quiz_set_id and lesson.quiz_set_id not in quiz_sets:
            quiz_set = get_quiz_set(lesson.quiz_set_id)
            if quiz_set:
                quiz_sets[quiz_set.id] = quiz_set
    return quiz_sets
