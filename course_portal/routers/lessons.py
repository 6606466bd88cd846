"""Lessons API — lesson list with access verdicts, quiz grading, completion."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from course_portal.errors import CompletionError, NavigationError, StoreError
from course_portal.models import Course, Lesson
from course_portal.services import courses, progress
from course_portal.services.accessibility import course_accessibility, lesson_accessibility
from course_portal.services.completion import complete_lesson
from course_portal.services.preview import ViewerContext
from course_portal.services.quiz_gate import (
    can_complete, get_quiz_settings, grade_quiz, score_percentage,
)
from course_portal.routers.identity import current_viewer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/courses", tags=["Lessons"])


class QuizSubmission(BaseModel):
    answers: list[Optional[int]]


class CompletionRequest(BaseModel):
    quiz_score: Optional[int] = Field(None, ge=0)


def _load_course(course_id: str) -> Course:
    try:
        course = courses.get_course(course_id)
    except StoreError as e:
        logger.error("Course %s could not be loaded: %s", course_id, e)
        raise HTTPException(status_code=502, detail="Could not load course")
    if course is None:
        raise HTTPException(status_code=404, detail=f"Course {course_id} not found")
    return course


def _find_lesson(course: Course, lesson_id: str) -> Lesson:
    for lesson in course.lessons:
        if lesson.id == lesson_id:
            return lesson
    raise HTTPException(status_code=404, detail=f"Lesson {lesson_id} not found")


def _load_quiz_set(lesson: Lesson):
    try:
        return courses.get_quiz_set(lesson.quiz_set_id)
    except StoreError as e:
        logger.error("Quiz set %s could not be loaded: %s", lesson.quiz_set_id, e)
        raise HTTPException(status_code=502, detail="Could not load quiz")


@router.get("/{course_id}/lessons")
async def list_lessons(course_id: str, viewer: ViewerContext = Depends(current_viewer)):
    """Lessons in order, each with its access verdict and the subject's progress."""
    course = _load_course(course_id)
    subject = viewer.subject_id()

    try:
        records = {r.lesson_id: r for r in progress.get_course_progress(subject, course.id)}
    except StoreError as e:
        logger.warning("Progress unavailable for %s/%s: %s", subject, course.id, e)
        records = {}

    results = []
    for lesson, verdict in await course_accessibility(subject, course, viewer):
        record = records.get(lesson.id)
        results.append({
            "id": lesson.id,
            "order": lesson.order,
            "title": lesson.title,
            "description": lesson.description,
            "has_quiz": lesson.quiz_set_id is not None,
            "accessible": verdict.accessible,
            "reason": verdict.reason.value,
            "completed": bool(record and record.completed),
            "quiz_score": record.quiz_score if record else None,
        })

    return {
        "course_id": course.id,
        "title": course.title,
        "preview": viewer.preview.preview_enabled,
        "lessons": results,
    }


@router.get("/{course_id}/lessons/{lesson_id}/access")
async def lesson_access(course_id: str, lesson_id: str,
                        viewer: ViewerContext = Depends(current_viewer)):
    course = _load_course(course_id)
    verdict = await lesson_accessibility(viewer.subject_id(), course, lesson_id, viewer)
    return {"lesson_id": lesson_id, **verdict.model_dump(mode="json")}


@router.get("/{course_id}/lessons/{lesson_id}")
async def lesson_detail(course_id: str, lesson_id: str,
                        viewer: ViewerContext = Depends(current_viewer)):
    """Lesson content, refused when the lesson is not accessible."""
    course = _load_course(course_id)
    lesson = _find_lesson(course, lesson_id)
    subject = viewer.subject_id()

    verdict = await lesson_accessibility(subject, course, lesson_id, viewer)
    if not verdict.accessible:
        raise HTTPException(status_code=403, detail=f"Lesson is not accessible: {verdict.reason.value}")

    try:
        record = progress.get_progress(subject, course.id, lesson.id)
    except StoreError as e:
        logger.warning("Progress unavailable for %s/%s: %s", subject, lesson.id, e)
        record = None

    quiz_set = _load_quiz_set(lesson)
    body = lesson.model_dump()
    if not viewer.is_admin:
        body.pop("instructor_notes", None)
    body["quiz"] = None if quiz_set is None else {
        "id": quiz_set.id,
        "title": quiz_set.title,
        "questions": [
            {"id": q.id, "question": q.question, "options": q.options}
            for q in quiz_set.questions
        ],
    }
    body["progress"] = record.model_dump() if record else None
    return body


@router.post("/{course_id}/lessons/{lesson_id}/quiz")
async def submit_quiz(course_id: str, lesson_id: str, submission: QuizSubmission,
                      viewer: ViewerContext = Depends(current_viewer)):
    """Grade answers. Nothing is stored until the lesson is completed."""
    course = _load_course(course_id)
    lesson = _find_lesson(course, lesson_id)
    quiz_set = _load_quiz_set(lesson)
    if quiz_set is None:
        raise HTTPException(status_code=404, detail="Lesson has no quiz")

    settings = get_quiz_settings()
    score = grade_quiz(quiz_set, submission.answers)
    return {
        "score": score,
        "total": len(quiz_set.questions),
        "percentage": score_percentage(quiz_set, score),
        "required_percentage": settings.pass_mark_percentage if settings.enforce_pass_mark else 0,
        "passed": can_complete(quiz_set, score, settings),
    }


@router.post("/{course_id}/lessons/{lesson_id}/complete")
async def complete(course_id: str, lesson_id: str, body: CompletionRequest,
                   viewer: ViewerContext = Depends(current_viewer)):
    """Check access and the quiz gate, then complete and return the next view."""
    if viewer.preview.preview_enabled:
        raise HTTPException(status_code=403, detail="Preview mode is read-only")

    course = _load_course(course_id)
    lesson = _find_lesson(course, lesson_id)
    user_id = viewer.subject_id()

    verdict = await lesson_accessibility(user_id, course, lesson_id, viewer)
    if not verdict.accessible:
        raise HTTPException(status_code=403, detail=f"Lesson is not accessible: {verdict.reason.value}")

    quiz_set = _load_quiz_set(lesson)
    if (quiz_set is not None and body.quiz_score is not None
            and body.quiz_score > len(quiz_set.questions)):
        raise HTTPException(
            status_code=422,
            detail=f"quiz_score must be between 0 and {len(quiz_set.questions)}",
        )
    if not can_complete(quiz_set, body.quiz_score, get_quiz_settings()):
        raise HTTPException(status_code=403, detail="Quiz pass mark not met")

    try:
        target = await complete_lesson(user_id, course.id, lesson.id, body.quiz_score)
    except NavigationError as e:
        raise HTTPException(status_code=502,
                            detail=f"Completed, but the next lesson could not be determined: {e}")
    except CompletionError as e:
        raise HTTPException(status_code=502, detail=f"Could not save completion: {e}")

    return {
        "completed": True,
        "next_view": target.view.value,
        "course_id": target.course_id,
        "lesson_id": target.lesson_id,
        "path": target.path,
    }


@router.get("/{course_id}/progress")
async def course_progress(course_id: str, viewer: ViewerContext = Depends(current_viewer)):
    course = _load_course(course_id)
    subject = viewer.subject_id()
    try:
        records = progress.get_course_progress(subject, course.id)
        quiz_sets = courses.get_quiz_sets_for(course)
    except StoreError as e:
        logger.error("Progress summary failed for %s/%s: %s", subject, course.id, e)
        raise HTTPException(status_code=502, detail="Could not load progress")
    return progress.course_summary(course, records, quiz_sets)
