"""Completion orchestrator — mark a lesson complete and pick where to go next."""

import logging

from course_portal.errors import CompletionError, NavigationError, StoreError
from course_portal.models import Course, Lesson, NavigationTarget, NavigationView
from course_portal.services import courses, progress

logger = logging.getLogger(__name__)


def next_lesson(course: Course, lesson_id: str) -> Lesson | None:
    """The lesson after lesson_id by ``order``, or None if it is the last."""
    ordered = course.ordered_lessons()
    position = course.position_of(lesson_id)
    if position is None or position + 1 >= len(ordered):
        return None
    return ordered[position + 1]


def navigation_after(course: Course, lesson_id: str) -> NavigationTarget:
    following = next_lesson(course, lesson_id)
    if following is None:
        return NavigationTarget(view=NavigationView.COURSE_COMPLETE, course_id=course.id)
    return NavigationTarget(view=NavigationView.LESSON, course_id=course.id,
                            lesson_id=following.id)


async def complete_lesson(
    user_id: str,
    course_id: str,
    lesson_id: str,
    quiz_score: int | None = None,
) -> NavigationTarget:
    """Persist completion, then return the next lesson or the course-complete view.

    The quiz gate is the caller's job; this write is unconditional. A new
    score replaces the stored one. Raises CompletionError if the write
    fails, so the caller never navigates on a failed completion, and its
    subclass NavigationError if the write landed but the lesson list read
    that follows it did not.
    """
    try:
        progress.record_completion(user_id, course_id, lesson_id, quiz_score)
    except StoreError as e:
        logger.error("Failed to complete lesson %s/%s for %s: %s",
                     course_id, lesson_id, user_id, e)
        raise CompletionError("lesson completion", e.cause) from e

    logger.info("Lesson %s/%s completed by %s (score=%s)",
                course_id, lesson_id, user_id, quiz_score)

    # Lesson lists can be edited between calls, so re-read before picking "next"
    try:
        course = courses.get_course(course_id)
    except StoreError as e:
        raise NavigationError("next lesson lookup", e.cause) from e
    if course is None:
        raise NavigationError(f"next lesson lookup (course {course_id} not found)")

    return navigation_after(course, lesson_id)
