"""Accessibility resolver — may this student open this lesson right now?

Rules, first match wins:

1. An administrator (not previewing) can open anything.
2. A course lock blocks every lesson of the course.
3. A lesson lock blocks that lesson.
4. The first lesson by ``order`` is open.
5. Any other lesson is open only if the lesson before it (by ``order``) has a
   completed progress record.

Verdicts are recomputed on every call since locks change at any time. Store
failures never escape: a failed lock read counts as locked and a failed
progress read counts as incomplete.
"""

import logging

from course_portal.errors import StoreError
from course_portal.models import AccessReason, AccessVerdict, Course, Lesson
from course_portal.services import locks, progress
from course_portal.services.preview import ViewerContext

logger = logging.getLogger(__name__)


def _verdict(accessible: bool, reason: AccessReason) -> AccessVerdict:
    return AccessVerdict(accessible=accessible, reason=reason)


async def lesson_accessibility(
    user_id: str,
    course: Course,
    lesson_id: str,
    viewer: ViewerContext | None = None,
) -> AccessVerdict:
    """Accessibility verdict with the reason it was reached."""
    viewer = viewer or ViewerContext(actor_id=user_id)
    if viewer.bypasses_locks:
        return _verdict(True, AccessReason.ADMIN_BYPASS)

    subject = viewer.subject_id(user_id)

    try:
        if locks.is_course_locked(subject, course.id):
            return _verdict(False, AccessReason.COURSE_LOCKED)
    except StoreError as e:
        logger.warning("Course lock check failed for %s/%s, treating as locked: %s",
                       subject, course.id, e)
        return _verdict(False, AccessReason.COURSE_LOCKED)

    try:
        if locks.is_lesson_locked(subject, course.id, lesson_id):
            return _verdict(False, AccessReason.LESSON_LOCKED)
    except StoreError as e:
        logger.warning("Lesson lock check failed for %s/%s/%s, treating as locked: %s",
                       subject, course.id, lesson_id, e)
        return _verdict(False, AccessReason.LESSON_LOCKED)

    ordered = course.ordered_lessons()
    position = course.position_of(lesson_id)
    if position is None:
        logger.warning("Lesson %s not found in course %s", lesson_id, course.id)
        return _verdict(False, AccessReason.LESSON_NOT_FOUND)

    if position == 0:
        return _verdict(True, AccessReason.NOT_LOCKED)

    previous = ordered[position - 1]
    try:
        record = progress.get_progress(subject, course.id, previous.id)
    except StoreError as e:
        logger.warning("Progress check failed for %s/%s/%s, treating as incomplete: %s",
                       subject, course.id, previous.id, e)
        return _verdict(False, AccessReason.PREVIOUS_INCOMPLETE)

    if record is not None and record.completed:
        return _verdict(True, AccessReason.NOT_LOCKED)
    return _verdict(False, AccessReason.PREVIOUS_INCOMPLETE)


async def is_lesson_accessible(
    user_id: str,
    course: Course,
    lesson_id: str,
    viewer: ViewerContext | None = None,
) -> bool:
    verdict = await lesson_accessibility(user_id, course, lesson_id, viewer)
    return verdict.accessible


async def course_accessibility(
    user_id: str,
    course: Course,
    viewer: ViewerContext | None = None,
) -> list[tuple[Lesson, AccessVerdict]]:
    """Verdicts for every lesson of a course, in ``order``.

    Same rules as lesson_accessibility, with one lock read and one progress
    read for the whole course.
    """
    viewer = viewer or ViewerContext(actor_id=user_id)
    ordered = course.ordered_lessons()
    if viewer.bypasses_locks:
        return [(lesson, _verdict(True, AccessReason.ADMIN_BYPASS)) for lesson in ordered]

    subject = viewer.subject_id(user_id)

    try:
        course_locked = locks.is_course_locked(subject, course.id)
    except StoreError as e:
        logger.warning("Course lock check failed for %s/%s, treating as locked: %s",
                       subject, course.id, e)
        course_locked = True
    if course_locked:
        return [(lesson, _verdict(False, AccessReason.COURSE_LOCKED)) for lesson in ordered]

    try:
        locked_ids = locks.locked_lesson_ids(subject, course.id)
    except StoreError as e:
        logger.warning("Lesson lock listing failed for %s/%s, treating all as locked: %s",
                       subject, course.id, e)
        locked_ids = {lesson.id for lesson in ordered}

    try:
        completed_ids = {
            r.lesson_id for r in progress.get_course_progress(subject, course.id) if r.completed
        }
    except StoreError as e:
        logger.warning("Progress listing failed for %s/%s, treating all as incomplete: %s",
                       subject, course.id, e)
        completed_ids = set()

    results = []
    for i, lesson in enumerate(ordered):
        if lesson.id in locked_ids:
            verdict = _verdict(False, AccessReason.LESSON_LOCKED)
        elif i == 0 or ordered[i - 1].id in completed_ids:
            verdict = _verdict(True, AccessReason.NOT_LOCKED)
        else:
            verdict = _verdict(False, AccessReason.PREVIOUS_INCOMPLETE)
        results.append((lesson, verdict))
    return results
