"""Quiz gate — pass-mark checks that decide whether a lesson may be completed."""

import logging

from course_portal import supabase_client as db
from course_portal.config import DEFAULT_ENFORCE_PASS_MARK, DEFAULT_PASS_MARK_PERCENTAGE
from course_portal.errors import StoreError
from course_portal.models import QuizSet, QuizSettings

logger = logging.getLogger(__name__)


def score_percentage(quiz_set: QuizSet, quiz_score: int | None) -> float:
    """Score as a percentage of the question count. An empty quiz scores 100."""
    total = len(quiz_set.questions)
    if total == 0:
        return 100.0
    return (quiz_score or 0) * 100 / total


def can_complete(quiz_set: QuizSet | None, quiz_score: int | None,
                 settings: QuizSettings) -> bool:
    """True if the lesson's quiz does not block completion.

    A missing score counts as zero: under enforcement, "never attempted"
    and "scored nothing" block alike.
    """
    if quiz_set is None:
        return True
    if not settings.enforce_pass_mark:
        return True
    if not quiz_set.questions:
        return True
    return score_percentage(quiz_set, quiz_score) >= settings.pass_mark_percentage


def grade_quiz(quiz_set: QuizSet, answers: list[int | None]) -> int:
    """Number of answers matching each question's correct option."""
    score = 0
    for question, answer in zip(quiz_set.questions, answers):
        if answer is not None and answer == question.correct_answer:
            score += 1
    return score


def get_quiz_settings() -> QuizSettings:
    """Current pass-mark settings; defaults if the row is missing or unreadable."""
    try:
        row = db.get_quiz_settings_row()
    except Exception as e:
        logger.error("Failed to load quiz settings, using defaults: %s", e)
        return QuizSettings()
    if not row:
        return QuizSettings()
    return QuizSettings(
        enforce_pass_mark=row.get("enforce_pass_mark", DEFAULT_ENFORCE_PASS_MARK),
        pass_mark_percentage=row.get("pass_mark_percentage", DEFAULT_PASS_MARK_PERCENTAGE),
    )


def update_quiz_settings(settings: QuizSettings, admin_id: str = "") -> QuizSettings:
    """Persist new pass-mark settings. Stored completions are not re-checked."""
    try:
        db.save_quiz_settings_row({
            "enforce_pass_mark": settings.enforce_pass_mark,
            "pass_mark_percentage": settings.pass_mark_percentage,
        })
        db.log_action(
            "quiz_settings_updated", "quiz_settings", "",
            f"enforce={settings.enforce_pass_mark} pass_mark={settings.pass_mark_percentage}",
            actor_id=admin_id,
        )
    except Exception as e:
        raise StoreError("quiz settings update", e) from e
    logger.info("Quiz settings updated by %s: enforce=%s pass_mark=%s",
                admin_id or "unknown", settings.enforce_pass_mark, settings.pass_mark_percentage)
    return settings
