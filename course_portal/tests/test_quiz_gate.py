"""Tests for the quiz gate — pass-mark math, grading, settings defaults."""

from unittest.mock import patch

import pytest

from course_portal.errors import StoreError
from course_portal.models import QuizQuestion, QuizSet, QuizSettings
from course_portal.services.quiz_gate import (
    can_complete, get_quiz_settings, grade_quiz, score_percentage, update_quiz_settings,
)


def quiz_of(n):
    return QuizSet(id="qs-1", questions=[
        QuizQuestion(id=f"q{i}", question=f"Q{i}", options=["a", "b"], correct_answer=1)
        for i in range(n)
    ])


ENFORCED_70 = QuizSettings(enforce_pass_mark=True, pass_mark_percentage=70)
NOT_ENFORCED = QuizSettings(enforce_pass_mark=False, pass_mark_percentage=70)


class TestCanComplete:
    def test_no_quiz_always_passes(self):
        assert can_complete(None, 0, ENFORCED_70) is True
        assert can_complete(None, None, ENFORCED_70) is True

    @pytest.mark.parametrize("score", [0, -3, 999, None])
    def test_enforcement_off_passes_any_score(self, score):
        assert can_complete(quiz_of(10), score, NOT_ENFORCED) is True

    @pytest.mark.parametrize("score", [0, None, 5])
    def test_empty_quiz_cannot_be_failed(self, score):
        assert can_complete(quiz_of(0), score, ENFORCED_70) is True

    def test_exact_threshold_passes(self):
        assert can_complete(quiz_of(10), 7, ENFORCED_70) is True

    def test_below_threshold_fails(self):
        assert can_complete(quiz_of(10), 6, ENFORCED_70) is False

    def test_zero_score_blocks_under_enforcement(self):
        assert can_complete(quiz_of(10), 0, ENFORCED_70) is False

    def test_never_attempted_blocks_like_zero(self):
        assert can_complete(quiz_of(10), None, ENFORCED_70) is False

    def test_zero_threshold_passes_zero_score(self):
        settings = QuizSettings(enforce_pass_mark=True, pass_mark_percentage=0)
        assert can_complete(quiz_of(4), 0, settings) is True

    def test_thirds_do_not_round_up(self):
        settings = QuizSettings(enforce_pass_mark=True, pass_mark_percentage=67)
        assert can_complete(quiz_of(3), 2, settings) is False
        assert can_complete(quiz_of(3), 3, settings) is True


class TestScoring:
    def test_percentage(self):
        assert score_percentage(quiz_of(4), 3) == 75

    def test_empty_quiz_is_full_marks(self):
        assert score_percentage(quiz_of(0), 0) == 100

    def test_grade_counts_correct_answers(self):
        assert grade_quiz(quiz_of(3), [1, 0, 1]) == 2

    def test_grade_ignores_unanswered(self):
        assert grade_quiz(quiz_of(3), [1, None]) == 1


class TestQuizSettings:
    def test_defaults_when_row_missing(self, fake_db):
        settings = get_quiz_settings()
        assert settings.enforce_pass_mark is True
        assert settings.pass_mark_percentage == 70

    def test_reads_stored_row(self, fake_db):
        fake_db.store["quiz_settings"].append({
            "id": "s1", "enforce_pass_mark": False, "pass_mark_percentage": 50,
        })
        settings = get_quiz_settings()
        assert settings.enforce_pass_mark is False
        assert settings.pass_mark_percentage == 50

    def test_defaults_when_read_fails(self, fake_db):
        with patch("course_portal.supabase_client.get_quiz_settings_row",
                   side_effect=RuntimeError("network down")):
            settings = get_quiz_settings()
        assert settings == QuizSettings()

    def test_update_creates_then_overwrites(self, fake_db):
        update_quiz_settings(QuizSettings(enforce_pass_mark=True, pass_mark_percentage=80))
        update_quiz_settings(QuizSettings(enforce_pass_mark=False, pass_mark_percentage=60))
        rows = fake_db.store["quiz_settings"]
        assert len(rows) == 1
        assert rows[0]["pass_mark_percentage"] == 60
        assert any(log["action"] == "quiz_settings_updated" for log in fake_db.store["audit_log"])

    def test_update_failure_raises_store_error(self, fake_db):
        with patch("course_portal.supabase_client.save_quiz_settings_row",
                   side_effect=RuntimeError("x")):
            with pytest.raises(StoreError):
                update_quiz_settings(QuizSettings(pass_mark_percentage=80), admin_id="admin-1")
        assert fake_db.store["audit_log"] == []

    def test_percentage_out_of_range_rejected(self):
        with pytest.raises(ValueError):
            QuizSettings(pass_mark_percentage=120)
