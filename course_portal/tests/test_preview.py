"""Tests for preview mode state and viewer subject resolution."""

import pytest

from course_portal.services.preview import (
    PreviewOverlay, PreviewState, ViewerContext, viewer_for,
)


class TestPreviewOverlay:
    def test_enable_without_student_stays_disabled(self):
        overlay = PreviewOverlay()
        state = overlay.enable("admin-1", None)
        assert state.preview_enabled is False
        assert overlay.state("admin-1").impersonated_user_id is None

    def test_enable_with_empty_string_stays_disabled(self):
        overlay = PreviewOverlay()
        assert overlay.enable("admin-1", "").preview_enabled is False

    def test_enable_sets_both_fields(self):
        overlay = PreviewOverlay()
        state = overlay.enable("admin-1", "student-9")
        assert state == PreviewState(preview_enabled=True, impersonated_user_id="student-9")

    def test_exit_clears_both_fields(self):
        overlay = PreviewOverlay()
        overlay.enable("admin-1", "student-9")
        overlay.exit("admin-1")
        state = overlay.state("admin-1")
        assert state.preview_enabled is False
        assert state.impersonated_user_id is None

    def test_enable_without_student_exits_active_preview(self):
        overlay = PreviewOverlay()
        overlay.enable("admin-1", "student-9")
        overlay.enable("admin-1", None)
        assert overlay.state("admin-1") == PreviewState()

    def test_states_are_per_admin(self):
        overlay = PreviewOverlay()
        overlay.enable("admin-1", "student-9")
        assert overlay.state("admin-2").preview_enabled is False

    def test_enabled_without_identity_is_unrepresentable(self):
        with pytest.raises(ValueError):
            PreviewState(preview_enabled=True, impersonated_user_id=None)


class TestViewerContext:
    def test_student_reads_own_progress(self):
        viewer = ViewerContext(actor_id="student-1")
        assert viewer.subject_id() == "student-1"
        assert viewer.bypasses_locks is False

    def test_admin_bypasses_outside_preview(self):
        viewer = ViewerContext(actor_id="admin-1", is_admin=True)
        assert viewer.bypasses_locks is True
        assert viewer.subject_id() == "admin-1"

    def test_preview_substitutes_subject_and_drops_bypass(self):
        viewer = ViewerContext(
            actor_id="admin-1", is_admin=True,
            preview=PreviewState(preview_enabled=True, impersonated_user_id="student-9"),
        )
        assert viewer.bypasses_locks is False
        assert viewer.subject_id("admin-1") == "student-9"

    def test_viewer_for_picks_up_overlay_state(self):
        from course_portal.services.preview import overlay

        overlay.enable("admin-1", "student-9")
        viewer = viewer_for("admin-1", True)
        assert viewer.subject_id() == "student-9"

    def test_viewer_for_ignores_overlay_for_students(self):
        from course_portal.services.preview import overlay

        overlay.enable("student-1", "student-9")
        viewer = viewer_for("student-1", False)
        assert viewer.preview.preview_enabled is False
        assert viewer.subject_id() == "student-1"
