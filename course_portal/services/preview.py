"""Preview mode — administrators viewing the portal as a specific student."""

import logging
import threading
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreviewState:
    preview_enabled: bool = False
    impersonated_user_id: Optional[str] = None

    def __post_init__(self):
        if self.preview_enabled and not self.impersonated_user_id:
            raise ValueError("preview_enabled requires impersonated_user_id")


DISABLED = PreviewState()


class PreviewOverlay:
    """Per-administrator preview state.

    State is swapped as a whole, so enabling and exiting never leave one
    field set without the other.
    """

    def __init__(self):
        self._states: dict[str, PreviewState] = {}
        self._lock = threading.Lock()

    def state(self, actor_id: str) -> PreviewState:
        return self._states.get(actor_id, DISABLED)

    def enable(self, actor_id: str, student_id: Optional[str]) -> PreviewState:
        """Start previewing as a student. Without a student this is a no-op."""
        if not student_id:
            return self.exit(actor_id)
        new_state = PreviewState(preview_enabled=True, impersonated_user_id=student_id)
        with self._lock:
            self._states[actor_id] = new_state
        logger.info("Preview enabled: admin %s viewing as %s", actor_id, student_id)
        return new_state

    def exit(self, actor_id: str) -> PreviewState:
        with self._lock:
            previous = self._states.pop(actor_id, DISABLED)
        if previous.preview_enabled:
            logger.info("Preview exited for admin %s", actor_id)
        return DISABLED

    def clear(self):
        with self._lock:
            self._states.clear()


overlay = PreviewOverlay()


@dataclass(frozen=True)
class ViewerContext:
    """Who is asking, passed explicitly into the engine."""

    actor_id: Optional[str] = None
    is_admin: bool = False
    preview: PreviewState = field(default=DISABLED)

    @property
    def bypasses_locks(self) -> bool:
        """Admins skip locks and ordering, except while previewing a student."""
        return self.is_admin and not self.preview.preview_enabled

    def subject_id(self, requested_user_id: Optional[str] = None) -> Optional[str]:
        """The user whose progress and locks a read should use."""
        if self.is_admin and self.preview.preview_enabled:
            return self.preview.impersonated_user_id
        return requested_user_id or self.actor_id


def viewer_for(actor_id: Optional[str], is_admin: bool) -> ViewerContext:
    """Build a viewer context, attaching the actor's preview state if any."""
    preview = overlay.state(actor_id) if (is_admin and actor_id) else DISABLED
    return ViewerContext(actor_id=actor_id, is_admin=is_admin, preview=preview)
