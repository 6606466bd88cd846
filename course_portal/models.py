"""Typed records for courses, progress, locks and access verdicts.

Rows come back from Supabase as plain dicts; services convert them here so
that an absent record stays ``None`` instead of a zero-filled dict.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from course_portal.config import DEFAULT_ENFORCE_PASS_MARK, DEFAULT_PASS_MARK_PERCENTAGE


class Lesson(BaseModel):
    id: str
    course_id: Optional[str] = None
    order: int
    title: str = ""
    description: str = ""
    pdf_url: str = ""
    quiz_set_id: Optional[str] = None
    instructor_notes: str = ""


class Course(BaseModel):
    id: str
    title: str = ""
    description: str = ""
    lessons: list[Lesson] = Field(default_factory=list)

    def ordered_lessons(self) -> list[Lesson]:
        """Lessons sorted by their ``order`` field; list position is ignored."""
        return sorted(self.lessons, key=lambda lesson: lesson.order)

    def position_of(self, lesson_id: str) -> Optional[int]:
        """Index of a lesson in ``ordered_lessons()``, or None if absent."""
        for i, lesson in enumerate(self.ordered_lessons()):
            if lesson.id == lesson_id:
                return i
        return None


class QuizQuestion(BaseModel):
    id: str
    question: str = ""
    options: list[str] = Field(default_factory=list)
    correct_answer: int = 0


class QuizSet(BaseModel):
    id: str
    title: str = ""
    questions: list[QuizQuestion] = Field(default_factory=list)


class QuizSettings(BaseModel):
    enforce_pass_mark: bool = DEFAULT_ENFORCE_PASS_MARK
    pass_mark_percentage: float = Field(DEFAULT_PASS_MARK_PERCENTAGE, ge=0, le=100)


class ProgressRecord(BaseModel):
    user_id: str
    course_id: str
    lesson_id: str
    started: bool = False
    completed: bool = False
    time_spent: int = 0
    quiz_score: Optional[int] = None
    quiz_attempts: int = 0
    pdf_viewed: bool = False

    @classmethod
    def from_row(cls, row: dict) -> "ProgressRecord":
        return cls(
            user_id=row["user_id"],
            course_id=row["course_id"],
            lesson_id=row["lesson_id"],
            started=bool(row.get("started")),
            completed=bool(row.get("completed")),
            time_spent=row.get("time_spent") or 0,
            quiz_score=row.get("quiz_score"),
            quiz_attempts=row.get("quiz_attempts") or 0,
            pdf_viewed=bool(row.get("pdf_viewed")),
        )


class AccessReason(str, Enum):
    NOT_LOCKED = "not_locked"
    PREVIOUS_INCOMPLETE = "previous_incomplete"
    LESSON_LOCKED = "lesson_locked"
    COURSE_LOCKED = "course_locked"
    ADMIN_BYPASS = "admin_bypass"
    LESSON_NOT_FOUND = "lesson_not_found"


class AccessVerdict(BaseModel):
    accessible: bool
    reason: AccessReason


class NavigationView(str, Enum):
    LESSON = "lesson"
    COURSE_COMPLETE = "course_complete"


class NavigationTarget(BaseModel):
    view: NavigationView
    course_id: str
    lesson_id: Optional[str] = None

    @property
    def path(self) -> str:
        if self.view == NavigationView.LESSON:
            return f"/courses/{self.course_id}/lessons/{self.lesson_id}"
        return f"/courses/{self.course_id}/complete"
