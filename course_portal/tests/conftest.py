"""Shared fixtures for Course Portal tests.

Provides:
- fake_db: patches supabase_client with an in-memory fake
- client: sync TestClient wired to the FastAPI app
- sample data factories for courses, lessons, quiz sets, progress, locks
"""

import os
import uuid
from collections import defaultdict
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

# Set env vars before any course_portal imports
os.environ.setdefault("SUPABASE_URL", "https://fake.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "fake-key")


# ---------------------------------------------------------------------------
# In-memory fake Supabase
# ---------------------------------------------------------------------------

class FakeQueryResult:
    def __init__(self, data=None, count=None):
        self.data = data or []
        self.count = count


class FakeQueryBuilder:
    """Mimics the supabase-py query builder chain."""

    def __init__(self, store, table_name):
        self._store = store
        self._table = table_name
        self._filters = []
        self._order_col = None
        self._order_desc = False
        self._limit_val = None
        self._columns = "*"
        self._upsert_data = None
        self._upsert_conflict = None
        self._update_data = None
        self._delete_mode = False
        self._insert_data = None

    def select(self, columns="*", count=None):
        self._columns = columns
        return self

    def insert(self, data):
        self._insert_data = data
        return self

    def upsert(self, data, on_conflict=None):
        self._upsert_data = data
        self._upsert_conflict = on_conflict
        return self

    def update(self, data):
        self._update_data = data
        return self

    def delete(self):
        self._delete_mode = True
        return self

    def eq(self, col, val):
        self._filters.append((col, val))
        return self

    def order(self, col, desc=False):
        self._order_col = col
        self._order_desc = desc
        return self

    def limit(self, n):
        self._limit_val = n
        return self

    def _match(self, row):
        return all(row.get(col) == val for col, val in self._filters)

    def execute(self):
        table = self._store[self._table]

        if self._insert_data is not None:
            row = dict(self._insert_data)
            if "id" not in row:
                row["id"] = str(uuid.uuid4())
            table.append(row)
            return FakeQueryResult(data=[row])

        if self._upsert_data is not None:
            row = dict(self._upsert_data)
            if self._upsert_conflict:
                conflict_cols = [c.strip() for c in self._upsert_conflict.split(",")]
                for existing in table:
                    if all(existing.get(c) == row.get(c) for c in conflict_cols):
                        existing.update(row)
                        return FakeQueryResult(data=[existing])
            if "id" not in row:
                row["id"] = str(uuid.uuid4())
            table.append(row)
            return FakeQueryResult(data=[row])

        if self._update_data is not None:
            updated = []
            for row in table:
                if self._match(row):
                    row.update(self._update_data)
                    updated.append(row)
            return FakeQueryResult(data=updated)

        if self._delete_mode:
            removed = [r for r in table if self._match(r)]
            remaining = [r for r in table if not self._match(r)]
            table.clear()
            table.extend(remaining)
            return FakeQueryResult(data=removed)

        # SELECT
        rows = [r for r in table if self._match(r)]
        if self._order_col:
            rows.sort(key=lambda r: r.get(self._order_col, ""), reverse=self._order_desc)
        if self._limit_val is not None:
            rows = rows[:self._limit_val]
        return FakeQueryResult(data=rows)


class FakeDB:
    """In-memory store keyed by table name."""

    def __init__(self):
        self.store = defaultdict(list)

    def table(self, name):
        return FakeQueryBuilder(self.store, name)

    def clear(self):
        self.store.clear()


@pytest.fixture
def fake_db():
    """Provides a clean in-memory DB and patches supabase_client._table."""
    db = FakeDB()

    def fake_table(name):
        return FakeQueryBuilder(db.store, name)

    with patch("course_portal.supabase_client._table", side_effect=fake_table):
        with patch("course_portal.supabase_client.get_client", return_value=MagicMock()):
            yield db


@pytest.fixture(autouse=True)
def reset_preview():
    """Preview state is process-wide; start every test with none."""
    from course_portal.services.preview import overlay
    overlay.clear()
    yield
    overlay.clear()


@pytest.fixture
def timer_registry():
    """The app's timer registry with its APScheduler swapped for a mock."""
    from course_portal.scheduler import timers

    with patch.object(timers, "_scheduler", MagicMock()) as job_scheduler:
        yield timers, job_scheduler
        timers._timers.clear()


@pytest.fixture
def client(fake_db, timer_registry):
    """Sync test client for the FastAPI app with mocked DB and scheduler."""
    from contextlib import asynccontextmanager

    from fastapi.testclient import TestClient

    from course_portal.app import create_app

    @asynccontextmanager
    async def noop_lifespan(app):
        yield

    app = create_app()
    app.router.lifespan_context = noop_lifespan

    with TestClient(app) as c:
        yield c


def run(coro):
    """Run a coroutine to completion on a fresh event loop."""
    import asyncio

    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def student_headers(user_id="student-1"):
    return {"X-User-Id": user_id, "X-User-Role": "student"}


def admin_headers(user_id="admin-1"):
    return {"X-User-Id": user_id, "X-User-Role": "admin"}


# ---------------------------------------------------------------------------
# Data factories
# ---------------------------------------------------------------------------

def _now():
    return datetime.now(timezone.utc).isoformat()


def make_course(**overrides):
    defaults = {
        "id": "course-1",
        "title": "Intro to Coaching",
        "description": "Foundations",
        "created_at": _now(),
        "updated_at": _now(),
    }
    defaults.update(overrides)
    return defaults


def make_lesson(**overrides):
    defaults = {
        "id": str(uuid.uuid4()),
        "course_id": "course-1",
        "order": 1,
        "title": "Lesson",
        "description": "",
        "pdf_url": "https://files.example.com/lesson.pdf",
        "quiz_set_id": None,
        "instructor_notes": "",
        "created_at": _now(),
    }
    defaults.update(overrides)
    return defaults


def make_quiz_set(**overrides):
    defaults = {"id": str(uuid.uuid4()), "title": "Checkpoint quiz", "created_at": _now()}
    defaults.update(overrides)
    return defaults


def make_question(quiz_set_id, **overrides):
    defaults = {
        "id": str(uuid.uuid4()),
        "quiz_set_id": quiz_set_id,
        "question": "Pick the first option",
        "options": ["a", "b", "c"],
        "correct_answer": 0,
        "created_at": _now(),
    }
    defaults.update(overrides)
    return defaults


def make_progress(**overrides):
    defaults = {
        "id": str(uuid.uuid4()),
        "user_id": "student-1",
        "course_id": "course-1",
        "lesson_id": "lesson-1",
        "started": True,
        "completed": False,
        "time_spent": 0,
        "pdf_viewed": False,
        "quiz_score": None,
        "quiz_attempts": 0,
    }
    defaults.update(overrides)
    return defaults


def seed_course(fake_db, lesson_orders=(1, 2, 3), course_id="course-1"):
    """Insert a course whose lessons are stored out of order. Returns lesson rows by order."""
    fake_db.store["courses"].append(make_course(id=course_id))
    lessons = {}
    for order in reversed(lesson_orders):
        row = make_lesson(id=f"lesson-{order}", course_id=course_id, order=order,
                          title=f"Lesson {order}")
        fake_db.store["lessons"].append(row)
        lessons[order] = row
    return lessons


def seed_quiz(fake_db, lesson_row, question_count=10):
    quiz_set = make_quiz_set()
    fake_db.store["quiz_sets"].append(quiz_set)
    for _ in range(question_count):
        fake_db.store["quiz_questions"].append(make_question(quiz_set["id"]))
    lesson_row["quiz_set_id"] = quiz_set["id"]
    return quiz_set
