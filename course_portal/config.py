"""Course Portal configuration — loaded from environment variables."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent / ".env")

REPO_ROOT = Path(__file__).resolve().parent.parent

# Supabase
SUPABASE_URL = os.environ.get("SUPABASE_URL", "")
SUPABASE_SERVICE_KEY = os.environ.get("SUPABASE_SERVICE_KEY", "")

# Server
HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "8000"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

# Lesson timer: persist time every N foreground seconds
TIME_SAVE_INTERVAL_SECONDS = int(os.environ.get("TIME_SAVE_INTERVAL_SECONDS", "30"))
TIMER_TICK_SECONDS = int(os.environ.get("TIMER_TICK_SECONDS", "1"))
# Stop a timer after this many ticks without a heartbeat from the client (0 disables)
TIMER_IDLE_TIMEOUT_SECONDS = int(os.environ.get("TIMER_IDLE_TIMEOUT_SECONDS", "90"))

# Quiz pass mark, used when the quiz_settings row is missing or unreadable
DEFAULT_PASS_MARK_PERCENTAGE = float(os.environ.get("DEFAULT_PASS_MARK_PERCENTAGE", "70"))
DEFAULT_ENFORCE_PASS_MARK = os.environ.get("DEFAULT_ENFORCE_PASS_MARK", "true").lower() in ("1", "true", "yes")

# Tables
COURSES_TABLE = "courses"
LESSONS_TABLE = "lessons"
QUIZ_SETS_TABLE = "quiz_sets"
QUIZ_QUESTIONS_TABLE = "quiz_questions"
QUIZ_SETTINGS_TABLE = "quiz_settings"
PROGRESS_TABLE = "user_progress"
COURSE_LOCKS_TABLE = "user_course_locks"
LESSON_LOCKS_TABLE = "user_lesson_locks"
AUDIT_LOG_TABLE = "audit_log"
