"""Engine configuration and constants."""
import os
from pathlib import Path


def _parse_int_env(name: str, default: int) -> int:
    """Parse integer from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _parse_float_env(name: str, default: float) -> float:
    """Parse float from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

# Remote mock service
MOCK_API_BASE_URL = os.environ.get(
    "MOCK_API_BASE_URL", "https://mock.fleetoneld.com/ielts-mock-main"
)
MOCK_API_TIMEOUT_SECONDS = _parse_float_env("MOCK_API_TIMEOUT_SECONDS", 30.0)

# Database
DB_DIR = Path(os.environ.get("DB_DIR", Path.cwd() / "data"))
DATABASE_URL = os.environ.get(
    "DATABASE_URL", f"sqlite:///{DB_DIR / 'mock_core.db'}"
)

# Answer delivery
SEND_ANSWER_MAX_RETRIES = _parse_int_env("SEND_ANSWER_MAX_RETRIES", 3)
ANSWER_RETRY_INTERVAL_TICKS = _parse_int_env("ANSWER_RETRY_INTERVAL_TICKS", 15)
ANSWER_LIST_SEPARATOR = ","

# Session cleanup
FINISHED_SESSION_TTL_SECONDS = _parse_int_env("FINISHED_SESSION_TTL_SECONDS", 10 * 60)
SESSION_CLEANUP_INTERVAL_SECONDS = _parse_int_env("SESSION_CLEANUP_INTERVAL_SECONDS", 60)

# Timer
TIMER_TICK_SECONDS = 1.0
TIMER_PERSIST_INTERVAL_TICKS = _parse_int_env("TIMER_PERSIST_INTERVAL_TICKS", 10)
SECTION_TIME_LIMITS = {
    "listening": _parse_int_env("LISTENING_TIME_LIMIT_SECONDS", 30 * 60),
    "reading": _parse_int_env("READING_TIME_LIMIT_SECONDS", 60 * 60),
    "writing": _parse_int_env("WRITING_TIME_LIMIT_SECONDS", 60 * 60),
    "speaking": _parse_int_env("SPEAKING_TIME_LIMIT_SECONDS", 15 * 60),
}

# Content and numbering
CONTENT_MAX_PARSE_DEPTH = 10
DEFAULT_GROUP_SIZE = _parse_int_env("DEFAULT_GROUP_SIZE", 5)
