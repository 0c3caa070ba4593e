"""Database models."""
from mock_core.models.db.dropped_answer import DroppedAnswer
from mock_core.models.db.timer_state import TimerState

__all__ = [
    "DroppedAnswer",
    "TimerState",
]
