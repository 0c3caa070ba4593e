"""
DroppedAnswer database model: answers that exhausted their delivery retries.
"""

from __future__ import annotations

from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from mock_core.database import Base


class DroppedAnswer(Base):
    """
    Answer removed from the pending set after the retry ceiling.
    Kept locally so it can be re-sent manually before the section closes.
    """

    __tablename__ = "dropped_answers"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    mock_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    section_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    question_ord: Mapped[int] = mapped_column(nullable=False)
    answer: Mapped[str] = mapped_column(Text, nullable=False)
    attempts: Mapped[int] = mapped_column(default=0, nullable=False)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    dropped_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    resent_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )

    @property
    def is_resent(self) -> bool:
        """Check if the answer has been handed back to the queue."""
        return self.resent_at is not None
