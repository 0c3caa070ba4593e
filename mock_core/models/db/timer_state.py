"""
TimerState database model: remaining time of a section countdown.
"""

from __future__ import annotations

from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from mock_core.database import Base


class TimerState(Base):
    """
    Remaining seconds of a running section, keyed by (mock_id, section_id).
    Survives a page reload so the countdown resumes instead of restarting.
    """

    __tablename__ = "timer_states"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    mock_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    section_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    remaining_seconds: Mapped[int] = mapped_column(nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("mock_id", "section_id", name="uq_timer_mock_section"),
    )
