"""Local record of answers the delivery queue gave up on."""

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session as DbSession, sessionmaker

from mock_core.database import SessionLocal
from mock_core.models.db.dropped_answer import DroppedAnswer

logger = logging.getLogger(__name__)


class DroppedAnswerStore:
    """Persist dropped answers so they can be re-sent before the section closes."""

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self.session_factory = session_factory

    def record(
        self,
        mock_id: str,
        section_id: str,
        question_ord: int,
        answer: str,
        attempts: int,
        last_error: str | None = None,
    ) -> DroppedAnswer:
        """Store one dropped answer."""
        db: DbSession = self.session_factory()
        try:
            row = DroppedAnswer(
                mock_id=mock_id,
                section_id=section_id,
                question_ord=question_ord,
                answer=answer,
                attempts=attempts,
                last_error=last_error,
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            db.expunge(row)
            return row
        finally:
            db.close()

    def list_unsent(self, mock_id: str, section_id: str) -> list[DroppedAnswer]:
        """Dropped answers of a section not yet handed back to the queue."""
        db: DbSession = self.session_factory()
        try:
            stmt = (
                select(DroppedAnswer)
                .where(
                    DroppedAnswer.mock_id == mock_id,
                    DroppedAnswer.section_id == section_id,
                    DroppedAnswer.resent_at.is_(None),
                )
                .order_by(DroppedAnswer.question_ord, DroppedAnswer.id)
            )
            rows = list(db.execute(stmt).scalars())
            for row in rows:
                db.expunge(row)
            return rows
        finally:
            db.close()

    def mark_resent(self, ids: list[int]) -> int:
        """Flag rows as re-queued; returns how many were updated."""
        if not ids:
            return 0
        db: DbSession = self.session_factory()
        try:
            now = datetime.now(timezone.utc)
            rows = db.execute(select(DroppedAnswer).where(DroppedAnswer.id.in_(ids))).scalars()
            count = 0
            for row in rows:
                row.resent_at = now
                count += 1
            db.commit()
            return count
        finally:
            db.close()

    def clear(self, mock_id: str, section_id: str) -> int:
        """Delete every dropped answer of a section."""
        db: DbSession = self.session_factory()
        try:
            stmt = select(DroppedAnswer).where(
                DroppedAnswer.mock_id == mock_id,
                DroppedAnswer.section_id == section_id,
            )
            rows = list(db.execute(stmt).scalars())
            for row in rows:
                db.delete(row)
            db.commit()
            if rows:
                logger.info(
                    "Cleared %d dropped answers for mock %s section %s",
                    len(rows),
                    mock_id,
                    section_id,
                )
            return len(rows)
        finally:
            db.close()
