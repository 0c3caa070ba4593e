"""
State of one learner attempt at one section.

A ``TestSessionStore`` is created per active attempt and owns that attempt's
answer queue and timer; nothing is shared between sessions. The
``SessionRegistry`` keeps the live stores of the running app.
"""
from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping

from mock_core.config import (
    ANSWER_RETRY_INTERVAL_TICKS,
    FINISHED_SESSION_TTL_SECONDS,
    SECTION_TIME_LIMITS,
    TIMER_TICK_SECONDS,
)
from mock_core.models.content import SectionType
from mock_core.models.remote import SubmittedAnswerDto
from mock_core.services.answer_queue import AnswerSyncQueue, AnswerValue, is_blank
from mock_core.services.content_service import normalize_part_content, strip_answers
from mock_core.services.dropped_answer_service import DroppedAnswerStore
from mock_core.services.numbering_service import (
    number_section,
    part_question_count,
    part_question_range,
)
from mock_core.services.remote_api import MockApiClient, RemoteApiError
from mock_core.services.timer_service import SessionTimer, TimerStore

logger = logging.getLogger(__name__)


class SessionStateError(Exception):
    """Operation not allowed in the session's current state."""


@dataclass
class SessionPart:
    """A numbered part as delivered to the learner."""

    id: str
    ord: int
    content: dict[str, Any]
    question_range: tuple[int, int] | None
    question_count: int

    def contains(self, ordinal: int) -> bool:
        if self.question_range is None:
            return False
        start, end = self.question_range
        return start <= ordinal <= end

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "ord": self.ord,
            "questionRange": list(self.question_range) if self.question_range else None,
            "questionCount": self.question_count,
        }


@dataclass
class FinishOutcome:
    """Result of closing a section. The session is ended locally either way."""

    finished: bool
    error: str | None = None
    pending_after_flush: list[int] = field(default_factory=list)


@dataclass
class ReviewEntry:
    ordinal: int
    answer: str | None
    is_correct: bool | None = None


class TestSessionStore:
    """
    Orchestrates content, answers, timer and finalization for one attempt.

    Lifecycle: ``load()`` -> ``start_section()`` -> ``set_answer()``... ->
    ``finish_session()`` (or timer expiry) -> ``dispose()``.
    """

    __test__ = False

    def __init__(
        self,
        client: MockApiClient,
        section_id: str,
        mock_id: str | None = None,
        section_type: SectionType | str = SectionType.READING,
        timer_store: TimerStore | None = None,
        dropped_store: DroppedAnswerStore | None = None,
        tick_seconds: float = TIMER_TICK_SECONDS,
    ):
        self.client = client
        self.section_id = section_id
        self.mock_id = mock_id
        self.section_type = SectionType(section_type)
        self.timer_store = timer_store
        self.dropped_store = dropped_store
        self.tick_seconds = tick_seconds

        self.queue = AnswerSyncQueue(
            client,
            mock_id=mock_id,
            section_id=section_id,
            dropped_store=dropped_store,
        )
        self.queue.add_listener(self._on_queue_event)
        self.timer: SessionTimer | None = None

        self.parts: list[SessionPart] = []
        self.current_part_index = 0
        self.current_question_index = 0
        self.finish_outcome: FinishOutcome | None = None
        self.finished_at: float | None = None
        self.disposed = False

        self._submitted: dict[int, str | None] = {}
        self._correctness: dict[int, bool | None] = {}
        self._listeners: list[Callable[[str, Any], None]] = []
        self._finish_task: asyncio.Future | None = None

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def add_listener(self, callback: Callable[[str, Any], None]) -> None:
        """Register ``callback(event, payload)``; fired on every state change."""
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[str, Any], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _emit(self, event: str, payload: Any = None) -> None:
        for callback in list(self._listeners):
            try:
                callback(event, payload)
            except Exception:
                logger.exception("Session listener failed on %s", event)

    def _on_queue_event(self, event: str, ordinal: int | None) -> None:
        self._emit(event, ordinal)

    # ------------------------------------------------------------------
    # Content and lifecycle
    # ------------------------------------------------------------------

    @property
    def is_finished(self) -> bool:
        return self.finish_outcome is not None

    async def load(self) -> list[SessionPart]:
        """Fetch and number the section's parts."""
        dtos = await self.client.get_section_parts(self.section_id)
        contents = []
        for dto in dtos:
            raw = await self.client.get_section_part_content(dto.id)
            contents.append(normalize_part_content(raw))

        numbered = number_section(contents)
        self.parts = [
            SessionPart(
                id=dto.id,
                ord=dto.ord,
                content=strip_answers(content),
                question_range=part_question_range(content),
                question_count=part_question_count(content),
            )
            for dto, content in zip(dtos, numbered)
        ]
        self.current_part_index = 0
        self.current_question_index = 0
        logger.info(
            "Loaded section %s: %d parts, %d questions",
            self.section_id,
            len(self.parts),
            self.total_questions,
        )
        self._emit("loaded", len(self.parts))
        return self.parts

    @property
    def total_questions(self) -> int:
        return sum(part.question_count for part in self.parts)

    async def start_section(self, mock_id: str | None = None, limit_seconds: int | None = None) -> int:
        """
        Open the section remotely, release queued answers and start the
        countdown. Returns the remaining seconds.
        """
        if self.disposed or self.is_finished:
            raise SessionStateError("Session is already closed")
        mock_id = mock_id or self.mock_id
        if not mock_id:
            raise SessionStateError("mock_id is required to start a section")

        await self.client.start_section(mock_id, self.section_id)
        self.mock_id = mock_id
        self.queue.set_session(mock_id, self.section_id)

        if limit_seconds is None:
            limit_seconds = SECTION_TIME_LIMITS.get(self.section_type.value, 60 * 60)
        if self.timer is None:
            self.timer = SessionTimer(
                mock_id,
                self.section_id,
                store=self.timer_store,
                tick_seconds=self.tick_seconds,
                on_tick=self._on_tick,
            )
        remaining = self.timer.start(limit_seconds, on_expire=self._on_timer_expired)
        self._emit("started", remaining)
        return remaining

    def _on_tick(self, remaining: int, ticks: int) -> None:
        if ticks % ANSWER_RETRY_INTERVAL_TICKS == 0 and self.queue.has_failed():
            self.queue.schedule_processing()

    def _on_timer_expired(self):
        logger.info("Section %s time is up, finishing", self.section_id)
        self._emit("expired")
        return self.finish_session()

    async def finish_session(self) -> FinishOutcome:
        """
        Flush outstanding answers, stop the timer, then close the section
        remotely. Concurrent calls share one finalization.
        """
        if self._finish_task is None:
            if not self.mock_id:
                raise SessionStateError("Session was never started")
            self._finish_task = asyncio.ensure_future(self._finish())
        return await self._finish_task

    async def _finish(self) -> FinishOutcome:
        await self.queue.flush()
        if self.timer is not None:
            self.timer.stop()
            self.timer.clear()

        outcome = FinishOutcome(finished=True, pending_after_flush=sorted(self.queue.pending))
        try:
            await self.client.finish_section(self.mock_id, self.section_id)
        except RemoteApiError as exc:
            logger.error("Finishing section %s failed: %s", self.section_id, exc)
            outcome.error = str(exc)
        if outcome.pending_after_flush:
            logger.warning(
                "Section %s closed with undelivered answers: %s",
                self.section_id,
                outcome.pending_after_flush,
            )
        self.finished_at = time.monotonic()
        self.finish_outcome = outcome
        self._emit("finished", outcome)
        return outcome

    def dispose(self) -> None:
        """Release the timer and the queue. In-flight requests are not awaited."""
        if self.disposed:
            return
        self.disposed = True
        if self.timer is not None:
            self.timer.stop()
        self.queue.remove_listener(self._on_queue_event)
        self.queue.reset()
        self._emit("disposed")
        self._listeners.clear()

    def reset(self) -> None:
        """Drop answers and navigation, keeping the loaded content."""
        self.queue.reset()
        self.current_part_index = 0
        self.current_question_index = 0
        self._submitted.clear()
        self._correctness.clear()
        self._emit("reset")

    # ------------------------------------------------------------------
    # Answers
    # ------------------------------------------------------------------

    @property
    def answers(self) -> dict[int, AnswerValue]:
        return self.queue.answers

    def get_answer(self, ordinal: int) -> AnswerValue | None:
        return self.queue.get_answer(ordinal)

    def set_answer(self, ordinal: int, value: AnswerValue) -> None:
        if self.disposed or self.is_finished:
            raise SessionStateError("Session is closed, answers are read-only")
        self.queue.set_answer(ordinal, value)

    def is_question_answered(self, ordinal: int) -> bool:
        return not is_blank(self.queue.get_answer(ordinal))

    def dropped_answers(self) -> list[dict[str, Any]]:
        if self.dropped_store is not None and self.mock_id:
            return [
                {
                    "id": row.id,
                    "ordinal": row.question_ord,
                    "answer": row.answer,
                    "attempts": row.attempts,
                    "lastError": row.last_error,
                }
                for row in self.dropped_store.list_unsent(self.mock_id, self.section_id)
            ]
        return [
            {
                "id": None,
                "ordinal": entry.ordinal,
                "answer": entry.value,
                "attempts": entry.retries + 1,
                "lastError": entry.last_error,
            }
            for entry in self.queue.dropped
        ]

    async def resend_dropped(self) -> int:
        """Hand dropped answers back to the queue and try them once more."""
        if self.disposed or self.is_finished:
            raise SessionStateError("Session is closed")
        requeued = 0
        if self.dropped_store is not None and self.mock_id:
            rows = self.dropped_store.list_unsent(self.mock_id, self.section_id)
            for row in rows:
                if self.queue.requeue(row.question_ord, row.answer):
                    requeued += 1
            self.dropped_store.mark_resent([row.id for row in rows])
        else:
            for entry in self.queue.dropped:
                if self.queue.requeue(entry.ordinal, entry.value):
                    requeued += 1
        if requeued:
            logger.info("Re-sending %d dropped answers for section %s", requeued, self.section_id)
            await self.queue.process_pending()
        return requeued

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    @property
    def current_part(self) -> SessionPart | None:
        if 0 <= self.current_part_index < len(self.parts):
            return self.parts[self.current_part_index]
        return None

    @property
    def current_ordinal(self) -> int | None:
        part = self.current_part
        if part is None or part.question_range is None:
            return None
        return part.question_range[0] + self.current_question_index

    def set_current_part(self, index: int) -> None:
        if not 0 <= index < len(self.parts):
            raise IndexError(f"Part index out of range: {index}")
        self.current_part_index = index
        self.current_question_index = 0
        self._emit("navigated", self.current_ordinal)

    def go_to_question(self, ordinal: int) -> bool:
        """Move to the part holding ``ordinal``. Unknown ordinals are ignored."""
        for index, part in enumerate(self.parts):
            if part.contains(ordinal):
                self.current_part_index = index
                self.current_question_index = ordinal - part.question_range[0]
                self._emit("navigated", ordinal)
                return True
        return False

    def next_question(self) -> int | None:
        part = self.current_part
        if part is None:
            return None
        if self.current_question_index < part.question_count - 1:
            self.current_question_index += 1
        elif self.current_part_index < len(self.parts) - 1:
            self.current_part_index += 1
            self.current_question_index = 0
        self._emit("navigated", self.current_ordinal)
        return self.current_ordinal

    def previous_question(self) -> int | None:
        if self.current_question_index > 0:
            self.current_question_index -= 1
        elif self.current_part_index > 0:
            self.current_part_index -= 1
            self.current_question_index = max(self.parts[self.current_part_index].question_count - 1, 0)
        self._emit("navigated", self.current_ordinal)
        return self.current_ordinal

    # ------------------------------------------------------------------
    # Review mode
    # ------------------------------------------------------------------

    @property
    def submitted_answers(self) -> Mapping[int, str | None]:
        return MappingProxyType(self._submitted)

    @property
    def answer_correctness(self) -> Mapping[int, bool | None]:
        return MappingProxyType(self._correctness)

    def load_review(
        self,
        entries: Iterable[ReviewEntry | SubmittedAnswerDto | tuple[int, str | None, bool | None]],
    ) -> int:
        """Fill the read-only review maps; the live answer map is untouched."""
        submitted: dict[int, str | None] = {}
        correctness: dict[int, bool | None] = {}
        for entry in entries:
            if isinstance(entry, SubmittedAnswerDto):
                ordinal, answer, is_correct = entry.questionOrd, entry.answer, entry.isCorrect
            elif isinstance(entry, ReviewEntry):
                ordinal, answer, is_correct = entry.ordinal, entry.answer, entry.is_correct
            else:
                ordinal, answer, is_correct = entry
            submitted[ordinal] = answer
            correctness[ordinal] = is_correct
        self._submitted = submitted
        self._correctness = correctness
        self._emit("review", len(submitted))
        return len(submitted)

    async def load_submitted_answers(self) -> int:
        """Fetch the graded answers of this attempt and load them for review."""
        if not self.mock_id:
            raise SessionStateError("Session was never started")
        entries = await self.client.get_submitted_answers(self.mock_id, self.section_id)
        return self.load_review(entries)

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        """Plain-data view of the session for the HTTP layer."""
        timer = self.timer
        return {
            "mockId": self.mock_id,
            "sectionId": self.section_id,
            "sectionType": self.section_type.value,
            "parts": [part.to_dict() for part in self.parts],
            "totalQuestions": self.total_questions,
            "currentPartIndex": self.current_part_index,
            "currentQuestionIndex": self.current_question_index,
            "currentOrdinal": self.current_ordinal,
            "remainingSeconds": timer.remaining_seconds if timer else None,
            "timerRunning": bool(timer and timer.running),
            "answers": self.answers,
            "pending": [entry.to_dict() for entry in self.queue.pending.values()],
            "finished": self.is_finished,
            "finishError": self.finish_outcome.error if self.finish_outcome else None,
        }


class SessionRegistry:
    """Live session stores of the app, keyed by a generated session id."""

    def __init__(self, finished_ttl_seconds: float = FINISHED_SESSION_TTL_SECONDS):
        self.finished_ttl_seconds = finished_ttl_seconds
        self._sessions: dict[str, TestSessionStore] = {}

    def add(self, store: TestSessionStore) -> str:
        session_id = uuid.uuid4().hex
        self._sessions[session_id] = store
        return session_id

    def get(self, session_id: str) -> TestSessionStore | None:
        return self._sessions.get(session_id)

    def find(self, mock_id: str, section_id: str) -> tuple[str, TestSessionStore] | None:
        """Active (not disposed) session of an attempt's section, if any."""
        for session_id, store in self._sessions.items():
            if store.mock_id == mock_id and store.section_id == section_id and not store.disposed:
                return session_id, store
        return None

    def remove(self, session_id: str) -> bool:
        store = self._sessions.pop(session_id, None)
        if store is None:
            return False
        store.dispose()
        return True

    async def close(self, session_id: str) -> bool:
        """Dispose a session and close its remote client."""
        store = self._sessions.get(session_id)
        if store is None:
            return False
        self.remove(session_id)
        await store.client.close()
        return True

    async def prune(self, now: float | None = None) -> int:
        """Close sessions finished more than ``finished_ttl_seconds`` ago."""
        now = time.monotonic() if now is None else now
        expired = [
            session_id
            for session_id, store in self._sessions.items()
            if store.finished_at is not None
            and now - store.finished_at >= self.finished_ttl_seconds
        ]
        for session_id in expired:
            await self.close(session_id)
        if expired:
            logger.info("Closed %d finished sessions", len(expired))
        return len(expired)

    async def close_all(self) -> None:
        for session_id in list(self._sessions):
            await self.close(session_id)

    def __len__(self) -> int:
        return len(self._sessions)
