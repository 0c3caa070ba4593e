"""
Reliable delivery of learner answers to the remote scoring service.

Local edits are recorded synchronously; submissions run as asyncio tasks and
never block the caller. Each ordinal has at most one pending entry, moving
through ``UNSENT -> SENDING -> ACKED | FAILED``. A failed entry goes back to
``SENDING`` on the next ``process_pending()`` pass with its retry counter
bumped, and is dropped once the counter reaches the retry ceiling. Only
transient failures (network errors, 5xx) are retried; any other failure
drops the entry at once.
"""
from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Protocol, Union

from mock_core.config import ANSWER_LIST_SEPARATOR, SEND_ANSWER_MAX_RETRIES
from mock_core.services.dropped_answer_service import DroppedAnswerStore
from mock_core.services.remote_api import RemoteApiError

logger = logging.getLogger(__name__)

AnswerValue = Union[str, list[str]]


class AnswerSender(Protocol):
    async def send_answer(
        self, mock_id: str, section_id: str, question_ord: int, answer: str
    ) -> Any: ...


class PendingState(str, Enum):
    """Delivery state of a pending answer."""

    UNSENT = "unsent"
    SENDING = "sending"
    ACKED = "acked"
    FAILED = "failed"
    DROPPED = "dropped"


@dataclass
class PendingAnswer:
    """Answer accepted locally but not yet confirmed by the remote side."""

    ordinal: int
    value: str
    version: int
    retries: int = 0
    state: PendingState = PendingState.UNSENT
    last_error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "ordinal": self.ordinal,
            "answer": self.value,
            "state": self.state.value,
            "retries": self.retries,
            "lastError": self.last_error,
        }


def is_blank(value: object) -> bool:
    """Empty or whitespace strings and lists without a non-blank item."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return all(is_blank(item) for item in value)
    return False


def serialize_answer(value: AnswerValue) -> str:
    """Wire form of an answer; multi-select answers are comma joined."""
    if isinstance(value, (list, tuple)):
        return ANSWER_LIST_SEPARATOR.join(
            str(item).strip() for item in value if not is_blank(item)
        )
    return str(value)


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class AnswerSyncQueue:
    """
    Per-session answer map plus the pending set that feeds ``send_answer``.

    ``set_answer`` must be cheap and synchronous. When called from inside a
    running event loop with the session identifiers known, the submission is
    scheduled right away; otherwise the entry waits in the pending set until
    ``process_pending()`` (or ``flush()``) picks it up.
    """

    def __init__(
        self,
        client: AnswerSender,
        mock_id: str | None = None,
        section_id: str | None = None,
        max_retries: int = SEND_ANSWER_MAX_RETRIES,
        dropped_store: DroppedAnswerStore | None = None,
        on_drop: Callable[[PendingAnswer], None] | None = None,
    ):
        self.client = client
        self.mock_id = mock_id
        self.section_id = section_id
        self.max_retries = max_retries
        self.dropped_store = dropped_store
        self.on_drop = on_drop

        self._answers: dict[int, AnswerValue] = {}
        self._pending: dict[int, PendingAnswer] = {}
        self._dropped: list[PendingAnswer] = []
        self._tasks: set[asyncio.Task] = set()
        self._listeners: list[Callable[[str, int | None], None]] = []
        self._versions = itertools.count(1)
        self._generation = 0

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def has_session(self) -> bool:
        return bool(self.mock_id) and bool(self.section_id)

    @property
    def answers(self) -> dict[int, AnswerValue]:
        return dict(self._answers)

    @property
    def pending(self) -> dict[int, PendingAnswer]:
        return dict(self._pending)

    @property
    def dropped(self) -> list[PendingAnswer]:
        return list(self._dropped)

    def get_answer(self, ordinal: int) -> AnswerValue | None:
        return self._answers.get(ordinal)

    def add_listener(self, callback: Callable[[str, int | None], None]) -> None:
        """Register ``callback(event, ordinal)`` for answer and delivery changes."""
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[str, int | None], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self, event: str, ordinal: int | None = None) -> None:
        for callback in list(self._listeners):
            try:
                callback(event, ordinal)
            except Exception:
                logger.exception("Answer listener failed on %s", event)

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    def set_session(self, mock_id: str, section_id: str) -> None:
        """Supply the session identifiers and release answers queued without them."""
        self.mock_id = mock_id
        self.section_id = section_id
        if self.has_session and self._pending:
            self.schedule_processing()

    def set_answer(self, ordinal: int, value: AnswerValue) -> None:
        """Record an answer locally and queue it for delivery."""
        if isinstance(value, (list, tuple)):
            value = list(value)
        self._answers[ordinal] = value
        self._notify("answer", ordinal)

        if is_blank(value):
            # Nothing to submit; an older unsent value is superseded too
            if self._pending.pop(ordinal, None) is not None:
                self._notify("pending", ordinal)
            return

        entry = PendingAnswer(
            ordinal=ordinal,
            value=serialize_answer(value),
            version=next(self._versions),
        )
        self._pending[ordinal] = entry

        if self.has_session and _running_loop() is not None:
            entry.state = PendingState.SENDING
            self._spawn(self._submit(entry))
        self._notify("pending", ordinal)

    def requeue(self, ordinal: int, value: str) -> bool:
        """
        Put a previously dropped answer back into the pending set.
        Skipped when a newer value for the ordinal is already pending.
        """
        if ordinal in self._pending:
            return False
        self._pending[ordinal] = PendingAnswer(
            ordinal=ordinal, value=value, version=next(self._versions)
        )
        self._dropped = [item for item in self._dropped if item.ordinal != ordinal]
        self._notify("pending", ordinal)
        return True

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        tasks = self._tasks
        tasks.add(task)
        task.add_done_callback(tasks.discard)
        return task

    def schedule_processing(self) -> asyncio.Task | None:
        """Run ``process_pending()`` in the background if a loop is running."""
        if _running_loop() is None:
            return None
        return self._spawn(self.process_pending())

    async def _submit(self, entry: PendingAnswer) -> None:
        generation = self._generation
        mock_id, section_id = self.mock_id, self.section_id
        try:
            await self.client.send_answer(mock_id, section_id, entry.ordinal, entry.value)
        except Exception as exc:
            if not isinstance(exc, RemoteApiError):
                logger.exception("Unexpected error sending answer %d", entry.ordinal)
            if generation != self._generation:
                return
            self._handle_failure(entry, exc)
            return
        if generation != self._generation:
            return
        self._handle_ack(entry)

    def _handle_ack(self, entry: PendingAnswer) -> None:
        entry.state = PendingState.ACKED
        if self._pending.get(entry.ordinal) is entry:
            del self._pending[entry.ordinal]
            logger.debug("Answer %d delivered (v%d)", entry.ordinal, entry.version)
            self._notify("acked", entry.ordinal)

    def _handle_failure(self, entry: PendingAnswer, exc: Exception) -> None:
        entry.state = PendingState.FAILED
        entry.last_error = str(exc) or type(exc).__name__
        if self._pending.get(entry.ordinal) is not entry:
            # A newer value replaced this one while it was in flight
            return
        # Only network errors and 5xx responses are retried
        transient = isinstance(exc, RemoteApiError) and exc.is_transient
        if not transient or entry.retries >= self.max_retries:
            self._drop(entry)
            return
        logger.info(
            "Answer %d not delivered (attempt %d): %s",
            entry.ordinal,
            entry.retries + 1,
            exc,
        )
        self._notify("failed", entry.ordinal)

    def _drop(self, entry: PendingAnswer) -> None:
        entry.state = PendingState.DROPPED
        del self._pending[entry.ordinal]
        self._dropped.append(entry)
        logger.warning(
            "Dropping answer %d for mock %s section %s after %d attempts: %s",
            entry.ordinal,
            self.mock_id,
            self.section_id,
            entry.retries + 1,
            entry.last_error,
        )
        if self.dropped_store is not None:
            self.dropped_store.record(
                self.mock_id,
                self.section_id,
                entry.ordinal,
                entry.value,
                attempts=entry.retries + 1,
                last_error=entry.last_error,
            )
        if self.on_drop is not None:
            self.on_drop(entry)
        self._notify("dropped", entry.ordinal)

    async def process_pending(self) -> None:
        """
        Send every pending entry that is not already in flight.
        Failed entries are retried with their retry counter incremented.
        """
        if not self.has_session:
            return
        batch = []
        for entry in list(self._pending.values()):
            if entry.state == PendingState.FAILED:
                entry.retries += 1
            elif entry.state != PendingState.UNSENT:
                continue
            entry.state = PendingState.SENDING
            batch.append(entry)
        if batch:
            await asyncio.gather(*(self._submit(entry) for entry in batch))

    async def flush(self) -> None:
        """
        Await every in-flight submission, then make one more pass over the
        pending set. Never raises.
        """
        try:
            while self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
            await self.process_pending()
        except Exception:
            logger.exception("Flushing answers for section %s failed", self.section_id)

    def has_failed(self) -> bool:
        return any(entry.state == PendingState.FAILED for entry in self._pending.values())

    def reset(self) -> None:
        """
        Forget all local state. Requests already in flight keep running but
        their results are ignored.
        """
        self._generation += 1
        self._answers.clear()
        self._pending.clear()
        self._dropped.clear()
        self._tasks = set()
        self._notify("reset")
