"""
Section countdown with durable remaining time.

The remaining seconds are written to the ``timer_states`` table every few
ticks so a reloaded session resumes its countdown instead of restarting it.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable

from sqlalchemy import select
from sqlalchemy.orm import Session as DbSession, sessionmaker

from mock_core.config import TIMER_PERSIST_INTERVAL_TICKS, TIMER_TICK_SECONDS
from mock_core.database import SessionLocal
from mock_core.models.db.timer_state import TimerState

logger = logging.getLogger(__name__)


class TimerStore:
    """Durable remaining-seconds values keyed by (mock_id, section_id)."""

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self.session_factory = session_factory

    @staticmethod
    def _get(db: DbSession, mock_id: str, section_id: str) -> TimerState | None:
        stmt = select(TimerState).where(
            TimerState.mock_id == mock_id,
            TimerState.section_id == section_id,
        )
        return db.execute(stmt).scalar_one_or_none()

    def load(self, mock_id: str, section_id: str) -> int | None:
        db: DbSession = self.session_factory()
        try:
            state = self._get(db, mock_id, section_id)
            return state.remaining_seconds if state else None
        finally:
            db.close()

    def save(self, mock_id: str, section_id: str, remaining_seconds: int) -> None:
        db: DbSession = self.session_factory()
        try:
            state = self._get(db, mock_id, section_id)
            if state is None:
                state = TimerState(mock_id=mock_id, section_id=section_id, remaining_seconds=remaining_seconds)
                db.add(state)
            else:
                state.remaining_seconds = remaining_seconds
            db.commit()
        finally:
            db.close()

    def clear(self, mock_id: str, section_id: str) -> None:
        db: DbSession = self.session_factory()
        try:
            state = self._get(db, mock_id, section_id)
            if state is not None:
                db.delete(state)
                db.commit()
        finally:
            db.close()


def restore_remaining(stored: int | None, limit_seconds: int) -> int:
    """Remaining seconds to resume from; never above the section limit."""
    if stored is None or stored <= 0:
        return limit_seconds
    if stored > limit_seconds:
        logger.warning(
            "Stored timer value %d exceeds limit %d, clamping", stored, limit_seconds
        )
        return limit_seconds
    return stored


class SessionTimer:
    """
    1 Hz countdown for one section attempt.

    ``start()`` launches a background task when called inside a running event
    loop; ``tick()`` can also be driven directly.
    """

    def __init__(
        self,
        mock_id: str,
        section_id: str,
        store: TimerStore | None = None,
        tick_seconds: float = TIMER_TICK_SECONDS,
        persist_every: int = TIMER_PERSIST_INTERVAL_TICKS,
        on_tick: Callable[[int, int], None] | None = None,
    ):
        self.mock_id = mock_id
        self.section_id = section_id
        self.store = store
        self.tick_seconds = tick_seconds
        self.persist_every = persist_every
        self.on_tick = on_tick

        self.limit_seconds = 0
        self.remaining_seconds = 0
        self.ticks = 0
        self.running = False
        self.expired = False
        self.expire_task: asyncio.Future | None = None
        self._on_expire: Callable[[], Any] | None = None
        self._task: asyncio.Task | None = None

    def start(self, limit_seconds: int, on_expire: Callable[[], Any] | None = None) -> int:
        """Start (or resume) the countdown; returns the remaining seconds."""
        if self.running:
            return self.remaining_seconds
        stored = self.store.load(self.mock_id, self.section_id) if self.store else None
        self.limit_seconds = limit_seconds
        self.remaining_seconds = restore_remaining(stored, limit_seconds)
        self.ticks = 0
        self.expired = False
        self.running = True
        self._on_expire = on_expire
        if stored is not None and self.remaining_seconds == stored:
            logger.info(
                "Resumed timer for section %s at %ds", self.section_id, self.remaining_seconds
            )

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return self.remaining_seconds
        self._task = asyncio.ensure_future(self._run())
        return self.remaining_seconds

    async def _run(self) -> None:
        while self.running:
            await asyncio.sleep(self.tick_seconds)
            if self.tick():
                break

    def tick(self) -> bool:
        """Advance one second. Returns True when this tick expired the timer."""
        if not self.running:
            return False
        self.remaining_seconds = max(self.remaining_seconds - 1, 0)
        self.ticks += 1
        if self.on_tick is not None:
            self.on_tick(self.remaining_seconds, self.ticks)
        if self.remaining_seconds <= 0:
            self._expire()
            return True
        if self.store is not None and self.ticks % self.persist_every == 0:
            self.store.save(self.mock_id, self.section_id, self.remaining_seconds)
        return False

    def _cancel_task(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if task is not current:
            task.cancel()

    def _expire(self) -> None:
        self.running = False
        self.expired = True
        self._cancel_task()
        if self.store is not None:
            self.store.clear(self.mock_id, self.section_id)
        logger.info("Timer expired for mock %s section %s", self.mock_id, self.section_id)

        callback, self._on_expire = self._on_expire, None
        if callback is None:
            return
        result = callback()
        if inspect.iscoroutine(result):
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                asyncio.run(result)
                return
            self.expire_task = asyncio.ensure_future(result)

    def stop(self) -> None:
        """Stop the countdown, keeping the remaining time for a later resume."""
        if not self.running:
            return
        self.running = False
        if self.store is not None and self.remaining_seconds > 0:
            self.store.save(self.mock_id, self.section_id, self.remaining_seconds)
        self._cancel_task()

    def clear(self) -> None:
        """Forget the stored remaining time."""
        if self.store is not None:
            self.store.clear(self.mock_id, self.section_id)
