"""Periodic release of finished sessions."""
import asyncio
import logging

from mock_core.config import SESSION_CLEANUP_INTERVAL_SECONDS
from mock_core.services.session_store import SessionRegistry

logger = logging.getLogger(__name__)


async def prune_finished_sessions(
    registry: SessionRegistry, interval: float = SESSION_CLEANUP_INTERVAL_SECONDS
) -> None:
    """Close finished sessions every ``interval`` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        try:
            await registry.prune()
        except Exception:
            logger.exception("Failed to prune finished sessions")


def schedule_session_cleanup(
    registry: SessionRegistry, interval: float = SESSION_CLEANUP_INTERVAL_SECONDS
) -> asyncio.Task:
    """Start the cleanup loop on the running event loop."""
    return asyncio.ensure_future(prune_finished_sessions(registry, interval))
