"""Main FastAPI application with modularized routes."""
import asyncio
from typing import Callable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import sessionmaker

from mock_core.config import TIMER_TICK_SECONDS
from mock_core.database import SessionLocal, init_db
from mock_core.logging_setup import setup_console_logging
from mock_core.routes import authoring, sessions
from mock_core.services.cleanup_service import schedule_session_cleanup
from mock_core.services.dropped_answer_service import DroppedAnswerStore
from mock_core.services.remote_api import MockApiClient
from mock_core.services.session_store import SessionRegistry
from mock_core.services.timer_service import TimerStore


def create_app(
    client_factory: Callable[[str | None], MockApiClient] | None = None,
    session_factory: sessionmaker = SessionLocal,
    tick_seconds: float = TIMER_TICK_SECONDS,
) -> FastAPI:
    """Build the app; tests pass their own client and session factories."""
    app = FastAPI(title="Mock Exam Session API")

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.client_factory = client_factory or (lambda token: MockApiClient(token=token))
    app.state.registry = SessionRegistry()
    app.state.timer_store = TimerStore(session_factory)
    app.state.dropped_store = DroppedAnswerStore(session_factory)
    app.state.tick_seconds = tick_seconds
    app.state.cleanup_task = None

    # Startup events
    @app.on_event("startup")
    async def startup_events() -> None:
        """Initialize database and schedule session cleanup on startup."""
        init_db(session_factory.kw.get("bind"))
        app.state.cleanup_task = schedule_session_cleanup(app.state.registry)

    @app.on_event("shutdown")
    async def shutdown_events() -> None:
        """Stop timers and close remote clients of live sessions."""
        task = app.state.cleanup_task
        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        await app.state.registry.close_all()

    # Health check
    @app.get("/api/health")
    def health() -> dict[str, object]:
        return {"status": "ok", "sessions": len(app.state.registry)}

    # Include routers
    app.include_router(sessions.router)
    app.include_router(authoring.router)
    return app


setup_console_logging()

app = create_app()
