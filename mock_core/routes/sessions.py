"""Learner session endpoints."""
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request

from mock_core.dependencies import get_registry, get_session, get_token
from mock_core.models import (
    AnswerPayload,
    FinishSessionResponse,
    ReviewRequest,
    SessionStartRequest,
)
from mock_core.routes.errors import remote_http_error, state_http_error
from mock_core.services.remote_api import RemoteApiError
from mock_core.services.session_store import (
    ReviewEntry,
    SessionRegistry,
    SessionStateError,
    TestSessionStore,
)
from mock_core.utils import validate_id, validate_ordinal

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sessions", tags=["sessions"])

SessionDep = Annotated[TestSessionStore, Depends(get_session)]
RegistryDep = Annotated[SessionRegistry, Depends(get_registry)]


@router.post("")
async def start_session(
    payload: SessionStartRequest,
    request: Request,
    registry: RegistryDep,
    token: Annotated[str | None, Depends(get_token)],
) -> dict[str, object]:
    """Open (or resume) a section session."""
    section_id = validate_id("sectionId", payload.sectionId)
    mock_id = validate_id("mockId", payload.mockId) if payload.mockId else None
    if mock_id:
        existing = registry.find(mock_id, section_id)
        if existing:
            session_id, store = existing
            return {"sessionId": session_id, "resumed": True, **store.snapshot()}
    elif not payload.testId:
        raise HTTPException(status_code=400, detail="mockId or testId is required")

    state = request.app.state
    client = state.client_factory(token)
    store = None
    try:
        if mock_id is None:
            mock_id = await client.start_mock(validate_id("testId", payload.testId))
        store = TestSessionStore(
            client,
            section_id,
            mock_id=mock_id,
            section_type=payload.sectionType,
            timer_store=state.timer_store,
            dropped_store=state.dropped_store,
            tick_seconds=state.tick_seconds,
        )
        await store.load()
        await store.start_section(mock_id, payload.limitSeconds)
    except RemoteApiError as exc:
        if store is not None:
            store.dispose()
        await client.close()
        raise remote_http_error(exc) from exc

    session_id = registry.add(store)
    logger.info("Session %s opened for mock %s section %s", session_id, mock_id, section_id)
    return {"sessionId": session_id, "resumed": False, **store.snapshot()}


@router.get("/{session_id}")
def get_session_state(session_id: str, store: SessionDep) -> dict[str, object]:
    """Get the current session state."""
    return {"sessionId": session_id, **store.snapshot()}


@router.get("/{session_id}/answers/{ordinal}")
def get_answer(store: SessionDep, ordinal: int) -> dict[str, object]:
    """Get the local answer of a question."""
    ordinal = validate_ordinal(ordinal)
    return {
        "ordinal": ordinal,
        "answer": store.get_answer(ordinal),
        "answered": store.is_question_answered(ordinal),
    }


@router.put("/{session_id}/answers/{ordinal}")
async def set_answer(
    store: SessionDep, ordinal: int, payload: AnswerPayload
) -> dict[str, object]:
    """Record an answer; delivery happens in the background."""
    ordinal = validate_ordinal(ordinal)
    try:
        store.set_answer(ordinal, payload.value)
    except SessionStateError as exc:
        raise state_http_error(exc) from exc
    return {
        "ordinal": ordinal,
        "answer": store.get_answer(ordinal),
        "answered": store.is_question_answered(ordinal),
        "pending": ordinal in store.queue.pending,
    }


@router.post("/{session_id}/navigate/{ordinal}")
def go_to_question(store: SessionDep, ordinal: int) -> dict[str, object]:
    """Move to the part holding a question."""
    ordinal = validate_ordinal(ordinal)
    if not store.go_to_question(ordinal):
        raise HTTPException(status_code=404, detail="Question not found")
    return {
        "currentPartIndex": store.current_part_index,
        "currentQuestionIndex": store.current_question_index,
        "currentOrdinal": store.current_ordinal,
    }


@router.post("/{session_id}/finish", response_model=FinishSessionResponse)
async def finish_session(store: SessionDep) -> dict[str, object]:
    """Flush answers, stop the timer and close the section."""
    try:
        outcome = await store.finish_session()
    except SessionStateError as exc:
        raise state_http_error(exc) from exc
    return {
        "finished": outcome.finished,
        "error": outcome.error,
        "pendingAfterFlush": outcome.pending_after_flush,
    }


@router.post("/{session_id}/review")
async def load_review(store: SessionDep, payload: ReviewRequest) -> dict[str, object]:
    """Load graded answers for review mode."""
    try:
        if payload.entries is None:
            await store.load_submitted_answers()
        else:
            store.load_review(
                ReviewEntry(entry.questionOrd, entry.answer, entry.isCorrect)
                for entry in payload.entries
            )
    except SessionStateError as exc:
        raise state_http_error(exc) from exc
    except RemoteApiError as exc:
        raise remote_http_error(exc) from exc
    return {
        "submittedAnswers": dict(store.submitted_answers),
        "answerCorrectness": dict(store.answer_correctness),
    }


@router.get("/{session_id}/dropped")
def list_dropped_answers(store: SessionDep) -> dict[str, object]:
    """List answers that exhausted their delivery retries."""
    return {"dropped": store.dropped_answers()}


@router.post("/{session_id}/dropped/resend")
async def resend_dropped_answers(store: SessionDep) -> dict[str, object]:
    """Queue dropped answers for another delivery attempt."""
    try:
        requeued = await store.resend_dropped()
    except SessionStateError as exc:
        raise state_http_error(exc) from exc
    return {"requeued": requeued, "dropped": store.dropped_answers()}


@router.delete("/{session_id}")
async def dispose_session(session_id: str, registry: RegistryDep) -> dict[str, object]:
    """Release a session's timer, queue and remote client."""
    session_id = validate_id("sessionId", session_id)
    if not await registry.close(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"status": "disposed", "sessionId": session_id}
