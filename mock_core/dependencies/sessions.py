"""Session and remote-client dependencies for FastAPI."""
from typing import Annotated, AsyncIterator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from mock_core.services.remote_api import MockApiClient
from mock_core.services.session_store import SessionRegistry, TestSessionStore
from mock_core.utils.validation import validate_id

# Bearer token is forwarded to the remote service as-is
security = HTTPBearer(auto_error=False)


def get_registry(request: Request) -> SessionRegistry:
    """Live session stores of the app."""
    return request.app.state.registry


def get_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str | None:
    return credentials.credentials if credentials else None


async def get_api_client(
    request: Request,
    token: Annotated[str | None, Depends(get_token)],
) -> AsyncIterator[MockApiClient]:
    """Request-scoped remote client, closed after the response."""
    client = request.app.state.client_factory(token)
    try:
        yield client
    finally:
        await client.close()


def get_session(
    session_id: str,
    registry: Annotated[SessionRegistry, Depends(get_registry)],
) -> TestSessionStore:
    """Resolve a session id from the path.

    Raises:
        HTTPException: 404 if the session is unknown or disposed.
    """
    session_id = validate_id("sessionId", session_id)
    store = registry.get(session_id)
    if store is None or store.disposed:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Session not found",
        )
    return store
