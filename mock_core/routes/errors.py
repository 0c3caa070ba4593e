"""Translation of service errors into HTTP errors."""
from fastapi import HTTPException, status

from mock_core.services.authoring_service import ContentValidationError
from mock_core.services.remote_api import RemoteApiError
from mock_core.services.session_store import SessionStateError


def remote_http_error(exc: RemoteApiError) -> HTTPException:
    """Remote failures surface as 502, except a remote 404."""
    if exc.is_not_found:
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.reason)
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=f"Remote service error: {exc.reason}",
    )


def state_http_error(exc: SessionStateError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


def validation_http_error(exc: ContentValidationError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.errors)
