"""FastAPI dependencies."""
from mock_core.dependencies.sessions import (
    get_api_client,
    get_registry,
    get_session,
    get_token,
)

__all__ = ["get_api_client", "get_registry", "get_session", "get_token"]
