"""API route modules."""
from mock_core.routes import authoring, sessions

__all__ = ["authoring", "sessions"]
