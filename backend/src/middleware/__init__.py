"""
Middleware components for the EventFlow backend.

This module provides:
- SessionContext: Dataclass representing the current session's access
- get_session_context: FastAPI dependency for extracting it from requests
- require_capability: FastAPI dependency factory for capability checks
"""

from backend.src.middleware.auth import (
    SessionContext,
    get_app_session,
    get_session_context,
    require_capability,
)

__all__ = [
    "SessionContext",
    "get_app_session",
    "get_session_context",
    "require_capability",
]
