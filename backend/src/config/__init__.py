"""
Configuration module for EventFlow backend.

Provides centralized configuration for:
- Application settings (passwords, lifecycle and display timing)
- Session management and the per-browser session context
"""

from backend.src.config.settings import AppSettings, get_settings
from backend.src.config.session import (
    AppSession,
    SessionSettings,
    STAFF_AREAS,
    get_session_settings,
)

__all__ = [
    "AppSettings",
    "get_settings",
    "AppSession",
    "SessionSettings",
    "STAFF_AREAS",
    "get_session_settings",
]
