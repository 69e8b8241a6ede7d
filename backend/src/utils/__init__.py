"""
Utility modules for the EventFlow backend.

This package contains shared utilities used across the application:
- formatting: CSV timestamps and countdown durations
- optimistic: apply-then-commit helper with exact rollback
- refresh: coalescing refresh coordinator
- websocket: channel-based WebSocket connection manager
"""

from backend.src.utils.formatting import (
    format_timestamp,
    parse_timestamp,
    format_duration,
)
from backend.src.utils.optimistic import optimistic_apply

__all__ = [
    "format_timestamp",
    "parse_timestamp",
    "format_duration",
    "optimistic_apply",
]
