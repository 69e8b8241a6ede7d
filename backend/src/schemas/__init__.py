"""
Pydantic schemas for API request/response validation.

This module exports all schema classes for use in API endpoints.
"""

from backend.src.schemas.attendee import (
    AttendeeCreate,
    ScanRequest,
    AttendeeResponse,
    AttendeeListResponse,
    AttendeeStatsResponse,
    DuplicateAttendeeResponse,
)
from backend.src.schemas.event import (
    EventCreate,
    EventUpdate,
    EventMoveRequest,
    EventReorderRequest,
    EventResponse,
    EventListResponse,
    EventTransitionResponse,
    EventStatsResponse,
    LocationListResponse,
)
from backend.src.schemas.display import (
    DisplayEvent,
    DisplayLocation,
    DisplayResponse,
)
from backend.src.schemas.auth import (
    LoginRequest,
    LogoutRequest,
    SessionResponse,
)
from backend.src.schemas.setting import (
    SettingUpdate,
    SettingResponse,
)
from backend.src.schemas.csv_import import (
    ImportRowError,
    ImportResultResponse,
)

__all__ = [
    # Attendee schemas
    "AttendeeCreate",
    "ScanRequest",
    "AttendeeResponse",
    "AttendeeListResponse",
    "AttendeeStatsResponse",
    "DuplicateAttendeeResponse",
    # Event schemas
    "EventCreate",
    "EventUpdate",
    "EventMoveRequest",
    "EventReorderRequest",
    "EventResponse",
    "EventListResponse",
    "EventTransitionResponse",
    "EventStatsResponse",
    "LocationListResponse",
    # Display schemas
    "DisplayEvent",
    "DisplayLocation",
    "DisplayResponse",
    # Auth schemas
    "LoginRequest",
    "LogoutRequest",
    "SessionResponse",
    # Setting schemas
    "SettingUpdate",
    "SettingResponse",
    # CSV schemas
    "ImportRowError",
    "ImportResultResponse",
]
