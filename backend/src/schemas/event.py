"""
Pydantic schemas for event API request/response validation.

Provides data validation and serialization for:
- Event creation and update requests
- Move and reorder requests
- Event API responses and statistics

Design:
- Datetimes with an offset are converted to naive UTC on input
- Status is not writable here; it changes through start/complete/cancel
"""

import re
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_serializer, field_validator

from backend.src.utils.formatting import to_naive_utc


def _validate_color(v: Optional[str]) -> Optional[str]:
    if v is None or v == "":
        return v
    if not re.match(r"^#([0-9A-Fa-f]{3}|[0-9A-Fa-f]{6})$", v):
        raise ValueError("Color must be hex format like #RGB or #RRGGBB")
    return v


def _naive_utc(v: Optional[datetime]) -> Optional[datetime]:
    return to_naive_utc(v) if v is not None else None


# ============================================================================
# Event Request Schemas
# ============================================================================


class EventCreate(BaseModel):
    """
    Schema for creating an event.

    Required:
        title: Event title

    Optional:
        start_time / end_time: Planned times (end defaults to start + duration)
        duration: Minutes (defaults to end - start, else 30)
        description, presenter, location, notes, color

    Example:
        >>> create = EventCreate(title="Keynote", location="Main Hall", duration=45)
    """

    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    presenter: Optional[str] = Field(default=None, max_length=255)
    location: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = None
    color: Optional[str] = Field(default=None, max_length=7)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: Optional[int] = Field(default=None, ge=1, le=24 * 60)

    @field_validator("title")
    @classmethod
    def validate_title_not_whitespace(cls, v: str) -> str:
        """Ensure title is not just whitespace."""
        if not v.strip():
            raise ValueError("Title cannot be empty or whitespace")
        return v.strip()

    @field_validator("color")
    @classmethod
    def validate_color_format(cls, v: Optional[str]) -> Optional[str]:
        """Validate hex color format."""
        return _validate_color(v)

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_datetime(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Store times as naive UTC."""
        return _naive_utc(v)

    model_config = {
        "json_schema_extra": {
            "example": {
                "title": "Welcome Keynote",
                "description": "Opening remarks",
                "presenter": "John Doe",
                "location": "Main Hall",
                "start_time": "2026-01-20T09:00:00Z",
                "duration": 60,
            }
        }
    }


class EventUpdate(BaseModel):
    """
    Schema for updating an event.

    All fields are optional - only provided fields will be updated.
    """

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    presenter: Optional[str] = Field(default=None, max_length=255)
    location: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = None
    color: Optional[str] = Field(default=None, max_length=7)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: Optional[int] = Field(default=None, ge=1, le=24 * 60)

    @field_validator("color")
    @classmethod
    def validate_color_format(cls, v: Optional[str]) -> Optional[str]:
        """Validate hex color format."""
        return _validate_color(v)

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_datetime(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Store times as naive UTC."""
        return _naive_utc(v)


class EventMoveRequest(BaseModel):
    """Move an event one place in the running order."""

    direction: Literal["up", "down"]


class EventReorderRequest(BaseModel):
    """
    Explicit running order.

    Example:
        >>> reorder = EventReorderRequest(guids=["evt_xxx2", "evt_xxx1"])
    """

    guids: List[str] = Field(..., min_length=1, description="Event GUIDs in running order")


# ============================================================================
# Event Response Schemas
# ============================================================================


class EventResponse(BaseModel):
    """
    Schema for event API responses.

    Example:
        >>> response = EventResponse.model_validate(event_obj)
    """

    guid: str = Field(..., description="External identifier (evt_xxx)")
    title: str
    description: Optional[str]
    presenter: Optional[str]
    location: Optional[str]
    notes: Optional[str]
    color: Optional[str]
    start_time: Optional[datetime]
    end_time: Optional[datetime]
    duration: int
    status: str
    cue_order: int
    created_at: datetime
    updated_at: datetime

    @field_serializer("start_time", "end_time", "created_at", "updated_at")
    @classmethod
    def serialize_datetime_utc(cls, v: Optional[datetime]) -> Optional[str]:
        """Serialize datetime as ISO 8601 with explicit UTC timezone (Z suffix)."""
        return v.isoformat() + "Z" if v else None

    model_config = {
        "from_attributes": True,
        "json_schema_extra": {
            "example": {
                "guid": "evt_01hgw2bbg0000000000000001",
                "title": "Welcome Keynote",
                "description": "Opening remarks",
                "presenter": "John Doe",
                "location": "Main Hall",
                "notes": None,
                "color": "#007bff",
                "start_time": "2026-01-20T09:00:00Z",
                "end_time": "2026-01-20T10:00:00Z",
                "duration": 60,
                "status": "scheduled",
                "cue_order": 1,
                "created_at": "2026-01-10T10:00:00Z",
                "updated_at": "2026-01-10T10:00:00Z",
            }
        },
    }


class EventListResponse(BaseModel):
    """Events in running order."""

    items: List[EventResponse]
    total: int


class EventTransitionResponse(BaseModel):
    """
    Result of a manual status change.

    Fields:
        event: The event after the change
        cascaded: The next event started by a completion, if any
    """

    event: EventResponse
    cascaded: Optional[EventResponse] = None


class EventStatsResponse(BaseModel):
    """Event counts by status."""

    total: int = Field(..., ge=0)
    scheduled: int = Field(..., ge=0)
    in_progress: int = Field(..., ge=0)
    completed: int = Field(..., ge=0)
    cancelled: int = Field(..., ge=0)


class LocationListResponse(BaseModel):
    """Distinct event locations."""

    locations: List[str]
