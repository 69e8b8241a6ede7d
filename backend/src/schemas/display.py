"""
Pydantic schemas for the public display.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_serializer


class DisplayEvent(BaseModel):
    """The event currently shown for a location."""

    guid: str
    title: Optional[str]
    description: Optional[str] = None
    presenter: Optional[str] = None
    status: str
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    cue_order: int
    color: Optional[str] = None

    @field_serializer("start_time", "end_time")
    @classmethod
    def serialize_datetime_utc(cls, v: Optional[datetime]) -> Optional[str]:
        """Serialize datetime as ISO 8601 with explicit UTC timezone (Z suffix)."""
        return v.isoformat() + "Z" if v else None


class DisplayLocation(BaseModel):
    """
    One location's screen.

    Fields:
        location: Location name ("No Location" for events without one)
        event: Event shown right now
        countdown: Countdown text, e.g. "2m 30s", "+0m 5s", "starts in 4m 0s"
        timer_color: green, yellow or red
        blink: True in the last minute and during overrun
        index: Position of the shown event among the candidates
        count: Number of visible candidates at this location
    """

    location: str
    event: DisplayEvent
    countdown: str
    timer_color: Literal["green", "yellow", "red"]
    blink: bool
    index: int = Field(..., ge=0)
    count: int = Field(..., ge=1)


class DisplayResponse(BaseModel):
    """
    Composed public display.

    Example:
        >>> DisplayResponse.model_validate(hub.snapshot())
    """

    forum_name: str
    server_time: datetime
    locations: List[DisplayLocation]

    @field_serializer("server_time")
    @classmethod
    def serialize_datetime_utc(cls, v: datetime) -> str:
        """Serialize datetime as ISO 8601 with explicit UTC timezone (Z suffix)."""
        return v.isoformat() + "Z"
