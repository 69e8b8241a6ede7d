"""
Event model for agenda items.

Events are the entries of the live schedule. Each event belongs to a lane
(its location) and has a cue order that controls both the display sequence
and which event the lifecycle engine starts next when one finishes.

Design Rationale:
- Status is a plain string column holding EventStatus values
- end_time is recomputed as now + duration whenever an event goes live,
  so the stored value is only authoritative once the event is in progress
- cue_order is unique in intent but not enforced; ties fall back to id
"""

import enum
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import Column, Integer, String, DateTime, Text, Index

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin


DEFAULT_DURATION_MINUTES = 30
DEFAULT_COLOR = "#007bff"


class EventStatus(str, enum.Enum):
    """Event lifecycle status."""
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (EventStatus.COMPLETED, EventStatus.CANCELLED)


class Event(Base, GuidMixin):
    """
    Agenda item model.

    Attributes:
        id: Primary key (internal, never exposed)
        uuid: UUIDv7 for external identification (inherited from GuidMixin)
        guid: GUID string property (evt_xxx, inherited from GuidMixin)

        Display Fields:
            title: Event title (required)
            description: Long description
            presenter: Speaker / host name
            location: Room or stage; events sharing a location form one lane
            notes: Internal notes for staff
            color: Hex color used by the staff screens

        Schedule Fields:
            start_time: Planned start (UTC)
            end_time: Planned or live end (UTC)
            duration: Length in minutes, used to recompute end_time on start
            status: scheduled, in_progress, completed, cancelled
            cue_order: Rank in the running order

        Timestamps:
            created_at: Creation timestamp
            updated_at: Last update timestamp

    Indexes:
        - uuid (unique, for GUID lookups)
        - cue_order (for ordered listing)
        - location, status (for cascade lookups)
    """

    __tablename__ = "events"

    GUID_PREFIX = "evt"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Display fields
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    presenter = Column(String(255), nullable=True)
    location = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    color = Column(String(20), nullable=True, default=DEFAULT_COLOR)

    # Schedule fields
    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)
    duration = Column(Integer, nullable=False, default=DEFAULT_DURATION_MINUTES)
    status = Column(String(50), nullable=False, default=EventStatus.SCHEDULED.value)
    cue_order = Column(Integer, nullable=False, default=0, index=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False
    )

    __table_args__ = (
        Index("idx_events_location_status", "location", "status"),
    )

    def to_record(self) -> Dict[str, Any]:
        """Plain-dict row as seen by the lifecycle engine, display and change feed."""
        return {
            "guid": self.guid,
            "title": self.title,
            "description": self.description,
            "presenter": self.presenter,
            "location": self.location,
            "notes": self.notes,
            "color": self.color,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration": self.duration,
            "status": self.status,
            "cue_order": self.cue_order,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return (
            f"<Event("
            f"id={self.id}, "
            f"title='{self.title}', "
            f"location={self.location!r}, "
            f"cue_order={self.cue_order}, "
            f"status={self.status}"
            f")>"
        )

    def __str__(self) -> str:
        where = f" @ {self.location}" if self.location else ""
        return f"#{self.cue_order} {self.title}{where}"
