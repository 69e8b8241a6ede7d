"""
Attendee model for registration and check-in.

Design Rationale:
- Email is optional but unique when present (NULL never collides)
- check_in_time is set when checked_in turns on and cleared when it turns
  off; set_checked_in() is the only writer of the pair
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import Column, Integer, String, Boolean, DateTime

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin


class Attendee(Base, GuidMixin):
    """
    Registered attendee.

    Attributes:
        id: Primary key (internal, never exposed)
        uuid: UUIDv7 for external identification (inherited from GuidMixin)
        guid: GUID string property (att_xxx, inherited from GuidMixin)
        name: Full name (required)
        email: Email address, unique when present; also the QR payload
        company: Company or organisation
        checked_in: Whether the attendee has arrived
        check_in_time: When the attendee was checked in (NULL when not)
        created_at: Registration timestamp
        updated_at: Last update timestamp
    """

    __tablename__ = "attendees"

    GUID_PREFIX = "att"

    id = Column(Integer, primary_key=True, autoincrement=True)

    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True, unique=True, index=True)
    company = Column(String(255), nullable=True)

    checked_in = Column(Boolean, nullable=False, default=False)
    check_in_time = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False
    )

    def set_checked_in(self, checked_in: bool, now: Optional[datetime] = None) -> bool:
        """
        Set the check-in flag, keeping check_in_time consistent with it.

        Returns:
            True if the flag changed, False if it already had that value
        """
        if bool(self.checked_in) == checked_in:
            return False
        self.checked_in = checked_in
        self.check_in_time = (now or datetime.utcnow()) if checked_in else None
        return True

    def to_record(self) -> Dict[str, Any]:
        """Plain-dict row as published on the change feed."""
        return {
            "guid": self.guid,
            "name": self.name,
            "email": self.email,
            "company": self.company,
            "checked_in": bool(self.checked_in),
            "check_in_time": self.check_in_time,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        return (
            f"<Attendee("
            f"id={self.id}, "
            f"name='{self.name}', "
            f"email={self.email!r}, "
            f"checked_in={self.checked_in}"
            f")>"
        )

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>" if self.email else self.name
