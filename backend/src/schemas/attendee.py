"""
Pydantic schemas for attendee API request/response validation.

Provides data validation and serialization for:
- Attendee registration requests
- QR scan requests
- Attendee API responses and statistics

Design:
- GUIDs are exposed via guid property, never internal IDs
- Datetimes are stored as naive UTC and serialized with a Z suffix
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_serializer, field_validator


# ============================================================================
# Attendee Request Schemas
# ============================================================================


class AttendeeCreate(BaseModel):
    """
    Schema for registering an attendee.

    Required:
        name: Full name

    Optional:
        email: Email address (also the QR payload)
        company: Company or organisation

    Example:
        >>> create = AttendeeCreate(name="Ann Lee", email="ann@x.io")
    """

    name: str = Field(..., min_length=1, max_length=255, description="Full name")
    email: Optional[str] = Field(default=None, max_length=255, description="Email address")
    company: Optional[str] = Field(default=None, max_length=255, description="Company")

    @field_validator("name")
    @classmethod
    def validate_name_not_whitespace(cls, v: str) -> str:
        """Ensure name is not just whitespace."""
        if not v.strip():
            raise ValueError("Name cannot be empty or whitespace")
        return v.strip()

    @field_validator("email")
    @classmethod
    def validate_email_shape(cls, v: Optional[str]) -> Optional[str]:
        """Empty email means no email; otherwise it must look like one."""
        if v is None or not v.strip():
            return None
        v = v.strip()
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError("Email must look like name@domain")
        return v

    model_config = {
        "json_schema_extra": {
            "example": {
                "name": "Ann Lee",
                "email": "ann@example.com",
                "company": "Example Inc.",
            }
        }
    }


class ScanRequest(BaseModel):
    """
    Schema for a QR code scan.

    Fields:
        payload: Decoded QR text (the attendee's email)
    """

    payload: str = Field(..., max_length=512, description="Decoded QR text")


# ============================================================================
# Attendee Response Schemas
# ============================================================================


class AttendeeResponse(BaseModel):
    """
    Schema for attendee API responses.

    Example:
        >>> response = AttendeeResponse.model_validate(attendee_obj)
    """

    guid: str = Field(..., description="External identifier (att_xxx)")
    name: str
    email: Optional[str]
    company: Optional[str]
    checked_in: bool
    check_in_time: Optional[datetime]
    created_at: datetime

    @field_serializer("check_in_time", "created_at")
    @classmethod
    def serialize_datetime_utc(cls, v: Optional[datetime]) -> Optional[str]:
        """Serialize datetime as ISO 8601 with explicit UTC timezone (Z suffix)."""
        return v.isoformat() + "Z" if v else None

    model_config = {
        "from_attributes": True,
        "json_schema_extra": {
            "example": {
                "guid": "att_01hgw2bbg0000000000000001",
                "name": "Ann Lee",
                "email": "ann@example.com",
                "company": "Example Inc.",
                "checked_in": True,
                "check_in_time": "2026-01-20T08:45:12Z",
                "created_at": "2026-01-10T10:00:00Z",
            }
        },
    }


class AttendeeListResponse(BaseModel):
    """List of attendees, newest first."""

    items: List[AttendeeResponse]
    total: int


class AttendeeStatsResponse(BaseModel):
    """
    Attendance statistics.

    Fields:
        total: Registered attendees
        checked_in: Attendees checked in
        not_checked_in: Attendees not yet checked in
    """

    total: int = Field(..., ge=0)
    checked_in: int = Field(..., ge=0)
    not_checked_in: int = Field(..., ge=0)


class DuplicateAttendeeResponse(BaseModel):
    """Body of a 409 returned when the attendee is already registered."""

    message: str
    existing: Dict[str, Any]
