"""
Pydantic schemas for staff area login.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


StaffArea = Literal["registration", "event", "admin"]


class LoginRequest(BaseModel):
    """
    Unlock a staff area.

    Example:
        >>> LoginRequest(area="registration", password="registration123")
    """

    area: StaffArea
    password: str = Field(..., max_length=256)
    display_name: Optional[str] = Field(default=None, max_length=100)


class LogoutRequest(BaseModel):
    """Lock one area, or all areas when area is omitted."""

    area: Optional[StaffArea] = None


class SessionResponse(BaseModel):
    """
    Current session context.

    Fields:
        areas: Unlocked staff areas
        capabilities: Everything this session may do
        display_name: Cached display name
    """

    areas: List[str]
    capabilities: List[str]
    display_name: Optional[str] = None
