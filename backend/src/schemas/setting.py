"""
Pydantic schemas for runtime settings.
"""

from pydantic import BaseModel, Field


class SettingUpdate(BaseModel):
    """New value for a setting."""

    value: str = Field(..., min_length=1, max_length=200)


class SettingResponse(BaseModel):
    """
    A setting and its current value.

    Example:
        >>> SettingResponse(key="forum_name", value="EventFlow.io")
    """

    key: str
    value: str
