"""
Key/value settings shared by every screen.

Holds values that staff edit at runtime and the public display reads, such
as the forum name shown in the display header.
"""

from datetime import datetime
from typing import Any, Dict

from sqlalchemy import Column, Integer, String, DateTime, Text

from backend.src.models import Base


FORUM_NAME_KEY = "forum_name"


class Setting(Base):
    """
    A single runtime setting.

    Attributes:
        id: Primary key
        key: Setting name (unique)
        value: Setting value as text
        updated_at: Last update timestamp
    """

    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(100), nullable=False, unique=True, index=True)
    value = Column(Text, nullable=False, default="")
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False
    )

    def to_record(self) -> Dict[str, Any]:
        return {"key": self.key, "value": self.value, "updated_at": self.updated_at}

    def __repr__(self) -> str:
        return f"<Setting(key='{self.key}', value='{self.value}')>"
