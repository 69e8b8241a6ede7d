"""
SQLAlchemy models for the EventFlow application.

This module provides the declarative base class and imports all models
to ensure they are registered with SQLAlchemy's metadata.
"""

from sqlalchemy.orm import declarative_base

Base = declarative_base()


# Import all models here so they are registered with Base.metadata
# This is required for Alembic autogenerate to detect models
from backend.src.models.attendee import Attendee
from backend.src.models.event import Event, EventStatus
from backend.src.models.setting import Setting, FORUM_NAME_KEY

__all__ = [
    "Base",
    "Attendee",
    "Event",
    "EventStatus",
    "Setting",
    "FORUM_NAME_KEY",
]
