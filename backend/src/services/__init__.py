"""
Service layer for business logic.

Service classes are imported from their own modules by the API layer;
this package only re-exports the exception hierarchy and the GUID helper,
which models depend on and which must stay import-light.
"""

from backend.src.services.exceptions import (
    ServiceError,
    NotFoundError,
    ConflictError,
    DuplicateAttendeeError,
    InvalidTransitionError,
    ValidationError,
    CsvFormatError,
    StoreError,
)
from backend.src.services.guid import GuidService

__all__ = [
    "ServiceError",
    "NotFoundError",
    "ConflictError",
    "DuplicateAttendeeError",
    "InvalidTransitionError",
    "ValidationError",
    "CsvFormatError",
    "StoreError",
    "GuidService",
]
