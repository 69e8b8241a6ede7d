"""
Custom exceptions for service layer.

Provides specific exception types for business logic errors
that can be translated to appropriate HTTP responses.
"""

from typing import Any, Dict, Optional


class ServiceError(Exception):
    """Base exception for service layer errors."""
    pass


class NotFoundError(ServiceError):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: Any):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} {identifier} not found")


class ConflictError(ServiceError):
    """Raised when an operation conflicts with existing state."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class DuplicateAttendeeError(ConflictError):
    """
    Raised when a new attendee collides with an existing one.

    This is an expected condition with its own user-facing message,
    not a generic failure.
    """

    def __init__(self, existing: Dict[str, Any]):
        self.existing = existing
        parts = [existing.get("name") or ""]
        if existing.get("email"):
            parts.append(existing["email"])
        if existing.get("company"):
            parts.append(existing["company"])
        super().__init__("Attendee already exists: " + ", ".join(p for p in parts if p))


class InvalidTransitionError(ConflictError):
    """Raised when an event status change is not allowed by the lifecycle."""

    def __init__(self, guid: str, current: str, target: str):
        self.guid = guid
        self.current = current
        self.target = target
        super().__init__(f"Cannot move event {guid} from '{current}' to '{target}'")


class ValidationError(ServiceError):
    """Raised when input validation fails."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)


class CsvFormatError(ValidationError):
    """Raised when an uploaded CSV cannot be used (missing header columns, bad encoding)."""

    def __init__(self, message: str, missing_columns: Optional[list] = None):
        self.missing_columns = missing_columns or []
        super().__init__(message, field="file")


class StoreError(ServiceError):
    """Raised when a read or write against the backing store fails."""

    def __init__(self, operation: str, table: str, cause: Optional[Exception] = None):
        self.operation = operation
        self.table = table
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Store {operation} on '{table}' failed{detail}")
