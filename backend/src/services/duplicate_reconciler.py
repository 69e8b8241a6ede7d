"""
Duplicate detection for attendee registration and CSV import.

Matching rules (names and emails are trimmed and lower-cased first):
- Same non-empty email: duplicate
- Candidate has no email: duplicate when the names match
- Both have different non-empty emails: never a duplicate, even with the same name

Records may be dicts or objects exposing name and email.
"""

from typing import Any, Iterable, Optional


def normalize(value: Optional[str]) -> str:
    """Trim and lower-case a value; None becomes an empty string."""
    if value is None:
        return ""
    return str(value).strip().lower()


def _field(record: Any, name: str) -> Optional[str]:
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name, None)


def matches(candidate: Any, record: Any) -> bool:
    """True if candidate and record describe the same attendee."""
    candidate_email = normalize(_field(candidate, "email"))
    if candidate_email:
        return candidate_email == normalize(_field(record, "email"))

    candidate_name = normalize(_field(candidate, "name"))
    return bool(candidate_name) and candidate_name == normalize(_field(record, "name"))


def find_duplicate(candidate: Any, existing: Iterable[Any]) -> Optional[Any]:
    """Return the first existing record matching candidate, or None."""
    for record in existing:
        if matches(candidate, record):
            return record
    return None


def is_duplicate(candidate: Any, existing: Iterable[Any]) -> bool:
    """
    Check a candidate attendee against existing records.

    Examples:
        >>> existing = [{"name": "Ann Lee", "email": "ann@x.io"}]
        >>> is_duplicate({"name": "ann lee", "email": ""}, existing)
        True
        >>> is_duplicate({"name": "Ann Lee", "email": "ann2@x.io"}, existing)
        False
    """
    return find_duplicate(candidate, existing) is not None
