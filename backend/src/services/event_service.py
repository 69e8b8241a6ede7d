"""
Event service for managing the agenda.

Provides business logic for creating, reading, updating, deleting and
reordering events, plus CSV import/export. Status changes are handled by the
lifecycle engine (see lifecycle_service), not here.

Design:
- cue_order is the running order; new events are appended (max + 1)
- end_time defaults to start_time + duration when not given
- Moving an event renumbers the whole list 1..n so gaps never accumulate
"""

import csv
import io
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.src.models import Event, EventStatus
from backend.src.models.event import DEFAULT_DURATION_MINUTES, DEFAULT_COLOR
from backend.src.services.attendee_service import read_csv_rows
from backend.src.services.exceptions import NotFoundError, StoreError, ValidationError
from backend.src.services.guid import GuidService
from backend.src.utils.formatting import format_timestamp, parse_timestamp
from backend.src.utils.logging_config import get_logger


logger = get_logger("services")

EVENT_TEMPLATE_CSV = (
    "Title,Description,Start Time,End Time,Presenter,Location\n"
    "Welcome Keynote,Opening remarks,2026-01-20 09:00:00,2026-01-20 10:00:00,John Doe,Main Hall\n"
    "Tech Talk,Latest innovations,2026-01-20 10:30:00,2026-01-20 11:30:00,Jane Smith,Conference Room A"
)

EXPORT_HEADERS = [
    "Title", "Description", "Start Time", "End Time",
    "Presenter", "Location", "Status", "Cue Order",
]

REQUIRED_IMPORT_COLUMNS = ("title", "start_time", "end_time")

MOVE_DIRECTIONS = ("up", "down")

# Fields a PUT may change; status goes through the lifecycle engine
EDITABLE_FIELDS = (
    "title", "description", "presenter", "location", "notes", "color",
    "start_time", "end_time", "duration",
)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def duration_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, at least 1."""
    return max(1, int((end - start).total_seconds() // 60))


class EventService:
    """
    Service for managing agenda events.

    Usage:
        >>> service = EventService(db_session)
        >>> event = service.create(title="Keynote", location="Main Hall", duration=45)
        >>> service.move(event.guid, "up")
    """

    def __init__(self, db: Session):
        """
        Initialize event service.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    # ========================================================================
    # Queries
    # ========================================================================

    def get_by_guid(self, guid: str) -> Event:
        """
        Get an event by GUID.

        Raises:
            NotFoundError: If no event has this GUID
        """
        if not GuidService.validate_guid(guid, "evt"):
            raise NotFoundError("Event", guid)
        uuid_value = Event.parse_guid(guid)

        event = self.db.query(Event).filter(Event.uuid == uuid_value).first()
        if not event:
            raise NotFoundError("Event", guid)
        return event

    def list(
        self,
        search: Optional[str] = None,
        status: Optional[str] = None,
        location: Optional[str] = None,
    ) -> List[Event]:
        """
        List events in running order.

        Args:
            search: Case-insensitive substring of title, description or presenter
            status: Exact status filter
            location: Exact location filter

        Raises:
            ValidationError: If status is not a known status
        """
        query = self.db.query(Event)

        if search and search.strip():
            pattern = f"%{search.strip().lower()}%"
            query = query.filter(
                or_(
                    func.lower(Event.title).like(pattern),
                    func.lower(Event.description).like(pattern),
                    func.lower(Event.presenter).like(pattern),
                )
            )

        if status:
            self._validate_status(status)
            query = query.filter(Event.status == status)

        if location:
            query = query.filter(Event.location == location)

        return query.order_by(Event.cue_order.asc(), Event.id.asc()).all()

    def get_stats(self) -> Dict[str, int]:
        """
        Get event counts by status.

        Returns:
            Dictionary with total and one count per status
        """
        rows = (
            self.db.query(Event.status, func.count(Event.id))
            .group_by(Event.status)
            .all()
        )
        counts = {status.value: 0 for status in EventStatus}
        for status, count in rows:
            counts[status] = count
        counts["total"] = sum(count for _, count in rows)
        return counts

    def get_locations(self) -> List[str]:
        """Distinct non-empty locations, alphabetically."""
        rows = (
            self.db.query(Event.location)
            .filter(Event.location.isnot(None))
            .filter(Event.location != "")
            .distinct()
            .order_by(Event.location.asc())
            .all()
        )
        return [row[0] for row in rows]

    @staticmethod
    def _validate_status(status: str) -> None:
        valid = [s.value for s in EventStatus]
        if status not in valid:
            raise ValidationError(
                f"Invalid status '{status}'. Must be one of: {', '.join(valid)}",
                field="status",
            )

    def _next_cue_order(self) -> int:
        return (self.db.query(func.max(Event.cue_order)).scalar() or 0) + 1

    def _commit(self, operation: str, description: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to {description}: {e}")
            raise StoreError(operation, Event.__tablename__, e) from e

    # ========================================================================
    # CRUD
    # ========================================================================

    def create(
        self,
        title: str,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        duration: Optional[int] = None,
        description: Optional[str] = None,
        presenter: Optional[str] = None,
        location: Optional[str] = None,
        notes: Optional[str] = None,
        color: Optional[str] = None,
    ) -> Event:
        """
        Create a scheduled event at the end of the running order.

        Args:
            title: Event title (required)
            start_time: Planned start (naive UTC)
            end_time: Planned end; defaults to start_time + duration
            duration: Minutes; defaults to end - start, else 30

        Returns:
            Created Event instance

        Raises:
            ValidationError: If title is empty or the times are inconsistent
        """
        title = (title or "").strip()
        if not title:
            raise ValidationError("Title is required", field="title")

        duration = self._resolve_duration(start_time, end_time, duration)
        if start_time is not None and end_time is None:
            end_time = start_time + timedelta(minutes=duration)

        event = Event(
            title=title,
            description=_clean(description),
            presenter=_clean(presenter),
            location=_clean(location),
            notes=_clean(notes),
            color=_clean(color) or DEFAULT_COLOR,
            start_time=start_time,
            end_time=end_time,
            duration=duration,
            status=EventStatus.SCHEDULED.value,
            cue_order=self._next_cue_order(),
        )
        self.db.add(event)
        self._commit("insert", f"create event '{title}'")
        self.db.refresh(event)

        logger.info(f"Created event: {event.title} ({event.guid}) at cue {event.cue_order}")
        return event

    @staticmethod
    def _resolve_duration(
        start_time: Optional[datetime],
        end_time: Optional[datetime],
        duration: Optional[int],
    ) -> int:
        if start_time is not None and end_time is not None and end_time < start_time:
            raise ValidationError("End time must be after start time", field="end_time")
        if duration is not None:
            if duration < 1:
                raise ValidationError("Duration must be at least 1 minute", field="duration")
            return duration
        if start_time is not None and end_time is not None:
            return duration_between(start_time, end_time)
        return DEFAULT_DURATION_MINUTES

    def update(self, guid: str, **fields: Any) -> Event:
        """
        Update editable fields of an event.

        Only keys present in fields are changed; None clears optional fields.

        Raises:
            NotFoundError: If event not found
            ValidationError: If a field is not editable or values are invalid
        """
        event = self.get_by_guid(guid)

        unknown = set(fields) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        if "title" in fields:
            title = (fields["title"] or "").strip()
            if not title:
                raise ValidationError("Title is required", field="title")
            event.title = title

        for name in ("description", "presenter", "location", "notes"):
            if name in fields:
                setattr(event, name, _clean(fields[name]))
        if "color" in fields:
            event.color = _clean(fields["color"]) or DEFAULT_COLOR

        start_time = fields.get("start_time", event.start_time)
        end_time = fields.get("end_time", event.end_time)
        duration = fields.get("duration")
        times_changed = "start_time" in fields or "end_time" in fields
        if duration is None and not (times_changed and start_time and end_time):
            duration = event.duration

        event.duration = self._resolve_duration(start_time, end_time, duration)
        event.start_time = start_time
        event.end_time = end_time

        self._commit("update", f"update event {guid}")
        self.db.refresh(event)
        logger.info(f"Updated event: {event.title} ({event.guid})")
        return event

    def delete(self, guid: str) -> None:
        """
        Delete an event.

        Raises:
            NotFoundError: If event not found
        """
        event = self.get_by_guid(guid)
        self.db.delete(event)
        self._commit("delete", f"delete event {guid}")
        logger.info(f"Deleted event: {event.title} ({guid})")

    # ========================================================================
    # Ordering
    # ========================================================================

    def move(self, guid: str, direction: str) -> List[Event]:
        """
        Move an event one place up or down in the running order.

        The full list is renumbered 1..n afterwards. Moving the first event
        up or the last event down leaves the order unchanged.

        Returns:
            All events in their new order

        Raises:
            NotFoundError: If event not found
            ValidationError: If direction is not up or down
        """
        if direction not in MOVE_DIRECTIONS:
            raise ValidationError(
                f"Invalid direction '{direction}'. Must be 'up' or 'down'",
                field="direction",
            )

        target = self.get_by_guid(guid)
        events = self.list()
        index = next(i for i, e in enumerate(events) if e.id == target.id)
        swap_with = index - 1 if direction == "up" else index + 1

        if 0 <= swap_with < len(events):
            events[index], events[swap_with] = events[swap_with], events[index]

        return self._renumber(events, f"move event {guid} {direction}")

    def reorder(self, ordered_guids: List[str]) -> List[Event]:
        """
        Set the full running order explicitly.

        Events not named in ordered_guids keep their relative order after
        the named ones.

        Raises:
            NotFoundError: If any GUID is unknown
            ValidationError: If a GUID appears twice
        """
        if len(set(ordered_guids)) != len(ordered_guids):
            raise ValidationError("Duplicate event in order", field="guids")

        named = [self.get_by_guid(guid) for guid in ordered_guids]
        named_ids = {e.id for e in named}
        rest = [e for e in self.list() if e.id not in named_ids]
        return self._renumber(named + rest, f"reorder {len(named)} events")

    def _renumber(self, events: List[Event], description: str) -> List[Event]:
        for position, event in enumerate(events, start=1):
            if event.cue_order != position:
                event.cue_order = position
        self._commit("update", description)
        logger.info(f"Renumbered running order ({description})")
        return events

    # ========================================================================
    # CSV
    # ========================================================================

    def import_csv(self, content: bytes) -> Dict[str, Any]:
        """
        Bulk import events from CSV, appended to the running order in file order.

        Required columns: title, start_time, end_time (any case, spaces or
        underscores). Optional: description, presenter, location, duration.

        Events have no duplicate check, so skipped counts rows rejected for
        missing or unparseable values; each also appears under errors.

        Returns:
            Dictionary with imported, skipped, skipped_names, errors

        Raises:
            CsvFormatError: If the header is unusable (nothing is written)
        """
        rows = read_csv_rows(content, REQUIRED_IMPORT_COLUMNS)
        next_cue = self._next_cue_order()

        accepted: List[Event] = []
        skipped_names: List[str] = []
        errors: List[Dict[str, Any]] = []

        for row_number, row in enumerate(rows, start=2):
            title = row.get("title", "")
            try:
                if not title:
                    raise ValidationError("Missing title", field="title")
                start_time = parse_timestamp(row.get("start_time"))
                end_time = parse_timestamp(row.get("end_time"))
                if start_time is None or end_time is None:
                    raise ValidationError("Missing start_time or end_time")
                duration = int(row["duration"]) if row.get("duration") else None
                duration = self._resolve_duration(start_time, end_time, duration)
            except (ValueError, ValidationError) as e:
                errors.append({"row": row_number, "message": str(e)})
                if title:
                    skipped_names.append(title)
                continue

            accepted.append(Event(
                title=title,
                description=_clean(row.get("description")),
                presenter=_clean(row.get("presenter")),
                location=_clean(row.get("location")),
                start_time=start_time,
                end_time=end_time,
                duration=duration,
                color=DEFAULT_COLOR,
                status=EventStatus.SCHEDULED.value,
                cue_order=next_cue + len(accepted),
            ))

        if accepted:
            self.db.add_all(accepted)
            self._commit("insert", f"import {len(accepted)} events")

        logger.info(f"Imported {len(accepted)} events (errors {len(errors)})")
        return {
            "imported": len(accepted),
            "skipped": len(errors),
            "skipped_names": skipped_names,
            "errors": errors,
        }

    def export_csv(self) -> str:
        """Export all events in running order as CSV."""
        buf = io.StringIO()
        buf.write(",".join(EXPORT_HEADERS) + "\n")
        writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
        for event in self.list():
            writer.writerow([
                event.title,
                event.description or "",
                format_timestamp(event.start_time),
                format_timestamp(event.end_time),
                event.presenter or "",
                event.location or "",
                event.status,
                event.cue_order,
            ])
        return buf.getvalue()

    @staticmethod
    def template_csv() -> str:
        """Sample CSV for import."""
        return EVENT_TEMPLATE_CSV
