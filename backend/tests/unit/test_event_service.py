"""
Unit tests for EventService.

Tests cover:
- Creation defaults (cue order, duration, end time)
- Validation of titles, times and durations
- Updates of editable fields
- Move and reorder renumbering
- Stats, locations and filters
- CSV import and export
"""

from datetime import datetime, timedelta

import pytest

from backend.src.services.event_service import EventService, duration_between
from backend.src.services.exceptions import CsvFormatError, NotFoundError, ValidationError


START = datetime(2026, 1, 20, 9, 0, 0)


@pytest.fixture
def service(test_db_session):
    return EventService(test_db_session)


def _titles(events):
    return [e.title for e in events]


class TestCreate:
    """Tests for creating events."""

    def test_defaults(self, service):
        event = service.create(title=" Keynote ")

        assert event.guid.startswith("evt_")
        assert event.title == "Keynote"
        assert event.status == "scheduled"
        assert event.duration == 30
        assert event.cue_order == 1
        assert event.color == "#007bff"
        assert event.start_time is None
        assert event.end_time is None

    def test_appended_to_running_order(self, service):
        service.create(title="First")
        second = service.create(title="Second")
        assert second.cue_order == 2

    def test_end_time_from_duration(self, service):
        event = service.create(title="Keynote", start_time=START, duration=45)
        assert event.end_time == START + timedelta(minutes=45)

    def test_duration_from_times(self, service):
        event = service.create(title="Keynote", start_time=START, end_time=START + timedelta(minutes=50))
        assert event.duration == 50

    def test_title_required(self, service):
        with pytest.raises(ValidationError) as exc_info:
            service.create(title="  ")
        assert exc_info.value.field == "title"

    def test_end_before_start_rejected(self, service):
        with pytest.raises(ValidationError):
            service.create(title="Keynote", start_time=START, end_time=START - timedelta(minutes=1))

    def test_zero_duration_rejected(self, service):
        with pytest.raises(ValidationError):
            service.create(title="Keynote", duration=0)

    def test_duration_between_is_at_least_one_minute(self):
        assert duration_between(START, START) == 1
        assert duration_between(START, START + timedelta(minutes=90)) == 90


class TestUpdate:
    """Tests for updating events."""

    def test_update_fields(self, service, sample_event):
        event = sample_event(title="Keynote", location="Main Hall")

        updated = service.update(event.guid, title="Opening Keynote", location="  ", presenter="Jo")

        assert updated.title == "Opening Keynote"
        assert updated.location is None
        assert updated.presenter == "Jo"

    def test_changing_times_recomputes_duration(self, service, sample_event):
        event = sample_event(start_time=START, end_time=START + timedelta(minutes=30), duration=30)

        updated = service.update(event.guid, end_time=START + timedelta(minutes=60))

        assert updated.duration == 60

    def test_status_not_editable(self, service, sample_event):
        event = sample_event()
        with pytest.raises(ValidationError):
            service.update(event.guid, status="completed")

    def test_unknown_event(self, service):
        with pytest.raises(NotFoundError):
            service.update("evt_" + "0" * 26, title="x")

    def test_delete(self, service, sample_event):
        event = sample_event()
        service.delete(event.guid)
        assert service.list() == []


class TestOrdering:
    """Tests for move and reorder."""

    def test_move_up_renumbers(self, service, sample_event):
        sample_event(title="A", cue_order=1)
        sample_event(title="B", cue_order=5)
        c = sample_event(title="C", cue_order=9)

        events = service.move(c.guid, "up")

        assert _titles(events) == ["A", "C", "B"]
        assert [e.cue_order for e in events] == [1, 2, 3]

    def test_move_first_up_is_noop(self, service, sample_event):
        a = sample_event(title="A", cue_order=1)
        sample_event(title="B", cue_order=2)

        assert _titles(service.move(a.guid, "up")) == ["A", "B"]

    def test_move_last_down_is_noop(self, service, sample_event):
        sample_event(title="A", cue_order=1)
        b = sample_event(title="B", cue_order=2)

        assert _titles(service.move(b.guid, "down")) == ["A", "B"]

    def test_invalid_direction(self, service, sample_event):
        event = sample_event()
        with pytest.raises(ValidationError):
            service.move(event.guid, "sideways")

    def test_reorder(self, service, sample_event):
        a = sample_event(title="A", cue_order=1)
        b = sample_event(title="B", cue_order=2)
        c = sample_event(title="C", cue_order=3)

        events = service.reorder([c.guid, a.guid])

        assert _titles(events) == ["C", "A", "B"]
        assert [e.cue_order for e in service.list()] == [1, 2, 3]
        assert b.cue_order == 3

    def test_reorder_rejects_duplicates(self, service, sample_event):
        a = sample_event()
        with pytest.raises(ValidationError):
            service.reorder([a.guid, a.guid])


class TestQueries:
    """Tests for list filters, stats and locations."""

    def test_search_and_filters(self, service, sample_event):
        sample_event(title="Keynote", cue_order=1, location="Main Hall", presenter="Ada")
        sample_event(title="Panel", cue_order=2, location="Room B", status="in_progress")

        assert _titles(service.list(search="ADA")) == ["Keynote"]
        assert _titles(service.list(status="in_progress")) == ["Panel"]
        assert _titles(service.list(location="Main Hall")) == ["Keynote"]

    def test_invalid_status_filter(self, service):
        with pytest.raises(ValidationError):
            service.list(status="paused")

    def test_stats(self, service, sample_event):
        sample_event(cue_order=1)
        sample_event(cue_order=2, status="in_progress")
        sample_event(cue_order=3, status="completed")
        sample_event(cue_order=4, status="completed")

        assert service.get_stats() == {
            "scheduled": 1,
            "in_progress": 1,
            "completed": 2,
            "cancelled": 0,
            "total": 4,
        }

    def test_locations(self, service, sample_event):
        sample_event(cue_order=1, location="Room B")
        sample_event(cue_order=2, location="Main Hall")
        sample_event(cue_order=3, location="Room B")
        sample_event(cue_order=4, location=None)

        assert service.get_locations() == ["Main Hall", "Room B"]


class TestCsv:
    """Tests for CSV import and export."""

    def test_import_appends_in_file_order(self, service, sample_event):
        sample_event(title="Existing", cue_order=3)
        content = (
            "Title,Description,Start Time,End Time,Presenter,Location\n"
            "Welcome,Hi,2026-01-20 09:00:00,2026-01-20 10:00:00,Jo,Main Hall\n"
            "Talk,,2026-01-20T10:30:00Z,2026-01-20T11:00:00Z,,\n"
        ).encode("utf-8")

        result = service.import_csv(content)

        assert result == {"imported": 2, "skipped": 0, "skipped_names": [], "errors": []}
        events = service.list()
        assert _titles(events) == ["Existing", "Welcome", "Talk"]
        assert [e.cue_order for e in events] == [3, 4, 5]
        assert events[1].duration == 60
        assert events[2].location is None
        assert events[2].start_time == datetime(2026, 1, 20, 10, 30)

    def test_import_reports_bad_rows(self, service):
        content = (
            "title,start_time,end_time\n"
            "Good,2026-01-20 09:00:00,2026-01-20 09:30:00\n"
            "Bad Time,tomorrow,2026-01-20 09:30:00\n"
            ",2026-01-20 09:00:00,2026-01-20 09:30:00\n"
        ).encode("utf-8")

        result = service.import_csv(content)

        assert result["imported"] == 1
        assert result["skipped"] == 2
        assert result["skipped_names"] == ["Bad Time"]
        assert [e["row"] for e in result["errors"]] == [3, 4]

    def test_import_missing_columns(self, service):
        with pytest.raises(CsvFormatError) as exc_info:
            service.import_csv(b"Title,Start Time\nKeynote,2026-01-20 09:00:00\n")
        assert exc_info.value.missing_columns == ["end_time"]

    def test_export(self, service, sample_event):
        sample_event(
            title="Keynote", cue_order=1, location="Main Hall",
            start_time=START, end_time=START + timedelta(minutes=30),
        )

        lines = service.export_csv().splitlines()

        assert lines[0] == "Title,Description,Start Time,End Time,Presenter,Location,Status,Cue Order"
        assert lines[1] == (
            '"Keynote","","2026-01-20 09:00:00","2026-01-20 09:30:00",'
            '"","Main Hall","scheduled","1"'
        )
