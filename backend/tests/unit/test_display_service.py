"""
Unit tests for public display composition.

Tests cover:
- Visibility (in progress, look-ahead window, past-start scheduled events)
- Grouping by location, including the "No Location" group
- Rotation index rules
- Countdown text and timer colour thresholds
- Composed screen structure
- DisplayHub refresh and push loops
- DisplayStateLoader against the database
"""

import asyncio
from datetime import datetime, timedelta

import pytest

from backend.src.models import FORUM_NAME_KEY, Setting
from backend.src.services.display_service import (
    NO_LOCATION,
    DisplayHub,
    DisplayRotation,
    DisplayState,
    DisplayStateLoader,
    compose,
    format_countdown,
    group_visible_by_location,
    is_visible,
    timer_color,
)


NOW = datetime(2026, 1, 20, 9, 0, 0)


class TestVisibility:
    """Tests for is_visible."""

    def test_in_progress_is_visible(self, make_event_record):
        assert is_visible(make_event_record(1, status="in_progress"), NOW)

    def test_scheduled_within_lookahead_is_visible(self, make_event_record):
        event = make_event_record(1, start_time=NOW + timedelta(minutes=15))
        assert is_visible(event, NOW)

    def test_scheduled_beyond_lookahead_is_hidden(self, make_event_record):
        event = make_event_record(1, start_time=NOW + timedelta(minutes=15, seconds=1))
        assert not is_visible(event, NOW)

    def test_custom_lookahead(self, make_event_record):
        event = make_event_record(1, start_time=NOW + timedelta(minutes=20))
        assert is_visible(event, NOW, lookahead=timedelta(minutes=30))

    def test_scheduled_with_past_start_stays_visible(self, make_event_record):
        event = make_event_record(1, start_time=NOW - timedelta(minutes=3))
        assert is_visible(event, NOW)

    def test_scheduled_without_start_time_is_hidden(self, make_event_record):
        assert not is_visible(make_event_record(1, start_time=None), NOW)

    @pytest.mark.parametrize("status", ["completed", "cancelled"])
    def test_finished_events_are_hidden(self, make_event_record, status):
        event = make_event_record(1, status=status, start_time=NOW)
        assert not is_visible(event, NOW)


class TestGrouping:
    """Tests for group_visible_by_location."""

    def test_groups_sorted_by_cue_order(self, make_event_record):
        events = [
            make_event_record(5, status="in_progress", location="Main Hall"),
            make_event_record(2, start_time=NOW, location="Main Hall"),
            make_event_record(3, status="in_progress", location="Room B"),
        ]

        groups = group_visible_by_location(events, NOW)

        assert list(groups) == ["Main Hall", "Room B"]
        assert [e["cue_order"] for e in groups["Main Hall"]] == [2, 5]

    def test_missing_location_grouped_as_no_location(self, make_event_record):
        events = [
            make_event_record(1, status="in_progress", location=None),
            make_event_record(2, status="in_progress", location=""),
        ]

        groups = group_visible_by_location(events, NOW)

        assert list(groups) == [NO_LOCATION]
        assert len(groups[NO_LOCATION]) == 2


class TestDisplayRotation:
    """Tests for the rotation index."""

    def test_two_candidates_alternate(self):
        rotation = DisplayRotation()
        rotation.update({"Main Hall": ["a", "b"]})

        seen = [rotation.current("Main Hall")]
        for _ in range(2):
            rotation.rotate()
            seen.append(rotation.current("Main Hall"))

        assert seen == ["a", "b", "a"]

    def test_single_candidate_stays_at_zero(self):
        rotation = DisplayRotation()
        rotation.update({"Main Hall": ["a"]})

        rotation.rotate()
        rotation.rotate()

        assert rotation.index("Main Hall") == 0

    def test_same_candidates_keep_index(self):
        rotation = DisplayRotation()
        rotation.update({"Main Hall": ["a", "b", "c"]})
        rotation.rotate()

        rotation.update({"Main Hall": ["a", "b", "c"]})

        assert rotation.index("Main Hall") == 1

    def test_shrunk_list_clamps_index(self):
        rotation = DisplayRotation()
        rotation.update({"Main Hall": ["a", "b", "c"]})
        rotation.rotate()
        rotation.rotate()

        rotation.update({"Main Hall": ["a", "b"]})

        assert rotation.index("Main Hall") == 1
        assert rotation.current("Main Hall") == "b"

    def test_changed_candidates_reset_index(self):
        rotation = DisplayRotation()
        rotation.update({"Main Hall": ["a", "b"]})
        rotation.rotate()

        rotation.update({"Main Hall": ["c", "b"]})

        assert rotation.index("Main Hall") == 0

    def test_removed_location_dropped(self):
        rotation = DisplayRotation()
        rotation.update({"Main Hall": ["a"], "Room B": ["b"]})

        rotation.update({"Room B": ["b"]})

        assert rotation.locations == ["Room B"]
        assert rotation.current("Main Hall") is None


class TestCountdown:
    """Tests for countdown text and timer colour."""

    def test_in_progress_remaining(self):
        assert format_countdown("in_progress", None, NOW + timedelta(seconds=150), NOW) == "2m 30s"

    def test_in_progress_overrun(self):
        assert format_countdown("in_progress", None, NOW - timedelta(seconds=5), NOW) == "+0m 5s"

    def test_hours_shown_when_needed(self):
        end = NOW + timedelta(hours=1, minutes=2, seconds=5)
        assert format_countdown("in_progress", None, end, NOW) == "1h 2m 5s"

    def test_scheduled_starts_in(self):
        start = NOW + timedelta(minutes=5)
        assert format_countdown("scheduled", start, None, NOW) == "starts in 5m 0s"

    def test_scheduled_past_start(self):
        start = NOW - timedelta(minutes=1)
        assert format_countdown("scheduled", start, None, NOW) == "Not started yet"

    def test_completed_and_cancelled(self):
        assert format_countdown("completed", NOW, NOW, NOW) == "Event has ended"
        assert format_countdown("cancelled", NOW, NOW, NOW) == "Cancelled"

    @pytest.mark.parametrize("remaining,expected", [
        (3600, ("green", False)),
        (601, ("green", False)),
        (600, ("yellow", False)),
        (301, ("yellow", False)),
        (300, ("red", False)),
        (61, ("red", False)),
        (60, ("red", True)),
        (0, ("red", True)),
        (-30, ("red", True)),
        (None, ("green", False)),
    ])
    def test_timer_color_thresholds(self, remaining, expected):
        assert timer_color(remaining) == expected


class TestCompose:
    """Tests for the composed screen."""

    def test_compose_structure(self, make_event_record):
        running = make_event_record(
            1, status="in_progress", location="Main Hall",
            end_time=NOW + timedelta(seconds=30), title="Keynote",
        )
        upcoming = make_event_record(2, start_time=NOW + timedelta(minutes=5), location="Room B")
        hidden = make_event_record(3, start_time=NOW + timedelta(hours=2), location="Room C")

        screen = compose([running, upcoming, hidden], NOW, DisplayRotation(), "Spring Forum")

        assert screen["forum_name"] == "Spring Forum"
        assert screen["server_time"] == NOW
        assert [loc["location"] for loc in screen["locations"]] == ["Main Hall", "Room B"]

        main_hall = screen["locations"][0]
        assert main_hall["event"]["title"] == "Keynote"
        assert main_hall["countdown"] == "0m 30s"
        assert main_hall["timer_color"] == "red"
        assert main_hall["blink"] is True
        assert main_hall["index"] == 0
        assert main_hall["count"] == 1

        room_b = screen["locations"][1]
        assert room_b["countdown"] == "starts in 5m 0s"
        assert room_b["timer_color"] == "green"
        assert room_b["blink"] is False

    def test_compose_follows_rotation(self, make_event_record):
        first = make_event_record(1, status="in_progress", end_time=NOW + timedelta(hours=1))
        second = make_event_record(2, start_time=NOW + timedelta(minutes=10))
        rotation = DisplayRotation()

        shown = [compose([first, second], NOW, rotation, "F")["locations"][0]["event"]["guid"]]
        rotation.rotate()
        shown.append(compose([first, second], NOW, rotation, "F")["locations"][0]["event"]["guid"])
        rotation.rotate()
        shown.append(compose([first, second], NOW, rotation, "F")["locations"][0]["event"]["guid"])

        assert shown == [first["guid"], second["guid"], first["guid"]]

    def test_index_clamped_when_event_leaves(self, make_event_record):
        first = make_event_record(1, status="in_progress", end_time=NOW + timedelta(hours=1))
        second = make_event_record(2, status="in_progress", end_time=NOW + timedelta(hours=1))
        rotation = DisplayRotation()
        compose([first, second], NOW, rotation, "F")
        rotation.rotate()

        second["status"] = "completed"
        screen = compose([first, second], NOW, rotation, "F")

        assert screen["locations"][0]["index"] == 0
        assert screen["locations"][0]["event"]["guid"] == first["guid"]

    def test_empty_screen(self):
        screen = compose([], NOW, DisplayRotation(), "F")
        assert screen["locations"] == []


class TestDisplayHub:
    """Tests for the runtime hub."""

    @pytest.mark.asyncio
    async def test_refresh_loads_state(self, make_event_record):
        event = make_event_record(1, status="in_progress", end_time=NOW + timedelta(minutes=20))

        async def broadcast(snapshot):
            pass

        hub = DisplayHub(lambda: DisplayState([event], "Spring Forum"), broadcast)
        assert hub.snapshot(NOW)["forum_name"] == "EventFlow.io"

        await hub.refresh()
        screen = hub.snapshot(NOW)

        assert screen["forum_name"] == "Spring Forum"
        assert screen["locations"][0]["event"]["guid"] == event["guid"]

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_previous_state(self, make_event_record):
        event = make_event_record(1, status="in_progress", end_time=NOW + timedelta(minutes=20))
        states = [DisplayState([event], "Forum")]

        def fetch():
            if not states:
                raise RuntimeError("store unavailable")
            return states.pop()

        async def broadcast(snapshot):
            pass

        hub = DisplayHub(fetch, broadcast)
        await hub.refresh()
        await hub.refresh()

        assert hub.state.forum_name == "Forum"
        assert hub.coordinator.failure_count == 1

    @pytest.mark.asyncio
    async def test_push_loop_broadcasts_snapshots(self):
        pushed = []

        async def broadcast(snapshot):
            pushed.append(snapshot)

        hub = DisplayHub(
            lambda: DisplayState([], "Forum"),
            broadcast,
            rotation_seconds=0.01,
            poll_seconds=0.01,
            push_seconds=0.01,
        )
        hub.start()
        await asyncio.sleep(0.05)
        await hub.stop()

        assert pushed
        assert pushed[-1]["forum_name"] == "Forum"
        assert hub.coordinator.fetch_count >= 1


class TestDisplayStateLoader:
    """Tests for reading display state from the database."""

    def test_loads_events_and_default_forum_name(self, test_session_factory, sample_event):
        sample_event(title="Second", cue_order=2)
        sample_event(title="First", cue_order=1)

        state = DisplayStateLoader(test_session_factory)()

        assert [e["title"] for e in state.events] == ["First", "Second"]
        assert state.forum_name == "EventFlow.io"

    def test_loads_saved_forum_name(self, test_session_factory, test_db_session):
        test_db_session.add(Setting(key=FORUM_NAME_KEY, value="Spring Forum"))
        test_db_session.commit()

        state = DisplayStateLoader(test_session_factory)()

        assert state.forum_name == "Spring Forum"
