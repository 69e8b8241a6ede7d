"""
Unit tests for the change feed.

Tests cover:
- Insert, update and delete publish one change each after commit
- Rollback discards collected changes
- Table filters and unsubscribe
- Subscriber errors do not stop delivery to others
- ChangeRelay forwards JSON-ready messages in commit order
"""

import asyncio
from datetime import datetime

import pytest
from sqlalchemy.orm import Session

from backend.src.models import Attendee, Setting
from backend.src.services.change_feed import (
    Change,
    ChangeFeed,
    ChangeKind,
    ChangeRelay,
)


@pytest.fixture
def feed():
    """A change feed listening on every Session."""
    change_feed = ChangeFeed()
    change_feed.install(Session)
    yield change_feed
    change_feed.uninstall()


@pytest.fixture
def received(feed):
    """Changes delivered to a catch-all subscriber."""
    changes = []
    feed.subscribe(changes.append)
    return changes


class TestSessionHooks:
    """Tests for publishing from SQLAlchemy commits."""

    def test_insert_published_after_commit(self, feed, received, test_db_session):
        attendee = Attendee(name="Ann Lee", email="ann@x.io")
        test_db_session.add(attendee)
        test_db_session.flush()

        assert received == []

        test_db_session.commit()

        assert len(received) == 1
        change = received[0]
        assert change.table == "attendees"
        assert change.change_kind == ChangeKind.INSERT
        assert change.payload["name"] == "Ann Lee"
        assert change.payload["guid"].startswith("att_")

    def test_update_published(self, feed, received, test_db_session, sample_attendee):
        attendee = sample_attendee()
        received.clear()

        attendee.company = "Acme"
        test_db_session.commit()

        assert [c.change_kind for c in received] == [ChangeKind.UPDATE]
        assert received[0].payload["company"] == "Acme"

    def test_delete_published(self, feed, received, test_db_session, sample_attendee):
        attendee = sample_attendee()
        guid = attendee.guid
        received.clear()

        test_db_session.delete(attendee)
        test_db_session.commit()

        assert [c.change_kind for c in received] == [ChangeKind.DELETE]
        assert received[0].payload["guid"] == guid

    def test_rollback_discards_changes(self, feed, received, test_db_session):
        test_db_session.add(Attendee(name="Ann Lee", email="ann@x.io"))
        test_db_session.flush()
        test_db_session.rollback()

        test_db_session.add(Setting(key="forum_name", value="Spring Forum"))
        test_db_session.commit()

        assert [c.table for c in received] == ["settings"]

    def test_table_filter(self, feed, test_db_session):
        settings_only = []
        feed.subscribe(settings_only.append, tables={"settings"})

        test_db_session.add(Attendee(name="Ann Lee"))
        test_db_session.add(Setting(key="forum_name", value="Spring Forum"))
        test_db_session.commit()

        assert [c.table for c in settings_only] == ["settings"]

    def test_unsubscribe(self, feed, test_db_session):
        changes = []
        unsubscribe = feed.subscribe(changes.append)
        unsubscribe()

        test_db_session.add(Attendee(name="Ann Lee"))
        test_db_session.commit()

        assert changes == []
        assert feed.subscriber_count == 0


class TestPublish:
    """Tests for direct publishing."""

    def test_failing_subscriber_does_not_block_others(self):
        feed = ChangeFeed()
        delivered = []

        def broken(change):
            raise RuntimeError("subscriber bug")

        feed.subscribe(broken)
        feed.subscribe(delivered.append)

        feed.publish(Change("events", ChangeKind.UPDATE, {"guid": "evt_1"}))

        assert len(delivered) == 1

    def test_to_message_encodes_datetimes(self):
        change = Change(
            "attendees",
            ChangeKind.UPDATE,
            {"guid": "att_1", "check_in_time": datetime(2026, 1, 20, 9, 5)},
        )

        message = change.to_message()

        assert message == {
            "type": "change",
            "table": "attendees",
            "change_kind": "UPDATE",
            "payload": {"guid": "att_1", "check_in_time": "2026-01-20T09:05:00"},
        }


class TestChangeRelay:
    """Tests for forwarding changes to an async sender."""

    @pytest.mark.asyncio
    async def test_relays_in_order(self):
        feed = ChangeFeed()
        sent = []

        async def send(message):
            sent.append(message)

        relay = ChangeRelay(feed, send)
        relay.start()

        feed.publish(Change("events", ChangeKind.INSERT, {"guid": "evt_1"}))
        feed.publish(Change("events", ChangeKind.UPDATE, {"guid": "evt_1"}))
        await asyncio.sleep(0.01)
        await relay.stop()

        assert [m["change_kind"] for m in sent] == ["INSERT", "UPDATE"]
        assert feed.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_send_failure_does_not_stop_relay(self):
        feed = ChangeFeed()
        sent = []

        async def send(message):
            if message["payload"]["guid"] == "evt_bad":
                raise ConnectionError("client gone")
            sent.append(message)

        relay = ChangeRelay(feed, send, tables={"events"})
        relay.start()

        feed.publish(Change("events", ChangeKind.UPDATE, {"guid": "evt_bad"}))
        feed.publish(Change("attendees", ChangeKind.UPDATE, {"guid": "att_1"}))
        feed.publish(Change("events", ChangeKind.UPDATE, {"guid": "evt_ok"}))
        await asyncio.sleep(0.01)
        await relay.stop()

        assert [m["payload"]["guid"] for m in sent] == ["evt_ok"]
