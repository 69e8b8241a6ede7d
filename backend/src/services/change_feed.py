"""
Change feed for row-level push notifications.

Every committed insert, update or delete on a watched table is published as a
Change {table, change_kind, payload} to all subscribers, whichever code path
performed the write: API handlers, CSV imports and the lifecycle engine all
go through SQLAlchemy sessions, and the feed listens on the Session class.

Changes are collected during flushes and only published after the
transaction commits; a rollback discards them.

Usage:
    feed = get_change_feed()
    unsubscribe = feed.subscribe(lambda change: print(change.table), tables={"events"})
"""

import asyncio
import enum
import threading
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Iterable, List, Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy import event
from sqlalchemy.orm import Session

from backend.src.utils.logging_config import get_logger


logger = get_logger("db")

WATCHED_TABLES = frozenset({"attendees", "events", "settings"})

_PENDING_KEY = "eventflow.pending_changes"


class ChangeKind(str, enum.Enum):
    """Kind of row change."""
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class Change:
    """One committed row change."""
    table: str
    change_kind: ChangeKind
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_message(self) -> Dict[str, Any]:
        """JSON-ready message for WebSocket subscribers."""
        return {
            "type": "change",
            "table": self.table,
            "change_kind": self.change_kind.value,
            "payload": jsonable_encoder(self.payload),
        }


@dataclass
class _Subscription:
    callback: Callable[[Change], None]
    tables: Optional[FrozenSet[str]]

    def wants(self, change: Change) -> bool:
        return self.tables is None or change.table in self.tables


def _watched(obj: Any) -> bool:
    return getattr(obj, "__tablename__", None) in WATCHED_TABLES and hasattr(obj, "to_record")


class ChangeFeed:
    """
    In-process publish/subscribe hub for committed row changes.

    Subscribers are plain callables invoked synchronously on the thread that
    committed the transaction. Use subscribe_threadsafe() to hop onto an
    asyncio event loop instead.
    """

    def __init__(self):
        self._subscriptions: List[_Subscription] = []
        self._lock = threading.Lock()
        self._installed = False

    # ------------------------------------------------------------------
    # Subscription management
    # ------------------------------------------------------------------

    def subscribe(
        self,
        callback: Callable[[Change], None],
        tables: Optional[Iterable[str]] = None,
    ) -> Callable[[], None]:
        """
        Register a callback for committed changes.

        Args:
            callback: Called with each Change
            tables: Only deliver changes for these tables (default: all)

        Returns:
            Function that removes the subscription
        """
        subscription = _Subscription(callback, frozenset(tables) if tables else None)
        with self._lock:
            self._subscriptions.append(subscription)

        def unsubscribe() -> None:
            with self._lock:
                if subscription in self._subscriptions:
                    self._subscriptions.remove(subscription)

        return unsubscribe

    def subscribe_threadsafe(
        self,
        loop: asyncio.AbstractEventLoop,
        callback: Callable[[Change], None],
        tables: Optional[Iterable[str]] = None,
    ) -> Callable[[], None]:
        """Register a callback that runs on the given event loop."""

        def forward(change: Change) -> None:
            try:
                loop.call_soon_threadsafe(callback, change)
            except RuntimeError:
                # Loop already closed during shutdown
                logger.debug(f"Dropped {change.table} change: event loop closed")

        return self.subscribe(forward, tables)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def publish(self, change: Change) -> None:
        """Deliver a change to every interested subscriber."""
        with self._lock:
            subscriptions = list(self._subscriptions)

        for subscription in subscriptions:
            if not subscription.wants(change):
                continue
            try:
                subscription.callback(change)
            except Exception as e:
                logger.error(
                    f"Change feed subscriber failed for {change.table} {change.change_kind.value}: {e}",
                    exc_info=True,
                )

    # ------------------------------------------------------------------
    # SQLAlchemy session hooks
    # ------------------------------------------------------------------

    def install(self, session_class=Session) -> None:
        """Start listening to commits on every session of the given class."""
        if self._installed:
            return
        event.listen(session_class, "before_flush", self._collect_deletes)
        event.listen(session_class, "after_flush", self._collect_writes)
        event.listen(session_class, "after_commit", self._publish_pending)
        event.listen(session_class, "after_rollback", self._discard_pending)
        self._installed = True
        self._session_class = session_class

    def uninstall(self) -> None:
        """Stop listening to session commits."""
        if not self._installed:
            return
        session_class = self._session_class
        event.remove(session_class, "before_flush", self._collect_deletes)
        event.remove(session_class, "after_flush", self._collect_writes)
        event.remove(session_class, "after_commit", self._publish_pending)
        event.remove(session_class, "after_rollback", self._discard_pending)
        self._installed = False

    @staticmethod
    def _pending(session) -> List[Change]:
        return session.info.setdefault(_PENDING_KEY, [])

    def _collect_deletes(self, session, flush_context, instances) -> None:
        # Rows are still present before the flush, so the payload can be read safely
        for obj in session.deleted:
            if _watched(obj):
                self._pending(session).append(
                    Change(obj.__tablename__, ChangeKind.DELETE, obj.to_record())
                )

    def _collect_writes(self, session, flush_context) -> None:
        for obj in session.new:
            if _watched(obj):
                self._pending(session).append(
                    Change(obj.__tablename__, ChangeKind.INSERT, obj.to_record())
                )
        for obj in session.dirty:
            if _watched(obj) and session.is_modified(obj, include_collections=False):
                self._pending(session).append(
                    Change(obj.__tablename__, ChangeKind.UPDATE, obj.to_record())
                )

    def _publish_pending(self, session) -> None:
        changes = session.info.pop(_PENDING_KEY, [])
        for change in changes:
            self.publish(change)

    def _discard_pending(self, session) -> None:
        session.info.pop(_PENDING_KEY, None)


class ChangeRelay:
    """
    Forwards committed changes to an async sender, in commit order.

    Changes are queued on the event loop as they are published and a single
    pump task sends them one at a time.

    Usage:
        relay = ChangeRelay(feed, lambda msg: manager.broadcast(channel, msg))
        relay.start()
        ...
        await relay.stop()
    """

    def __init__(
        self,
        feed: ChangeFeed,
        send: Callable[[Dict[str, Any]], Awaitable[None]],
        tables: Optional[Iterable[str]] = None,
    ):
        self._feed = feed
        self._send = send
        self._tables = tables
        self._queue: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    def start(self) -> None:
        loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._unsubscribe = self._feed.subscribe_threadsafe(loop, self._queue.put_nowait, self._tables)
        self._task = loop.create_task(self._pump())

    async def _pump(self) -> None:
        while True:
            change = await self._queue.get()
            try:
                await self._send(change.to_message())
            except Exception as e:
                logger.warning(f"Failed to relay {change.table} change: {e}")

    async def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None


# Singleton instance
_change_feed: Optional[ChangeFeed] = None


def get_change_feed() -> ChangeFeed:
    """
    Get the process-wide ChangeFeed, installing its session hooks on first use.
    """
    global _change_feed
    if _change_feed is None:
        _change_feed = ChangeFeed()
        _change_feed.install()
    return _change_feed
