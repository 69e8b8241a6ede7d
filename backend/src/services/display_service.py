"""
Public display composition.

Decides what each location's screen shows right now:
- visible events are in progress, or scheduled to start within the look-ahead
  window (default 15 minutes)
- per location, visible events are ordered by cue_order and rotated on a fixed
  period when there is more than one
- every shown event carries a countdown text and a timer colour

The pure functions (is_visible, format_countdown, timer_color, compose) take
the event snapshot and the current time explicitly. DisplayHub is the runtime
part: it keeps the snapshot fresh from polling and the change feed, advances
the rotation and pushes the composed screen to WebSocket clients.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.src.db.database import SessionLocal
from backend.src.models.event import Event, EventStatus
from backend.src.services.exceptions import StoreError
from backend.src.services.setting_service import SettingService
from backend.src.services.store import TableStore
from backend.src.utils.formatting import format_duration
from backend.src.utils.logging_config import get_logger
from backend.src.utils.refresh import RefreshCoordinator


logger = get_logger("services")

NO_LOCATION = "No Location"
DEFAULT_LOOKAHEAD = timedelta(minutes=15)

ENDED_TEXT = "Event has ended"
CANCELLED_TEXT = "Cancelled"
NOT_STARTED_TEXT = "Not started yet"

# Timer colour thresholds in seconds remaining
BLINK_THRESHOLD = 60
RED_THRESHOLD = 300
YELLOW_THRESHOLD = 600


# ============================================================================
# Visibility and grouping
# ============================================================================

def is_visible(event: Dict[str, Any], now: datetime, lookahead: timedelta = DEFAULT_LOOKAHEAD) -> bool:
    """
    True if the event belongs on the public display.

    Scheduled events whose start already passed stay visible until the
    lifecycle engine starts them.
    """
    status = event.get("status")
    if status == EventStatus.IN_PROGRESS.value:
        return True
    if status == EventStatus.SCHEDULED.value:
        start_time = event.get("start_time")
        return start_time is not None and start_time <= now + lookahead
    return False


def display_location(event: Dict[str, Any]) -> str:
    return event.get("location") or NO_LOCATION


def group_visible_by_location(
    events: List[Dict[str, Any]],
    now: datetime,
    lookahead: timedelta = DEFAULT_LOOKAHEAD,
) -> Dict[str, List[Dict[str, Any]]]:
    """Visible events per location, each list sorted by cue_order."""
    groups: Dict[str, List[Dict[str, Any]]] = {}
    for event in events:
        if is_visible(event, now, lookahead):
            groups.setdefault(display_location(event), []).append(event)
    for location in groups:
        groups[location].sort(key=lambda e: e["cue_order"])
    return dict(sorted(groups.items()))


# ============================================================================
# Rotation
# ============================================================================

class DisplayRotation:
    """
    Per-location rotation index over the visible candidates.

    Rules when the candidate lists change:
    - same candidates: index kept
    - a prefix of the old candidates (list shrank): index clamped into range
    - different candidates: index reset to 0
    - location gone: its state dropped

    The index is always within range of the current candidate list.
    """

    def __init__(self):
        self._candidates: Dict[str, List[str]] = {}
        self._index: Dict[str, int] = {}

    def update(self, candidates: Dict[str, List[str]]) -> None:
        """Replace the candidate GUID lists for every location."""
        for location in list(self._candidates):
            if location not in candidates:
                del self._candidates[location]
                self._index.pop(location, None)

        for location, guids in candidates.items():
            guids = list(guids)
            previous = self._candidates.get(location)
            index = self._index.get(location, 0)

            if previous is None or not guids:
                index = 0
            elif guids == previous:
                pass
            elif len(guids) < len(previous) and previous[:len(guids)] == guids:
                index = min(index, len(guids) - 1)
            else:
                index = 0

            self._candidates[location] = guids
            self._index[location] = index

    def rotate(self) -> None:
        """Advance every location to its next candidate."""
        for location, guids in self._candidates.items():
            if len(guids) > 1:
                self._index[location] = (self._index[location] + 1) % len(guids)
            else:
                self._index[location] = 0

    def index(self, location: str) -> int:
        return self._index.get(location, 0)

    def current(self, location: str) -> Optional[str]:
        guids = self._candidates.get(location)
        if not guids:
            return None
        return guids[self.index(location)]

    @property
    def locations(self) -> List[str]:
        return list(self._candidates)


# ============================================================================
# Countdown and colour
# ============================================================================

def seconds_remaining(event: Dict[str, Any], now: datetime) -> Optional[int]:
    """Whole seconds until end_time (in progress) or start_time (scheduled)."""
    status = event.get("status")
    if status == EventStatus.IN_PROGRESS.value:
        target = event.get("end_time")
    elif status == EventStatus.SCHEDULED.value:
        target = event.get("start_time")
    else:
        return None
    if target is None:
        return None
    return int((target - now).total_seconds())


def format_countdown(
    status: str,
    start_time: Optional[datetime],
    end_time: Optional[datetime],
    now: datetime,
) -> str:
    """
    Countdown text for an event.

    Examples:
        >>> now = datetime(2026, 1, 20, 9, 0, 0)
        >>> format_countdown("in_progress", None, now + timedelta(seconds=150), now)
        '2m 30s'
        >>> format_countdown("in_progress", None, now - timedelta(seconds=5), now)
        '+0m 5s'
        >>> format_countdown("scheduled", now + timedelta(minutes=5), None, now)
        'starts in 5m 0s'
    """
    if status == EventStatus.COMPLETED.value:
        return ENDED_TEXT
    if status == EventStatus.CANCELLED.value:
        return CANCELLED_TEXT

    if status == EventStatus.IN_PROGRESS.value:
        if end_time is None:
            return ""
        remaining = int((end_time - now).total_seconds())
        if remaining >= 0:
            return format_duration(remaining)
        return "+" + format_duration(-remaining)

    if start_time is None:
        return NOT_STARTED_TEXT
    remaining = int((start_time - now).total_seconds())
    if remaining > 0:
        return "starts in " + format_duration(remaining)
    return NOT_STARTED_TEXT


def timer_color(remaining: Optional[int]) -> Tuple[str, bool]:
    """
    Timer colour and blink flag for the seconds remaining.

    Overrun (negative) counts as the last minute.
    """
    if remaining is None:
        return "green", False
    if remaining <= BLINK_THRESHOLD:
        return "red", True
    if remaining <= RED_THRESHOLD:
        return "red", False
    if remaining <= YELLOW_THRESHOLD:
        return "yellow", False
    return "green", False


# ============================================================================
# Composition
# ============================================================================

def compose(
    events: List[Dict[str, Any]],
    now: datetime,
    rotation: DisplayRotation,
    forum_name: str,
    lookahead: timedelta = DEFAULT_LOOKAHEAD,
) -> Dict[str, Any]:
    """
    Build the public screen.

    Updates the rotation with the current candidates (so it never points
    past the end of a list) and returns one entry per location.
    """
    groups = group_visible_by_location(events, now, lookahead)
    rotation.update({location: [e["guid"] for e in group] for location, group in groups.items()})

    locations = []
    for location, group in groups.items():
        index = rotation.index(location)
        event = group[index]
        # Only a running event has a timer; upcoming ones stay green
        if event.get("status") == EventStatus.IN_PROGRESS.value:
            color, blink = timer_color(seconds_remaining(event, now))
        else:
            color, blink = timer_color(None)
        locations.append({
            "location": location,
            "event": {
                "guid": event["guid"],
                "title": event.get("title"),
                "description": event.get("description"),
                "presenter": event.get("presenter"),
                "status": event.get("status"),
                "start_time": event.get("start_time"),
                "end_time": event.get("end_time"),
                "cue_order": event.get("cue_order"),
                "color": event.get("color"),
            },
            "countdown": format_countdown(
                event.get("status"), event.get("start_time"), event.get("end_time"), now
            ),
            "timer_color": color,
            "blink": blink,
            "index": index,
            "count": len(group),
        })

    return {
        "forum_name": forum_name,
        "server_time": now,
        "locations": locations,
    }


# ============================================================================
# Runtime hub
# ============================================================================

@dataclass
class DisplayState:
    events: List[Dict[str, Any]]
    forum_name: str


class DisplayStateLoader:
    """
    Reads the events and the forum name for the display.

    Raises (when called):
        StoreError: If either read fails
    """

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory
        self.events = TableStore(Event, session_factory)

    def __call__(self) -> DisplayState:
        events = self.events.select_all(order_by="cue_order")
        db = self.session_factory()
        try:
            forum_name = SettingService(db).get_forum_name()
        except SQLAlchemyError as e:
            raise StoreError("select", "settings", e) from e
        finally:
            db.close()
        return DisplayState(events=events, forum_name=forum_name)


class DisplayHub:
    """
    Keeps the display snapshot current and pushes it to subscribers.

    Three loops share one event loop:
    - poll: re-fetches events and the forum name every poll period
    - rotate: advances the rotation every rotation period
    - push: composes and broadcasts the screen every second

    Change-feed notifications call notify(), which goes through the same
    RefreshCoordinator as polling.

    Args:
        fetch_state: Callable returning a DisplayState (e.g. DisplayStateLoader)
        broadcast: Coroutine function receiving each composed snapshot
    """

    def __init__(
        self,
        fetch_state,
        broadcast,
        lookahead: timedelta = DEFAULT_LOOKAHEAD,
        rotation_seconds: float = 10,
        poll_seconds: float = 5,
        push_seconds: float = 1,
        default_forum_name: str = "EventFlow.io",
    ):
        self._broadcast = broadcast
        self.lookahead = lookahead
        self.rotation_seconds = rotation_seconds
        self.poll_seconds = poll_seconds
        self.push_seconds = push_seconds
        self.rotation = DisplayRotation()
        self.state = DisplayState(events=[], forum_name=default_forum_name)
        self.coordinator = RefreshCoordinator(fetch_state, self._set_state, name="display")
        self._shutdown_event = asyncio.Event()
        self._tasks: List[asyncio.Task] = []

    def _set_state(self, state: DisplayState) -> None:
        self.state = state

    def snapshot(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Compose the screen from the last fetched state."""
        return compose(
            self.state.events,
            now or datetime.utcnow(),
            self.rotation,
            self.state.forum_name,
            self.lookahead,
        )

    def notify(self, *_args: Any) -> None:
        """Request a refresh (change-feed callback, runs on the event loop)."""
        self.coordinator.trigger()

    async def refresh(self) -> None:
        await self.coordinator.request()

    async def _every(self, seconds: float, action) -> None:
        while not self._shutdown_event.is_set():
            try:
                await action()
            except Exception as e:
                logger.error(f"Display loop error: {e}", exc_info=True)
            try:
                await asyncio.wait_for(self._shutdown_event.wait(), timeout=seconds)
            except asyncio.TimeoutError:
                pass

    async def _rotate(self) -> None:
        self.rotation.rotate()

    async def _push(self) -> None:
        await self._broadcast(self.snapshot())

    def start(self) -> None:
        """Start the poll, rotate and push loops on the running loop."""
        loop = asyncio.get_running_loop()
        self._tasks = [
            loop.create_task(self._every(self.poll_seconds, self.refresh)),
            loop.create_task(self._every(self.rotation_seconds, self._rotate)),
            loop.create_task(self._every(self.push_seconds, self._push)),
        ]
        logger.info(
            f"Display hub started (poll: {self.poll_seconds}s, "
            f"rotation: {self.rotation_seconds}s)"
        )

    async def stop(self) -> None:
        self._shutdown_event.set()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
            self._tasks = []
        logger.info("Display hub stopped")
