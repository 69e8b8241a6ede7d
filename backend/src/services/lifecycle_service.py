"""
Event lifecycle engine.

Keeps event status and end_time consistent with wall-clock time:

1. Auto-start: scheduled and now >= start_time -> in_progress,
   end_time = now + duration
2. Auto-complete: in_progress and now >= end_time -> completed, then cascade:
   the scheduled event in the same location with the smallest cue_order
   greater than the completed one's is started the same way
3. Manual start / complete / cancel, with the same end_time recomputation
   and the same cascade on complete

Each location is an independent lane; events without a location form a lane
of their own. Cancelled events are terminal and never cascade candidates.

Every transition is applied to the tick's snapshot through optimistic_apply
and committed on its own, so a failed write leaves the snapshot as it was and
the transition is simply re-attempted on the next tick.
"""

import asyncio
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from backend.src.models.event import EventStatus, DEFAULT_DURATION_MINUTES
from backend.src.services.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    StoreError,
)
from backend.src.utils.logging_config import get_logger
from backend.src.utils.optimistic import optimistic_apply_fields


logger = get_logger("lifecycle")

SCHEDULED = EventStatus.SCHEDULED.value
IN_PROGRESS = EventStatus.IN_PROGRESS.value
COMPLETED = EventStatus.COMPLETED.value
CANCELLED = EventStatus.CANCELLED.value

# Allowed manual transitions: target -> statuses it may be reached from
MANUAL_TRANSITIONS = {
    IN_PROGRESS: (SCHEDULED,),
    COMPLETED: (IN_PROGRESS,),
    CANCELLED: (SCHEDULED, IN_PROGRESS),
}

MAX_TICK_FAILURES = 5  # consecutive failed ticks before escalating log level


def lane_of(event: Dict[str, Any]) -> Optional[str]:
    """Lane key for an event; empty and missing locations share one lane."""
    return event.get("location") or None


def end_time_from(now: datetime, event: Dict[str, Any]) -> datetime:
    duration = event.get("duration")
    if duration is None:
        duration = DEFAULT_DURATION_MINUTES
    return now + timedelta(minutes=duration)


def find_cascade_target(
    events: List[Dict[str, Any]],
    lane: Optional[str],
    after_cue_order: int,
) -> Optional[Dict[str, Any]]:
    """
    Next scheduled event in a lane after the given cue order.

    Returns:
        The scheduled event with the smallest cue_order greater than
        after_cue_order in the lane, or None
    """
    candidates = [
        e for e in events
        if e["status"] == SCHEDULED
        and lane_of(e) == lane
        and e["cue_order"] > after_cue_order
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda e: e["cue_order"])


@dataclass
class TickResult:
    """Outcome of one lifecycle evaluation."""
    started: List[str] = field(default_factory=list)
    completed: List[str] = field(default_factory=list)
    cascaded: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    writes: int = 0

    @property
    def changed(self) -> bool:
        return self.writes > 0

    def summary(self) -> str:
        return (
            f"started={len(self.started)} completed={len(self.completed)} "
            f"cascaded={len(self.cascaded)} failed={len(self.failed)}"
        )


@dataclass
class TransitionResult:
    """Outcome of a manual transition."""
    event: Dict[str, Any]
    cascaded: Optional[Dict[str, Any]] = None


class LifecycleEngine:
    """
    Applies lifecycle rules to the event list.

    The engine only needs a store with select_all(order_by) and
    update(values, guid=...), so tests can hand it an in-memory fake.

    Usage:
        >>> engine = LifecycleEngine(TableStore(Event))
        >>> result = engine.tick()
        >>> engine.complete("evt_01hgw2bbg0000000000000001")
    """

    def __init__(self, store):
        self.store = store
        # lane -> cue_order of the completed event whose cascade start failed
        self._pending_cascades: Dict[Optional[str], int] = {}
        self._lock = threading.RLock()

    @property
    def pending_cascades(self) -> Dict[Optional[str], int]:
        return dict(self._pending_cascades)

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def tick(self, now: Optional[datetime] = None) -> TickResult:
        """
        Load the current events and evaluate one tick.

        Raises:
            StoreError: If the events cannot be loaded
        """
        now = now or datetime.utcnow()
        events = self.store.select_all(order_by="cue_order")
        return self.evaluate(events, now)

    def evaluate(self, events: List[Dict[str, Any]], now: datetime) -> TickResult:
        """
        Evaluate the lifecycle rules over an event snapshot.

        The snapshot is updated in place for every committed transition.
        Events that need no transition cause no store write.
        """
        with self._lock:
            result = TickResult()
            touched = set()

            self._retry_pending_cascades(events, now, result, touched)

            for event in sorted(events, key=lambda e: e["cue_order"]):
                if event["guid"] in touched:
                    continue

                status = event["status"]
                if status == SCHEDULED and self._is_due(event.get("start_time"), now):
                    if self._start(event, now, result):
                        result.started.append(event["guid"])
                        touched.add(event["guid"])
                        logger.info(f"Auto-started event {event['guid']} ({event.get('title')})")

                elif status == IN_PROGRESS and self._is_due(event.get("end_time"), now):
                    if self._apply(event, {"status": COMPLETED}, result):
                        result.completed.append(event["guid"])
                        touched.add(event["guid"])
                        logger.info(f"Auto-completed event {event['guid']} ({event.get('title')})")
                        self._cascade(events, lane_of(event), event["cue_order"], now, result, touched)

            return result

    @staticmethod
    def _is_due(moment: Optional[datetime], now: datetime) -> bool:
        return moment is not None and now >= moment

    def _apply(self, event: Dict[str, Any], values: Dict[str, Any], result: TickResult) -> bool:
        try:
            self._commit(event, values)
        except StoreError as e:
            result.failed.append(event["guid"])
            logger.warning(
                f"Transition of event {event['guid']} to {values.get('status')} failed, "
                f"will retry next tick: {e}"
            )
            return False
        result.writes += 1
        return True

    def _commit(self, event: Dict[str, Any], values: Dict[str, Any]) -> None:
        optimistic_apply_fields(
            event,
            values,
            lambda: self.store.update(values, guid=event["guid"]),
        )

    def _start(self, event: Dict[str, Any], now: datetime, result: TickResult) -> bool:
        return self._apply(
            event,
            {"status": IN_PROGRESS, "end_time": end_time_from(now, event)},
            result,
        )

    def _cascade(
        self,
        events: List[Dict[str, Any]],
        lane: Optional[str],
        after_cue_order: int,
        now: datetime,
        result: TickResult,
        touched: set,
    ) -> Optional[Dict[str, Any]]:
        target = find_cascade_target(events, lane, after_cue_order)
        if target is None:
            self._pending_cascades.pop(lane, None)
            return None

        if self._start(target, now, result):
            self._pending_cascades.pop(lane, None)
            result.cascaded.append(target["guid"])
            touched.add(target["guid"])
            logger.info(
                f"Cascade started event {target['guid']} ({target.get('title')}) "
                f"in lane {lane!r}"
            )
            return target

        self._pending_cascades[lane] = after_cue_order
        return None

    def _retry_pending_cascades(
        self,
        events: List[Dict[str, Any]],
        now: datetime,
        result: TickResult,
        touched: set,
    ) -> None:
        for lane, after_cue_order in list(self._pending_cascades.items()):
            if any(e["status"] == IN_PROGRESS and lane_of(e) == lane for e in events):
                self._pending_cascades.pop(lane, None)
                continue
            logger.debug(f"Retrying cascade in lane {lane!r} after cue {after_cue_order}")
            self._cascade(events, lane, after_cue_order, now, result, touched)

    # ------------------------------------------------------------------
    # Manual transitions
    # ------------------------------------------------------------------

    def _load_for_transition(self, guid: str, target: str):
        events = self.store.select_all(order_by="cue_order")
        event = next((e for e in events if e["guid"] == guid), None)
        if event is None:
            raise NotFoundError("Event", guid)
        if event["status"] not in MANUAL_TRANSITIONS[target]:
            raise InvalidTransitionError(guid, event["status"], target)
        return events, event

    def start(self, guid: str, now: Optional[datetime] = None) -> TransitionResult:
        """
        Manually start a scheduled event.

        Raises:
            NotFoundError: If the event doesn't exist
            InvalidTransitionError: If the event is not scheduled
            StoreError: If the write fails
        """
        now = now or datetime.utcnow()
        with self._lock:
            _, event = self._load_for_transition(guid, IN_PROGRESS)
            self._commit(event, {"status": IN_PROGRESS, "end_time": end_time_from(now, event)})
            logger.info(f"Manually started event {guid}")
            return TransitionResult(event=event)

    def complete(self, guid: str, now: Optional[datetime] = None) -> TransitionResult:
        """
        Manually complete an in-progress event and cascade to the next one.

        A failed cascade start is logged and retried on later ticks; it does
        not undo the completion.

        Raises:
            NotFoundError: If the event doesn't exist
            InvalidTransitionError: If the event is not in progress
            StoreError: If the completion write fails
        """
        now = now or datetime.utcnow()
        with self._lock:
            events, event = self._load_for_transition(guid, COMPLETED)
            self._commit(event, {"status": COMPLETED})
            logger.info(f"Manually completed event {guid}")
            cascaded = self._cascade(
                events, lane_of(event), event["cue_order"], now, TickResult(), {guid}
            )
            return TransitionResult(event=event, cascaded=cascaded)

    def cancel(self, guid: str) -> TransitionResult:
        """
        Cancel a scheduled or in-progress event. Cancelled is terminal.

        Raises:
            NotFoundError: If the event doesn't exist
            InvalidTransitionError: If the event already completed or was cancelled
            StoreError: If the write fails
        """
        with self._lock:
            _, event = self._load_for_transition(guid, CANCELLED)
            self._commit(event, {"status": CANCELLED})
            logger.info(f"Cancelled event {guid}")
            return TransitionResult(event=event)


class LifecycleRunner:
    """
    Background task that ticks the engine until shutdown.

    Store failures never stop the loop: they are logged and the next tick
    tries again.
    """

    def __init__(self, engine: LifecycleEngine, tick_seconds: float = 1.0):
        self._engine = engine
        self._tick_seconds = tick_seconds
        self._shutdown_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self._consecutive_failures = 0
        self.tick_count = 0

    async def run(self) -> None:
        """Tick until shutdown is requested."""
        logger.info(f"Starting lifecycle runner (tick: {self._tick_seconds}s)")
        try:
            while not self._shutdown_event.is_set():
                try:
                    result = self._engine.tick()
                    self.tick_count += 1
                    self._consecutive_failures = 0
                    if result.changed or result.failed:
                        logger.debug(f"Lifecycle tick: {result.summary()}")
                except StoreError as e:
                    self._consecutive_failures += 1
                    log = logger.error if self._consecutive_failures >= MAX_TICK_FAILURES else logger.warning
                    log(
                        f"Lifecycle tick could not load events: {e} "
                        f"(consecutive failures: {self._consecutive_failures})"
                    )
                except Exception as e:
                    self._consecutive_failures += 1
                    logger.error(f"Unexpected error in lifecycle tick: {e}", exc_info=True)

                await self._wait_for_next_tick()
        except asyncio.CancelledError:
            logger.info("Lifecycle runner cancelled")
            return

        logger.info("Lifecycle runner stopped")

    async def _wait_for_next_tick(self) -> None:
        """Wait for the next tick or shutdown signal."""
        try:
            await asyncio.wait_for(
                self._shutdown_event.wait(),
                timeout=self._tick_seconds,
            )
        except asyncio.TimeoutError:
            pass

    def start(self) -> asyncio.Task:
        """Start the runner as a task on the running loop."""
        self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    async def stop(self) -> None:
        """Request shutdown and wait for the current tick to finish."""
        self._shutdown_event.set()
        if self._task is not None:
            await self._task
            self._task = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._shutdown_event.is_set()
