"""
Single reconciliation channel for periodic and push-driven refreshes.

Timer ticks and change notifications both end up in RefreshCoordinator.request().
Only one fetch runs at a time; any number of requests arriving while a fetch is
outstanding collapse into one follow-up fetch, so a burst of changes never
queues a burst of reads and a slow fetch never overwrites a newer one.
"""

import asyncio
import inspect
from typing import Any, Callable, Optional, Set

from backend.src.utils.logging_config import get_logger


logger = get_logger("services")


class RefreshCoordinator:
    """
    Coalescing refresh runner.

    Args:
        fetch: Callable (sync or async) returning fresh state
        on_result: Called with each successful fetch result
        name: Label used in log messages

    Usage:
        coordinator = RefreshCoordinator(load_events, hub.set_events, name="display")
        await coordinator.request()       # from a timer loop
        coordinator.trigger()             # from a change-feed callback on the loop
    """

    def __init__(
        self,
        fetch: Callable[[], Any],
        on_result: Callable[[Any], None],
        name: str = "refresh",
    ):
        self._fetch = fetch
        self._on_result = on_result
        self.name = name
        self._in_flight = False
        self._pending = False
        self._tasks: Set[asyncio.Task] = set()
        self.fetch_count = 0
        self.failure_count = 0
        self.last_error: Optional[str] = None

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def _run_fetch(self) -> Any:
        result = self._fetch()
        if inspect.isawaitable(result):
            result = await result
        return result

    async def request(self) -> None:
        """
        Fetch now, or mark a follow-up if a fetch is already running.

        Fetch errors are logged and the previous state is kept.
        """
        if self._in_flight:
            self._pending = True
            return

        self._in_flight = True
        try:
            while True:
                self._pending = False
                self.fetch_count += 1
                try:
                    result = await self._run_fetch()
                except Exception as e:
                    self.failure_count += 1
                    self.last_error = str(e)
                    logger.warning(f"{self.name} refresh failed, keeping previous state: {e}")
                else:
                    self.last_error = None
                    self._on_result(result)
                if not self._pending:
                    break
        finally:
            self._in_flight = False

    def trigger(self, *_args: Any) -> None:
        """
        Schedule a refresh from synchronous code running on the event loop.

        Accepts and ignores positional arguments so it can be used directly
        as a change-feed callback.
        """
        if self._in_flight:
            self._pending = True
            return
        task = asyncio.get_running_loop().create_task(self.request())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
