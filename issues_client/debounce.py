from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Runs `action` once the caller has stopped calling trigger() for `delay` seconds.

    trigger() cancels the pending timer and schedules a new one; nothing is sent
    for a cancelled timer. A fired action runs as its own task, so re-arming
    never waits for a previous action's network call to finish.
    """

    def __init__(self, delay: float, action: Callable[[], Awaitable[None]]):
        self.delay = delay
        self._action = action
        self._timer: asyncio.TimerHandle | None = None
        self._in_flight: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> bool:
        return self._timer is not None

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def trigger(self) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        self._timer = None
        task = asyncio.ensure_future(self._action())
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def flush(self) -> None:
        """Run a pending action now instead of waiting for the timer, then wait for all sends."""
        if self._timer is not None:
            self.cancel()
            self._fire()
        await self.wait_idle()

    async def wait_idle(self) -> None:
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)
