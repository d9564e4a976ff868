"""Time sources used by speech sessions and the simulated backend."""

import asyncio
import logging
from typing import Any, Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Injectable clock: a monotonic time and one-shot delayed callbacks."""

    def time(self) -> float: ...

    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle: ...


class LoopScheduler:
    """Scheduler backed by an asyncio event loop.

    The loop is resolved lazily so the scheduler can be built outside
    of a running loop and used later from inside one.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def time(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], Any]) -> asyncio.TimerHandle:
        return self.loop.call_later(max(delay, 0.0), callback)
