"""
Cooperative request throttling.

Bounds the number of in-flight requests across a whole client instance.
"""

import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, Deque, Optional, TypeVar

from ..errors import ThrottleQueueFull

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ThrottleSlot:
    """
    Scoped throttle capacity.

    Acquired on ``async with`` entry and released on every exit path,
    including exceptions and cancellation.
    """

    def __init__(self, throttle: "ConcurrencyThrottle"):
        self._throttle = throttle
        self._held = False

    async def __aenter__(self) -> "ThrottleSlot":
        await self._throttle._acquire()
        self._held = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._held:
            self._held = False
            self._throttle._release()


class ConcurrencyThrottle:
    """
    FIFO concurrency limiter with optional spacing between request starts.

    Waiters are served strictly in arrival order; a cancelled waiter leaves
    the queue without disturbing the others.
    """

    def __init__(
        self,
        max_concurrent: int = 5,
        min_delay_between_starts: float = 0.0,
        queue_capacity: Optional[int] = None,
    ):
        """
        Args:
            max_concurrent: Operations allowed in flight at once
            min_delay_between_starts: Minimum seconds between two starts
            queue_capacity: Maximum queued waiters, None for unbounded
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")

        self.max_concurrent = max_concurrent
        self.min_delay_between_starts = min_delay_between_starts
        self.queue_capacity = queue_capacity

        self._available = max_concurrent
        self._waiters: Deque[asyncio.Future] = deque()
        self._start_lock = asyncio.Lock()
        self._last_start: Optional[float] = None

    @property
    def in_flight(self) -> int:
        """Slots currently held."""
        return self.max_concurrent - self._available

    @property
    def waiting(self) -> int:
        """Callers queued for a slot."""
        return sum(1 for fut in self._waiters if not fut.done())

    def acquire(self) -> ThrottleSlot:
        """Slot to be entered with ``async with``."""
        return ThrottleSlot(self)

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` while holding a slot."""
        async with self.acquire():
            return await operation()

    async def _acquire(self) -> None:
        if self._available > 0 and not self._waiters:
            self._available -= 1
        else:
            if self.queue_capacity is not None and self.waiting >= self.queue_capacity:
                raise ThrottleQueueFull(
                    f"Throttle queue is full ({self.queue_capacity} waiting)"
                )

            waiter = asyncio.get_running_loop().create_future()
            self._waiters.append(waiter)
            logger.debug(f"Waiting for throttle slot ({len(self._waiters)} queued)")
            try:
                await waiter
            except asyncio.CancelledError:
                if waiter.done() and not waiter.cancelled():
                    # Slot was handed over just before cancellation
                    self._release()
                else:
                    try:
                        self._waiters.remove(waiter)
                    except ValueError:
                        pass
                raise

        try:
            await self._space_start()
        except BaseException:
            self._release()
            raise

    def _release(self) -> None:
        # Hand the slot straight to the next live waiter
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        self._available += 1

    async def _space_start(self) -> None:
        if self.min_delay_between_starts <= 0:
            return

        loop = asyncio.get_running_loop()
        async with self._start_lock:
            if self._last_start is not None:
                delay = self._last_start + self.min_delay_between_starts - loop.time()
                if delay > 0:
                    await asyncio.sleep(delay)
            self._last_start = loop.time()
