import asyncio
import logging
import time
from collections import deque
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

RATE_WINDOW_SECONDS = 60.0
MAX_THROTTLE_DELAY = 1.0
THROTTLE_STEP = 0.1


class SlidingWindowRateLimiter:
    """Caps concurrent calls and slows down when a window gets busy.

    Used as an async context manager around each remote call. Calls started in
    the last minute are remembered; once there are `capacity` of them, each new
    call first waits min(1.0, 0.1 * count) seconds.
    """

    def __init__(
        self,
        capacity: int,
        window: float = RATE_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.capacity = max(1, capacity)
        self.window = window
        self._clock = clock
        self._sleep = sleep
        self._semaphore = asyncio.Semaphore(self.capacity)
        self._calls: deque[float] = deque()

    @property
    def recent_calls(self) -> int:
        self._prune(self._clock())
        return len(self._calls)

    def _prune(self, now: float) -> None:
        while self._calls and now - self._calls[0] > self.window:
            self._calls.popleft()

    async def _throttle(self) -> None:
        self._prune(self._clock())
        count = len(self._calls)
        if count >= self.capacity:
            delay = min(MAX_THROTTLE_DELAY, THROTTLE_STEP * count)
            logger.debug(f"Rate limit protection: {count} recent calls, waiting {delay:.1f}s")
            await self._sleep(delay)
        self._calls.append(self._clock())

    async def __aenter__(self) -> "SlidingWindowRateLimiter":
        await self._semaphore.acquire()
        try:
            await self._throttle()
        except BaseException:
            self._semaphore.release()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self._semaphore.release()
