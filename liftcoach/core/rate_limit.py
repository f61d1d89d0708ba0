"""Request spacing for sequential model calls."""

import asyncio
import time
from collections.abc import Awaitable, Callable

from loguru import logger


class RequestSpacer:
    """Enforces a minimum interval between the starts of consecutive requests.

    Usage:
        spacer = RequestSpacer(0.5)
        async with spacer:
            await call_model()

    The first request goes through immediately. Concurrent users of the
    same spacer are serialized by a lock, so spacing holds across tasks.
    """

    def __init__(
        self,
        min_interval_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if min_interval_seconds < 0:
            raise ValueError("min_interval_seconds must be >= 0")
        self.min_interval_seconds = min_interval_seconds
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_start: float | None = None

    async def wait(self) -> None:
        """Block until the next request may start, then mark it started."""
        async with self._lock:
            if self._last_start is not None:
                remaining = self.min_interval_seconds - (self._clock() - self._last_start)
                if remaining > 0:
                    logger.debug(f"RequestSpacer sleeping {remaining:.3f}s")
                    await self._sleep(remaining)
            self._last_start = self._clock()

    async def __aenter__(self) -> "RequestSpacer":
        await self.wait()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None
