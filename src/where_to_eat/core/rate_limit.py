"""Soft rate limiting for review sources that throttle aggressive callers."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RateLimiter:
    """Spaces consecutive calls to one source by at least ``min_interval_seconds``.

    The limiter only delays the thread that owns the next call; callers of other
    sources never touch it. One instance is shared by every request in the
    process, so the spacing holds across requests as well as within one.
    """

    def __init__(
        self,
        min_interval_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if min_interval_seconds < 0:
            raise ValueError("min_interval_seconds must be non-negative")
        self.min_interval_seconds = min_interval_seconds
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_call: Optional[float] = None

    def wait(self) -> float:
        """Block until the next call may proceed and return the time slept."""
        with self._lock:
            now = self._clock()
            delay = 0.0
            if self._last_call is not None:
                delay = max(0.0, self._last_call + self.min_interval_seconds - now)
            # Reserve the slot before releasing the lock so concurrent callers queue behind it.
            self._last_call = now + delay

        if delay > 0:
            logger.debug("Rate limiter delaying call by %.2fs", delay)
            self._sleep(delay)
        return delay

    def reset(self) -> None:
        with self._lock:
            self._last_call = None
