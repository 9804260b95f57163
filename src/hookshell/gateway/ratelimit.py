"""Fixed-window request rate limiting keyed by URL path."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60.0


class RateLimiter:
    """Caps how many requests each path may receive per 60-second window.

    By default every path has its own window. With ``shared_window`` one
    deadline is shared by all paths, and crossing it only resets the
    counter of the path being accessed; counts of other paths stay as
    they were until their own next request.

    The lock only guards the counter update, never the command run.
    """

    def __init__(
        self,
        limit: int,
        shared_window: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if limit < 0:
            raise ValueError("rate limit must be >= 0")
        self._limit = limit
        self._shared_window = shared_window
        self._clock = clock
        self._lock = threading.Lock()
        self._counts: dict[str, int] = {}
        self._deadlines: dict[str, float] = {}
        self._shared_deadline = clock() + WINDOW_SECONDS

    @property
    def limit(self) -> int:
        return self._limit

    def allow(self, path: str) -> bool:
        """Record a request for ``path`` and report whether it may proceed."""
        if self._limit == 0:
            return True

        with self._lock:
            now = self._clock()
            count = self._counts.get(path, 0) + 1
            if self._shared_window:
                if now > self._shared_deadline:
                    count = 1
                    self._shared_deadline = now + WINDOW_SECONDS
            else:
                deadline = self._deadlines.get(path)
                if deadline is None or now > deadline:
                    count = 1
                    self._deadlines[path] = now + WINDOW_SECONDS
            self._counts[path] = count

        if count > self._limit:
            logger.info("Rate limit hit for %s (%d > %d)", path, count, self._limit)
            return False
        return True

    def count(self, path: str) -> int:
        with self._lock:
            return self._counts.get(path, 0)
