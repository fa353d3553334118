"""Fixed-window request throttle shared by every inbound webhook."""

from __future__ import annotations

import math
import time
from collections.abc import Callable


class RateLimiter:
    """Allow at most ``max_requests`` hits per ``window_seconds``.

    The window starts at the first hit after the previous window expired. A
    ``max_requests`` of zero or less disables limiting.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._window_start: float | None = None
        self._count = 0

    @property
    def enabled(self) -> bool:
        return self.max_requests > 0

    def hit(self) -> bool:
        """Record a request; return False when it exceeds the current window's budget."""
        if not self.enabled:
            return True

        now = self._clock()
        if self._window_start is None or now - self._window_start >= self.window_seconds:
            self._window_start = now
            self._count = 0

        if self._count >= self.max_requests:
            return False
        self._count += 1
        return True

    def retry_after(self) -> int:
        """Whole seconds until the current window expires."""
        if self._window_start is None:
            return 0
        remaining = self.window_seconds - (self._clock() - self._window_start)
        return max(0, math.ceil(remaining))
