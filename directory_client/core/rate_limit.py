"""Fixed-window request rate limiter.

Known approximation: the window is fixed, not sliding. A burst of up to
2x the limit can straddle a window boundary. Each individual 60s window
(measured from the first dispatch after a reset) never exceeds the limit.
"""
from __future__ import annotations
import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

WINDOW_SECONDS = 60.0


@dataclass
class RateLimitWindow:
    limit_per_window: int
    window_start: Optional[float] = None
    dispatch_count: int = 0

    def reset(self, now: float) -> None:
        self.window_start = now
        self.dispatch_count = 0


class RateLimiter:
    """Block callers once ``limit_per_minute`` dispatches happened in the window.

    Excess requests are delayed, never dropped. The counter update runs
    under a lock so one limiter can be shared by several threads.
    """

    def __init__(
        self,
        limit_per_minute: int,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        logger: Optional[logging.Logger] = None,
    ):
        if limit_per_minute < 1:
            raise ValueError(f"limit_per_minute must be >= 1, got {limit_per_minute}")
        self.window = RateLimitWindow(limit_per_window=limit_per_minute)
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self.logger = logger or logging.getLogger(__name__)

    @property
    def limit_per_minute(self) -> int:
        return self.window.limit_per_window

    def acquire(self, cancel=None) -> None:
        """Wait for a dispatch slot and claim it.

        Args:
            cancel: Optional CancellationToken observed during the wait

        Raises:
            RequestCancelledError: If ``cancel`` fires while waiting
        """
        while True:
            with self._lock:
                now = self._clock()
                window = self.window
                if window.window_start is None or now - window.window_start >= WINDOW_SECONDS:
                    window.reset(now)
                if window.dispatch_count < window.limit_per_window:
                    window.dispatch_count += 1
                    return
                wait_seconds = math.ceil(WINDOW_SECONDS - (now - window.window_start))

            self.logger.info(
                "Rate limit of %d/min reached; sleeping %ds until window resets",
                window.limit_per_window,
                wait_seconds,
            )
            if cancel is not None:
                cancel.sleep(wait_seconds)
            else:
                self._sleep(wait_seconds)
