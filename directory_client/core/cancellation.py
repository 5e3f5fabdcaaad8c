"""Caller-initiated cancellation and deadlines."""
from __future__ import annotations
import threading
import time
from typing import Callable, List, Optional

from ..exceptions import RequestCancelledError


class CancellationToken:
    """Cancellation flag with an optional deadline.

    Sleeps performed through the token wake up as soon as ``cancel()`` is
    called or the deadline passes, and raise RequestCancelledError.
    Callbacks registered with ``on_cancel`` run when ``cancel()`` is called,
    which lets an in-flight HTTP call be torn down from another thread.
    """

    def __init__(self, timeout: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []
        self._deadline = clock() + timeout if timeout is not None else None
        self.reason = ""

    def cancel(self, reason: str = "cancelled by caller") -> None:
        with self._lock:
            if self._event.is_set():
                return
            self.reason = reason
            self._event.set()
            callbacks = list(self._callbacks)
        for callback in callbacks:
            callback()

    def on_cancel(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Run ``callback`` on ``cancel()`` (immediately if already cancelled).

        Returns:
            A function that unregisters the callback
        """
        with self._lock:
            fire_now = self._event.is_set()
            if not fire_now:
                self._callbacks.append(callback)
        if fire_now:
            callback()

        def unregister() -> None:
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

        return unregister

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and self._clock() >= self._deadline:
            self.reason = self.reason or "deadline exceeded"
            return True
        return False

    def remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise RequestCancelledError(self.reason or "cancelled")

    def sleep(self, seconds: float) -> None:
        """Block for ``seconds`` unless cancelled first."""
        self.raise_if_cancelled()
        remaining = self.remaining()
        if remaining is not None and remaining < seconds:
            self._event.wait(remaining)
            self.reason = self.reason or "deadline exceeded"
            raise RequestCancelledError(self.reason)
        if self._event.wait(seconds):
            raise RequestCancelledError(self.reason)
