"""Cooperative cancellation for fetch and parse work."""

import threading
import time
from typing import Optional


class Deadline:
    """
    A cancellation token with an optional time limit.

    Work checks ``cancelled`` at safe points instead of being killed. A child
    deadline is cancelled when its parent is, and never outlives it.
    """

    def __init__(self, timeout: Optional[float] = None, parent: Optional["Deadline"] = None):
        self._event = threading.Event()
        self._parent = parent
        self._expires_at = time.monotonic() + timeout if timeout is not None else None
        if parent is not None and parent._expires_at is not None:
            if self._expires_at is None or parent._expires_at < self._expires_at:
                self._expires_at = parent._expires_at

    def child(self, timeout: Optional[float] = None) -> "Deadline":
        return Deadline(timeout, parent=self)

    def cancel(self):
        self._event.set()

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    @property
    def cancelled(self) -> bool:
        if self._event.is_set() or self.expired:
            return True
        return self._parent is not None and self._parent.cancelled

    def remaining(self) -> Optional[float]:
        """Seconds left, or None when unbounded."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def sleep(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; returns True if cancelled meanwhile."""
        end = time.monotonic() + max(0.0, seconds)
        while not self.cancelled:
            left = end - time.monotonic()
            remaining = self.remaining()
            if remaining is not None:
                left = min(left, remaining)
            if left <= 0:
                break
            # Poll so a parent's cancellation is noticed too.
            self._event.wait(min(left, 0.1))
        return self.cancelled
