"""
Cooperative cancellation and deadlines.

A CancellationToken is threaded through every blocking point of the pipeline
(download chunk loops, subprocess waits, stage boundaries). Nothing is
interrupted preemptively: long-running loops call ``raise_if_cancelled()``.
"""

import threading
import time
from typing import Optional

from nexekit.core.exceptions import OperationCancelled


class CancellationToken:
    """Thread-safe cancellation flag."""

    def __init__(self):
        self._event = threading.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled") -> None:
        """Request cancellation."""
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """
        Raise OperationCancelled if cancellation was requested.

        Raises:
            OperationCancelled: If cancel() has been called
        """
        if self._event.is_set():
            raise OperationCancelled(f"Operation cancelled: {self.reason}")

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; returns True early if cancelled."""
        return self._event.wait(seconds)


class Deadline:
    """
    Monotonic deadline for a single stage.

    A ``None`` timeout means the stage may run indefinitely.
    """

    def __init__(self, timeout: Optional[float]):
        self.timeout = timeout
        self._expires_at = (
            time.monotonic() + timeout if timeout is not None else None
        )

    def remaining(self) -> Optional[float]:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and time.monotonic() >= self._expires_at


__all__ = ["CancellationToken", "Deadline"]
