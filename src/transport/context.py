"""Deadline and cancellation scope for one invocation."""

import threading
import time

from src.errors import TransportError


class ExecutionContext:
    """Bounds every attempt of a single invocation.

    A context carries an absolute deadline and a cancellation flag. Each
    transport attempt is given the remaining time as its timeout, so an
    expired or cancelled context fails the next attempt immediately instead
    of touching the network. Contexts are safe to cancel from another thread.
    """

    def __init__(self, timeout: float | None = None) -> None:
        """Initialize the context.

        Args:
            timeout: Seconds until the deadline. None means no deadline.
        """
        self._deadline = None if timeout is None else time.monotonic() + timeout
        self._cancelled = threading.Event()

    @classmethod
    def with_timeout(cls, timeout: float) -> "ExecutionContext":
        """Create a context that expires after ``timeout`` seconds."""
        return cls(timeout=timeout)

    @property
    def cancelled(self) -> bool:
        """Check if cancel() has been called."""
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        """Check if the deadline has passed."""
        return self._deadline is not None and time.monotonic() >= self._deadline

    def cancel(self) -> None:
        """Cancel the context; later attempts fail without a request."""
        self._cancelled.set()

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None without a deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def check(self, url: str) -> None:
        """Raise if no further attempt may be made.

        Args:
            url: URL of the attempt about to be made, for the error.

        Raises:
            TransportError: If the context is cancelled or expired.
        """
        if self.cancelled:
            raise TransportError(url, "context cancelled")
        if self.expired:
            raise TransportError(url, "context deadline exceeded")
