"""Unit tests for the execution context."""

import threading

import pytest

from src.errors import TransportError
from src.transport.context import ExecutionContext


class TestExecutionContext:
    """Tests for ExecutionContext."""

    def test_no_deadline(self) -> None:
        """Test a context without timeout."""
        context = ExecutionContext()

        assert context.remaining() is None
        assert context.expired is False
        context.check("http://x.test")

    def test_remaining_is_bounded(self) -> None:
        """Test that remaining time never exceeds the timeout."""
        context = ExecutionContext.with_timeout(5)

        remaining = context.remaining()
        assert remaining is not None
        assert 0 < remaining <= 5

    def test_expired(self) -> None:
        """Test that a zero timeout is immediately expired."""
        context = ExecutionContext.with_timeout(0)

        assert context.expired is True
        assert context.remaining() == 0.0
        with pytest.raises(TransportError, match="deadline exceeded"):
            context.check("http://x.test")

    def test_cancel_from_another_thread(self) -> None:
        """Test that cancellation is visible across threads."""
        context = ExecutionContext.with_timeout(30)
        thread = threading.Thread(target=context.cancel)
        thread.start()
        thread.join()

        assert context.cancelled is True
        with pytest.raises(TransportError, match="cancelled") as exc_info:
            context.check("http://x.test")

        assert exc_info.value.url == "http://x.test"
