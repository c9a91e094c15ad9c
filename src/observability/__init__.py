"""Observability module for logging and metrics."""

from src.observability.logging import (
    bind_invocation_context,
    clear_invocation_context,
    configure_logging,
    get_logger,
)
from src.observability.metrics import RelayMetrics


__all__ = [
    "RelayMetrics",
    "bind_invocation_context",
    "clear_invocation_context",
    "configure_logging",
    "get_logger",
]
