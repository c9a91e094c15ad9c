"""In-process metrics for definition execution."""

from dataclasses import dataclass, field
from threading import Lock


# Module-level singleton state
_metrics_instance: "RelayMetrics | None" = None
_metrics_lock: Lock = Lock()


@dataclass
class RelayMetrics:
    """Thread-safe counters for executions, endpoint attempts and transport.

    Concurrent invocations share one instance; every update takes the
    instance lock. Use get_instance() for singleton access.
    """

    # Instance-level lock for thread-safe updates
    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    executions_total: int = 0
    executions_success_total: int = 0
    executions_unsuccessful_total: int = 0
    executions_failed_total: dict[str, int] = field(default_factory=dict)
    endpoint_attempts_total: int = 0
    failover_advances_total: dict[str, int] = field(default_factory=dict)
    transport_requests_total: int = 0
    transport_retries_total: int = 0
    renders_total: int = 0
    execution_duration_ms_total: float = 0.0

    @classmethod
    def get_instance(cls) -> "RelayMetrics":
        """Get the singleton instance (thread-safe)."""
        global _metrics_instance  # noqa: PLW0603
        if _metrics_instance is None:
            with _metrics_lock:
                if _metrics_instance is None:
                    _metrics_instance = cls()
        return _metrics_instance

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton instance (primarily for testing)."""
        global _metrics_instance  # noqa: PLW0603
        with _metrics_lock:
            _metrics_instance = None

    def record_execution(self, duration_ms: float) -> None:
        """Record a finished execution, whatever its outcome."""
        with self._lock:
            self.executions_total += 1
            self.execution_duration_ms_total += duration_ms

    def record_success(self) -> None:
        """Record an execution classified as success."""
        with self._lock:
            self.executions_success_total += 1

    def record_unsuccessful(self) -> None:
        """Record an execution whose terminal response failed classification."""
        with self._lock:
            self.executions_unsuccessful_total += 1

    def record_failure(self, error_class: str) -> None:
        """Record an execution that produced no response.

        Args:
            error_class: Name of the error raised.
        """
        with self._lock:
            self.executions_failed_total[error_class] = (
                self.executions_failed_total.get(error_class, 0) + 1
            )

    def record_endpoint_attempt(self) -> None:
        """Record one failover endpoint attempt."""
        with self._lock:
            self.endpoint_attempts_total += 1

    def record_failover_advance(self, reason: str) -> None:
        """Record the failover moving past an endpoint.

        Args:
            reason: "transport_error" or "retry_status".
        """
        with self._lock:
            self.failover_advances_total[reason] = (
                self.failover_advances_total.get(reason, 0) + 1
            )

    def record_transport_request(self) -> None:
        """Record one HTTP request sent by the transport."""
        with self._lock:
            self.transport_requests_total += 1

    def record_transport_retry(self) -> None:
        """Record a transport-level retry."""
        with self._lock:
            self.transport_retries_total += 1

    def record_render(self) -> None:
        """Record a successful template render."""
        with self._lock:
            self.renders_total += 1

    def to_dict(self) -> dict[str, int | float | dict[str, int]]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        with self._lock:
            return {
                "executions_total": self.executions_total,
                "executions_success_total": self.executions_success_total,
                "executions_unsuccessful_total": self.executions_unsuccessful_total,
                "executions_failed_total": dict(self.executions_failed_total),
                "endpoint_attempts_total": self.endpoint_attempts_total,
                "failover_advances_total": dict(self.failover_advances_total),
                "transport_requests_total": self.transport_requests_total,
                "transport_retries_total": self.transport_retries_total,
                "renders_total": self.renders_total,
                "execution_duration_ms_total": self.execution_duration_ms_total,
            }
