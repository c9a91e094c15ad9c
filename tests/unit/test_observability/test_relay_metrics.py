"""Unit tests for relay metrics."""

import threading
from concurrent.futures import ThreadPoolExecutor

from src.observability.metrics import RelayMetrics


class TestRelayMetrics:
    """Tests for RelayMetrics."""

    def setup_method(self) -> None:
        """Reset metrics before each test."""
        RelayMetrics.reset()

    def test_singleton(self) -> None:
        """Test that get_instance returns the same object until reset."""
        first = RelayMetrics.get_instance()

        assert RelayMetrics.get_instance() is first
        RelayMetrics.reset()
        assert RelayMetrics.get_instance() is not first

    def test_counters(self) -> None:
        """Test that record methods update the snapshot."""
        metrics = RelayMetrics.get_instance()
        metrics.record_execution(12.5)
        metrics.record_success()
        metrics.record_execution(7.5)
        metrics.record_failure("TransportError")
        metrics.record_failure("TransportError")
        metrics.record_failover_advance("retry_status")
        metrics.record_endpoint_attempt()

        snapshot = metrics.to_dict()

        assert snapshot["executions_total"] == 2
        assert snapshot["executions_success_total"] == 1
        assert snapshot["executions_failed_total"] == {"TransportError": 2}
        assert snapshot["failover_advances_total"] == {"retry_status": 1}
        assert snapshot["endpoint_attempts_total"] == 1
        assert snapshot["execution_duration_ms_total"] == 20.0

    def test_snapshot_is_a_copy(self) -> None:
        """Test that mutating a snapshot does not touch the counters."""
        metrics = RelayMetrics.get_instance()
        metrics.record_failure("X")

        snapshot = metrics.to_dict()
        snapshot["executions_failed_total"]["X"] = 99  # type: ignore[index]

        assert metrics.executions_failed_total == {"X": 1}


class TestRelayMetricsThreadSafety:
    """Tests for concurrent access to RelayMetrics."""

    def setup_method(self) -> None:
        """Reset metrics before each test."""
        RelayMetrics.reset()

    def test_get_instance_thread_safe(self) -> None:
        """Test that concurrent first calls share a single instance."""
        instances: list[RelayMetrics] = []

        def get_instance() -> None:
            instances.append(RelayMetrics.get_instance())

        threads = [threading.Thread(target=get_instance) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(instances) == 10
        assert all(inst is instances[0] for inst in instances)

    def test_concurrent_records_are_not_lost(self) -> None:
        """Test that counters stay exact under concurrent updates."""
        metrics = RelayMetrics.get_instance()
        num_threads = 8
        calls_per_thread = 1000

        def record() -> None:
            for _ in range(calls_per_thread):
                metrics.record_endpoint_attempt()
                metrics.record_failure("TransportError")
                metrics.record_execution(1.0)

        with ThreadPoolExecutor(max_workers=num_threads) as executor:
            futures = [executor.submit(record) for _ in range(num_threads)]
            for f in futures:
                f.result()

        expected = num_threads * calls_per_thread
        snapshot = metrics.to_dict()
        assert snapshot["endpoint_attempts_total"] == expected
        assert snapshot["executions_failed_total"] == {"TransportError": expected}
        assert snapshot["executions_total"] == expected
        assert snapshot["execution_duration_ms_total"] == float(expected)
