"""Unit tests for the httpx-backed transport."""

import httpx
import pytest

from src.errors import TransportError
from src.observability.metrics import RelayMetrics
from src.transport.client import HttpTransport
from src.transport.context import ExecutionContext
from src.transport.models import RetryPolicy, TransportRequest


URL = "http://api.test/resource"

FAST_RETRY = RetryPolicy(max_retries=2, wait_min_ms=0, wait_max_ms=0)


def transport_for(
    mock: httpx.MockTransport, policy: RetryPolicy = FAST_RETRY
) -> HttpTransport:
    """Build a transport over a mock handler."""
    return HttpTransport(retry_policy=policy, mount=mock)


class TestHttpTransport:
    """Tests for HttpTransport.send()."""

    def setup_method(self) -> None:
        """Reset metrics before each test."""
        RelayMetrics.reset()

    def test_successful_request(self) -> None:
        """Test that method, body and headers reach the server."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                201, content=b"created", headers={"Content-Type": "text/plain"}
            )

        response = transport_for(httpx.MockTransport(handler)).send(
            TransportRequest(
                method="POST",
                url=URL,
                headers={"X-Key": "v"},
                body=b"payload",
            )
        )

        assert response.status_code == 201
        assert response.body == b"created"
        assert response.content_type == "text/plain"
        assert seen[0].method == "POST"
        assert seen[0].content == b"payload"
        assert seen[0].headers["X-Key"] == "v"

    def test_request_id_and_user_agent(self) -> None:
        """Test that every request is stamped with an id and user agent."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        transport = HttpTransport(
            mount=httpx.MockTransport(handler), user_agent="relay-test/1.0"
        )
        transport.send(TransportRequest(method="GET", url=URL))

        assert seen[0].headers["User-Agent"] == "relay-test/1.0"
        assert len(seen[0].headers["X-Request-ID"]) == 36

    def test_caller_request_id_is_kept(self) -> None:
        """Test that an existing request id is not replaced."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        transport_for(httpx.MockTransport(handler)).send(
            TransportRequest(method="GET", url=URL, headers={"x-request-id": "abc"})
        )

        assert seen[0].headers["X-Request-ID"] == "abc"

    def test_retries_then_succeeds(self) -> None:
        """Test that a 503 is retried until a good response arrives."""
        statuses = iter([503, 503, 200])

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(next(statuses))

        response = transport_for(httpx.MockTransport(handler)).send(
            TransportRequest(method="GET", url=URL)
        )

        assert response.status_code == 200
        metrics = RelayMetrics.get_instance()
        assert metrics.transport_requests_total == 3
        assert metrics.transport_retries_total == 2

    def test_returns_last_response_when_retries_exhausted(self) -> None:
        """Test that persistent 5xx gives back the last response."""
        calls: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            return httpx.Response(502, content=b"bad gateway")

        response = transport_for(httpx.MockTransport(handler)).send(
            TransportRequest(method="GET", url=URL)
        )

        assert response.status_code == 502
        assert len(calls) == 3

    def test_client_errors_not_retried(self) -> None:
        """Test that a 404 is returned immediately."""
        calls: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            return httpx.Response(404)

        response = transport_for(httpx.MockTransport(handler)).send(
            TransportRequest(method="GET", url=URL)
        )

        assert response.status_code == 404
        assert len(calls) == 1

    def test_non_standard_status_is_returned(self) -> None:
        """Test that a status above 599 is a response, not a crash."""
        calls: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            return httpx.Response(999, content=b"odd")

        response = transport_for(httpx.MockTransport(handler)).send(
            TransportRequest(method="GET", url=URL)
        )

        assert response.status_code == 999
        assert response.body == b"odd"
        assert len(calls) == 1

    def test_connection_error_wrapped(self) -> None:
        """Test that httpx errors become TransportError with a cause."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransportError) as exc_info:
            transport_for(httpx.MockTransport(handler)).send(
                TransportRequest(method="GET", url=URL)
            )

        assert exc_info.value.url == URL
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    def test_connection_error_retried(self) -> None:
        """Test that a transient connection failure is retried."""
        outcomes = iter(["fail", "ok"])

        def handler(request: httpx.Request) -> httpx.Response:
            if next(outcomes) == "fail":
                raise httpx.ConnectError("reset", request=request)
            return httpx.Response(200)

        response = transport_for(httpx.MockTransport(handler)).send(
            TransportRequest(method="GET", url=URL)
        )

        assert response.status_code == 200

    def test_timeout_wrapped(self) -> None:
        """Test that timeouts are reported as TransportError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("too slow", request=request)

        transport = transport_for(httpx.MockTransport(handler), RetryPolicy.no_retry())

        with pytest.raises(TransportError, match="timed out"):
            transport.send(TransportRequest(method="GET", url=URL))

    def test_expired_context_sends_nothing(self) -> None:
        """Test that an expired deadline fails before the request."""
        calls: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            return httpx.Response(200)

        with pytest.raises(TransportError, match="deadline"):
            transport_for(httpx.MockTransport(handler)).send(
                TransportRequest(method="GET", url=URL),
                ExecutionContext.with_timeout(0),
            )

        assert calls == []
