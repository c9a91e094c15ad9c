"""Unit tests for the failover executor."""

import httpx
import pytest

from src.errors import AllEndpointsFailedError, TransportError
from src.fallback.executor import (
    DEFAULT_RETRY_CODES,
    FailoverExecutor,
    build_retry_checker,
    default_retry,
)
from src.fallback.selector import SelectStrategy
from src.observability.metrics import RelayMetrics
from src.transport.client import HttpTransport
from src.transport.context import ExecutionContext
from src.transport.models import RetryPolicy
from tests.helpers.transport import StubTransport, make_response


A = "http://a.test/"
B = "http://b.test/"
C = "http://c.test/"


class TestRetryCheckers:
    """Tests for retry-eligibility predicates."""

    def test_default_codes(self) -> None:
        """Test the standard retry statuses."""
        assert frozenset({429, 500, 502, 503, 504}) == DEFAULT_RETRY_CODES

    @pytest.mark.parametrize("status", [429, 500, 502, 503, 504])
    def test_default_retry_true(self, status: int) -> None:
        """Test statuses that advance the failover."""
        assert default_retry(make_response(status)) is True

    @pytest.mark.parametrize("status", [200, 301, 400, 404, 501])
    def test_default_retry_false(self, status: int) -> None:
        """Test statuses that end the failover."""
        assert default_retry(make_response(status)) is False

    def test_extra_codes_extend_defaults(self) -> None:
        """Test that extra codes never drop the defaults."""
        check = build_retry_checker([404])

        assert check(make_response(404)) is True
        assert check(make_response(503)) is True
        assert check(make_response(400)) is False

    def test_no_extra_codes_uses_default(self) -> None:
        """Test that an empty extension returns the default predicate."""
        assert build_retry_checker([]) is default_retry


class TestFailoverExecutor:
    """Tests for FailoverExecutor.execute()."""

    def setup_method(self) -> None:
        """Reset metrics before each test."""
        RelayMetrics.reset()

    def test_first_endpoint_wins(self) -> None:
        """Test that a good first endpoint is the only one called."""
        transport = StubTransport({A: [200], B: [200]})

        response = FailoverExecutor(transport).execute("GET", [A, B])

        assert response.status_code == 200
        assert transport.urls == [A]

    def test_skips_failed_endpoints(self) -> None:
        """Test that errors and retry statuses advance the chain."""
        transport = StubTransport(
            {A: [TransportError(A, "reset")], B: [429], C: [200]}
        )

        response = FailoverExecutor(transport).execute("GET", [A, B, C])

        assert response.url == C
        assert transport.urls == [A, B, C]
        advances = RelayMetrics.get_instance().failover_advances_total
        assert advances == {"transport_error": 1, "retry_status": 1}

    def test_non_retryable_response_is_terminal(self) -> None:
        """Test that a 400 is returned as-is without trying others."""
        transport = StubTransport({A: [400], B: [200]})

        response = FailoverExecutor(transport).execute("GET", [A, B])

        assert response.status_code == 400
        assert transport.urls == [A]

    def test_exhausted(self) -> None:
        """Test that a fully failed chain lists every endpoint tried."""
        transport = StubTransport({A: [503], B: [503]})

        with pytest.raises(AllEndpointsFailedError) as exc_info:
            FailoverExecutor(transport).execute("GET", [A, B])

        assert exc_info.value.urls == [A, B]
        assert RelayMetrics.get_instance().endpoint_attempts_total == 2

    def test_empty_urls(self) -> None:
        """Test that no endpoints means immediate failure."""
        transport = StubTransport()

        with pytest.raises(AllEndpointsFailedError):
            FailoverExecutor(transport).execute("GET", [])

        assert transport.requests == []

    def test_forwards_body_and_headers(self) -> None:
        """Test that each attempt carries the same request details."""
        transport = StubTransport({A: [503], B: [201]})

        FailoverExecutor(transport).execute(
            "POST", [A, B], body=b"data", headers={"X-Key": "v"}
        )

        for request in transport.requests:
            assert request.method == "POST"
            assert request.body == b"data"
            assert request.headers == {"X-Key": "v"}

    def test_cancelled_context_fails_every_endpoint(self) -> None:
        """Test that a cancelled context stops requests from being sent."""
        transport = StubTransport({A: [200]})
        context = ExecutionContext()
        context.cancel()

        with pytest.raises(AllEndpointsFailedError):
            FailoverExecutor(transport).execute("GET", [A, B], context=context)

        assert transport.requests == []

    def test_random_selector_tries_each_once(self) -> None:
        """Test that random order still gives one attempt per endpoint."""
        transport = StubTransport({A: [503], B: [503], C: [503]})
        executor = FailoverExecutor(transport, selector=SelectStrategy.RANDOM)

        with pytest.raises(AllEndpointsFailedError):
            executor.execute("GET", [A, B, C, A])

        assert sorted(transport.urls) == [A, B, C]

    def test_custom_retry_checker(self) -> None:
        """Test that a custom predicate decides what advances."""
        transport = StubTransport({A: [200], B: [204]})
        executor = FailoverExecutor(
            transport, retry_checker=lambda r: r.status_code == 200
        )

        response = executor.execute("GET", [A, B])

        assert response.status_code == 204


class TestFailoverOverHttp:
    """Tests for the failover chain over a real httpx transport."""

    BAD = "http://bad.test/"
    GOOD = "http://good.test/"

    def setup_method(self) -> None:
        """Reset metrics before each test."""
        RelayMetrics.reset()

    def transport(self) -> HttpTransport:
        """Build a single-attempt transport answering 999 for BAD, 200 else."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "bad.test":
                return httpx.Response(999, content=b"odd")
            return httpx.Response(200, content=b"ok")

        return HttpTransport(
            retry_policy=RetryPolicy.no_retry(), mount=httpx.MockTransport(handler)
        )

    def test_non_standard_status_is_terminal(self) -> None:
        """Test that a 999 endpoint ends the chain with its response."""
        executor = FailoverExecutor(self.transport())

        response = executor.execute("GET", [self.BAD, self.GOOD])

        assert response.status_code == 999
        assert response.url == self.BAD

    def test_non_standard_status_can_advance(self) -> None:
        """Test that a 999 listed as retryable moves on to the next endpoint."""
        executor = FailoverExecutor(
            self.transport(), retry_checker=build_retry_checker([999])
        )

        response = executor.execute("GET", [self.BAD, self.GOOD])

        assert response.status_code == 200
        assert response.body == b"ok"
