"""Sequential failover across equivalent endpoints."""

from collections.abc import Callable, Iterable

import structlog

from src.errors import AllEndpointsFailedError, TransportError
from src.fallback.selector import SelectStrategy, select_endpoints
from src.observability.metrics import RelayMetrics
from src.transport.client import Transport, get_no_retry_transport
from src.transport.context import ExecutionContext
from src.transport.models import TransportRequest, TransportResponse
from src.transport.redact import redact_url


logger = structlog.get_logger()

# Statuses that move the failover on to the next endpoint
DEFAULT_RETRY_CODES = frozenset({429, 500, 502, 503, 504})

RetryChecker = Callable[[TransportResponse], bool]


def default_retry(response: TransportResponse) -> bool:
    """Check whether a response status is in DEFAULT_RETRY_CODES."""
    return response.status_code in DEFAULT_RETRY_CODES


def build_retry_checker(retry_codes: Iterable[int] = ()) -> RetryChecker:
    """Build a checker for DEFAULT_RETRY_CODES plus extra codes.

    Extra codes extend the default set; they never replace it.

    Args:
        retry_codes: Additional statuses that should advance the failover.

    Returns:
        Retry-eligibility predicate.
    """
    codes = DEFAULT_RETRY_CODES | frozenset(retry_codes)
    if codes == DEFAULT_RETRY_CODES:
        return default_retry

    def check(response: TransportResponse) -> bool:
        return response.status_code in codes

    return check


class FailoverExecutor:
    """Tries endpoints one at a time until one gives a terminal response.

    For each endpoint in selection order, exactly one request is sent:
    - a transport error moves on to the next endpoint
    - a retry-eligible response is discarded and moves on
    - any other response is returned immediately, whether or not it will
      later be classified as a success (a 400 ends the chain)

    The list is walked once. Exhausting it raises AllEndpointsFailedError.
    """

    def __init__(
        self,
        transport: Transport | None = None,
        selector: SelectStrategy = SelectStrategy.ROUND_ROBIN,
        retry_checker: RetryChecker | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            transport: Transport for each attempt; defaults to the shared
                single-attempt transport.
            selector: Endpoint ordering strategy.
            retry_checker: Retry-eligibility predicate; defaults to
                default_retry.
        """
        self._transport = transport or get_no_retry_transport()
        self._selector = selector
        self._retry = retry_checker or default_retry
        self._metrics = RelayMetrics.get_instance()
        self._log = logger.bind(component="fallback")

    def execute(
        self,
        method: str,
        urls: list[str],
        body: bytes = b"",
        headers: dict[str, str] | None = None,
        context: ExecutionContext | None = None,
    ) -> TransportResponse:
        """Run the failover chain.

        Args:
            method: HTTP method (already validated).
            urls: Candidate endpoints.
            body: Request body.
            headers: Request headers.
            context: Deadline/cancellation scope shared by all attempts.

        Returns:
            The first terminal response.

        Raises:
            AllEndpointsFailedError: If no endpoint gave a terminal response.
        """
        endpoints = select_endpoints(urls, self._selector)
        log = self._log.bind(
            method=method,
            selector=self._selector.value,
            endpoint_count=len(endpoints),
        )

        for index, url in enumerate(endpoints):
            self._metrics.record_endpoint_attempt()
            request = TransportRequest(
                method=method,
                url=url,
                headers=dict(headers or {}),
                body=body,
            )

            try:
                response = self._transport.send(request, context)
            except TransportError as e:
                self._metrics.record_failover_advance("transport_error")
                log.error(
                    "failover_endpoint_failed",
                    url=redact_url(url),
                    position=index,
                    error=e.message,
                )
                continue

            if self._retry(response):
                self._metrics.record_failover_advance("retry_status")
                log.error(
                    "failover_endpoint_retry_status",
                    url=redact_url(url),
                    position=index,
                    status_code=response.status_code,
                )
                continue

            log.debug(
                "failover_endpoint_selected",
                url=redact_url(url),
                position=index,
                status_code=response.status_code,
            )
            return response

        log.error("failover_exhausted")
        raise AllEndpointsFailedError(endpoints)
