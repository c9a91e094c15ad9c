"""HTTP transport with retries, request ids and redacted logging."""

import time
from functools import lru_cache
from typing import Protocol

import httpx
import structlog

from src.errors import TransportError
from src.observability.metrics import RelayMetrics
from src.transport.constants import DEFAULT_REQUEST_ID_HEADER, DEFAULT_USER_AGENT
from src.transport.context import ExecutionContext
from src.transport.models import RetryPolicy, TransportRequest, TransportResponse
from src.transport.redact import redact_headers, redact_url
from src.utils.ids import new_id


logger = structlog.get_logger()

# Status codes at or above this are logged as warnings
_WARN_STATUS_MIN = 400


class Transport(Protocol):
    """Anything able to turn a request into a response.

    Implementations raise TransportError when no response can be produced.
    """

    def send(
        self,
        request: TransportRequest,
        context: ExecutionContext | None = None,
    ) -> TransportResponse:
        """Send a request.

        Args:
            request: Request to send.
            context: Deadline/cancellation scope of the invocation.

        Returns:
            The response.
        """
        ...


class HttpTransport:
    """httpx-backed transport.

    Provides:
    - Retries with exponential backoff for 429, 5xx and connection failures
    - A request id header on every request that lacks one
    - Per-attempt timeouts bounded by the execution context
    - Request/response logging with sensitive headers redacted
    """

    def __init__(
        self,
        retry_policy: RetryPolicy | None = None,
        default_headers: dict[str, str] | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
        request_id_header: str = DEFAULT_REQUEST_ID_HEADER,
        default_timeout: float = 30.0,
        verify: bool = True,
        mount: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            retry_policy: Retry behavior; defaults to RetryPolicy().
            default_headers: Headers added to every request. Request headers
                win on conflict.
            user_agent: User-Agent sent unless the request sets one.
            request_id_header: Header carrying the generated request id.
            default_timeout: Per-attempt timeout when no context deadline.
            verify: Verify TLS certificates.
            mount: Optional httpx transport (e.g. httpx.MockTransport).
        """
        self._policy = retry_policy or RetryPolicy()
        self._default_headers = dict(default_headers or {})
        self._user_agent = user_agent
        self._request_id_header = request_id_header
        self._default_timeout = default_timeout
        self._verify = verify
        self._mount = mount
        self._log = logger.bind(component="transport")

    @property
    def retry_policy(self) -> RetryPolicy:
        """Get the retry policy."""
        return self._policy

    def send(
        self,
        request: TransportRequest,
        context: ExecutionContext | None = None,
    ) -> TransportResponse:
        """Send a request, retrying transient failures.

        When retries are exhausted on a retryable status, the last response
        is returned rather than an error, so callers can classify it.

        Args:
            request: Request to send.
            context: Deadline/cancellation scope.

        Returns:
            The final response.

        Raises:
            TransportError: If no response could be obtained.
        """
        headers = self._build_headers(request.headers)
        request_id = headers[self._request_id_header]
        log = self._log.bind(
            request_id=request_id,
            method=request.method,
            url=redact_url(request.url),
        )

        last_response: TransportResponse | None = None
        last_error: TransportError | None = None

        for attempt in range(self._policy.max_retries + 1):
            if attempt > 0:
                delay_s = self._policy.get_delay_ms(attempt - 1) / 1000.0
                remaining = context.remaining() if context else None
                if remaining is not None and remaining <= delay_s:
                    log.debug("retry_skipped_deadline", attempt=attempt)
                    break
                RelayMetrics.get_instance().record_transport_retry()
                log.debug(
                    "retry_attempt",
                    attempt=attempt,
                    delay_ms=int(delay_s * 1000),
                    max_retries=self._policy.max_retries,
                )
                time.sleep(delay_s)

            if context is not None:
                context.check(request.url)

            try:
                response = self._send_once(request, headers, context, log, attempt)
            except TransportError as e:
                last_error = e
                if not self._policy.should_retry_error(attempt):
                    raise
                continue

            if self._policy.should_retry_status(response.status_code, attempt):
                last_response = response
                last_error = None
                continue

            return response

        if last_response is not None and last_error is None:
            return last_response
        if last_error is not None:
            raise last_error
        raise TransportError(request.url, "no attempt was made")

    def _build_headers(self, request_headers: dict[str, str]) -> dict[str, str]:
        """Merge default and request headers and stamp a request id.

        Args:
            request_headers: Headers supplied with the request.

        Returns:
            Complete headers dictionary.
        """
        headers: dict[str, str] = {"User-Agent": self._user_agent}
        headers.update(self._default_headers)
        headers.update(request_headers)

        if not any(k.lower() == self._request_id_header.lower() for k in headers):
            headers[self._request_id_header] = new_id()
        else:
            # Normalize the key so callers can find it by the configured name
            for key in list(headers):
                if key.lower() == self._request_id_header.lower():
                    headers[self._request_id_header] = headers.pop(key)
        return headers

    def _send_once(
        self,
        request: TransportRequest,
        headers: dict[str, str],
        context: ExecutionContext | None,
        log: structlog.stdlib.BoundLogger,
        attempt: int,
    ) -> TransportResponse:
        """Execute a single HTTP request.

        Args:
            request: Request to send.
            headers: Final request headers.
            context: Deadline/cancellation scope.
            log: Bound logger.
            attempt: Current attempt number.

        Returns:
            TransportResponse for the attempt.

        Raises:
            TransportError: On any httpx failure.
        """
        timeout = self._default_timeout
        if context is not None:
            remaining = context.remaining()
            if remaining is not None:
                timeout = min(timeout, remaining)

        log.debug(
            "http_request",
            attempt=attempt,
            timeout=round(timeout, 3),
            headers=redact_headers(headers),
        )
        RelayMetrics.get_instance().record_transport_request()

        try:
            with httpx.Client(
                timeout=timeout,
                follow_redirects=True,
                verify=self._verify,
                transport=self._mount,
            ) as client:
                response = client.request(
                    request.method,
                    request.url,
                    headers=headers,
                    content=request.body or None,
                )
        except httpx.TimeoutException as e:
            log.warning("http_timeout", attempt=attempt, error=str(e))
            msg = f"request timed out: {e}"
            raise TransportError(request.url, msg) from e
        except httpx.HTTPError as e:
            log.warning("http_error", attempt=attempt, error=str(e))
            msg = f"request failed: {e}"
            raise TransportError(request.url, msg) from e

        result = TransportResponse(
            status_code=response.status_code,
            url=str(response.url),
            headers=dict(response.headers),
            body=response.content,
        )

        log_event = log.warning if result.status_code >= _WARN_STATUS_MIN else log.debug
        log_event(
            "http_response",
            attempt=attempt,
            status_code=result.status_code,
            bytes=len(result.body),
        )
        return result


@lru_cache(maxsize=1)
def get_default_transport() -> HttpTransport:
    """Shared transport with the default retry policy."""
    return HttpTransport()


@lru_cache(maxsize=1)
def get_no_retry_transport() -> HttpTransport:
    """Shared transport performing a single attempt per request."""
    return HttpTransport(retry_policy=RetryPolicy.no_retry())
