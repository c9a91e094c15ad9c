"""Data models for the HTTP transport layer."""

import random
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.transport.constants import (
    DEFAULT_RETRY_MAX,
    DEFAULT_RETRY_WAIT_MAX_MS,
    DEFAULT_RETRY_WAIT_MIN_MS,
    HTTP_STATUS_NOT_IMPLEMENTED,
    HTTP_STATUS_SERVER_ERROR_MAX,
    HTTP_STATUS_SERVER_ERROR_MIN,
    HTTP_STATUS_TOO_MANY_REQUESTS,
)


class TransportRequest(BaseModel):
    """A single HTTP request handed to a transport."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    method: Annotated[str, Field(min_length=1)]
    url: Annotated[str, Field(min_length=1)]
    headers: dict[str, str] = Field(default_factory=dict)
    body: bytes = b""


class TransportResponse(BaseModel):
    """Response returned by a transport.

    The body is fully read; transports never hand out open streams.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    status_code: int = Field(ge=100, description="HTTP status code")
    url: Annotated[str, Field(min_length=1, description="Final request URL")]
    headers: dict[str, str] = Field(
        default_factory=dict, description="Response headers"
    )
    body: bytes = Field(default=b"", description="Response body")

    def get_header(self, name: str) -> str | None:
        """Look up a header value, ignoring the case of the name.

        Args:
            name: Header name.

        Returns:
            Header value, or None when absent.
        """
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None

    @property
    def content_type(self) -> str:
        """Media type without parameters, empty when absent."""
        value = self.get_header("content-type") or ""
        return value.split(";", 1)[0].strip().lower()

    @property
    def text(self) -> str:
        """Body decoded as UTF-8, replacing undecodable bytes."""
        return self.body.decode("utf-8", errors="replace")


class RetryPolicy(BaseModel):
    """Retry behavior of the transport.

    Delays grow exponentially from ``wait_min_ms`` and are capped at
    ``wait_max_ms``: delay = wait_min_ms * (exponential_base ^ attempt).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_retries: Annotated[int, Field(ge=0, le=10)] = DEFAULT_RETRY_MAX
    wait_min_ms: Annotated[int, Field(ge=0, le=60000)] = DEFAULT_RETRY_WAIT_MIN_MS
    wait_max_ms: Annotated[int, Field(ge=0, le=300000)] = DEFAULT_RETRY_WAIT_MAX_MS
    exponential_base: Annotated[float, Field(ge=1.0, le=5.0)] = 2.0
    jitter_factor: Annotated[float, Field(ge=0.0, le=1.0)] = 0.1

    @model_validator(mode="after")
    def check_wait_bounds(self) -> "RetryPolicy":
        """Ensure the wait window is not inverted."""
        if self.wait_max_ms < self.wait_min_ms:
            msg = "wait_max_ms must be >= wait_min_ms"
            raise ValueError(msg)
        return self

    @classmethod
    def no_retry(cls) -> "RetryPolicy":
        """Policy that performs exactly one attempt."""
        return cls(max_retries=0)

    def should_retry_status(self, status_code: int, attempt: int) -> bool:
        """Determine if a response status warrants another attempt.

        Args:
            status_code: HTTP status of the last attempt.
            attempt: Current attempt number (0-indexed).

        Returns:
            True if the request should be retried.
        """
        if attempt >= self.max_retries:
            return False
        if status_code == HTTP_STATUS_TOO_MANY_REQUESTS:
            return True
        return (
            HTTP_STATUS_SERVER_ERROR_MIN <= status_code < HTTP_STATUS_SERVER_ERROR_MAX
            and status_code != HTTP_STATUS_NOT_IMPLEMENTED
        )

    def should_retry_error(self, attempt: int) -> bool:
        """Connection-level failures are retried until attempts run out."""
        return attempt < self.max_retries

    def get_delay_ms(self, attempt: int) -> int:
        """Calculate delay before the next retry attempt.

        Args:
            attempt: Current attempt number (0-indexed).

        Returns:
            Delay in milliseconds.
        """
        delay = self.wait_min_ms * (self.exponential_base**attempt)
        delay = min(delay, self.wait_max_ms)

        jitter = delay * self.jitter_factor * random.random()  # noqa: S311
        return int(min(delay + jitter, self.wait_max_ms))
