"""HTTP transport used to execute definitions.

Provides:
- HttpTransport, an httpx client with retry/backoff and request ids
- ExecutionContext, the deadline and cancellation scope of one invocation
- Header/URL redaction for logging
"""

from src.transport.client import (
    HttpTransport,
    Transport,
    get_default_transport,
    get_no_retry_transport,
)
from src.transport.constants import DEFAULT_REQUEST_ID_HEADER
from src.transport.context import ExecutionContext
from src.transport.models import RetryPolicy, TransportRequest, TransportResponse
from src.transport.redact import REDACTED_VALUE, redact_headers, redact_url


__all__ = [
    # Client
    "HttpTransport",
    "Transport",
    "get_default_transport",
    "get_no_retry_transport",
    # Context
    "ExecutionContext",
    # Models
    "RetryPolicy",
    "TransportRequest",
    "TransportResponse",
    # Constants
    "DEFAULT_REQUEST_ID_HEADER",
    # Redaction
    "REDACTED_VALUE",
    "redact_headers",
    "redact_url",
]
