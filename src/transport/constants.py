"""HTTP constants for the transport layer."""

# Status codes the retrying transport treats as transient
HTTP_STATUS_TOO_MANY_REQUESTS = 429
HTTP_STATUS_SERVER_ERROR_MIN = 500
HTTP_STATUS_SERVER_ERROR_MAX = 600
HTTP_STATUS_NOT_IMPLEMENTED = 501

# Retry defaults
DEFAULT_RETRY_MAX = 3
DEFAULT_RETRY_WAIT_MIN_MS = 1000
DEFAULT_RETRY_WAIT_MAX_MS = 30000

# Header used to correlate request and response log lines
DEFAULT_REQUEST_ID_HEADER = "X-Request-ID"

DEFAULT_USER_AGENT = "api-relay/1.0"
