"""Multi-endpoint failover.

Selects an attempt order for equivalent endpoints and walks it once,
advancing past connection failures and retry-eligible statuses.
"""

from src.fallback.executor import (
    DEFAULT_RETRY_CODES,
    FailoverExecutor,
    RetryChecker,
    build_retry_checker,
    default_retry,
)
from src.fallback.selector import SelectStrategy, parse_strategy, select_endpoints


__all__ = [
    "DEFAULT_RETRY_CODES",
    "FailoverExecutor",
    "RetryChecker",
    "SelectStrategy",
    "build_retry_checker",
    "default_retry",
    "parse_strategy",
    "select_endpoints",
]
