"""Execution of parsed definitions."""

import time

import structlog

from src.api.checker import is_success
from src.api.constants import DEFAULT_TIMEOUT_SECONDS
from src.api.models import Definition
from src.errors import (
    AllEndpointsFailedError,
    MissingTargetError,
    TransportError,
    UnsuccessfulStatusError,
)
from src.fallback.executor import FailoverExecutor, RetryChecker, build_retry_checker
from src.observability.logging import (
    bind_invocation_context,
    clear_invocation_context,
)
from src.observability.metrics import RelayMetrics
from src.transport.client import (
    Transport,
    get_default_transport,
    get_no_retry_transport,
)
from src.transport.context import ExecutionContext
from src.transport.models import TransportRequest, TransportResponse
from src.transport.redact import redact_url
from src.utils.ids import new_id


logger = structlog.get_logger()


def execute(
    definition: Definition,
    transport: Transport | None = None,
    context: ExecutionContext | None = None,
    retry_checker: RetryChecker | None = None,
) -> TransportResponse:
    """Run a parsed definition and classify its terminal response.

    A single-url definition sends one request through the retrying
    transport. A multi-url definition goes through the failover executor,
    which gives each endpoint one attempt.

    Args:
        definition: Definition returned by Definition.parse().
        transport: Transport for all attempts. Defaults to the shared
            retrying transport (single url) or the shared single-attempt
            transport (fallback).
        context: Deadline/cancellation scope. Defaults to one expiring after
            ``definition.config.timeout``.
        retry_checker: Full replacement for the failover retry predicate.
            Defaults to the standard retry codes plus the definition's
            ``fallback.retry_codes``.

    Returns:
        The terminal response, classified as a success.

    Raises:
        UnsuccessfulStatusError: The terminal response failed classification;
            the response is attached to the error.
        AllEndpointsFailedError: No fallback endpoint gave a terminal response.
        TransportError: The single-url request failed.
        MissingTargetError: The definition has no target.
    """
    if context is None:
        context = ExecutionContext.with_timeout(
            definition.config.timeout or DEFAULT_TIMEOUT_SECONDS
        )

    if not definition.url and not definition.urls:
        raise MissingTargetError()

    bind_invocation_context(definition.name, new_id())
    try:
        return _execute_and_classify(definition, transport, context, retry_checker)
    finally:
        clear_invocation_context()


def _execute_and_classify(
    definition: Definition,
    transport: Transport | None,
    context: ExecutionContext,
    retry_checker: RetryChecker | None,
) -> TransportResponse:
    """Dispatch by target mode, then apply the success classifier."""
    metrics = RelayMetrics.get_instance()
    log = logger.bind(component="executor", method=definition.method)
    start_ns = time.perf_counter_ns()

    try:
        if definition.url:
            response = _execute_direct(definition, transport, context)
        else:
            response = _execute_fallback(definition, transport, context, retry_checker)
    except (TransportError, AllEndpointsFailedError) as e:
        metrics.record_execution(_elapsed_ms(start_ns))
        metrics.record_failure(e.error_class)
        log.warning("execution_failed", error_class=e.error_class, error=e.message)
        raise

    duration_ms = _elapsed_ms(start_ns)
    metrics.record_execution(duration_ms)

    if not is_success(definition.config, response):
        metrics.record_unsuccessful()
        log.warning(
            "execution_unsuccessful",
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
        )
        raise UnsuccessfulStatusError(response)

    metrics.record_success()
    log.info(
        "execution_complete",
        status_code=response.status_code,
        bytes=len(response.body),
        duration_ms=round(duration_ms, 2),
    )
    return response


def _execute_direct(
    definition: Definition,
    transport: Transport | None,
    context: ExecutionContext,
) -> TransportResponse:
    """Send the single request of a url-mode definition."""
    request = TransportRequest(
        method=definition.method,
        url=definition.url,
        headers=dict(definition.headers),
        body=definition.body.encode("utf-8"),
    )
    logger.debug(
        "execute_direct",
        component="executor",
        url=redact_url(definition.url),
    )
    return (transport or get_default_transport()).send(request, context)


def _execute_fallback(
    definition: Definition,
    transport: Transport | None,
    context: ExecutionContext,
    retry_checker: RetryChecker | None,
) -> TransportResponse:
    """Walk the urls of a fallback-mode definition."""
    fallback = definition.config.fallback
    executor = FailoverExecutor(
        transport=transport or get_no_retry_transport(),
        selector=fallback.selector,
        retry_checker=retry_checker or build_retry_checker(fallback.retry_codes),
    )
    return executor.execute(
        method=definition.method,
        urls=definition.urls,
        body=definition.body.encode("utf-8"),
        headers=definition.headers,
        context=context,
    )


def _elapsed_ms(start_ns: int) -> float:
    return (time.perf_counter_ns() - start_ns) / 1_000_000
