"""Scripted in-memory transport for tests."""

from collections import defaultdict

from src.errors import TransportError
from src.transport.context import ExecutionContext
from src.transport.models import TransportRequest, TransportResponse


def make_response(
    status_code: int = 200,
    body: bytes = b"",
    headers: dict[str, str] | None = None,
    url: str = "http://stub.test/",
) -> TransportResponse:
    """Build a TransportResponse with sensible defaults."""
    return TransportResponse(
        status_code=status_code,
        url=url,
        headers=headers or {},
        body=body,
    )


class StubTransport:
    """Transport answering from a per-URL script.

    Each URL maps to a list of outcomes consumed in order; the last outcome
    repeats once the list is exhausted. An outcome is either a status code,
    a TransportResponse or an exception instance to raise. Unscripted URLs
    raise TransportError.
    """

    def __init__(
        self,
        script: dict[str, list[int | TransportResponse | Exception]] | None = None,
    ) -> None:
        self._script = dict(script or {})
        self._calls: dict[str, int] = defaultdict(int)
        self.requests: list[TransportRequest] = []

    @property
    def urls(self) -> list[str]:
        """URLs requested, in order."""
        return [request.url for request in self.requests]

    def send(
        self,
        request: TransportRequest,
        context: ExecutionContext | None = None,
    ) -> TransportResponse:
        """Record the request and play the next scripted outcome."""
        if context is not None:
            context.check(request.url)
        self.requests.append(request)

        outcomes = self._script.get(request.url)
        if not outcomes:
            raise TransportError(request.url, "connection refused")

        index = min(self._calls[request.url], len(outcomes) - 1)
        self._calls[request.url] += 1
        outcome = outcomes[index]

        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, TransportResponse):
            return outcome
        return make_response(outcome, url=request.url)
