"""Request definition models and their normalization."""

import re
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.api.constants import (
    ALLOWED_METHODS,
    BODYLESS_METHODS,
    DEFAULT_TIMEOUT_SECONDS,
)
from src.errors import InvalidMethodError, MissingTargetError
from src.fallback.selector import SelectStrategy, parse_strategy


_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: Any) -> float:  # noqa: ANN401
    """Convert a configured duration to seconds.

    Numbers are seconds. Strings are either plain numbers (seconds) or
    unit-suffixed sequences such as "10s", "500ms" or "1m30s".

    Args:
        value: Raw configured value.

    Returns:
        Duration in seconds.

    Raises:
        ValueError: If the value cannot be interpreted.
    """
    if value is None:
        return 0.0
    if isinstance(value, bool):
        msg = f"invalid duration: {value!r}"
        raise ValueError(msg)
    if isinstance(value, int | float):
        return float(value)
    if not isinstance(value, str):
        msg = f"invalid duration: {value!r}"
        raise ValueError(msg)

    text = value.strip()
    if not text:
        return 0.0
    try:
        return float(text)
    except ValueError:
        pass

    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]

    total = 0.0
    position = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if position != len(text) or position == 0:
        msg = f"invalid duration: {value!r}"
        raise ValueError(msg)
    return sign * total


class FallbackConfig(BaseModel):
    """How a multi-endpoint definition walks its urls."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    selector: SelectStrategy = SelectStrategy.ROUND_ROBIN
    retry_codes: list[int] = Field(
        default_factory=list,
        description="Statuses that advance the failover, added to the defaults",
    )

    @field_validator("selector", mode="before")
    @classmethod
    def resolve_selector(cls, v: Any) -> SelectStrategy:  # noqa: ANN401
        """Accept strategy aliases; unknown names fall back to round robin."""
        return parse_strategy(v)


class DefinitionConfig(BaseModel):
    """Success criteria, fallback behavior and timeout of a definition."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    success_codes: list[int] = Field(
        default_factory=list,
        description="Statuses counted as success; empty means the defaults",
    )
    header_match: dict[str, str] = Field(
        default_factory=dict,
        description="Response headers that must carry exactly these values",
    )
    fallback: FallbackConfig = Field(default_factory=FallbackConfig)
    timeout: Annotated[float, Field(ge=0.0, description="Seconds; 0 = default")] = (
        0.0
    )

    @field_validator("timeout", mode="before")
    @classmethod
    def parse_timeout(cls, v: Any) -> float:  # noqa: ANN401
        """Parse duration strings such as "10s" or "1m30s"."""
        return parse_duration(v)


class Definition(BaseModel):
    """A named HTTP call blueprint.

    Instances are immutable. parse() returns the normalized form used for
    registration and execution; after it, exactly one of ``url`` (single
    target) or ``urls`` (two or more fallback targets) is set.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = ""
    method: str = ""
    url: str = ""
    urls: list[str] = Field(default_factory=list)
    headers: dict[str, str] = Field(default_factory=dict)
    body: str = ""
    config: DefinitionConfig = Field(default_factory=DefinitionConfig)

    @property
    def uses_fallback(self) -> bool:
        """Check if this definition runs through the failover executor."""
        return not self.url and bool(self.urls)

    def parse(self) -> "Definition":
        """Validate and normalize the definition.

        - method is trimmed and upper-cased and must be allowed
        - the body is dropped for GET, HEAD and OPTIONS
        - a non-empty url wins over urls; a single entry in urls is
          promoted to url
        - a zero timeout becomes DEFAULT_TIMEOUT_SECONDS

        Returns:
            The normalized definition.

        Raises:
            InvalidMethodError: If the method is not allowed.
            MissingTargetError: If neither url nor urls is set.
        """
        method = self.method.strip().upper()
        if method not in ALLOWED_METHODS:
            raise InvalidMethodError(method)

        body = "" if method in BODYLESS_METHODS else self.body

        url = self.url.strip()
        urls = list(self.urls)
        if url:
            urls = []
        elif not urls:
            raise MissingTargetError()
        elif len(urls) == 1:
            url, urls = urls[0], []

        config = self.config
        if config.timeout == 0:
            config = config.model_copy(update={"timeout": DEFAULT_TIMEOUT_SECONDS})

        return self.model_copy(
            update={
                "method": method,
                "body": body,
                "url": url,
                "urls": urls,
                "config": config,
            }
        )
