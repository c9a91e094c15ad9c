"""Exception hierarchy for api-relay.

Errors fall into four families that callers handle differently:

- DefinitionValidationError: a definition, template or variable set is
  malformed. Always raised synchronously and never retried.
- RegistryError: a named definition or template could not be looked up or
  registered.
- ExecutionError: a request ran but no acceptable response was obtained.
  UnsuccessfulStatusError carries the terminal response,
  AllEndpointsFailedError never does.
- TransportError: the underlying HTTP client failed (connection, timeout,
  cancellation). The original httpx error is chained as ``__cause__``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from src.transport.models import TransportResponse


ErrorDetails = dict[str, str | int | bool | list[str] | None]


class ApiRelayError(Exception):
    """Base exception for all api-relay errors."""

    def __init__(self, message: str, details: ErrorDetails | None = None) -> None:
        """Initialize the error.

        Args:
            message: Human-readable error message.
            details: Additional structured error details.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def error_class(self) -> str:
        """Short classification used in logs and metrics."""
        return type(self).__name__

    def to_dict(self) -> dict[str, str | ErrorDetails]:
        """Convert error to dictionary for logging.

        Returns:
            Dictionary representation of the error.
        """
        return {
            "error_class": self.error_class,
            "message": self.message,
            "details": self.details,
        }


# -- validation --------------------------------------------------------------


class DefinitionValidationError(ApiRelayError):
    """A definition, template or variable value failed validation."""


class InvalidMethodError(DefinitionValidationError):
    """Raised when a method is not one of the allowed HTTP methods."""

    def __init__(self, method: str) -> None:
        self.method = method
        super().__init__(f"method {method!r} is invalid", {"method": method})


class MissingTargetError(DefinitionValidationError):
    """Raised when neither url nor urls is provided."""

    def __init__(self) -> None:
        super().__init__("url or urls is required")


class MissingNameError(DefinitionValidationError):
    """Raised when a template or variable spec has an empty name."""

    def __init__(self, kind: str) -> None:
        self.kind = kind
        super().__init__(f"{kind} name is required", {"kind": kind})


class MissingHeaderError(DefinitionValidationError):
    """Raised when a header flagged as templated has no value to render."""

    def __init__(self, header: str) -> None:
        self.header = header
        super().__init__(f"header {header!r} is required", {"header": header})


class MissingBodyError(DefinitionValidationError):
    """Raised when the body is flagged as templated but empty."""

    def __init__(self) -> None:
        super().__init__("body is required")


class InvalidDefaultOptionError(DefinitionValidationError):
    """Raised when a variable default is not one of its options."""

    def __init__(self, name: str, default: str, options: list[str]) -> None:
        self.name = name
        self.default = default
        self.options = options
        super().__init__(
            f"default {default!r} of variable {name!r} is not in options {options}",
            {"variable": name, "default": default, "options": options},
        )


class MissingRequiredVariableError(DefinitionValidationError):
    """Raised when a required variable resolves to an empty value."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"variable {name!r} is required", {"variable": name})


class InvalidOptionError(DefinitionValidationError):
    """Raised when a variable value is not one of its declared options."""

    def __init__(self, name: str, value: str, options: list[str]) -> None:
        self.name = name
        self.value = value
        self.options = options
        super().__init__(
            f"value {value!r} of variable {name!r} is not in options {options}",
            {"variable": name, "value": value, "options": options},
        )


class MissingVariableValuesError(DefinitionValidationError):
    """Raised when placeholders reference variables with no resolved value."""

    def __init__(self, names: list[str]) -> None:
        self.names = names
        super().__init__(f"variables not found: {names}", {"variables": names})


# -- registry ----------------------------------------------------------------


class RegistryError(ApiRelayError):
    """Base exception for name-keyed store errors."""


class NotFoundError(RegistryError):
    """Raised when a key is absent or its entry has expired."""

    def __init__(self, key: str, store: str | None = None) -> None:
        self.key = key
        self.store = store
        super().__init__(f"{key!r} not found", {"key": key, "store": store})


class AlreadyExistsError(RegistryError):
    """Raised when registering a key that is already present."""

    def __init__(self, key: str, store: str | None = None) -> None:
        self.key = key
        self.store = store
        super().__init__(f"{key!r} already exists", {"key": key, "store": store})


# -- execution ---------------------------------------------------------------


class ExecutionError(ApiRelayError):
    """Base exception for requests that did not yield an acceptable response."""


class AllEndpointsFailedError(ExecutionError):
    """Raised when every fallback endpoint failed or asked to be skipped."""

    def __init__(self, urls: list[str]) -> None:
        self.urls = urls
        super().__init__("all urls failed", {"urls": urls})


class UnsuccessfulStatusError(ExecutionError):
    """Raised when the terminal response is not classified as a success.

    The response is always attached so callers can still inspect it.
    """

    def __init__(self, response: "TransportResponse") -> None:
        self.response = response
        super().__init__(
            f"status code {response.status_code} is not in success codes",
            {"status_code": response.status_code, "url": response.url},
        )


# -- transport ---------------------------------------------------------------


class TransportError(ApiRelayError):
    """Raised when the HTTP transport could not produce a response."""

    def __init__(self, url: str, message: str) -> None:
        self.url = url
        super().__init__(message, {"url": url})


# -- data ingestion ----------------------------------------------------------


class LoadError(ApiRelayError):
    """Base exception for definition/template payload loading."""


class UnsupportedDataTypeError(LoadError):
    """Raised when a payload type is not yaml, yml or json."""

    def __init__(self, data_type: str) -> None:
        self.data_type = data_type
        super().__init__(
            f"unsupported data type: {data_type}", {"data_type": data_type}
        )


class DataFormatError(LoadError):
    """Raised when a payload cannot be decoded into records."""

    def __init__(self, data_type: str, message: str) -> None:
        self.data_type = data_type
        super().__init__(
            f"failed to decode {data_type} payload: {message}",
            {"data_type": data_type},
        )
