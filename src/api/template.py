"""Parameterized definitions and the placeholder rendering engine.

A template embeds a Definition whose string fields may contain
``{{ name }}`` placeholders. Only fields flagged on the template are
rendered; everything else is copied verbatim, placeholder-looking text
included. Rendering always yields a freshly named, fully parsed Definition
that is never stored.
"""

import re
from collections.abc import Mapping
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.api.constants import ALLOWED_METHODS, RENDERED_NAME_SEPARATOR
from src.api.models import Definition
from src.errors import (
    InvalidDefaultOptionError,
    InvalidMethodError,
    InvalidOptionError,
    MissingBodyError,
    MissingHeaderError,
    MissingNameError,
    MissingRequiredVariableError,
    MissingTargetError,
    MissingVariableValuesError,
)
from src.observability.metrics import RelayMetrics
from src.utils.ids import new_id


logger = structlog.get_logger()

# {{ name }}: names are case-sensitive, [A-Za-z0-9_-]+
PLACEHOLDER_PATTERN = re.compile(r"{{\s*([A-Za-z0-9_-]+)\s*}}")


def find_placeholders(text: str) -> list[str]:
    """List placeholder names in order of appearance (with repeats)."""
    return PLACEHOLDER_PATTERN.findall(text)


def substitute(text: str, values: Mapping[str, str], missing: set[str]) -> str:
    """Replace every placeholder in ``text`` with its value.

    Unknown names are added to ``missing`` and their placeholder is left
    untouched, so a caller can collect gaps across several fields before
    failing once.

    Args:
        text: Template text.
        values: Resolved variable values.
        missing: Collector for names without a value.

    Returns:
        Rendered text.
    """

    def replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name in values:
            return values[name]
        missing.add(name)
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(replace, text)


def _scalar_to_str(value: Any) -> Any:  # noqa: ANN401
    """Render a YAML/JSON scalar as text; other values pass through.

    Booleans render in their YAML spelling ("true"/"false").
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int | float):
        return str(value)
    return value


class VarSpec(BaseModel):
    """Declaration of one template variable."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = ""
    options: list[str] = Field(
        default_factory=list, description="Allowed values; empty allows any"
    )
    default: str | None = None
    can_empty: bool = False

    @field_validator("options", mode="before")
    @classmethod
    def stringify_options(cls, v: Any) -> Any:  # noqa: ANN401
        """Accept unquoted scalar options (``[1, 2]``) as their text."""
        if isinstance(v, list):
            return [_scalar_to_str(item) for item in v]
        return v

    @field_validator("default", mode="before")
    @classmethod
    def stringify_default(cls, v: Any) -> Any:  # noqa: ANN401
        """Accept an unquoted scalar default as its text."""
        return _scalar_to_str(v)

    def check(self) -> None:
        """Validate the declaration itself.

        Raises:
            MissingNameError: If the name is empty.
            InvalidDefaultOptionError: If the default is not an option.
        """
        if not self.name:
            raise MissingNameError("variable")
        if self.options and self.default is not None:
            if self.default not in self.options:
                raise InvalidDefaultOptionError(
                    self.name, self.default, list(self.options)
                )

    def resolve(self, supplied: Mapping[str, str]) -> str:
        """Resolve this variable's value from caller input.

        Order: supplied value, then default, then "" when ``can_empty``.

        Args:
            supplied: Caller-supplied values.

        Returns:
            The resolved value.

        Raises:
            MissingRequiredVariableError: If no non-empty value is available
                and the variable cannot be empty.
            InvalidOptionError: If options are declared and the value is not
                one of them.
        """
        if self.name in supplied:
            value = supplied[self.name]
        elif self.default is not None:
            value = self.default
        elif self.can_empty:
            value = ""
        else:
            raise MissingRequiredVariableError(self.name)

        if not value and not self.can_empty:
            raise MissingRequiredVariableError(self.name)
        if self.options and value not in self.options:
            raise InvalidOptionError(self.name, value, list(self.options))
        return value


class Template(BaseModel):
    """A named definition with fields subject to variable substitution.

    Flags select what is rendered: ``method``, ``url`` (covers url and every
    entry of urls), ``headers`` (per header key) and ``body``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    name: str = ""
    api: Definition = Field(default_factory=Definition)
    method: bool = False
    url: bool = False
    headers: dict[str, bool] = Field(default_factory=dict)
    body: bool = False
    variables: list[VarSpec] = Field(default_factory=list, alias="vars")

    @model_validator(mode="before")
    @classmethod
    def expand_defaults(cls, data: Any) -> Any:  # noqa: ANN401
        """Turn a legacy ``defaults`` mapping into variable declarations.

        ``defaults: {city: Beijing}`` declares ``city`` with that default,
        unless ``vars`` already declares it.
        """
        if not isinstance(data, dict) or "defaults" not in data:
            return data

        data = dict(data)
        defaults = data.pop("defaults") or {}
        if not isinstance(defaults, dict):
            msg = "defaults must be a mapping of variable name to value"
            raise ValueError(msg)
        key = "variables" if "variables" in data else "vars"
        declared = list(data.get(key) or [])
        names = {
            spec.name if isinstance(spec, VarSpec) else spec.get("name")
            for spec in declared
        }
        for name, value in defaults.items():
            if name not in names:
                declared.append({"name": name, "default": value})
        data[key] = declared
        return data

    def parse(self) -> "Template":
        """Validate the template.

        Flagged fields are only filled in at render time, so they are exempt
        from definition rules; they must however carry text to render.

        Returns:
            Normalized template (unflagged method upper-cased, embedded
            definition name cleared).

        Raises:
            MissingNameError: If the template or a variable has no name.
            InvalidDefaultOptionError: If a variable default is not an option.
            InvalidMethodError: If an unflagged method is not allowed.
            MissingTargetError: If an unflagged target is absent.
            MissingHeaderError: If a flagged header has no value.
            MissingBodyError: If the body is flagged but empty.
        """
        if not self.name.strip():
            raise MissingNameError("template")

        for spec in self.variables:
            spec.check()

        method = self.api.method
        if not self.method:
            method = method.strip().upper()
            if method not in ALLOWED_METHODS:
                raise InvalidMethodError(method)

        if not self.url and not self.api.url.strip() and not self.api.urls:
            raise MissingTargetError()

        for key, flagged in self.headers.items():
            if flagged and not self.api.headers.get(key):
                raise MissingHeaderError(key)

        if self.body and not self.api.body:
            raise MissingBodyError()

        api = self.api.model_copy(update={"method": method, "name": ""})
        return self.model_copy(update={"name": self.name.strip(), "api": api})

    def merge_vars(self, supplied: Mapping[str, str] | None = None) -> dict[str, str]:
        """Resolve every declared variable.

        Supplied names that are not declared are ignored.

        Args:
            supplied: Caller-supplied values.

        Returns:
            Mapping with exactly the declared variable names.

        Raises:
            MissingRequiredVariableError: See VarSpec.resolve.
            InvalidOptionError: See VarSpec.resolve.
        """
        supplied = supplied or {}
        return {spec.name: spec.resolve(supplied) for spec in self.variables}

    def render(self, supplied: Mapping[str, str] | None = None) -> Definition:
        """Render a concrete, parsed definition.

        Unknown placeholder names are collected across all flagged fields
        and reported together, sorted and de-duplicated.

        Args:
            supplied: Caller-supplied variable values.

        Returns:
            A new definition named "<template>::<id>", already parsed.

        Raises:
            MissingVariableValuesError: If placeholders reference unknown
                variables.
            DefinitionValidationError: If variables or the rendered
                definition are invalid.
        """
        values = self.merge_vars(supplied)
        missing: set[str] = set()
        api = self.api

        method = substitute(api.method, values, missing) if self.method else api.method
        url = substitute(api.url, values, missing) if self.url else api.url
        urls = (
            [substitute(u, values, missing) for u in api.urls]
            if self.url
            else list(api.urls)
        )
        headers = {
            key: substitute(value, values, missing) if self.headers.get(key) else value
            for key, value in api.headers.items()
        }
        body = substitute(api.body, values, missing) if self.body else api.body

        if missing:
            raise MissingVariableValuesError(sorted(missing))

        rendered = api.model_copy(
            update={
                "name": f"{self.name}{RENDERED_NAME_SEPARATOR}{new_id()}",
                "method": method,
                "url": url,
                "urls": urls,
                "headers": headers,
                "body": body,
            },
            deep=True,
        ).parse()

        RelayMetrics.get_instance().record_render()
        logger.debug(
            "template_rendered",
            component="template",
            template=self.name,
            definition=rendered.name,
            variables=sorted(values),
        )
        return rendered
