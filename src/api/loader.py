"""Decoding of YAML/JSON payloads into definition and template records."""

import json
from typing import Any, TypeVar

import structlog
import yaml
from pydantic import BaseModel, ValidationError

from src.api.constants import JSON_DATA_TYPES, YAML_DATA_TYPES
from src.api.models import Definition
from src.api.template import Template
from src.errors import DataFormatError, UnsupportedDataTypeError


logger = structlog.get_logger()

ModelT = TypeVar("ModelT", bound=BaseModel)


def normalize_data_type(data_type: str) -> str:
    """Lower-case and trim a payload type, rejecting unknown ones.

    Args:
        data_type: "yaml", "yml" or "json" in any case.

    Returns:
        The normalized type.

    Raises:
        UnsupportedDataTypeError: For any other type.
    """
    normalized = data_type.strip().lower()
    if normalized not in YAML_DATA_TYPES | JSON_DATA_TYPES:
        raise UnsupportedDataTypeError(data_type)
    return normalized


def decode_records(data_type: str, data: bytes | str) -> list[dict[str, Any]]:
    """Decode a payload holding a list of records.

    An empty payload decodes to an empty list.

    Args:
        data_type: "yaml", "yml" or "json".
        data: Raw payload.

    Returns:
        List of raw record mappings.

    Raises:
        UnsupportedDataTypeError: If the type is not supported.
        DataFormatError: If the payload is malformed or not a list of
            mappings.
    """
    normalized = normalize_data_type(data_type)

    try:
        text = data.decode("utf-8") if isinstance(data, bytes) else data
        if normalized in YAML_DATA_TYPES:
            parsed = yaml.safe_load(text)
        else:
            parsed = json.loads(text) if text.strip() else None
    except (UnicodeDecodeError, yaml.YAMLError, json.JSONDecodeError) as e:
        raise DataFormatError(normalized, str(e)) from e

    if parsed is None:
        return []
    if not isinstance(parsed, list):
        raise DataFormatError(normalized, "expected a list of records")
    for index, record in enumerate(parsed):
        if not isinstance(record, dict):
            msg = f"record {index} is not a mapping"
            raise DataFormatError(normalized, msg)
    return parsed


def _load_models(
    model: type[ModelT], data_type: str, data: bytes | str
) -> list[ModelT]:
    records = decode_records(data_type, data)
    try:
        models = [model.model_validate(record) for record in records]
    except ValidationError as e:
        raise DataFormatError(data_type.strip().lower(), str(e)) from e
    logger.debug(
        "records_decoded",
        component="loader",
        kind=model.__name__,
        count=len(models),
    )
    return models


def load_definitions(data_type: str, data: bytes | str) -> list[Definition]:
    """Decode a payload into (unparsed) definitions, in payload order."""
    return _load_models(Definition, data_type, data)


def load_templates(data_type: str, data: bytes | str) -> list[Template]:
    """Decode a payload into (unparsed) templates, in payload order."""
    return _load_models(Template, data_type, data)
