"""Named HTTP request definitions with failover and templating.

This package provides:
- Definition: validated, normalized HTTP call blueprints
- Template: definitions with {{ variable }} placeholders rendered per call
- execute(): direct or failover execution plus success classification
- ApiRegistry: name-keyed registration, YAML/JSON ingestion, run-by-name
"""

from src.api.checker import is_success
from src.api.constants import (
    ALLOWED_METHODS,
    BODYLESS_METHODS,
    DEFAULT_SUCCESS_CODES,
    DEFAULT_TIMEOUT_SECONDS,
)
from src.api.executor import execute
from src.api.loader import decode_records, load_definitions, load_templates
from src.api.models import Definition, DefinitionConfig, FallbackConfig, parse_duration
from src.api.registry import ApiRegistry, get_default_registry, reset_default_registry
from src.api.template import (
    PLACEHOLDER_PATTERN,
    Template,
    VarSpec,
    find_placeholders,
    substitute,
)


__all__ = [
    # Models
    "Definition",
    "DefinitionConfig",
    "FallbackConfig",
    "parse_duration",
    # Templates
    "PLACEHOLDER_PATTERN",
    "Template",
    "VarSpec",
    "find_placeholders",
    "substitute",
    # Execution
    "execute",
    "is_success",
    # Registry
    "ApiRegistry",
    "get_default_registry",
    "reset_default_registry",
    # Loading
    "decode_records",
    "load_definitions",
    "load_templates",
    # Constants
    "ALLOWED_METHODS",
    "BODYLESS_METHODS",
    "DEFAULT_SUCCESS_CODES",
    "DEFAULT_TIMEOUT_SECONDS",
]
