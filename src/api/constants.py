"""Constants for definition validation and execution.

All sets are frozen; nothing here is modified after import.
"""

ALLOWED_METHODS = frozenset(
    {"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"}
)

# Methods whose body is dropped during normalization
BODYLESS_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})

DEFAULT_SUCCESS_CODES = frozenset(
    {200, 201, 202, 203, 204, 205, 206, 207, 208, 226}
)

DEFAULT_TIMEOUT_SECONDS = 10.0

# Rendered definitions are named "<template>::<id>"
RENDERED_NAME_SEPARATOR = "::"

YAML_DATA_TYPES = frozenset({"yaml", "yml"})
JSON_DATA_TYPES = frozenset({"json"})
