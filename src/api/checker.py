"""Success classification of terminal responses."""

from src.api.constants import DEFAULT_SUCCESS_CODES
from src.api.models import DefinitionConfig
from src.transport.models import TransportResponse


def is_success(config: DefinitionConfig, response: TransportResponse) -> bool:
    """Decide whether a terminal response counts as a success.

    The status must be in ``config.success_codes`` (DEFAULT_SUCCESS_CODES
    when that list is empty) and every ``config.header_match`` entry must
    equal the response header value exactly. Header names are matched
    case-insensitively; a missing header fails the match. The body is not
    inspected.

    Args:
        config: Definition config holding the success criteria.
        response: Terminal response.

    Returns:
        True if the response is a success.
    """
    success_codes = config.success_codes or DEFAULT_SUCCESS_CODES
    if response.status_code not in success_codes:
        return False

    for header, expected in config.header_match.items():
        if response.get_header(header) != expected:
            return False

    return True
