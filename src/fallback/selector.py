"""Ordering and de-duplication of fallback endpoints."""

import random
from enum import Enum

import structlog


logger = structlog.get_logger()


class SelectStrategy(str, Enum):
    """Order in which fallback endpoints are tried.

    - ROUND_ROBIN: first-seen order of the configured list
    - RANDOM: a fresh uniform shuffle on every invocation
    """

    ROUND_ROBIN = "round_robin"
    RANDOM = "random"


def parse_strategy(value: "SelectStrategy | str | None") -> SelectStrategy:
    """Resolve a configured selector name.

    Accepts either separator ("round-robin", "round_robin") in any case.
    Empty values select ROUND_ROBIN; unknown values log a warning and also
    select ROUND_ROBIN.

    Args:
        value: Strategy or its name.

    Returns:
        The resolved strategy.
    """
    if isinstance(value, SelectStrategy):
        return value
    if not value:
        return SelectStrategy.ROUND_ROBIN

    normalized = value.strip().lower().replace("-", "_")
    try:
        return SelectStrategy(normalized)
    except ValueError:
        logger.warning(
            "invalid_select_strategy",
            component="fallback",
            strategy=value,
            fallback_to=SelectStrategy.ROUND_ROBIN.value,
        )
        return SelectStrategy.ROUND_ROBIN


def select_endpoints(
    urls: list[str],
    strategy: SelectStrategy = SelectStrategy.ROUND_ROBIN,
    rng: random.Random | None = None,
) -> list[str]:
    """Produce the attempt order for a list of candidate URLs.

    Each distinct URL appears exactly once. The input list is not modified.

    Args:
        urls: Candidate URLs, possibly with duplicates.
        strategy: Ordering strategy.
        rng: Random source for RANDOM (defaults to the module generator).

    Returns:
        Deduplicated URLs in attempt order.
    """
    if not urls:
        return []

    if strategy == SelectStrategy.RANDOM:
        ordered = sorted(set(urls))
        (rng or random).shuffle(ordered)
        return ordered

    # dict preserves insertion order, so this keeps first occurrences
    return list(dict.fromkeys(urls))
