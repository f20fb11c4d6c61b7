"""Candidate route enumeration.

Routes are produced in a fixed order: one direct route per venue, then every
longer route by increasing hop count. For each hop count, intermediate token
sequences are distinct ordered picks from the intermediate list, and each
sequence is crossed with every assignment of venues to hops.
"""

from __future__ import annotations

from collections.abc import Sequence
from itertools import permutations, product

import structlog

from arbopt.constants import MAX_ROUTE_HOPS
from arbopt.models.types import is_valid_address, normalize_address
from arbopt.routing.types import Hop, Route

logger = structlog.get_logger()


def generate_routes(
    token_a: str,
    token_b: str,
    venue_ids: Sequence[str],
    intermediates: Sequence[str],
    max_hops: int,
) -> list[Route]:
    """Enumerate candidate routes from token_a to token_b.

    Growth is roughly venues^hops * intermediates^(hops-1), so the hop count
    is always capped at MAX_ROUTE_HOPS.

    Args:
        token_a: Input token address
        token_b: Output token address
        venue_ids: Enabled venues, in registry order
        intermediates: Candidate intermediate tokens, in priority order
        max_hops: Requested hop limit

    Returns:
        Routes in generation order; empty for invalid tokens, identical
        endpoints, a non-positive hop limit or no venues.
    """
    if not (is_valid_address(token_a) and is_valid_address(token_b)):
        return []
    token_a = normalize_address(token_a)
    token_b = normalize_address(token_b)
    if token_a == token_b or not venue_ids:
        return []

    limit = min(max_hops, MAX_ROUTE_HOPS)
    if limit < 1:
        return []

    routes = [Route((Hop(token_a, token_b, venue_id),)) for venue_id in venue_ids]

    # Deduplicate while preserving priority order
    candidates = [
        t
        for t in dict.fromkeys(normalize_address(t) for t in intermediates)
        if t not in (token_a, token_b)
    ]

    for hop_count in range(2, limit + 1):
        for middle in permutations(candidates, hop_count - 1):
            path = (token_a, *middle, token_b)
            for assignment in product(venue_ids, repeat=hop_count):
                hops = tuple(
                    Hop(path[i], path[i + 1], assignment[i]) for i in range(hop_count)
                )
                routes.append(Route(hops))

    logger.debug(
        "routes_generated",
        token_a=token_a,
        token_b=token_b,
        max_hops=limit,
        venues=len(venue_ids),
        count=len(routes),
    )
    return routes


__all__ = ["generate_routes"]
