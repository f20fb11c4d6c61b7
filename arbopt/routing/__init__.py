"""Multi-hop, multi-venue route search.

Module structure:
- config.py: RoutingConfig and per-call RouteOptions
- types.py: Hop, Route and evaluation result types
- generation.py: candidate route enumeration
- evaluator.py: RouteEvaluator (quote, score, cache and select routes)
"""

from arbopt.routing.config import DEFAULT_ROUTING_CONFIG, RouteOptions, RoutingConfig
from arbopt.routing.evaluator import RouteEvaluator
from arbopt.routing.generation import generate_routes
from arbopt.routing.types import (
    ArbitrageRoute,
    Hop,
    HopEvaluation,
    Route,
    RouteEvaluation,
    RouteRejection,
    RouterStats,
)

__all__ = [
    "DEFAULT_ROUTING_CONFIG",
    "ArbitrageRoute",
    "Hop",
    "HopEvaluation",
    "Route",
    "RouteEvaluation",
    "RouteEvaluator",
    "RouteOptions",
    "RouteRejection",
    "RouterStats",
    "RoutingConfig",
    "generate_routes",
]
