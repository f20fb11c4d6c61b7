"""Arbitrage opportunity detection, route search and fee optimization."""

__version__ = "0.1.0"

from arbopt.engine import ArbitrageEngine, EngineConfig  # noqa: E402
from arbopt.errors import (  # noqa: E402
    ArbOptError,
    ConfigurationError,
    DataUnavailable,
    NoRouteFound,
    OptimizationFailure,
)

__all__ = [
    "ArbOptError",
    "ArbitrageEngine",
    "ConfigurationError",
    "DataUnavailable",
    "EngineConfig",
    "NoRouteFound",
    "OptimizationFailure",
    "__version__",
]
