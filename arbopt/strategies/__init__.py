"""Fee optimization strategies and their selection policy."""

from arbopt.strategies.catalog import (
    STRATEGIES,
    RiskTolerance,
    Strategy,
    StrategyKind,
    StrategyPriority,
    get_strategy,
    parse_strategy_kind,
)
from arbopt.strategies.selector import (
    DEFAULT_SELECTOR_CONFIG,
    MarketConditions,
    SelectionBands,
    SelectorConfig,
    StrategySelector,
)

__all__ = [
    # Catalog
    "STRATEGIES",
    "RiskTolerance",
    "Strategy",
    "StrategyKind",
    "StrategyPriority",
    "get_strategy",
    "parse_strategy_kind",
    # Selection
    "DEFAULT_SELECTOR_CONFIG",
    "MarketConditions",
    "SelectionBands",
    "SelectorConfig",
    "StrategySelector",
]
