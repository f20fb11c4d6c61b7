"""Fixed catalog of fee optimization strategies."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class StrategyKind(str, Enum):
    """The closed set of optimization strategies."""

    AGGRESSIVE_SAVINGS = "AGGRESSIVE_SAVINGS"
    BALANCED_OPTIMIZATION = "BALANCED_OPTIMIZATION"
    SPEED_PRIORITIZED = "SPEED_PRIORITIZED"
    PROFIT_MAXIMIZATION = "PROFIT_MAXIMIZATION"


class StrategyPriority(str, Enum):
    """What a strategy optimizes for."""

    COST_MINIMIZATION = "cost_minimization"
    BALANCED = "balanced"
    EXECUTION_SPEED = "execution_speed"
    PROFIT_OPTIMIZATION = "profit_optimization"


class RiskTolerance(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Strategy:
    """A named bundle of fee spending parameters.

    Attributes:
        kind: Catalog identity
        priority: What the strategy optimizes for
        risk_tolerance: Drives the gas limit safety buffer
        max_gas_price: Hard cap on the gas price in gwei
        profit_threshold: Minimum profit margin the plan targets
    """

    kind: StrategyKind
    priority: StrategyPriority
    risk_tolerance: RiskTolerance
    max_gas_price: float
    profit_threshold: float

    @property
    def name(self) -> str:
        return self.kind.value


STRATEGIES: dict[StrategyKind, Strategy] = {
    StrategyKind.AGGRESSIVE_SAVINGS: Strategy(
        kind=StrategyKind.AGGRESSIVE_SAVINGS,
        priority=StrategyPriority.COST_MINIMIZATION,
        risk_tolerance=RiskTolerance.LOW,
        max_gas_price=50.0,
        profit_threshold=0.001,
    ),
    StrategyKind.BALANCED_OPTIMIZATION: Strategy(
        kind=StrategyKind.BALANCED_OPTIMIZATION,
        priority=StrategyPriority.BALANCED,
        risk_tolerance=RiskTolerance.MEDIUM,
        max_gas_price=100.0,
        profit_threshold=0.005,
    ),
    StrategyKind.SPEED_PRIORITIZED: Strategy(
        kind=StrategyKind.SPEED_PRIORITIZED,
        priority=StrategyPriority.EXECUTION_SPEED,
        risk_tolerance=RiskTolerance.HIGH,
        max_gas_price=200.0,
        profit_threshold=0.01,
    ),
    StrategyKind.PROFIT_MAXIMIZATION: Strategy(
        kind=StrategyKind.PROFIT_MAXIMIZATION,
        priority=StrategyPriority.PROFIT_OPTIMIZATION,
        risk_tolerance=RiskTolerance.MEDIUM,
        max_gas_price=300.0,
        profit_threshold=0.002,
    ),
}


def get_strategy(kind: StrategyKind) -> Strategy:
    return STRATEGIES[kind]


def parse_strategy_kind(value: StrategyKind | str) -> StrategyKind | None:
    """Resolve a strategy kind from an enum member or a case-insensitive name.

    Returns:
        The kind, or None if the name is not in the catalog
    """
    if isinstance(value, StrategyKind):
        return value
    try:
        return StrategyKind(value.strip().upper())
    except ValueError:
        return None


__all__ = [
    "STRATEGIES",
    "RiskTolerance",
    "Strategy",
    "StrategyKind",
    "StrategyPriority",
    "get_strategy",
    "parse_strategy_kind",
]
