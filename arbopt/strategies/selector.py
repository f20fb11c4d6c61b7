"""Strategy selection by override, market recommendation or trade bands."""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from arbopt.fees.config import CongestionLevel
from arbopt.models.optimization import OptimizationRequest
from arbopt.strategies.catalog import Strategy, StrategyKind, get_strategy, parse_strategy_kind

logger = structlog.get_logger()


@dataclass(frozen=True)
class SelectionBands:
    """Trade value and profit margin bands for rule-based selection.

    Attributes:
        large_trade_value: Trade value (USD) above which speed is considered
        speed_margin: Margin above which large trades prioritize speed
        low_margin: Margin below which costs are minimized
        high_margin: Margin above which profit is maximized
    """

    large_trade_value: float = 100_000.0
    speed_margin: float = 0.02
    low_margin: float = 0.005
    high_margin: float = 0.015


def _default_recommendations() -> dict[CongestionLevel, StrategyKind]:
    return {CongestionLevel.CRITICAL: StrategyKind.AGGRESSIVE_SAVINGS}


@dataclass(frozen=True)
class SelectorConfig:
    """Selection policy.

    Attributes:
        bands: Rule-based selection bands
        congestion_recommendations: Strategy recommended by market conditions
            at each congestion level; levels not listed give no recommendation
    """

    bands: SelectionBands = field(default_factory=SelectionBands)
    congestion_recommendations: dict[CongestionLevel, StrategyKind] = field(
        default_factory=_default_recommendations
    )


@dataclass(frozen=True)
class MarketConditions:
    """Network state used to pick and tune a strategy.

    ``available`` is False when chain data could not be fetched and the
    conditions are assumed defaults.
    """

    congestion: CongestionLevel = CongestionLevel.MEDIUM
    gas_utilization: float = 50.0
    base_fee: float | None = None
    priority_fee: float | None = None
    volatility: float = 0.1
    recommended_strategy: StrategyKind | None = None
    available: bool = True

    @classmethod
    def assumed(cls) -> MarketConditions:
        """Default conditions used when chain data is unavailable."""
        return cls(available=False)


# Default configuration instance
DEFAULT_SELECTOR_CONFIG = SelectorConfig()


class StrategySelector:
    """Chooses a strategy for an optimization request."""

    def __init__(self, config: SelectorConfig = DEFAULT_SELECTOR_CONFIG) -> None:
        self.config = config

    def recommend(self, congestion: CongestionLevel) -> StrategyKind | None:
        """Strategy recommended for a congestion level, if any."""
        return self.config.congestion_recommendations.get(congestion)

    def select_by_bands(self, trade_value: float, profit_margin: float) -> StrategyKind:
        bands = self.config.bands
        if trade_value > bands.large_trade_value and profit_margin > bands.speed_margin:
            return StrategyKind.SPEED_PRIORITIZED
        if profit_margin < bands.low_margin:
            return StrategyKind.AGGRESSIVE_SAVINGS
        if profit_margin > bands.high_margin:
            return StrategyKind.PROFIT_MAXIMIZATION
        return StrategyKind.BALANCED_OPTIMIZATION

    def select_strategy(
        self,
        request: OptimizationRequest,
        conditions: MarketConditions | None = None,
        override: StrategyKind | str | None = None,
    ) -> Strategy:
        """Pick a strategy.

        Precedence: a known override, then the market recommendation, then the
        trade value / profit margin bands. Unknown override names are ignored
        with a warning.

        Args:
            request: The trade being optimized
            conditions: Current market conditions
            override: Strategy forced by the caller

        Returns:
            The selected catalog strategy
        """
        if override is not None:
            kind = parse_strategy_kind(override)
            if kind is not None:
                logger.debug("strategy_override", strategy=kind.value)
                return get_strategy(kind)
            logger.warning("unknown_strategy_override", override=str(override))

        if conditions is not None and conditions.recommended_strategy is not None:
            logger.debug(
                "strategy_recommended",
                strategy=conditions.recommended_strategy.value,
                congestion=conditions.congestion.value,
            )
            return get_strategy(conditions.recommended_strategy)

        kind = self.select_by_bands(request.amount_in, request.profit_margin)
        logger.debug(
            "strategy_selected",
            strategy=kind.value,
            trade_value=request.amount_in,
            profit_margin=request.profit_margin,
        )
        return get_strategy(kind)


__all__ = [
    "DEFAULT_SELECTOR_CONFIG",
    "MarketConditions",
    "SelectionBands",
    "SelectorConfig",
    "StrategySelector",
]
