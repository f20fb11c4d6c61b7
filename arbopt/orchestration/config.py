"""Orchestrator configuration."""

from __future__ import annotations

from dataclasses import dataclass, field

from arbopt.strategies.catalog import RiskTolerance, StrategyKind


def _default_limit_buffers() -> dict[RiskTolerance, float]:
    return {
        RiskTolerance.LOW: 0.25,
        RiskTolerance.MEDIUM: 0.15,
        RiskTolerance.HIGH: 0.08,
    }


@dataclass(frozen=True)
class OrchestratorConfig:
    """Targets, multipliers and thresholds for optimization plans.

    Gas prices are in gwei, costs and trade values in USD, margins are fractions
    of trade value.
    """

    # Plan targets
    max_gas_cost_ratio: float = 0.02
    max_execution_time_seconds: float = 30.0
    savings_target: float = 0.3
    success_savings_percentage: float = 5.0
    fallback_order: tuple[StrategyKind, ...] = (
        StrategyKind.BALANCED_OPTIMIZATION,
        StrategyKind.AGGRESSIVE_SAVINGS,
    )

    # Gas estimation
    history_estimation_confidence: float = 0.6
    min_history_samples: int = 3
    history_estimation_window: int = 10
    estimator_confidence: float = 0.9
    estimator_timeout_seconds: float = 2.0
    gas_usage_history_size: int = 100

    # Price optimization
    cost_price_multiplier: float = 0.85
    cost_priority_multiplier: float = 0.8
    speed_price_multiplier: float = 1.2
    speed_priority_multiplier: float = 1.5
    profit_high_margin: float = 0.02
    profit_high_multiplier: float = 1.1
    profit_low_margin: float = 0.005
    profit_low_multiplier: float = 0.9

    # Gas limit optimization
    limit_buffers: dict[RiskTolerance, float] = field(default_factory=_default_limit_buffers)
    congestion_buffer_adjustment: float = 0.05
    complexity_buffer_weight: float = 0.1
    base_complexity: float = 0.1
    complexity_per_extra_hop: float = 0.15
    flash_loan_complexity: float = 0.2

    # Savings baseline: an unoptimized transaction at a padded live price
    baseline_gas_limit: int = 500_000
    baseline_price_multiplier: float = 1.25
    baseline_fallback_gas_price: float = 25.0
    native_token_price_usd: float = 2000.0

    # Refinements
    timing_volatility_threshold: float = 0.3
    mev_trade_value_threshold: float = 50_000.0
    mev_margin_threshold: float = 0.01
    mev_priority_multiplier: float = 1.5


# Default configuration instance
DEFAULT_ORCHESTRATOR_CONFIG = OrchestratorConfig()
