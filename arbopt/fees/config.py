"""Fee predictor configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class CongestionLevel(str, Enum):
    """Network congestion classification by block gas utilization."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class CongestionAdjustment:
    """Multipliers applied to a prediction at one congestion level."""

    fee_multiplier: float
    priority_multiplier: float
    extra_gas: int = 0


def _default_congestion_adjustments() -> dict[CongestionLevel, CongestionAdjustment]:
    return {
        CongestionLevel.LOW: CongestionAdjustment(0.9, 0.8),
        CongestionLevel.MEDIUM: CongestionAdjustment(1.0, 1.0),
        CongestionLevel.HIGH: CongestionAdjustment(1.3, 2.0, 25_000),
        CongestionLevel.CRITICAL: CongestionAdjustment(1.5, 3.0, 50_000),
    }


@dataclass(frozen=True)
class PredictorConfig:
    """Rules, bounds and fallbacks for fee parameter prediction.

    Gas prices are in gwei. Utilization thresholds are percentages of the block
    gas limit. Profit margins are fractions of trade value.

    Attributes:
        confidence_weight: When set, replaces the computed confidence. The
            confidence is the weight of the prediction when blended with live
            data, so this pins the blend ratio.
    """

    # Gas limit
    base_gas_limit: int = 380_000
    large_trade_threshold: float = 100_000.0
    large_trade_extra_gas: int = 50_000
    very_large_trade_threshold: float = 500_000.0
    very_large_trade_extra_gas: int = 75_000

    # Priority fee before adjustments
    base_priority_fee: float = 2.0

    # Congestion classification and adjustments
    critical_utilization: float = 95.0
    high_congestion_utilization: float = 80.0
    medium_congestion_utilization: float = 50.0
    congestion_adjustments: dict[CongestionLevel, CongestionAdjustment] = field(
        default_factory=_default_congestion_adjustments
    )

    # Utilization adjustments
    high_utilization: float = 90.0
    high_utilization_fee_multiplier: float = 1.2
    high_utilization_extra_gas: int = 30_000
    low_utilization: float = 50.0
    low_utilization_fee_multiplier: float = 0.95

    # Profit band adjustments
    high_profit_margin: float = 0.02
    high_profit_fee_multiplier: float = 1.1
    high_profit_priority_multiplier: float = 1.2
    low_profit_margin: float = 0.005
    low_profit_fee_multiplier: float = 0.9
    low_profit_priority_multiplier: float = 0.9
    low_profit_gas_cap: int = 350_000

    # Output bounds
    min_gas_limit: int = 300_000
    max_gas_limit: int = 800_000
    min_gas_price: float = 1.0
    max_gas_price: float = 500.0
    min_priority_fee: float = 1.0
    max_priority_fee: float = 100.0
    max_priority_ratio: float = 0.5
    reset_priority_ratio: float = 0.3

    # Confidence scoring
    base_confidence: float = 0.5
    history_confidence_bonus: float = 0.2
    history_confidence_points: int = 50
    utilization_confidence_bonus: float = 0.1
    utilization_confidence_threshold: float = 80.0
    low_congestion_confidence_bonus: float = 0.1
    max_confidence: float = 0.95
    confidence_weight: float | None = None

    # Returned when feature extraction fails
    fallback_gas_limit: int = 400_000
    fallback_gas_price: float = 25.0
    fallback_priority_fee: float = 2.0
    fallback_confidence: float = 0.5

    # History-derived features
    recent_usage_window: int = 10
    default_recent_gas_usage: float = 400_000.0
    volatility_window: int = 20
    default_volatility: float = 0.1
    history_size: int = 1000

    source_timeout_seconds: float = 2.0

    def __post_init__(self) -> None:
        if self.confidence_weight is not None and not 0 <= self.confidence_weight <= 1:
            raise ValueError(f"confidence_weight must be in [0, 1], got {self.confidence_weight}")
        if self.min_gas_limit > self.max_gas_limit:
            raise ValueError("min_gas_limit must not exceed max_gas_limit")
        if self.min_gas_price > self.max_gas_price:
            raise ValueError("min_gas_price must not exceed max_gas_price")


# Default configuration instance
DEFAULT_PREDICTOR_CONFIG = PredictorConfig()
