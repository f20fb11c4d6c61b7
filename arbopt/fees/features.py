"""Prediction features derived from network signals and fee history."""

from __future__ import annotations

from dataclasses import dataclass

from arbopt.fees.config import DEFAULT_PREDICTOR_CONFIG, CongestionLevel, PredictorConfig


@dataclass(frozen=True)
class FeeFeatures:
    """Inputs to fee prediction.

    Attributes:
        gas_utilization: Gas used as a percentage of the block gas limit
        base_fee: Current base fee in gwei
        priority_fee: Current priority fee in gwei
        congestion: Congestion level derived from utilization
        trade_size: Trade value in USD
        expected_profit: Expected profit as a fraction of trade value
        recent_gas_usage: Mean gas used by recent blocks
        volatility: Coefficient of variation of recent base fees
        history_points: Size of the history window at extraction time
        block_number: Latest block number
        block_age_seconds: Seconds since the latest block
    """

    gas_utilization: float
    base_fee: float
    priority_fee: float
    congestion: CongestionLevel
    trade_size: float
    expected_profit: float
    recent_gas_usage: float
    volatility: float
    history_points: int = 0
    block_number: int = 0
    block_age_seconds: float = 0.0


def classify_congestion(
    utilization: float,
    config: PredictorConfig = DEFAULT_PREDICTOR_CONFIG,
) -> CongestionLevel:
    """Map block gas utilization (percent) to a congestion level."""
    if utilization >= config.critical_utilization:
        return CongestionLevel.CRITICAL
    if utilization >= config.high_congestion_utilization:
        return CongestionLevel.HIGH
    if utilization >= config.medium_congestion_utilization:
        return CongestionLevel.MEDIUM
    return CongestionLevel.LOW


__all__ = ["FeeFeatures", "classify_congestion"]
