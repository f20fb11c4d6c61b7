"""Fee parameter prediction.

This module provides gas limit and fee price recommendations including:
- Rule-based prediction from network congestion, trade size and profit margin
- A rolling fee history for usage and volatility features
- Confidence-weighted blending with live network data
- A fixed fallback when network data is unavailable

Usage:
    from arbopt.fees import FeeParameterPredictor

    predictor = FeeParameterPredictor(chain=chain_source)
    estimate = await predictor.estimate(trade_size=50_000, expected_profit=0.01)
"""

from arbopt.fees.config import (
    DEFAULT_PREDICTOR_CONFIG,
    CongestionAdjustment,
    CongestionLevel,
    PredictorConfig,
)
from arbopt.fees.features import FeeFeatures, classify_congestion
from arbopt.fees.history import FeeDataPoint, FeeHistory
from arbopt.fees.predictor import FeeParameterPredictor

__all__ = [
    # Config
    "PredictorConfig",
    "DEFAULT_PREDICTOR_CONFIG",
    "CongestionAdjustment",
    "CongestionLevel",
    # Features and history
    "FeeFeatures",
    "classify_congestion",
    "FeeDataPoint",
    "FeeHistory",
    # Predictor
    "FeeParameterPredictor",
]
