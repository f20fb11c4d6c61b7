"""Data models for quotes, opportunities and fee optimization."""

from arbopt.models.opportunity import NetProfitEstimate, Opportunity
from arbopt.models.optimization import (
    FALLBACK_STRATEGY,
    AppliedOptimization,
    FeeEstimate,
    FeeEstimateModel,
    FeeSource,
    OptimizationRequest,
    OptimizationResult,
    OptimizationStatus,
    Savings,
)
from arbopt.models.quotes import BlockInfo, FeeData, PriceQuote, SwapQuote
from arbopt.models.types import Address, PositiveAmount, is_valid_address, normalize_address

__all__ = [
    # Types
    "Address",
    "PositiveAmount",
    "is_valid_address",
    "normalize_address",
    # Market data
    "BlockInfo",
    "FeeData",
    "PriceQuote",
    "SwapQuote",
    # Detection
    "NetProfitEstimate",
    "Opportunity",
    # Optimization
    "FALLBACK_STRATEGY",
    "AppliedOptimization",
    "FeeEstimate",
    "FeeEstimateModel",
    "FeeSource",
    "OptimizationRequest",
    "OptimizationResult",
    "OptimizationStatus",
    "Savings",
]
