"""Models for fee optimization requests and results.

``FeeEstimate`` is the internal immutable value passed between the predictor and
the orchestrator. ``OptimizationRequest`` and ``OptimizationResult`` cross the
engine boundary and are pydantic models with camelCase aliases.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from arbopt.models.types import PositiveAmount


class FeeSource(str, Enum):
    """Where a fee estimate came from."""

    PREDICTED = "predicted"
    LIVE = "live"
    BLENDED = "blended"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class FeeEstimate:
    """Gas parameters for one transaction.

    Prices are in gwei. ``confidence`` is in [0, 1] and is used as the weight of
    this estimate when blended with live data.
    """

    gas_limit: int
    gas_price: float
    priority_fee: float
    confidence: float
    source: FeeSource = FeeSource.PREDICTED

    @property
    def max_cost_native(self) -> float:
        """Upper bound on the fee in native units (gas_limit * gas_price)."""
        return self.gas_limit * self.gas_price * 1e-9


class OptimizationRequest(BaseModel):
    """A trade to optimize execution parameters for.

    ``amount_in`` is the trade value in USD and ``expected_profit`` the absolute
    expected profit in USD; their ratio is the profit margin used for strategy
    selection and fee prediction.
    """

    token_in: str = Field(alias="tokenIn", min_length=1)
    token_out: str = Field(alias="tokenOut", min_length=1)
    amount_in: PositiveAmount = Field(alias="amountIn", description="Trade value in USD")
    expected_profit: float = Field(default=0.0, alias="expectedProfit", ge=0)
    hop_count: int = Field(default=1, alias="hopCount", ge=1, le=4)
    venue_ids: list[str] = Field(default_factory=list, alias="venueIds")
    uses_flash_loan: bool = Field(default=False, alias="usesFlashLoan")
    pair: str | None = None

    model_config = {"populate_by_name": True}

    @property
    def profit_margin(self) -> float:
        """Expected profit as a fraction of trade value."""
        return self.expected_profit / self.amount_in

    @property
    def pair_key(self) -> str:
        """Pair identifier used to group batchable requests."""
        return self.pair or f"{self.token_in.lower()}/{self.token_out.lower()}"


class FeeEstimateModel(BaseModel):
    """Serializable view of a ``FeeEstimate``."""

    gas_limit: int = Field(alias="gasLimit")
    gas_price: float = Field(alias="gasPrice", description="Gas price in gwei")
    priority_fee: float = Field(alias="priorityFee", description="Priority fee in gwei")
    confidence: float = Field(ge=0, le=1)
    source: FeeSource

    model_config = {"populate_by_name": True}

    @classmethod
    def from_estimate(cls, estimate: FeeEstimate) -> FeeEstimateModel:
        return cls(
            gas_limit=estimate.gas_limit,
            gas_price=estimate.gas_price,
            priority_fee=estimate.priority_fee,
            confidence=estimate.confidence,
            source=estimate.source,
        )


class Savings(BaseModel):
    """Gas cost saved relative to an unoptimized baseline, in USD."""

    baseline: float = 0.0
    optimized: float = 0.0
    absolute: float = 0.0
    percentage: float = 0.0
    target: float = 0.0
    achieved: bool = False

    @classmethod
    def none(cls) -> Savings:
        return cls()


class AppliedOptimization(BaseModel):
    """One sub-optimization that contributed to the final parameters."""

    step: str
    details: dict[str, Any] = Field(default_factory=dict)


class OptimizationStatus(str, Enum):
    """Terminal state of an optimization job."""

    COMPLETED = "completed"
    FALLBACK_COMPLETED = "fallback_completed"


FALLBACK_STRATEGY = "FALLBACK"


class OptimizationResult(BaseModel):
    """Outcome of one optimization attempt. Always produced, never raised."""

    plan_id: str = Field(alias="planId")
    strategy: str = Field(description="Strategy name, or FALLBACK")
    status: OptimizationStatus
    gas_params: FeeEstimateModel = Field(alias="gasParams")
    savings: Savings = Field(default_factory=Savings)
    optimizations: list[AppliedOptimization] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    fallback_used: bool = Field(default=False, alias="fallbackUsed")
    error: str | None = None
    fallbacks: list[str] = Field(default_factory=list)
    elapsed_ms: float = Field(default=0.0, alias="elapsedMs")

    model_config = {"populate_by_name": True}

    @property
    def applied_steps(self) -> list[str]:
        return [o.step for o in self.optimizations]

    @classmethod
    def fallback(
        cls,
        plan_id: str,
        gas_params: FeeEstimate,
        error: str,
        *,
        warnings: list[str] | None = None,
        fallbacks: list[str] | None = None,
        elapsed_ms: float = 0.0,
    ) -> OptimizationResult:
        """Result used when the primary optimization path fails."""
        return cls(
            plan_id=plan_id,
            strategy=FALLBACK_STRATEGY,
            status=OptimizationStatus.FALLBACK_COMPLETED,
            gas_params=FeeEstimateModel.from_estimate(gas_params),
            savings=Savings.none(),
            warnings=list(warnings or []),
            fallback_used=True,
            error=error,
            fallbacks=list(fallbacks or []),
            elapsed_ms=elapsed_ms,
        )


__all__ = [
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
