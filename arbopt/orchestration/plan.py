"""Optimization plans, steps and job handles."""

from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum

from arbopt.models.optimization import OptimizationRequest, OptimizationResult
from arbopt.strategies.catalog import Strategy, StrategyKind
from arbopt.strategies.selector import MarketConditions


class OptimizationStep(str, Enum):
    """Plan steps, in execution order."""

    GAS_ESTIMATION = "gas_estimation"
    PRICE_OPTIMIZATION = "price_optimization"
    LIMIT_OPTIMIZATION = "limit_optimization"
    TIMING_OPTIMIZATION = "timing_optimization"
    BATCH_ANALYSIS = "batch_analysis"
    MEV_PROTECTION = "mev_protection"


# A failure in any of these switches the whole attempt to the fallback result
PRIMARY_STEPS: tuple[OptimizationStep, ...] = (
    OptimizationStep.GAS_ESTIMATION,
    OptimizationStep.PRICE_OPTIMIZATION,
    OptimizationStep.LIMIT_OPTIMIZATION,
)

# Optional; a failure only adds a warning
REFINEMENT_STEPS: tuple[OptimizationStep, ...] = (
    OptimizationStep.TIMING_OPTIMIZATION,
    OptimizationStep.BATCH_ANALYSIS,
    OptimizationStep.MEV_PROTECTION,
)

PLAN_STEPS = PRIMARY_STEPS + REFINEMENT_STEPS


@dataclass(frozen=True)
class PlanTargets:
    """Constraints an optimization aims for.

    Attributes:
        max_gas_cost: Highest acceptable gas cost in USD
        min_profit_margin: Margin the strategy requires
        max_execution_time: Seconds within which the trade should land
        savings_target: Fraction of baseline cost to save (0.3 = 30%)
    """

    max_gas_cost: float
    min_profit_margin: float
    max_execution_time: float
    savings_target: float


def _new_plan_id() -> str:
    return f"plan_{uuid.uuid4().hex[:16]}"


@dataclass
class OptimizationPlan:
    """Everything needed to execute one optimization attempt."""

    strategy: Strategy
    request: OptimizationRequest
    conditions: MarketConditions
    targets: PlanTargets
    steps: tuple[OptimizationStep, ...] = PLAN_STEPS
    fallbacks: list[StrategyKind] = field(default_factory=list)
    id: str = field(default_factory=_new_plan_id)
    created_at: float = field(default_factory=time.time)


@dataclass(frozen=True)
class OptimizeOptions:
    """Per-call options for ``optimize_transaction``.

    Attributes:
        strategy: Strategy forced for this request (enum member or name)
        refinements: When False, only the primary steps run
    """

    strategy: StrategyKind | str | None = None
    refinements: bool = True


class JobStatus(str, Enum):
    """Lifecycle of a queued optimization: queued -> running -> terminal."""

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FALLBACK_COMPLETED = "fallback_completed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FALLBACK_COMPLETED)


@dataclass
class OptimizationJob:
    """Handle for a submitted optimization. Await ``future`` for the result.

    A request that failed validation is queued with ``request=None`` and the
    validation message in ``error``; it resolves to a FALLBACK result in turn.
    """

    request: OptimizationRequest | None
    options: OptimizeOptions
    future: asyncio.Future[OptimizationResult]
    error: str | None = None
    status: JobStatus = JobStatus.QUEUED
    id: str = field(default_factory=lambda: f"job_{uuid.uuid4().hex[:16]}")
    submitted_at: float = field(default_factory=time.time)


__all__ = [
    "PLAN_STEPS",
    "PRIMARY_STEPS",
    "REFINEMENT_STEPS",
    "JobStatus",
    "OptimizationJob",
    "OptimizationPlan",
    "OptimizationStep",
    "OptimizeOptions",
    "PlanTargets",
]
