"""Strategy-driven fee optimization with a single-worker request queue.

Module structure:
- config.py: OrchestratorConfig (targets, multipliers, refinement thresholds)
- plan.py: OptimizationPlan, steps, options and job handles
- stats.py: running aggregates over completed attempts
- orchestrator.py: OptimizationOrchestrator
"""

from arbopt.orchestration.config import DEFAULT_ORCHESTRATOR_CONFIG, OrchestratorConfig
from arbopt.orchestration.orchestrator import (
    CompletionListener,
    GasEstimation,
    OptimizationOrchestrator,
)
from arbopt.orchestration.plan import (
    PLAN_STEPS,
    PRIMARY_STEPS,
    REFINEMENT_STEPS,
    JobStatus,
    OptimizationJob,
    OptimizationPlan,
    OptimizationStep,
    OptimizeOptions,
    PlanTargets,
)
from arbopt.orchestration.stats import OptimizationStats, StatsSnapshot

__all__ = [
    "DEFAULT_ORCHESTRATOR_CONFIG",
    "OrchestratorConfig",
    "CompletionListener",
    "GasEstimation",
    "OptimizationOrchestrator",
    "PLAN_STEPS",
    "PRIMARY_STEPS",
    "REFINEMENT_STEPS",
    "JobStatus",
    "OptimizationJob",
    "OptimizationPlan",
    "OptimizationStep",
    "OptimizeOptions",
    "PlanTargets",
    "OptimizationStats",
    "StatsSnapshot",
]
