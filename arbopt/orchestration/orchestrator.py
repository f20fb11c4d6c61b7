"""Fee optimization orchestration.

Requests are serialized through a single-worker queue: exactly one optimization
runs at a time and results complete in submission order. Every submission
resolves to an ``OptimizationResult``; failures on the primary path produce the
FALLBACK result rather than an exception.
"""

from __future__ import annotations

import asyncio
import time
from collections import Counter, deque
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from arbopt.errors import DataUnavailable, OptimizationFailure
from arbopt.fees.config import CongestionLevel
from arbopt.models.optimization import (
    AppliedOptimization,
    FeeEstimate,
    FeeEstimateModel,
    FeeSource,
    OptimizationRequest,
    OptimizationResult,
    OptimizationStatus,
    Savings,
)
from arbopt.orchestration.config import DEFAULT_ORCHESTRATOR_CONFIG, OrchestratorConfig
from arbopt.orchestration.plan import (
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
from arbopt.sources import call_with_timeout
from arbopt.strategies.catalog import RiskTolerance, Strategy, StrategyKind
from arbopt.strategies.selector import MarketConditions, StrategySelector

if TYPE_CHECKING:
    from arbopt.fees.predictor import FeeParameterPredictor
    from arbopt.sources import GasEstimator

logger = structlog.get_logger()

CompletionListener = Callable[[OptimizationResult], None]


@dataclass(frozen=True)
class GasEstimation:
    """Combined gas limit from all estimation methods that succeeded."""

    gas_limit: int
    confidence: float
    methods: tuple[str, ...]
    prediction: FeeEstimate | None


@dataclass(frozen=True)
class _MethodEstimate:
    method: str
    gas_limit: float
    confidence: float


class OptimizationOrchestrator:
    """Selects a strategy and computes fee parameters for each request.

    Args:
        predictor: Fee predictor; also the gateway to chain data
        selector: Strategy selection policy
        config: Plan targets, multipliers and thresholds
        gas_estimator: Optional external gas simulation
    """

    def __init__(
        self,
        predictor: FeeParameterPredictor,
        selector: StrategySelector | None = None,
        config: OrchestratorConfig = DEFAULT_ORCHESTRATOR_CONFIG,
        gas_estimator: GasEstimator | None = None,
    ) -> None:
        self.predictor = predictor
        self.selector = selector if selector is not None else StrategySelector()
        self.config = config
        self.gas_estimator = gas_estimator
        self.stats = OptimizationStats(config.success_savings_percentage)

        self._listeners: list[CompletionListener] = []
        self._gas_usage: deque[int] = deque(maxlen=config.gas_usage_history_size)
        self._queued_pairs: Counter[str] = Counter()
        self._queue: asyncio.Queue[OptimizationJob] | None = None
        self._worker: asyncio.Task[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._current: OptimizationJob | None = None

    def add_completion_listener(self, listener: CompletionListener) -> None:
        """Register a callable invoked with every completed result."""
        self._listeners.append(listener)

    def remove_completion_listener(self, listener: CompletionListener) -> None:
        self._listeners.remove(listener)

    def record_gas_usage(self, gas_used: int) -> None:
        """Feed back the gas actually used by an executed transaction."""
        if gas_used > 0:
            self._gas_usage.append(gas_used)

    def _notify(self, result: OptimizationResult) -> None:
        for listener in list(self._listeners):
            try:
                listener(result)
            except Exception:
                logger.exception(
                    "completion_listener_failed",
                    plan_id=result.plan_id,
                    listener=getattr(listener, "__name__", repr(listener)),
                )

    def record_result(self, result: OptimizationResult) -> None:
        """Update aggregates for a completed attempt and notify listeners."""
        self.stats.record(result)
        self._notify(result)

    async def analyze_conditions(self, warnings: list[str] | None = None) -> MarketConditions:
        """Current market conditions, or assumed medium conditions on failure."""
        try:
            block, fee_data = await asyncio.gather(
                self.predictor.fetch_latest_block(),
                self.predictor.fetch_fee_data(),
            )
        except DataUnavailable as e:
            logger.warning("market_conditions_unavailable", source=e.source, detail=e.detail)
            if warnings is not None:
                warnings.append(f"Market conditions unavailable ({e}); assuming medium congestion")
            return MarketConditions.assumed()

        pcfg = self.predictor.config
        congestion = self.predictor.classify_congestion(block.utilization)
        return MarketConditions(
            congestion=congestion,
            gas_utilization=block.utilization,
            base_fee=fee_data.base_fee,
            priority_fee=fee_data.priority_fee,
            volatility=self.predictor.history.volatility(
                pcfg.volatility_window, pcfg.default_volatility
            ),
            recommended_strategy=self.selector.recommend(congestion),
        )

    def select_strategy(
        self,
        request: OptimizationRequest,
        conditions: MarketConditions,
        override: StrategyKind | str | None = None,
    ) -> Strategy:
        return self.selector.select_strategy(request, conditions, override)

    def create_plan(
        self,
        request: OptimizationRequest,
        strategy: Strategy,
        conditions: MarketConditions,
        *,
        refinements: bool = True,
    ) -> OptimizationPlan:
        """Plan with the primary steps, followed by the refinements when enabled."""
        targets = PlanTargets(
            max_gas_cost=request.amount_in * self.config.max_gas_cost_ratio,
            min_profit_margin=strategy.profit_threshold,
            max_execution_time=self.config.max_execution_time_seconds,
            savings_target=self.config.savings_target,
        )
        fallbacks = [k for k in self.config.fallback_order if k != strategy.kind]
        return OptimizationPlan(
            strategy=strategy,
            request=request,
            conditions=conditions,
            targets=targets,
            steps=PRIMARY_STEPS + REFINEMENT_STEPS if refinements else PRIMARY_STEPS,
            fallbacks=fallbacks,
        )

    async def estimate_gas(self, plan: OptimizationPlan, warnings: list[str]) -> GasEstimation:
        """Confidence-weighted gas limit from prediction, history and simulation.

        A failing method is skipped with a warning.

        Raises:
            OptimizationFailure: If no method produced an estimate
        """
        request = plan.request
        estimates: list[_MethodEstimate] = []
        prediction: FeeEstimate | None = None

        try:
            prediction = await self.predictor.estimate(request.amount_in, request.profit_margin)
        except Exception as e:
            logger.warning("gas_prediction_failed", plan_id=plan.id, error=str(e))
            warnings.append(f"Fee prediction failed: {e}")
        else:
            if prediction.source == FeeSource.FALLBACK:
                warnings.append("Fee prediction used fallback parameters")
            estimates.append(
                _MethodEstimate("prediction", prediction.gas_limit, prediction.confidence)
            )

        if len(self._gas_usage) >= self.config.min_history_samples:
            recent = list(self._gas_usage)[-self.config.history_estimation_window :]
            estimates.append(
                _MethodEstimate(
                    "history",
                    sum(recent) / len(recent),
                    self.config.history_estimation_confidence,
                )
            )

        if self.gas_estimator is not None:
            try:
                simulated = await call_with_timeout(
                    "estimate_gas",
                    self.gas_estimator.estimate_gas(request),
                    self.config.estimator_timeout_seconds,
                )
            except DataUnavailable as e:
                logger.warning("gas_simulation_failed", plan_id=plan.id, detail=e.detail)
                warnings.append(f"Gas simulation failed: {e}")
            else:
                estimates.append(
                    _MethodEstimate("simulation", simulated, self.config.estimator_confidence)
                )

        total_weight = sum(e.confidence for e in estimates)
        if not estimates or total_weight <= 0:
            raise OptimizationFailure("All gas estimation methods failed")

        gas_limit = sum(e.gas_limit * e.confidence for e in estimates) / total_weight
        return GasEstimation(
            gas_limit=round(gas_limit),
            confidence=total_weight / len(estimates),
            methods=tuple(e.method for e in estimates),
            prediction=prediction,
        )

    def _strategy_multipliers(self, plan: OptimizationPlan) -> tuple[float, float]:
        """(gas price, priority fee) multipliers for the plan's strategy."""
        cfg = self.config
        match plan.strategy.kind:
            case StrategyKind.AGGRESSIVE_SAVINGS:
                return cfg.cost_price_multiplier, cfg.cost_priority_multiplier
            case StrategyKind.BALANCED_OPTIMIZATION:
                return 1.0, 1.0
            case StrategyKind.SPEED_PRIORITIZED:
                return cfg.speed_price_multiplier, cfg.speed_priority_multiplier
            case StrategyKind.PROFIT_MAXIMIZATION:
                margin = plan.request.profit_margin
                if margin > cfg.profit_high_margin:
                    return cfg.profit_high_multiplier, cfg.profit_high_multiplier
                if margin < cfg.profit_low_margin:
                    return cfg.profit_low_multiplier, cfg.profit_low_multiplier
                return 1.0, 1.0

    def _bound_price(
        self, strategy: Strategy, gas_price: float, priority_fee: float
    ) -> tuple[float, float]:
        pcfg = self.predictor.config
        cap = min(strategy.max_gas_price, pcfg.max_gas_price)
        price = max(pcfg.min_gas_price, min(gas_price, cap))
        priority = max(pcfg.min_priority_fee, min(priority_fee, pcfg.max_priority_fee))
        if priority > price * pcfg.max_priority_ratio:
            priority = price * pcfg.reset_priority_ratio
        return price, priority

    async def optimize_price(
        self,
        plan: OptimizationPlan,
        estimation: GasEstimation,
        warnings: list[str],
    ) -> tuple[FeeEstimate, FeeEstimate | None]:
        """Gas price and priority fee for the plan's strategy.

        Returns:
            The priced estimate and the live parameters it was blended with

        Raises:
            OptimizationFailure: If live fee data is unavailable
        """
        live = await self.predictor.live_parameters(estimation.gas_limit)
        if live is None:
            raise OptimizationFailure("Live fee data unavailable for price optimization")

        prediction = estimation.prediction
        if prediction is not None:
            base = self.predictor.blend(prediction, live)
        else:
            base = live
            warnings.append("No fee prediction; pricing from live data only")

        price_multiplier, priority_multiplier = self._strategy_multipliers(plan)
        price, priority = self._bound_price(
            plan.strategy,
            base.gas_price * price_multiplier,
            base.priority_fee * priority_multiplier,
        )
        priced = FeeEstimate(
            gas_limit=estimation.gas_limit,
            gas_price=price,
            priority_fee=priority,
            confidence=base.confidence,
            source=base.source,
        )
        return priced, live

    def transaction_complexity(self, request: OptimizationRequest) -> float:
        """Complexity score in [0, 1] from hop count and flash loan use."""
        cfg = self.config
        score = cfg.base_complexity + cfg.complexity_per_extra_hop * (request.hop_count - 1)
        if request.uses_flash_loan:
            score += cfg.flash_loan_complexity
        return min(score, 1.0)

    def limit_buffer(self, plan: OptimizationPlan) -> float:
        """Safety buffer added to the estimated gas limit, as a fraction."""
        cfg = self.config
        buffer = cfg.limit_buffers.get(
            plan.strategy.risk_tolerance, cfg.limit_buffers[RiskTolerance.MEDIUM]
        )
        congestion = plan.conditions.congestion
        if congestion in (CongestionLevel.HIGH, CongestionLevel.CRITICAL):
            buffer += cfg.congestion_buffer_adjustment
        elif congestion == CongestionLevel.LOW:
            buffer -= cfg.congestion_buffer_adjustment
        buffer += self.transaction_complexity(plan.request) * cfg.complexity_buffer_weight
        return max(buffer, 0.0)

    def optimize_limit(self, plan: OptimizationPlan, gas_limit: int) -> tuple[int, float]:
        """Buffered gas limit within predictor bounds, and the buffer used."""
        pcfg = self.predictor.config
        buffer = self.limit_buffer(plan)
        limit = round(gas_limit * (1 + buffer))
        return max(pcfg.min_gas_limit, min(limit, pcfg.max_gas_limit)), buffer

    def calculate_savings(
        self,
        plan: OptimizationPlan,
        final: FeeEstimate,
        live: FeeEstimate | None,
    ) -> Savings:
        """Savings against an unoptimized transaction, in USD."""
        cfg = self.config
        live_price = live.gas_price if live is not None else cfg.baseline_fallback_gas_price
        baseline_gwei = cfg.baseline_gas_limit * live_price * cfg.baseline_price_multiplier
        baseline = baseline_gwei * 1e-9 * cfg.native_token_price_usd
        optimized = final.gas_limit * final.gas_price * 1e-9 * cfg.native_token_price_usd
        absolute = baseline - optimized
        percentage = absolute / baseline * 100 if baseline > 0 else 0.0
        target = plan.targets.savings_target * 100
        return Savings(
            baseline=baseline,
            optimized=optimized,
            absolute=absolute,
            percentage=percentage,
            target=target,
            achieved=percentage >= target,
        )

    def _timing(self, plan: OptimizationPlan) -> AppliedOptimization | None:
        conditions = plan.conditions
        busy = conditions.congestion in (CongestionLevel.HIGH, CongestionLevel.CRITICAL)
        if not (busy and conditions.volatility > self.config.timing_volatility_threshold):
            return None
        return AppliedOptimization(
            step=OptimizationStep.TIMING_OPTIMIZATION.value,
            details={
                "recommendation": "delay",
                "delay_blocks": 1 if conditions.congestion == CongestionLevel.HIGH else 2,
                "volatility": conditions.volatility,
                "congestion": conditions.congestion.value,
            },
        )

    def _batch(self, plan: OptimizationPlan) -> AppliedOptimization | None:
        pair = plan.request.pair_key
        waiting = self._queued_pairs.get(pair, 0)
        if waiting <= 0:
            return None
        return AppliedOptimization(
            step=OptimizationStep.BATCH_ANALYSIS.value,
            details={"pair": pair, "batchable_requests": waiting},
        )

    def _refinement_failed(
        self,
        plan: OptimizationPlan,
        step: OptimizationStep,
        error: Exception,
        warnings: list[str],
    ) -> None:
        logger.warning("refinement_failed", plan_id=plan.id, step=step.value, error=str(error))
        warnings.append(f"{step.value} failed: {error}")

    def _mev(
        self, plan: OptimizationPlan, fee: FeeEstimate
    ) -> tuple[FeeEstimate, AppliedOptimization | None]:
        cfg = self.config
        request = plan.request
        exposed = (
            request.amount_in >= cfg.mev_trade_value_threshold
            or request.profit_margin > cfg.mev_margin_threshold
        )
        if not exposed:
            return fee, None
        price, priority = self._bound_price(
            plan.strategy, fee.gas_price, fee.priority_fee * cfg.mev_priority_multiplier
        )
        protected = FeeEstimate(
            gas_limit=fee.gas_limit,
            gas_price=price,
            priority_fee=priority,
            confidence=fee.confidence,
            source=fee.source,
        )
        applied = AppliedOptimization(
            step=OptimizationStep.MEV_PROTECTION.value,
            details={
                "private_mempool": True,
                "priority_fee_before": fee.priority_fee,
                "priority_fee_after": priority,
            },
        )
        return protected, applied

    def _refine(
        self, step: OptimizationStep, plan: OptimizationPlan, fee: FeeEstimate
    ) -> tuple[FeeEstimate, AppliedOptimization | None]:
        match step:
            case OptimizationStep.TIMING_OPTIMIZATION:
                return fee, self._timing(plan)
            case OptimizationStep.BATCH_ANALYSIS:
                return fee, self._batch(plan)
            case OptimizationStep.MEV_PROTECTION:
                return self._mev(plan, fee)
        return fee, None

    async def _execute_primary(
        self, plan: OptimizationPlan, warnings: list[str]
    ) -> OptimizationResult:
        applied: list[AppliedOptimization] = []

        estimation = await self.estimate_gas(plan, warnings)
        applied.append(
            AppliedOptimization(
                step=OptimizationStep.GAS_ESTIMATION.value,
                details={
                    "gas_limit": estimation.gas_limit,
                    "confidence": estimation.confidence,
                    "methods": list(estimation.methods),
                },
            )
        )

        priced, live = await self.optimize_price(plan, estimation, warnings)
        applied.append(
            AppliedOptimization(
                step=OptimizationStep.PRICE_OPTIMIZATION.value,
                details={
                    "gas_price": priced.gas_price,
                    "priority_fee": priced.priority_fee,
                    "source": priced.source.value,
                },
            )
        )

        gas_limit, buffer = self.optimize_limit(plan, estimation.gas_limit)
        applied.append(
            AppliedOptimization(
                step=OptimizationStep.LIMIT_OPTIMIZATION.value,
                details={"gas_limit": gas_limit, "buffer": buffer},
            )
        )
        final = FeeEstimate(
            gas_limit=gas_limit,
            gas_price=priced.gas_price,
            priority_fee=priced.priority_fee,
            confidence=priced.confidence,
            source=priced.source,
        )

        for step in plan.steps:
            if step not in REFINEMENT_STEPS:
                continue
            try:
                final, refinement = self._refine(step, plan, final)
            except Exception as e:
                self._refinement_failed(plan, step, e, warnings)
                continue
            if refinement is not None:
                applied.append(refinement)

        savings = self.calculate_savings(plan, final, live)
        if savings.optimized > plan.targets.max_gas_cost:
            warnings.append(
                f"Gas cost {savings.optimized:.2f} exceeds target {plan.targets.max_gas_cost:.2f}"
            )

        return OptimizationResult(
            plan_id=plan.id,
            strategy=plan.strategy.name,
            status=OptimizationStatus.COMPLETED,
            gas_params=FeeEstimateModel.from_estimate(final),
            savings=savings,
            optimizations=applied,
            warnings=warnings,
            fallback_used=False,
            fallbacks=[k.value for k in plan.fallbacks],
        )

    async def execute(
        self, plan: OptimizationPlan, warnings: list[str] | None = None
    ) -> OptimizationResult:
        """Run a plan. Never raises; primary path failures yield FALLBACK."""
        warnings = list(warnings or [])
        started = time.perf_counter()
        try:
            result = await self._execute_primary(plan, warnings)
        except Exception as e:
            logger.warning(
                "optimization_fallback",
                plan_id=plan.id,
                strategy=plan.strategy.name,
                error=str(e),
            )
            result = OptimizationResult.fallback(
                plan.id,
                self.predictor.fallback_estimate(),
                str(e),
                warnings=warnings,
                fallbacks=[k.value for k in plan.fallbacks],
            )
        result.elapsed_ms = (time.perf_counter() - started) * 1000
        return result

    async def _optimize(
        self, request: OptimizationRequest, options: OptimizeOptions
    ) -> OptimizationResult:
        warnings: list[str] = []
        conditions = await self.analyze_conditions(warnings)
        strategy = self.select_strategy(request, conditions, options.strategy)
        plan = self.create_plan(
            request, strategy, conditions, refinements=options.refinements
        )
        logger.info(
            "optimization_started",
            plan_id=plan.id,
            strategy=strategy.name,
            congestion=conditions.congestion.value,
            amount_in=request.amount_in,
        )
        return await self.execute(plan, warnings)

    async def _process(self, job: OptimizationJob) -> OptimizationResult:
        job.status = JobStatus.RUNNING
        self._current = job
        request = job.request
        if request is not None:
            self._queued_pairs[request.pair_key] -= 1
            if self._queued_pairs[request.pair_key] <= 0:
                del self._queued_pairs[request.pair_key]

        try:
            if request is None:
                result = OptimizationResult.fallback(
                    f"plan_{job.id}",
                    self.predictor.fallback_estimate(),
                    job.error or "Invalid request",
                )
            else:
                result = await self._optimize(request, job.options)
        except Exception as e:
            logger.exception("optimization_error", job_id=job.id)
            result = OptimizationResult.fallback(
                f"plan_{job.id}", self.predictor.fallback_estimate(), str(e)
            )
        finally:
            self._current = None

        self._complete(job, result)
        return result

    def _complete(self, job: OptimizationJob, result: OptimizationResult) -> None:
        job.status = (
            JobStatus.FALLBACK_COMPLETED if result.fallback_used else JobStatus.COMPLETED
        )
        self.record_result(result)
        logger.info(
            "optimization_completed",
            job_id=job.id,
            plan_id=result.plan_id,
            strategy=result.strategy,
            status=job.status.value,
            savings_percentage=round(result.savings.percentage, 2),
            elapsed_ms=round(result.elapsed_ms, 2),
        )
        if not job.future.done():
            job.future.set_result(result)

    def _ensure_worker(self) -> asyncio.Queue[OptimizationJob]:
        # Queues are bound to the loop that created them
        loop = asyncio.get_running_loop()
        if self._queue is None or self._loop is not loop:
            self._queue = asyncio.Queue()
            self._loop = loop
            self._worker = None
            self._queued_pairs.clear()
        if self._worker is None or self._worker.done():
            self._worker = loop.create_task(self._drain(self._queue), name="arbopt-optimizer")
        return self._queue

    async def _drain(self, queue: asyncio.Queue[OptimizationJob]) -> None:
        while True:
            job = await queue.get()
            try:
                await self._process(job)
            finally:
                queue.task_done()

    def submit(
        self,
        request: OptimizationRequest | Mapping[str, Any],
        options: OptimizeOptions | None = None,
    ) -> OptimizationJob:
        """Queue a request and return its handle. Must be called from a running loop.

        Invalid requests are queued like any other and resolve to a FALLBACK
        result when their turn comes.
        """
        loop = asyncio.get_running_loop()
        options = options or OptimizeOptions()
        future: asyncio.Future[OptimizationResult] = loop.create_future()

        error: str | None = None
        if not isinstance(request, OptimizationRequest):
            try:
                request = OptimizationRequest.model_validate(request)
            except ValidationError as e:
                logger.warning("invalid_optimization_request", errors=e.error_count())
                request, error = None, f"Invalid request: {e}"

        job = OptimizationJob(request=request, options=options, future=future, error=error)
        queue = self._ensure_worker()
        if request is not None:
            self._queued_pairs[request.pair_key] += 1
        queue.put_nowait(job)
        logger.debug("optimization_queued", job_id=job.id, queue_depth=queue.qsize())
        return job

    async def optimize_transaction(
        self,
        request: OptimizationRequest | Mapping[str, Any],
        options: OptimizeOptions | None = None,
    ) -> OptimizationResult:
        """Optimize fee parameters for a trade. Never raises.

        Concurrent calls are serviced one at a time in submission order.
        """
        job = self.submit(request, options)
        return await asyncio.shield(job.future)

    @property
    def queue_depth(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    @property
    def in_flight(self) -> bool:
        return self._current is not None

    def get_stats(self) -> StatsSnapshot:
        return self.stats.snapshot(queue_depth=self.queue_depth)

    async def close(self) -> None:
        """Stop the worker. Unfinished jobs resolve to FALLBACK results."""
        worker, queue, current = self._worker, self._queue, self._current
        self._worker = None
        if worker is not None and not worker.done():
            worker.cancel()
            try:
                await worker
            except asyncio.CancelledError:
                pass

        unfinished: list[OptimizationJob] = []
        if current is not None and not current.status.is_terminal:
            unfinished.append(current)
        if queue is not None:
            while not queue.empty():
                unfinished.append(queue.get_nowait())
                queue.task_done()
        for job in unfinished:
            self._complete(
                job,
                OptimizationResult.fallback(
                    f"plan_{job.id}",
                    self.predictor.fallback_estimate(),
                    "Orchestrator closed before the request completed",
                ),
            )

        self._queue = None
        self._loop = None
        self._current = None
        self._queued_pairs.clear()

    async def __aenter__(self) -> OptimizationOrchestrator:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


__all__ = ["CompletionListener", "GasEstimation", "OptimizationOrchestrator"]
