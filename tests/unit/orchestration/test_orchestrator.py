"""Unit tests for fee optimization orchestration.

With the default fake chain (20 gwei base fee, 2 gwei priority fee, 50% block
utilization) a $10,000 trade at a 1% margin runs the balanced strategy:

- prediction: 380k gas at 20 gwei, confidence 0.6
- live: 22 gwei, blended 0.6/0.4 to 20.8 gwei
- limit: 380k * (1 + 0.15 medium risk + 0.01 complexity) = 440,800
"""

import asyncio

import pytest
import pytest_asyncio

from arbopt.fees import FeeDataPoint, FeeParameterPredictor
from arbopt.models.optimization import (
    FALLBACK_STRATEGY,
    FeeSource,
    OptimizationStatus,
)
from arbopt.models.quotes import FeeData
from arbopt.orchestration import (
    PRIMARY_STEPS,
    REFINEMENT_STEPS,
    JobStatus,
    OptimizationOrchestrator,
    OptimizationStep,
    OptimizeOptions,
)
from arbopt.strategies import MarketConditions, StrategyKind
from tests.helpers import USDC, WETH, FakeGasEstimator, make_request


class ExplodingPredictor(FeeParameterPredictor):
    """Predictor whose prediction path fails with an unexpected error."""

    async def estimate(self, trade_size, expected_profit):
        raise RuntimeError("model crashed")


class TrackingPredictor(FeeParameterPredictor):
    """Predictor that records how many estimates run at once."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.active = 0
        self.max_active = 0

    async def estimate(self, trade_size, expected_profit):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(0.01)
            return await super().estimate(trade_size, expected_profit)
        finally:
            self.active -= 1


class SelectivePredictor(FeeParameterPredictor):
    """Predictor that fails only for one trade size."""

    def __init__(self, *args, failing_size, **kwargs):
        super().__init__(*args, **kwargs)
        self.failing_size = failing_size

    async def estimate(self, trade_size, expected_profit):
        if trade_size == self.failing_size:
            raise RuntimeError("model crashed")
        return await super().estimate(trade_size, expected_profit)


@pytest_asyncio.fixture
async def orchestrator(predictor):
    orchestrator = OptimizationOrchestrator(predictor)
    yield orchestrator
    await orchestrator.close()


class TestOptimizeTransaction:
    @pytest.mark.asyncio
    async def test_balanced_result(self, orchestrator):
        result = await orchestrator.optimize_transaction(make_request())

        assert result.status == OptimizationStatus.COMPLETED
        assert result.strategy == StrategyKind.BALANCED_OPTIMIZATION.value
        assert result.fallback_used is False
        assert result.error is None
        assert result.warnings == []
        assert result.plan_id.startswith("plan_")
        assert result.fallbacks == [StrategyKind.AGGRESSIVE_SAVINGS.value]

        gas = result.gas_params
        assert gas.gas_limit == 440_800
        assert gas.gas_price == pytest.approx(20.8)
        assert gas.priority_fee == pytest.approx(2.0)
        assert gas.source == FeeSource.BLENDED

        assert result.applied_steps == [
            OptimizationStep.GAS_ESTIMATION.value,
            OptimizationStep.PRICE_OPTIMIZATION.value,
            OptimizationStep.LIMIT_OPTIMIZATION.value,
        ]

    @pytest.mark.asyncio
    async def test_savings_against_padded_baseline(self, orchestrator):
        """Baseline: 500k gas at 22 * 1.25 gwei = $27.50."""
        result = await orchestrator.optimize_transaction(make_request())

        savings = result.savings
        assert savings.baseline == pytest.approx(27.5)
        assert savings.optimized == pytest.approx(440_800 * 20.8e-9 * 2000)
        assert savings.absolute == pytest.approx(savings.baseline - savings.optimized)
        assert savings.percentage == pytest.approx(
            savings.absolute / savings.baseline * 100
        )
        assert savings.target == pytest.approx(30.0)
        assert savings.achieved is True

    @pytest.mark.asyncio
    async def test_strategy_override(self, orchestrator):
        result = await orchestrator.optimize_transaction(
            make_request(), OptimizeOptions(strategy="speed_prioritized")
        )

        assert result.strategy == StrategyKind.SPEED_PRIORITIZED.value
        assert result.gas_params.gas_price == pytest.approx(20.8 * 1.2)
        assert result.gas_params.priority_fee == pytest.approx(3.0)
        # high risk tolerance: 8% buffer + 1% complexity
        assert result.gas_params.gas_limit == 414_200

    @pytest.mark.asyncio
    async def test_aggressive_strategy_respects_price_cap(self, orchestrator, chain):
        chain.fee_data = FeeData(base_fee=200.0, priority_fee=2.0)

        result = await orchestrator.optimize_transaction(
            make_request(), OptimizeOptions(strategy=StrategyKind.AGGRESSIVE_SAVINGS)
        )

        assert result.gas_params.gas_price == 50.0

    @pytest.mark.asyncio
    async def test_critical_congestion_recommends_savings(self, orchestrator, chain):
        chain.set_utilization(97.0)

        result = await orchestrator.optimize_transaction(make_request())

        assert result.strategy == StrategyKind.AGGRESSIVE_SAVINGS.value
        assert result.fallbacks == [StrategyKind.BALANCED_OPTIMIZATION.value]

    @pytest.mark.asyncio
    async def test_accepts_mapping(self, orchestrator):
        result = await orchestrator.optimize_transaction(
            {"tokenIn": WETH, "tokenOut": USDC, "amountIn": 10_000, "expectedProfit": 100}
        )

        assert result.status == OptimizationStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_gas_cost_target_warning(self, orchestrator):
        """A $100 trade cannot keep gas under 2% of its value."""
        result = await orchestrator.optimize_transaction(
            make_request(amount_in=100.0, expected_profit=1.0)
        )

        assert result.status == OptimizationStatus.COMPLETED
        assert any("exceeds target" in w for w in result.warnings)


class TestDegradedData:
    @pytest.mark.asyncio
    async def test_chain_outage_yields_fallback(self, orchestrator, chain):
        chain.fail()

        result = await orchestrator.optimize_transaction(make_request())

        assert result.status == OptimizationStatus.FALLBACK_COMPLETED
        assert result.fallback_used is True
        assert result.strategy == FALLBACK_STRATEGY
        assert result.error == "Live fee data unavailable for price optimization"
        assert result.gas_params.gas_limit == 400_000
        assert result.gas_params.gas_price == 25.0
        assert result.savings.absolute == 0.0
        assert any("Market conditions unavailable" in w for w in result.warnings)

    @pytest.mark.asyncio
    async def test_block_outage_degrades_prediction_only(self, orchestrator, chain):
        """Predictor falls back to 400k at 25 gwei, blended 0.5/0.5 with live 22 gwei."""
        chain.fail_blocks = True

        result = await orchestrator.optimize_transaction(make_request())

        assert result.status == OptimizationStatus.COMPLETED
        assert result.fallback_used is False
        assert result.gas_params.gas_price == pytest.approx(23.5)
        assert result.gas_params.gas_limit == 464_000
        assert result.gas_params.source == FeeSource.BLENDED
        assert "Fee prediction used fallback parameters" in result.warnings

    @pytest.mark.asyncio
    async def test_internal_failure_yields_fallback(self, chain):
        async with OptimizationOrchestrator(ExplodingPredictor(chain)) as orchestrator:
            result = await orchestrator.optimize_transaction(make_request())

        assert result.status == OptimizationStatus.FALLBACK_COMPLETED
        assert result.strategy == FALLBACK_STRATEGY
        assert result.fallback_used is True
        assert result.error == "All gas estimation methods failed"
        assert result.gas_params.gas_limit == 400_000
        assert result.gas_params.gas_price == 25.0
        assert result.gas_params.priority_fee == 2.0
        assert result.gas_params.confidence == 0.5
        assert result.fallbacks == [StrategyKind.AGGRESSIVE_SAVINGS.value]
        assert any("model crashed" in w for w in result.warnings)

    @pytest.mark.asyncio
    async def test_simulation_covers_failed_prediction(self, chain):
        estimator = FakeGasEstimator(gas=300_000)
        async with OptimizationOrchestrator(
            ExplodingPredictor(chain), gas_estimator=estimator
        ) as orchestrator:
            result = await orchestrator.optimize_transaction(make_request())

        assert result.status == OptimizationStatus.COMPLETED
        assert result.gas_params.gas_limit == 348_000
        assert result.gas_params.gas_price == pytest.approx(22.0)
        assert result.gas_params.source == FeeSource.LIVE
        assert result.optimizations[0].details["methods"] == ["simulation"]

    @pytest.mark.asyncio
    async def test_failed_simulation_only_warns(self, predictor):
        estimator = FakeGasEstimator(fail=True)
        async with OptimizationOrchestrator(predictor, gas_estimator=estimator) as orchestrator:
            result = await orchestrator.optimize_transaction(make_request())

        assert result.status == OptimizationStatus.COMPLETED
        assert estimator.calls == 1
        assert any("Gas simulation failed" in w for w in result.warnings)

    @pytest.mark.asyncio
    async def test_invalid_request_resolves_to_fallback(self, orchestrator):
        result = await orchestrator.optimize_transaction(
            {"tokenIn": WETH, "tokenOut": USDC, "amountIn": -5}
        )

        assert result.status == OptimizationStatus.FALLBACK_COMPLETED
        assert result.error.startswith("Invalid request")
        assert orchestrator.get_stats().fallback_count == 1


class TestGasEstimation:
    @pytest.mark.asyncio
    async def test_history_blended_with_prediction(self, orchestrator):
        for _ in range(3):
            orchestrator.record_gas_usage(300_000)
        orchestrator.record_gas_usage(0)
        request = make_request()
        conditions = MarketConditions()
        plan = orchestrator.create_plan(
            request, orchestrator.select_strategy(request, conditions), conditions
        )

        estimation = await orchestrator.estimate_gas(plan, [])

        # (380k * 0.6 + 300k * 0.6) / 1.2
        assert estimation.gas_limit == 340_000
        assert estimation.methods == ("prediction", "history")

    @pytest.mark.asyncio
    async def test_history_needs_minimum_samples(self, orchestrator):
        orchestrator.record_gas_usage(300_000)
        request = make_request()
        conditions = MarketConditions()
        plan = orchestrator.create_plan(
            request, orchestrator.select_strategy(request, conditions), conditions
        )

        estimation = await orchestrator.estimate_gas(plan, [])

        assert estimation.methods == ("prediction",)

    def test_transaction_complexity(self, predictor):
        orchestrator = OptimizationOrchestrator(predictor)
        assert orchestrator.transaction_complexity(make_request()) == pytest.approx(0.1)
        complex_request = make_request(hop_count=3, uses_flash_loan=True)
        assert orchestrator.transaction_complexity(complex_request) == pytest.approx(0.6)

    def test_plan_steps_follow_refinement_option(self, predictor):
        orchestrator = OptimizationOrchestrator(predictor)
        request = make_request()
        conditions = MarketConditions()
        strategy = orchestrator.select_strategy(request, conditions)

        full = orchestrator.create_plan(request, strategy, conditions)
        primary = orchestrator.create_plan(request, strategy, conditions, refinements=False)

        assert full.steps == PRIMARY_STEPS + REFINEMENT_STEPS
        assert primary.steps == PRIMARY_STEPS


class TestRefinements:
    @pytest.mark.asyncio
    async def test_mev_protection_for_large_trades(self, orchestrator):
        result = await orchestrator.optimize_transaction(
            make_request(amount_in=60_000.0, expected_profit=600.0)
        )

        assert OptimizationStep.MEV_PROTECTION.value in result.applied_steps
        mev = result.optimizations[-1]
        assert mev.details["priority_fee_before"] == pytest.approx(2.0)
        assert result.gas_params.priority_fee == pytest.approx(3.0)

    @pytest.mark.asyncio
    async def test_refinements_disabled(self, orchestrator):
        result = await orchestrator.optimize_transaction(
            make_request(amount_in=60_000.0, expected_profit=600.0),
            OptimizeOptions(refinements=False),
        )

        assert OptimizationStep.MEV_PROTECTION.value not in result.applied_steps
        assert result.gas_params.priority_fee == pytest.approx(2.0)

    @pytest.mark.asyncio
    async def test_timing_under_volatile_congestion(self, orchestrator, predictor, chain):
        for i in range(20):
            predictor.history.append(
                FeeDataPoint(
                    block_number=i,
                    gas_used=25_000_000,
                    gas_limit=30_000_000,
                    base_fee=10.0 if i % 2 else 40.0,
                    priority_fee=2.0,
                    utilization=83.3,
                )
            )
        chain.set_utilization(85.0)

        result = await orchestrator.optimize_transaction(make_request())

        assert OptimizationStep.TIMING_OPTIMIZATION.value in result.applied_steps
        timing = next(o for o in result.optimizations if o.step == "timing_optimization")
        assert timing.details["delay_blocks"] == 1

    @pytest.mark.asyncio
    async def test_batch_analysis_sees_queued_same_pair(self, orchestrator):
        first = orchestrator.submit(make_request())
        second = orchestrator.submit(make_request())

        first_result = await first.future
        second_result = await second.future

        assert OptimizationStep.BATCH_ANALYSIS.value in first_result.applied_steps
        batch = next(o for o in first_result.optimizations if o.step == "batch_analysis")
        assert batch.details["batchable_requests"] == 1
        assert OptimizationStep.BATCH_ANALYSIS.value not in second_result.applied_steps


class TestQueue:
    @pytest.mark.asyncio
    async def test_one_at_a_time_in_submission_order(self, chain):
        predictor = TrackingPredictor(chain)
        completed = []
        async with OptimizationOrchestrator(predictor) as orchestrator:
            orchestrator.add_completion_listener(completed.append)
            requests = [make_request(amount_in=1_000.0 * (i + 1)) for i in range(5)]

            results = await asyncio.gather(
                *(orchestrator.optimize_transaction(r) for r in requests)
            )

        assert predictor.max_active == 1
        assert [r.plan_id for r in completed] == [r.plan_id for r in results]
        assert orchestrator.get_stats().total_optimizations == 5

    @pytest.mark.asyncio
    async def test_mixed_outcomes_complete_in_submission_order(self, chain):
        predictor = SelectivePredictor(chain, failing_size=2_000.0)
        completed = []
        async with OptimizationOrchestrator(predictor) as orchestrator:
            orchestrator.add_completion_listener(completed.append)
            jobs = [
                orchestrator.submit(make_request(amount_in=1_000.0)),
                orchestrator.submit({"tokenIn": WETH, "tokenOut": USDC, "amountIn": -5}),
                orchestrator.submit(make_request(amount_in=2_000.0)),
                orchestrator.submit(make_request(amount_in=3_000.0)),
            ]
            assert [job.status for job in jobs] == [JobStatus.QUEUED] * 4
            assert orchestrator.queue_depth == 4

            results = await asyncio.gather(*(job.future for job in jobs))

        assert [r.plan_id for r in completed] == [r.plan_id for r in results]
        assert [r.fallback_used for r in results] == [False, True, True, False]
        assert results[1].error.startswith("Invalid request")
        assert results[2].error == "All gas estimation methods failed"
        assert [job.status for job in jobs] == [
            JobStatus.COMPLETED,
            JobStatus.FALLBACK_COMPLETED,
            JobStatus.FALLBACK_COMPLETED,
            JobStatus.COMPLETED,
        ]

    @pytest.mark.asyncio
    async def test_job_lifecycle(self, orchestrator):
        job = orchestrator.submit(make_request())
        assert job.status == JobStatus.QUEUED
        assert orchestrator.queue_depth == 1

        await job.future

        assert job.status == JobStatus.COMPLETED
        assert job.status.is_terminal
        assert orchestrator.queue_depth == 0
        assert orchestrator.in_flight is False

    @pytest.mark.asyncio
    async def test_close_resolves_pending_jobs(self, predictor):
        orchestrator = OptimizationOrchestrator(predictor)
        job = orchestrator.submit(make_request())

        await orchestrator.close()
        result = await job.future

        assert result.fallback_used is True
        assert "closed" in result.error
        assert job.status == JobStatus.FALLBACK_COMPLETED

    @pytest.mark.asyncio
    async def test_usable_after_close(self, orchestrator):
        await orchestrator.close()
        result = await orchestrator.optimize_transaction(make_request())
        assert result.status == OptimizationStatus.COMPLETED


class TestListenersAndStats:
    @pytest.mark.asyncio
    async def test_failing_listener_isolated(self, orchestrator):
        seen = []

        def broken(result):
            raise ValueError("listener bug")

        orchestrator.add_completion_listener(broken)
        orchestrator.add_completion_listener(seen.append)

        result = await orchestrator.optimize_transaction(make_request())

        assert result.status == OptimizationStatus.COMPLETED
        assert seen == [result]

    @pytest.mark.asyncio
    async def test_removed_listener_not_called(self, orchestrator):
        seen = []
        orchestrator.add_completion_listener(seen.append)
        orchestrator.remove_completion_listener(seen.append)

        await orchestrator.optimize_transaction(make_request())

        assert seen == []

    @pytest.mark.asyncio
    async def test_stats_updated_once_per_attempt(self, orchestrator, chain):
        first = await orchestrator.optimize_transaction(make_request())
        chain.fail()
        await orchestrator.optimize_transaction(make_request())

        stats = orchestrator.get_stats()
        assert stats.total_optimizations == 2
        assert stats.fallback_count == 1
        assert stats.successful_optimizations == 1
        assert stats.success_rate == pytest.approx(50.0)
        assert stats.best_savings_percentage == pytest.approx(first.savings.percentage)
        assert stats.total_cost_saved > 0
        assert stats.queue_depth == 0

    @pytest.mark.asyncio
    async def test_fallback_counted(self, chain):
        async with OptimizationOrchestrator(ExplodingPredictor(chain)) as orchestrator:
            await orchestrator.optimize_transaction(make_request())
            stats = orchestrator.get_stats()

        assert stats.total_optimizations == 1
        assert stats.fallback_count == 1
        assert stats.successful_optimizations == 0
        assert stats.average_savings == 0.0
