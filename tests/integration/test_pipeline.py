"""End-to-end flow through the engine: detect, route, then optimize fees."""

import pytest
import pytest_asyncio

from arbopt.engine import ArbitrageEngine, EngineConfig
from arbopt.models.optimization import OptimizationStatus
from arbopt.routing import RouteOptions, RoutingConfig
from tests.helpers import (
    USDC,
    WETH,
    FakeChainData,
    FakeQuoteSource,
    make_quote,
    make_registry,
    make_request,
)


@pytest_asyncio.fixture
async def engine():
    quotes = FakeQuoteSource()
    quotes.set_rate("v1", WETH, USDC, 2000.0)
    quotes.set_rate("v2", WETH, USDC, 2020.0)
    quotes.set_rate("v2", USDC, WETH, 1 / 1995.0)
    engine = ArbitrageEngine(
        quotes,
        FakeChainData(),
        venues=make_registry(),
        config=EngineConfig(routing=RoutingConfig(intermediate_tokens=())),
    )
    async with engine:
        yield engine


class TestPipeline:
    @pytest.mark.asyncio
    async def test_detect_route_optimize(self, engine):
        opportunity = engine.detect_arbitrage(make_quote("v1", 2000.0), make_quote("v2", 2020.0))
        assert opportunity is not None
        assert opportunity.profitable

        estimate = engine.estimate_net_profit(opportunity, 10_000.0)
        assert estimate.profitable

        best = await engine.find_optimal_route(
            WETH, USDC, 5.0, RouteOptions(output_price_usd=1.0)
        )
        assert best.route.venue_ids == ["v2"]

        routes = await engine.find_arbitrage_routes(WETH, USDC, 5.0)
        assert [(r.buy_venue, r.sell_venue) for r in routes] == [("v1", "v2")]
        assert routes[0].final_amount == pytest.approx(10_000.0 / 1995.0)

        result = await engine.optimize_transaction(
            make_request(amount_in=10_000.0, expected_profit=estimate.net_profit)
        )
        assert result.status == OptimizationStatus.COMPLETED
        assert result.fallback_used is False

        stats = engine.get_stats()
        assert stats.detector.total_checked == 1
        assert stats.routing.optimal_routes_found == 1
        assert stats.optimization.total_optimizations == 1

    @pytest.mark.asyncio
    async def test_fee_samples_warm_history(self, engine):
        for _ in range(3):
            await engine.collect_fee_sample()

        assert engine.get_stats().fee_history_points == 3

    @pytest.mark.asyncio
    async def test_completion_listener(self, engine):
        seen = []
        engine.add_completion_listener(seen.append)

        result = await engine.optimize_transaction(make_request())

        assert seen == [result]
