"""Facade composing detection, route search and fee optimization.

The ArbitrageEngine is the entry point used by the scheduling layer and the
HTTP API. It wires the components to the external data sources and exposes the
four core operations.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from arbopt.cache import Clock
from arbopt.detection import (
    DEFAULT_DETECTOR_CONFIG,
    DetectorConfig,
    DetectorStats,
    OpportunityDetector,
)
from arbopt.fees import (
    DEFAULT_PREDICTOR_CONFIG,
    FeeHistory,
    FeeParameterPredictor,
    PredictorConfig,
)
from arbopt.orchestration import (
    DEFAULT_ORCHESTRATOR_CONFIG,
    CompletionListener,
    OptimizationOrchestrator,
    OptimizeOptions,
    OrchestratorConfig,
    StatsSnapshot,
)
from arbopt.routing import (
    DEFAULT_ROUTING_CONFIG,
    ArbitrageRoute,
    RouteEvaluation,
    RouteEvaluator,
    RouteOptions,
    RouterStats,
    RoutingConfig,
)
from arbopt.strategies import DEFAULT_SELECTOR_CONFIG, SelectorConfig, StrategySelector
from arbopt.venues import VenueRegistry

if TYPE_CHECKING:
    from arbopt.models.opportunity import NetProfitEstimate, Opportunity
    from arbopt.models.optimization import OptimizationRequest, OptimizationResult
    from arbopt.models.quotes import PriceQuote
    from arbopt.sources import ChainDataSource, GasEstimator, QuoteSource

logger = structlog.get_logger()


@dataclass(frozen=True)
class EngineConfig:
    """Configuration for every component of the engine."""

    detector: DetectorConfig = DEFAULT_DETECTOR_CONFIG
    routing: RoutingConfig = DEFAULT_ROUTING_CONFIG
    predictor: PredictorConfig = DEFAULT_PREDICTOR_CONFIG
    selector: SelectorConfig = DEFAULT_SELECTOR_CONFIG
    orchestrator: OrchestratorConfig = DEFAULT_ORCHESTRATOR_CONFIG


DEFAULT_ENGINE_CONFIG = EngineConfig()


@dataclass(frozen=True)
class EngineStats:
    """Aggregated metrics from all components."""

    detector: DetectorStats
    routing: RouterStats
    optimization: StatsSnapshot
    fee_history_points: int


class ArbitrageEngine:
    """Arbitrage detection and execution planning over external data sources.

    Args:
        quotes: Venue quote provider
        chain: Block and fee data provider
        venues: Venue registry; defaults to the built-in venue list
        config: Component configuration
        gas_estimator: Optional external gas simulation
        clock: Monotonic clock for the route cache
    """

    def __init__(
        self,
        quotes: QuoteSource,
        chain: ChainDataSource,
        venues: VenueRegistry | None = None,
        config: EngineConfig = DEFAULT_ENGINE_CONFIG,
        gas_estimator: GasEstimator | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.config = config
        self.venues = venues if venues is not None else VenueRegistry()
        self.fee_history = FeeHistory(config.predictor.history_size)

        self.detector = OpportunityDetector(config.detector)
        self.router = RouteEvaluator(
            venues=self.venues,
            quotes=quotes,
            chain=chain,
            config=config.routing,
            clock=clock,
        )
        self.predictor = FeeParameterPredictor(
            chain=chain,
            config=config.predictor,
            history=self.fee_history,
        )
        self.orchestrator = OptimizationOrchestrator(
            predictor=self.predictor,
            selector=StrategySelector(config.selector),
            config=config.orchestrator,
            gas_estimator=gas_estimator,
        )

    def detect_arbitrage(
        self,
        quote_a: PriceQuote | None,
        quote_b: PriceQuote | None,
        pair: str | None = None,
    ) -> Opportunity | None:
        """Compare two venue quotes. Returns None for invalid input."""
        return self.detector.detect(quote_a, quote_b, pair)

    def estimate_net_profit(
        self, opportunity: Opportunity, trade_amount: float | None = None
    ) -> NetProfitEstimate:
        return self.detector.estimate_net_profit(opportunity, trade_amount)

    async def find_optimal_route(
        self,
        token_a: str,
        token_b: str,
        amount_in: float,
        options: RouteOptions | None = None,
    ) -> RouteEvaluation:
        """Best route by net output.

        Raises:
            NoRouteFound: If no valid route exists
            ConfigurationError: If no venues are registered
        """
        return await self.router.find_optimal_route(token_a, token_b, amount_in, options)

    async def find_arbitrage_routes(
        self, token_a: str, token_b: str, amount_in: float
    ) -> list[ArbitrageRoute]:
        return await self.router.find_arbitrage_routes(token_a, token_b, amount_in)

    async def optimize_transaction(
        self,
        request: OptimizationRequest | Mapping[str, Any],
        options: OptimizeOptions | None = None,
    ) -> OptimizationResult:
        """Fee parameters for a trade. Never raises."""
        return await self.orchestrator.optimize_transaction(request, options)

    async def collect_fee_sample(self) -> None:
        """Record one fee history point; call periodically to warm the history."""
        await self.predictor.collect_sample()

    def add_completion_listener(self, listener: CompletionListener) -> None:
        self.orchestrator.add_completion_listener(listener)

    def get_stats(self) -> EngineStats:
        return EngineStats(
            detector=self.detector.get_stats(),
            routing=self.router.get_stats(),
            optimization=self.orchestrator.get_stats(),
            fee_history_points=len(self.fee_history),
        )

    async def close(self) -> None:
        await self.orchestrator.close()
        logger.info("engine_closed")

    async def __aenter__(self) -> ArbitrageEngine:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


__all__ = ["DEFAULT_ENGINE_CONFIG", "ArbitrageEngine", "EngineConfig", "EngineStats"]
