"""API endpoints for the arbitrage optimizer."""

import structlog
from fastapi import APIRouter, Depends, HTTPException

from arbopt.engine import ArbitrageEngine
from arbopt.errors import ConfigurationError, NoRouteFound
from arbopt.models.api import (
    ArbitrageRequest,
    ArbitrageResponse,
    ArbitrageRouteModel,
    DetectRequest,
    DetectResponse,
    NetProfitModel,
    OpportunityModel,
    OptimizeRequest,
    RouteEvaluationModel,
    RouteRequest,
    StatsResponse,
)
from arbopt.models.optimization import OptimizationResult
from arbopt.orchestration import OptimizeOptions
from arbopt.routing import RouteOptions

logger = structlog.get_logger()

router = APIRouter()

_engine: ArbitrageEngine | None = None


def set_engine(engine: ArbitrageEngine | None) -> None:
    """Install the engine served by the API (None to unset)."""
    global _engine
    _engine = engine


def current_engine() -> ArbitrageEngine | None:
    return _engine


def get_engine() -> ArbitrageEngine:
    """Dependency provider for the engine instance.

    Override this in tests to inject an engine built on fake data sources:
        app.dependency_overrides[get_engine] = lambda: engine

    Raises:
        HTTPException: 503 if no engine has been configured
    """
    if _engine is None:
        raise HTTPException(status_code=503, detail="Engine not configured")
    return _engine


@router.post("/detect", response_model_exclude_none=True)
async def detect(
    body: DetectRequest,
    engine: ArbitrageEngine = Depends(get_engine),
) -> DetectResponse:
    """Compare two venue quotes for one pair.

    Returns an empty response when either quote has an invalid price.
    """
    opportunity = engine.detect_arbitrage(
        body.quote_a.to_quote(), body.quote_b.to_quote(), body.pair
    )
    if opportunity is None:
        return DetectResponse()

    estimate = engine.estimate_net_profit(opportunity, body.trade_amount)
    return DetectResponse(
        opportunity=OpportunityModel.from_opportunity(opportunity),
        net_profit=NetProfitModel.from_estimate(estimate),
    )


@router.post("/routes/optimal")
async def optimal_route(
    body: RouteRequest,
    engine: ArbitrageEngine = Depends(get_engine),
) -> RouteEvaluationModel:
    """Best route between two tokens.

    Error Handling:
        - No valid route: 404 with the reason
        - No venues configured: 503
    """
    options = RouteOptions(
        max_hops=body.max_hops,
        input_price_usd=body.input_price_usd,
        output_price_usd=body.output_price_usd,
    )
    try:
        evaluation = await engine.find_optimal_route(
            body.token_in, body.token_out, body.amount_in, options
        )
    except NoRouteFound as e:
        logger.info(
            "route_not_found", token_in=e.token_in, token_out=e.token_out, reason=e.reason
        )
        raise HTTPException(status_code=404, detail=e.reason) from e
    except ConfigurationError as e:
        logger.error("engine_misconfigured", error=str(e))
        raise HTTPException(status_code=503, detail=str(e)) from e

    return RouteEvaluationModel.from_evaluation(evaluation)


@router.post("/routes/arbitrage")
async def arbitrage_routes(
    body: ArbitrageRequest,
    engine: ArbitrageEngine = Depends(get_engine),
) -> ArbitrageResponse:
    """Profitable round trips between two venues, best first."""
    try:
        routes = await engine.find_arbitrage_routes(body.token_a, body.token_b, body.amount_in)
    except ConfigurationError as e:
        logger.error("engine_misconfigured", error=str(e))
        raise HTTPException(status_code=503, detail=str(e)) from e
    return ArbitrageResponse(routes=[ArbitrageRouteModel.from_route(r) for r in routes])


@router.post("/optimize")
async def optimize(
    body: OptimizeRequest,
    engine: ArbitrageEngine = Depends(get_engine),
) -> OptimizationResult:
    """Fee parameters for a trade. Always returns a result; check fallbackUsed."""
    result = await engine.optimize_transaction(
        body.to_request(), OptimizeOptions(strategy=body.strategy)
    )
    logger.info(
        "returning_optimization",
        plan_id=result.plan_id,
        strategy=result.strategy,
        fallback_used=result.fallback_used,
    )
    return result


@router.get("/stats")
async def stats(engine: ArbitrageEngine = Depends(get_engine)) -> StatsResponse:
    return StatsResponse.from_stats(engine.get_stats())
