"""Pydantic request/response models for the HTTP API."""

from __future__ import annotations

import time
from dataclasses import asdict
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from arbopt.models.optimization import OptimizationRequest
from arbopt.models.quotes import PriceQuote
from arbopt.models.types import Address, PositiveAmount

if TYPE_CHECKING:
    from arbopt.engine import EngineStats
    from arbopt.models.opportunity import NetProfitEstimate, Opportunity
    from arbopt.routing.types import ArbitrageRoute, RouteEvaluation


class QuoteModel(BaseModel):
    """A venue price quote as sent by the scheduler."""

    venue_id: str = Field(alias="venueId", min_length=1)
    pair: str
    price: float = Field(description="Quoted price; non-positive prices yield no opportunity")
    liquidity: float = 0.0
    timestamp: float | None = None

    model_config = {"populate_by_name": True}

    def to_quote(self) -> PriceQuote:
        return PriceQuote(
            venue_id=self.venue_id,
            pair=self.pair,
            price=self.price,
            liquidity=self.liquidity,
            timestamp=self.timestamp if self.timestamp is not None else time.time(),
        )


class DetectRequest(BaseModel):
    quote_a: QuoteModel = Field(alias="quoteA")
    quote_b: QuoteModel = Field(alias="quoteB")
    pair: str | None = None
    trade_amount: PositiveAmount | None = Field(default=None, alias="tradeAmount")

    model_config = {"populate_by_name": True}


class OpportunityModel(BaseModel):
    id: str
    pair: str
    buy_venue: str = Field(alias="buyVenue")
    sell_venue: str = Field(alias="sellVenue")
    buy_price: float = Field(alias="buyPrice")
    sell_price: float = Field(alias="sellPrice")
    price_diff: float = Field(alias="priceDiff")
    profit_percentage: float = Field(alias="profitPercentage")
    profitable: bool
    timestamp: float

    model_config = {"populate_by_name": True}

    @classmethod
    def from_opportunity(cls, opportunity: Opportunity) -> OpportunityModel:
        return cls.model_validate(asdict(opportunity))


class NetProfitModel(BaseModel):
    trade_amount: float = Field(alias="tradeAmount")
    gross_profit: float = Field(alias="grossProfit")
    gas_cost: float = Field(alias="gasCost")
    slippage_cost: float = Field(alias="slippageCost")
    net_profit: float = Field(alias="netProfit")
    roi: float
    profitable: bool

    model_config = {"populate_by_name": True}

    @classmethod
    def from_estimate(cls, estimate: NetProfitEstimate) -> NetProfitModel:
        return cls(
            trade_amount=estimate.trade_amount,
            gross_profit=estimate.gross_profit,
            gas_cost=estimate.gas_cost,
            slippage_cost=estimate.slippage_cost,
            net_profit=estimate.net_profit,
            roi=estimate.roi,
            profitable=estimate.profitable,
        )


class DetectResponse(BaseModel):
    opportunity: OpportunityModel | None = None
    net_profit: NetProfitModel | None = Field(default=None, alias="netProfit")

    model_config = {"populate_by_name": True}


class RouteRequest(BaseModel):
    token_in: Address = Field(alias="tokenIn")
    token_out: Address = Field(alias="tokenOut")
    amount_in: PositiveAmount = Field(alias="amountIn")
    max_hops: int | None = Field(default=None, alias="maxHops", ge=1, le=4)
    input_price_usd: PositiveAmount | None = Field(default=None, alias="inputPriceUsd")
    output_price_usd: PositiveAmount | None = Field(default=None, alias="outputPriceUsd")

    model_config = {"populate_by_name": True}


class HopModel(BaseModel):
    token_in: str = Field(alias="tokenIn")
    token_out: str = Field(alias="tokenOut")
    venue_id: str = Field(alias="venueId")
    amount_in: float = Field(alias="amountIn")
    amount_out: float = Field(alias="amountOut")
    slippage: float
    gas_units: int = Field(alias="gasUnits")

    model_config = {"populate_by_name": True}


class RouteEvaluationModel(BaseModel):
    path: list[str]
    venues: list[str]
    input_amount: float = Field(alias="inputAmount")
    output_amount: float = Field(alias="outputAmount")
    net_output_amount: float = Field(alias="netOutputAmount")
    gas_units: int = Field(alias="gasUnits")
    gas_cost_native: float = Field(alias="gasCostNative")
    gas_cost_usd: float = Field(alias="gasCostUsd")
    slippage: float
    gas_ratio: float = Field(alias="gasRatio")
    hops: list[HopModel]
    timestamp: float

    model_config = {"populate_by_name": True}

    @classmethod
    def from_evaluation(cls, evaluation: RouteEvaluation) -> RouteEvaluationModel:
        return cls(
            path=evaluation.route.path,
            venues=evaluation.route.venue_ids,
            input_amount=evaluation.input_amount,
            output_amount=evaluation.output_amount,
            net_output_amount=evaluation.net_output_amount,
            gas_units=evaluation.gas_units,
            gas_cost_native=evaluation.gas_cost_native,
            gas_cost_usd=evaluation.gas_cost_usd,
            slippage=evaluation.slippage,
            gas_ratio=evaluation.gas_ratio,
            hops=[
                HopModel(
                    token_in=h.token_in,
                    token_out=h.token_out,
                    venue_id=h.venue_id,
                    amount_in=h.amount_in,
                    amount_out=h.amount_out,
                    slippage=h.slippage,
                    gas_units=h.gas_units,
                )
                for h in evaluation.hop_details
            ],
            timestamp=evaluation.timestamp,
        )


class ArbitrageRequest(BaseModel):
    token_a: Address = Field(alias="tokenA")
    token_b: Address = Field(alias="tokenB")
    amount_in: PositiveAmount = Field(alias="amountIn")

    model_config = {"populate_by_name": True}


class ArbitrageRouteModel(BaseModel):
    buy_venue: str = Field(alias="buyVenue")
    sell_venue: str = Field(alias="sellVenue")
    amount_in: float = Field(alias="amountIn")
    buy_amount: float = Field(alias="buyAmount")
    final_amount: float = Field(alias="finalAmount")
    profit: float
    net_profit: float = Field(alias="netProfit")
    profit_percentage: float = Field(alias="profitPercentage")
    gas_units: int = Field(alias="gasUnits")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_route(cls, route: ArbitrageRoute) -> ArbitrageRouteModel:
        return cls(
            buy_venue=route.buy_venue,
            sell_venue=route.sell_venue,
            amount_in=route.amount_in,
            buy_amount=route.buy_amount,
            final_amount=route.final_amount,
            profit=route.profit,
            net_profit=route.net_profit,
            profit_percentage=route.profit_percentage,
            gas_units=route.gas_units,
        )


class ArbitrageResponse(BaseModel):
    routes: list[ArbitrageRouteModel] = Field(default_factory=list)


class OptimizeRequest(OptimizationRequest):
    """Optimization request with an optional strategy override."""

    strategy: str | None = None

    def to_request(self) -> OptimizationRequest:
        return OptimizationRequest.model_validate(self.model_dump(exclude={"strategy"}))


class StatsResponse(BaseModel):
    detector: dict[str, Any]
    routing: dict[str, Any]
    optimization: dict[str, Any]
    fee_history_points: int = Field(alias="feeHistoryPoints")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_stats(cls, stats: EngineStats) -> StatsResponse:
        return cls(
            detector=asdict(stats.detector),
            routing=asdict(stats.routing),
            optimization=asdict(stats.optimization),
            fee_history_points=stats.fee_history_points,
        )


__all__ = [
    "ArbitrageRequest",
    "ArbitrageResponse",
    "ArbitrageRouteModel",
    "DetectRequest",
    "DetectResponse",
    "HopModel",
    "NetProfitModel",
    "OpportunityModel",
    "OptimizeRequest",
    "QuoteModel",
    "RouteEvaluationModel",
    "RouteRequest",
    "StatsResponse",
]
