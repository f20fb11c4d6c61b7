"""Route evaluation and optimal route search.

Each route is walked strictly sequentially: a hop's input is the previous hop's
output. A hop that cannot be quoted invalidates only its own route. Independent
routes are evaluated concurrently, bounded by a semaphore.
"""

from __future__ import annotations

import asyncio
import math
import time
from typing import TYPE_CHECKING

import structlog

from arbopt.cache import Cache, Clock, TTLCache
from arbopt.errors import DataUnavailable, NoRouteFound
from arbopt.models.types import is_positive_finite, is_valid_address, normalize_address
from arbopt.routing.config import DEFAULT_ROUTING_CONFIG, RouteOptions, RoutingConfig
from arbopt.routing.generation import generate_routes
from arbopt.routing.types import (
    ArbitrageRoute,
    Hop,
    HopEvaluation,
    Route,
    RouteEvaluation,
    RouteRejection,
    RouterStats,
)
from arbopt.sources import call_with_timeout

if TYPE_CHECKING:
    from arbopt.sources import ChainDataSource, QuoteSource
    from arbopt.venues import VenueRegistry

logger = structlog.get_logger()

RouteCacheKey = tuple[str, str, float, RouteOptions]


class _HopFailure(Exception):
    """Internal signal that a hop invalidated its route."""

    def __init__(
        self,
        rejection: RouteRejection,
        detail: str,
        hop_details: tuple[HopEvaluation, ...],
    ) -> None:
        super().__init__(detail)
        self.rejection = rejection
        self.detail = detail
        self.hop_details = hop_details


class RouteEvaluator:
    """Finds and scores execution paths between two tokens.

    Args:
        venues: Venue registry; only enabled venues are routed through
        quotes: Quote provider
        chain: Fee data provider used to price gas. Without one, routes are
            charged the fallback gas cost.
        config: Search limits and pricing assumptions
        cache: Cache for optimal routes; a TTLCache is created if omitted
        clock: Clock for the default cache
    """

    def __init__(
        self,
        venues: VenueRegistry,
        quotes: QuoteSource,
        chain: ChainDataSource | None = None,
        config: RoutingConfig = DEFAULT_ROUTING_CONFIG,
        cache: Cache[RouteCacheKey, RouteEvaluation] | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.venues = venues
        self.quotes = quotes
        self.chain = chain
        self.config = config
        if cache is None:
            cache = TTLCache(
                config.cache_ttl_seconds,
                config.cache_max_size,
                clock=clock or time.monotonic,
            )
        self._cache = cache

        self.total_route_calculations = 0
        self.optimal_routes_found = 0
        self.cache_hits = 0
        self.cache_misses = 0
        self._total_route_length = 0

    def generate_routes(
        self, token_a: str, token_b: str, max_hops: int | None = None
    ) -> list[Route]:
        """Candidate routes through enabled venues, in generation order."""
        return generate_routes(
            token_a,
            token_b,
            [v.id for v in self.venues.enabled()],
            self.config.intermediate_tokens,
            self.config.max_hops if max_hops is None else max_hops,
        )

    async def current_gas_price(self) -> float | None:
        """Current gas price in gwei, or None if unavailable."""
        if self.chain is None:
            return None
        try:
            fee_data = await call_with_timeout(
                "get_fee_data",
                self.chain.get_fee_data(),
                self.config.quote_timeout_seconds,
            )
        except DataUnavailable as e:
            logger.warning("gas_price_unavailable", source=e.source, detail=e.detail)
            return None
        return fee_data.gas_price

    def _gas_cost_native(self, gas_units: int, gas_price_gwei: float | None) -> float:
        if gas_price_gwei is None:
            return self.config.fallback_gas_cost_native
        return gas_units * gas_price_gwei * 1e-9

    async def _walk(self, route: Route, amount_in: float) -> tuple[HopEvaluation, ...]:
        """Quote every hop of a route in order.

        Raises:
            _HopFailure: At the first hop that invalidates the route
        """
        hop_details: list[HopEvaluation] = []
        current = amount_in

        for i, hop in enumerate(route.hops):
            venue = self.venues.get(hop.venue_id)
            if venue is None:
                raise _HopFailure(
                    RouteRejection.UNKNOWN_VENUE,
                    f"hop {i}: unknown venue {hop.venue_id}",
                    tuple(hop_details),
                )
            if not venue.enabled:
                raise _HopFailure(
                    RouteRejection.VENUE_DISABLED,
                    f"hop {i}: venue {hop.venue_id} disabled",
                    tuple(hop_details),
                )

            try:
                quote = await call_with_timeout(
                    "get_quote",
                    self.quotes.get_quote(hop.token_in, hop.token_out, current, hop.venue_id),
                    self.config.quote_timeout_seconds,
                )
            except DataUnavailable as e:
                raise _HopFailure(
                    RouteRejection.QUOTE_FAILED, f"hop {i}: {e}", tuple(hop_details)
                ) from e
            if quote is None:
                raise _HopFailure(
                    RouteRejection.QUOTE_FAILED, f"hop {i}: no quote", tuple(hop_details)
                )

            if not is_positive_finite(quote.output_amount):
                raise _HopFailure(
                    RouteRejection.NON_POSITIVE_OUTPUT,
                    f"hop {i}: output {quote.output_amount}",
                    tuple(hop_details),
                )
            if not (
                math.isfinite(quote.liquidity)
                and math.isfinite(quote.slippage)
                and quote.slippage >= 0
            ):
                raise _HopFailure(
                    RouteRejection.INVALID_QUOTE,
                    f"hop {i}: liquidity {quote.liquidity}, slippage {quote.slippage}",
                    tuple(hop_details),
                )
            if quote.liquidity < self.config.min_liquidity:
                raise _HopFailure(
                    RouteRejection.INSUFFICIENT_LIQUIDITY,
                    f"hop {i}: liquidity {quote.liquidity} below {self.config.min_liquidity}",
                    tuple(hop_details),
                )

            hop_details.append(
                HopEvaluation(
                    token_in=hop.token_in,
                    token_out=hop.token_out,
                    venue_id=hop.venue_id,
                    amount_in=current,
                    amount_out=quote.output_amount,
                    slippage=quote.slippage,
                    gas_units=venue.gas_per_swap,
                    liquidity=quote.liquidity,
                )
            )
            current = quote.output_amount

        return tuple(hop_details)

    async def evaluate_route(
        self,
        route: Route,
        amount_in: float,
        options: RouteOptions | None = None,
        *,
        gas_price_gwei: float | None = None,
    ) -> RouteEvaluation:
        """Quote and score one route.

        Args:
            route: Route to evaluate
            amount_in: Input amount in token_in units
            options: Token prices; defaults come from the config
            gas_price_gwei: Gas price to use. Looked up from the chain source
                when omitted; the fallback gas cost applies if that fails.

        Returns:
            The evaluation. Failures are reported as ``valid=False`` with a
            rejection reason, never raised.
        """
        if not is_positive_finite(amount_in):
            return RouteEvaluation.rejected(
                route, amount_in, RouteRejection.INVALID_INPUT, f"amount_in {amount_in}"
            )
        if gas_price_gwei is None:
            gas_price_gwei = await self.current_gas_price()
        return await self._score(route, amount_in, options or RouteOptions(), gas_price_gwei)

    async def _score(
        self,
        route: Route,
        amount_in: float,
        options: RouteOptions,
        gas_price_gwei: float | None,
    ) -> RouteEvaluation:
        try:
            hop_details = await self._walk(route, amount_in)
        except _HopFailure as failure:
            logger.debug(
                "route_invalid",
                path=route.path,
                venues=route.venue_ids,
                rejection=failure.rejection.value,
                detail=failure.detail,
            )
            return RouteEvaluation.rejected(
                route, amount_in, failure.rejection, failure.detail, failure.hop_details
            )

        input_price = options.input_price_usd or self.config.default_token_price_usd
        output_price = options.output_price_usd or self.config.default_token_price_usd

        output_amount = hop_details[-1].amount_out
        gas_units = sum(h.gas_units for h in hop_details)
        slippage = sum(h.slippage for h in hop_details)
        gas_cost_native = self._gas_cost_native(gas_units, gas_price_gwei)
        gas_cost_usd = gas_cost_native * self.config.native_token_price_usd
        trade_value_usd = amount_in * input_price
        net_output = output_amount - gas_cost_usd / output_price
        gas_ratio = gas_cost_usd / trade_value_usd

        rejection: RouteRejection | None = None
        detail: str | None = None
        if slippage > self.config.max_slippage:
            rejection = RouteRejection.EXCESSIVE_SLIPPAGE
            detail = f"slippage {slippage:.6f} above {self.config.max_slippage}"
        elif gas_ratio > self.config.max_gas_ratio:
            rejection = RouteRejection.EXCESSIVE_GAS_RATIO
            detail = f"gas ratio {gas_ratio:.6f} above {self.config.max_gas_ratio}"

        return RouteEvaluation(
            route=route,
            input_amount=amount_in,
            output_amount=output_amount,
            net_output_amount=net_output,
            gas_units=gas_units,
            gas_cost_native=gas_cost_native,
            gas_cost_usd=gas_cost_usd,
            slippage=slippage,
            gas_ratio=gas_ratio,
            valid=rejection is None,
            rejection=rejection,
            rejection_detail=detail,
            hop_details=hop_details,
        )

    async def _evaluate_all(
        self,
        routes: list[Route],
        amount_in: float,
        options: RouteOptions,
        gas_price_gwei: float | None,
    ) -> list[RouteEvaluation]:
        semaphore = asyncio.Semaphore(self.config.max_concurrent_evaluations)

        async def bounded(route: Route) -> RouteEvaluation:
            async with semaphore:
                return await self._score(route, amount_in, options, gas_price_gwei)

        # gather preserves input order, which keeps tie-breaking deterministic
        return await asyncio.gather(*(bounded(r) for r in routes))

    async def find_optimal_route(
        self,
        token_a: str,
        token_b: str,
        amount_in: float,
        options: RouteOptions | None = None,
    ) -> RouteEvaluation:
        """Best valid route by net output.

        Equal net outputs resolve to the route generated first. Results are
        cached per (token_a, token_b, amount_in, options) for the cache TTL, and
        a cache hit returns the identical evaluation object.

        Raises:
            ConfigurationError: If no venues are registered at all
            NoRouteFound: If the input is invalid or no route is valid
        """
        self.venues.require_venues()
        options = options or RouteOptions()

        if not (is_valid_address(token_a) and is_valid_address(token_b)):
            raise NoRouteFound(token_a, token_b, "invalid token address")
        if not is_positive_finite(amount_in):
            raise NoRouteFound(token_a, token_b, f"invalid amount {amount_in}")
        token_a = normalize_address(token_a)
        token_b = normalize_address(token_b)

        key: RouteCacheKey = (token_a, token_b, float(amount_in), options)
        cached = self._cache.get(key)
        if cached is not None:
            self.cache_hits += 1
            logger.debug("route_cache_hit", token_a=token_a, token_b=token_b, amount_in=amount_in)
            return cached
        self.cache_misses += 1
        self.total_route_calculations += 1

        routes = self.generate_routes(token_a, token_b, options.max_hops)
        if not routes:
            raise NoRouteFound(token_a, token_b, "no candidate routes")

        gas_price = await self.current_gas_price()
        evaluations = await self._evaluate_all(routes, float(amount_in), options, gas_price)

        best: RouteEvaluation | None = None
        valid_count = 0
        for evaluation in evaluations:
            if not evaluation.valid:
                continue
            valid_count += 1
            if best is None or evaluation.net_output_amount > best.net_output_amount:
                best = evaluation

        if best is None:
            logger.info(
                "no_valid_route",
                token_a=token_a,
                token_b=token_b,
                candidates=len(routes),
            )
            raise NoRouteFound(token_a, token_b, f"none of {len(routes)} candidate routes is valid")

        self.optimal_routes_found += 1
        self._total_route_length += len(best.route)
        self._cache.set(key, best)

        logger.info(
            "optimal_route_found",
            token_a=token_a,
            token_b=token_b,
            hops=len(best.route),
            venues=best.route.venue_ids,
            net_output=best.net_output_amount,
            candidates=len(routes),
            valid=valid_count,
        )
        return best

    async def _evaluate_round_trip(
        self,
        token_a: str,
        token_b: str,
        amount_in: float,
        buy_venue: str,
        sell_venue: str,
        gas_price_gwei: float | None,
    ) -> ArbitrageRoute | None:
        buy_leg = Route((Hop(token_a, token_b, buy_venue),))
        sell_leg = Route((Hop(token_b, token_a, sell_venue),))
        try:
            buy = await self._walk(buy_leg, amount_in)
            sell = await self._walk(sell_leg, buy[-1].amount_out)
        except _HopFailure as failure:
            logger.debug(
                "arbitrage_leg_invalid",
                buy_venue=buy_venue,
                sell_venue=sell_venue,
                rejection=failure.rejection.value,
            )
            return None

        final_amount = sell[-1].amount_out
        profit = final_amount - amount_in
        gas_units = buy[0].gas_units + sell[0].gas_units
        gas_cost_native = self._gas_cost_native(gas_units, gas_price_gwei)
        gas_cost_usd = gas_cost_native * self.config.native_token_price_usd
        gas_cost_in_token = gas_cost_usd / self.config.default_token_price_usd
        return ArbitrageRoute(
            token_a=token_a,
            token_b=token_b,
            buy_venue=buy_venue,
            sell_venue=sell_venue,
            amount_in=amount_in,
            buy_amount=buy[-1].amount_out,
            final_amount=final_amount,
            profit=profit,
            net_profit=profit - gas_cost_in_token,
            profit_percentage=profit / amount_in * 100,
            gas_units=gas_units,
            gas_cost_native=gas_cost_native,
            buy_slippage=buy[0].slippage,
            sell_slippage=sell[0].slippage,
        )

    async def find_arbitrage_routes(
        self,
        token_a: str,
        token_b: str,
        amount_in: float,
    ) -> list[ArbitrageRoute]:
        """Profitable two-venue round trips, best net profit first.

        Every unordered pair of enabled venues is tried in both directions.

        Raises:
            ConfigurationError: If no venues are registered at all
        """
        self.venues.require_venues()
        if not (is_valid_address(token_a) and is_valid_address(token_b)):
            return []
        if not is_positive_finite(amount_in):
            return []
        token_a = normalize_address(token_a)
        token_b = normalize_address(token_b)
        if token_a == token_b:
            return []

        venue_ids = [v.id for v in self.venues.enabled()]
        directions = [
            (venue_ids[i], venue_ids[j]) if k == 0 else (venue_ids[j], venue_ids[i])
            for i in range(len(venue_ids))
            for j in range(i + 1, len(venue_ids))
            for k in (0, 1)
        ]
        if not directions:
            return []

        gas_price = await self.current_gas_price()
        semaphore = asyncio.Semaphore(self.config.max_concurrent_evaluations)

        async def bounded(buy_venue: str, sell_venue: str) -> ArbitrageRoute | None:
            async with semaphore:
                return await self._evaluate_round_trip(
                    token_a, token_b, float(amount_in), buy_venue, sell_venue, gas_price
                )

        results = await asyncio.gather(*(bounded(b, s) for b, s in directions))
        profitable = [r for r in results if r is not None and r.profit > 0]
        profitable.sort(key=lambda r: r.net_profit, reverse=True)

        logger.info(
            "arbitrage_scan_complete",
            token_a=token_a,
            token_b=token_b,
            directions=len(directions),
            profitable=len(profitable),
        )
        return profitable

    @property
    def average_route_length(self) -> float:
        if self.optimal_routes_found == 0:
            return 0.0
        return self._total_route_length / self.optimal_routes_found

    def get_stats(self) -> RouterStats:
        return RouterStats(
            total_route_calculations=self.total_route_calculations,
            optimal_routes_found=self.optimal_routes_found,
            cache_hits=self.cache_hits,
            cache_misses=self.cache_misses,
            average_route_length=self.average_route_length,
            cache_size=len(self._cache),
            enabled_venues=len(self.venues.enabled()),
        )

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("route_cache_cleared")


__all__ = ["RouteCacheKey", "RouteEvaluator"]
