"""Type definitions for route search."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum

from arbopt.constants import MAX_ROUTE_HOPS


@dataclass(frozen=True)
class Hop:
    """One swap leg executed on one venue."""

    token_in: str
    token_out: str
    venue_id: str


@dataclass(frozen=True)
class Route:
    """An ordered chain of hops.

    Raises:
        ValueError: If the route is empty, longer than the hop limit, or a hop
            does not start where the previous one ended
    """

    hops: tuple[Hop, ...]

    def __post_init__(self) -> None:
        if not 1 <= len(self.hops) <= MAX_ROUTE_HOPS:
            raise ValueError(f"Route must have 1..{MAX_ROUTE_HOPS} hops, got {len(self.hops)}")
        for i in range(len(self.hops) - 1):
            if self.hops[i + 1].token_in != self.hops[i].token_out:
                raise ValueError(
                    f"Broken route at hop {i + 1}: expected token_in "
                    f"{self.hops[i].token_out}, got {self.hops[i + 1].token_in}"
                )

    @property
    def token_in(self) -> str:
        return self.hops[0].token_in

    @property
    def token_out(self) -> str:
        return self.hops[-1].token_out

    @property
    def path(self) -> list[str]:
        """Token path including both endpoints."""
        return [self.hops[0].token_in, *(h.token_out for h in self.hops)]

    @property
    def venue_ids(self) -> list[str]:
        return [h.venue_id for h in self.hops]

    @property
    def is_multihop(self) -> bool:
        return len(self.hops) > 1

    def __len__(self) -> int:
        return len(self.hops)


class RouteRejection(Enum):
    """Reasons a route evaluation is invalid."""

    INVALID_INPUT = "invalid_input"
    UNKNOWN_VENUE = "unknown_venue"
    VENUE_DISABLED = "venue_disabled"
    QUOTE_FAILED = "quote_failed"
    NON_POSITIVE_OUTPUT = "non_positive_output"
    INVALID_QUOTE = "invalid_quote"
    INSUFFICIENT_LIQUIDITY = "insufficient_liquidity"
    EXCESSIVE_SLIPPAGE = "excessive_slippage"
    EXCESSIVE_GAS_RATIO = "excessive_gas_ratio"


@dataclass(frozen=True)
class HopEvaluation:
    """Quoted result of a single hop."""

    token_in: str
    token_out: str
    venue_id: str
    amount_in: float
    amount_out: float
    slippage: float
    gas_units: int
    liquidity: float = 0.0


@dataclass(frozen=True)
class RouteEvaluation:
    """Scored route.

    ``net_output_amount`` is the output minus gas cost expressed in output token
    units. ``slippage`` is the sum of per-hop slippage. Invalid evaluations carry
    a ``rejection`` reason and whatever was computed before the route failed.
    """

    route: Route
    input_amount: float
    output_amount: float = 0.0
    net_output_amount: float = 0.0
    gas_units: int = 0
    gas_cost_native: float = 0.0
    gas_cost_usd: float = 0.0
    slippage: float = 0.0
    gas_ratio: float = 0.0
    valid: bool = True
    rejection: RouteRejection | None = None
    rejection_detail: str | None = None
    hop_details: tuple[HopEvaluation, ...] = ()
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def rejected(
        cls,
        route: Route,
        input_amount: float,
        rejection: RouteRejection,
        detail: str | None = None,
        hop_details: tuple[HopEvaluation, ...] = (),
    ) -> RouteEvaluation:
        """Create an invalid evaluation for a route that failed mid-walk."""
        return cls(
            route=route,
            input_amount=input_amount,
            output_amount=hop_details[-1].amount_out if hop_details else 0.0,
            gas_units=sum(h.gas_units for h in hop_details),
            slippage=sum(h.slippage for h in hop_details),
            valid=False,
            rejection=rejection,
            rejection_detail=detail,
            hop_details=hop_details,
        )


@dataclass(frozen=True)
class ArbitrageRoute:
    """Round trip token_a -> token_b on one venue and back on another.

    ``profit`` and ``net_profit`` are in token_a units; ``net_profit`` has the
    gas cost of both legs deducted.
    """

    token_a: str
    token_b: str
    buy_venue: str
    sell_venue: str
    amount_in: float
    buy_amount: float
    final_amount: float
    profit: float
    net_profit: float
    profit_percentage: float
    gas_units: int
    gas_cost_native: float
    buy_slippage: float
    sell_slippage: float
    valid: bool = True


@dataclass(frozen=True)
class RouterStats:
    """Snapshot of route search metrics."""

    total_route_calculations: int
    optimal_routes_found: int
    cache_hits: int
    cache_misses: int
    average_route_length: float
    cache_size: int
    enabled_venues: int


__all__ = [
    "ArbitrageRoute",
    "Hop",
    "HopEvaluation",
    "Route",
    "RouteEvaluation",
    "RouteRejection",
    "RouterStats",
]
