"""Fake data sources and factory functions for creating test objects.

Usage:
    from tests.helpers import FakeQuoteSource, FakeChainData, make_request

    quotes = FakeQuoteSource()
    quotes.set_rate("v1", WETH, USDC, 2000.0)
    chain = FakeChainData(base_fee=20.0, priority_fee=2.0)
"""

import asyncio
import time

from arbopt.models.optimization import OptimizationRequest
from arbopt.models.quotes import BlockInfo, FeeData, PriceQuote, SwapQuote
from arbopt.routing import RoutingConfig
from arbopt.venues import Venue, VenueRegistry
from tests.helpers.constants import PAIR, USDC, WETH

QuoteKey = tuple[str, str, str]


class FakeQuoteSource:
    """Quote source with a fixed exchange rate per (venue, token_in, token_out).

    Unknown keys return None, like a venue without a pool for the pair.
    """

    def __init__(self, liquidity: float = 1_000_000.0, slippage: float = 0.001) -> None:
        self.default_liquidity = liquidity
        self.default_slippage = slippage
        self.rates: dict[QuoteKey, float] = {}
        self.liquidity: dict[QuoteKey, float] = {}
        self.slippage: dict[QuoteKey, float] = {}
        self.failures: set[QuoteKey] = set()
        self.delays: dict[QuoteKey, float] = {}
        self.calls: list[QuoteKey] = []

    def set_rate(
        self,
        venue_id: str,
        token_in: str,
        token_out: str,
        rate: float,
        *,
        liquidity: float | None = None,
        slippage: float | None = None,
    ) -> None:
        key = (venue_id, token_in, token_out)
        self.rates[key] = rate
        if liquidity is not None:
            self.liquidity[key] = liquidity
        if slippage is not None:
            self.slippage[key] = slippage

    def fail(self, venue_id: str, token_in: str, token_out: str) -> None:
        self.failures.add((venue_id, token_in, token_out))

    def delay(self, venue_id: str, token_in: str, token_out: str, seconds: float) -> None:
        self.delays[(venue_id, token_in, token_out)] = seconds

    async def get_quote(
        self, token_in: str, token_out: str, amount_in: float, venue_id: str
    ) -> SwapQuote | None:
        key = (venue_id, token_in, token_out)
        self.calls.append(key)
        if key in self.delays:
            await asyncio.sleep(self.delays[key])
        if key in self.failures:
            raise RuntimeError(f"venue {venue_id} unreachable")
        rate = self.rates.get(key)
        if rate is None:
            return None
        return SwapQuote(
            output_amount=amount_in * rate,
            slippage=self.slippage.get(key, self.default_slippage),
            liquidity=self.liquidity.get(key, self.default_liquidity),
            price=rate,
        )


class FakeChainData:
    """Chain data source returning fixed fee and block data.

    Defaults give a 22 gwei gas price and a half-full block (medium congestion).
    """

    def __init__(
        self,
        base_fee: float = 20.0,
        priority_fee: float = 2.0,
        gas_used: int = 15_000_000,
        gas_limit: int = 30_000_000,
        block_number: int = 19_000_000,
    ) -> None:
        self.fee_data = FeeData(base_fee=base_fee, priority_fee=priority_fee)
        self.block = BlockInfo(
            number=block_number,
            gas_used=gas_used,
            gas_limit=gas_limit,
            timestamp=time.time(),
        )
        self.fail_fees = False
        self.fail_blocks = False
        self.delay = 0.0
        self.fee_calls = 0
        self.block_calls = 0

    def set_utilization(self, percent: float) -> None:
        self.block = BlockInfo(
            number=self.block.number + 1,
            gas_used=int(self.block.gas_limit * percent / 100),
            gas_limit=self.block.gas_limit,
            timestamp=time.time(),
        )

    def fail(self) -> None:
        self.fail_fees = True
        self.fail_blocks = True

    async def get_fee_data(self) -> FeeData:
        self.fee_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_fees:
            raise ConnectionError("rpc unavailable")
        return self.fee_data

    async def get_latest_block(self) -> BlockInfo:
        self.block_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_blocks:
            raise ConnectionError("rpc unavailable")
        return self.block


class FakeGasEstimator:
    def __init__(self, gas: int = 300_000, fail: bool = False) -> None:
        self.gas = gas
        self.should_fail = fail
        self.calls = 0

    async def estimate_gas(self, request: OptimizationRequest) -> int:
        self.calls += 1
        if self.should_fail:
            raise RuntimeError("simulation reverted")
        return self.gas


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_registry(*venue_ids: str, gas_per_swap: int = 100_000) -> VenueRegistry:
    """Registry of enabled venues with equal gas cost (default: v1, v2)."""
    ids = venue_ids or ("v1", "v2")
    return VenueRegistry(Venue(id=v, fee_rate=0.003, gas_per_swap=gas_per_swap) for v in ids)


def make_routing_config(**overrides: object) -> RoutingConfig:
    """Routing config without intermediates unless given, to keep searches small."""
    params: dict[str, object] = {"intermediate_tokens": ()}
    params.update(overrides)
    return RoutingConfig(**params)  # type: ignore[arg-type]


def make_quote(venue_id: str, price: float, pair: str = PAIR, liquidity: float = 0.0) -> PriceQuote:
    return PriceQuote(venue_id=venue_id, pair=pair, price=price, liquidity=liquidity)


def make_request(
    amount_in: float = 10_000.0,
    expected_profit: float = 100.0,
    token_in: str = WETH,
    token_out: str = USDC,
    **kwargs: object,
) -> OptimizationRequest:
    """Create an optimization request with sensible defaults.

    Defaults describe a $10,000 trade with a 1% expected margin, which selects
    the balanced strategy under medium congestion.
    """
    return OptimizationRequest(
        token_in=token_in,
        token_out=token_out,
        amount_in=amount_in,
        expected_profit=expected_profit,
        **kwargs,  # type: ignore[arg-type]
    )
