"""Market data value objects supplied by external collaborators."""

from __future__ import annotations

import time
from dataclasses import dataclass, field


@dataclass(frozen=True)
class PriceQuote:
    """A venue's quoted price for a pair at a point in time.

    Attributes:
        venue_id: Venue that produced the quote
        pair: Pair identifier, e.g. "WETH/USDC"
        price: Quoted price of the base asset in quote units
        liquidity: Available liquidity in quote units (0 if unknown)
        timestamp: Unix seconds when the quote was taken
    """

    venue_id: str
    pair: str
    price: float
    liquidity: float = 0.0
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class SwapQuote:
    """Result of quoting one swap on one venue.

    Attributes:
        output_amount: Amount of token_out received
        slippage: Fractional price impact (0.003 = 0.3%)
        liquidity: Liquidity available on the venue for this pair
        price: Effective execution price
        fee: Venue fee paid, in token_in units
    """

    output_amount: float
    slippage: float = 0.0
    liquidity: float = 0.0
    price: float = 0.0
    fee: float = 0.0


@dataclass(frozen=True)
class FeeData:
    """Current network fee levels in gwei."""

    base_fee: float
    priority_fee: float

    @property
    def gas_price(self) -> float:
        return self.base_fee + self.priority_fee


@dataclass(frozen=True)
class BlockInfo:
    """Latest block summary."""

    number: int
    gas_used: int
    gas_limit: int
    timestamp: float

    @property
    def utilization(self) -> float:
        """Gas used as a percentage of the block gas limit."""
        if self.gas_limit <= 0:
            return 0.0
        return self.gas_used / self.gas_limit * 100


__all__ = ["BlockInfo", "FeeData", "PriceQuote", "SwapQuote"]
