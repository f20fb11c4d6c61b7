"""Detected price discrepancies and their profit estimates."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field


def _new_opportunity_id() -> str:
    return f"opp_{uuid.uuid4().hex[:16]}"


@dataclass(frozen=True)
class Opportunity:
    """A price discrepancy for one pair across two venues.

    Created by the detector and never mutated afterwards. ``profit_percentage``
    is measured against the lower of the two prices.
    """

    pair: str
    buy_venue: str
    sell_venue: str
    buy_price: float
    sell_price: float
    price_diff: float
    profit_percentage: float
    profitable: bool
    timestamp: float = field(default_factory=time.time)
    id: str = field(default_factory=_new_opportunity_id)


@dataclass(frozen=True)
class NetProfitEstimate:
    """Profit of trading an opportunity after gas and slippage.

    Attributes:
        trade_amount: Quote-asset amount spent on the buy side
        amount_to_buy: Base-asset amount acquired on the buy venue
        sell_value: Quote-asset proceeds of selling on the sell venue
        gross_profit: sell_value - trade_amount
        gas_cost: Estimated gas cost in USD
        slippage_cost: Estimated slippage cost in quote units
        net_profit: gross_profit - gas_cost - slippage_cost
        roi: net_profit / trade_amount * 100
        profitable: True if net_profit > 0
    """

    trade_amount: float
    amount_to_buy: float = 0.0
    sell_value: float = 0.0
    gross_profit: float = 0.0
    gas_cost: float = 0.0
    slippage_cost: float = 0.0
    net_profit: float = 0.0
    roi: float = 0.0
    profitable: bool = False

    @classmethod
    def zero(cls, trade_amount: float) -> NetProfitEstimate:
        """Estimate for an opportunity that is not worth trading."""
        return cls(trade_amount=trade_amount)


__all__ = ["NetProfitEstimate", "Opportunity"]
