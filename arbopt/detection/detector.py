"""Cross-venue price discrepancy detection.

The detector compares two quotes for the same pair and records every detection
in a bounded history. Invalid input never raises; it yields no opportunity.
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass
from itertools import islice

import structlog

from arbopt.detection.config import DEFAULT_DETECTOR_CONFIG, DetectorConfig
from arbopt.models.opportunity import NetProfitEstimate, Opportunity
from arbopt.models.quotes import PriceQuote

logger = structlog.get_logger()


@dataclass(frozen=True)
class DetectorStats:
    """Snapshot of detector counters."""

    total_checked: int
    opportunities_found: int
    profitable_found: int
    total_potential_profit: float
    profitability_rate: float
    average_profit_percentage: float
    history_size: int


def _valid_price(quote: PriceQuote) -> bool:
    price = quote.price
    if isinstance(price, bool) or not isinstance(price, int | float):
        return False
    return math.isfinite(price) and price > 0


class OpportunityDetector:
    """Detects profitable price differences between two venue quotes."""

    def __init__(self, config: DetectorConfig = DEFAULT_DETECTOR_CONFIG) -> None:
        self.config = config
        self._history: deque[Opportunity] = deque(maxlen=config.history_size)
        self.total_checked = 0
        self.opportunities_found = 0
        self.profitable_found = 0
        self.total_potential_profit = 0.0

    def detect(
        self,
        quote_a: PriceQuote | None,
        quote_b: PriceQuote | None,
        pair: str | None = None,
    ) -> Opportunity | None:
        """Compare two quotes and build an opportunity.

        Args:
            quote_a: First venue quote. Wins the buy side on equal prices.
            quote_b: Second venue quote
            pair: Pair identifier; defaults to quote_a.pair

        Returns:
            The opportunity, or None if either quote is missing or has a
            non-positive or non-finite price.
        """
        self.total_checked += 1

        if (
            quote_a is None
            or quote_b is None
            or not (_valid_price(quote_a) and _valid_price(quote_b))
        ):
            logger.debug(
                "invalid_quotes",
                venue_a=quote_a.venue_id if quote_a else None,
                venue_b=quote_b.venue_id if quote_b else None,
            )
            return None

        price_a = float(quote_a.price)
        price_b = float(quote_b.price)

        if price_a <= price_b:
            buy, sell = quote_a, quote_b
        else:
            buy, sell = quote_b, quote_a

        price_diff = abs(price_b - price_a)
        profit_percentage = price_diff / min(price_a, price_b) * 100
        profitable = profit_percentage >= self.config.min_profit_threshold

        opportunity = Opportunity(
            pair=pair if pair is not None else quote_a.pair,
            buy_venue=buy.venue_id,
            sell_venue=sell.venue_id,
            buy_price=float(buy.price),
            sell_price=float(sell.price),
            price_diff=price_diff,
            profit_percentage=profit_percentage,
            profitable=profitable,
        )

        self._history.append(opportunity)
        self.opportunities_found += 1
        if profitable:
            self.profitable_found += 1
            logger.info(
                "profitable_opportunity",
                pair=opportunity.pair,
                buy_venue=opportunity.buy_venue,
                sell_venue=opportunity.sell_venue,
                profit_percentage=round(profit_percentage, 4),
            )

        return opportunity

    def estimate_net_profit(
        self,
        opportunity: Opportunity,
        trade_amount: float | None = None,
    ) -> NetProfitEstimate:
        """Estimate profit after gas and slippage for trading an opportunity.

        Args:
            opportunity: A detected opportunity
            trade_amount: Quote-asset amount to trade; defaults to the configured
                default trade amount

        Returns:
            The estimate. Non-profitable opportunities get a zeroed estimate.
        """
        amount = self.config.default_trade_amount if trade_amount is None else trade_amount
        if not opportunity.profitable:
            return NetProfitEstimate.zero(amount)

        amount_to_buy = amount / opportunity.buy_price
        sell_value = amount_to_buy * opportunity.sell_price
        gross_profit = sell_value - amount
        gas_cost = self.config.gas_cost_usd
        slippage_cost = amount * self.config.slippage_tolerance / 100
        net_profit = gross_profit - gas_cost - slippage_cost
        roi = net_profit / amount * 100 if amount > 0 else 0.0
        profitable = net_profit > 0

        if profitable:
            self.total_potential_profit += net_profit

        return NetProfitEstimate(
            trade_amount=amount,
            amount_to_buy=amount_to_buy,
            sell_value=sell_value,
            gross_profit=gross_profit,
            gas_cost=gas_cost,
            slippage_cost=slippage_cost,
            net_profit=net_profit,
            roi=roi,
            profitable=profitable,
        )

    def recent_opportunities(self, limit: int = 10) -> list[Opportunity]:
        """Most recent opportunities, newest first."""
        return list(islice(reversed(self._history), limit))

    def profitable_opportunities(self, limit: int = 50) -> list[Opportunity]:
        """Most recent profitable opportunities, newest first."""
        profitable = (o for o in reversed(self._history) if o.profitable)
        return list(islice(profitable, limit))

    def average_profit_percentage(self) -> float:
        """Mean profit percentage over profitable opportunities in history."""
        values = [o.profit_percentage for o in self._history if o.profitable]
        if not values:
            return 0.0
        return sum(values) / len(values)

    def get_stats(self) -> DetectorStats:
        rate = self.profitable_found / self.total_checked * 100 if self.total_checked else 0.0
        return DetectorStats(
            total_checked=self.total_checked,
            opportunities_found=self.opportunities_found,
            profitable_found=self.profitable_found,
            total_potential_profit=self.total_potential_profit,
            profitability_rate=rate,
            average_profit_percentage=self.average_profit_percentage(),
            history_size=len(self._history),
        )

    def reset(self) -> None:
        """Clear history and counters."""
        self._history.clear()
        self.total_checked = 0
        self.opportunities_found = 0
        self.profitable_found = 0
        self.total_potential_profit = 0.0
        logger.info("detector_reset")


__all__ = ["DetectorStats", "OpportunityDetector"]
