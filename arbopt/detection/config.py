"""Opportunity detector configuration."""

from dataclasses import dataclass


@dataclass(frozen=True)
class DetectorConfig:
    """Thresholds and cost assumptions for opportunity detection.

    Attributes:
        min_profit_threshold: Minimum price discrepancy, in percent, for an
            opportunity to be flagged profitable (default: 0.5)
        slippage_tolerance: Expected slippage in percent of trade amount
            (default: 0.1)
        default_trade_amount: Trade amount used when none is given (default: 1000)
        gas_price_gwei: Gas price assumed for the profit estimate (default: 20)
        gas_limit: Gas units of one arbitrage transaction (default: 200,000)
        native_token_price_usd: Native token price used to value gas (default: 2500)
        history_size: Opportunities kept in the ring buffer (default: 1000)
    """

    min_profit_threshold: float = 0.5
    slippage_tolerance: float = 0.1
    default_trade_amount: float = 1000.0

    # Gas cost assumptions for the net profit estimate
    gas_price_gwei: float = 20.0
    gas_limit: int = 200_000
    native_token_price_usd: float = 2500.0

    history_size: int = 1000

    @property
    def gas_cost_usd(self) -> float:
        """Estimated gas cost of one arbitrage in USD."""
        return self.gas_price_gwei * self.gas_limit / 1e9 * self.native_token_price_usd


# Default configuration instance
DEFAULT_DETECTOR_CONFIG = DetectorConfig()
