"""Test helpers module for shared test utilities.

- constants: Token addresses
- factories: Fake data sources, clocks and request builders
"""

from tests.helpers.constants import DAI, PAIR, UNI, USDC, USDT, WETH
from tests.helpers.factories import (
    FakeChainData,
    FakeClock,
    FakeGasEstimator,
    FakeQuoteSource,
    make_quote,
    make_registry,
    make_request,
    make_routing_config,
)

__all__ = [
    # Constants
    "WETH",
    "USDC",
    "DAI",
    "USDT",
    "UNI",
    "PAIR",
    # Fakes
    "FakeChainData",
    "FakeClock",
    "FakeGasEstimator",
    "FakeQuoteSource",
    # Factories
    "make_quote",
    "make_registry",
    "make_request",
    "make_routing_config",
]
