"""Pytest configuration and fixtures."""

import pytest

from arbopt.fees import FeeParameterPredictor
from arbopt.routing import RouteEvaluator
from tests.helpers import (
    FakeChainData,
    FakeClock,
    FakeQuoteSource,
    make_registry,
    make_routing_config,
)


@pytest.fixture
def quotes() -> FakeQuoteSource:
    return FakeQuoteSource()


@pytest.fixture
def chain() -> FakeChainData:
    """Chain data at 20 + 2 gwei and 50% block utilization."""
    return FakeChainData()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def evaluator(quotes, chain, clock) -> RouteEvaluator:
    """Route evaluator over venues v1 and v2 (100k gas each), no intermediates."""
    return RouteEvaluator(
        venues=make_registry(),
        quotes=quotes,
        chain=chain,
        config=make_routing_config(),
        clock=clock,
    )


@pytest.fixture
def predictor(chain) -> FeeParameterPredictor:
    return FeeParameterPredictor(chain=chain)
