"""HTTP API for the arbitrage optimizer."""

from arbopt.api.endpoints import get_engine, set_engine
from arbopt.api.main import app

__all__ = ["app", "get_engine", "set_engine"]
