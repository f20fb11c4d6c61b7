"""External data collaborators consumed by the optimizer core.

The core never fetches quotes or chain data itself. Callers supply objects
satisfying these protocols; every call goes through ``call_with_timeout`` so a
slow or failing provider degrades the affected computation instead of hanging it.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TYPE_CHECKING, Protocol, TypeVar

from arbopt.errors import DataUnavailable

if TYPE_CHECKING:
    from arbopt.models.optimization import OptimizationRequest
    from arbopt.models.quotes import BlockInfo, FeeData, SwapQuote

T = TypeVar("T")


class QuoteSource(Protocol):
    """Venue quote provider.

    Returns None when the venue cannot quote the swap.
    """

    async def get_quote(
        self,
        token_in: str,
        token_out: str,
        amount_in: float,
        venue_id: str,
    ) -> SwapQuote | None: ...


class ChainDataSource(Protocol):
    """Network fee and block data provider."""

    async def get_fee_data(self) -> FeeData: ...

    async def get_latest_block(self) -> BlockInfo: ...


class GasEstimator(Protocol):
    """Optional external gas simulation (e.g. eth_estimateGas against a fork)."""

    async def estimate_gas(self, request: OptimizationRequest) -> int: ...


async def call_with_timeout(
    source: str,
    awaitable: Awaitable[T],
    timeout: float,
) -> T:
    """Await a collaborator call with a bounded timeout.

    Args:
        source: Name of the call, recorded on the raised error
        awaitable: The pending collaborator call
        timeout: Seconds to wait before giving up

    Returns:
        The collaborator's result

    Raises:
        DataUnavailable: On timeout or any exception raised by the collaborator
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except TimeoutError as e:
        raise DataUnavailable(source, f"timed out after {timeout}s") from e
    except DataUnavailable:
        raise
    except Exception as e:
        raise DataUnavailable(source, f"{type(e).__name__}: {e}") from e


__all__ = [
    "ChainDataSource",
    "GasEstimator",
    "QuoteSource",
    "call_with_timeout",
]
