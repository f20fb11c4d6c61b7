"""Rolling window of observed network fee data."""

from __future__ import annotations

import statistics
import time
from collections import deque
from dataclasses import dataclass, field


@dataclass(frozen=True)
class FeeDataPoint:
    """One observation of block and fee data."""

    block_number: int
    gas_used: int
    gas_limit: int
    base_fee: float
    priority_fee: float
    utilization: float
    timestamp: float = field(default_factory=time.time)


class FeeHistory:
    """Bounded history of fee observations, oldest first."""

    def __init__(self, max_size: int = 1000) -> None:
        self._points: deque[FeeDataPoint] = deque(maxlen=max_size)

    def append(self, point: FeeDataPoint) -> None:
        self._points.append(point)

    def recent(self, count: int) -> list[FeeDataPoint]:
        """The last ``count`` points, oldest first."""
        if count <= 0:
            return []
        return list(self._points)[-count:]

    def recent_gas_usage(self, window: int, default: float) -> float:
        """Mean gas used over the last ``window`` points.

        Returns ``default`` until at least ``window`` points are recorded.
        """
        if len(self._points) < window:
            return default
        return statistics.fmean(p.gas_used for p in self.recent(window))

    def volatility(self, window: int, default: float) -> float:
        """Coefficient of variation (pstdev / mean) of recent base fees.

        Returns ``default`` until at least ``window`` points are recorded, or
        when the mean base fee is zero.
        """
        if len(self._points) < window:
            return default
        fees = [p.base_fee for p in self.recent(window)]
        mean = statistics.fmean(fees)
        if mean == 0:
            return default
        return statistics.pstdev(fees) / mean

    def clear(self) -> None:
        self._points.clear()

    def __len__(self) -> int:
        return len(self._points)


__all__ = ["FeeDataPoint", "FeeHistory"]
