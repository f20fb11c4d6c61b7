"""Running aggregates over completed optimization attempts."""

from __future__ import annotations

from dataclasses import dataclass

from arbopt.models.optimization import OptimizationResult


@dataclass(frozen=True)
class StatsSnapshot:
    """Point-in-time copy of optimization statistics."""

    total_optimizations: int
    successful_optimizations: int
    fallback_count: int
    total_cost_saved: float
    best_savings_percentage: float
    average_savings: float
    success_rate: float
    queue_depth: int = 0


class OptimizationStats:
    """Counters updated exactly once per completed attempt.

    Args:
        success_threshold: Savings percentage an attempt must exceed to count
            as successful
    """

    def __init__(self, success_threshold: float = 5.0) -> None:
        self.success_threshold = success_threshold
        self.total_optimizations = 0
        self.successful_optimizations = 0
        self.fallback_count = 0
        self.total_cost_saved = 0.0
        self.best_savings_percentage = 0.0
        self._savings_percentage_sum = 0.0

    def record(self, result: OptimizationResult) -> None:
        self.total_optimizations += 1
        if result.fallback_used:
            self.fallback_count += 1
        percentage = result.savings.percentage
        if percentage > self.success_threshold:
            self.successful_optimizations += 1
        self.total_cost_saved += max(result.savings.absolute, 0.0)
        self.best_savings_percentage = max(self.best_savings_percentage, percentage)
        self._savings_percentage_sum += percentage

    @property
    def average_savings(self) -> float:
        """Mean savings percentage over all attempts."""
        if self.total_optimizations == 0:
            return 0.0
        return self._savings_percentage_sum / self.total_optimizations

    @property
    def success_rate(self) -> float:
        if self.total_optimizations == 0:
            return 0.0
        return self.successful_optimizations / self.total_optimizations * 100

    def snapshot(self, queue_depth: int = 0) -> StatsSnapshot:
        return StatsSnapshot(
            total_optimizations=self.total_optimizations,
            successful_optimizations=self.successful_optimizations,
            fallback_count=self.fallback_count,
            total_cost_saved=self.total_cost_saved,
            best_savings_percentage=self.best_savings_percentage,
            average_savings=self.average_savings,
            success_rate=self.success_rate,
            queue_depth=queue_depth,
        )


__all__ = ["OptimizationStats", "StatsSnapshot"]
