"""Rule-based fee parameter prediction.

Predictions come from current network signals and a rolling history window,
and are blended with live fee data by confidence weight. Data source failures
never propagate out of ``estimate``; the documented fallback is returned instead.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

import structlog

from arbopt.cache import Clock
from arbopt.errors import DataUnavailable
from arbopt.fees.config import DEFAULT_PREDICTOR_CONFIG, CongestionLevel, PredictorConfig
from arbopt.fees.features import FeeFeatures, classify_congestion
from arbopt.fees.history import FeeDataPoint, FeeHistory
from arbopt.models.optimization import FeeEstimate, FeeSource
from arbopt.sources import call_with_timeout

if TYPE_CHECKING:
    from arbopt.models.quotes import BlockInfo, FeeData
    from arbopt.sources import ChainDataSource

logger = structlog.get_logger()


class FeeParameterPredictor:
    """Predicts gas limit, gas price and priority fee for a trade.

    Args:
        chain: Block and fee data provider
        config: Prediction rules, bounds and fallbacks
        history: Shared fee history; a new bounded history is created if omitted
        clock: Wall clock used to compute block age
    """

    def __init__(
        self,
        chain: ChainDataSource,
        config: PredictorConfig = DEFAULT_PREDICTOR_CONFIG,
        history: FeeHistory | None = None,
        clock: Clock = time.time,
    ) -> None:
        self.chain = chain
        self.config = config
        self.history = history if history is not None else FeeHistory(config.history_size)
        self._clock = clock

    async def fetch_fee_data(self) -> FeeData:
        """Current fee data.

        Raises:
            DataUnavailable: On source failure or timeout
        """
        return await call_with_timeout(
            "get_fee_data", self.chain.get_fee_data(), self.config.source_timeout_seconds
        )

    async def fetch_latest_block(self) -> BlockInfo:
        """Latest block.

        Raises:
            DataUnavailable: On source failure or timeout
        """
        return await call_with_timeout(
            "get_latest_block", self.chain.get_latest_block(), self.config.source_timeout_seconds
        )

    async def _fetch_network_state(self) -> tuple[BlockInfo, FeeData]:
        block, fee_data = await asyncio.gather(self.fetch_latest_block(), self.fetch_fee_data())
        return block, fee_data

    def _record(self, block: BlockInfo, fee_data: FeeData) -> FeeDataPoint:
        point = FeeDataPoint(
            block_number=block.number,
            gas_used=block.gas_used,
            gas_limit=block.gas_limit,
            base_fee=fee_data.base_fee,
            priority_fee=fee_data.priority_fee,
            utilization=block.utilization,
            timestamp=self._clock(),
        )
        self.history.append(point)
        return point

    def classify_congestion(self, utilization: float) -> CongestionLevel:
        return classify_congestion(utilization, self.config)

    async def extract_features(self, trade_size: float, expected_profit: float) -> FeeFeatures:
        """Build prediction features from current network state and history.

        The fresh observation is added to the history after the history-derived
        features are computed, so they describe the window before this call.

        Args:
            trade_size: Trade value in USD
            expected_profit: Expected profit as a fraction of trade value

        Raises:
            DataUnavailable: If block or fee data cannot be fetched
        """
        block, fee_data = await self._fetch_network_state()
        cfg = self.config

        utilization = block.utilization
        features = FeeFeatures(
            gas_utilization=utilization,
            base_fee=fee_data.base_fee,
            priority_fee=fee_data.priority_fee,
            congestion=self.classify_congestion(utilization),
            trade_size=trade_size,
            expected_profit=expected_profit,
            recent_gas_usage=self.history.recent_gas_usage(
                cfg.recent_usage_window, cfg.default_recent_gas_usage
            ),
            volatility=self.history.volatility(cfg.volatility_window, cfg.default_volatility),
            history_points=len(self.history),
            block_number=block.number,
            block_age_seconds=max(0.0, self._clock() - block.timestamp),
        )
        self._record(block, fee_data)
        return features

    def clamp(
        self, gas_limit: float, gas_price: float, priority_fee: float
    ) -> tuple[int, float, float]:
        """Apply output bounds.

        The priority fee is reset to a fraction of the gas price when it
        exceeds the allowed share.
        """
        cfg = self.config
        limit = int(max(cfg.min_gas_limit, min(gas_limit, cfg.max_gas_limit)))
        price = max(cfg.min_gas_price, min(gas_price, cfg.max_gas_price))
        priority = max(cfg.min_priority_fee, min(priority_fee, cfg.max_priority_fee))
        if priority > price * cfg.max_priority_ratio:
            priority = price * cfg.reset_priority_ratio
        return limit, price, priority

    def confidence(self, features: FeeFeatures) -> float:
        cfg = self.config
        if cfg.confidence_weight is not None:
            return cfg.confidence_weight
        score = cfg.base_confidence
        if features.history_points > cfg.history_confidence_points:
            score += cfg.history_confidence_bonus
        if features.gas_utilization < cfg.utilization_confidence_threshold:
            score += cfg.utilization_confidence_bonus
        if features.congestion == CongestionLevel.LOW:
            score += cfg.low_congestion_confidence_bonus
        return min(score, cfg.max_confidence)

    def predict(self, features: FeeFeatures) -> FeeEstimate:
        """Rule-based prediction from features. Pure; never touches the network."""
        cfg = self.config

        gas_limit = cfg.base_gas_limit
        if features.trade_size > cfg.large_trade_threshold:
            gas_limit += cfg.large_trade_extra_gas
        if features.trade_size > cfg.very_large_trade_threshold:
            gas_limit += cfg.very_large_trade_extra_gas

        fee = features.base_fee
        priority = cfg.base_priority_fee

        adjustment = cfg.congestion_adjustments[features.congestion]
        fee *= adjustment.fee_multiplier
        priority *= adjustment.priority_multiplier
        gas_limit += adjustment.extra_gas

        if features.gas_utilization > cfg.high_utilization:
            fee *= cfg.high_utilization_fee_multiplier
            gas_limit += cfg.high_utilization_extra_gas
        elif features.gas_utilization < cfg.low_utilization:
            fee *= cfg.low_utilization_fee_multiplier

        if features.expected_profit > cfg.high_profit_margin:
            fee *= cfg.high_profit_fee_multiplier
            priority *= cfg.high_profit_priority_multiplier
        elif features.expected_profit < cfg.low_profit_margin:
            fee *= cfg.low_profit_fee_multiplier
            priority *= cfg.low_profit_priority_multiplier
            gas_limit = min(gas_limit, cfg.low_profit_gas_cap)

        limit, price, priority = self.clamp(gas_limit, fee, priority)
        return FeeEstimate(
            gas_limit=limit,
            gas_price=price,
            priority_fee=priority,
            confidence=self.confidence(features),
            source=FeeSource.PREDICTED,
        )

    def fallback_estimate(self) -> FeeEstimate:
        cfg = self.config
        return FeeEstimate(
            gas_limit=cfg.fallback_gas_limit,
            gas_price=cfg.fallback_gas_price,
            priority_fee=cfg.fallback_priority_fee,
            confidence=cfg.fallback_confidence,
            source=FeeSource.FALLBACK,
        )

    async def estimate(self, trade_size: float, expected_profit: float) -> FeeEstimate:
        """Extract features and predict, falling back on data source failure.

        Args:
            trade_size: Trade value in USD
            expected_profit: Expected profit as a fraction of trade value
        """
        try:
            features = await self.extract_features(trade_size, expected_profit)
        except DataUnavailable as e:
            logger.warning(
                "fee_features_unavailable",
                source=e.source,
                detail=e.detail,
                message="Using fallback fee parameters",
            )
            return self.fallback_estimate()

        prediction = self.predict(features)
        logger.debug(
            "fee_predicted",
            gas_limit=prediction.gas_limit,
            gas_price=round(prediction.gas_price, 4),
            priority_fee=round(prediction.priority_fee, 4),
            confidence=prediction.confidence,
            congestion=features.congestion.value,
        )
        return prediction

    async def live_parameters(self, gas_limit: int) -> FeeEstimate | None:
        """Fee parameters straight from current network data, or None."""
        try:
            fee_data = await self.fetch_fee_data()
        except DataUnavailable as e:
            logger.warning("live_fee_unavailable", source=e.source, detail=e.detail)
            return None
        return FeeEstimate(
            gas_limit=gas_limit,
            gas_price=fee_data.gas_price,
            priority_fee=fee_data.priority_fee,
            confidence=1.0,
            source=FeeSource.LIVE,
        )

    def blend(self, predicted: FeeEstimate, live: FeeEstimate) -> FeeEstimate:
        """Confidence-weighted average of a prediction and live parameters.

        The prediction is weighted by its confidence and live data by the
        remainder, independently for gas limit and gas price. The priority fee
        is the lower of the two. The result is re-clamped to the output bounds.
        """
        w = predicted.confidence
        gas_limit = round(predicted.gas_limit * w + live.gas_limit * (1 - w))
        gas_price = predicted.gas_price * w + live.gas_price * (1 - w)
        priority = min(predicted.priority_fee, live.priority_fee)
        limit, price, priority = self.clamp(gas_limit, gas_price, priority)
        return FeeEstimate(
            gas_limit=limit,
            gas_price=price,
            priority_fee=priority,
            confidence=w,
            source=FeeSource.BLENDED,
        )

    async def collect_sample(self) -> FeeDataPoint | None:
        """Record one history point from current network data.

        Returns None when the data source is unavailable.
        """
        try:
            block, fee_data = await self._fetch_network_state()
        except DataUnavailable as e:
            logger.warning("fee_sample_unavailable", source=e.source, detail=e.detail)
            return None
        return self._record(block, fee_data)


__all__ = ["FeeParameterPredictor"]
