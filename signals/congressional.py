"""Congressional signal - follow purchase clusters by members of Congress."""

import logging
from collections import defaultdict
from datetime import timedelta

from altdata.models import AltDataTrade, TradeSource, TransactionType
from core.exceptions import ConfigurationError
from features.politician_quality import average_quality, quality_multiplier
from .signal_base import ProducerContext, Signal, SignalProducer


logger = logging.getLogger(__name__)


class CongressionalProducer(SignalProducer):
    """
    Follow congressional buying.

    Intent: Several politicians buying the same stock, especially ones
    with a good trading record, is a bullish tell.

    Criteria:
    - Congressional purchases within the lookback window
    - Traders whose quality score meets the minimum (all traders if
      nobody does)

    Score: 0.5 for one buyer, 0.8 for two, 1.0 for three or more, times a
    quality boost when the buyers average above 7.
    """

    name = "congressional"
    description = "Follow clustered congressional purchases"

    def __init__(self, lookback_days: int = 45, min_quality_score: float = 4.0):
        if not isinstance(lookback_days, int) or lookback_days <= 0:
            raise ConfigurationError(f"{self.name}.lookback_days must be a positive integer, got {lookback_days!r}")
        if not isinstance(min_quality_score, (int, float)) or min_quality_score < 0:
            raise ConfigurationError(f"{self.name}.min_quality_score must be non-negative, got {min_quality_score!r}")
        self.lookback_days = lookback_days
        self.min_quality_score = float(min_quality_score)

    def generate_signals(self, context: ProducerContext) -> list[Signal]:
        start = context.as_of - timedelta(days=self.lookback_days)
        trades = context.store.get_trades(
            TradeSource.CONGRESS, TransactionType.PURCHASE, start, context.as_of
        )
        if not trades:
            return []

        profiles = context.store.get_politician_profiles()
        trades = self._filter_by_quality(trades, profiles)

        by_instrument: dict[str, list[AltDataTrade]] = defaultdict(list)
        for trade in trades:
            by_instrument[trade.instrument_id].append(trade)

        signals = []
        for instrument_id, group in by_instrument.items():
            politicians = sorted({t.trader_identity for t in group})
            multiplier = quality_multiplier(average_quality(politicians, profiles))
            score = min(self._base_score(len(politicians)) * multiplier, 1.0)

            signal = self.create_signal(
                instrument_id,
                score,
                context,
                metadata={
                    "trade_count": len(group),
                    "politicians": politicians,
                    "quality_multiplier": round(multiplier, 4),
                },
            )
            if signal is not None:
                signals.append(signal)

        logger.info(f"[{self.name}] {len(signals)} signals from {len(trades)} trades")
        return signals

    def _filter_by_quality(self, trades, profiles) -> list[AltDataTrade]:
        passing = {
            name for name, p in profiles.items()
            if p.quality_score is not None and p.quality_score >= self.min_quality_score
        }
        if not passing:
            logger.warning(
                f"[{self.name}] No politicians meet quality score {self.min_quality_score}; using all trades"
            )
            return list(trades)
        return [t for t in trades if t.trader_identity in passing]

    @staticmethod
    def _base_score(unique_politicians: int) -> float:
        if unique_politicians <= 1:
            return 0.5
        if unique_politicians == 2:
            return 0.8
        return 1.0
