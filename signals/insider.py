"""Insider signal - follow open-market purchases by corporate insiders."""

import logging
from collections import defaultdict
from datetime import timedelta
from decimal import Decimal

from altdata.models import AltDataTrade, TradeSource, TransactionType
from altdata.money import parse_money
from core.exceptions import ConfigurationError
from .signal_base import ProducerContext, Signal, SignalProducer


logger = logging.getLogger(__name__)

LARGE_TOTAL_VALUE = Decimal("100000")


class InsiderProducer(SignalProducer):
    """
    Follow insider buying.

    Criteria:
    - Insider purchases within the lookback window
    - Parsed trade size at or above the minimum
    - Optionally executives only (CEO, CFO, COO, President, Chairman)

    Score: 0.6 base, +0.2 for more than one insider, +0.2 when the
    combined value exceeds $100,000.
    """

    name = "insider"
    description = "Follow insider open-market purchases"

    def __init__(
        self,
        lookback_days: int = 30,
        min_transaction_value: float = 10_000,
        executive_only: bool = False,
    ):
        if not isinstance(lookback_days, int) or lookback_days <= 0:
            raise ConfigurationError(f"{self.name}.lookback_days must be a positive integer, got {lookback_days!r}")
        min_value = parse_money(min_transaction_value)
        if min_value is None or min_value < 0:
            raise ConfigurationError(
                f"{self.name}.min_transaction_value must be a non-negative amount, got {min_transaction_value!r}"
            )
        if not isinstance(executive_only, bool):
            raise ConfigurationError(f"{self.name}.executive_only must be a boolean")

        self.lookback_days = lookback_days
        self.min_transaction_value = min_value
        self.executive_only = executive_only

    def generate_signals(self, context: ProducerContext) -> list[Signal]:
        start = context.as_of - timedelta(days=self.lookback_days)
        trades = context.store.get_trades(
            TradeSource.INSIDER, TransactionType.PURCHASE, start, context.as_of
        )

        by_instrument: dict[str, list[tuple[AltDataTrade, Decimal]]] = defaultdict(list)
        for trade in trades:
            if self.executive_only and not trade.is_executive:
                continue
            value = parse_money(trade.trade_size)
            if value is None:
                logger.debug(f"[{self.name}] Unparseable trade size {trade.trade_size!r} for {trade.instrument_id}")
                continue
            if value < self.min_transaction_value:
                continue
            by_instrument[trade.instrument_id].append((trade, value))

        signals = []
        for instrument_id, group in by_instrument.items():
            insiders = sorted({t.trader_identity for t, _ in group})
            total_value = sum((v for _, v in group), Decimal("0"))

            signal = self.create_signal(
                instrument_id,
                self._score(len(insiders), total_value),
                context,
                metadata={
                    "trade_count": len(group),
                    "total_value": str(total_value),
                    "insiders": insiders,
                },
            )
            if signal is not None:
                signals.append(signal)

        logger.info(f"[{self.name}] {len(signals)} signals from {len(trades)} trades")
        return signals

    @staticmethod
    def _score(unique_insiders: int, total_value: Decimal) -> float:
        score = 0.6
        if unique_insiders > 1:
            score += 0.2
        if total_value > LARGE_TOTAL_VALUE:
            score += 0.2
        return min(score, 1.0)
