"""Lobbying signal - long the heaviest lobbying spenders, short the lightest."""

import logging
import re

from altdata.models import previous_quarter
from core.exceptions import ConfigurationError
from features.lobbying_rank import rank_by_spend
from .signal_base import ProducerContext, Signal, SignalProducer


logger = logging.getLogger(__name__)

QUARTER_PATTERN = re.compile(r"^\d{4}-Q[1-4]$")

QUINTILE_SCORES = {1: 1.0, 2: 0.5, 3: 0.0, 4: -0.5, 5: -1.0}


class LobbyingProducer(SignalProducer):
    """
    Rank companies by quarterly lobbying spend.

    Top quintile scores +1.0, bottom quintile -1.0, the middle quintile
    produces no signal.
    """

    name = "lobbying"
    description = "Quintile ranking of quarterly lobbying spend"

    def __init__(self, quarter: str = "current"):
        if quarter != "current" and not (isinstance(quarter, str) and QUARTER_PATTERN.match(quarter)):
            raise ConfigurationError(f"{self.name}.quarter must be 'current' or 'YYYY-QN', got {quarter!r}")
        self.quarter = quarter

    def resolve_quarter(self, context: ProducerContext) -> str:
        """'current' is the last completed quarter as of the pass date."""
        if self.quarter == "current":
            return previous_quarter(context.as_of)
        return self.quarter

    def generate_signals(self, context: ProducerContext) -> list[Signal]:
        quarter = self.resolve_quarter(context)
        totals = context.store.get_lobbying_totals(quarter)
        if not totals:
            logger.info(f"[{self.name}] No lobbying data for {quarter}")
            return []

        signals = []
        for rank in rank_by_spend(totals):
            score = QUINTILE_SCORES[rank.quintile]
            if score == 0:
                continue

            signal = self.create_signal(
                rank.instrument_id,
                score,
                context,
                metadata={
                    "quintile": rank.quintile,
                    "spend": str(rank.spend),
                    "rank": rank.rank,
                    "percentile": rank.percentile,
                    "z_score": rank.z_score,
                    "quarter": quarter,
                },
            )
            if signal is not None:
                signals.append(signal)

        logger.info(f"[{self.name}] {len(signals)} signals from {len(totals)} companies in {quarter}")
        return signals
