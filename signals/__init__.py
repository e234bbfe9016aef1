"""Signal producers, one per alternative-data source."""

from .signal_base import (
    Signal,
    SignalProducer,
    ProducerContext,
    clamp_score,
    is_valid_instrument_id,
)
from .congressional import CongressionalProducer
from .insider import InsiderProducer
from .lobbying import LobbyingProducer
from .contracts import ContractsProducer
from .registry import (
    PRODUCERS,
    StrategyResult,
    CollectedSignals,
    build_producers,
    collect_signals,
)

__all__ = [
    "Signal",
    "SignalProducer",
    "ProducerContext",
    "clamp_score",
    "is_valid_instrument_id",
    "CongressionalProducer",
    "InsiderProducer",
    "LobbyingProducer",
    "ContractsProducer",
    "PRODUCERS",
    "StrategyResult",
    "CollectedSignals",
    "build_producers",
    "collect_signals",
]
