"""Base signal class and producer interface."""

import logging
import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping, Optional

from core.exceptions import InvariantViolation
from ingestion.store import AltDataStore


logger = logging.getLogger(__name__)

INSTRUMENT_ID_PATTERN = re.compile(r"^[A-Z]{1,5}$")
SCORE_MIN = -1.0
SCORE_MAX = 1.0


def is_valid_instrument_id(value: Any) -> bool:
    """Uppercase ticker of 1-5 letters."""
    return isinstance(value, str) and INSTRUMENT_ID_PATTERN.match(value) is not None


def clamp_score(score: float) -> float:
    """Clamp a heuristic score into [-1.0, 1.0]."""
    if math.isnan(score):
        raise InvariantViolation("Cannot clamp a NaN score")
    return max(SCORE_MIN, min(SCORE_MAX, score))


@dataclass(frozen=True)
class Signal:
    """
    One strategy's directional opinion on one instrument.

    Scores run from -1.0 (strongest sell) to +1.0 (strongest buy). Out of
    range scores are rejected at construction; producers clamp first.
    Metadata is provenance for audit and is never read by netting or sizing.
    """

    instrument_id: str
    strategy_name: str
    score: float
    metadata: Mapping[str, Any] = field(default_factory=dict)
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        """Validate signal values."""
        if not is_valid_instrument_id(self.instrument_id):
            raise InvariantViolation(
                f"Invalid instrument id {self.instrument_id!r}",
                {"strategy": self.strategy_name},
            )
        if not self.strategy_name:
            raise InvariantViolation("Signal requires a strategy name", {"instrument": self.instrument_id})

        score = float(self.score)
        if math.isnan(score) or not SCORE_MIN <= score <= SCORE_MAX:
            raise InvariantViolation(
                f"Signal score {self.score} outside [{SCORE_MIN}, {SCORE_MAX}]",
                {"instrument": self.instrument_id, "strategy": self.strategy_name},
            )

        object.__setattr__(self, "score", score)
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def is_bullish(self) -> bool:
        return self.score > 0

    @property
    def is_bearish(self) -> bool:
        return self.score < 0

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "instrument_id": self.instrument_id,
            "strategy_name": self.strategy_name,
            "score": self.score,
            "metadata": dict(self.metadata),
            "generated_at": self.generated_at.isoformat(),
        }


@dataclass(frozen=True)
class ProducerContext:
    """Inputs shared by all producers in one pass."""

    as_of: date
    store: AltDataStore
    reference: Optional[Any] = None  # ReferenceDataService-like: get_sector / get_industry / get_annual_revenue
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class SignalProducer(ABC):
    """Abstract base class for signal producers."""

    name: str = "base_producer"
    description: str = ""

    @abstractmethod
    def generate_signals(self, context: ProducerContext) -> list[Signal]:
        """
        Generate signals from alternative data.

        Args:
            context: As-of date, data store and reference lookups

        Returns:
            Signals, one per instrument at most; empty when there is no data
        """
        pass

    def create_signal(
        self,
        instrument_id: str,
        score: float,
        context: ProducerContext,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Optional[Signal]:
        """Helper to create a clamped signal; None for an invalid instrument id."""
        if not is_valid_instrument_id(instrument_id):
            logger.warning(f"[{self.name}] Skipping invalid instrument id {instrument_id!r}")
            return None

        clamped = clamp_score(score)
        if clamped != score:
            logger.info(f"[{self.name}] Clamped score for {instrument_id}: {score} -> {clamped}")

        return Signal(
            instrument_id=instrument_id,
            strategy_name=self.name,
            score=clamped,
            metadata=metadata or {},
            generated_at=context.generated_at,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
