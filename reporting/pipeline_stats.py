"""Per-pass statistics: what was generated, sized, skipped, capped and blocked."""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable


logger = logging.getLogger(__name__)

STAGE_NETTING = "netting"
STAGE_SIZING = "sizing"
STAGE_CONSTRAINTS = "constraints"


@dataclass(frozen=True)
class SkipRecord:
    """Why one instrument left the pipeline (or was altered) at one stage."""

    instrument_id: str
    stage: str
    reason: str

    def to_dict(self) -> dict:
        return {"instrument_id": self.instrument_id, "stage": self.stage, "reason": self.reason}


@dataclass
class PassStats:
    """
    Collects statistics from each stage of an allocation pass.

    Every per-instrument skip, block, cap and drop is kept with its reason
    so a missing position can be explained after the fact.
    """

    # Stage 1: Signals
    signals_generated: int = 0
    signals_by_strategy: dict[str, int] = field(default_factory=dict)
    failed_strategies: list[str] = field(default_factory=list)

    # Stage 2: Netting
    instruments_netted: int = 0
    instruments_actionable: int = 0

    # Stage 3: Sizing
    instruments_sized: int = 0

    # Stage 4: Constraints
    positions_final: int = 0

    skipped: list[SkipRecord] = field(default_factory=list)
    blocked: list[SkipRecord] = field(default_factory=list)
    capped: list[SkipRecord] = field(default_factory=list)
    dropped: list[SkipRecord] = field(default_factory=list)

    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def record_signals(self, signals: Iterable) -> None:
        """Record generated signals by strategy."""
        counts = Counter(s.strategy_name for s in signals)
        self.signals_by_strategy = dict(counts)
        self.signals_generated = sum(counts.values())

    def record_skip(self, instrument_id: str, stage: str, reason: str) -> None:
        """An instrument was skipped for this pass."""
        self.skipped.append(SkipRecord(instrument_id, stage, reason))
        logger.warning(f"Skipped {instrument_id} at {stage}: {reason}")

    def record_block(self, instrument_id: str, stage: str, reason: str) -> None:
        """An instrument was placed on the blocklist."""
        self.blocked.append(SkipRecord(instrument_id, stage, reason))
        logger.warning(f"Blocked {instrument_id} at {stage}: {reason}")

    def record_cap(self, instrument_id: str, reason: str) -> None:
        """A position was clamped to the max position size."""
        self.capped.append(SkipRecord(instrument_id, STAGE_CONSTRAINTS, reason))
        logger.info(f"Capped {instrument_id}: {reason}")

    def record_drop(self, instrument_id: str, reason: str) -> None:
        """A position was removed by a floor or filter."""
        self.dropped.append(SkipRecord(instrument_id, STAGE_CONSTRAINTS, reason))
        logger.info(f"Dropped {instrument_id}: {reason}")

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def blocked_count(self) -> int:
        return len(self.blocked)

    @property
    def capped_count(self) -> int:
        return len(self.capped)

    @property
    def dropped_count(self) -> int:
        return len(self.dropped)

    def reasons_for(self, instrument_id: str) -> list[SkipRecord]:
        """Every record mentioning an instrument, in stage order."""
        return [
            r for r in self.skipped + self.blocked + self.capped + self.dropped
            if r.instrument_id == instrument_id
        ]

    @property
    def funnel(self) -> list[tuple[str, int, str]]:
        """
        Pass funnel.

        Returns list of (stage_name, count, description) tuples.
        """
        return [
            ("Signals Generated", self.signals_generated,
             f"{self.signals_generated} signals from {len(self.signals_by_strategy)} strategies"),
            ("Netted", self.instruments_netted, f"{self.instruments_netted} instruments netted"),
            ("Actionable", self.instruments_actionable, f"{self.instruments_actionable} with nonzero conviction"),
            ("Sized", self.instruments_sized, f"{self.instruments_sized} positions sized"),
            ("Final", self.positions_final, f"{self.positions_final} target positions"),
        ]

    def summary(self) -> str:
        """One-line summary for logs."""
        return (
            f"signals={self.signals_generated} netted={self.instruments_netted} "
            f"sized={self.instruments_sized} final={self.positions_final} "
            f"skipped={self.skipped_count} blocked={self.blocked_count} "
            f"capped={self.capped_count} dropped={self.dropped_count}"
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "signals_generated": self.signals_generated,
            "signals_by_strategy": dict(self.signals_by_strategy),
            "failed_strategies": list(self.failed_strategies),
            "instruments_netted": self.instruments_netted,
            "instruments_actionable": self.instruments_actionable,
            "instruments_sized": self.instruments_sized,
            "positions_final": self.positions_final,
            "skipped": [r.to_dict() for r in self.skipped],
            "blocked": [r.to_dict() for r in self.blocked],
            "capped": [r.to_dict() for r in self.capped],
            "dropped": [r.to_dict() for r in self.dropped],
        }
