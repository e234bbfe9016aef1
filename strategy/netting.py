"""Signal netting - combine per-strategy signals into one conviction per instrument."""

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Union

from core.exceptions import ConfigurationError, InvariantViolation
from signals import Signal


logger = logging.getLogger(__name__)

# Rounding slack allowed before an out-of-range net score is an error
NET_SCORE_TOLERANCE = 1e-9


class StrategyWeightTable:
    """
    Strategy name -> non-negative trust weight.

    Strategies absent from the table weigh 0.
    """

    def __init__(self, weights: Mapping[str, float]):
        validated = {}
        for name, weight in weights.items():
            if isinstance(weight, bool) or not isinstance(weight, (int, float)):
                raise ConfigurationError(f"Weight for '{name}' must be a number, got {weight!r}")
            if not math.isfinite(weight) or weight < 0:
                raise ConfigurationError(f"Weight for '{name}' must be finite and non-negative, got {weight}")
            validated[name] = float(weight)
        self._weights = validated

    def weight_for(self, strategy_name: str) -> float:
        return self._weights.get(strategy_name, 0.0)

    def __contains__(self, strategy_name: str) -> bool:
        return strategy_name in self._weights

    def __len__(self) -> int:
        return len(self._weights)

    def to_dict(self) -> dict[str, float]:
        return dict(self._weights)

    def __repr__(self) -> str:
        return f"StrategyWeightTable({self._weights})"


@dataclass(frozen=True)
class NetConviction:
    """The netted opinion for one instrument across all strategies."""

    instrument_id: str
    net_score: float
    contributing_signals: tuple[Signal, ...] = field(default_factory=tuple)
    ignored_signals: tuple[Signal, ...] = field(default_factory=tuple)
    total_weight: float = 0.0

    @property
    def is_actionable(self) -> bool:
        """A zero score means "no position" and is never sized."""
        return self.net_score != 0.0

    @property
    def strategies(self) -> list[str]:
        return [s.strategy_name for s in self.contributing_signals]

    def to_dict(self) -> dict:
        return {
            "instrument_id": self.instrument_id,
            "net_score": self.net_score,
            "total_weight": self.total_weight,
            "contributing": [s.to_dict() for s in self.contributing_signals],
            "ignored": [s.strategy_name for s in self.ignored_signals],
        }


class SignalNettingEngine:
    """
    Weighted average of signal scores per instrument.

    net_score = sum(score_i * weight_i) / sum(weight_i) over signals whose
    strategy has positive weight. Equal and opposite signals cancel to 0.
    Signals from absent or zero-weight strategies are ignored and logged
    once per strategy per call.
    """

    def net(
        self,
        signals: Iterable[Signal],
        weights: Union[StrategyWeightTable, Mapping[str, float]],
    ) -> dict[str, NetConviction]:
        """
        Net signals into convictions.

        Args:
            signals: Signals from all producers
            weights: Strategy weight table (a plain mapping is validated)

        Returns:
            instrument_id -> NetConviction, in first-seen order
        """
        table = weights if isinstance(weights, StrategyWeightTable) else StrategyWeightTable(weights)

        grouped: dict[str, list[Signal]] = {}
        for signal in signals:
            grouped.setdefault(signal.instrument_id, []).append(signal)

        warned: set[str] = set()
        results = {}
        for instrument_id, group in grouped.items():
            results[instrument_id] = self._net_group(instrument_id, group, table, warned)

        logger.info(
            f"Netted {sum(len(g) for g in grouped.values())} signals into {len(results)} instruments "
            f"({sum(1 for c in results.values() if c.is_actionable)} actionable)"
        )
        return results

    def _net_group(
        self,
        instrument_id: str,
        group: list[Signal],
        table: StrategyWeightTable,
        warned: set[str],
    ) -> NetConviction:
        contributing = []
        ignored = []
        weighted_scores = []
        weight_values = []

        for signal in group:
            weight = table.weight_for(signal.strategy_name)
            if weight <= 0:
                if signal.strategy_name not in warned:
                    warned.add(signal.strategy_name)
                    state = "has 0 weight" if signal.strategy_name in table else "is missing from the weight table"
                    logger.warning(f"Strategy '{signal.strategy_name}' {state}; ignoring its signals")
                ignored.append(signal)
                continue

            contributing.append(signal)
            weighted_scores.append(signal.score * weight)
            weight_values.append(weight)

        total_weight = math.fsum(weight_values)
        if total_weight == 0:
            net_score = 0.0
        else:
            net_score = math.fsum(weighted_scores) / total_weight

        if abs(net_score) > 1.0 + NET_SCORE_TOLERANCE:
            raise InvariantViolation(
                f"Net score {net_score} outside [-1, 1]",
                {"instrument": instrument_id},
            )
        net_score = max(-1.0, min(1.0, net_score))

        return NetConviction(
            instrument_id=instrument_id,
            net_score=net_score,
            contributing_signals=tuple(contributing),
            ignored_signals=tuple(ignored),
            total_weight=total_weight,
        )
