"""Portfolio merge and constraints - one entry per instrument, caps, floors, exposure."""

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_EVEN, Decimal
from typing import Iterable, Optional, Union

from core.exceptions import ConfigurationError, InvariantViolation
from reporting.pipeline_stats import PassStats
from .positions import TargetPosition


logger = logging.getLogger(__name__)

MERGE_STRATEGIES = ("additive", "max", "average")
CENT = Decimal("0.01")


@dataclass(frozen=True)
class ExposureReport:
    """Exposure metadata for monitoring. Not enforced here."""

    long_exposure: Decimal = Decimal("0")
    short_exposure: Decimal = Decimal("0")  # absolute value
    gross_exposure: Decimal = Decimal("0")
    net_exposure: Decimal = Decimal("0")
    gross_exposure_pct: float = 0.0  # gross / equity
    net_exposure_pct: float = 0.0  # net / equity
    long_positions: int = 0
    short_positions: int = 0
    positions_capped: tuple[str, ...] = ()
    strategy_contributions: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "long_exposure": str(self.long_exposure),
            "short_exposure": str(self.short_exposure),
            "gross_exposure": str(self.gross_exposure),
            "net_exposure": str(self.net_exposure),
            "gross_exposure_pct": self.gross_exposure_pct,
            "net_exposure_pct": self.net_exposure_pct,
            "long_positions": self.long_positions,
            "short_positions": self.short_positions,
            "positions_capped": list(self.positions_capped),
            "strategy_contributions": dict(self.strategy_contributions),
        }


@dataclass
class ConstrainedPortfolio:
    """Output of merge_and_constrain."""

    positions: list[TargetPosition]
    exposure: ExposureReport
    capped: list[str] = field(default_factory=list)
    dropped: list[str] = field(default_factory=list)


def ensure_unique_instruments(positions: Iterable[TargetPosition]) -> None:
    """Raise InvariantViolation if any instrument appears twice."""
    seen: set[str] = set()
    duplicates: list[str] = []
    for p in positions:
        if p.instrument_id in seen:
            duplicates.append(p.instrument_id)
        seen.add(p.instrument_id)
    if duplicates:
        raise InvariantViolation(f"Duplicate instruments in target positions: {', '.join(sorted(set(duplicates)))}")


def _sources(position: TargetPosition) -> list[str]:
    details = position.sizing_details
    found = []
    if details.get("source"):
        found.append(details["source"])
    found.extend(details.get("strategies") or [])
    return found


def merge_values(values: list[Decimal], strategy: str = "additive") -> Decimal:
    """
    Combine several target values for one instrument.

    additive: sum; max: the largest magnitude with its own sign;
    average: mean rounded to cents.
    """
    if not values:
        raise ValueError("Nothing to merge")
    if strategy == "additive":
        return sum(values, Decimal("0"))
    if strategy == "max":
        return max(values, key=abs)
    if strategy == "average":
        return (sum(values, Decimal("0")) / len(values)).quantize(CENT, rounding=ROUND_HALF_EVEN)
    raise ConfigurationError(f"Unknown merge strategy: {strategy}")


def merge_positions(positions: Iterable[TargetPosition], strategy: str = "additive") -> list[TargetPosition]:
    """Collapse duplicate instruments into one position each, first-seen order."""
    grouped: dict[str, list[TargetPosition]] = {}
    for p in positions:
        grouped.setdefault(p.instrument_id, []).append(p)

    merged = []
    for instrument_id, group in grouped.items():
        values = [p.target_value for p in group]
        value = merge_values(values, strategy)

        sources: list[str] = []
        for p in group:
            for s in _sources(p):
                if s not in sources:
                    sources.append(s)

        details = dict(group[0].sizing_details) if len(group) == 1 else {
            "components": [dict(p.sizing_details) for p in group]
        }
        details.update({
            "sources": sources,
            "consensus_count": len(group),
            "original_values": values,
            "original_total": value,
            "merge_strategy": strategy,
        })

        if len(group) > 1:
            logger.info(f"Merged {len(group)} positions for {instrument_id} ({strategy}): {value}")

        merged.append(TargetPosition(
            instrument_id=instrument_id,
            asset_class=group[0].asset_class,
            target_value=value,
            sizing_details=details,
        ))
    return merged


def compute_exposure(
    positions: Iterable[TargetPosition],
    total_equity: Decimal,
    capped: Iterable[str] = (),
) -> ExposureReport:
    """Gross and net exposure of a position set."""
    positions = list(positions)
    long_exposure = sum((p.target_value for p in positions if p.target_value > 0), Decimal("0"))
    short_exposure = sum((-p.target_value for p in positions if p.target_value < 0), Decimal("0"))
    gross = long_exposure + short_exposure
    net = long_exposure - short_exposure

    contributions: dict[str, int] = {}
    for p in positions:
        for source in p.sizing_details.get("sources") or _sources(p):
            contributions[source] = contributions.get(source, 0) + 1

    equity = Decimal(str(total_equity))
    return ExposureReport(
        long_exposure=long_exposure,
        short_exposure=short_exposure,
        gross_exposure=gross,
        net_exposure=net,
        gross_exposure_pct=float(gross / equity) if equity > 0 else 0.0,
        net_exposure_pct=float(net / equity) if equity > 0 else 0.0,
        long_positions=sum(1 for p in positions if p.target_value > 0),
        short_positions=sum(1 for p in positions if p.target_value < 0),
        positions_capped=tuple(capped),
        strategy_contributions=contributions,
    )


def merge_and_constrain(
    positions: Iterable[TargetPosition],
    max_position_pct: float,
    min_position_value: Union[Decimal, int, str],
    total_equity: Union[Decimal, int, str],
    merge_strategy: str = "additive",
    enable_shorts: bool = True,
    stats: Optional[PassStats] = None,
) -> ConstrainedPortfolio:
    """
    Apply portfolio rules in order: merge, cap, floor, short filter.

    Args:
        positions: Sized positions, possibly with duplicate instruments
        max_position_pct: Cap on |value| as a fraction of equity (sign kept)
        min_position_value: Positions below this |value| are dropped
        total_equity: Account equity
        merge_strategy: additive, max or average
        enable_shorts: When False, negative targets are dropped
        stats: Optional collector for cap/drop records

    Returns:
        ConstrainedPortfolio with exposure metadata
    """
    if merge_strategy not in MERGE_STRATEGIES:
        raise ConfigurationError(f"merge_strategy must be one of {', '.join(MERGE_STRATEGIES)}")
    if not 0 < max_position_pct <= 1:
        raise ConfigurationError(f"max_position_pct must be in (0, 1], got {max_position_pct}")

    floor = Decimal(str(min_position_value))
    if floor < 0:
        raise ConfigurationError(f"min_position_value must be non-negative, got {min_position_value}")

    equity = Decimal(str(total_equity))
    if equity <= 0:
        raise ConfigurationError(f"total_equity must be positive, got {total_equity}")

    stats = stats if stats is not None else PassStats()
    cap = equity * Decimal(str(max_position_pct))

    capped: list[str] = []
    dropped: list[str] = []
    kept: list[TargetPosition] = []

    for position in merge_positions(positions, merge_strategy):
        value = position.target_value
        was_capped = abs(value) > cap
        if was_capped:
            value = cap if value > 0 else -cap
            capped.append(position.instrument_id)
            stats.record_cap(position.instrument_id, f"{position.target_value} clamped to {value}")

        position = position.with_value(value, {"was_capped": was_capped})

        if value == 0 or abs(value) < floor:
            dropped.append(position.instrument_id)
            stats.record_drop(position.instrument_id, f"|{value}| below minimum {floor}")
            continue

        if not enable_shorts and value < 0:
            dropped.append(position.instrument_id)
            stats.record_drop(position.instrument_id, "short positions disabled")
            continue

        kept.append(position)

    ensure_unique_instruments(kept)

    exposure = compute_exposure(kept, equity, [i for i in capped if i not in dropped])
    logger.info(
        f"Constrained portfolio: {len(kept)} positions, {len(capped)} capped, {len(dropped)} dropped, "
        f"gross {exposure.gross_exposure_pct:.1%} net {exposure.net_exposure_pct:.1%}"
    )
    return ConstrainedPortfolio(positions=kept, exposure=exposure, capped=capped, dropped=dropped)
