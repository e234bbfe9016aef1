"""Target vs. holdings reconciliation - turn a target portfolio into ordered trades."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional
import logging

from core.exceptions import InvariantViolation
from strategy.positions import TargetPosition
from .broker import BrokerPosition, OrderSide


logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = Decimal("0.01")
CENTS = Decimal("0.01")


class DeltaAction(Enum):
    """What a delta asks the broker to do."""
    LIQUIDATE = "liquidate"
    REDUCE = "reduce"
    INCREASE = "increase"


@dataclass(frozen=True)
class PositionDelta:
    """Difference between target and current exposure for one instrument."""

    instrument_id: str
    action: DeltaAction
    current_value: Decimal
    target_value: Decimal
    delta: Decimal  # target - current

    @property
    def side(self) -> OrderSide:
        if self.action == DeltaAction.LIQUIDATE:
            return OrderSide.SELL if self.current_value > 0 else OrderSide.BUY
        return OrderSide.BUY if self.delta > 0 else OrderSide.SELL

    @property
    def notional(self) -> Decimal:
        """Absolute order size in dollars, rounded to cents."""
        return abs(self.delta).quantize(CENTS)

    @property
    def is_sell(self) -> bool:
        return self.side == OrderSide.SELL

    def to_dict(self) -> dict:
        return {
            "instrument_id": self.instrument_id,
            "action": self.action.value,
            "side": self.side.value,
            "current_value": str(self.current_value),
            "target_value": str(self.target_value),
            "delta": str(self.delta),
        }


def current_values(holdings: Iterable[BrokerPosition]) -> dict[str, Decimal]:
    """Signed market value per instrument."""
    values: dict[str, Decimal] = {}
    for holding in holdings:
        if holding.instrument_id in values:
            logger.warning(f"Broker reported {holding.instrument_id} twice, summing market values")
        values[holding.instrument_id] = values.get(holding.instrument_id, Decimal("0")) + holding.market_value
    return values


def plan_rebalance(
    targets: list[TargetPosition],
    holdings: Iterable[BrokerPosition],
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> list[PositionDelta]:
    """
    Diff targets against holdings.

    Held instruments missing from the targets are liquidated. Targets whose
    delta is within ``tolerance`` produce nothing.

    Args:
        targets: One TargetPosition per instrument
        holdings: Broker positions
        tolerance: Minimum absolute dollar delta worth trading

    Returns:
        Deltas in execution order: every liquidation first whatever its
        side (closing a short is a buy), then reductions by largest
        absolute delta, then increases by largest delta
    """
    tolerance = Decimal(str(tolerance))
    if tolerance < 0:
        raise ValueError(f"tolerance must be non-negative, got {tolerance}")

    target_by_id: dict[str, Decimal] = {}
    for target in targets:
        if target.instrument_id in target_by_id:
            raise InvariantViolation(f"Duplicate target for {target.instrument_id}")
        target_by_id[target.instrument_id] = target.target_value

    current = current_values(holdings)
    liquidations: list[PositionDelta] = []
    reductions: list[PositionDelta] = []
    increases: list[PositionDelta] = []

    for instrument_id, value in current.items():
        if instrument_id in target_by_id or value == 0:
            continue
        liquidations.append(PositionDelta(
            instrument_id=instrument_id,
            action=DeltaAction.LIQUIDATE,
            current_value=value,
            target_value=Decimal("0"),
            delta=-value,
        ))

    for instrument_id, target_value in target_by_id.items():
        held = current.get(instrument_id, Decimal("0"))
        delta = target_value - held
        if abs(delta) <= tolerance or abs(delta).quantize(CENTS) == 0:
            logger.debug(f"{instrument_id} within tolerance (delta ${delta})")
            continue

        if target_value == 0 and held != 0:
            liquidations.append(PositionDelta(instrument_id, DeltaAction.LIQUIDATE, held, target_value, delta))
        elif delta < 0:
            reductions.append(PositionDelta(instrument_id, DeltaAction.REDUCE, held, target_value, delta))
        else:
            increases.append(PositionDelta(instrument_id, DeltaAction.INCREASE, held, target_value, delta))

    liquidations.sort(key=lambda d: (-abs(d.current_value), d.instrument_id))
    reductions.sort(key=lambda d: (-abs(d.delta), d.instrument_id))
    increases.sort(key=lambda d: (-d.delta, d.instrument_id))

    plan = liquidations + reductions + increases
    logger.info(
        f"Rebalance plan: {len(liquidations)} liquidations, "
        f"{len(reductions)} reductions, {len(increases)} increases"
    )
    return plan


def summarize_plan(plan: list[PositionDelta]) -> dict:
    """Dollar totals for a plan."""
    sells = sum((d.notional for d in plan if d.is_sell), Decimal("0"))
    buys = sum((d.notional for d in plan if not d.is_sell), Decimal("0"))
    return {
        "orders": len(plan),
        "sell_notional": sells,
        "buy_notional": buys,
        "net_notional": buys - sells,
    }
