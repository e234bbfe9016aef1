"""Rebalance executor - make broker holdings match a target portfolio."""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from core.exceptions import ExternalServiceError, UnsupportedAssetClassError
from strategy.blocklist import BlockList
from strategy.positions import SUPPORTED_ASSET_CLASSES, TargetPosition
from strategy.portfolio import ensure_unique_instruments
from .broker import BrokerService
from .order_manager import Order, OrderManager
from .reconciliation import DEFAULT_TOLERANCE, DeltaAction, PositionDelta, plan_rebalance, summarize_plan


logger = logging.getLogger(__name__)


@dataclass
class OrderFailure:
    """An order the broker did not accept."""

    instrument_id: str
    action: DeltaAction
    error: str
    retryable: bool


@dataclass
class RebalanceResult:
    """Outcome of one rebalance."""

    orders: list[Order] = field(default_factory=list)
    failures: list[OrderFailure] = field(default_factory=list)
    skipped: list[PositionDelta] = field(default_factory=list)
    plan: list[PositionDelta] = field(default_factory=list)
    canceled_orders: int = 0

    @property
    def success(self) -> bool:
        return not self.failures

    def summary(self) -> str:
        return (
            f"{len(self.orders)} orders placed, {len(self.failures)} failed, "
            f"{len(self.skipped)} skipped, {self.canceled_orders} open orders canceled"
        )


class RebalanceExecutor:
    """
    Executes the difference between targets and current holdings.

    Liquidations run first, then reductions, then increases, so freed cash
    funds the purchases. Closing a short is a buy that still runs with the
    liquidations. A single failed order does not stop the run; it is
    recorded, and a non-retryable failure blocks the instrument for later
    passes.
    """

    def __init__(
        self,
        broker: BrokerService,
        blocklist: Optional[BlockList] = None,
        tolerance: Decimal = DEFAULT_TOLERANCE,
    ):
        self.broker = broker
        self.blocklist = blocklist
        self.tolerance = Decimal(str(tolerance))
        self.order_manager = OrderManager(broker)

    def rebalance(self, targets: list[TargetPosition]) -> RebalanceResult:
        """
        Trade holdings toward ``targets``.

        Raises:
            UnsupportedAssetClassError: A target is not an equity
            InvariantViolation: Duplicate instruments in targets
            ExternalServiceError: Holdings could not be fetched
        """
        self._validate(targets)
        result = RebalanceResult()

        result.canceled_orders = self._cancel_open_orders()

        try:
            holdings = self.broker.get_current_positions()
        except ExternalServiceError as e:
            logger.error(f"Failed to fetch current positions: {e}")
            raise

        result.plan = plan_rebalance(targets, holdings, self.tolerance)
        totals = summarize_plan(result.plan)
        logger.info(
            f"Executing {totals['orders']} orders: sell ${totals['sell_notional']}, "
            f"buy ${totals['buy_notional']}"
        )

        for delta in result.plan:
            if self._is_blocked(delta):
                logger.info(f"Skipping {delta.action.value} for blocked {delta.instrument_id}")
                result.skipped.append(delta)
                continue
            self._execute(delta, result)

        if result.failures:
            logger.warning(f"Rebalance finished with failures: {result.summary()}")
        else:
            logger.info(f"Rebalance complete: {result.summary()}")
        return result

    def _validate(self, targets: list[TargetPosition]) -> None:
        for target in targets:
            if not isinstance(target, TargetPosition):
                raise TypeError(f"Expected TargetPosition, got {type(target).__name__}")
            if target.asset_class not in SUPPORTED_ASSET_CLASSES:
                raise UnsupportedAssetClassError(
                    f"Asset class {target.asset_class.value} is not supported",
                    {"instrument": target.instrument_id},
                )
        ensure_unique_instruments(targets)

    def _cancel_open_orders(self) -> int:
        try:
            canceled = self.broker.cancel_all_open_orders()
        except ExternalServiceError as e:
            logger.warning(f"Failed to cancel open orders: {e}")
            return 0
        if canceled:
            logger.info(f"Canceled {canceled} open orders before rebalancing")
        return canceled

    def _is_blocked(self, delta: PositionDelta) -> bool:
        # Liquidations always go through so blocked holdings can still be exited
        if self.blocklist is None or delta.action == DeltaAction.LIQUIDATE:
            return False
        return self.blocklist.is_blocked(delta.instrument_id)

    def _execute(self, delta: PositionDelta, result: RebalanceResult) -> None:
        try:
            if delta.action == DeltaAction.LIQUIDATE:
                order = self.order_manager.close(delta.instrument_id)
            else:
                order = self.order_manager.submit_notional(delta.instrument_id, delta.side, delta.notional)
        except ExternalServiceError as e:
            result.failures.append(OrderFailure(
                instrument_id=delta.instrument_id,
                action=delta.action,
                error=str(e),
                retryable=e.retryable,
            ))
            if not e.retryable and self.blocklist is not None:
                self.blocklist.block(delta.instrument_id, f"order rejected: {e.message}")
            return

        result.orders.append(order)
