"""In-memory paper broker."""

import logging
from decimal import Decimal
from itertools import count
from typing import Optional

from core.exceptions import ExternalServiceError
from .broker import BrokerPosition, BrokerService, OrderResult, OrderSide, validate_order_parameters


logger = logging.getLogger(__name__)


class PaperBroker(BrokerService):
    """
    Broker that fills every order instantly at market value.

    Positions are tracked by signed market value only; ``qty`` is carried
    through unchanged from the seeded holdings. ``fail_orders`` maps an
    instrument to the error raised when it is traded.
    """

    def __init__(
        self,
        equity: Decimal = Decimal("100000"),
        positions: Optional[list[BrokerPosition]] = None,
        open_orders: int = 0,
    ):
        self.equity = equity
        self.positions: dict[str, BrokerPosition] = {p.instrument_id: p for p in positions or []}
        self.open_orders = open_orders
        self.fail_orders: dict[str, ExternalServiceError] = {}
        self.fail_positions: Optional[ExternalServiceError] = None
        self.fail_cancel: Optional[ExternalServiceError] = None
        self.order_log: list[OrderResult] = []
        self._ids = count(1)

    def get_current_positions(self) -> list[BrokerPosition]:
        if self.fail_positions is not None:
            raise self.fail_positions
        return list(self.positions.values())

    def get_account_equity(self) -> Decimal:
        return self.equity

    def place_order(
        self,
        instrument_id: str,
        side: OrderSide,
        qty: Optional[Decimal] = None,
        notional: Optional[Decimal] = None,
    ) -> OrderResult:
        validate_order_parameters(instrument_id, qty, notional)
        self._maybe_fail(instrument_id)

        held = self.positions.get(instrument_id)
        value = held.market_value if held else Decimal("0")
        amount = notional if notional is not None else qty
        value = value + amount if side == OrderSide.BUY else value - amount

        if value == 0:
            self.positions.pop(instrument_id, None)
        else:
            self.positions[instrument_id] = BrokerPosition(
                instrument_id, held.qty if held else Decimal("0"), value
            )

        return self._record(instrument_id, side, qty=qty, notional=notional)

    def close_position(self, instrument_id: str) -> OrderResult:
        self._maybe_fail(instrument_id)
        held = self.positions.pop(instrument_id, None)
        if held is None:
            raise ExternalServiceError(
                f"No position in {instrument_id}", service="paper_broker", retryable=False
            )
        side = OrderSide.SELL if held.market_value > 0 else OrderSide.BUY
        return self._record(instrument_id, side, qty=abs(held.qty))

    def cancel_all_open_orders(self) -> int:
        if self.fail_cancel is not None:
            raise self.fail_cancel
        canceled, self.open_orders = self.open_orders, 0
        return canceled

    def _maybe_fail(self, instrument_id: str) -> None:
        error = self.fail_orders.get(instrument_id)
        if error is not None:
            raise error

    def _record(self, instrument_id, side, qty=None, notional=None) -> OrderResult:
        result = OrderResult(
            order_id=f"paper-{next(self._ids)}",
            instrument_id=instrument_id,
            side=side,
            status="filled",
            qty=qty,
            notional=notional,
        )
        self.order_log.append(result)
        logger.debug(f"Paper fill {side.value} {instrument_id} qty={qty} notional={notional}")
        return result
