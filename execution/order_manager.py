"""Order management - submit through the broker and keep a record of every order."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from itertools import count
from threading import Lock
from typing import Optional

from core.exceptions import ExternalServiceError
from .broker import BrokerService, OrderResult, OrderSide, validate_order_parameters


logger = logging.getLogger(__name__)


class OrderStatus(Enum):
    """Order status states."""
    PENDING = "pending"
    SUBMITTED = "submitted"
    PARTIAL = "partial"
    FILLED = "filled"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


class OrderType(Enum):
    """Order types."""
    MARKET = "market"
    CLOSE = "close"  # full liquidation


@dataclass
class Order:
    """Represents an order."""

    order_id: str
    instrument_id: str
    side: OrderSide
    order_type: OrderType
    qty: Optional[Decimal] = None
    notional: Optional[Decimal] = None
    status: OrderStatus = OrderStatus.PENDING
    broker_order_id: Optional[str] = None
    error: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "instrument_id": self.instrument_id,
            "side": self.side.value,
            "order_type": self.order_type.value,
            "qty": str(self.qty) if self.qty is not None else None,
            "notional": str(self.notional) if self.notional is not None else None,
            "status": self.status.value,
            "broker_order_id": self.broker_order_id,
            "error": self.error,
        }


_BROKER_STATUS = {
    "new": OrderStatus.SUBMITTED,
    "accepted": OrderStatus.SUBMITTED,
    "pending_new": OrderStatus.SUBMITTED,
    "partially_filled": OrderStatus.PARTIAL,
    "filled": OrderStatus.FILLED,
    "canceled": OrderStatus.CANCELLED,
    "cancelled": OrderStatus.CANCELLED,
    "rejected": OrderStatus.REJECTED,
}


class OrderManager:
    """
    Manages order lifecycle.

    Every order is recorded before submission; broker failures mark the
    order rejected and re-raise so the caller decides what to do.
    """

    def __init__(self, broker: BrokerService):
        self.broker = broker
        self.orders: dict[str, Order] = {}
        self._ids = count(1)
        self._lock = Lock()

    def _new_order(self, **kwargs) -> Order:
        with self._lock:
            order_id = f"ord_{datetime.now(timezone.utc):%Y%m%d%H%M%S}_{next(self._ids):05d}"
            order = Order(order_id=order_id, **kwargs)
            self.orders[order_id] = order
        return order

    def _apply_result(self, order: Order, result: OrderResult) -> None:
        order.broker_order_id = result.order_id
        order.status = _BROKER_STATUS.get(str(result.status).lower(), OrderStatus.SUBMITTED)
        order.updated_at = datetime.now(timezone.utc)

    def _reject(self, order: Order, error: Exception) -> None:
        order.status = OrderStatus.REJECTED
        order.error = str(error)
        order.updated_at = datetime.now(timezone.utc)

    def submit_notional(self, instrument_id: str, side: OrderSide, notional: Decimal) -> Order:
        """
        Submit a market order for a dollar amount.

        Raises:
            ExternalServiceError: Broker rejected or failed the order
        """
        validate_order_parameters(instrument_id, None, notional)
        order = self._new_order(
            instrument_id=instrument_id, side=side, order_type=OrderType.MARKET, notional=notional
        )

        try:
            result = self.broker.place_order(instrument_id, side, notional=notional)
        except ExternalServiceError as e:
            self._reject(order, e)
            logger.error(f"Failed to place {side.value} order for {instrument_id}: {e}")
            raise

        self._apply_result(order, result)
        logger.info(f"Placed {side.value} order for {instrument_id}: ${notional}")
        return order

    def close(self, instrument_id: str) -> Order:
        """
        Liquidate a whole position.

        Raises:
            ExternalServiceError: Broker rejected or failed the close
        """
        order = self._new_order(
            instrument_id=instrument_id, side=OrderSide.SELL, order_type=OrderType.CLOSE
        )

        try:
            result = self.broker.close_position(instrument_id)
        except ExternalServiceError as e:
            self._reject(order, e)
            logger.error(f"Failed to close position {instrument_id}: {e}")
            raise

        order.side = result.side
        order.qty = result.qty
        self._apply_result(order, result)
        logger.info(f"Closed position {instrument_id}")
        return order

    def get_open_orders(self) -> list[Order]:
        """Get all open orders."""
        return [
            o for o in self.orders.values()
            if o.status in (OrderStatus.PENDING, OrderStatus.SUBMITTED, OrderStatus.PARTIAL)
        ]

    def get_rejected_orders(self) -> list[Order]:
        return [o for o in self.orders.values() if o.status == OrderStatus.REJECTED]
