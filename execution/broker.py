"""Broker service interface consumed by the rebalancer."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional


logger = logging.getLogger(__name__)


class OrderSide(Enum):
    """Order direction."""
    BUY = "buy"
    SELL = "sell"


@dataclass(frozen=True)
class BrokerPosition:
    """A holding as reported by the broker."""

    instrument_id: str
    qty: Decimal
    market_value: Decimal  # signed; negative for shorts

    @classmethod
    def from_api_response(cls, data: dict) -> "BrokerPosition":
        """Create BrokerPosition from a broker positions payload."""
        return cls(
            instrument_id=str(data["symbol"]).upper(),
            qty=Decimal(str(data["qty"])),
            market_value=Decimal(str(data["market_value"])),
        )


@dataclass(frozen=True)
class OrderResult:
    """Broker acknowledgement of an order."""

    order_id: str
    instrument_id: str
    side: OrderSide
    status: str
    qty: Optional[Decimal] = None
    notional: Optional[Decimal] = None
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class BrokerService(ABC):
    """
    Abstract broker execution service.

    Implementations raise ExternalServiceError on failure, with
    ``retryable`` set when a later attempt may succeed.
    """

    @abstractmethod
    def get_current_positions(self) -> list[BrokerPosition]:
        """All open positions."""
        pass

    @abstractmethod
    def get_account_equity(self) -> Decimal:
        """Account equity in USD."""
        pass

    @abstractmethod
    def place_order(
        self,
        instrument_id: str,
        side: OrderSide,
        qty: Optional[Decimal] = None,
        notional: Optional[Decimal] = None,
    ) -> OrderResult:
        """
        Place a market order.

        Exactly one of qty or notional must be given.
        """
        pass

    @abstractmethod
    def close_position(self, instrument_id: str) -> OrderResult:
        """Liquidate an entire position."""
        pass

    @abstractmethod
    def cancel_all_open_orders(self) -> int:
        """Cancel every open order; return how many were canceled."""
        pass


def validate_order_parameters(
    instrument_id: str,
    qty: Optional[Decimal],
    notional: Optional[Decimal],
) -> None:
    """Shared argument checks for place_order implementations."""
    if not instrument_id:
        raise ValueError("instrument_id is required")
    if (qty is None) == (notional is None):
        raise ValueError("Exactly one of qty or notional is required")
    amount = qty if qty is not None else notional
    if amount <= 0:
        raise ValueError(f"Order amount must be positive, got {amount}")
