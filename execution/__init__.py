"""Execution layer - broker interface, order records and the rebalance executor."""

from .broker import BrokerService, BrokerPosition, OrderResult, OrderSide
from .order_manager import Order, OrderManager, OrderStatus, OrderType
from .reconciliation import DeltaAction, PositionDelta, plan_rebalance, summarize_plan
from .rebalancer import OrderFailure, RebalanceExecutor, RebalanceResult
from .paper import PaperBroker

__all__ = [
    "BrokerService",
    "BrokerPosition",
    "OrderResult",
    "OrderSide",
    "Order",
    "OrderManager",
    "OrderStatus",
    "OrderType",
    "DeltaAction",
    "PositionDelta",
    "plan_rebalance",
    "summarize_plan",
    "OrderFailure",
    "RebalanceExecutor",
    "RebalanceResult",
    "PaperBroker",
]
