"""Strategy layer - netting, sizing, portfolio constraints and the master allocator."""

from .positions import AssetClass, TargetPosition
from .netting import NetConviction, SignalNettingEngine, StrategyWeightTable
from .blocklist import BlockedInstrument, BlockList
from .sizing import SizingParams, VolatilityPositionSizer
from .portfolio import (
    ConstrainedPortfolio,
    ExposureReport,
    compute_exposure,
    ensure_unique_instruments,
    merge_and_constrain,
    merge_positions,
)
from .allocator import MasterAllocator, PortfolioResult

__all__ = [
    "AssetClass",
    "TargetPosition",
    "NetConviction",
    "SignalNettingEngine",
    "StrategyWeightTable",
    "BlockedInstrument",
    "BlockList",
    "SizingParams",
    "VolatilityPositionSizer",
    "ConstrainedPortfolio",
    "ExposureReport",
    "compute_exposure",
    "ensure_unique_instruments",
    "merge_and_constrain",
    "merge_positions",
    "MasterAllocator",
    "PortfolioResult",
]
