"""Derived features: volatility, lobbying ranks, materiality, sectors."""

from .volatility import (
    VolatilityEstimate,
    true_range,
    true_ranges,
    average_true_range,
    fallback_atr,
    estimate_volatility,
)
from .lobbying_rank import LobbyingRank, rank_by_spend, assign_quintiles
from .materiality import materiality_pct
from .sector import classify_sector, sector_for, DEFENSE, TECHNOLOGY, SERVICES
from .politician_quality import average_quality, quality_multiplier

__all__ = [
    "VolatilityEstimate",
    "true_range",
    "true_ranges",
    "average_true_range",
    "fallback_atr",
    "estimate_volatility",
    "LobbyingRank",
    "rank_by_spend",
    "assign_quintiles",
    "materiality_pct",
    "classify_sector",
    "sector_for",
    "DEFENSE",
    "TECHNOLOGY",
    "SERVICES",
    "average_quality",
    "quality_multiplier",
]
