"""Reporting components - per-pass statistics."""

from .pipeline_stats import (
    PassStats,
    SkipRecord,
    STAGE_NETTING,
    STAGE_SIZING,
    STAGE_CONSTRAINTS,
)

__all__ = [
    "PassStats",
    "SkipRecord",
    "STAGE_NETTING",
    "STAGE_SIZING",
    "STAGE_CONSTRAINTS",
]
