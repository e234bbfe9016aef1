"""
Volatility features: true range and Average True Range.

ATR is a risk estimate, so it is computed in floating point. Money stays
in Decimal in the sizer.
"""

import logging
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence

from altdata.models import PriceBar


logger = logging.getLogger(__name__)

SOURCE_BARS = "bars"
SOURCE_FALLBACK = "fallback"


@dataclass(frozen=True)
class VolatilityEstimate:
    """ATR used for sizing and where it came from."""

    atr: float
    source: str  # "bars" or "fallback"
    bar_count: int
    lookback: int

    @property
    def is_fallback(self) -> bool:
        return self.source == SOURCE_FALLBACK


def true_range(high: float, low: float, prev_close: float) -> float:
    """TR = max(high - low, |high - prev_close|, |low - prev_close|)."""
    return max(high - low, abs(high - prev_close), abs(low - prev_close))


def true_ranges(bars: Sequence[PriceBar]) -> list[float]:
    """
    True range for every bar that has a predecessor.

    Args:
        bars: Daily bars; sorted by timestamp before use

    Returns:
        len(bars) - 1 true ranges, oldest first
    """
    ordered = sorted(bars, key=lambda b: b.timestamp)
    return [
        true_range(cur.high, cur.low, prev.close)
        for prev, cur in zip(ordered, ordered[1:])
    ]


def average_true_range(bars: Sequence[PriceBar], period: int = 14) -> Optional[float]:
    """
    Simple mean of the last ``period`` true ranges.

    Returns:
        ATR, or None when fewer than period + 1 bars are available
    """
    if period <= 0:
        raise ValueError(f"ATR period must be positive, got {period}")
    if len(bars) < period + 1:
        return None

    ranges = true_ranges(bars)[-period:]
    return sum(ranges) / period


def fallback_atr(current_price: Decimal, default_volatility_fraction: float = 0.03) -> float:
    """ATR proxy when bar history is too short: price * fraction."""
    return float(current_price) * default_volatility_fraction


def estimate_volatility(
    bars: Sequence[PriceBar],
    current_price: Decimal,
    period: int = 14,
    default_volatility_fraction: float = 0.03,
) -> VolatilityEstimate:
    """
    ATR from bars, falling back to a fixed fraction of price.

    The fallback applies when there are fewer than ``period + 1`` bars or
    when the computed ATR is not a positive finite number (flat or
    corrupt history).
    """
    atr = average_true_range(bars, period)

    if atr is not None and math.isfinite(atr) and atr > 0:
        return VolatilityEstimate(atr=atr, source=SOURCE_BARS, bar_count=len(bars), lookback=period)

    if atr is not None:
        logger.info(f"Computed ATR {atr} is not usable, using fallback")

    return VolatilityEstimate(
        atr=fallback_atr(current_price, default_volatility_fraction),
        source=SOURCE_FALLBACK,
        bar_count=len(bars),
        lookback=period,
    )
