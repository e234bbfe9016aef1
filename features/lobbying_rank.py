"""Lobbying spend ranking and quintile assignment."""

import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping


@dataclass(frozen=True)
class LobbyingRank:
    """Rank of one company's quarterly lobbying spend."""

    instrument_id: str
    spend: Decimal
    rank: int  # 1 = highest spend
    percentile: float
    z_score: float
    quintile: int  # 1 = top 20%, 5 = bottom 20%


def rank_by_spend(totals: Mapping[str, Decimal]) -> list[LobbyingRank]:
    """
    Rank companies by spend, highest first, and assign quintiles.

    Quintiles use ``ceil(n / 5)`` companies per bucket, capped at 5, so
    small universes fill the top buckets first. Ties are ordered by
    instrument id.
    """
    if not totals:
        return []

    ordered = sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))
    n = len(ordered)
    quintile_size = math.ceil(n / 5)

    amounts = [float(amount) for _, amount in ordered]
    mean = sum(amounts) / n
    std_dev = math.sqrt(sum((a - mean) ** 2 for a in amounts) / n) if n > 1 else 0.0

    ranks = []
    for index, (instrument_id, spend) in enumerate(ordered):
        ranks.append(LobbyingRank(
            instrument_id=instrument_id,
            spend=spend,
            rank=index + 1,
            percentile=round((n - index) / n * 100, 1),
            z_score=round((float(spend) - mean) / std_dev, 2) if std_dev > 0 else 0.0,
            quintile=min(5, index // quintile_size + 1),
        ))
    return ranks


def assign_quintiles(totals: Mapping[str, Decimal]) -> dict[str, int]:
    """Map instrument id to spend quintile."""
    return {r.instrument_id: r.quintile for r in rank_by_spend(totals)}
