"""Politician track-record helpers for the congressional producer."""

from typing import Iterable, Mapping, Optional

from altdata.models import PoliticianProfile


def quality_for(name: str, profiles: Mapping[str, PoliticianProfile]) -> Optional[float]:
    """Quality score for a politician, None if unscored."""
    profile = profiles.get(name)
    return profile.quality_score if profile else None


def average_quality(names: Iterable[str], profiles: Mapping[str, PoliticianProfile]) -> Optional[float]:
    """Mean quality over politicians that have a score."""
    scores = [q for q in (quality_for(n, profiles) for n in set(names)) if q is not None]
    if not scores:
        return None
    return sum(scores) / len(scores)


def quality_multiplier(avg_quality: Optional[float]) -> float:
    """
    Boost for consensus among strong traders.

    1 + (avg - 7) / 10 when the average exceeds 7, else 1.0.
    """
    if avg_quality is None or avg_quality <= 7.0:
        return 1.0
    return 1.0 + (avg_quality - 7.0) / 10.0
