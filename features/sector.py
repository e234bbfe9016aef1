"""Coarse sector buckets for materiality thresholds."""

import re
from typing import Optional


DEFENSE = "defense"
TECHNOLOGY = "technology"
SERVICES = "services"

SECTORS = (DEFENSE, TECHNOLOGY, SERVICES)

_DEFENSE_INDUSTRY = re.compile(r"aerospace|defense", re.IGNORECASE)
_TECH_SECTOR = re.compile(r"technology|communication services", re.IGNORECASE)


def classify_sector(sector: Optional[str], industry: Optional[str]) -> str:
    """
    Bucket a reported sector/industry pair.

    Unknown or missing reference data lands in ``services``.
    """
    if industry and _DEFENSE_INDUSTRY.search(industry):
        return DEFENSE
    if sector and _TECH_SECTOR.search(sector):
        return TECHNOLOGY
    return SERVICES


def sector_for(instrument_id: str, reference) -> str:
    """Look up and bucket an instrument's sector via a reference service."""
    if reference is None:
        return SERVICES
    return classify_sector(reference.get_sector(instrument_id), reference.get_industry(instrument_id))
