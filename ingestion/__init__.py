"""Data access - alternative-data stores and price services."""

from .store import AltDataStore, InMemoryAltDataStore
from .persistence import FrameAltDataStore, read_table, write_table
from .market_data import CachingPriceDataService, InMemoryPriceDataService, PriceDataService

__all__ = [
    "AltDataStore",
    "InMemoryAltDataStore",
    "FrameAltDataStore",
    "read_table",
    "write_table",
    "PriceDataService",
    "InMemoryPriceDataService",
    "CachingPriceDataService",
]
