"""Alternative-data and reference data models."""

from .trade import AltDataTrade, TradeSource, TransactionType, EXECUTIVE_TITLES
from .lobbying import LobbyingExpenditure, previous_quarter, quarter_label
from .contract import GovernmentContract, QUARTERLY_TOTAL
from .bar import PriceBar
from .reference import PoliticianProfile, CompanyProfile

__all__ = [
    "AltDataTrade",
    "TradeSource",
    "TransactionType",
    "EXECUTIVE_TITLES",
    "LobbyingExpenditure",
    "previous_quarter",
    "quarter_label",
    "GovernmentContract",
    "QUARTERLY_TOTAL",
    "PriceBar",
    "PoliticianProfile",
    "CompanyProfile",
]
