"""Read-only access to alternative-data rows."""

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from altdata.models import (
    AltDataTrade,
    GovernmentContract,
    LobbyingExpenditure,
    PoliticianProfile,
    TradeSource,
    TransactionType,
)


logger = logging.getLogger(__name__)


class AltDataStore(ABC):
    """Abstract interface producers query for disclosure rows."""

    @abstractmethod
    def get_trades(
        self,
        source: TradeSource,
        transaction_type: TransactionType,
        start: date,
        end: date,
    ) -> list[AltDataTrade]:
        """Trades of one source and direction with transaction_date in [start, end]."""
        pass

    @abstractmethod
    def get_lobbying_totals(self, quarter: str) -> dict[str, Decimal]:
        """Total lobbying spend per instrument for a quarter label."""
        pass

    @abstractmethod
    def get_contracts(self, start: date, end: date) -> list[GovernmentContract]:
        """Contracts whose effective date lies in [start, end]."""
        pass

    @abstractmethod
    def get_politician_profiles(self) -> dict[str, PoliticianProfile]:
        """Politician quality profiles keyed by name."""
        pass


class InMemoryAltDataStore(AltDataStore):
    """
    In-memory store for alternative-data rows.

    Used in tests and for callers that already hold the rows.
    """

    def __init__(
        self,
        trades: Optional[Iterable[AltDataTrade]] = None,
        lobbying: Optional[Iterable[LobbyingExpenditure]] = None,
        contracts: Optional[Iterable[GovernmentContract]] = None,
        politicians: Optional[Iterable[PoliticianProfile]] = None,
    ):
        self._trades: list[AltDataTrade] = list(trades or [])
        self._lobbying: list[LobbyingExpenditure] = list(lobbying or [])
        self._contracts: list[GovernmentContract] = list(contracts or [])
        self._politicians: dict[str, PoliticianProfile] = {
            p.name: p for p in (politicians or [])
        }

    def add_trades(self, trades: Iterable[AltDataTrade]) -> None:
        """Append trade rows."""
        new = list(trades)
        self._trades.extend(new)
        logger.debug(f"Added {len(new)} trades")

    def add_lobbying(self, rows: Iterable[LobbyingExpenditure]) -> None:
        self._lobbying.extend(rows)

    def add_contracts(self, rows: Iterable[GovernmentContract]) -> None:
        self._contracts.extend(rows)

    def add_politicians(self, profiles: Iterable[PoliticianProfile]) -> None:
        for p in profiles:
            self._politicians[p.name] = p

    def get_trades(self, source, transaction_type, start, end) -> list[AltDataTrade]:
        return [
            t for t in self._trades
            if t.source == source
            and t.transaction_type == transaction_type
            and start <= t.transaction_date <= end
        ]

    def get_lobbying_totals(self, quarter: str) -> dict[str, Decimal]:
        totals: dict[str, Decimal] = defaultdict(Decimal)
        for row in self._lobbying:
            if row.quarter == quarter:
                totals[row.instrument_id] += row.amount
        return dict(totals)

    def get_contracts(self, start: date, end: date) -> list[GovernmentContract]:
        return [c for c in self._contracts if start <= c.effective_date <= end]

    def get_politician_profiles(self) -> dict[str, PoliticianProfile]:
        return dict(self._politicians)
