"""Tabular alternative-data store backed by pandas DataFrames."""

import logging
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Optional

import pandas as pd

from altdata.models import (
    AltDataTrade,
    GovernmentContract,
    LobbyingExpenditure,
    PoliticianProfile,
    TradeSource,
    TransactionType,
)
from .store import AltDataStore, InMemoryAltDataStore


logger = logging.getLogger(__name__)

TRADE_COLUMNS = [
    "instrument_id", "trader_identity", "transaction_type",
    "transaction_date", "trade_size", "source", "relationship",
]
LOBBYING_COLUMNS = ["instrument_id", "quarter", "amount", "client"]
CONTRACT_COLUMNS = [
    "instrument_id", "agency", "contract_value", "award_date",
    "contract_type", "updated_at",
]
POLITICIAN_COLUMNS = ["name", "quality_score"]

TABLES = ("trades", "lobbying", "contracts", "politicians")


def read_table(path: Path) -> pd.DataFrame:
    """Read a CSV or Parquet table."""
    path = Path(path)
    if path.suffix == ".parquet":
        return pd.read_parquet(path)
    if path.suffix == ".csv":
        return pd.read_csv(path)
    raise ValueError(f"Unsupported table format: {path}")


def write_table(df: pd.DataFrame, path: Path) -> None:
    """Write a DataFrame as CSV or Parquet, by file suffix."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix == ".parquet":
        df.to_parquet(path, index=False)
    elif path.suffix == ".csv":
        df.to_csv(path, index=False)
    else:
        raise ValueError(f"Unsupported table format: {path}")
    logger.debug(f"Wrote {len(df)} rows to {path}")


class FrameAltDataStore(AltDataStore):
    """
    Alternative-data store over pandas DataFrames.

    Rows are validated into model objects once at construction; malformed
    rows are logged and skipped. Queries then run against an
    InMemoryAltDataStore.
    """

    def __init__(
        self,
        trades: Optional[pd.DataFrame] = None,
        lobbying: Optional[pd.DataFrame] = None,
        contracts: Optional[pd.DataFrame] = None,
        politicians: Optional[pd.DataFrame] = None,
    ):
        self.skipped_rows = 0
        self._store = InMemoryAltDataStore(
            trades=self._load(trades, TRADE_COLUMNS, AltDataTrade.from_record, "trades"),
            lobbying=self._load(lobbying, LOBBYING_COLUMNS, LobbyingExpenditure.from_record, "lobbying"),
            contracts=self._load(contracts, CONTRACT_COLUMNS, GovernmentContract.from_record, "contracts"),
            politicians=self._load(politicians, POLITICIAN_COLUMNS, _politician_from_record, "politicians"),
        )

    @classmethod
    def from_directory(cls, base_dir: Path) -> "FrameAltDataStore":
        """
        Load tables from a directory.

        Looks for ``trades``, ``lobbying``, ``contracts`` and
        ``politicians`` as ``.parquet`` or ``.csv``; missing tables are
        treated as empty.
        """
        base = Path(base_dir)
        frames: dict[str, Optional[pd.DataFrame]] = {}
        for table in TABLES:
            frames[table] = None
            for suffix in (".parquet", ".csv"):
                path = base / f"{table}{suffix}"
                if path.exists():
                    frames[table] = read_table(path)
                    logger.info(f"Loaded {len(frames[table])} {table} rows from {path}")
                    break
        return cls(**frames)

    def _load(
        self,
        df: Optional[pd.DataFrame],
        columns: list[str],
        factory: Callable[[dict], Any],
        table: str,
    ) -> list:
        if df is None or df.empty:
            return []

        frame = df.reindex(columns=columns)
        # NaN -> None so optional fields stay optional
        frame = frame.astype(object).where(frame.notna(), None)

        rows = []
        for record in frame.to_dict("records"):
            try:
                rows.append(factory(record))
            except (KeyError, TypeError, ValueError) as e:
                self.skipped_rows += 1
                logger.warning(f"Skipping malformed {table} row {record}: {e}")
        return rows

    def get_trades(self, source: TradeSource, transaction_type: TransactionType, start: date, end: date):
        return self._store.get_trades(source, transaction_type, start, end)

    def get_lobbying_totals(self, quarter: str) -> dict[str, Decimal]:
        return self._store.get_lobbying_totals(quarter)

    def get_contracts(self, start: date, end: date):
        return self._store.get_contracts(start, end)

    def get_politician_profiles(self) -> dict[str, PoliticianProfile]:
        return self._store.get_politician_profiles()


def _politician_from_record(data: dict) -> PoliticianProfile:
    score = data.get("quality_score")
    return PoliticianProfile(
        name=str(data["name"]),
        quality_score=float(score) if score is not None else None,
    )
