"""Tests for alternative-data and reference models."""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal

import pandas as pd

from altdata.models import (
    AltDataTrade,
    CompanyProfile,
    GovernmentContract,
    LobbyingExpenditure,
    PriceBar,
    QUARTERLY_TOTAL,
    TradeSource,
    TransactionType,
    previous_quarter,
    quarter_label,
)


class TestAltDataTrade:
    """Tests for AltDataTrade."""

    def test_from_record(self):
        """Test a store row becomes a trade."""
        trade = AltDataTrade.from_record({
            "instrument_id": "nvda",
            "trader_identity": "Jane Doe",
            "transaction_type": "Purchase",
            "transaction_date": "2025-03-01",
            "trade_size": "$1,001 - $15,000",
            "source": "congress",
        })

        assert trade.instrument_id == "NVDA"
        assert trade.transaction_type == TransactionType.PURCHASE
        assert trade.source == TradeSource.CONGRESS
        assert trade.transaction_date == date(2025, 3, 1)
        assert trade.is_purchase
        assert trade.relationship is None

    def test_from_record_accepts_pandas_timestamp_and_nan(self):
        """Test DataFrame-native values are normalized."""
        trade = AltDataTrade.from_record({
            "instrument_id": "AAPL",
            "trader_identity": "Tim",
            "transaction_type": "Sale",
            "transaction_date": pd.Timestamp("2025-04-02"),
            "trade_size": float("nan"),
            "source": "insider",
            "relationship": "Chief Executive Officer",
        })

        assert trade.transaction_date == date(2025, 4, 2)
        assert trade.trade_size is None
        assert trade.is_executive

    def test_missing_instrument_rejected(self):
        """Test a row without a ticker is rejected."""
        with pytest.raises(ValueError):
            AltDataTrade.from_record({
                "instrument_id": None,
                "trader_identity": "x",
                "transaction_type": "Purchase",
                "transaction_date": "2025-01-01",
                "source": "congress",
            })

    @pytest.mark.parametrize("relationship,expected", [
        ("CFO", True),
        ("President and COO", True),
        ("Director", False),
        (None, False),
    ])
    def test_is_executive(self, relationship, expected):
        """Test executive title matching."""
        trade = AltDataTrade("X", "x", TransactionType.PURCHASE, date(2025, 1, 1), "1000",
                             TradeSource.INSIDER, relationship)
        assert trade.is_executive is expected


class TestLobbying:
    """Tests for lobbying models and quarter helpers."""

    def test_from_record_parses_amount(self):
        """Test lobbying amounts go through the money parser."""
        row = LobbyingExpenditure.from_record({"instrument_id": "lmt", "quarter": "2025-Q1", "amount": "$1.5M"})
        assert row.amount == Decimal("1500000")
        assert row.instrument_id == "LMT"

    def test_unparseable_amount_rejected(self):
        """Test rows with garbage amounts are rejected."""
        with pytest.raises(ValueError):
            LobbyingExpenditure.from_record({"instrument_id": "LMT", "quarter": "2025-Q1", "amount": "lots"})

    @pytest.mark.parametrize("as_of,expected", [
        (date(2025, 5, 10), "2025-Q1"),
        (date(2025, 1, 15), "2024-Q4"),
        (date(2025, 12, 31), "2025-Q3"),
    ])
    def test_previous_quarter(self, as_of, expected):
        """Test the last completed quarter."""
        assert previous_quarter(as_of) == expected

    def test_quarter_label_bounds(self):
        """Test quarter numbers outside 1-4 are rejected."""
        assert quarter_label(2024, 2) == "2024-Q2"
        with pytest.raises(ValueError):
            quarter_label(2024, 5)


class TestGovernmentContract:
    """Tests for GovernmentContract."""

    def test_effective_date_for_award(self):
        """Test plain awards use the award date."""
        contract = GovernmentContract("LMT", "DoD", Decimal("5e7"), date(2025, 6, 2))
        assert contract.effective_date == date(2025, 6, 2)

    def test_effective_date_for_quarterly_total(self):
        """Test quarterly totals use the update time."""
        contract = GovernmentContract(
            "LMT", "DoD", Decimal("5e7"), date(2025, 4, 1),
            contract_type=QUARTERLY_TOTAL,
            updated_at=datetime(2025, 6, 3, 12, tzinfo=timezone.utc),
        )
        assert contract.effective_date == date(2025, 6, 3)

    def test_from_record_handles_nat(self):
        """Test missing update times from DataFrames become None."""
        contract = GovernmentContract.from_record({
            "instrument_id": "BA",
            "agency": "NASA",
            "contract_value": "$25M",
            "award_date": "2025-06-01",
            "updated_at": pd.NaT,
        })
        assert contract.updated_at is None
        assert contract.contract_value == Decimal("25000000")
        assert contract.contract_type == "Award"


class TestPriceBar:
    """Tests for PriceBar."""

    def test_high_below_low_rejected(self):
        """Test inverted bars are rejected."""
        with pytest.raises(ValueError):
            PriceBar(datetime(2025, 1, 2), high=9.0, low=10.0, close=9.5)

    def test_from_api_response(self):
        """Test broker bar payloads parse."""
        bar = PriceBar.from_api_response({"t": "2025-01-02T05:00:00Z", "o": 10, "h": 12, "l": 9, "c": 11, "v": 1000})
        assert bar.high == 12.0
        assert bar.volume == 1000
        assert bar.timestamp.tzinfo is not None


class TestCompanyProfile:
    """Tests for CompanyProfile."""

    def test_from_api_response(self):
        """Test profile payload parsing."""
        profile = CompanyProfile.from_api_response({
            "symbol": "lmt",
            "companyName": "Lockheed Martin",
            "sector": "Industrials",
            "industry": "Aerospace & Defense",
            "revenue": 67_000_000_000,
        })
        assert profile.instrument_id == "LMT"
        assert profile.annual_revenue == Decimal("67000000000")

    def test_non_positive_revenue_is_unknown(self):
        """Test zero revenue is treated as missing."""
        profile = CompanyProfile.from_api_response({"symbol": "X", "revenue": 0})
        assert profile.annual_revenue is None
        assert profile.sector is None
