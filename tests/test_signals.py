"""Tests for the Signal type and the four alternative-data producers."""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal

from altdata.models import (
    AltDataTrade,
    GovernmentContract,
    LobbyingExpenditure,
    PoliticianProfile,
    TradeSource,
    TransactionType,
)
from core.exceptions import ConfigurationError, InvariantViolation
from ingestion import InMemoryAltDataStore
from signals import (
    CongressionalProducer,
    ContractsProducer,
    InsiderProducer,
    LobbyingProducer,
    ProducerContext,
    Signal,
    clamp_score,
)


AS_OF = date(2025, 6, 10)


class FakeReference:
    """Reference lookups from fixed tables."""

    def __init__(self, revenue=None, industry=None, sector=None):
        self.revenue = revenue or {}
        self.industry = industry or {}
        self.sector = sector or {}

    def get_annual_revenue(self, instrument_id):
        return self.revenue.get(instrument_id)

    def get_industry(self, instrument_id):
        return self.industry.get(instrument_id)

    def get_sector(self, instrument_id):
        return self.sector.get(instrument_id)


def congress_buy(symbol, who, day=date(2025, 6, 1)):
    return AltDataTrade(symbol, who, TransactionType.PURCHASE, day, "$1,001 - $15,000", TradeSource.CONGRESS)


def insider_buy(symbol, who, size, relationship="CEO", day=date(2025, 6, 1)):
    return AltDataTrade(symbol, who, TransactionType.PURCHASE, day, size, TradeSource.INSIDER, relationship)


def context_for(store, reference=None, as_of=AS_OF):
    return ProducerContext(
        as_of=as_of,
        store=store,
        reference=reference,
        generated_at=datetime(2025, 6, 10, tzinfo=timezone.utc),
    )


class TestSignal:
    """Tests for Signal invariants."""

    def test_valid_signal(self):
        """Test a well-formed signal."""
        signal = Signal("NVDA", "congressional", 0.8, {"trade_count": 2})
        assert signal.is_bullish
        assert not signal.is_bearish
        assert signal.to_dict()["metadata"] == {"trade_count": 2}

    @pytest.mark.parametrize("score", [1.01, -1.5, float("nan")])
    def test_out_of_range_score_rejected(self, score):
        """Test scores outside [-1, 1] are invariant violations."""
        with pytest.raises(InvariantViolation):
            Signal("NVDA", "insider", score)

    @pytest.mark.parametrize("instrument_id", ["nvda", "TOOLONG", "", "BRK.B", None])
    def test_invalid_instrument_rejected(self, instrument_id):
        """Test instrument ids must be 1-5 uppercase letters."""
        with pytest.raises(InvariantViolation):
            Signal(instrument_id, "insider", 0.5)

    def test_metadata_is_read_only(self):
        """Test metadata cannot be mutated after construction."""
        signal = Signal("NVDA", "insider", 0.5, {"a": 1})
        with pytest.raises(TypeError):
            signal.metadata["a"] = 2

    def test_clamp_score(self):
        """Test clamping into range and NaN rejection."""
        assert clamp_score(1.7) == 1.0
        assert clamp_score(-3) == -1.0
        assert clamp_score(0.25) == 0.25
        with pytest.raises(InvariantViolation):
            clamp_score(float("nan"))

    def test_create_signal_clamps_and_skips_bad_ids(self):
        """Test the producer helper clamps scores and drops invalid tickers."""
        producer = LobbyingProducer()
        context = context_for(InMemoryAltDataStore())

        assert producer.create_signal("NVDA", 1.7, context).score == 1.0
        assert producer.create_signal("bad-id", 0.5, context) is None


class TestCongressionalProducer:
    """Tests for CongressionalProducer."""

    def test_cluster_scores(self):
        """Test one, two and three-plus buyers score 0.5, 0.8 and 1.0."""
        store = InMemoryAltDataStore(trades=[
            congress_buy("AAA", "P1"),
            congress_buy("BBB", "P1"),
            congress_buy("BBB", "P2"),
            congress_buy("CCC", "P1"),
            congress_buy("CCC", "P2"),
            congress_buy("CCC", "P3"),
            congress_buy("CCC", "P3"),
        ])
        signals = {s.instrument_id: s for s in CongressionalProducer().generate_signals(context_for(store))}

        assert signals["AAA"].score == pytest.approx(0.5)
        assert signals["BBB"].score == pytest.approx(0.8)
        assert signals["CCC"].score == pytest.approx(1.0)
        assert signals["CCC"].metadata["trade_count"] == 4
        assert signals["CCC"].metadata["politicians"] == ["P1", "P2", "P3"]

    def test_quality_filter_and_multiplier(self):
        """Test low-quality traders are dropped and strong ones boost the score."""
        store = InMemoryAltDataStore(
            trades=[
                congress_buy("NVDA", "Strong"),
                congress_buy("NVDA", "Good"),
                congress_buy("NVDA", "Weak"),
            ],
            politicians=[
                PoliticianProfile("Strong", 9.0),
                PoliticianProfile("Good", 7.0),
                PoliticianProfile("Weak", 2.0),
            ],
        )
        [signal] = CongressionalProducer(min_quality_score=4.0).generate_signals(context_for(store))

        # two qualifying buyers at 0.8, average quality 8 -> x1.1
        assert signal.score == pytest.approx(0.88)
        assert signal.metadata["politicians"] == ["Good", "Strong"]
        assert signal.metadata["quality_multiplier"] == pytest.approx(1.1)

    def test_lookback_window(self):
        """Test trades older than the lookback are ignored."""
        store = InMemoryAltDataStore(trades=[congress_buy("OLD", "P1", day=date(2025, 4, 1))])
        assert CongressionalProducer(lookback_days=45).generate_signals(context_for(store)) == []

    def test_sales_ignored(self):
        """Test congressional sales produce no signal."""
        sale = AltDataTrade("NVDA", "P1", TransactionType.SALE, date(2025, 6, 1), "$15K", TradeSource.CONGRESS)
        assert CongressionalProducer().generate_signals(context_for(InMemoryAltDataStore(trades=[sale]))) == []

    def test_invalid_params(self):
        """Test bad configuration is rejected at construction."""
        with pytest.raises(ConfigurationError):
            CongressionalProducer(lookback_days=0)


class TestInsiderProducer:
    """Tests for InsiderProducer."""

    def setup_method(self):
        """Set up test fixtures."""
        self.store = InMemoryAltDataStore(trades=[
            insider_buy("AAPL", "Tim", "$50,000", "CEO"),
            insider_buy("AAPL", "Luca", "$60,000", "CFO"),
            insider_buy("MSFT", "Amy", "$15,000", "Director"),
            insider_buy("TINY", "Bob", "$5,000", "CEO"),
            insider_buy("JUNK", "Eve", "lots", "CEO"),
        ])

    def test_scores(self):
        """Test base score plus breadth and size bonuses."""
        signals = {s.instrument_id: s for s in InsiderProducer().generate_signals(context_for(self.store))}

        assert set(signals) == {"AAPL", "MSFT"}
        assert signals["AAPL"].score == pytest.approx(1.0)
        assert signals["AAPL"].metadata["total_value"] == "110000"
        assert signals["AAPL"].metadata["insiders"] == ["Luca", "Tim"]
        assert signals["MSFT"].score == pytest.approx(0.6)

    def test_executive_only(self):
        """Test non-executives are dropped when configured."""
        signals = InsiderProducer(executive_only=True).generate_signals(context_for(self.store))
        assert [s.instrument_id for s in signals] == ["AAPL"]

    def test_min_transaction_value_accepts_text(self):
        """Test the minimum may be given as a money string."""
        producer = InsiderProducer(min_transaction_value="$55K")
        [signal] = producer.generate_signals(context_for(self.store))
        assert signal.instrument_id == "AAPL"
        assert signal.score == pytest.approx(0.6)


class TestLobbyingProducer:
    """Tests for LobbyingProducer."""

    def setup_method(self):
        """Set up test fixtures."""
        rows = [
            LobbyingExpenditure(f"C{chr(65 + i)}", "2025-Q1", Decimal(1_000_000 * (10 - i)))
            for i in range(10)
        ]
        rows.append(LobbyingExpenditure("OLDQ", "2024-Q4", Decimal("99000000")))
        self.store = InMemoryAltDataStore(lobbying=rows)

    def test_quintile_scores(self):
        """Test top quintile is long, bottom is short, middle is silent."""
        producer = LobbyingProducer()
        signals = {s.instrument_id: s for s in producer.generate_signals(context_for(self.store, as_of=date(2025, 5, 10)))}

        assert signals["CA"].score == 1.0
        assert signals["CC"].score == 0.5
        assert "CE" not in signals
        assert "CF" not in signals
        assert signals["CG"].score == -0.5
        assert signals["CJ"].score == -1.0
        assert "OLDQ" not in signals
        assert signals["CA"].metadata["quarter"] == "2025-Q1"
        assert len(signals) == 8

    def test_explicit_quarter(self):
        """Test a fixed quarter overrides the as-of date."""
        signals = LobbyingProducer(quarter="2024-Q4").generate_signals(context_for(self.store))
        assert [s.instrument_id for s in signals] == ["OLDQ"]
        assert signals[0].score == 1.0

    def test_invalid_quarter(self):
        """Test malformed quarters are rejected."""
        with pytest.raises(ConfigurationError):
            LobbyingProducer(quarter="Q3-2025")


class TestContractsProducer:
    """Tests for ContractsProducer."""

    def setup_method(self):
        """Set up test fixtures."""
        self.reference = FakeReference(
            revenue={
                "LMT": Decimal("67000000000"),
                "GD": Decimal("42000000000"),
                "NOC": Decimal("41000000000"),
                "HII": Decimal("11000000000"),
            },
            industry={"LMT": "Aerospace & Defense", "GD": "Aerospace & Defense", "NOC": "Aerospace & Defense"},
        )
        self.store = InMemoryAltDataStore(contracts=[
            GovernmentContract("LMT", "DoD", Decimal("670000000"), date(2025, 6, 9)),
            GovernmentContract("GD", "Navy", Decimal("16380000000"), date(2025, 6, 8)),
            # immaterial: 0.1% of revenue
            GovernmentContract("NOC", "DoD", Decimal("41000000"), date(2025, 6, 9)),
            # outside the holding window
            GovernmentContract("HII", "Navy", Decimal("5000000000"), date(2025, 6, 4)),
            # no revenue known
            GovernmentContract("XYZ", "GSA", Decimal("50000000"), date(2025, 6, 9)),
        ])

    def test_materiality_weighted_scores(self):
        """Test allocation share drives the score."""
        producer = ContractsProducer()
        signals = {s.instrument_id: s for s in producer.generate_signals(context_for(self.store, self.reference))}

        assert set(signals) == {"LMT", "GD"}
        # LMT 1% of 40% total materiality -> 2.5% allocation
        assert signals["LMT"].metadata["allocation_percent"] == pytest.approx(2.5)
        assert signals["LMT"].score == pytest.approx(0.75)
        assert signals["GD"].score == pytest.approx(1.0)
        assert signals["LMT"].metadata["exit_date"] == "2025-06-14"
        assert signals["LMT"].metadata["materiality_pct"] == pytest.approx(1.0)

    def test_unknown_revenue_included_when_enabled(self):
        """Test missing revenue contracts count with unit weight when allowed."""
        producer = ContractsProducer(include_unknown_revenue=True, sizing_mode="equal_weight")
        signals = {s.instrument_id: s for s in producer.generate_signals(context_for(self.store, self.reference))}

        assert set(signals) == {"LMT", "GD", "XYZ"}
        assert signals["XYZ"].metadata["materiality_pct"] is None

    def test_preferred_agencies(self):
        """Test only preferred agencies pass when configured."""
        producer = ContractsProducer(preferred_agencies=["Navy"])
        signals = producer.generate_signals(context_for(self.store, self.reference))
        assert [s.instrument_id for s in signals] == ["GD"]

    def test_min_contract_value(self):
        """Test small awards are excluded."""
        producer = ContractsProducer(min_contract_value="$1B")
        signals = producer.generate_signals(context_for(self.store, self.reference))
        assert [s.instrument_id for s in signals] == ["GD"]

    def test_no_reference_excludes_everything(self):
        """Test without revenue data nothing is material by default."""
        assert ContractsProducer().generate_signals(context_for(self.store)) == []

    def test_invalid_sector_threshold(self):
        """Test unknown sector names are rejected."""
        with pytest.raises(ConfigurationError):
            ContractsProducer(sector_thresholds={"energy": 1.0})

    def test_sector_threshold_overrides_default(self):
        """Test a lower defense threshold admits smaller awards."""
        producer = ContractsProducer(sector_thresholds={"defense": 0.05})
        signals = producer.generate_signals(context_for(self.store, self.reference))
        assert {s.instrument_id for s in signals} == {"LMT", "GD", "NOC"}
