"""Government contracts signal - buy companies winning material federal awards."""

import logging
from collections import defaultdict
from datetime import timedelta
from decimal import Decimal
from typing import Any, Mapping, Optional

from altdata.models import GovernmentContract
from altdata.money import parse_money
from core.exceptions import ConfigurationError
from features.materiality import materiality_pct
from features.sector import SECTORS, sector_for
from .signal_base import ProducerContext, Signal, SignalProducer


logger = logging.getLogger(__name__)

SIZING_MODES = ("materiality_weighted", "equal_weight")


class ContractsProducer(SignalProducer):
    """
    Follow material government contract awards.

    Criteria:
    - Effective date within the holding window
    - Contract value at or above the minimum
    - Awarding agency in the preferred list (when one is configured)
    - Materiality (value / annual revenue) at or above the sector threshold

    Score: 0.5 + allocation% / 10, clamped to [0.5, 1.0], where allocation
    is the instrument's share of total materiality across the pass.
    """

    name = "contracts"
    description = "Material government contract awards"

    def __init__(
        self,
        lookback_days: int = 7,
        holding_period_days: int = 5,
        min_contract_value: Any = 10_000_000,
        min_materiality_pct: float = 1.0,
        sector_thresholds: Optional[Mapping[str, float]] = None,
        preferred_agencies: Optional[list[str]] = None,
        include_unknown_revenue: bool = False,
        sizing_mode: str = "materiality_weighted",
    ):
        if not isinstance(lookback_days, int) or lookback_days <= 0:
            raise ConfigurationError(f"{self.name}.lookback_days must be a positive integer, got {lookback_days!r}")
        if not isinstance(holding_period_days, int) or holding_period_days <= 0:
            raise ConfigurationError(
                f"{self.name}.holding_period_days must be a positive integer, got {holding_period_days!r}"
            )
        min_value = parse_money(min_contract_value)
        if min_value is None or min_value < 0:
            raise ConfigurationError(f"{self.name}.min_contract_value must be a non-negative amount")
        if not isinstance(min_materiality_pct, (int, float)) or min_materiality_pct < 0:
            raise ConfigurationError(f"{self.name}.min_materiality_pct must be non-negative")
        if not isinstance(include_unknown_revenue, bool):
            raise ConfigurationError(f"{self.name}.include_unknown_revenue must be a boolean")
        if sizing_mode not in SIZING_MODES:
            raise ConfigurationError(f"{self.name}.sizing_mode must be one of {', '.join(SIZING_MODES)}")

        thresholds = dict(sector_thresholds or {})
        unknown = sorted(set(thresholds) - set(SECTORS))
        if unknown:
            raise ConfigurationError(f"{self.name}.sector_thresholds has unknown sectors: {', '.join(unknown)}")

        if holding_period_days > lookback_days:
            logger.warning(
                f"[{self.name}] holding_period_days exceeds lookback_days; capping to {lookback_days}"
            )
            holding_period_days = lookback_days

        self.lookback_days = lookback_days
        self.holding_period_days = holding_period_days
        self.min_contract_value = min_value
        self.min_materiality_pct = float(min_materiality_pct)
        self.sector_thresholds = {k: float(v) for k, v in thresholds.items()}
        self.preferred_agencies = list(preferred_agencies or [])
        self.include_unknown_revenue = include_unknown_revenue
        self.sizing_mode = sizing_mode

    def threshold_for(self, instrument_id: str, context: ProducerContext) -> float:
        """Materiality threshold for the instrument's sector."""
        sector = sector_for(instrument_id, context.reference)
        return self.sector_thresholds.get(sector, self.min_materiality_pct)

    def generate_signals(self, context: ProducerContext) -> list[Signal]:
        start = context.as_of - timedelta(days=self.lookback_days)
        contracts = context.store.get_contracts(start, context.as_of)
        if not contracts:
            return []

        selected = self._apply_filters(contracts, context)
        if not selected:
            logger.info(f"[{self.name}] No contracts passed filters ({len(contracts)} candidates)")
            return []

        grouped: dict[str, list[tuple[GovernmentContract, Optional[float]]]] = defaultdict(list)
        for contract, materiality in selected:
            grouped[contract.instrument_id].append((contract, materiality))

        weights = {
            instrument_id: self._weight(rows)
            for instrument_id, rows in grouped.items()
        }
        total_weight = sum(weights.values())
        if total_weight <= 0:
            return []

        signals = []
        for instrument_id, rows in grouped.items():
            allocation_pct = round(weights[instrument_id] / total_weight * 100, 2)
            most_recent, materiality = max(rows, key=lambda r: r[0].effective_date)
            signal_date = most_recent.effective_date

            signal = self.create_signal(
                instrument_id,
                min(max(0.5 + allocation_pct / 10.0, 0.5), 1.0),
                context,
                metadata={
                    "allocation_percent": allocation_pct,
                    "agency": most_recent.agency,
                    "contract_value": str(sum((c.contract_value for c, _ in rows), Decimal("0"))),
                    "materiality_pct": materiality,
                    "signal_date": signal_date.isoformat(),
                    "exit_date": (signal_date + timedelta(days=self.holding_period_days)).isoformat(),
                },
            )
            if signal is not None:
                signals.append(signal)

        logger.info(f"[{self.name}] {len(signals)} signals from {len(selected)}/{len(contracts)} contracts")
        return signals

    def _apply_filters(
        self,
        contracts: list[GovernmentContract],
        context: ProducerContext,
    ) -> list[tuple[GovernmentContract, Optional[float]]]:
        active_cutoff = context.as_of - timedelta(days=self.holding_period_days)
        selected = []

        for contract in contracts:
            if contract.effective_date < active_cutoff:
                continue
            if contract.contract_value < self.min_contract_value:
                continue
            if self.preferred_agencies and contract.agency not in self.preferred_agencies:
                continue

            revenue = context.reference.get_annual_revenue(contract.instrument_id) if context.reference else None
            materiality = materiality_pct(contract.contract_value, revenue)

            if materiality is None:
                if self.include_unknown_revenue:
                    logger.warning(
                        f"[{self.name}] Missing annual revenue for {contract.instrument_id}; including contract"
                    )
                    selected.append((contract, None))
                else:
                    logger.warning(
                        f"[{self.name}] Missing annual revenue for {contract.instrument_id}; excluding contract"
                    )
                continue

            if materiality >= self.threshold_for(contract.instrument_id, context):
                selected.append((contract, materiality))

        return selected

    def _weight(self, rows: list[tuple[GovernmentContract, Optional[float]]]) -> float:
        if self.sizing_mode == "equal_weight":
            return 1.0
        return sum(1.0 if m is None else m for _, m in rows)
