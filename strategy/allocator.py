"""
Master allocator - one full pass from alternative data to target positions.

    producers -> netting -> sizing -> merge/constraints

The allocator is a pure function of its inputs apart from the blocklist,
which sizing may extend. Fatal errors propagate; there is no partial result.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Optional, Union

from core.config import AllocatorConfig
from core.exceptions import ConfigurationError, EquityUnavailableError, ExternalServiceError
from ingestion.market_data import PriceDataService
from ingestion.store import AltDataStore
from reporting.pipeline_stats import STAGE_NETTING, PassStats
from signals import PRODUCERS, ProducerContext, StrategyResult, build_producers, collect_signals
from .blocklist import BlockList
from .netting import NetConviction, SignalNettingEngine, StrategyWeightTable
from .portfolio import ExposureReport, ensure_unique_instruments, merge_and_constrain
from .positions import TargetPosition
from .sizing import VolatilityPositionSizer


logger = logging.getLogger(__name__)


@dataclass
class PortfolioResult:
    """Output of one allocation pass."""

    target_positions: list[TargetPosition]
    exposure: ExposureReport
    stats: PassStats
    total_equity: Decimal
    net_convictions: dict[str, NetConviction] = field(default_factory=dict)
    strategy_results: dict[str, StrategyResult] = field(default_factory=dict)
    as_of: Optional[date] = None

    @property
    def failed_strategies(self) -> list[str]:
        return [name for name, r in self.strategy_results.items() if not r.succeeded]

    def to_dict(self) -> dict:
        return {
            "as_of": self.as_of.isoformat() if self.as_of else None,
            "total_equity": str(self.total_equity),
            "target_positions": [p.to_dict() for p in self.target_positions],
            "exposure": self.exposure.to_dict(),
            "net_convictions": {k: v.to_dict() for k, v in self.net_convictions.items()},
            "failed_strategies": self.failed_strategies,
            "stats": self.stats.to_dict(),
        }


class MasterAllocator:
    """
    Orchestrates producers, netting, sizing and constraints.

    Args:
        config: Validated AllocatorConfig
        store: Alternative-data store read by producers
        price_service: Bars and quotes for sizing
        broker: Equity source when run() is not given total_equity
        reference: Company reference lookups (sector, revenue)
        blocklist: Shared blocklist; a new one is created if omitted
        clock: Returns the current UTC datetime
    """

    def __init__(
        self,
        config: AllocatorConfig,
        store: AltDataStore,
        price_service: PriceDataService,
        broker: Optional[Any] = None,
        reference: Optional[Any] = None,
        blocklist: Optional[BlockList] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.config = config
        self.store = store
        self.price_service = price_service
        self.broker = broker
        self.reference = reference
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.blocklist = (
            blocklist if blocklist is not None
            else BlockList(expiry_days=config.risk.block_expiry_days, clock=self.clock)
        )
        self.netting = SignalNettingEngine()

    def run(
        self,
        total_equity: Optional[Union[Decimal, int, str]] = None,
        as_of: Optional[date] = None,
    ) -> PortfolioResult:
        """
        Run one allocation pass.

        Args:
            total_equity: Account equity; fetched from the broker when omitted
            as_of: Data cutoff date; defaults to today per the clock

        Returns:
            PortfolioResult with final target positions

        Raises:
            EquityUnavailableError: Equity could not be fetched
            ConfigurationError: Invalid configuration or non-positive equity
        """
        now = self.clock()
        as_of = as_of or now.date()
        stats = PassStats(timestamp=now)

        equity = self._resolve_equity(total_equity)
        logger.info(f"Starting {self.config.environment} allocation pass as of {as_of} with equity ${equity}")

        # Stage 1: signals
        self.config.validate_strategy_names(set(PRODUCERS))
        producers = build_producers(self.config.enabled_strategies)
        context = ProducerContext(as_of=as_of, store=self.store, reference=self.reference, generated_at=now)
        collected = collect_signals(producers, context, max_workers=self.config.max_workers)
        stats.record_signals(collected.signals)
        stats.failed_strategies = collected.failed_strategies
        if collected.failed_strategies:
            logger.warning(f"Strategies failed this pass: {', '.join(collected.failed_strategies)}")

        # Stage 2: netting
        weights = StrategyWeightTable(self.config.strategy_weights())
        convictions = self.netting.net(collected.signals, weights)
        stats.instruments_netted = len(convictions)

        actionable: dict[str, NetConviction] = {}
        for instrument_id, conviction in convictions.items():
            if not conviction.is_actionable:
                continue
            if self.blocklist.is_blocked(instrument_id):
                stats.record_skip(instrument_id, STAGE_NETTING, "instrument is blocked")
                continue
            actionable[instrument_id] = conviction
        stats.instruments_actionable = len(actionable)

        # Stage 3: sizing
        risk = self.config.risk
        sizer = VolatilityPositionSizer.from_config(risk, self.price_service, self.blocklist, as_of=as_of)
        sized = [
            p.with_value(p.target_value, {"strategies": actionable[p.instrument_id].strategies})
            for p in sizer.size(actionable, equity, risk.risk_target_pct, stats=stats)
        ]

        # Stage 4: merge and constraints
        portfolio = merge_and_constrain(
            sized,
            max_position_pct=risk.max_position_pct,
            min_position_value=risk.min_position_value,
            total_equity=equity,
            merge_strategy=risk.merge_strategy,
            enable_shorts=risk.enable_shorts,
            stats=stats,
        )
        ensure_unique_instruments(portfolio.positions)
        stats.positions_final = len(portfolio.positions)

        logger.info(stats.summary())
        return PortfolioResult(
            target_positions=portfolio.positions,
            exposure=portfolio.exposure,
            stats=stats,
            total_equity=equity,
            net_convictions=convictions,
            strategy_results=collected.results,
            as_of=as_of,
        )

    def _resolve_equity(self, total_equity) -> Decimal:
        if total_equity is None:
            if self.broker is None:
                raise ConfigurationError("total_equity is required when no broker is configured")
            try:
                total_equity = self.broker.get_account_equity()
            except ExternalServiceError as e:
                raise EquityUnavailableError(
                    f"Could not fetch account equity: {e.message}",
                    service=e.service or "broker",
                    retryable=e.retryable,
                ) from e

        equity = Decimal(str(total_equity))
        if not equity.is_finite() or equity <= 0:
            raise ConfigurationError(f"Account equity must be positive, got {total_equity}")
        return equity
