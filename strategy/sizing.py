"""
Volatility-based position sizing.

Each position gets roughly the same dollars-at-risk: a fixed fraction of
equity divided by the instrument's Average True Range gives a share count,
scaled by conviction. Low-volatility instruments get more shares than
high-volatility ones for the same budget.
"""

import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_FLOOR, Decimal
from typing import Mapping, Optional, Union

from core.exceptions import ConfigurationError, ExternalServiceError, InvariantViolation
from features.volatility import estimate_volatility
from ingestion.market_data import PriceDataService
from reporting.pipeline_stats import STAGE_SIZING, PassStats
from .blocklist import BlockList
from .netting import NetConviction
from .positions import AssetClass, TargetPosition


logger = logging.getLogger(__name__)

# Float noise in ATR must not flip the share floor
ATR_QUANTUM = Decimal("1e-8")


@dataclass
class SizingParams:
    """Parameters for volatility sizing."""

    atr_period: int = 14
    default_volatility_fraction: float = 0.03  # ATR fallback as a fraction of price
    stop_multiple: float = 2.0  # Implied stop distance in ATRs
    bar_window_days: int = 35  # Calendar days of bars requested


class VolatilityPositionSizer:
    """
    Convert net conviction into target dollar positions.

    For each instrument with a nonzero score:
        risk_amount     = total_equity * risk_target_pct
        raw_shares      = floor(risk_amount / ATR)
        adjusted_shares = floor(raw_shares * |net_score|)
        target_value    = adjusted_shares * price, negative for shorts

    Money and share counts are Decimal; ATR is float.
    """

    def __init__(
        self,
        price_service: PriceDataService,
        blocklist: Optional[BlockList] = None,
        params: Optional[SizingParams] = None,
        as_of: Optional[date] = None,
    ):
        self.price_service = price_service
        self.blocklist = blocklist if blocklist is not None else BlockList()
        self.params = params or SizingParams()
        self.as_of = as_of

        if self.params.atr_period <= 0:
            raise ConfigurationError(f"atr_period must be positive, got {self.params.atr_period}")
        if not 0 < self.params.default_volatility_fraction < 1:
            raise ConfigurationError("default_volatility_fraction must be in (0, 1)")

    @classmethod
    def from_config(cls, risk, price_service, blocklist=None, as_of=None) -> "VolatilityPositionSizer":
        """Build from a RiskConfig."""
        return cls(
            price_service,
            blocklist=blocklist,
            params=SizingParams(
                atr_period=risk.atr_period,
                default_volatility_fraction=risk.default_volatility_fraction,
                stop_multiple=risk.stop_multiple,
                bar_window_days=risk.bar_window_days,
            ),
            as_of=as_of,
        )

    def size(
        self,
        net_convictions: Mapping[str, Union[float, NetConviction]],
        total_equity: Union[Decimal, int, str],
        risk_target_pct: float,
        stats: Optional[PassStats] = None,
    ) -> list[TargetPosition]:
        """
        Size every instrument with a nonzero net score.

        Args:
            net_convictions: instrument_id -> net score or NetConviction
            total_equity: Account equity
            risk_target_pct: Fraction of equity put at risk per position
            stats: Optional collector for skip/block records

        Returns:
            One TargetPosition per sized instrument
        """
        stats = stats if stats is not None else PassStats()
        equity = Decimal(str(total_equity))
        if not equity.is_finite() or equity <= 0:
            raise ConfigurationError(f"total_equity must be positive, got {total_equity}")
        if not 0 < risk_target_pct <= 1:
            raise ConfigurationError(f"risk_target_pct must be in (0, 1], got {risk_target_pct}")

        risk_amount = equity * Decimal(str(risk_target_pct))

        scores: dict[str, float] = {}
        for instrument_id, conviction in net_convictions.items():
            score = conviction.net_score if isinstance(conviction, NetConviction) else float(conviction)
            if math.isnan(score) or abs(score) > 1.0:
                raise InvariantViolation(f"Net score {score} outside [-1, 1]", {"instrument": instrument_id})
            if score == 0:
                continue
            if self.blocklist.is_blocked(instrument_id):
                stats.record_skip(instrument_id, STAGE_SIZING, "instrument is blocked")
                continue
            scores[instrument_id] = score

        if not scores:
            return []

        bars_by_instrument = self._fetch_bars(list(scores))

        positions = []
        for instrument_id, score in scores.items():
            position = self._size_one(
                instrument_id,
                score,
                bars_by_instrument.get(instrument_id, []),
                risk_amount,
                risk_target_pct,
                stats,
            )
            if position is not None:
                positions.append(position)

        stats.instruments_sized = len(positions)
        logger.info(f"Sized {len(positions)}/{len(scores)} instruments with risk budget {risk_amount}")
        return positions

    def _fetch_bars(self, instrument_ids: list[str]) -> dict:
        end = self.as_of or date.today()
        start = end - timedelta(days=self.params.bar_window_days)
        try:
            return self.price_service.get_daily_bars_batch(instrument_ids, start, end)
        except ExternalServiceError as e:
            logger.warning(f"Bar fetch failed for {len(instrument_ids)} instruments, using fallback ATR: {e}")
            return {}

    def _size_one(
        self,
        instrument_id: str,
        score: float,
        bars: list,
        risk_amount: Decimal,
        risk_target_pct: float,
        stats: PassStats,
    ) -> Optional[TargetPosition]:
        try:
            price = self.price_service.get_current_price(instrument_id)
        except ExternalServiceError as e:
            stats.record_skip(instrument_id, STAGE_SIZING, f"price lookup failed: {e}")
            return None

        if price is None and bars:
            price = max(bars, key=lambda b: b.timestamp).close
            logger.info(f"No quote for {instrument_id}; using last close {price}")

        if price is not None:
            price = Decimal(str(price))

        if price is None or not price.is_finite() or price <= 0:
            reason = "no current price available"
            self.blocklist.block(instrument_id, reason)
            stats.record_block(instrument_id, STAGE_SIZING, reason)
            return None

        estimate = estimate_volatility(
            bars,
            price,
            period=self.params.atr_period,
            default_volatility_fraction=self.params.default_volatility_fraction,
        )
        if estimate.is_fallback:
            logger.info(
                f"{instrument_id}: {len(bars)} bars < {self.params.atr_period + 1}, "
                f"fallback ATR {estimate.atr:.4f}"
            )

        atr = Decimal(repr(estimate.atr)).quantize(ATR_QUANTUM)
        if atr <= 0:
            stats.record_skip(instrument_id, STAGE_SIZING, f"unusable ATR {estimate.atr}")
            return None

        raw_shares = (risk_amount / atr).to_integral_value(rounding=ROUND_FLOOR)
        shares = (raw_shares * Decimal(repr(abs(score)))).to_integral_value(rounding=ROUND_FLOOR)

        if shares < 0:
            raise InvariantViolation(f"Negative share count {shares}", {"instrument": instrument_id})
        if shares == 0:
            stats.record_skip(instrument_id, STAGE_SIZING, "risk budget buys zero shares")
            return None

        target_value = shares * price
        if score < 0:
            target_value = -target_value

        return TargetPosition(
            instrument_id=instrument_id,
            asset_class=AssetClass.EQUITY,
            target_value=target_value,
            sizing_details={
                "net_score": score,
                "atr": estimate.atr,
                "atr_source": estimate.source,
                "bar_count": estimate.bar_count,
                "implied_stop_distance": estimate.atr * self.params.stop_multiple,
                "shares": int(shares),
                "raw_shares": int(raw_shares),
                "risk_target_pct": risk_target_pct,
                "risk_amount": risk_amount,
                "current_price": price,
            },
        )
