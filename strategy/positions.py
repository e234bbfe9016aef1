"""Target position model."""

from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from core.exceptions import InvariantViolation, UnsupportedAssetClassError
from signals import is_valid_instrument_id


class AssetClass(Enum):
    """Asset class of a target position."""
    EQUITY = "equity"
    OPTION = "option"
    CRYPTO = "crypto"


SUPPORTED_ASSET_CLASSES = (AssetClass.EQUITY,)


@dataclass(frozen=True)
class TargetPosition:
    """
    Desired signed dollar exposure for one instrument.

    Positive target_value is long, negative is short.
    """

    instrument_id: str
    target_value: Decimal
    asset_class: AssetClass = AssetClass.EQUITY
    sizing_details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not is_valid_instrument_id(self.instrument_id):
            raise InvariantViolation(f"Invalid instrument id {self.instrument_id!r}")
        if isinstance(self.asset_class, str):
            try:
                object.__setattr__(self, "asset_class", AssetClass(self.asset_class))
            except ValueError:
                raise UnsupportedAssetClassError(
                    f"Unknown asset class {self.asset_class!r}", {"instrument": self.instrument_id}
                ) from None
        if self.asset_class not in SUPPORTED_ASSET_CLASSES:
            raise UnsupportedAssetClassError(
                f"Unsupported asset class {getattr(self.asset_class, 'value', self.asset_class)!r}",
                {"instrument": self.instrument_id},
            )
        if not isinstance(self.target_value, Decimal):
            raise InvariantViolation(
                f"target_value must be Decimal, got {type(self.target_value).__name__}",
                {"instrument": self.instrument_id},
            )
        if not self.target_value.is_finite():
            raise InvariantViolation("target_value must be finite", {"instrument": self.instrument_id})

    @property
    def is_long(self) -> bool:
        return self.target_value > 0

    @property
    def is_short(self) -> bool:
        return self.target_value < 0

    def with_value(self, target_value: Decimal, details: Optional[dict[str, Any]] = None) -> "TargetPosition":
        """Copy with a new value and extra details merged in."""
        merged = dict(self.sizing_details)
        if details:
            merged.update(details)
        return replace(self, target_value=target_value, sizing_details=merged)

    def to_dict(self) -> dict:
        return {
            "instrument_id": self.instrument_id,
            "asset_class": self.asset_class.value,
            "target_value": str(self.target_value),
            "sizing_details": dict(self.sizing_details),
        }
