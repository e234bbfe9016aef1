"""Daily price bar model."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class PriceBar:
    """One daily OHLCV bar."""

    timestamp: datetime
    high: float
    low: float
    close: float
    open: Optional[float] = None
    volume: Optional[int] = None

    def __post_init__(self):
        if self.high < self.low:
            raise ValueError(
                f"Bar high {self.high} below low {self.low} at {self.timestamp}"
            )

    @classmethod
    def from_api_response(cls, data: dict) -> "PriceBar":
        """Create PriceBar from a broker bars payload (t/o/h/l/c/v keys)."""
        return cls(
            timestamp=datetime.fromisoformat(str(data["t"]).replace("Z", "+00:00")),
            high=float(data["h"]),
            low=float(data["l"]),
            close=float(data["c"]),
            open=float(data["o"]) if data.get("o") is not None else None,
            volume=int(data["v"]) if data.get("v") is not None else None,
        )
