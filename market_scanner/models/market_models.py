"""Market domain models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class Candle:
    timestamp: int          # open time, epoch milliseconds
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    def to_price_point(self) -> Dict[str, Any]:
        return {
            "time": self.timestamp,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
        }


@dataclass(frozen=True)
class TickerSnapshot:
    """24h rolling stats for one symbol (not the candle history)."""
    symbol: str
    last_price: float
    quote_volume: float
    price_change_percent: float
