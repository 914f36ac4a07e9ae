"""Market data sources (protocols) and Binance payload -> domain model parsing."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Sequence

from market_scanner.infrastructure.logging.logging import get_logger
from market_scanner.models.market_models import Candle, TickerSnapshot

log = get_logger("market_data")


class TickerSource(Protocol):
    async def fetch_tickers(self, symbols: Optional[Sequence[str]] = None) -> List[TickerSnapshot]:
        """24h tickers for the given symbols (unknown ones dropped), or for every listed symbol when None."""
        ...


class CandleSource(Protocol):
    async def fetch_candles(self, symbol: str, timeframe: str, limit: int) -> List[Candle]:
        """OHLCV candles, oldest first, at most `limit` long."""
        ...


class SentimentGauge(Protocol):
    async def fetch_index(self) -> int:
        """Market mood index in [0, 100]."""
        ...


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def parse_klines(rows: Sequence[Sequence[Any]]) -> List[Candle]:
    """
    Binance kline rows: [open_time, open, high, low, close, volume, close_time, ...].
    Rows that are too short are skipped; output is sorted by open time.
    """
    candles: List[Candle] = []
    for row in rows:
        if not isinstance(row, (list, tuple)) or len(row) < 6:
            log.debug("kline_row_skipped", row=row)
            continue
        candles.append(
            Candle(
                timestamp=int(row[0]),
                open=_to_float(row[1]),
                high=_to_float(row[2]),
                low=_to_float(row[3]),
                close=_to_float(row[4]),
                volume=_to_float(row[5]),
            )
        )
    candles.sort(key=lambda c: c.timestamp)
    return candles


def parse_ticker(raw: Dict[str, Any]) -> TickerSnapshot:
    return TickerSnapshot(
        symbol=str(raw["symbol"]),
        last_price=_to_float(raw.get("lastPrice"), float("nan")),
        quote_volume=_to_float(raw.get("quoteVolume")),
        price_change_percent=_to_float(raw.get("priceChangePercent")),
    )


def parse_tickers(raw: Any) -> List[TickerSnapshot]:
    """Accepts a single ticker object or a list of them."""
    items = [raw] if isinstance(raw, dict) else list(raw or [])
    return [parse_ticker(t) for t in items if isinstance(t, dict) and t.get("symbol")]
