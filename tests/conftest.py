"""Shared builders and fake data sources for scanner tests."""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional, Sequence, Tuple, Union

import pytest

from market_scanner.models.market_models import Candle, TickerSnapshot
from market_scanner.models.signal_models import (
    BollingerResult,
    IndicatorSnapshot,
    MacdResult,
    MomentumResult,
    PatternResult,
    RsiResult,
    TimeframeSignal,
    TrendResult,
    VolumeResult,
)


def candles_from_closes(closes: Sequence[float], volume: float = 100.0) -> List[Candle]:
    """Doji candles (open == close) so no engulfing pattern is detected."""
    return [
        Candle(timestamp=i * 60_000, open=c, high=c, low=c, close=c, volume=volume)
        for i, c in enumerate(closes)
    ]


def bullish_series(n: int = 100, start: float = 100.0) -> List[Candle]:
    """
    Linear uptrend ending in a bullish engulfing pair.
    Scores RSI overbought -25, MACD bullish +15, momentum bullish strong +20,
    pattern bullish +10 -> +20 with neutral sentiment.
    """
    candles = candles_from_closes([start + i for i in range(n)])
    prev, last = candles[-2], candles[-1]
    candles[-2] = Candle(prev.timestamp, prev.close + 0.5, prev.close + 0.5, prev.close, prev.close, prev.volume)
    candles[-1] = Candle(last.timestamp, prev.close - 0.5, last.close, prev.close - 0.5, last.close, last.volume)
    return candles


def bearish_series(n: int = 100, start: float = 300.0) -> List[Candle]:
    """Mirror of bullish_series: scores -20 with neutral sentiment."""
    candles = candles_from_closes([start - i for i in range(n)])
    prev, last = candles[-2], candles[-1]
    candles[-2] = Candle(prev.timestamp, prev.close - 0.5, prev.close, prev.close - 0.5, prev.close, prev.volume)
    candles[-1] = Candle(last.timestamp, prev.close + 0.5, prev.close + 0.5, last.close, last.close, last.volume)
    return candles


def short_series(n: int = 10) -> List[Candle]:
    """Fewer candles than the indicators need: never a signal, whatever the sentiment."""
    return candles_from_closes([100.0] * n)


def make_ticker(symbol: str, price: float = 100.0, volume: float = 5_000_000, change: float = 3.0) -> TickerSnapshot:
    return TickerSnapshot(symbol=symbol, last_price=price, quote_volume=volume, price_change_percent=change)


def make_snapshot(
    *,
    rsi: str = "NEUTRAL",
    macd: str = "BULLISH",
    bollinger: str = "NEUTRAL",
    momentum: Tuple[str, str] = ("NEUTRAL", "WEAK"),
    volume: str = "NORMAL",
    pattern: str = "NEUTRAL",
    timeframe: str = "1h",
) -> IndicatorSnapshot:
    return IndicatorSnapshot(
        symbol="BTCUSDT",
        timeframe=timeframe,
        current_price=100.0,
        trend=TrendResult(overall="BULLISH", strength=1.0),
        rsi=RsiResult(rsi=50, signal=rsi),
        macd=MacdResult(trend=macd, strength=0.1),
        bollinger=BollingerResult(upper=110.0, middle=100.0, lower=90.0, signal=bollinger),
        momentum=MomentumResult(trend=momentum[0], strength=momentum[1]),
        volume=VolumeResult(signal=volume),
        patterns=PatternResult(detected=(), signal=pattern),
    )


def make_signal(timeframe: str, action: str = "BUY", strength: int = 40, price: float = 100.0) -> TimeframeSignal:
    return TimeframeSignal(
        timeframe=timeframe,
        trading_action=action,
        strength_score=strength,
        score=strength if action == "BUY" else -strength,
        price=price,
        price_history=({"time": 0, "open": price, "high": price, "low": price, "close": price},),
        trading_signal=f"Multiple indicators suggest a potential {action} opportunity.",
    )


# --------- Fake sources ---------
class FakeTickerSource:
    def __init__(self, tickers: List[TickerSnapshot], error: Optional[Exception] = None) -> None:
        self.tickers = tickers
        self.error = error
        self.calls: List[Optional[List[str]]] = []

    async def fetch_tickers(self, symbols: Optional[Sequence[str]] = None) -> List[TickerSnapshot]:
        self.calls.append(list(symbols) if symbols else None)
        if self.error is not None:
            raise self.error
        if symbols:
            by_symbol = {t.symbol: t for t in self.tickers}
            return [by_symbol[s] for s in symbols if s in by_symbol]
        return list(self.tickers)


CandleResponse = Union[List[Candle], Exception]


class FakeCandleSource:
    """Serves (symbol, timeframe) -> candles or an exception; unknown keys get a short series."""

    def __init__(self, series: Dict[Tuple[str, str], CandleResponse], delay: float = 0.0) -> None:
        self.series = series
        self.delay = delay
        self.calls: List[Tuple[str, str, int]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch_candles(self, symbol: str, timeframe: str, limit: int) -> List[Candle]:
        self.calls.append((symbol, timeframe, limit))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            response = self.series.get((symbol, timeframe), short_series())
            if isinstance(response, Exception):
                raise response
            return list(response)[-limit:]
        finally:
            self.in_flight -= 1


class FlakyCandleSource(FakeCandleSource):
    """Fails the first `failures` calls per key, then serves normally."""

    def __init__(self, series: Dict[Tuple[str, str], CandleResponse], failures: int = 1) -> None:
        super().__init__(series)
        self.remaining: Dict[Tuple[str, str], int] = {k: failures for k in series}

    async def fetch_candles(self, symbol: str, timeframe: str, limit: int) -> List[Candle]:
        key = (symbol, timeframe)
        if self.remaining.get(key, 0) > 0:
            self.remaining[key] -= 1
            self.calls.append((symbol, timeframe, limit))
            raise ConnectionError("transient")
        return await super().fetch_candles(symbol, timeframe, limit)


class FakeGauge:
    def __init__(self, value: int = 50, error: Optional[Exception] = None) -> None:
        self.value = value
        self.error = error

    async def fetch_index(self) -> int:
        if self.error is not None:
            raise self.error
        return self.value


@pytest.fixture
def bull() -> List[Candle]:
    return bullish_series()


@pytest.fixture
def bear() -> List[Candle]:
    return bearish_series()
