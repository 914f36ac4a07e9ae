"""Indicator library over a candle series (SMA, EMA, RSI, MACD, Bollinger, momentum, volume, patterns).

All functions are pure. A series shorter than an indicator's look-back never
raises: RSI/momentum/volume/patterns return neutral defaults, MACD/Bollinger
return None.
"""

from __future__ import annotations

import math
from typing import List, Optional, Sequence

from market_scanner.models.market_models import Candle
from market_scanner.models.signal_models import (
    BollingerResult,
    IndicatorSnapshot,
    MacdResult,
    MomentumResult,
    PatternResult,
    RsiResult,
    TrendResult,
    VolumeResult,
)

MIN_CANDLES = 50


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def sma(series: Sequence[float], period: int) -> List[float]:
    """Mean of each trailing window; len(series) - period + 1 values."""
    if period <= 0:
        raise ValueError("period must be > 0")
    out: List[float] = []
    for i in range(period - 1, len(series)):
        window = series[i - period + 1: i + 1]
        out.append(sum(window) / period)
    return out


def ema(series: Sequence[float], period: int) -> List[float]:
    """EMA seeded with the first value (no SMA warm-up)."""
    if not series:
        return []
    k = 2.0 / (period + 1.0)
    out = [float(series[0])]
    for value in series[1:]:
        out.append(value * k + out[-1] * (1 - k))
    return out


def volatility(series: Sequence[float]) -> float:
    """Population standard deviation (0 for fewer than two points)."""
    if len(series) < 2:
        return 0.0
    mean = sum(series) / len(series)
    variance = sum((v - mean) ** 2 for v in series) / len(series)
    return math.sqrt(variance)


def rsi(series: Sequence[float], period: int = 14) -> RsiResult:
    """
    Sums raw gains/losses for the first `period` changes, then switches to
    Wilder smoothing of the accumulated value for every later change.
    """
    if len(series) < period:
        return RsiResult(rsi=50, signal="NEUTRAL")

    gains = 0.0
    losses = 0.0
    for i in range(1, len(series)):
        change = series[i] - series[i - 1]
        if i <= period:
            if change > 0:
                gains += change
            else:
                losses += abs(change)
        else:
            gains = (gains * (period - 1) + (change if change > 0 else 0.0)) / period
            losses = (losses * (period - 1) + (abs(change) if change < 0 else 0.0)) / period

    divisor = min(len(series) - 1, period)
    avg_gain = gains / divisor
    avg_loss = losses / divisor

    if avg_loss == 0:
        return RsiResult(rsi=100, signal="OVERBOUGHT")

    value = 100.0 - (100.0 / (1.0 + avg_gain / avg_loss))
    signal = "NEUTRAL"
    if value > 70:
        signal = "OVERBOUGHT"
    if value < 30:
        signal = "OVERSOLD"
    return RsiResult(rsi=round_half_up(value), signal=signal)


def macd(
    series: Sequence[float],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> Optional[MacdResult]:
    if len(series) < slow_period:
        return None

    fast = ema(series, fast_period)
    slow = ema(series, slow_period)

    # Drop the first (slow - fast) fast values so both sequences start together.
    macd_line = [f - s for f, s in zip(fast[slow_period - fast_period:], slow)]
    signal_line = ema(macd_line, signal_period)

    latest_macd = macd_line[-1]
    latest_signal = signal_line[-1]
    return MacdResult(
        trend="BULLISH" if latest_macd > latest_signal else "BEARISH",
        strength=abs(latest_macd - latest_signal),
    )


def bollinger_bands(
    series: Sequence[float],
    period: int = 20,
    std_dev_multiplier: float = 2.0,
) -> Optional[BollingerResult]:
    if len(series) < period:
        return None

    window = series[-period:]
    middle = sma(window, period)[-1]
    std = volatility(window)
    upper = middle + std * std_dev_multiplier
    lower = middle - std * std_dev_multiplier

    price = series[-1]
    signal = "NEUTRAL"
    if price > upper:
        signal = "OVERBOUGHT"
    if price < lower:
        signal = "OVERSOLD"
    return BollingerResult(upper=upper, middle=middle, lower=lower, signal=signal)


def momentum(series: Sequence[float], period: int = 14) -> MomentumResult:
    # The look-back point series[-1 - period] must exist.
    if len(series) <= period:
        return MomentumResult(trend="NEUTRAL", strength="WEAK")

    change = series[-1] - series[-1 - period]
    vol = volatility(series[-period:])
    if vol == 0:
        normalized = math.copysign(math.inf, change) if change else 0.0
    else:
        normalized = change / vol

    trend = "NEUTRAL"
    if normalized > 0.5:
        trend = "BULLISH"
    if normalized < -0.5:
        trend = "BEARISH"

    strength = "WEAK"
    if abs(normalized) > 1.5:
        strength = "STRONG"
    elif abs(normalized) > 0.8:
        strength = "MEDIUM"
    return MomentumResult(trend=trend, strength=strength)


def analyze_volume(candles: Sequence[Candle], period: int = 20) -> VolumeResult:
    """STRONG when the latest volume exceeds twice the mean of the previous period-1."""
    if len(candles) < period:
        return VolumeResult(signal="NORMAL")

    volumes = [c.volume for c in candles[-period:]]
    current = volumes[-1]
    average = sum(volumes[:-1]) / (period - 1)
    if current > average * 2:
        return VolumeResult(signal="STRONG")
    return VolumeResult(signal="NORMAL")


def detect_candlestick_patterns(candles: Sequence[Candle]) -> PatternResult:
    if len(candles) < 2:
        return PatternResult(detected=(), signal="NEUTRAL")

    prev, curr = candles[-2], candles[-1]
    detected: List[str] = []
    signal = "NEUTRAL"

    if curr.close > prev.open and curr.open < prev.close and prev.close < prev.open and curr.close > curr.open:
        detected.append("Bullish Engulfing")
        signal = "BULLISH"

    if curr.open > prev.close and curr.close < prev.open and prev.close > prev.open and curr.open > curr.close:
        detected.append("Bearish Engulfing")
        signal = "BEARISH"

    return PatternResult(detected=tuple(detected), signal=signal)


def analyze_market(candles: Sequence[Candle], symbol: str, timeframe: str) -> Optional[IndicatorSnapshot]:
    """Full indicator snapshot for one series, or None when it is too short to analyze."""
    closes = [c.close for c in candles]
    if len(closes) < MIN_CANDLES:
        return None

    macd_result = macd(closes)
    bollinger = bollinger_bands(closes)
    if macd_result is None or bollinger is None:
        return None

    sma20 = sma(closes, 20)[-1]
    sma50 = sma(closes, 50)[-1]

    return IndicatorSnapshot(
        symbol=symbol,
        timeframe=timeframe,
        current_price=closes[-1],
        trend=TrendResult(
            overall="BULLISH" if sma20 > sma50 else "BEARISH",
            strength=abs(sma20 - sma50),
        ),
        rsi=rsi(closes),
        macd=macd_result,
        bollinger=bollinger,
        momentum=momentum(closes),
        volume=analyze_volume(candles),
        patterns=detect_candlestick_patterns(candles),
    )
