"""Indicator, signal and scan result models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple

LevelSignal = Literal["OVERBOUGHT", "OVERSOLD", "NEUTRAL"]
TrendKind = Literal["BULLISH", "BEARISH", "NEUTRAL"]
StrengthKind = Literal["STRONG", "MEDIUM", "WEAK"]
VolumeSignal = Literal["STRONG", "NORMAL"]
TradingAction = Literal["BUY", "SELL"]
Rank = Literal["PLATINUM", "GOLD", "SILVER"]

PricePoint = Dict[str, Any]

RANK_PRIORITY: Dict[str, int] = {"PLATINUM": 0, "GOLD": 1, "SILVER": 2}


# --------- Indicator outputs (ephemeral, recomputed each scan) ---------
@dataclass(frozen=True)
class RsiResult:
    rsi: int
    signal: LevelSignal


@dataclass(frozen=True)
class MacdResult:
    trend: TrendKind        # only BULLISH | BEARISH
    strength: float


@dataclass(frozen=True)
class BollingerResult:
    upper: float
    middle: float
    lower: float
    signal: LevelSignal


@dataclass(frozen=True)
class MomentumResult:
    trend: TrendKind
    strength: StrengthKind


@dataclass(frozen=True)
class VolumeResult:
    signal: VolumeSignal


@dataclass(frozen=True)
class PatternResult:
    detected: Tuple[str, ...]
    signal: TrendKind


@dataclass(frozen=True)
class TrendResult:
    overall: TrendKind      # SMA20 vs SMA50
    strength: float


@dataclass(frozen=True)
class IndicatorSnapshot:
    symbol: str
    timeframe: str
    current_price: float
    trend: TrendResult
    rsi: RsiResult
    macd: MacdResult
    bollinger: BollingerResult
    momentum: MomentumResult
    volume: VolumeResult
    patterns: PatternResult


# --------- Signals ---------
@dataclass(frozen=True)
class TimeframeSignal:
    """A directional signal for one (symbol, timeframe). Absence is modelled as None."""
    timeframe: str
    trading_action: TradingAction
    strength_score: int     # 0..100
    score: int              # raw composite score
    price: float
    price_history: Tuple[PricePoint, ...] = ()
    trading_signal: str = ""


@dataclass(frozen=True)
class MarketOpportunity:
    symbol: str
    rank: Rank
    priority: int
    timeframe: str
    trading_action: TradingAction
    strength_score: int
    trading_signal: str
    price: float
    volume_24h: float
    price_change_24h: float
    take_profit: float
    stop_loss: float
    price_history: Tuple[PricePoint, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "rank": self.rank,
            "priority": self.priority,
            "timeframe": self.timeframe,
            "tradingAction": self.trading_action,
            "strengthScore": self.strength_score,
            "tradingSignal": self.trading_signal,
            "price": self.price,
            "volume24h": self.volume_24h,
            "priceChange24h": self.price_change_24h,
            "takeProfit": self.take_profit,
            "stopLoss": self.stop_loss,
            "priceHistory": [dict(p) for p in self.price_history],
        }


# --------- Scan output ---------
@dataclass
class ScanStatistics:
    total_processed: int = 0
    total_opportunities: int = 0
    platinum_count: int = 0
    gold_count: int = 0
    silver_count: int = 0
    scan_duration_ms: int = 0
    sentiment_index_used: int = 50

    @classmethod
    def from_opportunities(
        cls,
        opportunities: List[MarketOpportunity],
        *,
        total_processed: int,
        scan_duration_ms: int,
        sentiment_index_used: int,
    ) -> "ScanStatistics":
        ranks = [o.rank for o in opportunities]
        return cls(
            total_processed=total_processed,
            total_opportunities=len(opportunities),
            platinum_count=ranks.count("PLATINUM"),
            gold_count=ranks.count("GOLD"),
            silver_count=ranks.count("SILVER"),
            scan_duration_ms=scan_duration_ms,
            sentiment_index_used=sentiment_index_used,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalProcessed": self.total_processed,
            "totalOpportunities": self.total_opportunities,
            "platinumCount": self.platinum_count,
            "goldCount": self.gold_count,
            "silverCount": self.silver_count,
            "scanDurationMs": self.scan_duration_ms,
            "sentimentIndexUsed": self.sentiment_index_used,
        }


@dataclass
class ScanResult:
    success: bool
    opportunities: List[MarketOpportunity] = field(default_factory=list)
    statistics: ScanStatistics = field(default_factory=ScanStatistics)
    timestamp: str = ""
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "success": self.success,
            "opportunities": [o.to_dict() for o in self.opportunities],
            "statistics": self.statistics.to_dict(),
            "timestamp": self.timestamp,
        }
        if self.error is not None:
            out["error"] = self.error
        return out
