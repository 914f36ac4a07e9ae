"""Multi-timeframe aggregation: per-timeframe signals of one symbol -> zero or one ranked opportunity."""

from __future__ import annotations

from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from market_scanner.models.market_models import TickerSnapshot
from market_scanner.models.signal_models import RANK_PRIORITY, MarketOpportunity, TimeframeSignal
from market_scanner.services.risk.tp_sl import compute_exit_levels

DEFAULT_TIMEFRAMES: Tuple[str, ...] = ("15m", "1h", "4h")


def display_symbol(symbol: str, quote_asset: str = "USDT") -> str:
    """BTCUSDT -> BTC (opportunities are reported by base asset)."""
    if quote_asset and symbol.endswith(quote_asset) and len(symbol) > len(quote_asset):
        return symbol[: -len(quote_asset)]
    return symbol


def sort_opportunities(opportunities: Iterable[MarketOpportunity]) -> List[MarketOpportunity]:
    """Ascending priority, then descending strength score."""
    return sorted(opportunities, key=lambda o: (o.priority, -o.strength_score))


class MultiTimeframeRanker:
    """
    Tiers a symbol by cross-timeframe agreement, evaluated in order:
    - PLATINUM: every configured timeframe signalled and all agree on the action
    - GOLD: the gold timeframe (1h) signalled
    - SILVER: the silver timeframe (15m) signalled
    Anything else yields no opportunity.
    """

    def __init__(
        self,
        timeframes: Sequence[str] = DEFAULT_TIMEFRAMES,
        *,
        gold_timeframe: str = "1h",
        silver_timeframe: str = "15m",
        quote_asset: str = "USDT",
    ) -> None:
        self._timeframes = tuple(timeframes)
        self._gold_tf = gold_timeframe
        self._silver_tf = silver_timeframe
        self._quote_asset = quote_asset

    @property
    def timeframes(self) -> Tuple[str, ...]:
        return self._timeframes

    def _platinum_candidate(self, signals: Mapping[str, TimeframeSignal]) -> Optional[TimeframeSignal]:
        if len(self._timeframes) < 2:
            return None
        present = [signals.get(tf) for tf in self._timeframes]
        if any(s is None for s in present):
            return None
        if len({s.trading_action for s in present}) != 1:
            return None
        # max() keeps the first of equal strengths (configured timeframe order)
        return max(present, key=lambda s: s.strength_score)

    def classify(self, signals: Mapping[str, TimeframeSignal]) -> Optional[Tuple[str, str, TimeframeSignal]]:
        """Returns (rank, timeframe label, source signal) or None."""
        best = self._platinum_candidate(signals)
        if best is not None:
            return "PLATINUM", "-".join(self._timeframes), best

        gold = signals.get(self._gold_tf)
        if gold is not None:
            return "GOLD", self._gold_tf, gold

        silver = signals.get(self._silver_tf)
        if silver is not None:
            return "SILVER", self._silver_tf, silver

        return None

    def rank(
        self,
        ticker: TickerSnapshot,
        signals: Mapping[str, TimeframeSignal],
    ) -> Optional[MarketOpportunity]:
        classified = self.classify(signals)
        if classified is None:
            return None

        rank, label, source = classified
        if rank == "PLATINUM":
            trading_signal = (
                f"PLATINUM SIGNAL: Strong {source.trading_action} signal confirmed across multiple timeframes."
            )
        else:
            trading_signal = source.trading_signal

        price = float(ticker.last_price)
        levels = compute_exit_levels(price, source.trading_action, rank)

        return MarketOpportunity(
            symbol=display_symbol(ticker.symbol, self._quote_asset),
            rank=rank,
            priority=RANK_PRIORITY[rank],
            timeframe=label,
            trading_action=source.trading_action,
            strength_score=source.strength_score,
            trading_signal=trading_signal,
            price=price,
            volume_24h=float(ticker.quote_volume),
            price_change_24h=float(ticker.price_change_percent),
            take_profit=levels.take_profit,
            stop_loss=levels.stop_loss,
            price_history=source.price_history,
        )


def rank_opportunity(
    ticker: TickerSnapshot,
    signals: Mapping[str, TimeframeSignal],
    timeframes: Sequence[str] = DEFAULT_TIMEFRAMES,
    *,
    gold_timeframe: str = "1h",
    silver_timeframe: str = "15m",
) -> Optional[MarketOpportunity]:
    ranker = MultiTimeframeRanker(timeframes, gold_timeframe=gold_timeframe, silver_timeframe=silver_timeframe)
    return ranker.rank(ticker, signals)
