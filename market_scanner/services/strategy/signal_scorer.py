"""Composite scoring: indicator snapshot + sentiment -> directional timeframe signal.

The policy is the SCORING_RULES table below; each rule is a predicate over
(snapshot, sentiment index) and a score delta. Matching deltas are summed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from market_scanner.models.signal_models import IndicatorSnapshot, PricePoint, TimeframeSignal
from market_scanner.services.market.indicators import round_half_up

BUY_THRESHOLD = 18
SELL_THRESHOLD = -18

FEAR_THRESHOLD = 30
GREED_THRESHOLD = 75


@dataclass(frozen=True)
class ScoreRule:
    name: str
    delta: int
    applies: Callable[[IndicatorSnapshot, int], bool]


SCORING_RULES: Tuple[ScoreRule, ...] = (
    ScoreRule("rsi_oversold", 25, lambda s, _: s.rsi.signal == "OVERSOLD"),
    ScoreRule("rsi_overbought", -25, lambda s, _: s.rsi.signal == "OVERBOUGHT"),
    ScoreRule("macd_bullish", 15, lambda s, _: s.macd.trend == "BULLISH"),
    ScoreRule("macd_bearish", -15, lambda s, _: s.macd.trend == "BEARISH"),
    ScoreRule("bollinger_oversold", 15, lambda s, _: s.bollinger.signal == "OVERSOLD"),
    ScoreRule("bollinger_overbought", -15, lambda s, _: s.bollinger.signal == "OVERBOUGHT"),
    ScoreRule(
        "momentum_bullish_strong", 20,
        lambda s, _: s.momentum.trend == "BULLISH" and s.momentum.strength == "STRONG",
    ),
    ScoreRule(
        "momentum_bullish", 10,
        lambda s, _: s.momentum.trend == "BULLISH" and s.momentum.strength != "STRONG",
    ),
    ScoreRule(
        "momentum_bearish_strong", -20,
        lambda s, _: s.momentum.trend == "BEARISH" and s.momentum.strength == "STRONG",
    ),
    ScoreRule(
        "momentum_bearish", -10,
        lambda s, _: s.momentum.trend == "BEARISH" and s.momentum.strength != "STRONG",
    ),
    ScoreRule("volume_strong", 5, lambda s, _: s.volume.signal == "STRONG"),
    ScoreRule("pattern_bullish", 10, lambda s, _: s.patterns.signal == "BULLISH"),
    ScoreRule("pattern_bearish", -10, lambda s, _: s.patterns.signal == "BEARISH"),
    ScoreRule("sentiment_fear", 10, lambda _, fg: fg < FEAR_THRESHOLD),
    ScoreRule("sentiment_greed", -10, lambda _, fg: fg > GREED_THRESHOLD),
)


def matched_rules(
    snapshot: IndicatorSnapshot,
    sentiment_index: int,
    rules: Sequence[ScoreRule] = SCORING_RULES,
) -> List[ScoreRule]:
    return [r for r in rules if r.applies(snapshot, sentiment_index)]


def composite_score(
    snapshot: IndicatorSnapshot,
    sentiment_index: int,
    rules: Sequence[ScoreRule] = SCORING_RULES,
) -> int:
    return sum(r.delta for r in matched_rules(snapshot, sentiment_index, rules))


def strength_from_score(score: float) -> int:
    return min(100, round_half_up(abs(score)))


def generate_signal(
    snapshot: IndicatorSnapshot,
    sentiment_index: int,
    *,
    price: float,
    price_history: Sequence[PricePoint] = (),
    rules: Sequence[ScoreRule] = SCORING_RULES,
) -> Optional[TimeframeSignal]:
    """Returns None when the score stays strictly inside (SELL_THRESHOLD, BUY_THRESHOLD)."""
    score = composite_score(snapshot, sentiment_index, rules)

    if score >= BUY_THRESHOLD:
        action = "BUY"
    elif score <= SELL_THRESHOLD:
        action = "SELL"
    else:
        return None

    return TimeframeSignal(
        timeframe=snapshot.timeframe,
        trading_action=action,
        strength_score=strength_from_score(score),
        score=score,
        price=price,
        price_history=tuple(price_history),
        trading_signal=f"Multiple indicators suggest a potential {action} opportunity.",
    )
