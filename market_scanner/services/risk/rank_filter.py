"""Rank / confidence filters applied to a ranked opportunity list."""

from __future__ import annotations

from typing import Dict, FrozenSet, List, Optional

from market_scanner.models.signal_models import MarketOpportunity

# Minimum acceptable rank per automated-trading risk level.
RISK_LEVEL_RANKS: Dict[str, FrozenSet[str]] = {
    "low": frozenset({"SILVER", "GOLD", "PLATINUM"}),
    "medium": frozenset({"GOLD", "PLATINUM"}),
    "high": frozenset({"PLATINUM"}),
}


def allowed_ranks(risk_level: str) -> FrozenSet[str]:
    level = str(risk_level).lower()
    if level not in RISK_LEVEL_RANKS:
        raise ValueError(f"risk_level must be one of: {sorted(RISK_LEVEL_RANKS)}")
    return RISK_LEVEL_RANKS[level]


def filter_by_risk_level(opportunities: List[MarketOpportunity], risk_level: Optional[str]) -> List[MarketOpportunity]:
    if not risk_level:
        return list(opportunities)
    ranks = allowed_ranks(risk_level)
    return [o for o in opportunities if o.rank in ranks]


def filter_by_confidence(opportunities: List[MarketOpportunity], min_confidence: Optional[int]) -> List[MarketOpportunity]:
    if not min_confidence:
        return list(opportunities)
    return [o for o in opportunities if o.strength_score >= min_confidence]
