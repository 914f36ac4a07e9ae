"""Take profit / Stop loss price levels from entry price, direction and rank."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Tuple

# rank -> (take_profit multiplier, stop_loss multiplier)
BUY_MULTIPLIERS: Dict[str, Tuple[float, float]] = {
    "PLATINUM": (1.08, 0.96),
    "GOLD": (1.05, 0.97),
}
SELL_MULTIPLIERS: Dict[str, Tuple[float, float]] = {
    "PLATINUM": (0.92, 1.04),
    "GOLD": (0.95, 1.03),
}
DEFAULT_BUY_MULTIPLIERS = (1.03, 0.98)
DEFAULT_SELL_MULTIPLIERS = (0.97, 1.02)


@dataclass(frozen=True)
class ExitLevels:
    take_profit: float
    stop_loss: float


def exit_multipliers(action: str, rank: str) -> Tuple[float, float]:
    if action == "BUY":
        return BUY_MULTIPLIERS.get(rank, DEFAULT_BUY_MULTIPLIERS)
    return SELL_MULTIPLIERS.get(rank, DEFAULT_SELL_MULTIPLIERS)


def compute_exit_levels(price: float, action: str, rank: str) -> ExitLevels:
    """Compute TP and SL as absolute prices, rounded to 4 decimals.

    Invalid prices (NaN or <= 0) produce (0, 0) rather than raising.
    """
    price = float(price)
    if math.isnan(price) or price <= 0:
        return ExitLevels(take_profit=0.0, stop_loss=0.0)

    tp_rate, sl_rate = exit_multipliers(action, rank)
    return ExitLevels(
        take_profit=round(price * tp_rate, 4),
        stop_loss=round(price * sl_rate, 4),
    )
