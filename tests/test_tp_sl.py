"""Exit level tests."""

from __future__ import annotations

import math

import pytest

from market_scanner.services.risk.tp_sl import compute_exit_levels, exit_multipliers


@pytest.mark.parametrize(
    "action,rank,tp,sl",
    [
        ("BUY", "PLATINUM", 108.0, 96.0),
        ("BUY", "GOLD", 105.0, 97.0),
        ("BUY", "SILVER", 103.0, 98.0),
        ("SELL", "PLATINUM", 92.0, 104.0),
        ("SELL", "GOLD", 95.0, 103.0),
        ("SELL", "SILVER", 97.0, 102.0),
    ],
)
def test_levels_at_100(action, rank, tp, sl):
    levels = compute_exit_levels(100.0, action, rank)
    assert (levels.take_profit, levels.stop_loss) == (tp, sl)


def test_levels_bracket_price():
    buy = compute_exit_levels(0.5321, "BUY", "GOLD")
    assert buy.stop_loss < 0.5321 < buy.take_profit
    sell = compute_exit_levels(0.5321, "SELL", "GOLD")
    assert sell.take_profit < 0.5321 < sell.stop_loss


def test_rounded_to_four_decimals():
    levels = compute_exit_levels(1.23456, "BUY", "SILVER")
    assert levels.take_profit == round(1.23456 * 1.03, 4)
    assert levels.stop_loss == round(1.23456 * 0.98, 4)


@pytest.mark.parametrize("price", [0.0, -5.0, math.nan])
def test_invalid_price_gives_zero_levels(price):
    levels = compute_exit_levels(price, "BUY", "PLATINUM")
    assert (levels.take_profit, levels.stop_loss) == (0.0, 0.0)


def test_unknown_rank_uses_default_multipliers():
    assert exit_multipliers("BUY", "BRONZE") == (1.03, 0.98)
    assert exit_multipliers("SELL", "BRONZE") == (0.97, 1.02)
