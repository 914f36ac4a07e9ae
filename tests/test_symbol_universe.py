"""Universe discovery tests."""

from __future__ import annotations

from conftest import make_ticker
from market_scanner.services.market.symbol_universe import is_leveraged_token, select_universe


def test_leveraged_tokens():
    assert is_leveraged_token("BTCUPUSDT")
    assert is_leveraged_token("ETHBEARUSDT")
    assert not is_leveraged_token("SOLUSDT")


def test_filters_are_strict_and_two_sided():
    tickers = [
        make_ticker("AAAUSDT", volume=1_000_000, change=5.0),   # volume not above minimum
        make_ticker("BBBUSDT", volume=2_000_000, change=1.5),   # change not above minimum
        make_ticker("CCCUSDT", volume=2_000_000, change=-2.0),  # falling counts
        make_ticker("DDDBTC", volume=9_000_000, change=5.0),    # wrong quote asset
        make_ticker("BTCDOWNUSDT", volume=9_000_000, change=5.0),
        make_ticker("EEEUSDT", volume=3_000_000, change=1.6),
    ]
    selected = select_universe(tickers)
    assert [t.symbol for t in selected] == ["EEEUSDT", "CCCUSDT"]


def test_sorted_by_volume_and_capped():
    tickers = [make_ticker(f"T{i}USDT", volume=2e6 + i * 1e5) for i in range(10)]
    selected = select_universe(tickers, top_n=3)
    assert [t.symbol for t in selected] == ["T9USDT", "T8USDT", "T7USDT"]


def test_top_n_zero_is_empty():
    assert select_universe([make_ticker("AAAUSDT")], top_n=0) == []
