"""Symbol universe discovery from 24h tickers."""

from __future__ import annotations

import re
from typing import Iterable, List

from market_scanner.models.market_models import TickerSnapshot

LEVERAGED_TOKEN_PATTERN = re.compile(r"UP|DOWN|BULL|BEAR")


def is_leveraged_token(symbol: str) -> bool:
    return LEVERAGED_TOKEN_PATTERN.search(symbol) is not None


def select_universe(
    tickers: Iterable[TickerSnapshot],
    *,
    quote_asset: str = "USDT",
    min_volume: float = 1_000_000,
    min_price_change: float = 1.5,
    top_n: int = 50,
) -> List[TickerSnapshot]:
    """
    Keep quote-asset pairs that are not leveraged tokens, trade more than
    `min_volume` (quote) and moved more than `min_price_change` percent in
    either direction; sort by quote volume descending and cap at `top_n`.
    """
    qualified = [
        t for t in tickers
        if t.symbol.endswith(quote_asset)
        and not is_leveraged_token(t.symbol)
        and t.quote_volume > min_volume
        and abs(t.price_change_percent) > min_price_change
    ]
    qualified.sort(key=lambda t: t.quote_volume, reverse=True)
    return qualified[: max(0, int(top_n))]
