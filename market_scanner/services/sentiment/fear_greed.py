"""Fear & Greed Index (alternative.me) gauge over aiohttp."""

from __future__ import annotations

from typing import Any, Optional

import aiohttp

from market_scanner.infrastructure.logging.logging import get_logger
from market_scanner.services.market.market_data import SentimentGauge

NEUTRAL_INDEX = 50

log = get_logger("fear_greed")


class FearGreedError(RuntimeError):
    pass


def classify_index(index: int) -> str:
    if index <= 20:
        return "Extreme Fear"
    if index <= 40:
        return "Fear"
    if index >= 80:
        return "Extreme Greed"
    if index >= 60:
        return "Greed"
    return "Neutral"


def parse_fear_greed(payload: Any) -> int:
    """{"data": [{"value": "23", ...}]} -> 23, clamped to [0, 100]."""
    try:
        value = int(payload["data"][0]["value"])
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise FearGreedError(f"Unexpected Fear & Greed payload: {e!r}") from e
    return max(0, min(100, value))


class FearGreedClient:
    def __init__(
        self,
        url: str = "https://api.alternative.me/fng/?limit=1",
        *,
        timeout_sec: float = 10.0,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._url = url
        self._timeout = aiohttp.ClientTimeout(total=timeout_sec)
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "FearGreedClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def fetch_index(self) -> int:
        """Raises FearGreedError on HTTP/transport/payload errors."""
        session = await self._get_session()
        try:
            async with session.get(self._url) as response:
                if response.status >= 400:
                    raise FearGreedError(f"Fear & Greed API error: {response.status}")
                payload = await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise FearGreedError(f"Connection error: {e}") from e
        return parse_fear_greed(payload)


async def read_sentiment(gauge: SentimentGauge, default: int = NEUTRAL_INDEX) -> int:
    """Gauge value, or `default` when the gauge fails for any reason."""
    try:
        return int(await gauge.fetch_index())
    except Exception as e:
        log.warning("sentiment_fallback", error=str(e), default=default)
        return default
