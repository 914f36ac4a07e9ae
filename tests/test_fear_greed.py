"""Fear & Greed gauge tests."""

from __future__ import annotations

from unittest.mock import AsyncMock

import aiohttp
import pytest

from market_scanner.services.sentiment.fear_greed import (
    FearGreedClient,
    FearGreedError,
    classify_index,
    parse_fear_greed,
    read_sentiment,
)


class StubResponse:
    def __init__(self, status=200, payload=None):
        self.status = status
        self._payload = payload

    async def json(self, content_type=None):
        return self._payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False


class StubSession:
    closed = False

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.urls = []

    def get(self, url):
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.mark.parametrize(
    "index,category",
    [(0, "Extreme Fear"), (20, "Extreme Fear"), (21, "Fear"), (40, "Fear"), (41, "Neutral"),
     (59, "Neutral"), (60, "Greed"), (79, "Greed"), (80, "Extreme Greed"), (100, "Extreme Greed")],
)
def test_classify_index(index, category):
    assert classify_index(index) == category


def test_parse_payload():
    assert parse_fear_greed({"data": [{"value": "23", "value_classification": "Extreme Fear"}]}) == 23
    assert parse_fear_greed({"data": [{"value": "140"}]}) == 100


@pytest.mark.parametrize("payload", [{}, {"data": []}, {"data": [{"value": "n/a"}]}, None])
def test_parse_bad_payload(payload):
    with pytest.raises(FearGreedError):
        parse_fear_greed(payload)


@pytest.mark.asyncio
async def test_fetch_index():
    session = StubSession(StubResponse(payload={"data": [{"value": "72"}]}))
    client = FearGreedClient("https://fng.test/?limit=1", session=session)

    assert await client.fetch_index() == 72
    assert session.urls == ["https://fng.test/?limit=1"]


@pytest.mark.asyncio
async def test_http_error_status():
    client = FearGreedClient(session=StubSession(StubResponse(status=503)))
    with pytest.raises(FearGreedError, match="503"):
        await client.fetch_index()


@pytest.mark.asyncio
async def test_transport_error_is_wrapped():
    client = FearGreedClient(session=StubSession(error=aiohttp.ClientConnectionError("down")))
    with pytest.raises(FearGreedError, match="Connection error"):
        await client.fetch_index()


@pytest.mark.asyncio
async def test_read_sentiment_falls_back():
    gauge = AsyncMock()
    gauge.fetch_index.side_effect = FearGreedError("boom")
    assert await read_sentiment(gauge) == 50
    assert await read_sentiment(gauge, default=45) == 45

    gauge.fetch_index.side_effect = None
    gauge.fetch_index.return_value = 12
    assert await read_sentiment(gauge) == 12
