"""Binance WebSocket API client (request/response) using asyncio + websockets.

Features:
- Lazy connect on first request, reconnect on the next request after a drop
- MessageRouter: correlate request id -> response Future
- Per-request timeout; pending requests are rejected when the socket closes
- Market data helpers: ticker.24hr and klines, parsed into domain models
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List, Optional, Sequence

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed

from market_scanner.infrastructure.logging.logging import get_logger
from market_scanner.models.market_models import Candle, TickerSnapshot
from market_scanner.services.market.market_data import parse_klines, parse_tickers

JsonDict = Dict[str, Any]

MAX_KLINES_LIMIT = 1000

# ticker.24hr for every pair arrives as one frame, larger than the websockets 1 MiB default
DEFAULT_MAX_MESSAGE_BYTES = 32 * 1024 * 1024


class BinanceWSError(RuntimeError):
    def __init__(self, message: str, *, status: Optional[int] = None, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status
        self.code = code


class MessageRouter:
    def __init__(self) -> None:
        self._futures: Dict[int, asyncio.Future[JsonDict]] = {}
        self._lock = asyncio.Lock()

    async def register(self, request_id: int) -> asyncio.Future[JsonDict]:
        async with self._lock:
            fut: asyncio.Future[JsonDict] = asyncio.get_running_loop().create_future()
            self._futures[request_id] = fut
            return fut

    async def resolve(self, request_id: int, msg: JsonDict) -> None:
        async with self._lock:
            fut = self._futures.pop(request_id, None)
            if fut and not fut.done():
                fut.set_result(msg)

    async def discard(self, request_id: int) -> None:
        async with self._lock:
            self._futures.pop(request_id, None)

    async def reject_all(self, exc: BaseException) -> None:
        async with self._lock:
            for fut in self._futures.values():
                if not fut.done():
                    fut.set_exception(exc)
            self._futures.clear()

    @property
    def pending(self) -> int:
        return len(self._futures)


class BinanceWSClient:
    def __init__(
        self,
        websocket_url: str = "wss://ws-api.binance.com:443/ws-api/v3",
        *,
        request_timeout_sec: float = 10.0,
        connect_timeout_sec: float = 10.0,
        max_message_bytes: Optional[int] = DEFAULT_MAX_MESSAGE_BYTES,
    ) -> None:
        self._logger = get_logger("binance_ws")
        self._url = websocket_url
        self._request_timeout = request_timeout_sec
        self._connect_timeout = connect_timeout_sec
        self._max_message_bytes = max_message_bytes

        self._ws: Optional[ClientConnection] = None
        self._router = MessageRouter()
        self._connect_lock = asyncio.Lock()
        self._reader_task: Optional[asyncio.Task[None]] = None

        self._request_id = 0

    @property
    def is_connected(self) -> bool:
        return self._ws is not None and self._reader_task is not None and not self._reader_task.done()

    async def __aenter__(self) -> "BinanceWSClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def connect(self) -> None:
        async with self._connect_lock:
            if self.is_connected:
                return
            self._logger.info("ws_connect", url=self._url)
            try:
                self._ws = await connect(
                    self._url,
                    open_timeout=self._connect_timeout,
                    close_timeout=5,
                    max_size=self._max_message_bytes,
                    max_queue=256,
                )
            except (OSError, asyncio.TimeoutError) as e:
                self._ws = None
                raise BinanceWSError(f"Connect failed: {e}") from e
            self._reader_task = asyncio.create_task(self._reader_loop(self._ws))

    async def close(self) -> None:
        await self._router.reject_all(BinanceWSError("Disconnected"))

        if self._reader_task:
            self._reader_task.cancel()
            self._reader_task = None

        if self._ws:
            try:
                await self._ws.close()
            except ConnectionClosed:
                pass
            self._ws = None

    def _next_request_id(self) -> int:
        self._request_id += 1
        return self._request_id

    async def request(self, method: str, params: Optional[JsonDict] = None) -> Any:
        """Send one API request and return its `result`; non-200 statuses raise BinanceWSError."""
        await self.connect()
        ws = self._ws
        if ws is None:
            raise BinanceWSError("WebSocket not open")

        request_id = self._next_request_id()
        payload: JsonDict = {"id": request_id, "method": method}
        if params:
            payload["params"] = params

        fut = await self._router.register(request_id)
        try:
            await ws.send(json.dumps(payload))
            resp = await asyncio.wait_for(fut, timeout=self._request_timeout)
        except asyncio.TimeoutError as e:
            raise BinanceWSError(f"Request timeout method={method} id={request_id}") from e
        except ConnectionClosed as e:
            raise BinanceWSError(f"Connection closed during {method}") from e
        finally:
            await self._router.discard(request_id)

        status = resp.get("status")
        if status != 200:
            error = resp.get("error") or {}
            raise BinanceWSError(
                f"Binance API error on {method}: status={status} msg={error.get('msg', 'unknown')}",
                status=status,
                code=error.get("code"),
            )
        return resp.get("result")

    async def _reader_loop(self, ws: ClientConnection) -> None:
        try:
            async for raw in ws:
                msg = json.loads(raw)
                request_id = msg.get("id")
                if isinstance(request_id, int):
                    await self._router.resolve(request_id, msg)
                else:
                    self._logger.debug("ws_unrouted_message", status=msg.get("status"))
        except ConnectionClosed as e:
            self._logger.warning("ws_connection_closed", code=e.rcvd.code if e.rcvd else None)
        except json.JSONDecodeError as e:
            self._logger.error("reader_loop_error", error=str(e))
        finally:
            await self._router.reject_all(BinanceWSError("Disconnected"))
            if self._ws is ws:
                self._ws = None

    # --------- Market data (TickerSource / CandleSource) ---------
    async def fetch_tickers(self, symbols: Optional[Sequence[str]] = None) -> List[TickerSnapshot]:
        """
        Binance rejects a whole `symbols` request when one symbol is unknown (-1121),
        so the full listing is fetched and explicit symbols are picked locally.
        """
        tickers = parse_tickers(await self.request("ticker.24hr"))
        if symbols:
            by_symbol = {t.symbol: t for t in tickers}
            wanted = [s.upper() for s in symbols]
            unknown = [s for s in wanted if s not in by_symbol]
            if unknown:
                self._logger.warning("unknown_symbols_dropped", symbols=unknown)
            tickers = [by_symbol[s] for s in wanted if s in by_symbol]
        self._logger.debug("tickers_loaded", requested=len(symbols) if symbols else "all", count=len(tickers))
        return tickers

    async def fetch_candles(self, symbol: str, timeframe: str, limit: int) -> List[Candle]:
        result = await self.request(
            "klines",
            {"symbol": symbol.upper(), "interval": timeframe, "limit": min(int(limit), MAX_KLINES_LIMIT)},
        )
        return parse_klines(result or [])
