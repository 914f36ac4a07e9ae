"""Market scan: universe -> sentiment -> per-symbol/per-timeframe analysis -> ranked opportunities.

One scan is a batch computation. Symbols fan out as independent tasks, each
fanning out per timeframe; outbound candle requests share one semaphore.
Failure policy:
- ticker universe failure: the whole scan fails (success=False envelope)
- candle failure / short series for one timeframe: no signal for that timeframe
- sentiment failure: neutral index
"""

from __future__ import annotations

import asyncio
import random
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional

from market_scanner.infrastructure.binance.binance_ws_client import BinanceWSClient
from market_scanner.infrastructure.logging.logging import bind_scan_context, clear_scan_context, get_logger
from market_scanner.infrastructure.utils.config import ScannerAppConfig, ScannerConfig, validate_timeframe_list
from market_scanner.models.market_models import Candle, TickerSnapshot
from market_scanner.models.signal_models import MarketOpportunity, ScanResult, ScanStatistics, TimeframeSignal
from market_scanner.services.market.indicators import MIN_CANDLES, analyze_market
from market_scanner.services.market.market_data import CandleSource, SentimentGauge, TickerSource
from market_scanner.services.market.multi_timeframe import MultiTimeframeRanker, sort_opportunities
from market_scanner.services.market.symbol_universe import select_universe
from market_scanner.services.risk.rank_filter import allowed_ranks, filter_by_confidence, filter_by_risk_level
from market_scanner.services.sentiment.fear_greed import NEUTRAL_INDEX, FearGreedClient, classify_index, read_sentiment
from market_scanner.services.strategy.signal_scorer import generate_signal


@dataclass(frozen=True)
class ScanOptions:
    """Caller-supplied overrides; None means "use the configured default"."""
    symbols: Optional[List[str]] = None
    timeframes: Optional[List[str]] = None
    min_volume: Optional[float] = None
    min_price_change: Optional[float] = None
    top_n: Optional[int] = None
    min_confidence: Optional[int] = None
    risk_level: Optional[str] = None     # "low" | "medium" | "high"


def _utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class MarketScanner:
    def __init__(
        self,
        ticker_source: TickerSource,
        candle_source: CandleSource,
        sentiment_gauge: SentimentGauge,
        config: Optional[ScannerConfig] = None,
        *,
        neutral_sentiment: int = NEUTRAL_INDEX,
    ) -> None:
        self._log = get_logger("scanner")
        self._tickers = ticker_source
        self._candles = candle_source
        self._gauge = sentiment_gauge
        self._cfg = config or ScannerConfig()
        self._neutral_sentiment = neutral_sentiment

    # --------- Public ---------
    async def scan(self, options: Optional[ScanOptions] = None) -> ScanResult:
        options = options or ScanOptions()
        timeframes = validate_timeframe_list(options.timeframes) or list(self._cfg.timeframes)
        if options.risk_level:
            allowed_ranks(options.risk_level)  # reject unknown levels before any network call

        started = time.perf_counter()
        bind_scan_context()
        try:
            try:
                universe = await self._load_universe(options)
            except Exception as e:
                self._log.error("scan_failed", stage="universe", error=str(e))
                return self._failure(str(e) or type(e).__name__, started)

            sentiment = await read_sentiment(self._gauge, default=self._neutral_sentiment)
            self._log.info(
                "scan_started",
                symbols=len(universe),
                timeframes=timeframes,
                sentiment=sentiment,
                sentiment_category=classify_index(sentiment),
            )

            ranker = MultiTimeframeRanker(
                timeframes,
                gold_timeframe=self._cfg.gold_timeframe,
                silver_timeframe=self._cfg.silver_timeframe,
                quote_asset=self._cfg.quote_asset,
            )
            semaphore = asyncio.Semaphore(self._cfg.max_concurrency)

            results = await asyncio.gather(
                *(self._process_symbol(t, ranker, sentiment, semaphore) for t in universe)
            )
            opportunities = sort_opportunities(o for o in results if o is not None)

            min_confidence = options.min_confidence if options.min_confidence is not None else self._cfg.min_confidence
            opportunities = filter_by_confidence(opportunities, min_confidence)
            opportunities = filter_by_risk_level(opportunities, options.risk_level)

            duration_ms = self._elapsed_ms(started)
            stats = ScanStatistics.from_opportunities(
                opportunities,
                total_processed=len(universe),
                scan_duration_ms=duration_ms,
                sentiment_index_used=sentiment,
            )
            self._log.info(
                "scan_completed",
                duration_ms=duration_ms,
                opportunities=stats.total_opportunities,
                platinum=stats.platinum_count,
                gold=stats.gold_count,
                silver=stats.silver_count,
            )
            return ScanResult(success=True, opportunities=opportunities, statistics=stats, timestamp=_utc_iso())
        finally:
            clear_scan_context()

    # --------- Stages ---------
    async def _load_universe(self, options: ScanOptions) -> List[TickerSnapshot]:
        if options.symbols:
            symbols = [s.strip().upper() for s in options.symbols if s and s.strip()]
            tickers = await self._tickers.fetch_tickers(symbols)
            self._log.info("universe_explicit", requested=len(symbols), found=len(tickers))
            return tickers

        all_tickers = await self._tickers.fetch_tickers(None)
        universe = select_universe(
            all_tickers,
            quote_asset=self._cfg.quote_asset,
            min_volume=options.min_volume if options.min_volume is not None else self._cfg.min_volume,
            min_price_change=(
                options.min_price_change if options.min_price_change is not None else self._cfg.min_price_change
            ),
            top_n=options.top_n if options.top_n is not None else self._cfg.top_n,
        )
        self._log.info("universe_discovered", listed=len(all_tickers), qualified=len(universe))
        return universe

    async def _process_symbol(
        self,
        ticker: TickerSnapshot,
        ranker: MultiTimeframeRanker,
        sentiment: int,
        semaphore: asyncio.Semaphore,
    ) -> Optional[MarketOpportunity]:
        timeframes = ranker.timeframes
        signals = await asyncio.gather(
            *(self._analyze_timeframe(ticker, tf, sentiment, semaphore) for tf in timeframes)
        )
        by_tf: Dict[str, TimeframeSignal] = {tf: s for tf, s in zip(timeframes, signals) if s is not None}

        opportunity = ranker.rank(ticker, by_tf)
        if opportunity is not None:
            self._log.debug(
                "opportunity",
                symbol=ticker.symbol,
                rank=opportunity.rank,
                action=opportunity.trading_action,
                strength=opportunity.strength_score,
            )
        return opportunity

    async def _analyze_timeframe(
        self,
        ticker: TickerSnapshot,
        timeframe: str,
        sentiment: int,
        semaphore: asyncio.Semaphore,
    ) -> Optional[TimeframeSignal]:
        candles = await self._fetch_candles_with_retry(ticker.symbol, timeframe, semaphore)

        if len(candles) < MIN_CANDLES:
            self._log.debug("series_too_short", symbol=ticker.symbol, timeframe=timeframe, candles=len(candles))
            return None

        snapshot = analyze_market(candles, ticker.symbol, timeframe)
        if snapshot is None:
            return None

        history = [c.to_price_point() for c in candles[-self._cfg.price_history_length:]]
        return generate_signal(snapshot, sentiment, price=float(ticker.last_price), price_history=history)

    async def _fetch_candles_with_retry(
        self, symbol: str, timeframe: str, semaphore: asyncio.Semaphore
    ) -> List[Candle]:
        """Bounded retry with exponential backoff + jitter; exhausted retries mean no data.

        The semaphore is held per attempt only, never across a backoff sleep.
        """
        attempts = 1 + self._cfg.candle_fetch_retries
        backoff = self._cfg.retry_backoff_sec
        for attempt in range(1, attempts + 1):
            try:
                async with semaphore:
                    return list(await self._candles.fetch_candles(symbol, timeframe, self._cfg.candle_limit))
            except Exception as e:
                if attempt >= attempts:
                    self._log.warning(
                        "candle_fetch_failed", symbol=symbol, timeframe=timeframe, attempts=attempts, error=str(e)
                    )
                    return []
                jitter = random.random() * 0.3 * backoff
                sleep_for = min(self._cfg.max_retry_backoff_sec, backoff + jitter)
                self._log.debug(
                    "candle_fetch_retry", symbol=symbol, timeframe=timeframe, attempt=attempt, seconds=sleep_for
                )
                await asyncio.sleep(sleep_for)
                backoff = min(self._cfg.max_retry_backoff_sec, backoff * 2)
        return []

    # --------- Helpers ---------
    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.perf_counter() - started) * 1000)

    def _failure(self, message: str, started: float) -> ScanResult:
        return ScanResult(
            success=False,
            error=message,
            opportunities=[],
            statistics=ScanStatistics(
                scan_duration_ms=self._elapsed_ms(started),
                sentiment_index_used=self._neutral_sentiment,
            ),
            timestamp=_utc_iso(),
        )


async def run_scan(config: ScannerAppConfig, options: Optional[ScanOptions] = None) -> ScanResult:
    """One scan against the live Binance WebSocket API and Fear & Greed gauge."""
    market = BinanceWSClient(
        config.binance.ws_url,
        request_timeout_sec=config.binance.request_timeout_sec,
        connect_timeout_sec=config.binance.connect_timeout_sec,
        max_message_bytes=config.binance.max_message_bytes,
    )
    gauge = FearGreedClient(config.sentiment.url, timeout_sec=config.sentiment.timeout_sec)
    async with market, gauge:
        scanner = MarketScanner(
            market,
            market,
            gauge,
            config.scanner,
            neutral_sentiment=config.sentiment.neutral_index,
        )
        return await scanner.scan(options)

