# market_scanner/api/server.py
from __future__ import annotations

from typing import Awaitable, Callable, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from market_scanner.app.scanner import ScanOptions, run_scan
from market_scanner.infrastructure.logging.logging import get_logger
from market_scanner.infrastructure.utils.config import get_config
from market_scanner.models.signal_models import ScanResult

ScanRunner = Callable[[ScanOptions], Awaitable[ScanResult]]

log = get_logger("api")

config = get_config()

app = FastAPI(title="Crypto Market Scanner API", version="0.1.0")


# CORS (dashboards)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.api.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --------- Schemas ---------
class ScanRequest(BaseModel):
    """POST /scan body; camelCase like the GET query parameters."""

    model_config = ConfigDict(populate_by_name=True)

    symbols: Optional[List[str]] = None
    timeframes: Optional[List[str]] = None
    min_volume: Optional[float] = Field(default=None, alias="minVolume", ge=0)
    min_price_change: Optional[float] = Field(default=None, alias="minPriceChange", ge=0)
    top_n: Optional[int] = Field(default=None, alias="topN", ge=1, le=500)
    min_confidence: Optional[int] = Field(default=None, alias="minConfidence", ge=0, le=100)
    risk_level: Optional[str] = Field(default=None, alias="riskLevel")

    def to_options(self) -> ScanOptions:
        return ScanOptions(
            symbols=self.symbols,
            timeframes=self.timeframes,
            min_volume=self.min_volume,
            min_price_change=self.min_price_change,
            top_n=self.top_n,
            min_confidence=self.min_confidence,
            risk_level=self.risk_level,
        )


def split_csv(value: Optional[str]) -> Optional[List[str]]:
    if not value:
        return None
    items = [v.strip() for v in value.split(",") if v.strip()]
    return items or None


# --------- Dependencies ---------
def get_scan_runner() -> ScanRunner:
    async def _runner(options: ScanOptions) -> ScanResult:
        return await run_scan(get_config(), options)

    return _runner


async def _execute(options: ScanOptions, runner: ScanRunner) -> JSONResponse:
    try:
        result = await runner(options)
    except ValueError as e:
        # bad timeframe / risk level
        raise HTTPException(status_code=400, detail=str(e))

    if not result.success:
        log.warning("scan_failed_response", error=result.error)
        return JSONResponse(result.to_dict(), status_code=500)
    return JSONResponse(result.to_dict())


# --------- Routes ---------
@app.get("/health")
def health():
    return {"ok": True}


@app.get("/scan")
async def scan_get(
    symbols: Optional[str] = Query(default=None, description="Comma separated, e.g. BTCUSDT,ETHUSDT"),
    timeframes: Optional[str] = Query(default=None, description="Comma separated, e.g. 15m,1h,4h"),
    min_volume: Optional[float] = Query(default=None, alias="minVolume", ge=0),
    min_price_change: Optional[float] = Query(default=None, alias="minPriceChange", ge=0),
    top_n: Optional[int] = Query(default=None, alias="topN", ge=1, le=500),
    min_confidence: Optional[int] = Query(default=None, alias="minConfidence", ge=0, le=100),
    risk_level: Optional[str] = Query(default=None, alias="riskLevel"),
    runner: ScanRunner = Depends(get_scan_runner),
):
    options = ScanOptions(
        symbols=split_csv(symbols),
        timeframes=split_csv(timeframes),
        min_volume=min_volume,
        min_price_change=min_price_change,
        top_n=top_n,
        min_confidence=min_confidence,
        risk_level=risk_level,
    )
    return await _execute(options, runner)


@app.post("/scan")
async def scan_post(payload: ScanRequest, runner: ScanRunner = Depends(get_scan_runner)):
    return await _execute(payload.to_options(), runner)
