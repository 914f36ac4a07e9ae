"""Configuration management for the market scanner.

Rules:
- YAML provides defaults (config/default.yaml); missing YAML means built-in defaults.
- .env / environment variables override YAML for the keys applied in from_yaml().
- We do NOT inject YAML into os.environ.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Binance kline intervals
VALID_TIMEFRAMES = {
    "1m", "3m", "5m", "15m", "30m",
    "1h", "2h", "4h", "6h", "8h", "12h",
    "1d", "3d", "1w", "1M",
}


def validate_timeframe_list(v: Optional[List[str]]) -> Optional[List[str]]:
    if v is None:
        return None
    out = [str(x).strip() for x in v if x and str(x).strip()]
    unknown = [tf for tf in out if tf not in VALID_TIMEFRAMES]
    if unknown:
        raise ValueError(f"Unknown timeframes: {unknown}")
    if len(set(out)) != len(out):
        raise ValueError("timeframes must not repeat")
    return out


class BinanceConfig(BaseModel):
    """Binance WebSocket API (market data, no auth)."""

    ws_url: str = Field(default="wss://ws-api.binance.com:443/ws-api/v3")
    request_timeout_sec: float = Field(default=10.0, gt=0, le=120)
    connect_timeout_sec: float = Field(default=10.0, gt=0, le=120)
    max_message_bytes: int = Field(default=32 * 1024 * 1024, ge=1024 * 1024)

    @field_validator("ws_url")
    @classmethod
    def validate_ws_url(cls, v: str) -> str:
        if not str(v).startswith(("ws://", "wss://")):
            raise ValueError("ws_url must start with ws:// or wss://")
        return str(v)


class SentimentConfig(BaseModel):
    """Fear & Greed gauge. Any failure falls back to neutral_index."""

    url: str = Field(default="https://api.alternative.me/fng/?limit=1")
    timeout_sec: float = Field(default=10.0, gt=0, le=120)
    neutral_index: int = Field(default=50, ge=0, le=100)


class ScannerConfig(BaseModel):
    """Defaults for a scan; every field can be overridden per call via ScanOptions."""

    timeframes: List[str] = Field(default_factory=lambda: ["15m", "1h", "4h"])
    gold_timeframe: str = Field(default="1h")
    silver_timeframe: str = Field(default="15m")
    quote_asset: str = Field(default="USDT", min_length=2)

    min_volume: float = Field(default=1_000_000, ge=0)
    min_price_change: float = Field(default=1.5, ge=0)
    top_n: int = Field(default=50, ge=1, le=500)
    min_confidence: int = Field(default=0, ge=0, le=100)

    candle_limit: int = Field(default=100, ge=50, le=1000)
    price_history_length: int = Field(default=50, ge=1, le=1000)

    max_concurrency: int = Field(default=10, ge=1, le=200)
    candle_fetch_retries: int = Field(default=1, ge=0, le=5)
    retry_backoff_sec: float = Field(default=0.5, ge=0, le=30)
    max_retry_backoff_sec: float = Field(default=5.0, ge=0, le=60)

    @field_validator("timeframes")
    @classmethod
    def validate_timeframes(cls, v: List[str]) -> List[str]:
        out = validate_timeframe_list(v)
        if not out:
            raise ValueError("timeframes must not be empty")
        return out

    @field_validator("gold_timeframe", "silver_timeframe")
    @classmethod
    def validate_anchor_timeframe(cls, v: str) -> str:
        if v not in VALID_TIMEFRAMES:
            raise ValueError(f"Unknown timeframe: {v}")
        return v


class APIConfig(BaseModel):
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000, ge=1024, le=65535)
    cors_origins: List[str] = Field(default=["http://localhost:3000", "http://localhost:5173"])


class ScannerAppConfig(BaseSettings):
    """Main configuration class.

    YAML is parsed as the base config, then explicit env overrides are re-applied.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    log_level: str = Field(default="INFO")
    json_logs: bool = Field(default=True)

    binance: BinanceConfig = Field(default_factory=BinanceConfig)
    sentiment: SentimentConfig = Field(default_factory=SentimentConfig)
    scanner: ScannerConfig = Field(default_factory=ScannerConfig)
    api: APIConfig = Field(default_factory=APIConfig)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if str(v).upper() not in valid:
            raise ValueError(f"Log level must be one of: {sorted(valid)}")
        return str(v).upper()

    @classmethod
    def from_yaml(cls, yaml_path: Optional[Path]) -> "ScannerAppConfig":
        """Load configuration from YAML (or defaults) and apply env overrides.

        Steps:
        1) Parse YAML -> base config dict ({} when no file)
        2) Validate into model
        3) Apply env overrides (LOG_LEVEL, BINANCE__WS_URL, SCANNER__TOP_N, ...) on top
        """
        data: dict = {}
        if yaml_path is not None:
            if not yaml_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {yaml_path}")
            try:
                with open(yaml_path, "r", encoding="utf-8") as f:
                    data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in configuration file: {e}")

        try:
            base = cls.model_validate(data)
        except ValidationError as e:
            raise ValueError(f"Configuration validation error: {e}")

        if os.getenv("LOG_LEVEL"):
            base.log_level = os.getenv("LOG_LEVEL", base.log_level).upper()

        if os.getenv("BINANCE__WS_URL"):
            base.binance.ws_url = os.getenv("BINANCE__WS_URL", base.binance.ws_url)

        if os.getenv("SENTIMENT__URL"):
            base.sentiment.url = os.getenv("SENTIMENT__URL", base.sentiment.url)

        try:
            if os.getenv("SCANNER__TOP_N"):
                base.scanner.top_n = int(os.getenv("SCANNER__TOP_N", base.scanner.top_n))
            if os.getenv("SCANNER__MAX_CONCURRENCY"):
                base.scanner.max_concurrency = int(os.getenv("SCANNER__MAX_CONCURRENCY", base.scanner.max_concurrency))
        except ValueError as e:
            raise ValueError(f"Invalid numeric environment override: {e}")

        json_logs_env = os.getenv("JSON_LOGS")
        if json_logs_env is not None:
            base.json_logs = str(json_logs_env).lower() in ("1", "true", "yes")

        return base


def load_config(config_path: Optional[Path] = None) -> ScannerAppConfig:
    """Load configuration from YAML + .env (env wins for the keys above)."""

    load_dotenv(dotenv_path=Path(".env"))

    if config_path is None:
        possible_paths = [Path("config/default.yaml"), Path("config/config.yaml"), Path("config.yaml")]
        config_path = next((p for p in possible_paths if p.exists()), None)

    return ScannerAppConfig.from_yaml(config_path)


# Global config instance
_config: Optional[ScannerAppConfig] = None


def get_config() -> ScannerAppConfig:
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config(config_path: Optional[Path] = None) -> ScannerAppConfig:
    global _config
    _config = load_config(config_path)
    return _config
