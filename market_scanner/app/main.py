"""Entrypoint.

Usage:
  python -m market_scanner.app.main scan                       # one scan, JSON to stdout
  python -m market_scanner.app.main scan --symbols BTCUSDT ETHUSDT --timeframes 15m 1h 4h
  python -m market_scanner.app.main api                        # run FastAPI server
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

import uvicorn

from market_scanner.app.scanner import ScanOptions, run_scan
from market_scanner.infrastructure.logging.logging import configure_logging
from market_scanner.infrastructure.utils.config import reload_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser("crypto-market-scanner")
    parser.add_argument("command", choices=["scan", "api"], help="What to run")
    parser.add_argument("--config", type=Path, default=None, help="YAML config path")
    parser.add_argument("--symbols", nargs="+", default=None, help="Explicit symbols (skips discovery)")
    parser.add_argument("--timeframes", nargs="+", default=None)
    parser.add_argument("--min-volume", type=float, default=None)
    parser.add_argument("--min-price-change", type=float, default=None)
    parser.add_argument("--top-n", type=int, default=None)
    parser.add_argument("--min-confidence", type=int, default=None)
    parser.add_argument("--risk-level", choices=["low", "medium", "high"], default=None)
    return parser


def options_from_args(args: argparse.Namespace) -> ScanOptions:
    return ScanOptions(
        symbols=args.symbols,
        timeframes=args.timeframes,
        min_volume=args.min_volume,
        min_price_change=args.min_price_change,
        top_n=args.top_n,
        min_confidence=args.min_confidence,
        risk_level=args.risk_level,
    )


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    # primes the process-wide config so the API module, imported later by uvicorn, sees --config
    config = reload_config(args.config)
    configure_logging(config.log_level, json_logs=config.json_logs)

    if args.command == "scan":
        result = asyncio.run(run_scan(config, options_from_args(args)))
        json.dump(result.to_dict(), sys.stdout, indent=2)
        sys.stdout.write("\n")
        if not result.success:
            sys.exit(1)
        return

    if args.command == "api":
        uvicorn.run("market_scanner.api.server:app", host=config.api.host, port=config.api.port, reload=False)
        return


if __name__ == "__main__":
    main()
