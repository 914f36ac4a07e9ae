"""CLI tests with the live scan replaced."""

from __future__ import annotations

import json

import pytest

from market_scanner.api import server
from market_scanner.app import main as cli
from market_scanner.app.scanner import ScanOptions
from market_scanner.infrastructure.utils import config as config_module
from market_scanner.models.signal_models import ScanResult


def test_options_from_args():
    args = cli.build_parser().parse_args(
        ["scan", "--symbols", "BTCUSDT", "ETHUSDT", "--timeframes", "1h", "4h", "--top-n", "3", "--risk-level", "low"]
    )
    options = cli.options_from_args(args)
    assert options.symbols == ["BTCUSDT", "ETHUSDT"]
    assert options.timeframes == ["1h", "4h"]
    assert options.top_n == 3
    assert options.risk_level == "low"
    assert options.min_confidence is None


def test_scan_prints_json(monkeypatch, capsys):
    seen = {}

    async def fake_run_scan(config, options):
        seen["options"] = options
        return ScanResult(success=True, timestamp="now")

    monkeypatch.setattr(cli, "run_scan", fake_run_scan)
    monkeypatch.setattr(cli, "configure_logging", lambda *a, **kw: None)

    cli.main(["scan", "--min-confidence", "40"])

    out = json.loads(capsys.readouterr().out)
    assert out["success"] is True
    assert out["timestamp"] == "now"
    assert seen["options"].min_confidence == 40


def test_failed_scan_exits_nonzero(monkeypatch, capsys):
    async def fake_run_scan(config, options):
        return ScanResult(success=False, error="down", timestamp="now")

    monkeypatch.setattr(cli, "run_scan", fake_run_scan)
    monkeypatch.setattr(cli, "configure_logging", lambda *a, **kw: None)

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["scan"])

    assert exc_info.value.code == 1
    assert json.loads(capsys.readouterr().out)["error"] == "down"


@pytest.mark.asyncio
async def test_api_command_serves_with_given_config(tmp_path, monkeypatch):
    path = tmp_path / "custom.yaml"
    path.write_text("scanner:\n  top_n: 7\napi:\n  port: 9100\n", encoding="utf-8")
    monkeypatch.setattr(config_module, "_config", None)
    monkeypatch.setattr(cli, "configure_logging", lambda *a, **kw: None)
    served = {}
    monkeypatch.setattr(cli.uvicorn, "run", lambda app, **kw: served.update(app=app, **kw))

    cli.main(["api", "--config", str(path)])

    assert served["app"] == "market_scanner.api.server:app"
    assert served["port"] == 9100

    seen = {}

    async def fake_run_scan(config, options):
        seen["top_n"] = config.scanner.top_n
        return ScanResult(success=True, timestamp="now")

    monkeypatch.setattr(server, "run_scan", fake_run_scan)
    await server.get_scan_runner()(ScanOptions())
    assert seen["top_n"] == 7
