from __future__ import annotations

import argparse

import pytest

from ruuvi_exporter import main as cli
from ruuvi_exporter.errors import AdapterUnavailable, ScanTimeout


@pytest.mark.parametrize(
    "value, seconds",
    [
        ("300", 300),
        ("2.5", 2.5),
        ("90s", 90),
        ("5m", 300),
        ("1h30m", 5400),
        ("250ms", 0.25),
        ("1m30s", 90),
        ("0", 0),
    ],
)
def test_parse_duration(value: str, seconds: float) -> None:
    assert cli.parse_duration(value) == pytest.approx(seconds)


@pytest.mark.parametrize("value", ["", "5x", "m5", "5m garbage", "-5m", "nan", "inf"])
def test_parse_duration_rejects_garbage(value: str) -> None:
    with pytest.raises(argparse.ArgumentTypeError):
        cli.parse_duration(value)


def test_parse_addr() -> None:
    assert cli.parse_addr("127.0.0.1:8045") == ("127.0.0.1", 8045)
    assert cli.parse_addr(":9100") == ("0.0.0.0", 9100)
    assert cli.parse_addr("[::1]:9100") == ("::1", 9100)


@pytest.mark.parametrize("value", ["localhost", "localhost:http", "host:70000"])
def test_parse_addr_rejects_garbage(value: str) -> None:
    with pytest.raises(argparse.ArgumentTypeError):
        cli.parse_addr(value)


def test_parse_company_id() -> None:
    assert cli.parse_company_id("1177") == 1177
    assert cli.parse_company_id("0x0499") == 1177
    with pytest.raises(argparse.ArgumentTypeError):
        cli.parse_company_id("0x10000")
    with pytest.raises(argparse.ArgumentTypeError):
        cli.parse_company_id("ruuvi")


def test_arg_parser_defaults() -> None:
    args = cli.arg_parser([])

    assert args.measure_every == 300
    assert args.scan_timeout == 300
    assert args.addr == ("127.0.0.1", 8045)
    assert args.name == "Ruuvi"
    assert args.company_id == 1177
    assert args.debug_level == "INFO"


def test_arg_parser_overrides() -> None:
    args = cli.arg_parser(["-i", "1m", "-T", "20s", "-a", "0.0.0.0:9200", "-n", "Tag", "-D", "DEBUG"])

    assert args.measure_every == 60
    assert args.scan_timeout == 20
    assert args.addr == ("0.0.0.0", 9200)
    assert args.name == "Tag"
    assert args.debug_level == "DEBUG"


def test_arg_parser_zero_scan_timeout_waits_forever() -> None:
    args = cli.arg_parser(["--scan-timeout", "0"])

    assert args.scan_timeout is None


def test_arg_parser_rejects_zero_interval() -> None:
    with pytest.raises(SystemExit):
        cli.arg_parser(["--measure-every", "0"])


def test_build_scheduler_wires_collector(metrics) -> None:
    args = cli.arg_parser(["-i", "2m", "-n", "Tag", "-c", "0x0059"])

    scheduler = cli.build_scheduler(args, metrics)

    assert scheduler.interval == 120
    assert scheduler.metrics is metrics
    assert scheduler.collector.name_marker == "Tag"
    assert scheduler.collector.company_id == 0x0059
    assert scheduler.collector.timeout == 120


class _FailingScheduler:
    def __init__(self, error: Exception) -> None:
        self.error = error

    async def run(self) -> None:
        raise self.error


@pytest.mark.parametrize("error", [AdapterUnavailable("no adapter"), ScanTimeout("nothing heard")])
def test_main_exits_when_startup_fails(monkeypatch, error) -> None:
    served = []
    monkeypatch.setattr(cli, "serve_metrics", lambda metrics, host, port: served.append((host, port)))
    monkeypatch.setattr(cli, "build_scheduler", lambda args, metrics: _FailingScheduler(error))
    monkeypatch.setattr(cli, "log_init", lambda level: None)

    assert cli.main(["-a", "127.0.0.1:0"]) == 1
    assert served == [("127.0.0.1", 0)]
