import pytest

from z21scan.config import ScanConfig, load_config, resolve_output
from z21scan.errors import InvalidOption, InvalidOutputFormat
from z21scan.logging_setup import get_logger, setup_logging


def test_defaults():
    cfg = ScanConfig()
    assert cfg.port == 21105
    assert cfg.concurrency == 200
    assert cfg.timeout == 2.0
    assert cfg.output == "normal"
    assert not cfg.verbose


def test_is_immutable():
    cfg = ScanConfig()
    with pytest.raises(AttributeError):
        cfg.port = 1


def test_invalid_output():
    with pytest.raises(InvalidOutputFormat, match="yaml"):
        ScanConfig(output="yaml")


@pytest.mark.parametrize("kwargs", [{"port": 0}, {"port": 70000}, {"concurrency": 0}, {"timeout": 0},
    {"timeout": float("nan")}, {"timeout": float("inf")}, {"timeout": -1.5},
])
def test_invalid_options(kwargs):
    with pytest.raises(InvalidOption):
        ScanConfig(**kwargs)


@pytest.mark.parametrize("output,quiet,verbose,expected", [
    ("json", False, False, "json"),
    ("json", True, False, "short"),
    ("json", False, True, "verbose"),
    ("normal", True, True, "verbose"),
])
def test_resolve_output(output, quiet, verbose, expected):
    assert resolve_output(output, quiet=quiet, verbose=verbose) == expected


def test_otel_disabled_by_default(monkeypatch):
    monkeypatch.delenv("OTEL_ENABLED", raising=False)
    monkeypatch.delenv("OTEL_SERVICE_NAME", raising=False)
    cfg = load_config()
    assert cfg.otel.enabled is False
    assert cfg.otel.service_name == "z21scan"


def test_otel_from_env(monkeypatch):
    monkeypatch.setenv("OTEL_ENABLED", "yes")
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://collector:4317")
    cfg = load_config()
    assert cfg.otel.enabled is True
    assert cfg.otel.endpoint == "http://collector:4317"


def test_logging_goes_to_stderr(capsys):
    setup_logging("INFO")
    try:
        get_logger("z21scan.test").info("scan_start", hosts=2)
    finally:
        setup_logging("WARNING")
    captured = capsys.readouterr()
    assert captured.out == ""
    assert '"event": "scan_start"' in captured.err
    assert '"hosts": 2' in captured.err


def test_logging_filters_below_level(capsys):
    setup_logging("WARNING")
    get_logger("z21scan.test").info("hidden")
    assert capsys.readouterr().err == ""
