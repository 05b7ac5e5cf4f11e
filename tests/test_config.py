"""Unit tests for configuration (pingcheck.config)."""
import json

import pytest

from pingcheck.config import (
    DEFAULT_COUNT,
    DEFAULT_MAX_LATENCY_MS,
    ProbeConfig,
    get_default_config,
    load_config,
)


def test_defaults():
    cfg = ProbeConfig(target="example.org")
    assert cfg.count == DEFAULT_COUNT == 30
    assert cfg.interval_ms == 100
    assert cfg.timeout_ms == 1000
    assert cfg.ttl == 64
    assert cfg.max_loss == 5.0
    assert cfg.max_latency_ms == DEFAULT_MAX_LATENCY_MS == 800
    assert cfg.quiet is False
    assert cfg.display_name == "example.org"
    assert not cfg.endless


def test_zero_count_is_endless():
    assert ProbeConfig(target="h", count=0).endless


def test_config_is_immutable():
    cfg = ProbeConfig(target="h")
    with pytest.raises(AttributeError):
        cfg.count = 3


@pytest.mark.parametrize(
    "kwargs",
    [
        {"target": ""},
        {"target": "h", "count": -1},
        {"target": "h", "interval_ms": -5},
        {"target": "h", "timeout_ms": -1},
        {"target": "h", "max_loss": 100.5},
        {"target": "h", "max_loss": -0.1},
        {"target": "h", "ttl": 0},
        {"target": "h", "ttl": 256},
    ],
)
def test_invalid_values_rejected(kwargs):
    with pytest.raises(ValueError):
        ProbeConfig(**kwargs)


def test_load_config_missing_file(tmp_path):
    assert load_config(tmp_path / "absent.json") == get_default_config()


def test_load_config_merges_with_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"count": 5, "max_loss": 20.0, "bogus": 1}), encoding="utf-8")
    cfg = load_config(path)
    assert cfg["count"] == 5
    assert cfg["max_loss"] == 20.0
    assert cfg["ttl"] == 64
    assert "bogus" not in cfg


def test_load_config_invalid_json_falls_back(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_config(path) == get_default_config()
