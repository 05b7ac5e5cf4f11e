"""Unit tests for verdict and result record (pingcheck.verdict)."""
import json

import pytest

from pingcheck.config import ProbeConfig
from pingcheck.stats import StatsSnapshot
from pingcheck.verdict import build_result, failure_result, is_success


def test_all_replies_within_thresholds_pass():
    cfg = ProbeConfig(target="10.0.0.1", count=5, max_loss=0, max_latency_ms=100)
    r = build_result(StatsSnapshot(sent=5, received=5, total_rtt_ns=55000000), cfg)
    assert r.success is True
    assert r.error is None
    assert r.data.latency == 11
    assert r.data.packetloss == 0.0


def test_loss_equal_to_threshold_passes():
    cfg = ProbeConfig(target="10.0.0.1", count=4, max_loss=50, max_latency_ms=100)
    r = build_result(StatsSnapshot(sent=4, received=2, total_rtt_ns=50000000), cfg)
    assert r.success is True
    assert r.data.packetloss == 50.0
    assert r.data.latency == 25


def test_latency_equal_to_threshold_passes():
    cfg = ProbeConfig(target="10.0.0.1", max_latency_ms=25)
    r = build_result(StatsSnapshot(sent=1, received=1, total_rtt_ns=25900000), cfg)
    assert r.data.latency == 25
    assert r.success is True


def test_latency_over_threshold_fails():
    cfg = ProbeConfig(target="10.0.0.1", max_latency_ms=20)
    r = build_result(StatsSnapshot(sent=1, received=1, total_rtt_ns=21000000), cfg)
    assert r.success is False
    assert r.data is not None


def test_loss_over_threshold_fails():
    cfg = ProbeConfig(target="10.0.0.1", max_loss=5.0)
    r = build_result(StatsSnapshot(sent=10, received=9, total_rtt_ns=90000000), cfg)
    assert r.data.packetloss == pytest.approx(10.0)
    assert r.success is False


@pytest.mark.parametrize("max_loss", [0.0, 50.0, 100.0])
def test_zero_average_never_passes(max_loss):
    cfg = ProbeConfig(target="10.0.0.1", max_loss=max_loss, max_latency_ms=800)
    r = build_result(StatsSnapshot(sent=3, received=0, total_rtt_ns=0), cfg)
    assert r.data.latency == 0
    assert r.success is False
    assert is_success(0.0, 0, cfg) is False


def test_build_result_is_pure():
    cfg = ProbeConfig(target="10.0.0.1")
    snap = StatsSnapshot(sent=7, received=6, total_rtt_ns=70700000)
    assert build_result(snap, cfg) == build_result(snap, cfg)
    assert build_result(snap, cfg).to_json() == build_result(snap, cfg).to_json()


def test_servername_defaults_to_target():
    r = build_result(StatsSnapshot(), ProbeConfig(target="example.org"))
    assert r.servername == "example.org"
    r = build_result(StatsSnapshot(), ProbeConfig(target="example.org", server_name="edge-1"))
    assert r.servername == "edge-1"


def test_record_shape():
    cfg = ProbeConfig(target="10.0.0.1", server_name="db")
    out = json.loads(build_result(StatsSnapshot(sent=2, received=1, total_rtt_ns=8400000), cfg).to_json())
    assert out == {
        "checkname": "ping",
        "servername": "db",
        "resulttype": "site",
        "success": False,
        "error": None,
        "data": {
            "latency": 8,
            "packetloss": 50.0,
            "packets_sent": 2,
            "packets_received": 1,
        },
    }


def test_failure_record_has_error_and_no_data():
    out = json.loads(failure_result(ProbeConfig(target="nope.invalid"), "DNS resolution failed: x").to_json())
    assert out["success"] is False
    assert out["error"] == "DNS resolution failed: x"
    assert out["data"] is None
    assert out["servername"] == "nope.invalid"


def test_compact_json_is_single_line():
    r = build_result(StatsSnapshot(sent=1, received=1, total_rtt_ns=3000000), ProbeConfig(target="h"))
    assert "\n" not in r.to_json()
    assert "\n" in r.to_json(pretty=True)
