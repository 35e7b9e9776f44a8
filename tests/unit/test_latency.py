"""Unit tests for latency derivation and classification."""

from __future__ import annotations

from proxyfleet.fleet.latency import (
    NOT_CONNECTED,
    LatencyQuality,
    classify_latency,
    derive_latency,
)
from proxyfleet.models.proxies import ProxyNode

URL = "https://www.gstatic.com/generate_204"
OTHER_URL = "https://cp.cloudflare.com/generate_204"


def _node(history=None, extra=None) -> ProxyNode:
    return ProxyNode(
        name="HK-01",
        type="Shadowsocks",
        history=[{"time": str(i), "delay": d} for i, d in enumerate(history or [])],
        extra={
            url: [{"time": str(i), "delay": d} for i, d in enumerate(delays)]
            for url, delays in (extra or {}).items()
        },
    )


class TestDeriveLatency:
    def test_no_measurements_is_not_connected(self):
        assert derive_latency(_node(), URL) == NOT_CONNECTED

    def test_prefers_url_specific_history(self):
        node = _node(history=[300], extra={URL: [50, 90]})
        assert derive_latency(node, URL) == 90

    def test_uses_last_default_sample_without_url_history(self):
        node = _node(history=[300, 120])
        assert derive_latency(node, URL) == 120

    def test_other_url_history_is_ignored(self):
        node = _node(history=[300], extra={OTHER_URL: [40]})
        assert derive_latency(node, URL) == 300

    def test_zero_url_sample_falls_back_to_history(self):
        node = _node(history=[210], extra={URL: [80, 0]})
        assert derive_latency(node, URL) == 210

    def test_empty_url_history_falls_back(self):
        node = _node(history=[210], extra={URL: []})
        assert derive_latency(node, URL) == 210

    def test_no_fallback_returns_not_connected(self):
        node = _node(history=[210])
        assert derive_latency(node, URL, fallback_to_default=False) == NOT_CONNECTED

    def test_no_fallback_still_uses_url_history(self):
        node = _node(history=[210], extra={URL: [70]})
        assert derive_latency(node, URL, fallback_to_default=False) == 70

    def test_last_default_sample_zero_is_not_connected(self):
        node = _node(history=[150, 0])
        assert derive_latency(node, URL) == NOT_CONNECTED


class TestClassifyLatency:
    def test_not_connected(self):
        assert classify_latency(NOT_CONNECTED, 200, 500) is LatencyQuality.NOT_CONNECTED
        assert classify_latency(None, 200, 500) is LatencyQuality.NOT_CONNECTED

    def test_low(self):
        assert classify_latency(1, 200, 500) is LatencyQuality.LOW
        assert classify_latency(200, 200, 500) is LatencyQuality.LOW

    def test_medium(self):
        assert classify_latency(201, 200, 500) is LatencyQuality.MEDIUM
        assert classify_latency(500, 200, 500) is LatencyQuality.MEDIUM

    def test_high(self):
        assert classify_latency(501, 200, 500) is LatencyQuality.HIGH
