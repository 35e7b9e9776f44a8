"""Latency derivation and quality classification.

A node can carry two kinds of measurement history: ``history`` (whatever URL
the engine last tested with) and ``extra[url]`` (one history per test URL).
``derive_latency`` prefers the history recorded for the configured test URL
and only falls back to the default history when asked to.
"""

from __future__ import annotations

from enum import Enum

from proxyfleet.models.proxies import ProxyNode

NOT_CONNECTED = 0


class LatencyQuality(str, Enum):
    """Coarse latency buckets used by observers for colouring and sorting."""

    NOT_CONNECTED = "not_connected"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def derive_latency(
    node: ProxyNode, test_url: str, fallback_to_default: bool = True
) -> int:
    """Return the latency in milliseconds for ``node``, or ``NOT_CONNECTED``.

    Zero delays count as "no measurement" and fall through to the next source.
    """
    samples = node.extra.get(test_url)
    if samples:
        delay = samples[-1].delay
        if delay and delay > 0:
            return delay

    if not fallback_to_default:
        return NOT_CONNECTED

    if not node.history:
        return NOT_CONNECTED
    return node.history[-1].delay or NOT_CONNECTED


def classify_latency(latency: int | None, medium_ms: int, high_ms: int) -> LatencyQuality:
    """Bucket a latency value against the medium and high thresholds."""
    if not latency or latency <= NOT_CONNECTED:
        return LatencyQuality.NOT_CONNECTED
    if latency > high_ms:
        return LatencyQuality.HIGH
    if latency > medium_ms:
        return LatencyQuality.MEDIUM
    return LatencyQuality.LOW
