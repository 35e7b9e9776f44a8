"""Public models for the proxy fleet service."""

from proxyfleet.models.proxies import (
    GLOBAL_GROUP,
    Connection,
    LatencySample,
    NodeInfo,
    ProxyNode,
    ProxyProvider,
    Snapshot,
)
from proxyfleet.models.requests import SelectProxyRequest
from proxyfleet.models.responses import ApiResponse

__all__ = [
    "GLOBAL_GROUP",
    "ApiResponse",
    "Connection",
    "LatencySample",
    "NodeInfo",
    "ProxyNode",
    "ProxyProvider",
    "SelectProxyRequest",
    "Snapshot",
]
