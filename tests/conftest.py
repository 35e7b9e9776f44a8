"""Shared fixtures for the proxy fleet test suite."""

from __future__ import annotations

import os
from unittest.mock import AsyncMock

import pytest

from proxyfleet.config.preferences import FleetPreferences
from proxyfleet.config.settings import FleetSettings
from proxyfleet.fleet.coordinator import FleetCoordinator
from proxyfleet.fleet.resolver import ChainResolver
from proxyfleet.fleet.store import FleetStore
from proxyfleet.integration.controller_client import ControllerClient
from proxyfleet.models.proxies import ProxyNode, ProxyProvider


# ---------------------------------------------------------------------------
# Keep the developer's FLEET_* environment out of the tests
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _clear_fleet_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.startswith("FLEET_"):
            monkeypatch.delenv(key, raising=False)


# ---------------------------------------------------------------------------
# Settings / preferences
# ---------------------------------------------------------------------------

TEST_URL = "https://www.gstatic.com/generate_204"


@pytest.fixture
def settings() -> FleetSettings:
    return FleetSettings(
        controller_url="http://controller.test:9090",
        controller_secret="test-secret",
        latency_test_url=TEST_URL,
        latency_test_timeout_ms=2000,
    )


@pytest.fixture
def preferences(settings: FleetSettings) -> FleetPreferences:
    return FleetPreferences.from_settings(settings)


# ---------------------------------------------------------------------------
# Engine payload fixture
# ---------------------------------------------------------------------------

@pytest.fixture
def engine_proxies() -> dict[str, ProxyNode]:
    """GLOBAL -> Proxy (selector) -> Auto (urltest) -> HK-01, plus DIRECT."""
    nodes = [
        ProxyNode(name="DIRECT", type="Direct"),
        ProxyNode(name="HK-01", type="Shadowsocks", udp=True,
                  history=[{"time": "t1", "delay": 120}]),
        ProxyNode(name="JP-01", type="Vmess", history=[{"time": "t1", "delay": 80}]),
        ProxyNode(name="Auto", type="URLTest", now="HK-01", all=["HK-01", "JP-01"]),
        ProxyNode(name="Proxy", type="Selector", now="Auto", all=["Auto", "HK-01", "JP-01", "DIRECT"]),
        ProxyNode(name="GLOBAL", type="Selector", now="Proxy", all=["Proxy", "Auto", "DIRECT"]),
    ]
    return {node.name: node for node in nodes}


@pytest.fixture
def engine_providers() -> dict[str, ProxyProvider]:
    providers = [
        ProxyProvider(
            name="default",
            vehicleType="Compatible",
            proxies=[ProxyNode(name="DIRECT", type="Direct")],
        ),
        ProxyProvider(
            name="subs",
            vehicleType="HTTP",
            proxies=[
                ProxyNode(name="HK-01", type="Shadowsocks", history=[{"time": "t2", "delay": 999}]),
                ProxyNode(name="SG-01", type="Trojan", history=[{"time": "t1", "delay": 150}]),
            ],
        ),
    ]
    return {provider.name: provider for provider in providers}


# ---------------------------------------------------------------------------
# Component fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def store() -> FleetStore:
    return FleetStore()


@pytest.fixture
def controller(
    engine_proxies: dict[str, ProxyNode],
    engine_providers: dict[str, ProxyProvider],
) -> AsyncMock:
    """A controller client double answering fetches with the fixture payloads."""
    client = AsyncMock(spec=ControllerClient)
    client.fetch_proxies.return_value = engine_proxies
    client.fetch_proxy_providers.return_value = engine_providers
    client.fetch_connections.return_value = []
    client.test_node_latency.return_value = 42
    return client


@pytest.fixture
def coordinator(
    controller: AsyncMock,
    store: FleetStore,
    preferences: FleetPreferences,
) -> FleetCoordinator:
    return FleetCoordinator(
        client=controller,
        store=store,
        preferences=preferences,
        resolver=ChainResolver(store),
    )
