"""Proxy and group endpoints.

- GET  /api/v1/proxies: ordered top-level groups with busy maps
- GET  /api/v1/proxies/nodes/{name}: one node with its resolved terminal and latency
- POST /api/v1/proxies/refresh: refetch the snapshot
- POST /api/v1/proxies/{name}/latency: test the node a proxy or group routes through
- POST /api/v1/proxies/groups/{name}/latency: test every member of a group
- PUT  /api/v1/proxies/groups/{name}: switch a group's selected member
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter

from proxyfleet.fleet.latency import classify_latency
from proxyfleet.fleet.store import Namespace
from proxyfleet.middleware.error_handler import NodeNotFoundError
from proxyfleet.models.requests import SelectProxyRequest
from proxyfleet.models.responses import ApiResponse

if TYPE_CHECKING:
    from proxyfleet.config.settings import FleetSettings
    from proxyfleet.fleet.coordinator import FleetCoordinator
    from proxyfleet.models.proxies import ProxyNode


def create_proxies_router(
    *,
    coordinator: FleetCoordinator,
    settings: FleetSettings,
) -> APIRouter:
    """Factory that creates the proxies router with injected dependencies."""

    proxies_router = APIRouter(prefix="/api/v1/proxies", tags=["proxies"])
    store = coordinator.store
    resolver = coordinator.resolver

    def _latency_view(name: str) -> dict:
        latency = resolver.get_latency_by_name(name)
        return {
            "terminal": resolver.resolve_terminal(name),
            "latency": latency,
            "quality": classify_latency(
                latency, settings.latency_medium_ms, settings.latency_high_ms
            ).value,
        }

    def _group_view(group: ProxyNode) -> dict:
        return {
            "name": group.name,
            "type": group.type,
            "now": group.now,
            "all": list(group.all),
            **_latency_view(group.name),
        }

    @proxies_router.get("")
    async def list_proxies() -> dict:
        snapshot = store.snapshot
        return ApiResponse(
            success=True,
            data={
                "generation": snapshot.generation,
                "proxies": [_group_view(group) for group in snapshot.proxies],
                "busy": {
                    "node_latency": dict(store.tracker(Namespace.NODE_LATENCY).busy),
                    "group_latency": dict(store.tracker(Namespace.GROUP_LATENCY).busy),
                },
            },
        ).model_dump()

    @proxies_router.get("/nodes/{name}")
    async def get_node(name: str) -> dict:
        node = store.snapshot.node_index.get(name)
        if node is None:
            raise NodeNotFoundError(f"Proxy node '{name}' not found")

        return ApiResponse(
            success=True,
            data={
                **node.to_dict(),
                "is_group": resolver.is_group(name),
                **_latency_view(name),
            },
        ).model_dump()

    @proxies_router.post("/refresh")
    async def refresh() -> dict:
        snapshot = await coordinator.refresh()
        return ApiResponse(
            success=True,
            data={"generation": snapshot.generation, "nodes": len(snapshot.node_index)},
        ).model_dump()

    @proxies_router.post("/{name}/latency")
    async def test_proxy_latency(name: str, provider: str | None = None) -> dict:
        latency = await coordinator.proxy_latency_test(name, provider)
        terminal = resolver.resolve_terminal(name)
        return ApiResponse(
            success=True,
            data={
                "name": name,
                "terminal": terminal,
                "latency": latency,
                "quality": classify_latency(
                    latency, settings.latency_medium_ms, settings.latency_high_ms
                ).value,
            },
        ).model_dump()

    @proxies_router.post("/groups/{name}/latency")
    async def test_group_latency(name: str) -> dict:
        await coordinator.proxy_group_latency_test(name)
        return ApiResponse(success=True, data={"name": name, **_latency_view(name)}).model_dump()

    @proxies_router.put("/groups/{name}")
    async def select_proxy(name: str, body: SelectProxyRequest) -> dict:
        await coordinator.select_proxy_in_group(name, body.name)
        return ApiResponse(
            success=True,
            data={"group": name, "now": body.name, **_latency_view(name)},
        ).model_dump()

    return proxies_router
