"""Proxy provider endpoints.

- GET  /api/v1/providers: visible providers with busy state
- POST /api/v1/providers/update: update every provider, then refresh once
- POST /api/v1/providers/{name}/update: best-effort update of one provider
- POST /api/v1/providers/{name}/healthcheck: health-check one provider's nodes
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter

from proxyfleet.fleet.store import Namespace
from proxyfleet.models.responses import ApiResponse

if TYPE_CHECKING:
    from proxyfleet.fleet.coordinator import FleetCoordinator
    from proxyfleet.models.proxies import ProxyProvider


def create_providers_router(*, coordinator: FleetCoordinator) -> APIRouter:
    """Factory that creates the providers router with injected dependencies."""

    providers_router = APIRouter(prefix="/api/v1/providers", tags=["providers"])
    store = coordinator.store

    def _provider_view(provider: ProxyProvider) -> dict:
        return {
            "name": provider.name,
            "vehicle_type": provider.vehicle_type,
            "updated_at": provider.updated_at,
            "proxies": [node.name for node in provider.proxies],
            "updating": store.tracker(Namespace.PROVIDER_UPDATE).in_flight(provider.name),
            "health_checking": store.tracker(Namespace.PROVIDER_LATENCY).in_flight(
                provider.name
            ),
        }

    @providers_router.get("")
    async def list_providers() -> dict:
        snapshot = store.snapshot
        return ApiResponse(
            success=True,
            data={
                "generation": snapshot.generation,
                "all_providers_updating": store.all_providers_updating,
                "providers": [_provider_view(p) for p in snapshot.providers],
            },
        ).model_dump()

    @providers_router.post("/update")
    async def update_all() -> dict:
        snapshot = await coordinator.update_all_providers()
        return ApiResponse(
            success=True,
            data={"generation": snapshot.generation, "providers": len(snapshot.providers)},
        ).model_dump()

    @providers_router.post("/{name}/update")
    async def update_one(name: str) -> dict:
        snapshot = await coordinator.update_provider(name)
        return ApiResponse(
            success=True,
            data={"name": name, "generation": snapshot.generation},
        ).model_dump()

    @providers_router.post("/{name}/healthcheck")
    async def health_check(name: str) -> dict:
        snapshot = await coordinator.provider_health_check(name)
        return ApiResponse(
            success=True,
            data={"name": name, "generation": snapshot.generation},
        ).model_dump()

    return providers_router
