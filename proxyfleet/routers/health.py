"""Health and readiness endpoints.

- GET /health: service status + snapshot stats
- GET /readiness: 200 only once a snapshot has been fetched from the engine
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Response

from proxyfleet.models.responses import ApiResponse

if TYPE_CHECKING:
    from proxyfleet.fleet.store import FleetStore


def create_health_router(*, store: FleetStore) -> APIRouter:
    """Factory that creates the health router with injected dependencies."""

    health_router = APIRouter(tags=["health"])

    @health_router.get("/health")
    async def health() -> dict:
        snapshot = store.snapshot
        return ApiResponse(
            success=True,
            data={
                "status": "healthy",
                "generation": snapshot.generation,
                "groups": len(snapshot.proxies),
                "providers": len(snapshot.providers),
                "nodes": len(snapshot.node_index),
                "all_providers_updating": store.all_providers_updating,
            },
        ).model_dump()

    @health_router.get("/readiness")
    async def readiness(response: Response) -> dict:
        """Readiness probe: 200 iff at least one refresh has been published."""
        is_ready = store.ready
        if not is_ready:
            response.status_code = 503

        return ApiResponse(
            success=is_ready,
            data={"ready": is_ready, "generation": store.snapshot.generation},
            error=None if is_ready else "No snapshot fetched yet",
        ).model_dump()

    return health_router
