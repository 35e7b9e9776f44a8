"""FastAPI application entry point with lifespan management.

Startup: configure logging, fetch the first snapshot from the engine, start
the optional background refresh loop.
Shutdown: stop the refresh loop.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from proxyfleet.config.preferences import FleetPreferences
from proxyfleet.config.settings import FleetSettings
from proxyfleet.fleet.coordinator import FleetCoordinator
from proxyfleet.fleet.resolver import ChainResolver
from proxyfleet.fleet.store import FleetStore
from proxyfleet.integration.controller_client import ControllerClient
from proxyfleet.logging_config import configure_logging
from proxyfleet.middleware.error_handler import FetchError, register_error_handlers
from proxyfleet.middleware.request_id import RequestIdLogFilter, RequestIdMiddleware
from proxyfleet.routers.health import create_health_router
from proxyfleet.routers.preferences import create_preferences_router
from proxyfleet.routers.providers import create_providers_router
from proxyfleet.routers.proxies import create_proxies_router

logger = logging.getLogger(__name__)


def create_app(
    settings: FleetSettings | None = None,
    client: ControllerClient | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``client`` can be supplied to point the service at a stub controller.
    """
    settings = settings or FleetSettings()
    client = client or ControllerClient(
        controller_url=settings.controller_url,
        secret=settings.controller_secret,
        timeout_seconds=settings.request_timeout_seconds,
    )

    store = FleetStore()
    preferences = FleetPreferences.from_settings(settings)
    coordinator = FleetCoordinator(
        client=client,
        store=store,
        preferences=preferences,
        resolver=ChainResolver(store),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        for handler in logging.getLogger().handlers:
            handler.addFilter(RequestIdLogFilter())
        logger.info("Starting proxy fleet service on port %d", settings.port)

        try:
            await coordinator.refresh()
        except FetchError as exc:
            # Readiness stays 503 until a later refresh succeeds
            logger.warning(
                "Initial snapshot fetch failed: %s", exc.message,
                extra={"error_reason": exc.message},
            )

        if settings.refresh_interval_seconds > 0:
            coordinator.start_auto_refresh(settings.refresh_interval_seconds)

        logger.info("Proxy fleet service started")

        yield

        logger.info("Shutting down proxy fleet service…")
        await coordinator.stop()
        logger.info("Proxy fleet service shut down")

    app = FastAPI(
        title="Proxy Fleet Service",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.coordinator = coordinator

    register_error_handlers(app)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(create_health_router(store=store))
    app.include_router(create_proxies_router(coordinator=coordinator, settings=settings))
    app.include_router(create_providers_router(coordinator=coordinator))
    app.include_router(create_preferences_router(preferences=preferences))

    return app


app = create_app()
