"""HTTP routers exposing fleet state and operations."""

from proxyfleet.routers.health import create_health_router
from proxyfleet.routers.preferences import create_preferences_router
from proxyfleet.routers.providers import create_providers_router
from proxyfleet.routers.proxies import create_proxies_router

__all__ = [
    "create_health_router",
    "create_preferences_router",
    "create_providers_router",
    "create_proxies_router",
]
