"""Middleware package: error hierarchy and request ID."""

from proxyfleet.middleware.error_handler import (
    FetchError,
    FleetError,
    NodeNotFoundError,
    RemoteOperationError,
    register_error_handlers,
)
from proxyfleet.middleware.request_id import RequestIdLogFilter, RequestIdMiddleware

__all__ = [
    "FetchError",
    "FleetError",
    "NodeNotFoundError",
    "RemoteOperationError",
    "RequestIdLogFilter",
    "RequestIdMiddleware",
    "register_error_handlers",
]
