"""Pydantic Settings for the proxy fleet service.

All environment variables use the FLEET_ prefix.
Example: FLEET_CONTROLLER_URL=http://127.0.0.1:9090, FLEET_CONTROLLER_SECRET=s3cret
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class FleetSettings(BaseSettings):
    """Fleet service configuration validated from environment variables."""

    # Service
    port: int = 8002
    log_level: str = "INFO"

    # Engine external controller
    controller_url: str = "http://127.0.0.1:9090"
    controller_secret: str | None = None  # Sent as a bearer token
    request_timeout_seconds: float = Field(default=30.0, gt=0)

    # Latency testing defaults (seed the runtime preferences)
    latency_test_url: str = "https://www.gstatic.com/generate_204"
    latency_test_timeout_ms: int = Field(default=5000, ge=100)
    auto_close_connections: bool = False

    # Latency quality thresholds
    latency_medium_ms: int = Field(default=200, ge=1)
    latency_high_ms: int = Field(default=500, ge=1)

    # Background snapshot refresh, 0 disables
    refresh_interval_seconds: int = Field(default=0, ge=0)

    model_config = {"env_prefix": "FLEET_"}
