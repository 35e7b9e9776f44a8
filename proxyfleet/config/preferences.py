"""Runtime preferences for latency tests and group switching.

Seeded from ``FleetSettings`` at startup and mutable afterwards through the
preferences endpoint. Nothing here is persisted.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from proxyfleet.config.settings import FleetSettings


class FleetPreferences(BaseModel):
    """User-tunable knobs read by the coordinator on every operation."""

    latency_test_url: str = Field(..., min_length=1)
    latency_test_timeout_ms: int = Field(..., ge=100)
    auto_close_connections: bool = False

    model_config = {"validate_assignment": True}

    @classmethod
    def from_settings(cls, settings: FleetSettings) -> FleetPreferences:
        return cls(
            latency_test_url=settings.latency_test_url,
            latency_test_timeout_ms=settings.latency_test_timeout_ms,
            auto_close_connections=settings.auto_close_connections,
        )


class PreferencesUpdate(BaseModel):
    """Partial update body for ``PUT /api/v1/preferences``."""

    latency_test_url: str | None = Field(default=None, min_length=1)
    latency_test_timeout_ms: int | None = Field(default=None, ge=100)
    auto_close_connections: bool | None = None
