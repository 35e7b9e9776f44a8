"""Runtime preference endpoints.

- GET /api/v1/preferences
- PUT /api/v1/preferences: partial update; omitted fields are left as they are
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter

from proxyfleet.config.preferences import PreferencesUpdate
from proxyfleet.models.responses import ApiResponse

if TYPE_CHECKING:
    from proxyfleet.config.preferences import FleetPreferences

logger = logging.getLogger(__name__)


def create_preferences_router(*, preferences: FleetPreferences) -> APIRouter:
    """Factory that creates the preferences router around a shared instance."""

    preferences_router = APIRouter(prefix="/api/v1/preferences", tags=["preferences"])

    @preferences_router.get("")
    async def get_preferences() -> dict:
        return ApiResponse(success=True, data=preferences.model_dump()).model_dump()

    @preferences_router.put("")
    async def update_preferences(body: PreferencesUpdate) -> dict:
        changes = body.model_dump(exclude_none=True)
        for field_name, value in changes.items():
            setattr(preferences, field_name, value)
        if changes:
            logger.info("Preferences updated: %s", ", ".join(sorted(changes)))

        return ApiResponse(success=True, data=preferences.model_dump()).model_dump()

    return preferences_router
