"""Response envelope shared by every fleet endpoint.

Routers return ``ApiResponse(success=True, data=...)``; the exception
handlers build the failing form through :meth:`ApiResponse.failure` so
controller errors, unknown nodes and malformed request bodies all come back
in the same shape.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    success: bool
    data: T | None = Field(default=None, description="Snapshot view or operation result")
    error: str | None = Field(default=None, description="FleetError message when success is false")
    meta: dict[str, Any] | None = Field(
        default=None, description="Error details such as the controller path or invalid fields"
    )

    @classmethod
    def failure(cls, error: str, meta: dict[str, Any] | None = None) -> ApiResponse[None]:
        return cls(success=False, error=error, meta=meta or None)
