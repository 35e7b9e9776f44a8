"""Request bodies accepted by the fleet API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class SelectProxyRequest(BaseModel):
    """Body for switching a group's selected member."""

    name: str = Field(..., min_length=1)
