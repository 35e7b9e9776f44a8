"""Unit tests for the error hierarchy and FastAPI exception handlers."""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from proxyfleet.middleware.error_handler import (
    FetchError,
    FleetError,
    NodeNotFoundError,
    RemoteOperationError,
    register_error_handlers,
)


# ---------------------------------------------------------------------------
# Test app fixture
# ---------------------------------------------------------------------------


class _Body(BaseModel):
    name: str


def _make_app() -> FastAPI:
    """Build a minimal FastAPI app with error handlers registered."""
    app = FastAPI()
    register_error_handlers(app)

    @app.get("/raise-fleet")
    async def _raise_fleet():
        raise FleetError()

    @app.get("/raise-fetch")
    async def _raise_fetch():
        raise FetchError()

    @app.get("/raise-remote")
    async def _raise_remote():
        raise RemoteOperationError("PUT /proxies/Proxy failed", path="/proxies/Proxy")

    @app.get("/raise-not-found")
    async def _raise_not_found():
        raise NodeNotFoundError()

    @app.post("/body")
    async def _body(body: _Body):
        return {"ok": True}

    @app.get("/raise-unhandled")
    async def _raise_unhandled():
        raise RuntimeError("kaboom")

    return app


@pytest.fixture
def client() -> TestClient:
    return TestClient(_make_app(), raise_server_exceptions=False)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestErrorHierarchy:
    @pytest.mark.parametrize(
        "error_cls, status",
        [
            (FleetError, 500),
            (FetchError, 502),
            (RemoteOperationError, 502),
            (NodeNotFoundError, 404),
        ],
    )
    def test_status_codes(self, error_cls: type[FleetError], status: int):
        assert error_cls().status_code == status

    def test_subclasses_share_base(self):
        for error_cls in (FetchError, RemoteOperationError, NodeNotFoundError):
            assert issubclass(error_cls, FleetError)

    def test_default_message(self):
        assert NodeNotFoundError().message == "Proxy node not found"

    def test_custom_message_and_details(self):
        error = RemoteOperationError("nope", path="/x")
        assert error.message == "nope"
        assert error.details == {"path": "/x"}
        assert str(error) == "nope"


class TestHandlers:
    @pytest.mark.parametrize(
        "path, status, message",
        [
            ("/raise-fleet", 500, "Internal server error"),
            ("/raise-fetch", 502, "Failed to fetch proxy snapshot from controller"),
            ("/raise-not-found", 404, "Proxy node not found"),
        ],
    )
    def test_fleet_errors_use_envelope(
        self, client: TestClient, path: str, status: int, message: str
    ):
        response = client.get(path)
        assert response.status_code == status
        body = response.json()
        assert body == {"success": False, "data": None, "error": message, "meta": None}

    def test_details_become_meta(self, client: TestClient):
        body = client.get("/raise-remote").json()
        assert body["error"] == "PUT /proxies/Proxy failed"
        assert body["meta"] == {"path": "/proxies/Proxy"}

    def test_request_validation_lists_fields(self, client: TestClient):
        response = client.post("/body", json={})
        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Validation error"
        assert body["meta"]["fields"][0]["field"] == "body -> name"

    def test_unhandled_exception_is_generic_500(self, client: TestClient):
        response = client.get("/raise-unhandled")
        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Internal server error"
        assert "kaboom" not in response.text
