"""HTTP client for the proxy engine's external-controller API.

Snapshot reads (``/proxies``, ``/providers/proxies``, ``/connections``) raise
``FetchError`` on failure; every action (latency tests, provider update and
health check, group selection, connection close) raises
``RemoteOperationError``. The original httpx exception is chained as
``__cause__``. Nothing is retried here; callers decide.

SECURITY: the controller secret is only ever sent as a bearer header.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError as PydanticValidationError

from proxyfleet.middleware.error_handler import FetchError, FleetError, RemoteOperationError
from proxyfleet.models.proxies import Connection, ProxyNode, ProxyProvider

logger = logging.getLogger(__name__)

# Extra headroom on top of a remote test timeout before the HTTP call gives up
_REMOTE_TIMEOUT_MARGIN_SECONDS = 5.0


def _segment(value: str) -> str:
    return quote(value, safe="")


class ControllerClient:
    """Async client for a Clash/Mihomo-compatible external controller.

    Parameters
    ----------
    controller_url:
        Base URL of the controller (e.g. "http://127.0.0.1:9090").
    secret:
        Optional controller secret, sent as ``Authorization: Bearer``.
    timeout_seconds:
        Default HTTP timeout per request.
    """

    def __init__(
        self,
        controller_url: str,
        secret: str | None = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._controller_url = controller_url.rstrip("/")
        self._secret = secret
        self._timeout_seconds = timeout_seconds

    # ------------------------------------------------------------------
    # Snapshot reads
    # ------------------------------------------------------------------

    async def fetch_proxies(self) -> dict[str, ProxyNode]:
        data = await self._request("GET", "/proxies", error_cls=FetchError)
        return self._parse_named(data, "proxies", ProxyNode)

    async def fetch_proxy_providers(self) -> dict[str, ProxyProvider]:
        data = await self._request("GET", "/providers/proxies", error_cls=FetchError)
        return self._parse_named(data, "providers", ProxyProvider)

    async def fetch_connections(self) -> list[Connection]:
        data = await self._request("GET", "/connections", error_cls=FetchError)
        raw = self._as_object(data, FetchError, "/connections").get("connections") or []
        try:
            return [Connection.model_validate(item) for item in raw]
        except (PydanticValidationError, TypeError) as exc:
            raise FetchError("Malformed connection list from controller") from exc

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def test_node_latency(
        self,
        node_name: str,
        provider_name: str | None,
        test_url: str,
        timeout_ms: int,
    ) -> int:
        """Ask the engine to measure one node; returns the delay in ms.

        Nodes that belong to a provider are tested through the provider's
        per-node health check endpoint.
        """
        if provider_name:
            path = f"/providers/proxies/{_segment(provider_name)}/{_segment(node_name)}/healthcheck"
        else:
            path = f"/proxies/{_segment(node_name)}/delay"

        data = await self._request(
            "GET",
            path,
            params={"url": test_url, "timeout": timeout_ms},
            timeout=self._remote_timeout(timeout_ms),
            error_cls=RemoteOperationError,
        )
        delay = self._as_object(data, RemoteOperationError, path).get("delay")
        if not isinstance(delay, int):
            raise RemoteOperationError(
                f"Latency test for '{node_name}' returned no delay",
                proxy_name=node_name,
            )
        return delay

    async def test_group_latency(self, group_name: str, test_url: str, timeout_ms: int) -> None:
        await self._request(
            "GET",
            f"/group/{_segment(group_name)}/delay",
            params={"url": test_url, "timeout": timeout_ms},
            timeout=self._remote_timeout(timeout_ms),
            error_cls=RemoteOperationError,
        )

    async def update_provider(self, provider_name: str) -> None:
        await self._request(
            "PUT",
            f"/providers/proxies/{_segment(provider_name)}",
            error_cls=RemoteOperationError,
        )

    async def health_check_provider(self, provider_name: str) -> None:
        await self._request(
            "GET",
            f"/providers/proxies/{_segment(provider_name)}/healthcheck",
            error_cls=RemoteOperationError,
        )

    async def select_group_member(self, group_name: str, target_name: str) -> None:
        await self._request(
            "PUT",
            f"/proxies/{_segment(group_name)}",
            json={"name": target_name},
            error_cls=RemoteOperationError,
        )

    async def close_connection(self, connection_id: str) -> None:
        await self._request(
            "DELETE",
            f"/connections/{_segment(connection_id)}",
            error_cls=RemoteOperationError,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        if not self._secret:
            return {}
        return {"Authorization": f"Bearer {self._secret}"}

    def _remote_timeout(self, timeout_ms: int) -> float:
        return max(self._timeout_seconds, timeout_ms / 1000 + _REMOTE_TIMEOUT_MARGIN_SECONDS)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        error_cls: type[FleetError],
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        url = f"{self._controller_url}{path}"
        kwargs: dict[str, Any] = {
            "headers": self._headers(),
            "timeout": timeout if timeout is not None else self._timeout_seconds,
        }
        if params is not None:
            kwargs["params"] = params

        try:
            async with httpx.AsyncClient() as client:
                if method == "GET":
                    response = await client.get(url, **kwargs)
                elif method == "PUT":
                    response = await client.put(url, json=json, **kwargs)
                elif method == "DELETE":
                    response = await client.delete(url, **kwargs)
                else:
                    raise ValueError(f"Unsupported method {method}")
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning(
                "Controller call %s %s failed: %s",
                method,
                path,
                exc,
                extra={"error_reason": str(exc)},
            )
            raise error_cls(f"{method} {path} failed: {exc}", path=path) from exc

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise error_cls(f"{method} {path} returned invalid JSON", path=path) from exc

    @staticmethod
    def _as_object(data: Any, error_cls: type[FleetError], path: str) -> dict[str, Any]:
        """Treat an empty body as ``{}``; anything but a JSON object is rejected."""
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise error_cls(
                f"Controller returned {type(data).__name__} where an object was expected",
                path=path,
            )
        return data

    @staticmethod
    def _parse_named(data: Any, key: str, model: type[Any]) -> dict[str, Any]:
        """Parse ``{key: {name: {...}}}`` into a name-ordered dict of models."""
        raw = ControllerClient._as_object(data, FetchError, key).get(key)
        if not isinstance(raw, dict):
            raise FetchError(f"Controller response is missing '{key}'")
        try:
            return {
                name: model.model_validate({"name": name, **entry})
                for name, entry in raw.items()
            }
        except (PydanticValidationError, TypeError) as exc:
            raise FetchError(f"Malformed '{key}' payload from controller") from exc
