"""Test/update coordination against the engine.

Every user-triggered operation is keyed through the store's single-flight
trackers so observers can show a per-node, per-group or per-provider busy
state. After a remote operation that changes more than one node the full
snapshot is refetched with ``refresh()``.

Failure policy per operation:

- node latency test: any failure recorded locally as ``NOT_CONNECTED``
- provider update: any failure logged and swallowed, refresh still runs
- group latency test, provider health check, group selection: propagate
- connection closes after a selection: logged, never raised
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable

from proxyfleet.config.preferences import FleetPreferences
from proxyfleet.fleet.latency import NOT_CONNECTED
from proxyfleet.fleet.resolver import ChainResolver
from proxyfleet.fleet.snapshot_builder import build_snapshot
from proxyfleet.fleet.store import FleetStore, Namespace
from proxyfleet.integration.controller_client import ControllerClient
from proxyfleet.middleware.error_handler import FetchError
from proxyfleet.models.proxies import Connection, Snapshot

logger = logging.getLogger(__name__)

ConnectionSource = Callable[[], Awaitable[Iterable[Connection]]]


class FleetCoordinator:
    """Runs remote operations and keeps the store's snapshot in sync.

    Parameters
    ----------
    client:
        Controller client used for every remote call.
    store:
        Shared fleet state (snapshot, busy maps, all-updating flag).
    preferences:
        Runtime preferences; read on every call so changes apply immediately.
    resolver:
        Chain resolver over ``store``. Created when not given.
    connection_source:
        Coroutine function returning the live connection list, consulted
        when auto-close is enabled. Defaults to ``client.fetch_connections``.
    """

    def __init__(
        self,
        *,
        client: ControllerClient,
        store: FleetStore,
        preferences: FleetPreferences,
        resolver: ChainResolver | None = None,
        connection_source: ConnectionSource | None = None,
    ) -> None:
        self._client = client
        self._store = store
        self._preferences = preferences
        self._resolver = resolver or ChainResolver(store)
        self._connection_source = connection_source or client.fetch_connections
        self._close_tasks: set[asyncio.Task[None]] = set()
        self._refresh_task: asyncio.Task[None] | None = None

    @property
    def store(self) -> FleetStore:
        return self._store

    @property
    def resolver(self) -> ChainResolver:
        return self._resolver

    @property
    def preferences(self) -> FleetPreferences:
        return self._preferences

    # ------------------------------------------------------------------
    # Snapshot fetch & merge
    # ------------------------------------------------------------------

    async def refresh(self) -> Snapshot:
        """Fetch proxies and providers concurrently and publish a new snapshot.

        Raises ``FetchError`` if either fetch fails; the current snapshot is
        left untouched in that case.
        """
        start = time.monotonic()
        results = await asyncio.gather(
            self._client.fetch_proxy_providers(),
            self._client.fetch_proxies(),
            return_exceptions=True,
        )
        failures = [result for result in results if isinstance(result, BaseException)]
        if failures:
            # Both fetches are awaited; the first failure is the one reported
            logger.warning(
                "Snapshot refresh failed, keeping generation %d",
                self._store.snapshot.generation,
                extra={"error_reason": "; ".join(str(f) for f in failures)},
            )
            raise failures[0]
        providers, proxies = results

        snapshot = self._store.publish(
            build_snapshot(proxies, providers, self._preferences.latency_test_url)
        )
        logger.info(
            "Snapshot refreshed: %d groups, %d providers, %d nodes",
            len(snapshot.proxies),
            len(snapshot.providers),
            len(snapshot.node_index),
            extra={
                "generation": snapshot.generation,
                "duration_ms": round((time.monotonic() - start) * 1000, 2),
            },
        )
        return snapshot

    # ------------------------------------------------------------------
    # Latency tests
    # ------------------------------------------------------------------

    async def proxy_latency_test(self, proxy_name: str, provider_name: str | None = None) -> int:
        """Test the node ``proxy_name`` currently routes through.

        Returns the recorded latency, ``NOT_CONNECTED`` when the test failed.
        """
        node_name = self._resolver.resolve_terminal(proxy_name)
        if not provider_name:
            info = self._store.snapshot.node_index.get(node_name)
            provider_name = info.provider if info else None

        async def _test() -> int:
            try:
                latency = await self._client.test_node_latency(
                    node_name,
                    provider_name,
                    self._preferences.latency_test_url,
                    self._preferences.latency_test_timeout_ms,
                )
            except Exception as exc:
                logger.info(
                    "Latency test failed for %s",
                    node_name,
                    extra={"proxy_name": node_name, "error_reason": str(exc)},
                )
                latency = NOT_CONNECTED
            self._store.set_latency(node_name, latency)
            return latency

        return await self._store.tracker(Namespace.NODE_LATENCY).run(node_name, _test)

    async def proxy_group_latency_test(self, group_name: str) -> Snapshot:
        async def _test() -> Snapshot:
            await self._client.test_group_latency(
                group_name,
                self._preferences.latency_test_url,
                self._preferences.latency_test_timeout_ms,
            )
            return await self.refresh()

        return await self._store.tracker(Namespace.GROUP_LATENCY).run(group_name, _test)

    # ------------------------------------------------------------------
    # Providers
    # ------------------------------------------------------------------

    async def update_provider(self, provider_name: str) -> Snapshot:
        """Best-effort provider update; the snapshot is refreshed either way."""

        async def _update() -> Snapshot:
            try:
                await self._client.update_provider(provider_name)
            except Exception as exc:
                logger.warning(
                    "Provider update failed for %s",
                    provider_name,
                    extra={"provider_name": provider_name, "error_reason": str(exc)},
                )
            return await self.refresh()

        return await self._store.tracker(Namespace.PROVIDER_UPDATE).run(provider_name, _update)

    async def provider_health_check(self, provider_name: str) -> Snapshot:
        async def _check() -> Snapshot:
            await self._client.health_check_provider(provider_name)
            return await self.refresh()

        return await self._store.tracker(Namespace.PROVIDER_LATENCY).run(provider_name, _check)

    async def update_all_providers(self) -> Snapshot:
        """Update every listed provider at once, then refresh a single time.

        These updates bypass the per-provider trackers; the store's
        all-providers-updating flag covers the whole batch.
        """
        self._store.set_all_providers_updating(True)
        try:
            names = [provider.name for provider in self._store.snapshot.providers]
            results = await asyncio.gather(
                *(self._client.update_provider(name) for name in names),
                return_exceptions=True,
            )
            for name, result in zip(names, results):
                if isinstance(result, Exception):
                    logger.warning(
                        "Provider update failed for %s",
                        name,
                        extra={"provider_name": name, "error_reason": str(result)},
                    )
            return await self.refresh()
        finally:
            self._store.set_all_providers_updating(False)

    # ------------------------------------------------------------------
    # Group selection
    # ------------------------------------------------------------------

    async def select_proxy_in_group(self, group_name: str, target_name: str) -> Snapshot:
        """Switch ``group_name`` to ``target_name`` and refresh.

        With auto-close enabled, every connection routed through the group is
        closed afterwards. The closes are fired without waiting for them.
        """
        await self._client.select_group_member(group_name, target_name)
        snapshot = await self.refresh()
        logger.info(
            "Selected %s in %s",
            target_name,
            group_name,
            extra={"group_name": group_name, "proxy_name": target_name},
        )

        if self._preferences.auto_close_connections:
            await self._close_connections_through(group_name)

        return snapshot

    async def _close_connections_through(self, group_name: str) -> None:
        try:
            stale_ids = [
                connection.id
                for connection in await self._connection_source()
                if group_name in connection.chains
            ]
        except Exception as exc:
            logger.warning(
                "Could not list connections to close after switching %s",
                group_name,
                extra={"group_name": group_name, "error_reason": str(exc)},
            )
            return

        for connection_id in stale_ids:
            task = asyncio.create_task(self._close_quietly(connection_id))
            self._close_tasks.add(task)
            task.add_done_callback(self._close_tasks.discard)

    async def _close_quietly(self, connection_id: str) -> None:
        try:
            await self._client.close_connection(connection_id)
        except Exception as exc:
            logger.debug("Closing connection %s failed: %s", connection_id, exc)

    # ------------------------------------------------------------------
    # Background refresh
    # ------------------------------------------------------------------

    def start_auto_refresh(self, interval_seconds: float) -> None:
        """Refresh the snapshot every ``interval_seconds`` until ``stop()``."""
        if self._refresh_task is not None:
            logger.warning("Auto refresh already running, skipping")
            return
        self._refresh_task = asyncio.create_task(
            self._refresh_loop(interval_seconds), name="fleet-auto-refresh"
        )

    async def _refresh_loop(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                await self.refresh()
            except FetchError:
                # Already logged by refresh(); try again next tick
                continue

    async def stop(self) -> None:
        if self._refresh_task is None:
            return
        self._refresh_task.cancel()
        try:
            await self._refresh_task
        except asyncio.CancelledError:
            pass
        self._refresh_task = None
