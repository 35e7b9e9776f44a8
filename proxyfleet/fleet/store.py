"""Process-wide fleet state: the current snapshot and the busy-key maps.

The snapshot is immutable and replaced in a single assignment, so any reader
that grabs ``store.snapshot`` once sees a node index and latency map from the
same refresh. Observers registered with ``subscribe`` are called after every
publish and on every busy-state transition.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum

from proxyfleet.fleet.single_flight import SingleFlightTracker
from proxyfleet.models.proxies import Snapshot

logger = logging.getLogger(__name__)


class Namespace(str, Enum):
    """Single-flight key namespaces; equal names in different namespaces never collide."""

    NODE_LATENCY = "node-latency"
    GROUP_LATENCY = "group-latency"
    PROVIDER_LATENCY = "provider-latency"
    PROVIDER_UPDATE = "provider-update"


class EventKind(str, Enum):
    SNAPSHOT = "snapshot"
    BUSY = "busy"
    ALL_PROVIDERS_UPDATING = "all_providers_updating"


@dataclass(frozen=True)
class FleetEvent:
    """Notification delivered to store observers."""

    kind: EventKind
    snapshot: Snapshot
    namespace: str | None = None
    key: str | None = None
    busy: bool | None = None


FleetObserver = Callable[[FleetEvent], None]


class FleetStore:
    """Holds the published snapshot, the per-namespace trackers and the
    all-providers-updating flag."""

    def __init__(self) -> None:
        self._snapshot = Snapshot()
        self._generation = 0
        self._all_providers_updating = False
        self._observers: list[FleetObserver] = []
        self._trackers: dict[Namespace, SingleFlightTracker] = {
            namespace: SingleFlightTracker(namespace.value, on_change=self._on_busy_change)
            for namespace in Namespace
        }

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def ready(self) -> bool:
        """True once at least one refresh has been published."""
        return self._generation > 0

    def publish(self, snapshot: Snapshot) -> Snapshot:
        """Replace the current snapshot wholesale and stamp the next generation."""
        self._generation += 1
        self._snapshot = dataclasses.replace(snapshot, generation=self._generation)
        logger.debug(
            "Published snapshot generation %d (%d nodes)",
            self._generation,
            len(self._snapshot.node_index),
            extra={"generation": self._generation},
        )
        self._emit(FleetEvent(kind=EventKind.SNAPSHOT, snapshot=self._snapshot))
        return self._snapshot

    def set_latency(self, name: str, latency: int) -> None:
        """Record a single node's latency without rebuilding the node index."""
        self._snapshot = self._snapshot.with_latency(name, latency)
        self._emit(FleetEvent(kind=EventKind.SNAPSHOT, snapshot=self._snapshot))

    # ------------------------------------------------------------------
    # Busy state
    # ------------------------------------------------------------------

    def tracker(self, namespace: Namespace) -> SingleFlightTracker:
        return self._trackers[namespace]

    def busy_maps(self) -> dict[str, Mapping[str, bool]]:
        return {namespace.value: tracker.busy for namespace, tracker in self._trackers.items()}

    @property
    def all_providers_updating(self) -> bool:
        return self._all_providers_updating

    def set_all_providers_updating(self, updating: bool) -> None:
        self._all_providers_updating = updating
        self._emit(
            FleetEvent(
                kind=EventKind.ALL_PROVIDERS_UPDATING,
                snapshot=self._snapshot,
                busy=updating,
            )
        )

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, observer: FleetObserver) -> Callable[[], None]:
        """Register ``observer``; the returned callable unregisters it."""
        self._observers.append(observer)

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    def _on_busy_change(self, namespace: str, key: str, busy: bool) -> None:
        self._emit(
            FleetEvent(
                kind=EventKind.BUSY,
                snapshot=self._snapshot,
                namespace=namespace,
                key=key,
                busy=busy,
            )
        )

    def _emit(self, event: FleetEvent) -> None:
        for observer in list(self._observers):
            try:
                observer(event)
            except Exception:
                logger.exception("Fleet observer failed on %s event", event.kind.value)
