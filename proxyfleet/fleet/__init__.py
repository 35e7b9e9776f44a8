"""Fleet model: snapshot store, chain resolution, latency and coordination."""

from proxyfleet.fleet.coordinator import FleetCoordinator
from proxyfleet.fleet.latency import NOT_CONNECTED, LatencyQuality, classify_latency, derive_latency
from proxyfleet.fleet.resolver import ChainResolver
from proxyfleet.fleet.single_flight import SingleFlightTracker
from proxyfleet.fleet.snapshot_builder import build_snapshot
from proxyfleet.fleet.store import EventKind, FleetEvent, FleetStore, Namespace

__all__ = [
    "NOT_CONNECTED",
    "ChainResolver",
    "EventKind",
    "FleetCoordinator",
    "FleetEvent",
    "FleetStore",
    "LatencyQuality",
    "Namespace",
    "SingleFlightTracker",
    "build_snapshot",
    "classify_latency",
    "derive_latency",
]
