"""Per-key in-flight tracking for test and update operations.

``run(key, operation)`` marks ``key`` busy while ``operation`` is awaited and
clears the mark when it settles, whatever the outcome. A second ``run`` for a
key that is already busy is not queued or dropped: its operation executes
too, and it takes over the busy mark. An older run that settles afterwards
leaves the newer run's mark in place, so the exposed state always follows the
most recently registered run.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from types import MappingProxyType
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

BusyListener = Callable[[str, str, bool], None]


class SingleFlightTracker:
    """Busy-state tracker for one namespace of keys.

    Args:
        namespace: Label used in logs and listener callbacks (e.g. ``node-latency``).
        on_change: Optional callback ``(namespace, key, busy)`` invoked on every
            transition of a key's busy flag.
    """

    def __init__(self, namespace: str, on_change: BusyListener | None = None) -> None:
        self.namespace = namespace
        self._on_change = on_change
        # key -> registration token of the most recent run
        self._registrations: dict[str, object] = {}

    def in_flight(self, key: str) -> bool:
        return key in self._registrations

    @property
    def busy(self) -> Mapping[str, bool]:
        """Read-only view of the keys currently in flight."""
        return MappingProxyType({key: True for key in self._registrations})

    async def run(self, key: str, operation: Callable[[], Awaitable[T]]) -> T:
        """Execute ``operation`` while exposing ``key`` as in flight.

        The operation's result is returned and its exception re-raised.
        """
        token = object()
        if key in self._registrations:
            logger.debug(
                "Superseding in-flight %s operation for %s", self.namespace, key
            )
        self._registrations[key] = token
        self._notify(key, True)

        try:
            return await operation()
        finally:
            if self._registrations.get(key) is token:
                del self._registrations[key]
                self._notify(key, False)

    def _notify(self, key: str, busy: bool) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(self.namespace, key, busy)
        except Exception:
            logger.exception("Busy-state listener failed for %s/%s", self.namespace, key)
