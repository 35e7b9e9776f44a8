"""Chain resolution over the published node index.

Groups point at their selected member through ``NodeInfo.now``; a member can
itself be a group. ``resolve_terminal`` follows those pointers down to the
concrete node that actually carries traffic.
"""

from __future__ import annotations

import logging

from proxyfleet.fleet.store import FleetStore
from proxyfleet.models.proxies import Snapshot

logger = logging.getLogger(__name__)

# Types that behave like groups in the UI even without a selection pointer
GROUP_LIKE_TYPES = frozenset({"direct", "reject", "loadbalance"})


class ChainResolver:
    """Read-only queries against the store's current snapshot."""

    def __init__(self, store: FleetStore) -> None:
        self._store = store

    def resolve_terminal(self, name: str, snapshot: Snapshot | None = None) -> str:
        """Follow selection pointers from ``name`` to the terminal node name.

        Unknown names come back unchanged. A pointer to a node missing from the
        index stops the walk at the last known node. A pointer back into the
        already-walked chain also stops the walk there.
        """
        index = (snapshot or self._store.snapshot).node_index
        node = index.get(name) if name else None
        if node is None:
            return name

        visited = {node.name}
        while node.now and node.now != node.name:
            next_node = index.get(node.now)
            if next_node is None:
                return node.name
            if next_node.name in visited:
                logger.warning(
                    "Selection cycle detected while resolving %s at %s",
                    name,
                    node.name,
                    extra={"proxy_name": name},
                )
                return node.name
            visited.add(next_node.name)
            node = next_node

        return node.name

    def get_latency_by_name(self, name: str) -> int | None:
        """Latency of the node that ``name`` currently routes through."""
        snapshot = self._store.snapshot
        return snapshot.latency_map.get(self.resolve_terminal(name, snapshot))

    def is_group(self, name: str) -> bool:
        node = self._store.snapshot.node_index.get(name)
        if node is None:
            return False
        return node.type.lower() in GROUP_LIKE_TYPES or bool(node.now)
