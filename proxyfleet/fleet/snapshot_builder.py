"""Turns raw engine payloads into a publishable ``Snapshot``.

Steps, in order:

1. The ``GLOBAL`` group's member list (plus ``GLOBAL`` itself) defines the
   display order of top-level groups.
2. Top-level entries without members are dropped; the rest are stable-sorted
   by their position in that order. Names missing from it get index -1 and
   therefore sort first, keeping their original relative order.
3. The engine's implicit ``default`` provider and ``Compatible`` providers are
   hidden from the provider list.
4. Every engine proxy plus every visible provider's nodes are flattened into
   one node index. The first node seen under a name wins.
5. Each indexed node is projected into ``NodeInfo`` and its latency derived
   for the configured test URL.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from proxyfleet.fleet.latency import derive_latency
from proxyfleet.models.proxies import (
    GLOBAL_GROUP,
    NodeInfo,
    ProxyNode,
    ProxyProvider,
    Snapshot,
)

logger = logging.getLogger(__name__)

HIDDEN_PROVIDER_NAME = "default"
HIDDEN_VEHICLE_TYPE = "Compatible"


def sort_top_level(proxies: Mapping[str, ProxyNode]) -> list[ProxyNode]:
    """Return the groups to display, ordered by the ``GLOBAL`` member list."""
    global_group = proxies.get(GLOBAL_GROUP)
    if global_group is None:
        logger.warning("Engine snapshot has no %s group; group order is unranked", GLOBAL_GROUP)
        sort_index: list[str] = [GLOBAL_GROUP]
    else:
        sort_index = [*global_group.all, GLOBAL_GROUP]

    def _rank(proxy: ProxyNode) -> int:
        try:
            return sort_index.index(proxy.name)
        except ValueError:
            return -1

    return sorted((p for p in proxies.values() if p.all), key=_rank)


def visible_providers(providers: Mapping[str, ProxyProvider]) -> list[ProxyProvider]:
    return [
        provider
        for provider in providers.values()
        if provider.name != HIDDEN_PROVIDER_NAME
        and provider.vehicle_type != HIDDEN_VEHICLE_TYPE
    ]


def flatten_nodes(
    proxies: Mapping[str, ProxyNode], providers: Iterable[ProxyProvider]
) -> list[ProxyNode]:
    """All engine proxies followed by provider nodes tagged with their provider.

    Provider nodes that share a name with an engine proxy, or with a node from
    an earlier provider, are skipped.
    """
    nodes = list(proxies.values())
    seen = set(proxies)
    for provider in providers:
        for node in provider.proxies:
            if node.name in seen:
                continue
            seen.add(node.name)
            nodes.append(node.model_copy(update={"provider": provider.name}))
    return nodes


def project_node(node: ProxyNode) -> NodeInfo:
    return NodeInfo(
        name=node.name,
        type=node.type,
        udp=node.udp,
        xudp=node.xudp,
        tfo=node.tfo,
        provider=node.provider,
        now=node.now or None,
        latency_test_history=tuple(node.history),
    )


def build_snapshot(
    proxies: Mapping[str, ProxyNode],
    providers: Mapping[str, ProxyProvider],
    test_url: str,
) -> Snapshot:
    """Build an unpublished snapshot (generation 0) from engine payloads."""
    top_level = sort_top_level(proxies)
    shown_providers = visible_providers(providers)

    node_index: dict[str, NodeInfo] = {}
    latency_map: dict[str, int] = {}
    for node in flatten_nodes(proxies, shown_providers):
        node_index[node.name] = project_node(node)
        latency_map[node.name] = derive_latency(node, test_url)

    return Snapshot.build(
        proxies=top_level,
        providers=shown_providers,
        node_index=node_index,
        latency_map=latency_map,
        generation=0,
    )
