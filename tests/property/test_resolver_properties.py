"""Property tests for chain resolution over arbitrary selection graphs."""

from __future__ import annotations

from hypothesis import given, settings
from hypothesis import strategies as st

from proxyfleet.fleet.resolver import ChainResolver
from proxyfleet.fleet.store import FleetStore
from proxyfleet.models.proxies import NodeInfo, Snapshot


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

names = st.sampled_from([f"n{i}" for i in range(8)])

# Each known node points at another name (possibly unknown, itself or nothing)
graphs = st.dictionaries(
    keys=names,
    values=st.one_of(st.none(), names, st.just("missing")),
    max_size=8,
)


def _resolver(graph: dict[str, str | None]) -> ChainResolver:
    store = FleetStore()
    store.publish(
        Snapshot.build(
            proxies=[],
            providers=[],
            node_index={
                name: NodeInfo(name=name, type="Selector" if now else "Vmess", now=now)
                for name, now in graph.items()
            },
            latency_map={name: i + 1 for i, name in enumerate(graph)},
            generation=0,
        )
    )
    return ChainResolver(store)


def _walk(graph: dict[str, str | None], start: str) -> list[str]:
    """Every name reachable from ``start`` by following pointers."""
    seen = [start]
    current = start
    while True:
        target = graph.get(current)
        if not target or target not in graph or target in seen:
            return seen
        seen.append(target)
        current = target


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


@settings(max_examples=200)
@given(graph=graphs, start=names)
def test_resolution_terminates_on_the_chain(graph: dict[str, str | None], start: str) -> None:
    """Resolution always returns, and the result lies on the start's chain."""
    resolver = _resolver(graph)
    terminal = resolver.resolve_terminal(start)
    assert terminal in _walk(graph, start)


@settings(max_examples=200)
@given(graph=graphs, start=names)
def test_walk_stops_at_last_new_node(graph: dict[str, str | None], start: str) -> None:
    """The terminal is the last node reached before the chain ends or repeats."""
    resolver = _resolver(graph)
    assert resolver.resolve_terminal(start) == _walk(graph, start)[-1]


@settings(max_examples=100)
@given(graph=graphs)
def test_unknown_names_resolve_to_themselves(graph: dict[str, str | None]) -> None:
    resolver = _resolver(graph)
    assert resolver.resolve_terminal("not-in-index") == "not-in-index"
    assert resolver.get_latency_by_name("not-in-index") is None


@settings(max_examples=100)
@given(graph=graphs, start=names)
def test_latency_by_name_matches_terminal(graph: dict[str, str | None], start: str) -> None:
    resolver = _resolver(graph)
    latency = resolver.get_latency_by_name(start)
    if start not in graph:
        return
    terminal = resolver.resolve_terminal(start)
    assert latency == list(graph).index(terminal) + 1
