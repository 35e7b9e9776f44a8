"""Proxy, provider and snapshot models.

Engine payloads (``/proxies``, ``/providers/proxies``, ``/connections``) are
parsed into pydantic models that ignore fields the fleet does not use. The
derived views (``NodeInfo`` and ``Snapshot``) are frozen dataclasses so that a
published snapshot can be shared between readers without copying.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, field_validator

GLOBAL_GROUP = "GLOBAL"


class LatencySample(BaseModel):
    """A single delay measurement reported by the engine."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    time: str = ""
    delay: int = 0


class ProxyNode(BaseModel):
    """A concrete proxy or a group as reported by the engine."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str
    type: str = ""
    udp: bool = False
    xudp: bool = False
    tfo: bool = False
    now: str | None = None
    all: list[str] = Field(default_factory=list)
    history: list[LatencySample] = Field(default_factory=list)
    extra: dict[str, list[LatencySample]] = Field(default_factory=dict)
    provider: str | None = None

    @field_validator("all", "history", mode="before")
    @classmethod
    def _null_as_empty(cls, value: object) -> object:
        return [] if value is None else value

    @field_validator("extra", mode="before")
    @classmethod
    def _normalize_extra(cls, value: object) -> object:
        # Newer engines wrap each per-URL history as {"alive": bool, "history": [...]}
        if value is None:
            return {}
        if isinstance(value, dict):
            return {
                url: (entry.get("history") or []) if isinstance(entry, dict) else (entry or [])
                for url, entry in value.items()
            }
        return value


class ProxyProvider(BaseModel):
    """A named source of proxy nodes."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str
    vehicle_type: str = Field(default="", alias="vehicleType")
    proxies: list[ProxyNode] = Field(default_factory=list)
    updated_at: str | None = Field(default=None, alias="updatedAt")
    test_url: str | None = Field(default=None, alias="testUrl")

    @field_validator("proxies", mode="before")
    @classmethod
    def _null_as_empty(cls, value: object) -> object:
        return [] if value is None else value


class Connection(BaseModel):
    """An active connection tracked by the engine; ``chains`` lists every hop."""

    model_config = ConfigDict(extra="ignore")

    id: str
    chains: list[str] = Field(default_factory=list)

    @field_validator("chains", mode="before")
    @classmethod
    def _null_as_empty(cls, value: object) -> object:
        return [] if value is None else value


@dataclass(frozen=True)
class NodeInfo:
    """Display-oriented projection of one node in the flattened index.

    ``now`` is the selection pointer (a group's selected member). Numeric
    latency is kept separately in ``Snapshot.latency_map``.
    """

    name: str
    type: str
    udp: bool = False
    xudp: bool = False
    tfo: bool = False
    provider: str | None = None
    now: str | None = None
    latency_test_history: tuple[LatencySample, ...] = ()

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "type": self.type,
            "udp": self.udp,
            "xudp": self.xudp,
            "tfo": self.tfo,
            "provider": self.provider,
            "now": self.now,
            "latency_test_history": [s.model_dump() for s in self.latency_test_history],
        }


def _frozen_map(data: Mapping | None = None) -> Mapping:
    return MappingProxyType(dict(data or {}))


@dataclass(frozen=True)
class Snapshot:
    """The atomic unit of truth published after each refresh."""

    proxies: tuple[ProxyNode, ...] = ()
    providers: tuple[ProxyProvider, ...] = ()
    node_index: Mapping[str, NodeInfo] = field(default_factory=_frozen_map)
    latency_map: Mapping[str, int] = field(default_factory=_frozen_map)
    generation: int = 0

    @classmethod
    def build(
        cls,
        *,
        proxies: list[ProxyNode],
        providers: list[ProxyProvider],
        node_index: Mapping[str, NodeInfo],
        latency_map: Mapping[str, int],
        generation: int,
    ) -> Snapshot:
        return cls(
            proxies=tuple(proxies),
            providers=tuple(providers),
            node_index=_frozen_map(node_index),
            latency_map=_frozen_map(latency_map),
            generation=generation,
        )

    def with_latency(self, name: str, latency: int) -> Snapshot:
        """Return a copy with one latency entry replaced; the node index is shared."""
        latency_map = dict(self.latency_map)
        latency_map[name] = latency
        return Snapshot(
            proxies=self.proxies,
            providers=self.providers,
            node_index=self.node_index,
            latency_map=_frozen_map(latency_map),
            generation=self.generation,
        )
