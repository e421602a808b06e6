"""Peer identity — stable names and addresses derived from topology position."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from coreset_perf.network.coreset import CoreSet

if TYPE_CHECKING:
    from coreset_perf.network.cfg import NetworkCfg


def peer_short_name(core_set_name: str, ordinal: int) -> str:
    """Human-readable name, unique within a run: ``<set>-<ordinal>``."""
    return f"{core_set_name}-{ordinal}"


def peer_dns_name(nonce: str, core_set_name: str, ordinal: int) -> str:
    """Network address of a peer, unique across concurrent runs.

    The nonce prefixes both the pod and the service name so two runs
    sharing a cluster never resolve to each other's nodes.
    """
    return f"{nonce}-sts-{core_set_name}-{ordinal}.{nonce}-stellar-core"


@dataclass(frozen=True, eq=False)
class Peer:
    """One node instance, identified by (core set name, ordinal).

    A cheap projection; build it with ``NetworkCfg.get_peer`` whenever
    needed rather than storing it.
    """

    network: NetworkCfg
    core_set: CoreSet
    ordinal: int

    @property
    def short_name(self) -> str:
        return peer_short_name(self.core_set.name, self.ordinal)

    @property
    def dns_name(self) -> str:
        return peer_dns_name(self.network.nonce, self.core_set.name, self.ordinal)

    @property
    def key(self) -> tuple[str, int]:
        return (self.core_set.name, self.ordinal)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Peer):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __repr__(self) -> str:
        return f"Peer({self.short_name})"
