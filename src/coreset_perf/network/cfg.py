"""Network configuration — one run's topology of core sets.

The topology may change between measurement rounds (nodes added or
removed). Every change bumps ``version``; rounds work on an immutable
``TopologySnapshot`` so the set of peers a round saw is recorded rather
than inferred from whatever the topology looks like later.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import Iterable, Iterator

from coreset_perf.network.coreset import CoreSet
from coreset_perf.network.peer import Peer

logger = logging.getLogger(__name__)


def make_network_nonce() -> str:
    """Fresh run nonce, DNS-label safe."""
    return f"ssc-{secrets.token_hex(4)}"


@dataclass(frozen=True)
class TopologySnapshot:
    """Live peers at a given topology version, in iteration order."""

    version: int
    peers: tuple[Peer, ...]

    @property
    def short_names(self) -> tuple[str, ...]:
        return tuple(p.short_name for p in self.peers)

    def __len__(self) -> int:
        return len(self.peers)


class NetworkCfg:
    """Topology of one test run.

    Args:
        core_sets: Core sets in iteration order. Names must be unique.
        nonce: Run-scoped disambiguator for network names. Generated if empty.
        namespace: Storage namespace for artifacts. Defaults to the nonce.
    """

    def __init__(
        self,
        core_sets: Iterable[CoreSet] = (),
        nonce: str = "",
        namespace: str = "",
    ) -> None:
        self._nonce = nonce or make_network_nonce()
        self._namespace = namespace or self._nonce
        self._core_sets: list[CoreSet] = []
        self._version = 0
        for cs in core_sets:
            self._add(cs)

    @property
    def nonce(self) -> str:
        return self._nonce

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def version(self) -> int:
        return self._version

    @property
    def core_sets(self) -> tuple[CoreSet, ...]:
        return tuple(self._core_sets)

    # ── Peers ────────────────────────────────────────────────────

    def get_peer(self, cs: CoreSet, i: int) -> Peer:
        assert 0 <= i < cs.max_size, f"ordinal {i} out of range for {cs.name}"
        return Peer(network=self, core_set=cs, ordinal=i)

    def each_peer(self) -> Iterator[Peer]:
        """Live peers, core-set order then ordinal order."""
        return self.each_peer_in_sets(self._core_sets)

    def each_peer_in_sets(self, sets: Iterable[CoreSet]) -> Iterator[Peer]:
        for cs in sets:
            for i in cs.live_ordinals:
                yield self.get_peer(cs, i)

    def known_peers(self) -> Iterator[Peer]:
        """Every peer that can have existed during the run, live or not."""
        for cs in self._core_sets:
            for i in cs.known_ordinals:
                yield self.get_peer(cs, i)

    def snapshot(self) -> TopologySnapshot:
        return TopologySnapshot(version=self._version, peers=tuple(self.each_peer()))

    # ── Topology changes ─────────────────────────────────────────

    def core_set(self, name: str) -> CoreSet:
        for cs in self._core_sets:
            if cs.name == name:
                return cs
        raise KeyError(name)

    def add_core_set(self, cs: CoreSet) -> None:
        self._add(cs)
        self._version += 1

    def set_current_count(self, name: str, count: int) -> CoreSet:
        """Resize a core set's live count. Returns the updated core set."""
        for idx, cs in enumerate(self._core_sets):
            if cs.name == name:
                updated = cs.with_current_count(count)
                self._core_sets[idx] = updated
                self._version += 1
                logger.info(
                    "Core set %s resized %d -> %d (topology v%d)",
                    name, cs.current_count, count, self._version,
                )
                return updated
        raise KeyError(name)

    def _add(self, cs: CoreSet) -> None:
        if any(existing.name == cs.name for existing in self._core_sets):
            raise ValueError(f"duplicate core set name: {cs.name}")
        self._core_sets.append(cs)
