"""Core sets — named groups of identically configured peers."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class CatchupNone:
    """Start from the network's current state without replaying history."""

    @property
    def label(self) -> str:
        return "none"


@dataclass(frozen=True)
class CatchupRecent:
    """Replay the most recent ``ledgers`` ledgers before participating."""

    ledgers: int

    def __post_init__(self) -> None:
        if self.ledgers < 0:
            raise ValueError(f"recent catchup window must be >= 0, got {self.ledgers}")

    @property
    def label(self) -> str:
        return f"recent-{self.ledgers}"


@dataclass(frozen=True)
class CatchupComplete:
    """Replay the entire history from genesis."""

    @property
    def label(self) -> str:
        return "complete"


CatchupMode = Union[CatchupNone, CatchupRecent, CatchupComplete]


def parse_catchup_mode(text: str) -> CatchupMode:
    """Parse the config spelling of a catchup mode.

    Accepts ``none``, ``complete`` and ``recent:<ledgers>``.
    """
    value = text.strip().lower()
    if value == "none":
        return CatchupNone()
    if value == "complete":
        return CatchupComplete()
    if value.startswith("recent:"):
        count = value.split(":", 1)[1]
        try:
            return CatchupRecent(int(count))
        except ValueError:
            raise ValueError(f"invalid recent catchup window: {text!r}") from None
    raise ValueError(f"unknown catchup mode: {text!r}")


def label_with_catchup(txtype: str, mode: CatchupMode) -> str:
    """Workload label carrying the catchup mode, e.g. ``sync/recent-1001``."""
    if isinstance(mode, CatchupNone):
        return txtype
    return f"{txtype}/{mode.label}"


@dataclass(frozen=True)
class CoreSetOptions:
    """Shared configuration of every peer in a core set.

    None of these values are interpreted here; they are carried for the
    collaborators that provision nodes and drive workloads.
    """

    node_count: int = 3
    catchup_mode: CatchupMode = field(default_factory=CatchupNone)
    quorum_set: tuple[str, ...] | None = None
    quorum_set_keys: dict[str, str] = field(default_factory=dict)
    history_get_commands: dict[str, str] = field(default_factory=dict)
    peers_dns: tuple[str, ...] = ()
    force_scp: bool = True


@dataclass(frozen=True)
class CoreSet:
    """A named, homogeneous group of peers.

    ``current_count`` peers are live; ordinals run over
    ``range(current_count)``. ``max_size`` bounds how many ever exist.
    """

    name: str
    current_count: int
    max_size: int
    options: CoreSetOptions = field(default_factory=CoreSetOptions)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("core set name must not be empty")
        if self.max_size < 0:
            raise ValueError(f"core set {self.name}: max_size must be >= 0")
        if not 0 <= self.current_count <= self.max_size:
            raise ValueError(
                f"core set {self.name}: current_count {self.current_count} "
                f"outside [0, {self.max_size}]"
            )

    @property
    def catchup_mode(self) -> CatchupMode:
        return self.options.catchup_mode

    @property
    def live_ordinals(self) -> range:
        return range(self.current_count)

    @property
    def known_ordinals(self) -> range:
        return range(self.max_size)

    def with_current_count(self, count: int) -> CoreSet:
        """Return a copy with a different live count."""
        return dataclasses.replace(self, current_count=count)


def make_core_set(
    name: str,
    current_count: int,
    max_size: int,
    options: CoreSetOptions | None = None,
) -> CoreSet:
    return CoreSet(
        name=name,
        current_count=current_count,
        max_size=max_size,
        options=options or CoreSetOptions(),
    )


def make_live_core_set(name: str, options: CoreSetOptions | None = None) -> CoreSet:
    """Core set whose live count equals its configured node count."""
    opts = options or CoreSetOptions()
    return make_core_set(name, opts.node_count, opts.node_count, opts)
