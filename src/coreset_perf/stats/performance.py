"""Performance aggregation — windowed measurement rounds across all peers.

A round is: clear metrics on every live peer, run the workload, snapshot
every live peer, and append one ``PerformanceRow`` per peer to that peer's
history. Histories are keyed by short name so peers that later leave the
topology keep their rows for export.

Rounds are serialized per reporter. Per-peer resets and snapshots within a
round run concurrently; history appends happen only on the coordinating
task, in topology order.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Mapping, Union

from coreset_perf.errors import PeerUnreachable
from coreset_perf.network.cfg import NetworkCfg, TopologySnapshot
from coreset_perf.network.peer import Peer
from coreset_perf.network.transport import MetricsTransport
from coreset_perf.stats.metrics import MetricsSnapshot, Timer, reset, snapshot

logger = logging.getLogger(__name__)

Workload = Callable[[], Union[Awaitable[Any], Any]]


@dataclass(frozen=True)
class WorkloadParams:
    """Caller-supplied description of what a round measured."""

    txtype: str
    accounts: int = 0
    expected_txs: int = 0
    tx_rate: int = 0
    batch_size: int = 0


@dataclass(frozen=True)
class PerformanceRow:
    """One peer's measurements for one round."""

    time: datetime
    txtype: str
    accounts: int
    expected_txs: int
    applied_txs: int
    tx_rate: int
    batch_size: int
    txs_per_ledger_mean: float
    txs_per_ledger_stddev: float
    load_step_rate: float | None
    load_step_stddev: float | None
    nominate: Timer
    prepare: Timer
    close: Timer
    mean_rate: float

    @classmethod
    def build(
        cls,
        metrics: MetricsSnapshot,
        params: WorkloadParams,
        time: datetime | None = None,
    ) -> PerformanceRow:
        loadgen = metrics.loadgen_step_submit
        return cls(
            time=time or datetime.now(timezone.utc),
            txtype=params.txtype,
            accounts=params.accounts,
            expected_txs=params.expected_txs,
            applied_txs=metrics.applied_txs,
            tx_rate=params.tx_rate,
            batch_size=params.batch_size,
            txs_per_ledger_mean=metrics.tx_count.mean,
            txs_per_ledger_stddev=metrics.tx_count.stddev,
            load_step_rate=loadgen.mean_rate if loadgen else None,
            load_step_stddev=loadgen.stddev if loadgen else None,
            nominate=Timer.from_generic(metrics.scp_nominated),
            prepare=Timer.from_generic(metrics.scp_externalized),
            close=Timer.from_generic(metrics.ledger_close),
            mean_rate=metrics.ledger_close.mean_rate,
        )


@dataclass
class RoundResult:
    """Outcome of one measurement round.

    ``reset_topology`` is the set of peers that were cleared,
    ``snapshot_topology`` the set that was measured. They differ when the
    topology changed while the workload ran; peers only in the latter were
    measured without a reset.
    """

    index: int
    params: WorkloadParams
    reset_topology: TopologySnapshot
    snapshot_topology: TopologySnapshot
    rows: dict[str, PerformanceRow] = field(default_factory=dict)
    failures: dict[str, PeerUnreachable] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return not self.failures

    @property
    def unreset_peers(self) -> tuple[str, ...]:
        """Peers measured this round that never received its reset."""
        cleared = set(self.reset_topology.short_names)
        return tuple(n for n in self.snapshot_topology.short_names if n not in cleared)


class PerformanceReporter:
    """Runs measurement rounds and owns the per-peer performance history.

    Usage::

        reporter = PerformanceReporter(network, transport)
        await reporter.record_performance_metrics(
            "pay", accounts=1000, expected_txs=10000, tx_rate=100,
            batch_size=100, workload=run_load,
        )
        dump_performance_metrics(reporter, destination)
    """

    def __init__(self, network: NetworkCfg, transport: MetricsTransport) -> None:
        self._network = network
        self._transport = transport
        self._round_lock = asyncio.Lock()
        # short name -> rows in round order; lives as long as the reporter
        self._history: dict[str, list[PerformanceRow]] = {}
        self._rounds: list[RoundResult] = []

    @property
    def network(self) -> NetworkCfg:
        return self._network

    @property
    def rounds(self) -> tuple[RoundResult, ...]:
        return tuple(self._rounds)

    # ── Measurement ──────────────────────────────────────────────

    async def get_performance_metrics(
        self,
        peer: Peer,
        params: WorkloadParams,
    ) -> PerformanceRow:
        """Snapshot one peer and build its row. Raises ``PeerUnreachable``."""
        metrics = await snapshot(self._transport, peer)
        return PerformanceRow.build(metrics, params)

    async def record_performance_metrics(
        self,
        txtype: str,
        accounts: int = 0,
        expected_txs: int = 0,
        tx_rate: int = 0,
        batch_size: int = 0,
        workload: Workload | None = None,
    ) -> RoundResult:
        """Run one round: reset all peers, run ``workload``, record rows.

        An unreachable peer gets no row for the round and is reported in
        ``RoundResult.failures``; other peers are unaffected. A peer whose
        reset failed is not measured, since its metrics would span rounds.
        """
        params = WorkloadParams(
            txtype=txtype,
            accounts=accounts,
            expected_txs=expected_txs,
            tx_rate=tx_rate,
            batch_size=batch_size,
        )
        async with self._round_lock:
            index = len(self._rounds)
            before = self._network.snapshot()
            logger.info(
                "Round %d (%s): resetting %d peers (topology v%d)",
                index, txtype, len(before), before.version,
            )
            failures = await self._reset_all(before)

            if workload is not None:
                result = workload()
                if inspect.isawaitable(result):
                    await result

            after = self._network.snapshot()
            targets = tuple(p for p in after.peers if p.short_name not in failures)
            outcomes = await asyncio.gather(
                *(self.get_performance_metrics(p, params) for p in targets),
                return_exceptions=True,
            )
            # history stays untouched unless the whole round can be recorded
            for outcome in outcomes:
                if isinstance(outcome, BaseException) and not isinstance(outcome, PeerUnreachable):
                    raise outcome

            round_result = RoundResult(
                index=index,
                params=params,
                reset_topology=before,
                snapshot_topology=after,
            )
            round_result.failures.update(failures)
            for peer, outcome in zip(targets, outcomes):
                name = peer.short_name
                if isinstance(outcome, PeerUnreachable):
                    logger.warning("Round %d: no metrics from %s: %s", index, name, outcome)
                    round_result.failures[name] = outcome
                    continue
                self._history.setdefault(name, []).append(outcome)
                round_result.rows[name] = outcome

            if round_result.unreset_peers:
                logger.warning(
                    "Round %d: peers joined during workload and were not reset: %s",
                    index, ", ".join(round_result.unreset_peers),
                )

            self._rounds.append(round_result)
            logger.info(
                "Round %d (%s): recorded %d rows, %d peers failed",
                index, txtype, len(round_result.rows), len(round_result.failures),
            )
            return round_result

    async def _reset_all(self, topology: TopologySnapshot) -> dict[str, PeerUnreachable]:
        outcomes = await asyncio.gather(
            *(reset(self._transport, p) for p in topology.peers),
            return_exceptions=True,
        )
        failures: dict[str, PeerUnreachable] = {}
        for peer, outcome in zip(topology.peers, outcomes):
            if isinstance(outcome, PeerUnreachable):
                logger.warning("Could not reset metrics on %s: %s", peer.short_name, outcome)
                failures[peer.short_name] = outcome
            elif isinstance(outcome, BaseException):
                raise outcome
        return failures

    # ── History access ───────────────────────────────────────────

    def history(self) -> Mapping[str, tuple[PerformanceRow, ...]]:
        """Read-only view of every peer's rows, keyed by short name."""
        return MappingProxyType({name: tuple(rows) for name, rows in self._history.items()})

    def rows_for(self, short_name: str) -> tuple[PerformanceRow, ...] | None:
        rows = self._history.get(short_name)
        return tuple(rows) if rows is not None else None

    def summary(self) -> dict[str, dict[str, Any]]:
        """Per-peer round count and most recent ledger-close figures."""
        out: dict[str, dict[str, Any]] = {}
        for name, rows in self._history.items():
            last = rows[-1]
            out[name] = {
                "rounds": len(rows),
                "last_txtype": last.txtype,
                "last_close_mean": last.close.mean,
                "last_mean_rate": last.mean_rate,
            }
        return out
