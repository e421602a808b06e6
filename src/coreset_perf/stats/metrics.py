"""Peer metrics snapshots.

A node serves its metrics registry as::

    {"metrics": {"ledger.ledger.close": {"type": "timer", "count": 12,
                 "mean": 1023.4, "min": ..., "max": ..., "stddev": ...,
                 "median": ..., "75%": ..., "95%": ..., "99%": ...,
                 "mean_rate": 0.19, ...}, ...}}

Only the handful of metrics the performance rows need are extracted.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

from coreset_perf.errors import MalformedMetrics
from coreset_perf.network.peer import Peer
from coreset_perf.network.transport import MetricsTransport

logger = logging.getLogger(__name__)

TX_APPLY = "ledger.transaction.apply"
TX_COUNT = "ledger.transaction.count"
LOADGEN_STEP_SUBMIT = "loadgen.step.submit"
SCP_NOMINATED = "scp.timing.nominated"
SCP_EXTERNALIZED = "scp.timing.externalized"
LEDGER_CLOSE = "ledger.ledger.close"


@dataclass(frozen=True)
class GenericTimer:
    """Raw timer/histogram entry as reported by a node."""

    count: int
    mean: float
    min: float
    max: float
    stddev: float
    median: float
    p75: float
    p95: float
    p99: float
    mean_rate: float

    @classmethod
    def from_json(cls, address: str, name: str, raw: Any, histogram: bool = False) -> GenericTimer:
        """Parse one metric entry. Only histograms may omit ``mean_rate``."""
        if not isinstance(raw, dict):
            raise MalformedMetrics(address, f"metric {name} is not an object")

        def num(key: str, default: float | None = None) -> float:
            value = raw.get(key, default)
            if value is None:
                raise MalformedMetrics(address, f"metric {name} lacks {key!r}")
            try:
                result = float(value)
            except (TypeError, ValueError):
                raise MalformedMetrics(address, f"metric {name}.{key} is not numeric") from None
            if math.isnan(result):
                raise MalformedMetrics(address, f"metric {name}.{key} is NaN")
            return result

        return cls(
            count=int(num("count")),
            mean=num("mean"),
            min=num("min"),
            max=num("max"),
            stddev=num("stddev"),
            median=num("median"),
            p75=num("75%"),
            p95=num("95%"),
            p99=num("99%"),
            mean_rate=num("mean_rate", 0.0 if histogram else None),
        )


@dataclass(frozen=True)
class Timer:
    """Immutable summary of a latency distribution."""

    mean: float
    min: float
    max: float
    stddev: float
    median: float
    p75: float
    p95: float
    p99: float

    @classmethod
    def from_generic(cls, t: GenericTimer) -> Timer:
        return cls(
            mean=t.mean,
            min=t.min,
            max=t.max,
            stddev=t.stddev,
            median=t.median,
            p75=t.p75,
            p95=t.p95,
            p99=t.p99,
        )


@dataclass(frozen=True)
class MetricsSnapshot:
    """The metrics of one peer at one point in time."""

    tx_apply: GenericTimer
    tx_count: GenericTimer
    loadgen_step_submit: GenericTimer | None
    scp_nominated: GenericTimer
    scp_externalized: GenericTimer
    ledger_close: GenericTimer

    @property
    def applied_txs(self) -> int:
        return self.tx_apply.count

    @classmethod
    def from_json(cls, address: str, doc: dict[str, Any]) -> MetricsSnapshot:
        """Parse a ``/metrics`` document.

        Raises:
            MalformedMetrics: a required metric is missing or unparseable.
        """
        metrics = doc.get("metrics", doc)
        if not isinstance(metrics, dict):
            raise MalformedMetrics(address, "'metrics' is not an object")

        def required(name: str, histogram: bool = False) -> GenericTimer:
            if name not in metrics:
                raise MalformedMetrics(address, f"missing metric {name}")
            return GenericTimer.from_json(address, name, metrics[name], histogram)

        # loadgen metrics only exist once a load generator has run
        loadgen = None
        if LOADGEN_STEP_SUBMIT in metrics:
            loadgen = GenericTimer.from_json(address, LOADGEN_STEP_SUBMIT, metrics[LOADGEN_STEP_SUBMIT])

        return cls(
            tx_apply=required(TX_APPLY),
            tx_count=required(TX_COUNT, histogram=True),
            loadgen_step_submit=loadgen,
            scp_nominated=required(SCP_NOMINATED),
            scp_externalized=required(SCP_EXTERNALIZED),
            ledger_close=required(LEDGER_CLOSE),
        )


async def snapshot(transport: MetricsTransport, peer: Peer) -> MetricsSnapshot:
    """Fetch and parse a peer's current metrics."""
    doc = await transport.get_metrics(peer.dns_name)
    return MetricsSnapshot.from_json(peer.dns_name, doc)


async def reset(transport: MetricsTransport, peer: Peer) -> None:
    """Clear a peer's accumulated metrics."""
    await transport.clear_metrics(peer.dns_name)
    logger.debug("Metrics cleared on %s", peer.short_name)
