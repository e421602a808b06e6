"""Performance report export — one tab-delimited ``.perf`` table per peer.

Each table has a header row (``COLUMNS``) and one line per round. Absent
load-generator figures are written as ``NaN``; this module is the only
place that turns absence into NaN and back.
"""

from __future__ import annotations

import csv
import io
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Mapping, Sequence

from coreset_perf.errors import WriteError
from coreset_perf.network.peer import Peer
from coreset_perf.stats.metrics import Timer
from coreset_perf.stats.performance import PerformanceReporter, PerformanceRow
from coreset_perf.storage.destination import Destination

logger = logging.getLogger(__name__)

NAN_LITERAL = "NaN"
ARTIFACT_SUFFIX = ".perf"

_TIMER_FIELDS = ("mean", "min", "max", "stddev", "median", "p75", "p95", "p99")
_TIMERS = ("nominate", "prepare", "close")

COLUMNS = [
    "time",
    "txtype",
    "accounts",
    "expected_txs",
    "applied_txs",
    "tx_rate",
    "batch_size",
    "txs_per_ledger_mean",
    "txs_per_ledger_stddev",
    "load_step_rate",
    "load_step_stddev",
    *(f"{timer}_{f}" for timer in _TIMERS for f in _TIMER_FIELDS),
    "mean_rate",
]

_INT_COLUMNS = ("accounts", "expected_txs", "applied_txs", "tx_rate", "batch_size")
_FLOAT_COLUMNS = ("txs_per_ledger_mean", "txs_per_ledger_stddev", "mean_rate")
_OPTIONAL_COLUMNS = ("load_step_rate", "load_step_stddev")


def artifact_name(short_name: str) -> str:
    return f"{short_name}{ARTIFACT_SUFFIX}"


def _fmt_float(value: float | None) -> str:
    if value is None or math.isnan(value):
        return NAN_LITERAL
    return repr(float(value))


def _row_to_record(row: PerformanceRow) -> dict[str, str]:
    record = {
        "time": row.time.isoformat(),
        "txtype": row.txtype,
    }
    for col in _INT_COLUMNS:
        record[col] = str(getattr(row, col))
    for col in _FLOAT_COLUMNS + _OPTIONAL_COLUMNS:
        record[col] = _fmt_float(getattr(row, col))
    for timer in _TIMERS:
        t = getattr(row, timer)
        for f in _TIMER_FIELDS:
            record[f"{timer}_{f}"] = _fmt_float(getattr(t, f))
    return record


def render_performance_table(rows: Iterable[PerformanceRow]) -> str:
    """Serialize rows to the tab-delimited ``.perf`` format."""
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=COLUMNS, delimiter="\t", lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow(_row_to_record(row))
    return buf.getvalue()


def _parse_optional(text: str) -> float | None:
    value = float(text)
    return None if math.isnan(value) else value


def parse_performance_table(text: str) -> list[PerformanceRow]:
    """Parse a ``.perf`` table back into rows.

    Raises:
        ValueError: the header does not match ``COLUMNS`` or a field
            cannot be parsed.
    """
    reader = csv.DictReader(io.StringIO(text), delimiter="\t")
    if reader.fieldnames != COLUMNS:
        raise ValueError(f"unexpected performance table header: {reader.fieldnames}")

    rows: list[PerformanceRow] = []
    for rec in reader:
        # DictReader fills short lines with None and files extra fields under None
        if None in rec or any(rec[col] is None for col in COLUMNS):
            raise ValueError(
                f"performance table line {reader.line_num}: expected {len(COLUMNS)} fields"
            )
        kwargs: dict[str, Any] = {
            "time": datetime.fromisoformat(rec["time"]),
            "txtype": rec["txtype"],
        }
        for col in _INT_COLUMNS:
            kwargs[col] = int(rec[col])
        for col in _FLOAT_COLUMNS:
            kwargs[col] = float(rec[col])
        for col in _OPTIONAL_COLUMNS:
            kwargs[col] = _parse_optional(rec[col])
        for timer in _TIMERS:
            kwargs[timer] = Timer(**{f: float(rec[f"{timer}_{f}"]) for f in _TIMER_FIELDS})
        rows.append(PerformanceRow(**kwargs))
    return rows


# ── Export ───────────────────────────────────────────────────────


@dataclass
class ExportResult:
    """Artifacts written and per-peer write failures of one dump."""

    written: list[str] = field(default_factory=list)
    failures: dict[str, WriteError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures


def export_peer(
    history: Mapping[str, Sequence[PerformanceRow]],
    peer: Peer,
    destination: Destination,
    namespace: str,
) -> str | None:
    """Write one peer's history. Returns the artifact name, or None if the
    peer was never measured.

    Raises:
        WriteError: the destination failed.
    """
    rows = history.get(peer.short_name)
    if rows is None:
        return None
    name = artifact_name(peer.short_name)
    destination.write_string(namespace, name, render_performance_table(rows))
    logger.info("Wrote %s/%s (%d rows)", namespace, name, len(rows))
    return name


def dump_performance_metrics(
    reporter: PerformanceReporter,
    destination: Destination,
) -> ExportResult:
    """Export every known peer's history, live or since removed.

    Call once recording is finished. A failed write is logged and recorded;
    the remaining peers are still exported.
    """
    network = reporter.network
    history = reporter.history()
    result = ExportResult()
    for peer in network.known_peers():
        try:
            name = export_peer(history, peer, destination, network.namespace)
        except WriteError as exc:
            logger.warning("Export failed for %s: %s", peer.short_name, exc)
            result.failures[peer.short_name] = exc
            continue
        if name is not None:
            result.written.append(name)
    return result
