"""Per-peer metrics snapshots, performance rounds and report export."""

from coreset_perf.stats.export import (
    COLUMNS,
    ExportResult,
    dump_performance_metrics,
    export_peer,
    parse_performance_table,
    render_performance_table,
)
from coreset_perf.stats.metrics import GenericTimer, MetricsSnapshot, Timer
from coreset_perf.stats.performance import (
    PerformanceReporter,
    PerformanceRow,
    RoundResult,
    WorkloadParams,
)

__all__ = [
    "COLUMNS",
    "ExportResult",
    "GenericTimer",
    "MetricsSnapshot",
    "PerformanceReporter",
    "PerformanceRow",
    "RoundResult",
    "Timer",
    "WorkloadParams",
    "dump_performance_metrics",
    "export_peer",
    "parse_performance_table",
    "render_performance_table",
]
