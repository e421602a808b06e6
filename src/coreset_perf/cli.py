"""CLI entry point for a single observation round against a running network.

The workload is external (load generators, catchup, ...); this command
clears metrics on every peer, waits ``--duration`` seconds while that
workload runs, snapshots every peer and writes the ``.perf`` artifacts.

Usage:
    coreset-perf --config network.json --label pay --duration 300
    coreset-perf --config network.json --label idle --output ./perf --nonce ssc-1a2b3c4d
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from coreset_perf.config import HarnessConfig, load_config
from coreset_perf.network.transport import HttpMetricsTransport
from coreset_perf.stats.export import ExportResult, dump_performance_metrics
from coreset_perf.stats.performance import PerformanceReporter, RoundResult
from coreset_perf.storage.destination import LocalDestination


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Measure per-peer performance over one workload window",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--config", "-c", required=True, help="Path to JSON network config")
    parser.add_argument("--label", default="observe", help="Workload label (txtype column)")
    parser.add_argument("--duration", type=float, default=60.0, help="Seconds to observe")
    parser.add_argument("--accounts", type=int, default=0)
    parser.add_argument("--expected-txs", type=int, default=0)
    parser.add_argument("--tx-rate", type=int, default=0)
    parser.add_argument("--batch-size", type=int, default=0)
    parser.add_argument("--output", "-o", help="Artifact root directory (overrides config)")
    parser.add_argument("--nonce", help="Run nonce (overrides config)")
    parser.add_argument(
        "--log-level", "-l",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )
    return parser.parse_args(argv)


async def run_round(
    config: HarnessConfig,
    args: argparse.Namespace,
) -> tuple[RoundResult, ExportResult]:
    async with HttpMetricsTransport(
        port=config.metrics_port,
        timeout=config.timeout_seconds,
    ) as transport:
        reporter = PerformanceReporter(config.network, transport)
        result = await reporter.record_performance_metrics(
            args.label,
            accounts=args.accounts,
            expected_txs=args.expected_txs,
            tx_rate=args.tx_rate,
            batch_size=args.batch_size,
            workload=lambda: asyncio.sleep(args.duration),
        )
    exported = dump_performance_metrics(reporter, LocalDestination(config.output_dir))
    return result, exported


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        config = load_config(args.config, {"output_dir": args.output, "nonce": args.nonce})
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    network = config.network
    print("=" * 60)
    print("  Coreset Performance Round")
    print("=" * 60)
    print(f"  Nonce: {network.nonce}")
    print(f"  Namespace: {network.namespace}")
    print(f"  Core sets: {', '.join(cs.name for cs in network.core_sets)}")
    print(f"  Live peers: {len(network.snapshot())}")
    print(f"  Window: {args.duration}s ({args.label})")

    result, exported = asyncio.run(run_round(config, args))

    print(f"\n  Rows recorded: {len(result.rows)}")
    for name, err in result.failures.items():
        print(f"  Unreachable: {name} ({err.reason})")
    for name in exported.written:
        print(f"  Wrote: {name}")
    for name, err in exported.failures.items():
        print(f"  Export failed: {name} ({err.reason})")

    return 0 if exported.ok else 1


if __name__ == "__main__":
    sys.exit(main())
