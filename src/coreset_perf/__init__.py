"""Coreset-perf — peer addressing and performance telemetry for test networks."""

__version__ = "0.1.0"
