"""Storage sinks for exported artifacts."""

from coreset_perf.storage.destination import Destination, LocalDestination

__all__ = ["Destination", "LocalDestination"]
