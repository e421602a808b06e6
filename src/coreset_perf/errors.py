"""Error taxonomy for metrics collection and artifact export."""

from __future__ import annotations


class HarnessError(Exception):
    """Base class for all harness errors."""


class PeerUnreachable(HarnessError):
    """A peer did not answer a metrics reset or snapshot request."""

    def __init__(self, address: str, reason: str = "") -> None:
        self.address = address
        self.reason = reason
        msg = f"peer {address} unreachable"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class MalformedMetrics(PeerUnreachable):
    """A peer answered, but its metrics document could not be used.

    Handled exactly like an unreachable peer: no row for that round.
    """


class WriteError(HarnessError):
    """A destination failed to persist an artifact."""

    def __init__(self, namespace: str, artifact_name: str, reason: str = "") -> None:
        self.namespace = namespace
        self.artifact_name = artifact_name
        self.reason = reason
        msg = f"failed to write {namespace}/{artifact_name}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)
