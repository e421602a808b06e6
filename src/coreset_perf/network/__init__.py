"""Networking layer — core sets, peer identity and metrics transport."""

from coreset_perf.network.cfg import NetworkCfg, TopologySnapshot, make_network_nonce
from coreset_perf.network.coreset import (
    CatchupComplete,
    CatchupMode,
    CatchupNone,
    CatchupRecent,
    CoreSet,
    CoreSetOptions,
    make_core_set,
    make_live_core_set,
)
from coreset_perf.network.peer import Peer, peer_dns_name, peer_short_name
from coreset_perf.network.transport import HttpMetricsTransport, MetricsTransport

__all__ = [
    "CatchupComplete",
    "CatchupMode",
    "CatchupNone",
    "CatchupRecent",
    "CoreSet",
    "CoreSetOptions",
    "HttpMetricsTransport",
    "MetricsTransport",
    "NetworkCfg",
    "Peer",
    "TopologySnapshot",
    "make_core_set",
    "make_live_core_set",
    "make_network_nonce",
    "peer_dns_name",
    "peer_short_name",
]
