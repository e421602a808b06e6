"""Shared fixtures: an in-memory metrics transport and metrics documents."""

from __future__ import annotations

from typing import Any

import pytest

from coreset_perf.errors import PeerUnreachable


def timer_json(mean: float = 10.0, count: int = 5, rate: float = 0.2) -> dict[str, Any]:
    return {
        "type": "timer",
        "count": count,
        "mean": mean,
        "min": mean / 2,
        "max": mean * 2,
        "stddev": 1.5,
        "median": mean,
        "75%": mean * 1.25,
        "95%": mean * 1.75,
        "99%": mean * 1.9,
        "mean_rate": rate,
    }


def metrics_doc(applied: int = 100, close_mean: float = 1000.0, loadgen: bool = True) -> dict[str, Any]:
    metrics = {
        "ledger.transaction.apply": timer_json(mean=0.5, count=applied),
        "ledger.transaction.count": {
            "type": "histogram", "count": 10, "mean": 20.0, "min": 0.0, "max": 40.0,
            "stddev": 4.0, "median": 20.0, "75%": 25.0, "95%": 35.0, "99%": 39.0,
        },
        "scp.timing.nominated": timer_json(mean=100.0),
        "scp.timing.externalized": timer_json(mean=200.0),
        "ledger.ledger.close": timer_json(mean=close_mean, rate=0.2),
    }
    if loadgen:
        metrics["loadgen.step.submit"] = timer_json(mean=3.0, rate=7.5)
    return {"metrics": metrics}


class FakeTransport:
    """Metrics transport backed by dicts; records every call in order."""

    def __init__(self) -> None:
        self.docs: dict[str, dict[str, Any]] = {}
        self.unreachable: set[str] = set()
        self.reset_unreachable: set[str] = set()
        self.calls: list[tuple[str, str]] = []

    def set_doc(self, address: str, doc: dict[str, Any]) -> None:
        self.docs[address] = doc

    async def get_metrics(self, address: str) -> dict[str, Any]:
        self.calls.append(("get", address))
        if address in self.unreachable:
            raise PeerUnreachable(address, "timed out")
        return self.docs.get(address, metrics_doc())

    async def clear_metrics(self, address: str) -> None:
        self.calls.append(("clear", address))
        if address in self.unreachable or address in self.reset_unreachable:
            raise PeerUnreachable(address, "timed out")


@pytest.fixture
def transport():
    return FakeTransport()
