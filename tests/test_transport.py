"""Tests for the HTTP metrics transport against a local aiohttp server."""

from __future__ import annotations

import asyncio

import pytest
from aiohttp import web
from aiohttp import test_utils

from conftest import metrics_doc
from coreset_perf.errors import MalformedMetrics, PeerUnreachable
from coreset_perf.network.cfg import NetworkCfg
from coreset_perf.network.coreset import make_core_set
from coreset_perf.network.transport import HttpMetricsTransport
from coreset_perf.stats.metrics import reset, snapshot


def make_app(state: dict) -> web.Application:
    async def metrics(request: web.Request) -> web.Response:
        if state.get("delay"):
            await asyncio.sleep(state["delay"])
        if state.get("status", 200) != 200:
            return web.Response(status=state["status"])
        if state.get("garbage"):
            return web.Response(text="<html>oops</html>")
        return web.json_response(metrics_doc(applied=state.get("applied", 0)))

    async def clearmetrics(request: web.Request) -> web.Response:
        state["applied"] = 0
        state["cleared"] = state.get("cleared", 0) + 1
        return web.Response(text="Cleared all metrics!")

    app = web.Application()
    app.router.add_get("/metrics", metrics)
    app.router.add_get("/clearmetrics", clearmetrics)
    return app


def local_transport(server: test_utils.TestServer, timeout: float = 5.0) -> HttpMetricsTransport:
    return HttpMetricsTransport(
        timeout=timeout,
        base_url=lambda address: f"http://127.0.0.1:{server.port}",
    )


@pytest.fixture
def peer():
    net = NetworkCfg([make_core_set("core", 1, 1)], nonce="ssc-test")
    return net.get_peer(net.core_set("core"), 0)


class TestHttpTransport:
    @pytest.mark.asyncio
    async def test_get_metrics(self, peer):
        state = {"applied": 17}
        async with test_utils.TestServer(make_app(state)) as server:
            async with local_transport(server) as transport:
                snap = await snapshot(transport, peer)
        assert snap.applied_txs == 17

    @pytest.mark.asyncio
    async def test_clear_then_get(self, peer):
        state = {"applied": 17}
        async with test_utils.TestServer(make_app(state)) as server:
            async with local_transport(server) as transport:
                await reset(transport, peer)
                snap = await snapshot(transport, peer)
        assert state["cleared"] == 1
        assert snap.applied_txs == 0

    @pytest.mark.asyncio
    async def test_http_error_is_unreachable(self, peer):
        async with test_utils.TestServer(make_app({"status": 503})) as server:
            async with local_transport(server) as transport:
                with pytest.raises(PeerUnreachable):
                    await transport.get_metrics(peer.dns_name)

    @pytest.mark.asyncio
    async def test_timeout_is_unreachable(self, peer):
        async with test_utils.TestServer(make_app({"delay": 1.0})) as server:
            async with local_transport(server, timeout=0.1) as transport:
                with pytest.raises(PeerUnreachable) as exc_info:
                    await transport.get_metrics(peer.dns_name)
        assert exc_info.value.address == peer.dns_name

    @pytest.mark.asyncio
    async def test_invalid_json(self, peer):
        async with test_utils.TestServer(make_app({"garbage": True})) as server:
            async with local_transport(server) as transport:
                with pytest.raises(MalformedMetrics):
                    await transport.get_metrics(peer.dns_name)

    @pytest.mark.asyncio
    async def test_connection_refused(self, peer):
        transport = HttpMetricsTransport(base_url=lambda a: "http://127.0.0.1:1")
        await transport.start()
        try:
            with pytest.raises(PeerUnreachable):
                await transport.clear_metrics(peer.dns_name)
        finally:
            await transport.stop()

    @pytest.mark.asyncio
    async def test_not_started(self, peer):
        transport = HttpMetricsTransport()
        with pytest.raises(RuntimeError):
            await transport.get_metrics(peer.dns_name)

    def test_default_url(self):
        transport = HttpMetricsTransport(port=11626)
        assert transport._base_url("host") == "http://host:11626"
