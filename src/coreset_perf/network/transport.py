"""Transport layer — fetching and clearing metrics on peers over HTTP.

Every node serves its metrics registry as JSON on ``/metrics`` and resets
it on ``/clearmetrics``. Connection errors, timeouts and non-200 answers
all surface as ``PeerUnreachable``; retries, if wanted, belong in a
transport wrapped around this one.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Protocol

from aiohttp import ClientError, ClientSession, ClientTimeout

from coreset_perf.errors import MalformedMetrics, PeerUnreachable

logger = logging.getLogger(__name__)

DEFAULT_METRICS_PORT = 11626
DEFAULT_TIMEOUT_SECONDS = 10.0


class MetricsTransport(Protocol):
    """Access to a peer's metrics registry."""

    async def get_metrics(self, address: str) -> dict[str, Any]:
        ...

    async def clear_metrics(self, address: str) -> None:
        ...


class HttpMetricsTransport:
    """aiohttp-based metrics transport.

    Usage::

        async with HttpMetricsTransport(port=11626) as transport:
            doc = await transport.get_metrics(peer.dns_name)

    Args:
        port: HTTP admin port of the nodes.
        timeout: Total per-request timeout in seconds.
        base_url: Optional mapping from peer address to base URL, for
            port-forwarded or proxied clusters.
    """

    def __init__(
        self,
        port: int = DEFAULT_METRICS_PORT,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        base_url: Callable[[str], str] | None = None,
    ) -> None:
        self.port = port
        self.timeout = ClientTimeout(total=timeout)
        self._base_url = base_url or self._default_base_url
        self._session: ClientSession | None = None

    async def start(self) -> None:
        if self._session is None:
            self._session = ClientSession(timeout=self.timeout)

    async def stop(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> HttpMetricsTransport:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    async def get_metrics(self, address: str) -> dict[str, Any]:
        body = await self._get(address, "/metrics", parse_json=True)
        if not isinstance(body, dict):
            raise MalformedMetrics(address, "metrics document is not a JSON object")
        return body

    async def clear_metrics(self, address: str) -> None:
        await self._get(address, "/clearmetrics")

    def _default_base_url(self, address: str) -> str:
        return f"http://{address}:{self.port}"

    async def _get(self, address: str, path: str, parse_json: bool = False) -> Any:
        if self._session is None:
            raise RuntimeError("Transport not started")

        url = f"{self._base_url(address)}{path}"
        try:
            async with self._session.get(url) as resp:
                if resp.status != 200:
                    raise PeerUnreachable(address, f"GET {path} returned HTTP {resp.status}")
                if parse_json:
                    return await resp.json(content_type=None)
                await resp.read()
                return None
        except (ClientError, asyncio.TimeoutError) as exc:
            logger.debug("GET %s failed", url, exc_info=True)
            raise PeerUnreachable(address, f"GET {path}: {exc!r}") from exc
        except ValueError as exc:
            raise MalformedMetrics(address, f"invalid JSON from {path}") from exc
