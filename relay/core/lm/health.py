"""
Endpoint Health Probe for the llama.cpp server.

Polls GET /health in the background and caches the last answer, so a
/health chat command can be answered locally without touching the endpoint
or waiting on the dispatch slot.

llama.cpp answers:
    200 {"status": "ok", "slots_idle": n, "slots_processing": n}
    503 {"status": "loading model"} or {"status": "no slot available", ...}
    500 {"status": "error"}
"""
import asyncio
import time
from typing import Callable, Optional

import httpx

from ..config import LlamaConfig
from ..logger import log, Component
from .types import UNCHECKED, EndpointHealth, EndpointStatus


class EndpointProbe:
    """
    Background health checker for the LLM endpoint.
    """

    def __init__(
        self,
        config: Optional[LlamaConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
        timeout: float = 5.0,
    ):
        self.config = config or LlamaConfig()
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._clock = clock
        self._snapshot: EndpointHealth = UNCHECKED
        self._task: Optional[asyncio.Task] = None

    @property
    def snapshot(self) -> EndpointHealth:
        """Last known endpoint health (UNCHECKED before the first probe)."""
        return self._snapshot

    async def check(self) -> EndpointHealth:
        """Probe the endpoint once and cache the result."""
        url = f"{self.config.base_url.rstrip('/')}/health"
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as e:
            log.warn(f"Health check request failed: {e}", component=Component.HEALTH)
            self._snapshot = EndpointHealth(
                status=EndpointStatus.UNREACHABLE,
                checked_at=self._clock(),
                error=str(e) or type(e).__name__,
            )
            return self._snapshot

        self._snapshot = self._parse(response)
        log.health("Health check response",
                   http=response.status_code,
                   status=self._snapshot.status.value)
        return self._snapshot

    def _parse(self, response: httpx.Response) -> EndpointHealth:
        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            return EndpointHealth(
                status=EndpointStatus.UNKNOWN,
                http_status=response.status_code,
                checked_at=self._clock(),
                error="unparseable health response",
            )

        raw = str(body.get("status", ""))
        try:
            status = EndpointStatus(raw)
        except ValueError:
            status = EndpointStatus.UNKNOWN
        if status in (EndpointStatus.UNREACHABLE, EndpointStatus.UNCHECKED):
            # Those are ours, never the server's
            status = EndpointStatus.UNKNOWN

        return EndpointHealth(
            status=status,
            http_status=response.status_code,
            slots_idle=_as_int(body.get("slots_idle")),
            slots_processing=_as_int(body.get("slots_processing")),
            raw_status=raw,
            checked_at=self._clock(),
        )

    async def run(self, interval: Optional[float] = None):
        """Probe forever, every `interval` seconds."""
        interval = interval or self.config.health_interval
        while True:
            await self.check()
            await asyncio.sleep(interval)

    def start(self):
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="endpoint-probe")

    async def stop(self):
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def close(self):
        await self.stop()
        await self._client.aclose()


def _as_int(value) -> Optional[int]:
    return value if isinstance(value, int) and not isinstance(value, bool) else None
