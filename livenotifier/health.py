import asyncio
import logging
from typing import Optional, Set

import httpx

log = logging.getLogger(__name__)


class HealthChecker:
    """Fire-and-forget HEAD pings to an external health-check URL."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self._client = client or httpx.AsyncClient(timeout=10)
        self._tasks: Set[asyncio.Task] = set()

    def ping(self, url: Optional[str]) -> None:
        if not url:
            return
        task = asyncio.create_task(self._ping(url))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _ping(self, url: str) -> None:
        try:
            await self._client.head(url)
        except httpx.HTTPError as e:
            log.error("Health check failed url=%s error=%s", url, e)

    async def wait(self) -> None:
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def aclose(self) -> None:
        await self.wait()
        await self._client.aclose()
