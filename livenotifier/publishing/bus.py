import logging
from typing import Optional, Protocol

import nats
from nats.aio.client import Client as NATS

log = logging.getLogger(__name__)


class MessageBus(Protocol):
    async def publish(self, subject: str, payload: bytes) -> None: ...


class NatsBus:
    def __init__(self, url: str):
        self.url = url
        self._nc: Optional[NATS] = None

    async def connect(self) -> NATS:
        async def _disconnected():
            log.warning("Lost connection to NATS; waiting for reconnect")

        async def _reconnected():
            log.info("Reconnected to NATS at %s", self.url)

        self._nc = await nats.connect(
            servers=[self.url],
            ping_interval=20,
            max_outstanding_pings=5,
            disconnected_cb=_disconnected,
            reconnected_cb=_reconnected,
        )
        log.info("Connected to NATS at %s", self.url)
        return self._nc

    @property
    def connection(self) -> NATS:
        if self._nc is None:
            raise RuntimeError("NATS bus is not connected")
        return self._nc

    def jetstream(self):
        return self.connection.jetstream()

    async def publish(self, subject: str, payload: bytes) -> None:
        await self.connection.publish(subject, payload)

    async def close(self) -> None:
        if self._nc is not None and not self._nc.is_closed:
            try:
                await self._nc.drain()
            except Exception as err:
                log.debug("Error draining NATS connection during shutdown: %s", err)
        self._nc = None
