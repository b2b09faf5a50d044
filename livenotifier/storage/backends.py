import os
from pathlib import Path
from typing import Optional, Protocol

from nats.js.errors import BucketNotFoundError, KeyNotFoundError


class StateBackend(Protocol):
    async def read(self) -> Optional[bytes]: ...

    async def write(self, payload: bytes) -> None: ...


class FileStateBackend:
    def __init__(self, path: Path):
        self.path = Path(path)

    async def read(self) -> Optional[bytes]:
        if not self.path.exists():
            return None
        return self.path.read_bytes()

    async def write(self, payload: bytes) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        with tmp.open("wb") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        tmp.replace(self.path)


class NatsKVStateBackend:
    """Keeps the whole state blob under a single key of a JetStream KV bucket."""

    KEY = "state"

    def __init__(self, js, bucket: str):
        self._js = js
        self.bucket = bucket
        self._kv = None

    async def _bucket(self):
        if self._kv is None:
            try:
                self._kv = await self._js.key_value(self.bucket)
            except BucketNotFoundError:
                self._kv = await self._js.create_key_value(
                    bucket=self.bucket,
                    description="State store for the livenotifier service.",
                )
        return self._kv

    async def read(self) -> Optional[bytes]:
        kv = await self._bucket()
        try:
            entry = await kv.get(self.KEY)
        except KeyNotFoundError:
            return None
        return entry.value

    async def write(self, payload: bytes) -> None:
        kv = await self._bucket()
        await kv.put(self.KEY, payload)
