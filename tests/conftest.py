"""Test configuration and common fixtures."""

import asyncio
from typing import Callable, Dict, List, Optional

import pytest

from livenotifier.platforms.models import LivestreamProbe, NotModified, PlatformID
from livenotifier.publishing.publisher import EventPublisher
from livenotifier.scheduling.arbitrator import PriorityArbitrator
from livenotifier.scheduling.poller import PlatformPoller
from livenotifier.storage.state import StateStore


class MemoryBackend:
    """In-memory state backend that counts writes."""

    def __init__(self, raw: Optional[bytes] = None):
        self.raw = raw
        self.writes = 0
        self.fail = False

    async def read(self) -> Optional[bytes]:
        return self.raw

    async def write(self, payload: bytes) -> None:
        if self.fail:
            raise OSError("disk full")
        self.raw = payload
        self.writes += 1


class FakeBus:
    """Message bus double recording every publish."""

    def __init__(self):
        self.sent: List[tuple] = []
        self.fail = False

    async def publish(self, subject: str, payload: bytes) -> None:
        await asyncio.sleep(0)
        if self.fail:
            raise ConnectionError("bus unreachable")
        self.sent.append((subject, payload))


class FakeDetector:
    """Replays scripted results; the last one repeats forever.

    A result is an exception to raise, a probe/None, or a (probe, cursor) tuple.
    """

    method = "scraper"

    def __init__(self, platform: PlatformID, results: list):
        self.platform = platform
        self._results = list(results)
        self.cursors: List[str] = []

    async def check(self, cursor: str):
        self.cursors.append(cursor)
        result = self._results.pop(0) if len(self._results) > 1 else self._results[0]
        if isinstance(result, Exception):
            raise result
        if isinstance(result, tuple):
            return result
        return result, cursor


class EtagDetector:
    """Answers Not Modified while the caller's cursor matches the current etag."""

    method = "api"

    def __init__(self, platform: PlatformID, result: Optional[LivestreamProbe], etag: str):
        self.platform = platform
        self.result = result
        self.etag = etag
        self.cursors: List[str] = []

    async def check(self, cursor: str):
        self.cursors.append(cursor)
        if cursor == self.etag:
            raise NotModified(f"etag {cursor} unchanged")
        return self.result, self.etag


class RecordingHealth:
    def __init__(self):
        self.pings: List[Optional[str]] = []

    def ping(self, url: Optional[str]) -> None:
        self.pings.append(url)


class StopLoop(Exception):
    """Raised by the recording sleep to break out of a poller's run loop."""


class RecordingSleep:
    def __init__(self, limit: int):
        self.calls: List[float] = []
        self.limit = limit

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if len(self.calls) >= self.limit:
            raise StopLoop()


def make_probe(platform: PlatformID = PlatformID.KICK, external_id: str = "42", **kwargs) -> LivestreamProbe:
    fields = dict(title="Stream title", playback_url=f"https://example.com/{external_id}", thumbnail_url="https://example.com/t.jpg")
    fields.update(kwargs)
    return LivestreamProbe(platform=platform, external_id=external_id, **fields)


@pytest.fixture
def backend() -> MemoryBackend:
    """Provide an empty in-memory backend."""
    return MemoryBackend()


@pytest.fixture
def store(backend: MemoryBackend) -> StateStore:
    """Provide a state store over the in-memory backend."""
    return StateStore(backend)


@pytest.fixture
def bus() -> FakeBus:
    return FakeBus()


@pytest.fixture
def publisher(bus: FakeBus) -> EventPublisher:
    return EventPublisher(bus, "archiver.job")


@pytest.fixture
def make_poller(store: StateStore, publisher: EventPublisher) -> Callable[..., PlatformPoller]:
    """Build pollers that share one store, arbitrator and publisher."""
    priorities: Dict[PlatformID, int] = {}
    arbitrator = PriorityArbitrator(store, priorities)

    def _make(detector: FakeDetector, priority: int = 0, interval_sec: float = 60, sleep=None, **kwargs) -> PlatformPoller:
        arbitrator.priorities[detector.platform] = priority
        if sleep is not None:
            kwargs["sleep"] = sleep
        return PlatformPoller(detector, store, arbitrator, publisher, interval_sec=interval_sec, downloader="yt-dlp", **kwargs)

    return _make
