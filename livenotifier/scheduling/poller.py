import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from livenotifier.errors import FatalError
from livenotifier.health import HealthChecker
from livenotifier.metrics.registry import (
    jobs_deferred_total,
    last_poll_timestamp,
    platform_live,
    poll_backoff_seconds,
    poll_duration_seconds,
    poll_errors_total,
)
from livenotifier.platforms.models import Detector, LivestreamProbe, NotModified
from livenotifier.publishing.job import Job
from livenotifier.publishing.publisher import EventPublisher
from livenotifier.storage.state import StateStore
from .arbitrator import PriorityArbitrator

log = logging.getLogger(__name__)

MAX_BACKOFF_SEC = 32


class Backoff:
    """Retry delay in seconds: 0, then 1, 2, 4, ... capped at MAX_BACKOFF_SEC."""

    def __init__(self):
        self.timeout = 0

    def failure(self) -> int:
        if self.timeout == 0:
            self.timeout = 1
        else:
            self.timeout = min(self.timeout * 2, MAX_BACKOFF_SEC)
        return self.timeout

    def reset(self) -> None:
        self.timeout = 0


class PlatformPoller:
    def __init__(
        self,
        detector: Detector,
        store: StateStore,
        arbitrator: PriorityArbitrator,
        publisher: EventPublisher,
        interval_sec: float,
        downloader: str = "",
        healthcheck: Optional[str] = None,
        health: Optional[HealthChecker] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.detector = detector
        self.platform = detector.platform
        self.method = detector.method
        self.store = store
        self.arbitrator = arbitrator
        self.publisher = publisher
        self.interval = interval_sec
        self.downloader = downloader
        self.healthcheck = healthcheck
        self.health = health
        self.backoff = Backoff()
        self._sleep = sleep

    @property
    def name(self) -> str:
        return f"{self.platform.value}_{self.method}"

    async def run(self):
        """Poll forever. Only FatalError (and cancellation) leaves the loop."""
        labels = dict(platform=self.platform.value, method=self.method)
        while True:
            if self.backoff.timeout > 0:
                log.info("Sleeping before retry platform=%s method=%s duration=%s", self.platform.value, self.method, self.backoff.timeout)
                await self._sleep(self.backoff.timeout)
            try:
                await self.poll_once()
            except FatalError:
                raise
            except Exception as e:
                poll_errors_total.labels(**labels).inc()
                self.backoff.failure()
                poll_backoff_seconds.labels(**labels).set(self.backoff.timeout)
                log.error("Poll failed, restarting the loop platform=%s method=%s error=%s", self.platform.value, self.method, e)
                continue
            self.backoff.reset()
            poll_backoff_seconds.labels(**labels).set(0)
            log.debug("Sleeping platform=%s method=%s duration=%s", self.platform.value, self.method, self.interval)
            await self._sleep(self.interval)

    async def poll_once(self) -> None:
        start = time.monotonic()
        try:
            probe, cursor = await self.detector.check(self.store.cursor(self.platform))
        except NotModified as e:
            log.info("Identical cursor, skipping platform=%s method=%s detail=%s", self.platform.value, self.method, e)
            evaluated = False
        else:
            async with self.store.lock:
                settled = await self._handle(probe)
                # a deferred or failed live item keeps the old cursor so the next cycle sees it again
                if settled and self.store.set_cursor(self.platform, cursor):
                    await self.store.dump()
            evaluated = True
        poll_duration_seconds.labels(platform=self.platform.value, method=self.method).observe(time.monotonic() - start)
        last_poll_timestamp.labels(platform=self.platform.value, method=self.method).set_to_current_time()
        if evaluated and self.health is not None:
            self.health.ping(self.healthcheck)

    async def _handle(self, probe: Optional[LivestreamProbe]) -> bool:
        """Run the publish pipeline; returns False when the live item is deferred."""
        # caller holds store.lock
        pid = self.platform
        if probe is None:
            self.store.set_current_live(pid, None)
            platform_live.labels(platform=pid.value).set(0)
            log.info("Not live platform=%s method=%s", pid.value, self.method)
            return True

        job = Job.from_probe(probe, self.downloader)
        self.store.set_current_live(pid, job)
        platform_live.labels(platform=pid.value).set(1)

        if self.store.is_published(pid, job.id):
            log.info("Already sent platform=%s method=%s id=%s", pid.value, self.method, job.id)
            return True
        if not self.arbitrator.allowed(pid):
            jobs_deferred_total.labels(platform=pid.value).inc()
            log.info("Streaming on a higher-priority platform platform=%s method=%s id=%s", pid.value, self.method, job.id)
            return False

        log.info("Stream found platform=%s method=%s id=%s", pid.value, self.method, job.id)
        await self.publisher.publish(job)
        self.store.mark_published(pid, job.id)
        await self.store.dump()
        return True
