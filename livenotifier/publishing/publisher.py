import asyncio
import logging

from livenotifier.errors import PublishError
from livenotifier.metrics.registry import jobs_published_total
from .bus import MessageBus
from .hooks import ExtensionHooks, NoopHooks
from .job import Job

log = logging.getLogger(__name__)


class EventPublisher:
    """Sends "new job" events on a single subject.

    Delivery failures surface as ``PublishError`` and are not retried here;
    the caller's next poll cycle retries because the job was never marked.
    """

    def __init__(self, bus: MessageBus, subject: str, hooks: ExtensionHooks = None):
        self.bus = bus
        self.subject = subject
        self.hooks = hooks or NoopHooks()

    async def _notify(self, name: str, arg) -> None:
        # hooks are user code; keep them off the event loop
        try:
            await asyncio.to_thread(getattr(self.hooks, name), arg)
        except Exception as e:
            log.debug("Hook %s raised: %s", name, e)

    async def publish(self, job: Job) -> None:
        await self._notify("on_receive", job.id)
        payload = job.encode()
        try:
            await self.bus.publish(self.subject, payload)
        except Exception as e:
            raise PublishError(f"unable to publish job {job.key} on {self.subject}: {e}") from e
        jobs_published_total.labels(platform=job.platform).inc()
        log.info("Published job platform=%s id=%s subject=%s", job.platform, job.id, self.subject)
        await self._notify("on_send", job)
