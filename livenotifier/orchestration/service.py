import asyncio
import json
import logging
import sys
from typing import Awaitable, Callable, List

import uvicorn
from prometheus_client import start_http_server

from livenotifier.api.server import app, set_pollers, set_store
from livenotifier.config.settings import Settings, settings
from livenotifier.errors import ConfigError, FatalError
from livenotifier.health import HealthChecker
from livenotifier.platforms.registry import build_detector
from livenotifier.publishing.bus import NatsBus
from livenotifier.publishing.hooks import ExtensionHooks, NoopHooks, ScriptHooks
from livenotifier.publishing.publisher import EventPublisher
from livenotifier.scheduling.arbitrator import PriorityArbitrator
from livenotifier.scheduling.poller import PlatformPoller
from livenotifier.storage.backends import FileStateBackend, NatsKVStateBackend
from livenotifier.storage.state import StateStore

log = logging.getLogger(__name__)

STARTUP_STAGGER_SEC = 1


class JsonFormatter(logging.Formatter):
    def format(self, record):
        base = {
            'time': self.formatTime(record),
            'level': record.levelname,
            'logger': record.name,
            'msg': record.getMessage(),
        }
        if record.exc_info:
            base['exc'] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False)


def configure_logging(cfg: Settings) -> None:
    level = getattr(logging, cfg.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    root = logging.getLogger()
    if cfg.log_format == 'json':
        for h in list(root.handlers):
            root.removeHandler(h)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
        root.addHandler(handler)
    root.setLevel(level)


def load_hooks(cfg: Settings) -> ExtensionHooks:
    if not cfg.plugins_enabled:
        return NoopHooks()
    try:
        return ScriptHooks.from_path(cfg.plugins_path)
    except Exception as e:
        raise FatalError(f"unable to load extension script {cfg.plugins_path}: {e}") from e


def build_pollers(cfg: Settings, store: StateStore, publisher: EventPublisher, health: HealthChecker) -> List[PlatformPoller]:
    enabled = cfg.enabled_platforms
    arbitrator = PriorityArbitrator(store, {pid: p.priority for pid, p in enabled})
    return [
        PlatformPoller(
            build_detector(pid, p, cfg),
            store,
            arbitrator,
            publisher,
            interval_sec=p.refresh_minutes * 60,
            downloader=p.downloader,
            healthcheck=p.healthcheck,
            health=health,
        )
        for pid, p in enabled
    ]


async def run_pollers(
    pollers: List[PlatformPoller],
    stagger: float = STARTUP_STAGGER_SEC,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
):
    """Start the pollers one by one and wait on them; a FatalError in any of them propagates."""
    tasks: List[asyncio.Task] = []
    try:
        for poller in pollers:
            log.info("Running platform loop platform=%s method=%s refresh_sec=%s", poller.platform.value, poller.method, poller.interval)
            tasks.append(asyncio.create_task(poller.run(), name=poller.name))
            await sleep(stagger)
        await asyncio.gather(*tasks)
    finally:
        for t in tasks:
            t.cancel()


async def main(cfg: Settings = settings):
    configure_logging(cfg)
    cfg.check()
    if cfg.metrics_port:
        start_http_server(cfg.metrics_port)

    bus = NatsBus(cfg.nats_url)
    try:
        await bus.connect()
    except Exception as e:
        raise FatalError(f"could not connect to NATS at {cfg.nats_url}: {e}") from e

    if cfg.state_backend == 'nats':
        backend = NatsKVStateBackend(bus.jetstream(), cfg.state_kv_bucket)
    else:
        backend = FileStateBackend(cfg.state_path)
    store = StateStore(backend, cfg.state_max_published)
    await store.load()

    publisher = EventPublisher(bus, cfg.job_subject, load_hooks(cfg))
    health = HealthChecker()
    pollers = build_pollers(cfg, store, publisher, health)
    set_store(store)
    set_pollers(pollers)
    log.info("Running the notifier service platforms=%s", ",".join(p.name for p in pollers))

    # Run pollers and API server concurrently
    async def run_api():
        config = uvicorn.Config(app, host="0.0.0.0", port=cfg.api_port, log_level="info", lifespan="on")
        server = uvicorn.Server(config)
        await server.serve()

    try:
        await asyncio.gather(run_pollers(pollers), run_api())
    finally:
        await health.aclose()
        await bus.close()


def run():
    try:
        asyncio.run(main())
    except ConfigError as e:
        log.critical("Invalid configuration: %s", e)
        sys.exit(1)
    except FatalError as e:
        log.critical("Fatal error, stopping the service: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    run()
