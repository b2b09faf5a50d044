import asyncio
import argparse
import logging
from livenotifier.orchestration.service import run as service_run

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

async def _oneshot(platform_name: str):
    from livenotifier.config.settings import settings
    from livenotifier.platforms.models import DetectorError, NotModified, PlatformID
    from livenotifier.platforms.registry import build_detector

    try:
        pid = PlatformID(platform_name)
    except ValueError:
        print(f"Unknown platform {platform_name}")
        return
    cfg = settings.platform(pid)
    if not cfg.channel:
        print(f"No channel configured for {pid.value}")
        return
    detector = build_detector(pid, cfg, settings)
    try:
        probe, cursor = await detector.check("")
    except NotModified:
        print(f"{pid.value}: not modified")
        return
    except DetectorError as e:
        print(f"{pid.value}: check failed: {e}")
        return
    if probe is None:
        print(f"{pid.value} ({cfg.channel}) is not live")
    else:
        print(f"{pid.value} live id={probe.external_id} title={probe.title!r} url={probe.playback_url}")


async def _state():
    import httpx
    from livenotifier.config.settings import settings
    base = f"http://127.0.0.1:{settings.api_port}"
    async with httpx.AsyncClient(timeout=5) as client:
        state = (await client.get(f"{base}/state")).json()
        platforms = (await client.get(f"{base}/platforms")).json()
        for p in platforms:
            print(f"Platform={p['platform']} Method={p['method']} Priority={p['priority']} Live={p['live']} Backoff={p['backoff_sec']}s")
        print(f"Published: {len(state['published_ids'])}")
        for key in state['published_ids'][-10:]:
            print(f"  {key}")


def main():
    parser = argparse.ArgumentParser(description="Livestream notifier")
    parser.add_argument("command", nargs="?", default="run", choices=["run", "check", "state"], help="run the service, check one platform, or show the running service's state")
    parser.add_argument("arg", nargs="?", help="platform name for the check command")
    args = parser.parse_args()

    if args.command == "check":
        if not args.arg:
            print("Missing platform name")
        else:
            asyncio.run(_oneshot(args.arg))
    elif args.command == "state":
        asyncio.run(_state())
    else:
        # Start the long-running service (pollers + API server)
        service_run()
if __name__ == "__main__":
    main()
