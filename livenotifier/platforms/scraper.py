import asyncio
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

import yt_dlp
from yt_dlp.utils import DownloadError

from .models import DetectorError, LivestreamProbe, PlatformID

log = logging.getLogger(__name__)

# extractor messages that mean "reachable, just not broadcasting"
_OFFLINE = re.compile(r"not currently live|is offline|is not live|not live|will begin|premieres in", re.IGNORECASE)


def live_url(platform: PlatformID, channel: str) -> str:
    if channel.startswith("http"):
        base = channel.rstrip("/")
        if platform is PlatformID.YOUTUBE and not base.endswith("/live"):
            base += "/live"
        return base
    if platform is PlatformID.YOUTUBE:
        # both @handle and UC... ids work with /live
        path = channel if channel.startswith("@") else f"channel/{channel}"
        return f"https://www.youtube.com/{path}/live"
    if platform is PlatformID.RUMBLE:
        return f"https://rumble.com/c/{channel}/livestreams"
    return f"https://kick.com/{channel}"


def _timestamp(value: Any) -> Optional[str]:
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc).isoformat()


class ScraperDetector:
    """Detects a running livestream by letting yt-dlp resolve the channel's live page."""

    method = "scraper"

    def __init__(self, platform: PlatformID, channel: str, socket_timeout: int = 30, proxy: Optional[str] = None):
        self.platform = platform
        self.channel = channel
        self.url = live_url(platform, channel)
        self.socket_timeout = socket_timeout
        self.proxy = proxy

    def ydl_options(self) -> Dict[str, Any]:
        opts = {
            "quiet": True,
            "no_warnings": True,
            "skip_download": True,
            "ignore_no_formats_error": True,
            "playlistend": 1,
            "socket_timeout": self.socket_timeout,
        }
        if self.proxy:
            opts["proxy"] = self.proxy
        return opts

    def _extract(self) -> Optional[Dict[str, Any]]:
        ydl_opts = self.ydl_options()
        log.debug("Extracting platform=%s url=%s proxy=%s", self.platform.value, self.url, bool(self.proxy))
        with yt_dlp.YoutubeDL(ydl_opts) as ydl:
            try:
                info = ydl.extract_info(self.url, download=False)
            except DownloadError as e:
                if _OFFLINE.search(str(e)):
                    return None
                raise DetectorError(f"extraction failed for {self.url}: {e}") from e
        if info and info.get("_type") == "playlist":
            entries = [e for e in (info.get("entries") or []) if e]
            info = entries[0] if entries else None
        return info

    def to_probe(self, info: Optional[Dict[str, Any]]) -> Optional[LivestreamProbe]:
        if not info or not info.get("id"):
            return None
        if not (info.get("is_live") or info.get("live_status") == "is_live"):
            return None
        return LivestreamProbe(
            platform=self.platform,
            external_id=str(info["id"]),
            title=info.get("title") or "",
            playback_url=info.get("webpage_url") or self.url,
            thumbnail_url=info.get("thumbnail") or "",
            published_at=_timestamp(info.get("timestamp")),
            started_at=_timestamp(info.get("release_timestamp")),
        )

    async def check(self, cursor: str) -> Tuple[Optional[LivestreamProbe], str]:
        info = await asyncio.to_thread(self._extract)
        return self.to_probe(info), cursor
