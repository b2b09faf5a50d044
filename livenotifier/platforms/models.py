from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, Tuple


class PlatformID(str, Enum):
    YOUTUBE = "youtube"
    RUMBLE = "rumble"
    KICK = "kick"


class DetectorError(Exception):
    """Transient detection failure (network, extractor, unexpected payload)."""


class NotModified(DetectorError):
    """The source reported no change since the supplied cursor."""


@dataclass
class LivestreamProbe:
    platform: PlatformID
    external_id: str
    title: str = ""
    playback_url: str = ""
    thumbnail_url: str = ""
    published_at: Optional[str] = None
    started_at: Optional[str] = None
    ended_at: Optional[str] = None


class Detector(Protocol):
    platform: PlatformID
    method: str

    async def check(self, cursor: str) -> Tuple[Optional[LivestreamProbe], str]:
        """Return the live probe (or None when offline) and the next change cursor."""
        ...
