import json
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Dict

from livenotifier.errors import JobEncodeError
from livenotifier.platforms.models import LivestreamProbe


def job_key(platform: str, external_id: str) -> str:
    return f"{platform}:{external_id}"


def _now_rfc3339() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


@dataclass(frozen=True)
class Job:
    platform: str
    downloader: str
    id: str
    playback_url: str
    title: str
    pub_time: str = ""
    start_time: str = ""
    end_time: str = ""
    thumbnail: str = ""

    @property
    def key(self) -> str:
        return job_key(self.platform, self.id)

    @classmethod
    def from_probe(cls, probe: LivestreamProbe, downloader: str = "") -> "Job":
        return cls(
            platform=probe.platform.value,
            downloader=downloader,
            id=probe.external_id,
            playback_url=probe.playback_url,
            title=probe.title,
            pub_time=probe.published_at or "",
            start_time=probe.started_at or _now_rfc3339(),
            end_time=probe.ended_at or "",
            thumbnail=probe.thumbnail_url,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def encode(self) -> bytes:
        try:
            return json.dumps(self.to_dict(), ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise JobEncodeError(f"unable to encode job {self.key}: {e}") from e
