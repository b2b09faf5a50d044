from typing import Any, Dict, Optional, Tuple

import httpx

from .models import DetectorError, LivestreamProbe, NotModified, PlatformID

BASE_URL = "https://www.googleapis.com/youtube/v3"


class YouTubeAPIDetector:
    """YouTube Data API v3 live search; the change cursor is the search ETag."""

    platform = PlatformID.YOUTUBE
    method = "api"

    def __init__(self, api_key: str, channel_id: str, client: Optional[httpx.AsyncClient] = None):
        self._key = api_key
        self.channel = channel_id
        self._http = client or httpx.AsyncClient(timeout=10)

    async def _get(self, path: str, params: Dict[str, str], etag: str = "") -> Dict[str, Any]:
        headers = {"If-None-Match": etag} if etag else {}
        try:
            r = await self._http.get(f"{BASE_URL}/{path}", params={**params, "key": self._key}, headers=headers)
        except httpx.HTTPError as e:
            raise DetectorError(f"YouTube API request failed: {e}") from e
        if r.status_code == 304:
            raise NotModified(f"304 Not Modified for etag {etag}")
        if r.status_code == 403:
            raise DetectorError("YouTube API quota exceeded")
        if r.is_error:
            raise DetectorError(f"YouTube API returned {r.status_code} for {path}")
        try:
            return r.json()
        except ValueError as e:
            raise DetectorError(f"YouTube API returned invalid JSON for {path}") from e

    async def search_live(self, etag: str = "") -> Dict[str, Any]:
        params = {
            "part": "snippet",
            "channelId": self.channel,
            "eventType": "live",
            "type": "video",
        }
        return await self._get("search", params, etag)

    async def video_info(self, video_id: str) -> Optional[Dict[str, Any]]:
        data = await self._get("videos", {"part": "snippet,liveStreamingDetails", "id": video_id})
        items = data.get("items") or []
        return items[0] if items else None

    async def check(self, cursor: str) -> Tuple[Optional[LivestreamProbe], str]:
        data = await self.search_live(cursor)
        etag = data.get("etag") or cursor
        items = data.get("items") or []
        if not items:
            return None, etag
        video_id = (items[0].get("id") or {}).get("videoId")
        if not video_id:
            raise DetectorError("live search result has no videoId")
        video = await self.video_info(video_id) or items[0]
        snippet = video.get("snippet") or {}
        details = video.get("liveStreamingDetails") or {}
        thumbnails = snippet.get("thumbnails") or {}
        probe = LivestreamProbe(
            platform=self.platform,
            external_id=video_id,
            title=snippet.get("title") or "",
            playback_url=f"https://www.youtube.com/watch?v={video_id}",
            thumbnail_url=(thumbnails.get("medium") or {}).get("url", ""),
            published_at=snippet.get("publishedAt"),
            started_at=details.get("actualStartTime"),
            ended_at=details.get("actualEndTime"),
        )
        return probe, etag

    async def aclose(self) -> None:
        await self._http.aclose()
