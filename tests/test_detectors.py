"""Tests for the bundled detectors."""

import httpx
import pytest

from livenotifier.config.settings import PlatformSettings, Settings
from livenotifier.errors import ConfigError
from livenotifier.platforms.models import DetectorError, NotModified, PlatformID
from livenotifier.platforms.registry import build_detector
from livenotifier.platforms import scraper
from livenotifier.platforms.scraper import ScraperDetector, live_url
from livenotifier.platforms.youtube_api import YouTubeAPIDetector

SEARCH_HIT = {
    "etag": "etag-2",
    "items": [{"id": {"videoId": "vid1"}, "snippet": {"title": "search title"}}],
}
VIDEO = {
    "items": [{
        "id": "vid1",
        "snippet": {
            "title": "Live now",
            "publishedAt": "2024-05-01T10:00:00Z",
            "thumbnails": {"medium": {"url": "https://i.ytimg.com/vi/vid1/mqdefault.jpg"}},
        },
        "liveStreamingDetails": {"actualStartTime": "2024-05-01T10:05:00Z"},
    }],
}


def api_detector(handler) -> YouTubeAPIDetector:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return YouTubeAPIDetector("key", "UC123", client=client)


class TestYouTubeAPIDetector:
    async def test_live_search_builds_probe(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.url.path.endswith("/search"):
                return httpx.Response(200, json=SEARCH_HIT)
            return httpx.Response(200, json=VIDEO)

        probe, cursor = await api_detector(handler).check("etag-1")

        assert cursor == "etag-2"
        assert probe.external_id == "vid1"
        assert probe.title == "Live now"
        assert probe.playback_url == "https://www.youtube.com/watch?v=vid1"
        assert probe.thumbnail_url.endswith("mqdefault.jpg")
        assert probe.published_at == "2024-05-01T10:00:00Z"
        assert probe.started_at == "2024-05-01T10:05:00Z"
        assert probe.ended_at is None
        assert seen[0].headers["If-None-Match"] == "etag-1"
        assert seen[0].url.params["eventType"] == "live"
        assert seen[0].url.params["channelId"] == "UC123"
        assert "If-None-Match" not in seen[1].headers

    async def test_no_live_items_returns_none_and_new_etag(self):
        detector = api_detector(lambda r: httpx.Response(200, json={"etag": "etag-3", "items": []}))
        probe, cursor = await detector.check("")
        assert probe is None
        assert cursor == "etag-3"

    async def test_not_modified(self):
        detector = api_detector(lambda r: httpx.Response(304))
        with pytest.raises(NotModified):
            await detector.check("etag-1")

    async def test_quota_exceeded_is_transient(self):
        detector = api_detector(lambda r: httpx.Response(403, json={}))
        with pytest.raises(DetectorError):
            await detector.check("")

    async def test_transport_error_is_transient(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(DetectorError):
            await api_detector(handler).check("")


class TestScraperDetector:
    @pytest.mark.parametrize("platform, channel, expected", [
        (PlatformID.YOUTUBE, "UC123", "https://www.youtube.com/channel/UC123/live"),
        (PlatformID.YOUTUBE, "@someone", "https://www.youtube.com/@someone/live"),
        (PlatformID.YOUTUBE, "https://www.youtube.com/@someone/", "https://www.youtube.com/@someone/live"),
        (PlatformID.KICK, "someone", "https://kick.com/someone"),
        (PlatformID.RUMBLE, "someone", "https://rumble.com/c/someone/livestreams"),
    ])
    def test_live_url(self, platform, channel, expected):
        assert live_url(platform, channel) == expected

    def test_to_probe_live(self):
        detector = ScraperDetector(PlatformID.KICK, "someone")
        probe = detector.to_probe({
            "id": "abc",
            "title": "t",
            "is_live": True,
            "webpage_url": "https://kick.com/someone",
            "thumbnail": "https://kick.com/t.jpg",
            "release_timestamp": 0,
            "timestamp": 1714557600,
        })
        assert probe.platform is PlatformID.KICK
        assert probe.external_id == "abc"
        assert probe.published_at == "2024-05-01T10:00:00+00:00"
        assert probe.started_at is None

    @pytest.mark.parametrize("info", [None, {}, {"id": "abc", "live_status": "was_live"}, {"is_live": True}])
    def test_to_probe_not_live(self, info):
        assert ScraperDetector(PlatformID.RUMBLE, "someone").to_probe(info) is None

    async def test_check_keeps_cursor(self, monkeypatch):
        detector = ScraperDetector(PlatformID.YOUTUBE, "@someone")
        monkeypatch.setattr(detector, "_extract", lambda: {"id": "v", "live_status": "is_live"})
        probe, cursor = await detector.check("unchanged")
        assert probe.external_id == "v"
        assert cursor == "unchanged"

    def test_proxy_is_passed_to_yt_dlp(self, monkeypatch):
        captured = {}

        class FakeYDL:
            def __init__(self, opts):
                captured.update(opts)

            def __enter__(self):
                return self

            def __exit__(self, *exc):
                return False

            def extract_info(self, url, download=False):
                return {"id": "v", "is_live": True}

        monkeypatch.setattr(scraper.yt_dlp, "YoutubeDL", FakeYDL)
        detector = ScraperDetector(PlatformID.RUMBLE, "someone", proxy="socks5://127.0.0.1:1080")

        assert detector._extract()["id"] == "v"
        assert captured["proxy"] == "socks5://127.0.0.1:1080"
        assert captured["skip_download"] is True

    def test_no_proxy_option_by_default(self):
        assert "proxy" not in ScraperDetector(PlatformID.KICK, "someone").ydl_options()


class TestRegistry:
    def test_builds_scraper(self):
        cfg = PlatformSettings(enabled=True, channel="someone")
        detector = build_detector(PlatformID.KICK, cfg, Settings(_env_file=None))
        assert isinstance(detector, ScraperDetector)

    def test_scraper_gets_platform_proxy(self):
        cfg = PlatformSettings(enabled=True, channel="someone", proxy="http://proxy.local:3128")
        detector = build_detector(PlatformID.RUMBLE, cfg, Settings(_env_file=None))
        assert detector.proxy == "http://proxy.local:3128"

    def test_builds_youtube_api(self):
        cfg = PlatformSettings(enabled=True, channel="UC1", method="api")
        detector = build_detector(PlatformID.YOUTUBE, cfg, Settings(_env_file=None, youtube_api_key="k"))
        assert isinstance(detector, YouTubeAPIDetector)

    def test_api_method_needs_youtube(self):
        cfg = PlatformSettings(enabled=True, channel="someone", method="api")
        with pytest.raises(ConfigError):
            build_detector(PlatformID.KICK, cfg, Settings(_env_file=None, youtube_api_key="k"))
