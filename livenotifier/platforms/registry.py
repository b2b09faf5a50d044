from livenotifier.config.settings import PlatformSettings, Settings
from livenotifier.errors import ConfigError
from .models import Detector, PlatformID
from .scraper import ScraperDetector
from .youtube_api import YouTubeAPIDetector


def build_detector(platform: PlatformID, cfg: PlatformSettings, settings: Settings) -> Detector:
    if cfg.method == "scraper":
        return ScraperDetector(platform, cfg.channel, proxy=cfg.proxy)
    if cfg.method == "api" and platform is PlatformID.YOUTUBE:
        if not settings.youtube_api_key:
            raise ConfigError("youtube: API_KEY is required for the api method")
        return YouTubeAPIDetector(settings.youtube_api_key, cfg.channel)
    raise ConfigError(f"no {cfg.method!r} detector for {platform.value}")
