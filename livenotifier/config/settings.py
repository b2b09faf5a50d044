from typing import Dict, List, Optional, Tuple
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from livenotifier.errors import ConfigError
from livenotifier.platforms.models import PlatformID

METHODS = ("scraper", "api")


class PlatformSettings(BaseModel):
    enabled: bool = False
    channel: str = ""
    method: str = "scraper"
    priority: int = 0
    refresh_minutes: int = 1
    downloader: str = ""
    healthcheck: Optional[str] = None
    # yt-dlp proxy URL for the scraper method, e.g. socks5://127.0.0.1:1080
    proxy: Optional[str] = None


class Settings(BaseSettings):
    youtube: PlatformSettings = Field(default_factory=PlatformSettings)
    rumble: PlatformSettings = Field(default_factory=PlatformSettings)
    kick: PlatformSettings = Field(default_factory=PlatformSettings)

    youtube_api_key: Optional[str] = Field(default=None, alias="API_KEY")
    nats_url: str = Field(default="nats://127.0.0.1:4222", alias="NATS_URL")
    nats_topic: str = Field(default="archiver", alias="NATS_TOPIC")
    state_backend: str = Field(default="file", alias="STATE_BACKEND")
    state_path: str = Field(default="data/state.json", alias="STATE_PATH")
    state_kv_bucket: str = Field(default="livenotifier", alias="STATE_KV_BUCKET")
    state_max_published: int = Field(default=0, alias="STATE_MAX_PUBLISHED")
    plugins_enabled: bool = Field(default=False, alias="PLUGINS_ENABLED")
    plugins_path: str = Field(default="", alias="PLUGINS_PATH")
    log_format: str = Field(default="plain", alias="LOG_FORMAT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    metrics_port: int = Field(default=9100, alias="METRICS_PORT")
    api_port: int = Field(default=8000, alias="API_PORT")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
        populate_by_name=True,
    )

    @property
    def platforms(self) -> List[Tuple[PlatformID, PlatformSettings]]:
        return [(pid, getattr(self, pid.value)) for pid in PlatformID]

    @property
    def platform_map(self) -> Dict[PlatformID, PlatformSettings]:
        return dict(self.platforms)

    def platform(self, pid: PlatformID) -> PlatformSettings:
        return self.platform_map[pid]

    @property
    def enabled_platforms(self) -> List[Tuple[PlatformID, PlatformSettings]]:
        """Enabled platforms in launch order: ascending priority, unranked (0) last."""
        enabled = [(pid, cfg) for pid, cfg in self.platforms if cfg.enabled]
        return sorted(enabled, key=lambda item: (item[1].priority <= 0, item[1].priority))

    @property
    def job_subject(self) -> str:
        return f"{self.nats_topic}.job"

    def check(self) -> None:
        if not self.enabled_platforms:
            raise ConfigError("enable at least one platform")
        for pid, cfg in self.enabled_platforms:
            if not cfg.channel:
                raise ConfigError(f"{pid.value}: channel is not set")
            if cfg.refresh_minutes <= 0:
                raise ConfigError(f"{pid.value}: refresh_minutes must be positive")
            if cfg.method not in METHODS:
                raise ConfigError(f"{pid.value}: unknown method {cfg.method!r}")
            if cfg.method == "api" and pid is not PlatformID.YOUTUBE:
                raise ConfigError(f"{pid.value}: the api method is only available for youtube")
            if cfg.method == "api" and not self.youtube_api_key:
                raise ConfigError("youtube: API_KEY is required for the api method")
        if not self.nats_url:
            raise ConfigError("NATS_URL is not set")
        if not self.nats_topic:
            raise ConfigError("NATS_TOPIC is not set")
        if self.state_backend not in ("file", "nats"):
            raise ConfigError(f"unknown STATE_BACKEND {self.state_backend!r}")
        if self.plugins_enabled and not self.plugins_path:
            raise ConfigError("PLUGINS_PATH is required when plugins are enabled")


settings = Settings()
