"""Last.fm artist gallery configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_int, env_str
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy

LASTFM_WEB_URL = "https://www.last.fm"
LASTFM_IMAGE_URL = "https://lastfm.freetls.fastly.net/i/u"
LASTFM_SOURCE = "lastfm"
LASTFM_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True, slots=True)
class LastFmConfig:
    """Where artist galleries are read from and how large the linked images are."""

    resilience: ResilienceConfig
    image_base_url: str = LASTFM_IMAGE_URL
    image_size: int = 4096
    max_images: int = 20


def get_lastfm_config() -> LastFmConfig:
    user_agent = env_str("CANTUS_USER_AGENT", "cantus")
    resilience = ResilienceConfig(
        name=LASTFM_SOURCE,
        base_url=env_str("CANTUS_LASTFM_URL", LASTFM_WEB_URL),
        timeout_seconds=LASTFM_TIMEOUT_SECONDS,
        ratelimit=RateLimit(max_calls=4, per_seconds=1.0),
        retry=RetryPolicy(total=3),
        cache=CacheConfig(enabled=True, backend="memory"),
        default_headers={"User-Agent": user_agent, "Accept": "text/html"},
    )
    return LastFmConfig(
        resilience=resilience,
        image_size=env_int("CANTUS_LASTFM_IMAGE_SIZE", 4096, minimum=64),
        max_images=env_int("CANTUS_LASTFM_MAX_IMAGES", 20, minimum=1),
    )
