"""MusicBrainz configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_int, require_env_vars
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .storage import StorageConfig, get_storage_config

DEFAULT_MUSICBRAINZ_BASE_URL = "https://musicbrainz.org/ws/2"
DEFAULT_MUSICBRAINZ_WEB_URL = "https://musicbrainz.org"
MUSICBRAINZ_SOURCE = "musicbrainz"


@dataclass(frozen=True, slots=True)
class MusicBrainzConfig:
    resilience: ResilienceConfig
    web_url: str = DEFAULT_MUSICBRAINZ_WEB_URL
    search_limit: int = 5


def get_musicbrainz_config(*, storage: StorageConfig | None = None) -> MusicBrainzConfig:
    values = require_env_vars(("MUSICBRAINZ_APP_NAME", "MUSICBRAINZ_CONTACT"))
    app_name = values["MUSICBRAINZ_APP_NAME"]
    contact = values["MUSICBRAINZ_CONTACT"]
    user_agent = f"{app_name} ({contact})"
    storage_config = storage or get_storage_config()

    resilience = ResilienceConfig(
        name=MUSICBRAINZ_SOURCE,
        base_url=DEFAULT_MUSICBRAINZ_BASE_URL,
        ratelimit=RateLimit(max_calls=1, per_seconds=1.0),
        retry=RetryPolicy(total=4),
        cache=CacheConfig(
            enabled=True,
            backend="sqlite",
            sqlite_path=str(storage_config.http_cache_path()),
            default_ttl_seconds=7 * 24 * 3600,
        ),
        default_headers={"User-Agent": user_agent, "Accept": "application/json"},
    )

    return MusicBrainzConfig(
        resilience=resilience,
        search_limit=env_int("CANTUS_SEARCH_LIMIT", 5, minimum=1),
    )
