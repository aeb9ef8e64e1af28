"""Cover Art Archive configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_str
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy

DEFAULT_COVERARTARCHIVE_BASE_URL = "https://coverartarchive.org"
COVERARTARCHIVE_SOURCE = "coverartarchive"


@dataclass(frozen=True, slots=True)
class CoverArtArchiveConfig:
    resilience: ResilienceConfig


def get_coverartarchive_config() -> CoverArtArchiveConfig:
    user_agent = env_str("CANTUS_USER_AGENT", "cantus")
    resilience = ResilienceConfig(
        name=COVERARTARCHIVE_SOURCE,
        base_url=DEFAULT_COVERARTARCHIVE_BASE_URL,
        ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
        retry=RetryPolicy(total=3),
        cache=CacheConfig(enabled=True, backend="memory"),
        default_headers={"User-Agent": user_agent, "Accept": "application/json"},
    )
    return CoverArtArchiveConfig(resilience=resilience)
