"""Application configuration helpers."""

from __future__ import annotations

from .coverartarchive import CoverArtArchiveConfig, get_coverartarchive_config
from .enrichment import EnrichmentConfig, TaskQueueConfig, get_enrichment_config
from .env import require_env_vars
from .errors import (
    ConfigurationError,
    InvalidConfigurationValueError,
    MissingConfigurationError,
)
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .importing import ImportConfig, get_import_config
from .lastfm import LastFmConfig, get_lastfm_config
from .logging import configure_logging
from .matching import MatchingConfig, get_matching_config
from .musicbrainz import MusicBrainzConfig, get_musicbrainz_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "CacheConfig",
    "ConfigurationError",
    "CoverArtArchiveConfig",
    "DatabaseConfig",
    "EnrichmentConfig",
    "ImportConfig",
    "InvalidConfigurationValueError",
    "LastFmConfig",
    "MatchingConfig",
    "MissingConfigurationError",
    "MusicBrainzConfig",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "TaskQueueConfig",
    "configure_logging",
    "get_coverartarchive_config",
    "get_database_config",
    "get_enrichment_config",
    "get_import_config",
    "get_lastfm_config",
    "get_matching_config",
    "get_musicbrainz_config",
    "get_storage_config",
    "require_env_vars",
]
