"""Enrichment schedules, task queue and index sync settings."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING, Final

from .env import env_float, env_int, env_str

if TYPE_CHECKING:
    from collections.abc import Mapping

DEFAULT_SCHEDULES: Final[dict[str, str]] = {
    "artist_urls": "0 3 * * *",
    "artist_description": "30 3 * * *",
    "artist_images": "15 4 * * *",
    "release_cover": "0 4 * * *",
    "index_search": "0 5 * * 0",
}


@dataclass(frozen=True, slots=True)
class TaskQueueConfig:
    workers: int = 2
    max_attempts: int = 4
    backoff_base_seconds: float = 2.0
    backoff_max_seconds: float = 300.0
    timeout_seconds: float = 60.0
    deferral_seconds: float = 1.0


@dataclass(frozen=True, slots=True)
class EnrichmentConfig:
    schedules: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_SCHEDULES))
    refresh_after: timedelta = timedelta(days=30)
    batch_size: int = 100
    index_interval_seconds: float = 2.0
    queue: TaskQueueConfig = field(default_factory=TaskQueueConfig)


def get_enrichment_config() -> EnrichmentConfig:
    schedules = {
        kind: env_str(f"CANTUS_CRON_{kind.upper()}", default)
        for kind, default in DEFAULT_SCHEDULES.items()
    }
    queue = TaskQueueConfig(
        workers=env_int("CANTUS_TASK_WORKERS", 2, minimum=1),
        max_attempts=env_int("CANTUS_TASK_ATTEMPTS", 4, minimum=1),
        backoff_base_seconds=env_float("CANTUS_TASK_BACKOFF", 2.0, minimum=0.0),
        backoff_max_seconds=env_float("CANTUS_TASK_BACKOFF_MAX", 300.0, minimum=0.0),
        timeout_seconds=env_float("CANTUS_TASK_TIMEOUT", 60.0, minimum=0.1),
        deferral_seconds=env_float("CANTUS_TASK_DEFERRAL", 1.0, minimum=0.0),
    )
    return EnrichmentConfig(
        schedules=schedules,
        refresh_after=timedelta(days=env_int("CANTUS_REFRESH_DAYS", 30, minimum=0)),
        batch_size=env_int("CANTUS_ENRICH_BATCH", 100, minimum=1),
        index_interval_seconds=env_float("CANTUS_INDEX_INTERVAL", 2.0, minimum=0.05),
        queue=queue,
    )
