"""Scheduled enrichment of catalog entries.

Cron triggers select the subjects whose enrichment is missing or outdated and submit one
task per subject. The task handlers fetch supplementary data and hand it to the
resolver, whose per-kind fingerprints turn unchanged data into a no-op.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING
from uuid import UUID

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from cantus.domain.errors import JobDeferred
from cantus.domain.model import EnrichmentKind, UrlKind

if TYPE_CHECKING:
    from collections.abc import Callable

    from cantus.config.enrichment import EnrichmentConfig
    from cantus.domain.ports.fetching import (
        ArtistImageSource,
        ArtistInfoSource,
        ArtworkSource,
        RateLimitedSource,
    )
    from cantus.domain.ports.tasks import TaskOutcome, TaskPayload, TaskQueue
    from cantus.domain.ports.unit_of_work import CatalogUnitOfWorkFactory
    from cantus.domain.resolution import EntityResolver
    from cantus.domain.search_sync import SearchIndexSynchronizer

log = getLogger(__name__)

SUBJECT_KEY = "subject"
GALLERY_URL_KIND = UrlKind.LASTFM


def _utcnow() -> datetime:
    return datetime.now(UTC)


def subject_of(payload: TaskPayload) -> UUID:
    return UUID(payload[SUBJECT_KEY])


def log_outcome(outcome: TaskOutcome) -> None:
    """Task listener reporting finished enrichment jobs."""

    if outcome.succeeded:
        log.debug("Task %s (%s) done", outcome.task_id, outcome.task_type)
    else:
        log.warning(
            "Task %s (%s) dropped after %d attempt(s): %s",
            outcome.task_id,
            outcome.task_type,
            outcome.attempts,
            outcome.error,
        )


class EnrichmentJobs:
    """Task handlers, one per enrichment kind."""

    def __init__(
        self,
        *,
        resolver: EntityResolver,
        artist_info: ArtistInfoSource,
        artwork: ArtworkSource,
        artist_images: ArtistImageSource,
        synchronizer: SearchIndexSynchronizer,
        unit_of_work_factory: CatalogUnitOfWorkFactory,
        deferral_seconds: float = 1.0,
    ) -> None:
        self._resolver = resolver
        self._artist_info = artist_info
        self._artwork = artwork
        self._images = artist_images
        self._uow_factory = unit_of_work_factory
        self._synchronizer = synchronizer
        self._deferral = deferral_seconds

    def register(self, queue: TaskQueue) -> None:
        queue.register(EnrichmentKind.ARTIST_URLS, self.artist_urls)
        queue.register(EnrichmentKind.ARTIST_DESCRIPTION, self.artist_description)
        queue.register(EnrichmentKind.ARTIST_IMAGES, self.artist_images)
        queue.register(EnrichmentKind.RELEASE_COVER, self.release_cover)
        queue.register(EnrichmentKind.INDEX_SEARCH, self.index_search)

    def _ensure_capacity(self, source: RateLimitedSource) -> None:
        if not source.has_capacity():
            raise JobDeferred(source.source_name, delay=self._deferral)

    async def artist_urls(self, payload: TaskPayload) -> bool:
        artist = subject_of(payload)
        self._ensure_capacity(self._artist_info)
        urls = await self._artist_info.artist_urls(artist)
        return await asyncio.to_thread(self._resolver.apply_artist_urls, artist, urls)

    async def artist_description(self, payload: TaskPayload) -> bool:
        artist = subject_of(payload)
        self._ensure_capacity(self._artist_info)
        description = await self._artist_info.artist_description(artist)
        return await asyncio.to_thread(
            self._resolver.apply_artist_description, artist, description
        )

    def _artist_page(self, artist: UUID, kind: UrlKind) -> str | None:
        with self._uow_factory() as uow:
            urls = uow.repositories.artist_urls.for_artist(artist)
        return next((url.url for url in urls if url.kind is kind), None)

    async def artist_images(self, payload: TaskPayload) -> bool:
        artist = subject_of(payload)
        page = await asyncio.to_thread(self._artist_page, artist, self._images.url_kind)
        if page is None:
            log.debug("Artist %s has no %s page", artist, self._images.url_kind)
            return await asyncio.to_thread(self._resolver.apply_artist_images, artist, [])
        self._ensure_capacity(self._images)
        images = await self._images.artist_images(page)
        return await asyncio.to_thread(self._resolver.apply_artist_images, artist, images)

    async def release_cover(self, payload: TaskPayload) -> bool:
        release = subject_of(payload)
        self._ensure_capacity(self._artwork)
        images = await self._artwork.release_images(release)
        return await asyncio.to_thread(self._resolver.apply_release_images, release, images)

    async def index_search(self, payload: TaskPayload) -> int:  # noqa: ARG002
        return await asyncio.to_thread(self._synchronizer.rebuild)


class EnrichmentScheduler:
    """Cron-driven submission of enrichment tasks.

    Tick failures are logged and never stop the scheduler; a subject whose task is still
    queued is not submitted twice.
    """

    def __init__(
        self,
        *,
        queue: TaskQueue,
        unit_of_work_factory: CatalogUnitOfWorkFactory,
        config: EnrichmentConfig,
        clock: Callable[[], datetime] = _utcnow,
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        self._queue = queue
        self._uow_factory = unit_of_work_factory
        self._config = config
        self._clock = clock
        self._scheduler = scheduler or AsyncIOScheduler(timezone=UTC)

    @property
    def scheduler(self) -> AsyncIOScheduler:
        return self._scheduler

    def start(self) -> None:
        for kind, expression in self._config.schedules.items():
            job_kind = EnrichmentKind(kind)
            self._scheduler.add_job(
                self.tick,
                trigger=CronTrigger.from_crontab(expression, timezone=UTC),
                args=[job_kind],
                id=f"enrichment:{job_kind}",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
                misfire_grace_time=30,
            )
            log.info("Scheduled %s enrichment with cron %r", job_kind, expression)
        self._scheduler.start()

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)

    async def tick(self, kind: EnrichmentKind) -> int:
        """Submit tasks for every due subject of ``kind``; returns how many were submitted."""

        try:
            if kind is EnrichmentKind.INDEX_SEARCH:
                self._queue.submit(kind, {}, key=str(kind))
                return 1
            subjects = await asyncio.to_thread(self.due_subjects, kind)
            for subject in subjects:
                self._queue.submit(kind, {SUBJECT_KEY: str(subject)}, key=f"{kind}:{subject}")
        except Exception:
            log.exception("Enrichment tick for %s failed", kind)
            return 0
        if subjects:
            log.info("Submitted %d %s task(s)", len(subjects), kind)
        return len(subjects)

    def due_subjects(self, kind: EnrichmentKind) -> list[UUID]:
        """Subjects without a fingerprint for ``kind`` or with one older than the refresh age."""

        cutoff = self._clock() - self._config.refresh_after
        limit = self._config.batch_size
        with self._uow_factory() as uow:
            repos = uow.repositories
            if kind is EnrichmentKind.RELEASE_COVER:
                return repos.releases.needing_enrichment(kind, older_than=cutoff, limit=limit)
            if kind in (EnrichmentKind.ARTIST_URLS, EnrichmentKind.ARTIST_DESCRIPTION):
                return repos.artists.needing_enrichment(kind, older_than=cutoff, limit=limit)
            if kind is EnrichmentKind.ARTIST_IMAGES:
                return repos.artists.needing_enrichment(
                    kind, older_than=cutoff, limit=limit, url_kind=GALLERY_URL_KIND
                )
        return []
