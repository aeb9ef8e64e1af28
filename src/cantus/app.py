"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

from cantus.adapters.coverartarchive import CoverArtArchiveSource
from cantus.adapters.lastfm import LastFmImageSource
from cantus.adapters.musicbrainz import MusicBrainzSource
from cantus.adapters.search import InvertedIndex
from cantus.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyCatalogUnitOfWork,
    add_commit_listener,
    is_started,
    remove_commit_listener,
    startup,
)
from cantus.adapters.tags import MutagenTagExtractor
from cantus.adapters.tasks import InProcessTaskQueue
from cantus.config import (
    get_enrichment_config,
    get_import_config,
    get_matching_config,
    get_musicbrainz_config,
)
from cantus.domain.browse import BrowseService
from cantus.domain.enrichment import EnrichmentJobs, EnrichmentScheduler, log_outcome
from cantus.domain.importing import LibraryImporter
from cantus.domain.matching import CandidateMatcher
from cantus.domain.model import EnrichmentKind
from cantus.domain.resolution import EntityResolver
from cantus.domain.search_sync import SearchIndexSynchronizer

if TYPE_CHECKING:
    from collections.abc import Collection
    from pathlib import Path

    from cantus.config import EnrichmentConfig
    from cantus.domain.browse import SearchResult, TrackView
    from cantus.domain.importing import ImportReport
    from cantus.domain.model import CatalogFilter, EntityKind
    from cantus.domain.ports.fetching import (
        ArtistImageSource,
        ArtistInfoSource,
        ArtworkSource,
        MetadataSource,
        TagExtractor,
    )
    from cantus.domain.ports.unit_of_work import CatalogUnitOfWorkFactory
    from cantus.domain.resolution import OrphanCleanup

log = getLogger(__name__)


def ensure_catalog(database_uri: str | None = None) -> None:
    """Open and migrate the catalog unless that already happened in this process."""

    if not is_started():
        startup(database_uri=database_uri)


def build_resolver(
    unit_of_work_factory: CatalogUnitOfWorkFactory | None = None,
) -> EntityResolver:
    return EntityResolver(
        unit_of_work_factory=unit_of_work_factory or SqlAlchemyCatalogUnitOfWork,
        persist_attempts=get_import_config().persist_attempts,
    )


def import_library(
    root: Path,
    *,
    cleanup: bool = False,
    source: MetadataSource | None = None,
    extractor: TagExtractor | None = None,
    unit_of_work_factory: CatalogUnitOfWorkFactory | None = None,
) -> ImportReport:
    """Scan ``root`` and reconcile every audio file below it with the catalog."""

    ensure_catalog()
    config = get_import_config()
    mb_config = get_musicbrainz_config()
    effective_uow = unit_of_work_factory or SqlAlchemyCatalogUnitOfWork
    importer = LibraryImporter(
        extractor=extractor or MutagenTagExtractor(config.tag_separators),
        source=source or MusicBrainzSource(config=mb_config),
        matcher=CandidateMatcher(get_matching_config()),
        resolver=build_resolver(effective_uow),
        unit_of_work_factory=effective_uow,
        extensions=config.extensions,
        workers=config.workers,
        search_limit=mb_config.search_limit,
    )
    log.info("Starting import of %s with %d worker(s)", root, config.workers)
    return asyncio.run(importer.import_library(root, cleanup=cleanup))


def cleanup_orphans(
    unit_of_work_factory: CatalogUnitOfWorkFactory | None = None,
) -> OrphanCleanup:
    ensure_catalog()
    return build_resolver(unit_of_work_factory).cleanup_orphans()


def browse_service(
    *,
    with_index: bool = False,
    unit_of_work_factory: CatalogUnitOfWorkFactory | None = None,
) -> BrowseService:
    """Browse service over the catalog; ``with_index`` builds a fresh search index first."""

    ensure_catalog()
    effective_uow = unit_of_work_factory or SqlAlchemyCatalogUnitOfWork
    index = None
    if with_index:
        index = InvertedIndex()
        SearchIndexSynchronizer(index=index, unit_of_work_factory=effective_uow).rebuild()
    return BrowseService(unit_of_work_factory=effective_uow, index=index)


def rebuild_index(unit_of_work_factory: CatalogUnitOfWorkFactory | None = None) -> int:
    ensure_catalog()
    synchronizer = SearchIndexSynchronizer(
        index=InvertedIndex(),
        unit_of_work_factory=unit_of_work_factory or SqlAlchemyCatalogUnitOfWork,
    )
    return synchronizer.rebuild()


def search_catalog(
    text: str,
    *,
    kinds: Collection[EntityKind] | None = None,
    limit: int = 20,
) -> list[SearchResult]:
    return browse_service(with_index=True).search(text, kinds=kinds, limit=limit)


def list_tracks(criteria: CatalogFilter) -> list[TrackView]:
    return browse_service().tracks(criteria)


def list_unmatched(*, limit: int | None = None) -> list[TrackView]:
    return browse_service().needs_review(limit=limit)


async def run_enrichment(
    stop: asyncio.Event,
    *,
    run_now: bool = False,
    config: EnrichmentConfig | None = None,
    artist_info: ArtistInfoSource | None = None,
    artwork: ArtworkSource | None = None,
    artist_images: ArtistImageSource | None = None,
    unit_of_work_factory: CatalogUnitOfWorkFactory | None = None,
) -> None:
    """Run the enrichment scheduler, the task queue and index sync until ``stop`` is set."""

    ensure_catalog()
    effective_config = config or get_enrichment_config()
    effective_uow = unit_of_work_factory or SqlAlchemyCatalogUnitOfWork

    synchronizer = SearchIndexSynchronizer(
        index=InvertedIndex(),
        unit_of_work_factory=effective_uow,
        interval=effective_config.index_interval_seconds,
    )
    await asyncio.to_thread(synchronizer.rebuild)
    add_commit_listener(synchronizer)

    queue = InProcessTaskQueue(effective_config.queue)
    queue.add_listener(log_outcome)
    EnrichmentJobs(
        resolver=build_resolver(effective_uow),
        artist_info=artist_info or MusicBrainzSource(config=get_musicbrainz_config()),
        artwork=artwork or CoverArtArchiveSource(),
        artist_images=artist_images or LastFmImageSource(),
        synchronizer=synchronizer,
        unit_of_work_factory=effective_uow,
        deferral_seconds=effective_config.queue.deferral_seconds,
    ).register(queue)
    scheduler = EnrichmentScheduler(
        queue=queue, unit_of_work_factory=effective_uow, config=effective_config
    )

    queue.start()
    scheduler.start()
    log.info("Enrichment running; press Ctrl+C to stop")
    try:
        if run_now:
            for kind in EnrichmentKind:
                await scheduler.tick(kind)
        await synchronizer.run(stop)
    finally:
        scheduler.shutdown()
        await queue.stop()
        remove_commit_listener(synchronizer)
