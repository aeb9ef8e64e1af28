from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from cantus.adapters.search import InvertedIndex
from cantus.adapters.sqlalchemy.unit_of_work import add_commit_listener
from cantus.domain.matching import CandidateMatcher
from cantus.domain.model import (
    CandidateArtist,
    CandidateCredit,
    CatalogChange,
    ChangeKind,
    EntityKind,
    LocalRelease,
)
from cantus.domain.search_sync import SearchIndexSynchronizer, change_key, coalesce_changes
from tests.helpers.catalog import bundles_for, make_credit, make_release, mbid

if TYPE_CHECKING:
    from collections.abc import Callable

    from cantus.adapters.sqlalchemy.unit_of_work import SqlAlchemyCatalogUnitOfWork
    from cantus.domain.model import CandidateRelease
    from cantus.domain.ports.search import SearchDocument
    from cantus.domain.resolution import EntityResolver

    CatalogFactory = Callable[[], SqlAlchemyCatalogUnitOfWork]


class FlakyIndex(InvertedIndex):
    """Index whose upserts fail while ``broken`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.broken = False

    def upsert(self, document: SearchDocument) -> None:
        if self.broken:
            raise RuntimeError("index offline")
        super().upsert(document)


@pytest.fixture
def index() -> FlakyIndex:
    return FlakyIndex()


@pytest.fixture
def synchronizer(index: FlakyIndex, catalog: CatalogFactory) -> SearchIndexSynchronizer:
    synchronizer = SearchIndexSynchronizer(index=index, unit_of_work_factory=catalog, interval=0.01)
    add_commit_listener(synchronizer)
    return synchronizer


def _import(
    resolver: EntityResolver, release: CandidateRelease, *, artist: str = "Test Artist"
) -> list[str]:
    bundles = bundles_for(release, f"/music/{release.title}", artist=artist)
    local = LocalRelease.from_bundles(f"album:{release.title}", bundles)
    resolver.resolve_release(local, CandidateMatcher().match_release(local, [release]))
    return list(local.paths)


def test_coalesce_keeps_latest_change_in_first_seen_order() -> None:
    first = CatalogChange(entity=EntityKind.TRACK, mbid=mbid("a"))
    second = CatalogChange(entity=EntityKind.RELEASE, mbid=mbid("b"))
    deleted = CatalogChange(entity=EntityKind.TRACK, mbid=mbid("a"), change=ChangeKind.DELETE)

    assert coalesce_changes([first, second, deleted]) == [deleted, second]
    assert change_key(second) == f"release:{mbid('b')}"


def test_commits_are_queued_and_applied_on_sync(
    resolver: EntityResolver, synchronizer: SearchIndexSynchronizer, index: FlakyIndex
) -> None:
    release = make_release("Searchable", [["Needle", "Haystack"]])

    _import(resolver, release)

    assert synchronizer.pending > 0
    assert len(index) == 0
    synchronizer.process_pending()
    assert synchronizer.pending == 0
    assert index.contains(EntityKind.RELEASE, release.mbid)
    assert [hit.title for hit in index.search("needle", kinds={EntityKind.TRACK})] == ["Needle"]


def test_deleted_entities_leave_the_index_after_one_cycle(
    resolver: EntityResolver, synchronizer: SearchIndexSynchronizer, index: FlakyIndex
) -> None:
    release = make_release("Ephemeral", [["Gone Soon"]])
    paths = _import(resolver, release)
    synchronizer.process_pending()

    resolver.remove_missing(paths)
    resolver.cleanup_orphans()
    synchronizer.process_pending()

    assert not index.contains(EntityKind.TRACK, release.tracks[0].mbid)
    assert not index.contains(EntityKind.RELEASE, release.mbid)
    assert index.search("ephemeral") == []


def test_renamed_artists_refresh_documents_crediting_them(
    resolver: EntityResolver, synchronizer: SearchIndexSynchronizer, index: FlakyIndex
) -> None:
    purple = make_release("Purple", [["Rain"]], artist=make_credit("Prince"))
    _import(resolver, purple, artist="Prince")
    synchronizer.process_pending()
    renamed = CandidateArtist(mbid=purple.artist_credit[0].artist.mbid, name="Symbol")
    gold = make_release("Gold", [["Shine"]], artist=(CandidateCredit(artist=renamed),))

    _import(resolver, gold, artist="Symbol")
    synchronizer.process_pending()

    hits = index.search("symbol", kinds={EntityKind.RELEASE})
    assert sorted(hit.title for hit in hits) == ["Gold", "Purple"]
    assert index.search("prince", kinds={EntityKind.RELEASE}) == []


def test_failed_changes_are_requeued(
    resolver: EntityResolver, synchronizer: SearchIndexSynchronizer, index: FlakyIndex
) -> None:
    release = make_release("Retry Later", [["Patience"]])
    _import(resolver, release)
    queued = synchronizer.pending
    index.broken = True

    applied = synchronizer.process_pending()
    requeued = synchronizer.pending
    index.broken = False
    recovered = synchronizer.process_pending()

    assert applied == 0
    assert 0 < requeued <= queued
    assert recovered == requeued
    assert synchronizer.pending == 0
    assert index.contains(EntityKind.RELEASE, release.mbid)


def test_rebuild_indexes_the_whole_catalog(
    resolver: EntityResolver, synchronizer: SearchIndexSynchronizer, index: FlakyIndex
) -> None:
    _import(resolver, make_release("Full", [["One", "Two"]]))

    count = synchronizer.rebuild()

    assert count == 4
    assert synchronizer.pending == 0
    assert len(index) == 4


def test_run_drains_until_stopped(
    resolver: EntityResolver, synchronizer: SearchIndexSynchronizer, index: FlakyIndex
) -> None:
    release = make_release("Background", [["Loop"]])

    async def scenario() -> None:
        stop = asyncio.Event()
        runner = asyncio.create_task(synchronizer.run(stop))
        await asyncio.to_thread(_import, resolver, release)
        for _ in range(200):
            if index.contains(EntityKind.RELEASE, release.mbid):
                break
            await asyncio.sleep(0.01)
        stop.set()
        await asyncio.wait_for(runner, timeout=5.0)

    asyncio.run(scenario())

    assert index.contains(EntityKind.TRACK, release.tracks[0].mbid)
    assert synchronizer.pending == 0
