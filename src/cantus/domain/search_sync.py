"""Eventually consistent mirroring of catalog changes into the search index.

Catalog writers only append to the update queue (the synchronizer is registered as a
commit listener), so they never wait for the index. A consumer drains the queue,
coalesces changes per entity, re-reads the committed catalog state and applies it:
an entity that no longer exists is deleted from the index.
"""

from __future__ import annotations

import asyncio
import threading
from collections import deque
from logging import getLogger
from typing import TYPE_CHECKING

from cantus.domain.credits import render_credit
from cantus.domain.errors import IndexSyncFailure
from cantus.domain.model import CatalogChange, ChangeKind, CreditRole, EntityKind
from cantus.domain.ports.search import SearchDocument
from cantus.domain.resolution import merge_unique

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from uuid import UUID

    from cantus.domain.model import Artist, Release, Track
    from cantus.domain.ports.search import SearchIndex
    from cantus.domain.ports.unit_of_work import CatalogRepositories, CatalogUnitOfWorkFactory

log = getLogger(__name__)


def change_key(change: CatalogChange) -> str:
    return f"{change.entity}:{change.mbid}"


def coalesce_changes(changes: Iterable[CatalogChange]) -> list[CatalogChange]:
    """Keep the latest change per entity, in order of each entity's first appearance."""

    latest: dict[str, CatalogChange] = {}
    for change in changes:
        latest[change_key(change)] = change
    return list(latest.values())


def artist_document(artist: Artist) -> SearchDocument:
    fields = {"name": artist.name}
    if artist.sort_name:
        fields["sort_name"] = artist.sort_name
    if artist.description:
        fields["description"] = artist.description
    return SearchDocument(
        kind=EntityKind.ARTIST, mbid=artist.mbid, title=artist.name, fields=fields
    )


def release_document(release: Release, *, artists: str, genres: Sequence[str]) -> SearchDocument:
    fields = {"artists": artists, "genres": " ".join(genres)}
    if release.release_type:
        fields["release_type"] = release.release_type
    return SearchDocument(
        kind=EntityKind.RELEASE, mbid=release.mbid, title=release.title, fields=fields
    )


def track_document(track: Track, *, artists: str, release: str | None) -> SearchDocument:
    fields = {"artists": artists, "genres": " ".join(track.genres)}
    if release:
        fields["release"] = release
    return SearchDocument(kind=EntityKind.TRACK, mbid=track.mbid, title=track.title, fields=fields)


def _rendered_artists(repos: CatalogRepositories, kind: EntityKind, mbid: UUID) -> str:
    credited = repos.credits.artists(kind, mbid, CreditRole.PRIMARY)
    return render_credit([(item.artist.name, item.join_phrase) for item in credited])


def build_document(
    repos: CatalogRepositories,
    kind: EntityKind,
    mbid: UUID,
) -> SearchDocument | None:
    """Current search document of an entity, or None when it is gone from the catalog."""

    if kind is EntityKind.ARTIST:
        artist = repos.artists.get(mbid)
        return artist_document(artist) if artist is not None else None
    if kind is EntityKind.RELEASE:
        release = repos.releases.get(mbid)
        if release is None:
            return None
        genres = merge_unique(*(track.genres for track in repos.tracks.by_release(mbid)))
        return release_document(
            release, artists=_rendered_artists(repos, kind, mbid), genres=genres
        )
    track = repos.tracks.get(mbid)
    if track is None:
        return None
    release = repos.releases.get(track.release_mbid) if track.release_mbid else None
    return track_document(
        track,
        artists=_rendered_artists(repos, kind, mbid),
        release=release.title if release is not None else None,
    )


class SearchIndexSynchronizer:
    def __init__(
        self,
        *,
        index: SearchIndex,
        unit_of_work_factory: CatalogUnitOfWorkFactory,
        interval: float = 2.0,
    ) -> None:
        self._index = index
        self._uow_factory = unit_of_work_factory
        self._interval = interval
        self._queue: deque[CatalogChange] = deque()
        self._guard = threading.Lock()
        # serializes consumers so a requeued change cannot overtake a newer one
        self._consumer = threading.Lock()

    def __call__(self, changes: Sequence[CatalogChange]) -> None:
        self.enqueue(changes)

    def enqueue(self, changes: Iterable[CatalogChange]) -> None:
        with self._guard:
            self._queue.extend(changes)

    @property
    def pending(self) -> int:
        with self._guard:
            return len(self._queue)

    def _drain(self) -> list[CatalogChange]:
        with self._guard:
            drained = list(self._queue)
            self._queue.clear()
        return drained

    def _requeue(self, changes: Iterable[CatalogChange]) -> None:
        with self._guard:
            self._queue.extendleft(reversed(list(changes)))

    def process_pending(self) -> int:
        """Apply every queued change; returns the number of entities synchronized."""

        with self._consumer:
            batch = coalesce_changes(self._drain())
            if not batch:
                return 0
            try:
                self._apply(batch)
            except IndexSyncFailure as exc:
                failed = set(exc.keys)
                log.warning("%s; re-queueing for the next cycle", exc)
                self._requeue(change for change in batch if change_key(change) in failed)
                return len(batch) - len(failed)
            return len(batch)

    def _apply(self, batch: Sequence[CatalogChange]) -> None:
        failed: list[str] = []
        detail: str | None = None
        try:
            with self._uow_factory() as uow:
                for change in batch:
                    try:
                        self._apply_one(uow.repositories, change)
                    except Exception as exc:  # noqa: BLE001
                        failed.append(change_key(change))
                        detail = str(exc)
        except Exception as exc:
            raise IndexSyncFailure([change_key(change) for change in batch], str(exc)) from exc
        if failed:
            raise IndexSyncFailure(failed, detail)

    def _apply_one(self, repos: CatalogRepositories, change: CatalogChange) -> None:
        document = None
        if change.change is ChangeKind.UPSERT:
            document = build_document(repos, change.entity, change.mbid)
        if document is None:
            self._index.delete(change.entity, change.mbid)
        else:
            self._index.upsert(document)

    async def run(self, stop: asyncio.Event) -> None:
        """Drain the queue every ``interval`` seconds until ``stop`` is set."""

        while not stop.is_set():
            try:
                await asyncio.to_thread(self.process_pending)
            except Exception:
                log.exception("Search index sync cycle failed")
            try:
                await asyncio.wait_for(stop.wait(), timeout=self._interval)
            except TimeoutError:
                continue
        await asyncio.to_thread(self.process_pending)

    def rebuild(self) -> int:
        """Clear the index and repopulate it from the whole catalog."""

        with self._consumer:
            self._drain()
            self._index.clear()
            count = 0
            with self._uow_factory() as uow:
                repos = uow.repositories
                sources = (
                    (EntityKind.ARTIST, repos.artists.all_ids()),
                    (EntityKind.RELEASE, repos.releases.all_ids()),
                    (EntityKind.TRACK, repos.tracks.all_ids()),
                )
                for kind, mbids in sources:
                    for mbid in mbids:
                        document = build_document(repos, kind, mbid)
                        if document is not None:
                            self._index.upsert(document)
                            count += 1
        log.info("Rebuilt search index with %d document(s)", count)
        return count
