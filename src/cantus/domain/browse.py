"""Read-side views of the catalog: filtered listings, search and review queue."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from cantus.domain.credits import render_credit
from cantus.domain.model import CatalogFilter, CreditRole, EntityKind, TrackStatus

if TYPE_CHECKING:
    from collections.abc import Collection
    from uuid import UUID

    from cantus.domain.model import Artist, Release, Track, UnmatchedReason
    from cantus.domain.ports.search import SearchIndex
    from cantus.domain.ports.unit_of_work import CatalogRepositories, CatalogUnitOfWorkFactory


@dataclass(frozen=True, slots=True)
class ArtistView:
    mbid: UUID
    name: str
    sort_name: str | None
    status: TrackStatus = TrackStatus.RESOLVED


@dataclass(frozen=True, slots=True)
class ReleaseView:
    mbid: UUID
    title: str
    artists: str
    date: str | None
    track_count: int | None
    status: TrackStatus = TrackStatus.RESOLVED


@dataclass(frozen=True, slots=True)
class TrackView:
    mbid: UUID
    title: str
    path: str
    artists: str
    release: str | None
    disc: int | None
    number: int | None
    genres: tuple[str, ...]
    status: TrackStatus
    unmatched_reason: UnmatchedReason | None
    confidence: float | None


type CatalogView = ArtistView | ReleaseView | TrackView


@dataclass(frozen=True, slots=True)
class SearchResult:
    view: CatalogView
    score: float


def _artists(repos: CatalogRepositories, kind: EntityKind, mbid: UUID) -> str:
    credited = repos.credits.artists(kind, mbid, CreditRole.PRIMARY)
    return render_credit([(item.artist.name, item.join_phrase) for item in credited])


def artist_view(artist: Artist) -> ArtistView:
    return ArtistView(mbid=artist.mbid, name=artist.name, sort_name=artist.sort_name)


def release_view(repos: CatalogRepositories, release: Release) -> ReleaseView:
    return ReleaseView(
        mbid=release.mbid,
        title=release.title,
        artists=_artists(repos, EntityKind.RELEASE, release.mbid),
        date=release.date,
        track_count=release.track_count,
    )


def track_view(repos: CatalogRepositories, track: Track) -> TrackView:
    release = repos.releases.get(track.release_mbid) if track.release_mbid else None
    return TrackView(
        mbid=track.mbid,
        title=track.title,
        path=track.path,
        artists=_artists(repos, EntityKind.TRACK, track.mbid),
        release=release.title if release is not None else None,
        disc=track.disc,
        number=track.number,
        genres=tuple(track.genres),
        status=track.status,
        unmatched_reason=track.unmatched_reason,
        confidence=track.confidence,
    )


class BrowseService:
    def __init__(
        self,
        *,
        unit_of_work_factory: CatalogUnitOfWorkFactory,
        index: SearchIndex | None = None,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._index = index

    def tracks(self, criteria: CatalogFilter | None = None) -> list[TrackView]:
        with self._uow_factory() as uow:
            repos = uow.repositories
            found = repos.tracks.find(criteria or CatalogFilter())
            return [track_view(repos, track) for track in found]

    def releases(self, criteria: CatalogFilter | None = None) -> list[ReleaseView]:
        with self._uow_factory() as uow:
            repos = uow.repositories
            found = repos.releases.find(criteria or CatalogFilter())
            return [release_view(repos, release) for release in found]

    def artists(self, *, name: str | None = None, limit: int | None = None) -> list[ArtistView]:
        with self._uow_factory() as uow:
            found = uow.repositories.artists.find(name=name, limit=limit)
            return [artist_view(artist) for artist in found]

    def needs_review(self, *, limit: int | None = None, offset: int = 0) -> list[TrackView]:
        """Unmatched tracks, the queue of files waiting for a manual decision."""

        criteria = CatalogFilter(status=TrackStatus.UNMATCHED, limit=limit, offset=offset)
        return self.tracks(criteria)

    def search(
        self,
        text: str,
        *,
        kinds: Collection[EntityKind] | None = None,
        limit: int = 20,
    ) -> list[SearchResult]:
        """Free-text search; hits whose entity is gone from the catalog are dropped."""

        if self._index is None:
            return []
        hits = self._index.search(text, kinds=kinds, limit=limit)
        results: list[SearchResult] = []
        with self._uow_factory() as uow:
            repos = uow.repositories
            for hit in hits:
                view = self._view(repos, hit.kind, hit.mbid)
                if view is not None:
                    results.append(SearchResult(view=view, score=hit.score))
        return results

    @staticmethod
    def _view(repos: CatalogRepositories, kind: EntityKind, mbid: UUID) -> CatalogView | None:
        if kind is EntityKind.ARTIST:
            artist = repos.artists.get(mbid)
            return artist_view(artist) if artist is not None else None
        if kind is EntityKind.RELEASE:
            release = repos.releases.get(mbid)
            return release_view(repos, release) if release is not None else None
        track = repos.tracks.get(mbid)
        return track_view(repos, track) if track is not None else None
