"""Ports for persisting catalog aggregates."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from cantus.domain.model import Artist, Release, Track

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime
    from uuid import UUID

    from cantus.domain.model import (
        ArtistImage,
        ArtistUrl,
        CatalogFilter,
        Credit,
        CreditedArtist,
        CreditRole,
        EntityKind,
        FingerprintRecord,
        ReleaseImage,
        TrackStatus,
        UrlKind,
    )


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...

    def get(self, mbid: UUID) -> TEntity | None: ...

    def delete(self, entity: TEntity) -> None: ...

    def all_ids(self) -> list[UUID]: ...


@runtime_checkable
class ArtistRepository(Repository[Artist], Protocol):
    """Repository contract for artists."""

    def find(self, *, name: str | None = None, limit: int | None = None) -> list[Artist]: ...

    def orphaned(self) -> list[UUID]: ...

    def needing_enrichment(
        self,
        kind: str,
        *,
        older_than: datetime,
        limit: int,
        url_kind: UrlKind | None = None,
    ) -> list[UUID]: ...


@runtime_checkable
class ReleaseRepository(Repository[Release], Protocol):
    """Repository contract for releases."""

    def find(self, criteria: CatalogFilter) -> list[Release]: ...

    def orphaned(self) -> list[UUID]: ...

    def needing_enrichment(
        self, kind: str, *, older_than: datetime, limit: int
    ) -> list[UUID]: ...


@runtime_checkable
class TrackRepository(Repository[Track], Protocol):
    """Repository contract for tracks."""

    def get_by_path(self, path: str) -> Track | None: ...

    def by_release(self, release: UUID) -> list[Track]: ...

    def find(self, criteria: CatalogFilter) -> list[Track]: ...

    def paths(self) -> list[str]: ...

    def tags_fingerprints(self, *, status: TrackStatus | None = None) -> dict[str, str | None]: ...


@runtime_checkable
class CreditRepository(Protocol):
    """Ordered, role-scoped artist credits of releases and tracks."""

    def replace(
        self,
        subject_kind: EntityKind,
        subject: UUID,
        role: CreditRole,
        credits: Sequence[Credit],
    ) -> None: ...

    def entries(
        self, subject_kind: EntityKind, subject: UUID, role: CreditRole
    ) -> list[Credit]: ...

    def artists(
        self, subject_kind: EntityKind, subject: UUID, role: CreditRole
    ) -> list[CreditedArtist]: ...


@runtime_checkable
class ArtistUrlRepository(Protocol):
    def replace(self, artist: UUID, urls: Sequence[ArtistUrl]) -> None: ...

    def for_artist(self, artist: UUID) -> list[ArtistUrl]: ...


@runtime_checkable
class ArtistImageRepository(Protocol):
    def replace(self, artist: UUID, images: Sequence[ArtistImage]) -> None: ...

    def for_artist(self, artist: UUID) -> list[ArtistImage]: ...


@runtime_checkable
class ReleaseImageRepository(Protocol):
    def replace(self, release: UUID, images: Sequence[ReleaseImage]) -> None: ...

    def for_release(self, release: UUID) -> list[ReleaseImage]: ...


@runtime_checkable
class FingerprintRepository(Protocol):
    """Last-seen content fingerprints per (subject, kind)."""

    def get(self, subject: UUID, kind: str) -> FingerprintRecord | None: ...

    def put(self, subject: UUID, kind: str, value: str, *, at: datetime) -> None: ...

    def purge(self, subjects: Sequence[UUID]) -> None: ...
