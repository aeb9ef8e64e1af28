"""Persisted catalog entities.

These are plain dataclasses; the SQLAlchemy adapter maps them imperatively. Identifiers
are immutable once the entity is created, everything else may be rewritten by the
resolver.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import NAMESPACE_URL, UUID, uuid5

from .enums import ChangeKind, EntityKind, ImageKind, TrackStatus, UnmatchedReason, UrlKind

if TYPE_CHECKING:
    from datetime import datetime
    from pathlib import Path


@dataclass(eq=False, kw_only=True)
class Artist:
    mbid: UUID
    name: str
    sort_name: str | None = None
    instruments: list[str] = field(default_factory=list)
    description: str | None = None


@dataclass(eq=False, kw_only=True)
class Release:
    mbid: UUID
    title: str
    release_group_mbid: UUID | None = None
    asin: str | None = None
    discs: int | None = None
    media: str | None = None
    track_count: int | None = None
    country: str | None = None
    label: str | None = None
    catalog_no: str | None = None
    status: str | None = None
    release_type: str | None = None
    date: str | None = None
    original_date: str | None = None
    script: str | None = None
    fingerprint: str | None = None


@dataclass(eq=False, kw_only=True)
class Track:
    mbid: UUID
    title: str
    path: str
    format: str
    length: int | None = None
    disc: int | None = None
    disc_mbid: UUID | None = None
    number: int | None = None
    genres: list[str] = field(default_factory=list)
    release_mbid: UUID | None = None
    status: TrackStatus = TrackStatus.RESOLVED
    unmatched_reason: UnmatchedReason | None = None
    confidence: float | None = None
    fingerprint: str | None = None
    tags_fingerprint: str | None = None

    @property
    def is_unmatched(self) -> bool:
        return self.status is TrackStatus.UNMATCHED


def local_track_id(path: str | Path) -> UUID:
    """Stable identifier for a track that has no external match."""

    return uuid5(NAMESPACE_URL, f"file://{path}")


@dataclass(frozen=True, slots=True)
class Credit:
    """An artist at one position of a role-scoped credit list."""

    artist: UUID
    join_phrase: str = ""


@dataclass(frozen=True, slots=True)
class CreditedArtist:
    artist: Artist
    position: int
    join_phrase: str


@dataclass(frozen=True, slots=True)
class ArtistUrl:
    url: str
    kind: UrlKind


@dataclass(frozen=True, slots=True)
class ArtistImage:
    url: str
    source: str
    description: str | None = None


@dataclass(frozen=True, slots=True)
class ReleaseImage:
    url: str
    kind: ImageKind
    source: str


@dataclass(frozen=True, slots=True)
class FingerprintRecord:
    subject: UUID
    kind: str
    value: str
    updated_at: datetime


@dataclass(frozen=True, slots=True)
class CatalogChange:
    """A committed mutation, as published to commit listeners."""

    entity: EntityKind
    mbid: UUID
    change: ChangeKind = ChangeKind.UPSERT


@dataclass(frozen=True, slots=True)
class CatalogFilter:
    artist: str | None = None
    genre: str | None = None
    date_from: str | None = None
    date_to: str | None = None
    format: str | None = None
    status: TrackStatus | None = None
    release: UUID | None = None
    limit: int | None = None
    offset: int = 0
