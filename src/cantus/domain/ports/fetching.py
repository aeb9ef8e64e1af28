"""Ports for reading local tags and fetching external metadata."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from pathlib import Path
    from uuid import UUID

    from cantus.domain.model import (
        ArtistImage,
        ArtistUrl,
        CandidateArtist,
        CandidateRelease,
        CandidateTrack,
        EntityKind,
        ReleaseImage,
        TagBundle,
        UrlKind,
    )

type Candidate = CandidateArtist | CandidateRelease | CandidateTrack


@runtime_checkable
class TagExtractor(Protocol):
    """Callable port returning the normalized tag bundle of one audio file.

    Raises ``TagExtractionFailure`` when the file cannot be read.
    """

    def __call__(self, path: Path) -> TagBundle: ...


@runtime_checkable
class RateLimitedSource(Protocol):
    """A source whose calls draw from a shared token bucket."""

    @property
    def source_name(self) -> str: ...

    def has_capacity(self) -> bool: ...


@runtime_checkable
class MetadataSource(RateLimitedSource, Protocol):
    """Canonical metadata source queried for match candidates.

    Results are ordered by the source's own relevance; raises
    ``ExternalSourceUnavailable`` when the source cannot be reached.
    """

    async def search(
        self,
        scope: EntityKind,
        query: Mapping[str, str],
        *,
        limit: int = 5,
    ) -> Sequence[Candidate]: ...

    async def lookup_release(self, mbid: UUID) -> CandidateRelease | None: ...


@runtime_checkable
class ArtistInfoSource(RateLimitedSource, Protocol):
    async def artist_urls(self, mbid: UUID) -> list[ArtistUrl]: ...

    async def artist_description(self, mbid: UUID) -> str | None: ...


@runtime_checkable
class ArtworkSource(RateLimitedSource, Protocol):
    async def release_images(self, mbid: UUID) -> list[ReleaseImage]: ...


@runtime_checkable
class ArtistImageSource(RateLimitedSource, Protocol):
    """Gallery images of an artist, read from the artist's page at the source.

    ``page`` is the artist url of the source's kind (see ``url_kind``).
    """

    @property
    def url_kind(self) -> UrlKind: ...

    async def artist_images(self, page: str) -> list[ArtistImage]: ...
