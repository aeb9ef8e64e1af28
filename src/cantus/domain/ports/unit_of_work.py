"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from cantus.domain.model import CatalogChange
    from cantus.domain.ports.persistence import (
        ArtistImageRepository,
        ArtistRepository,
        ArtistUrlRepository,
        CreditRepository,
        FingerprintRepository,
        ReleaseImageRepository,
        ReleaseRepository,
        TrackRepository,
    )


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Generic unit-of-work boundary around a repository collection."""

    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@dataclass(slots=True)
class CatalogRepositories(RepositoryCollection):
    """Repositories making up the catalog store."""

    artists: ArtistRepository
    releases: ReleaseRepository
    tracks: TrackRepository
    credits: CreditRepository
    artist_urls: ArtistUrlRepository
    artist_images: ArtistImageRepository
    release_images: ReleaseImageRepository
    fingerprints: FingerprintRepository


type CatalogUnitOfWork = UnitOfWork[CatalogRepositories]
type CatalogUnitOfWorkFactory = Callable[[], CatalogUnitOfWork]
type CommitListener = Callable[[Sequence[CatalogChange]], None]
