"""Domain ports (Protocol contracts implemented by adapters)."""

from __future__ import annotations

from .fetching import (
    ArtistImageSource,
    ArtistInfoSource,
    ArtworkSource,
    MetadataSource,
    RateLimitedSource,
    TagExtractor,
)
from .persistence import (
    ArtistImageRepository,
    ArtistRepository,
    ArtistUrlRepository,
    CreditRepository,
    FingerprintRepository,
    ReleaseImageRepository,
    ReleaseRepository,
    Repository,
    TrackRepository,
)
from .search import SearchDocument, SearchHit, SearchIndex
from .tasks import TaskOutcome, TaskQueue
from .unit_of_work import CatalogRepositories, RepositoryCollection, UnitOfWork

__all__ = [
    "ArtistImageRepository",
    "ArtistImageSource",
    "ArtistInfoSource",
    "ArtistRepository",
    "ArtistUrlRepository",
    "ArtworkSource",
    "CatalogRepositories",
    "CreditRepository",
    "FingerprintRepository",
    "MetadataSource",
    "RateLimitedSource",
    "ReleaseImageRepository",
    "ReleaseRepository",
    "Repository",
    "RepositoryCollection",
    "SearchDocument",
    "SearchHit",
    "SearchIndex",
    "TagExtractor",
    "TaskOutcome",
    "TaskQueue",
    "TrackRepository",
    "UnitOfWork",
]
