"""Domain model for the music catalog."""

from __future__ import annotations

from .candidates import CandidateArtist, CandidateCredit, CandidateRelease, CandidateTrack
from .catalog import (
    Artist,
    ArtistImage,
    ArtistUrl,
    CatalogChange,
    CatalogFilter,
    Credit,
    CreditedArtist,
    FingerprintRecord,
    Release,
    ReleaseImage,
    Track,
    local_track_id,
)
from .enums import (
    RELEASE_CREDIT_ROLES,
    TRACK_CREDIT_ROLES,
    ChangeKind,
    CreditRole,
    EnrichmentKind,
    EntityKind,
    ImageKind,
    TrackStatus,
    UnmatchedReason,
    UrlKind,
)
from .tags import LocalRelease, TagBundle, TagKey, release_group_key

__all__ = [
    "RELEASE_CREDIT_ROLES",
    "TRACK_CREDIT_ROLES",
    "Artist",
    "ArtistImage",
    "ArtistUrl",
    "CandidateArtist",
    "CandidateCredit",
    "CandidateRelease",
    "CandidateTrack",
    "CatalogChange",
    "CatalogFilter",
    "ChangeKind",
    "Credit",
    "CreditRole",
    "CreditedArtist",
    "EnrichmentKind",
    "EntityKind",
    "FingerprintRecord",
    "ImageKind",
    "LocalRelease",
    "Release",
    "ReleaseImage",
    "TagBundle",
    "TagKey",
    "Track",
    "TrackStatus",
    "UnmatchedReason",
    "UrlKind",
    "local_track_id",
    "release_group_key",
]
