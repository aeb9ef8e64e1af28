"""Entity resolution: idempotent, atomic catalog writes for matched and unmatched files."""

from __future__ import annotations

from .fingerprint import content_fingerprint, tags_fingerprint
from .locks import KeyedLocks
from .resolver import EntityResolver, OrphanCleanup, ResolutionResult, merge_genres, merge_unique

__all__ = [
    "EntityResolver",
    "KeyedLocks",
    "OrphanCleanup",
    "ResolutionResult",
    "content_fingerprint",
    "merge_genres",
    "merge_unique",
    "tags_fingerprint",
]
