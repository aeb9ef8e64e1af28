"""Port for the full-text search index."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Collection
    from uuid import UUID

    from cantus.domain.model import EntityKind


@dataclass(frozen=True, slots=True)
class SearchDocument:
    kind: EntityKind
    mbid: UUID
    title: str
    fields: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class SearchHit:
    kind: EntityKind
    mbid: UUID
    title: str
    score: float


@runtime_checkable
class SearchIndex(Protocol):
    def upsert(self, document: SearchDocument) -> None: ...

    def delete(self, kind: EntityKind, mbid: UUID) -> None: ...

    def clear(self) -> None: ...

    def contains(self, kind: EntityKind, mbid: UUID) -> bool: ...

    def search(
        self,
        text: str,
        *,
        kinds: Collection[EntityKind] | None = None,
        limit: int = 20,
    ) -> list[SearchHit]: ...
