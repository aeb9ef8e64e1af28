"""In-memory inverted index with misspelling-tolerant queries."""

from __future__ import annotations

import re
import threading
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from rapidfuzz import process
from rapidfuzz.distance import Levenshtein

from cantus.domain.matching import normalize_text
from cantus.domain.ports.search import SearchDocument, SearchHit

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable, Mapping
    from uuid import UUID

    from cantus.domain.model import EntityKind

type DocumentKey = tuple[EntityKind, UUID]

FIELD_BOOSTS: Final[Mapping[str, float]] = MappingProxyType(
    {
        "title": 3.0,
        "name": 3.0,
        "artists": 2.0,
        "sort_name": 1.5,
        "release": 1.5,
        "release_type": 1.0,
        "genres": 1.0,
        "description": 0.5,
    }
)
DEFAULT_BOOST: Final = 1.0

_TOKEN = re.compile(r"\w+")


def tokenize(text: str) -> list[str]:
    return _TOKEN.findall(normalize_text(text))


def edit_budget(token: str) -> int:
    """Edits tolerated when matching ``token``: none up to 3 chars, 1 up to 6, else 2."""

    if len(token) <= 3:
        return 0
    if len(token) <= 6:
        return 1
    return 2


class InvertedIndex:
    """Thread-safe term index over catalog search documents.

    Every query token must match at least one document term within its edit budget;
    a document scores the sum over query tokens of the best ``closeness * boost`` of the
    terms it matched, where closeness drops linearly with the edit distance.
    """

    def __init__(self, boosts: Mapping[str, float] | None = None) -> None:
        self._boosts = dict(FIELD_BOOSTS if boosts is None else boosts)
        self._lock = threading.RLock()
        self._documents: dict[DocumentKey, SearchDocument] = {}
        # term -> document -> highest field boost the term occurs in
        self._postings: dict[str, dict[DocumentKey, float]] = {}
        self._terms: dict[DocumentKey, set[str]] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._documents)

    def upsert(self, document: SearchDocument) -> None:
        key: DocumentKey = (document.kind, document.mbid)
        weights = self._term_weights(document)
        with self._lock:
            self._remove(key)
            self._documents[key] = document
            self._terms[key] = set(weights)
            for term, boost in weights.items():
                self._postings.setdefault(term, {})[key] = boost

    def delete(self, kind: EntityKind, mbid: UUID) -> None:
        with self._lock:
            self._remove((kind, mbid))

    def clear(self) -> None:
        with self._lock:
            self._documents.clear()
            self._postings.clear()
            self._terms.clear()

    def contains(self, kind: EntityKind, mbid: UUID) -> bool:
        with self._lock:
            return (kind, mbid) in self._documents

    def search(
        self,
        text: str,
        *,
        kinds: Collection[EntityKind] | None = None,
        limit: int = 20,
    ) -> list[SearchHit]:
        tokens = tokenize(text)
        if not tokens or limit <= 0:
            return []
        with self._lock:
            scores: dict[DocumentKey, float] | None = None
            for token in dict.fromkeys(tokens):
                token_scores = self._token_scores(token)
                if scores is None:
                    scores = token_scores
                else:
                    scores = {
                        key: score + token_scores[key]
                        for key, score in scores.items()
                        if key in token_scores
                    }
                if not scores:
                    return []
            if scores is None:
                return []
            hits = [
                SearchHit(
                    kind=key[0],
                    mbid=key[1],
                    title=self._documents[key].title,
                    score=score,
                )
                for key, score in scores.items()
                if kinds is None or key[0] in kinds
            ]
        hits.sort(key=lambda hit: (-hit.score, hit.kind, str(hit.mbid)))
        return hits[:limit]

    def _term_weights(self, document: SearchDocument) -> dict[str, float]:
        fields: dict[str, str] = {"title": document.title, **document.fields}
        weights: dict[str, float] = {}
        for name, value in fields.items():
            boost = self._boosts.get(name, DEFAULT_BOOST)
            for term in tokenize(value):
                weights[term] = max(weights.get(term, 0.0), boost)
        return weights

    def _token_scores(self, token: str) -> dict[DocumentKey, float]:
        budget = edit_budget(token)
        scores: dict[DocumentKey, float] = {}
        for term, distance in self._matching_terms(token, budget):
            closeness = 1.0 - distance / (budget + 1)
            for key, boost in self._postings[term].items():
                weighted = closeness * boost
                if weighted > scores.get(key, 0.0):
                    scores[key] = weighted
        return scores

    def _matching_terms(self, token: str, budget: int) -> Iterable[tuple[str, int]]:
        if budget == 0:
            return [(token, 0)] if token in self._postings else []
        found = process.extract(
            token,
            list(self._postings),
            scorer=Levenshtein.distance,
            score_cutoff=budget,
            limit=None,
        )
        return [(term, int(distance)) for term, distance, _ in found]

    def _remove(self, key: DocumentKey) -> None:
        self._documents.pop(key, None)
        for term in self._terms.pop(key, ()):
            posting = self._postings.get(term)
            if posting is None:
                continue
            posting.pop(key, None)
            if not posting:
                del self._postings[term]


if TYPE_CHECKING:
    from cantus.domain.ports.search import SearchIndex

    _index_check: SearchIndex = InvertedIndex()
