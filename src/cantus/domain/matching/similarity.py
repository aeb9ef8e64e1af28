"""Field similarity measures, all in [0, 1]."""

from __future__ import annotations

import math
import re
import unicodedata
from typing import TYPE_CHECKING

from rapidfuzz.distance import Levenshtein

from .assignment import minimum_cost_assignment

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

_WHITESPACE = re.compile(r"\s+")


def normalize_text(value: str) -> str:
    """Compatibility-fold, casefold and collapse whitespace."""

    folded = unicodedata.normalize("NFKC", value).casefold()
    return _WHITESPACE.sub(" ", folded).strip()


def string_similarity(left: str, right: str) -> float:
    """Normalized Levenshtein similarity of two strings after :func:`normalize_text`."""

    a = normalize_text(left)
    b = normalize_text(right)
    if not a and not b:
        return 1.0
    return Levenshtein.normalized_similarity(a, b)


def set_similarity(left: Sequence[str], right: Sequence[str]) -> float:
    """Order-insensitive similarity of two name sets.

    Names are paired by an optimal assignment over their string similarities; the sum of
    paired similarities is divided by the larger set size so unpaired names count as 0.
    """

    if not left and not right:
        return 1.0
    if not left or not right:
        return 0.0
    similarities = [[string_similarity(a, b) for b in right] for a in left]
    assignment = minimum_cost_assignment([[1.0 - s for s in row] for row in similarities])
    paired = math.fsum(similarities[row][column] for row, column in assignment.pairs)
    return paired / max(len(left), len(right))


def numeric_similarity(left: float, right: float, *, scale: float) -> float:
    """Proximity ``1 / (1 + |a - b| / scale)``; equal values score 1."""

    if scale <= 0:
        return 1.0 if left == right else 0.0
    return 1.0 / (1.0 + abs(left - right) / scale)


def weighted_score(
    scores: Mapping[str, float | None],
    weights: Mapping[str, float],
) -> float | None:
    """Weighted mean over the fields that could be compared.

    A ``None`` score means the field is missing on one side; its weight is dropped and the
    remaining weights renormalized. Returns ``None`` when nothing was comparable.
    """

    total_weight = 0.0
    accumulated = 0.0
    for name, score in scores.items():
        if score is None:
            continue
        weight = weights.get(name, 0.0)
        total_weight += weight
        accumulated += weight * score
    if total_weight <= 0.0:
        return None
    return accumulated / total_weight


def if_both[T](left: T | None, right: T | None) -> tuple[T, T] | None:
    if left is None or right is None:
        return None
    if isinstance(left, str) and not left.strip():
        return None
    if isinstance(right, str) and not right.strip():
        return None
    return left, right
