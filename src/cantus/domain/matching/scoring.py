"""Similarity of local tag data against candidate entities."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from cantus.domain.credits import credit_names, render_candidate_credit
from cantus.domain.model.tags import parse_int

from .assignment import minimum_cost_assignment
from .similarity import (
    if_both,
    numeric_similarity,
    set_similarity,
    string_similarity,
    weighted_score,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from cantus.config.matching import MatchingConfig
    from cantus.domain.model import (
        CandidateArtist,
        CandidateCredit,
        CandidateRelease,
        CandidateTrack,
        LocalRelease,
        TagBundle,
    )

# weight of one unit of track/disc number difference inside the pairing cost matrix;
# small enough to only separate pairings whose similarities are otherwise equal
NUMBER_GAP_EPSILON = 1e-6


def artist_similarity(
    names: Sequence[str],
    text: str | None,
    credits: Sequence[CandidateCredit],
) -> float | None:
    """Best of name-set similarity and rendered-credit similarity.

    Local files either carry one display string ("A & B") or one value per artist; the
    candidate credit is compared both as a set of names and as rendered text.
    """

    if not credits or (not names and not text):
        return None
    local_names = list(names)
    if len(local_names) == 1 and text is not None and local_names[0] == text:
        local_names = list(credit_names(text)) or local_names
    best = set_similarity(local_names, [credit.display_name for credit in credits])
    if text:
        best = max(best, string_similarity(text, render_candidate_credit(credits)))
    return best


def _year(value: str | None) -> int | None:
    return parse_int(value[:4]) if value else None


def number_gap(bundle: TagBundle, candidate: CandidateTrack) -> int:
    gap = 0
    numbers = if_both(bundle.track_number, candidate.number)
    if numbers is not None:
        gap += abs(numbers[0] - numbers[1])
    discs = if_both(bundle.disc_number, candidate.disc)
    if discs is not None:
        gap += abs(discs[0] - discs[1])
    return gap


def track_similarity(
    bundle: TagBundle,
    candidate: CandidateTrack,
    config: MatchingConfig,
) -> float:
    scores: dict[str, float | None] = {
        "title": string_similarity(bundle.title, candidate.title),
        "artists": artist_similarity(
            bundle.artist_names, bundle.artist_text, candidate.artist_credit
        ),
        "duration": None,
        "number": None,
        "disc": None,
    }
    durations = if_both(bundle.duration_ms, candidate.length)
    if durations is not None:
        scores["duration"] = numeric_similarity(*durations, scale=config.duration_scale_ms)
    numbers = if_both(bundle.track_number, candidate.number)
    if numbers is not None:
        scores["number"] = numeric_similarity(*numbers, scale=config.count_scale)
    discs = if_both(bundle.disc_number, candidate.disc)
    if discs is not None:
        scores["disc"] = numeric_similarity(*discs, scale=config.count_scale)
    return weighted_score(scores, config.track_weights) or 0.0


def release_field_similarity(
    local: LocalRelease,
    candidate: CandidateRelease,
    config: MatchingConfig,
) -> float | None:
    scores: dict[str, float | None] = {
        "title": None,
        "artists": artist_similarity(
            local.artist_names, local.artist_text, candidate.artist_credit
        ),
        "track_count": None,
        "disc_count": None,
        "date": None,
        "release_type": None,
        "country": None,
        "label": None,
    }
    if (titles := if_both(local.title, candidate.title)) is not None:
        scores["title"] = string_similarity(*titles)
    if candidate.tracks:
        scores["track_count"] = numeric_similarity(
            local.track_count, candidate.track_count, scale=config.count_scale
        )
    if (discs := if_both(local.disc_count, candidate.discs)) is not None:
        scores["disc_count"] = numeric_similarity(*discs, scale=config.count_scale)
    if (years := if_both(_year(local.date), _year(candidate.date))) is not None:
        scores["date"] = numeric_similarity(*years, scale=config.year_scale)
    for name, local_value, candidate_value in (
        ("release_type", local.release_type, candidate.release_type),
        ("country", local.country, candidate.country),
        ("label", local.label, candidate.label),
    ):
        if (pair := if_both(local_value, candidate_value)) is not None:
            scores[name] = string_similarity(*pair)
    return weighted_score(scores, config.release_weights)


@dataclass(frozen=True, slots=True)
class TrackPairing:
    """Optimal pairing of local files with candidate tracks.

    ``columns[i]`` is the candidate track index paired with local file ``i`` (or ``None``),
    ``similarities[i]`` its similarity (0 when unpaired).
    """

    columns: tuple[int | None, ...]
    similarities: tuple[float, ...]
    cost: float
    number_gap: int

    @property
    def mean_similarity(self) -> float:
        if not self.similarities:
            return 0.0
        return math.fsum(self.similarities) / len(self.similarities)


def pair_tracks(
    bundles: Sequence[TagBundle],
    tracks: Sequence[CandidateTrack],
    config: MatchingConfig,
) -> TrackPairing:
    """Jointly assign local files to candidate tracks by minimum total cost."""

    similarities = [
        [track_similarity(bundle, track, config) for track in tracks] for bundle in bundles
    ]
    gaps = [[number_gap(bundle, track) for track in tracks] for bundle in bundles]
    costs = [
        [
            1.0 - similarities[row][column] + NUMBER_GAP_EPSILON * gaps[row][column]
            for column in range(len(tracks))
        ]
        for row in range(len(bundles))
    ]
    assignment = minimum_cost_assignment(costs) if tracks else None
    paired = assignment.as_dict() if assignment is not None else {}

    columns: list[int | None] = []
    scores: list[float] = []
    total_gap = 0
    for row in range(len(bundles)):
        column = paired.get(row)
        columns.append(column)
        if column is None:
            scores.append(0.0)
            continue
        scores.append(similarities[row][column])
        total_gap += gaps[row][column]
    cost = math.fsum(1.0 - score for score in scores)
    return TrackPairing(
        columns=tuple(columns),
        similarities=tuple(scores),
        cost=cost,
        number_gap=total_gap,
    )


def artist_candidate_similarity(
    name: str,
    sort_name: str | None,
    candidate: CandidateArtist,
    config: MatchingConfig,
) -> float:
    scores: dict[str, float | None] = {
        "name": string_similarity(name, candidate.name),
        "sort_name": None,
    }
    if (pair := if_both(sort_name, candidate.sort_name)) is not None:
        scores["sort_name"] = string_similarity(*pair)
    return weighted_score(scores, config.artist_weights) or 0.0
