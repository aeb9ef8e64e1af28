"""Candidate matching thresholds and field weights."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from .env import env_float

if TYPE_CHECKING:
    from collections.abc import Mapping

DEFAULT_MATCH_THRESHOLD: Final[float] = 0.70
DEFAULT_AMBIGUITY_MARGIN: Final[float] = 0.02

TRACK_WEIGHTS: Final[Mapping[str, float]] = MappingProxyType(
    {
        "title": 0.50,
        "artists": 0.25,
        "duration": 0.15,
        "number": 0.05,
        "disc": 0.05,
    }
)

RELEASE_WEIGHTS: Final[Mapping[str, float]] = MappingProxyType(
    {
        "title": 0.40,
        "artists": 0.25,
        "track_count": 0.15,
        "disc_count": 0.05,
        "date": 0.05,
        "release_type": 0.04,
        "country": 0.03,
        "label": 0.03,
    }
)

ARTIST_WEIGHTS: Final[Mapping[str, float]] = MappingProxyType({"name": 0.80, "sort_name": 0.20})


@dataclass(frozen=True, slots=True)
class MatchingConfig:
    threshold: float = DEFAULT_MATCH_THRESHOLD
    ambiguity_margin: float = DEFAULT_AMBIGUITY_MARGIN
    # share of the release score carried by the paired track similarities
    track_share: float = 0.65
    duration_scale_ms: float = 5_000.0
    count_scale: float = 1.0
    year_scale: float = 2.0
    track_weights: Mapping[str, float] = field(default_factory=lambda: TRACK_WEIGHTS)
    release_weights: Mapping[str, float] = field(default_factory=lambda: RELEASE_WEIGHTS)
    artist_weights: Mapping[str, float] = field(default_factory=lambda: ARTIST_WEIGHTS)


def get_matching_config() -> MatchingConfig:
    return MatchingConfig(
        threshold=env_float(
            "CANTUS_MATCH_THRESHOLD", DEFAULT_MATCH_THRESHOLD, minimum=0.0, maximum=1.0
        ),
        ambiguity_margin=env_float(
            "CANTUS_AMBIGUITY_MARGIN", DEFAULT_AMBIGUITY_MARGIN, minimum=0.0, maximum=1.0
        ),
    )
