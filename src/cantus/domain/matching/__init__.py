"""Candidate matching: field similarity, optimal track assignment, best-candidate selection."""

from __future__ import annotations

from .assignment import Assignment, minimum_cost_assignment
from .matcher import CandidateMatcher, Match, rank_matches, select_match
from .scoring import TrackPairing, artist_similarity, pair_tracks, track_similarity
from .similarity import normalize_text, numeric_similarity, set_similarity, string_similarity

__all__ = [
    "Assignment",
    "CandidateMatcher",
    "Match",
    "TrackPairing",
    "artist_similarity",
    "minimum_cost_assignment",
    "normalize_text",
    "numeric_similarity",
    "pair_tracks",
    "rank_matches",
    "select_match",
    "set_similarity",
    "string_similarity",
    "track_similarity",
]
