"""Best-candidate selection for artists, releases and tracks."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from cantus.config.matching import MatchingConfig
from cantus.domain.errors import AmbiguousMatch, NoCandidateMatch

from .scoring import (
    artist_candidate_similarity,
    number_gap,
    pair_tracks,
    release_field_similarity,
    track_similarity,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from cantus.domain.model import (
        CandidateArtist,
        CandidateRelease,
        CandidateTrack,
        LocalRelease,
        TagBundle,
    )
    from cantus.domain.ports.fetching import Candidate

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Match[T: Candidate]:
    """A scored candidate.

    ``cost`` and ``number_gap`` are the tie-breakers applied, in that order, between equal
    scores; ``group`` identifies candidates that are interchangeable for ambiguity purposes
    (the release group of a release). For release matches ``columns`` maps every local file
    to the index of its paired candidate track.
    """

    candidate: T
    score: float
    cost: float = 0.0
    number_gap: int = 0
    group: UUID | None = None
    columns: tuple[int | None, ...] = ()
    similarities: tuple[float, ...] = ()

    @property
    def candidate_id(self) -> str:
        return str(self.candidate.mbid)

    def sort_key(self) -> tuple[float, float, int, str]:
        return (-self.score, self.cost, self.number_gap, self.candidate_id)


def rank_matches[T: Candidate](matches: Sequence[Match[T]]) -> list[Match[T]]:
    return sorted(matches, key=Match.sort_key)


def select_match[T: Candidate](
    matches: Sequence[Match[T]],
    *,
    subject: str,
    threshold: float,
    ambiguity_margin: float = 0.0,
) -> Match[T]:
    """Return the best match or raise.

    Raises ``NoCandidateMatch`` when there is no candidate or the best score is below
    ``threshold`` and ``AmbiguousMatch`` when a candidate from a different group scores
    within ``ambiguity_margin`` of the best. A margin of 0 disables the ambiguity check.
    """

    if not matches:
        raise NoCandidateMatch(subject)
    ranked = rank_matches(matches)
    best = ranked[0]
    if best.score < threshold:
        raise NoCandidateMatch(subject, best_score=best.score)
    if ambiguity_margin > 0:
        best_group = best.group or best.candidate.mbid
        contenders = [
            other.candidate_id
            for other in ranked[1:]
            if best.score - other.score <= ambiguity_margin
            and (other.group or other.candidate.mbid) != best_group
        ]
        if contenders:
            raise AmbiguousMatch(
                subject,
                best_score=best.score,
                contenders=[best.candidate_id, *contenders],
            )
    return best


class CandidateMatcher:
    """Scores local tag data against candidates and picks the best one."""

    def __init__(self, config: MatchingConfig | None = None) -> None:
        self.config = config or MatchingConfig()

    def score_release(
        self,
        local: LocalRelease,
        candidate: CandidateRelease,
    ) -> Match[CandidateRelease]:
        pairing = pair_tracks(local.bundles, candidate.tracks, self.config)
        track_score = pairing.mean_similarity
        if local.is_loose:
            score = track_score
        else:
            field_score = release_field_similarity(local, candidate, self.config)
            share = self.config.track_share
            score = (
                track_score
                if field_score is None
                else (1 - share) * field_score + share * track_score
            )
        return Match(
            candidate=candidate,
            score=score,
            cost=pairing.cost,
            number_gap=pairing.number_gap,
            group=candidate.release_group_mbid or candidate.mbid,
            columns=pairing.columns,
            similarities=pairing.similarities,
        )

    def match_release(
        self,
        local: LocalRelease,
        candidates: Sequence[CandidateRelease],
    ) -> Match[CandidateRelease]:
        scored = [self.score_release(local, candidate) for candidate in candidates]
        for match in scored:
            log.debug("Release %s scored %.3f for %s", match.candidate_id, match.score, local.key)
        return select_match(
            scored,
            subject=local.key,
            threshold=self.config.threshold,
            ambiguity_margin=self.config.ambiguity_margin,
        )

    def score_track(self, bundle: TagBundle, candidate: CandidateTrack) -> Match[CandidateTrack]:
        score = track_similarity(bundle, candidate, self.config)
        return Match(
            candidate=candidate,
            score=score,
            cost=1.0 - score,
            number_gap=number_gap(bundle, candidate),
            group=candidate.release_mbid,
        )

    def match_track(
        self,
        bundle: TagBundle,
        candidates: Sequence[CandidateTrack],
    ) -> Match[CandidateTrack]:
        return select_match(
            [self.score_track(bundle, candidate) for candidate in candidates],
            subject=bundle.path,
            threshold=self.config.threshold,
        )

    def match_artist(
        self,
        name: str,
        candidates: Sequence[CandidateArtist],
        *,
        sort_name: str | None = None,
    ) -> Match[CandidateArtist]:
        scored: list[Match[CandidateArtist]] = []
        for candidate in candidates:
            score = artist_candidate_similarity(name, sort_name, candidate, self.config)
            scored.append(Match(candidate=candidate, score=score, cost=1.0 - score))
        return select_match(
            scored,
            subject=name,
            threshold=self.config.threshold,
            ambiguity_margin=self.config.ambiguity_margin,
        )

    def pin_track(
        self,
        local: LocalRelease,
        release: CandidateRelease,
        track: Match[CandidateTrack],
    ) -> Match[CandidateRelease]:
        """Release match for a single file whose track was matched on its own."""

        column = next(
            (
                index
                for index, candidate in enumerate(release.tracks)
                if candidate.mbid == track.candidate.mbid
            ),
            None,
        )
        if column is None:
            raise NoCandidateMatch(local.key, best_score=track.score)
        return Match(
            candidate=release,
            score=track.score,
            cost=track.cost,
            number_gap=track.number_gap,
            group=release.release_group_mbid or release.mbid,
            columns=(column,),
            similarities=(track.score,),
        )
