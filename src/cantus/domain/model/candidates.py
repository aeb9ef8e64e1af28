"""Candidate entities returned by an external metadata source."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .enums import CreditRole

if TYPE_CHECKING:
    from collections.abc import Mapping
    from uuid import UUID


@dataclass(frozen=True, slots=True)
class CandidateArtist:
    mbid: UUID
    name: str
    sort_name: str | None = None
    instruments: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class CandidateCredit:
    """One entry of an ordered artist credit.

    ``join_phrase`` is the text rendered after this artist (``" & "``, ``", "``, ``""``).
    ``credited_as`` is the name printed on the release when it differs from the artist name.
    """

    artist: CandidateArtist
    join_phrase: str = ""
    credited_as: str | None = None

    @property
    def display_name(self) -> str:
        return self.credited_as or self.artist.name


type CreditMap = Mapping[CreditRole, tuple[CandidateCredit, ...]]


@dataclass(frozen=True, slots=True)
class CandidateTrack:
    mbid: UUID
    title: str
    length: int | None = None
    disc: int | None = None
    disc_mbid: UUID | None = None
    number: int | None = None
    credits: CreditMap = field(default_factory=dict)
    genres: tuple[str, ...] = ()
    release_mbid: UUID | None = None

    @property
    def artist_credit(self) -> tuple[CandidateCredit, ...]:
        return self.credits.get(CreditRole.PRIMARY, ())


@dataclass(frozen=True, slots=True)
class CandidateRelease:
    mbid: UUID
    title: str
    release_group_mbid: UUID | None = None
    asin: str | None = None
    discs: int | None = None
    media: str | None = None
    country: str | None = None
    label: str | None = None
    catalog_no: str | None = None
    status: str | None = None
    release_type: str | None = None
    date: str | None = None
    original_date: str | None = None
    script: str | None = None
    artist_credit: tuple[CandidateCredit, ...] = ()
    tracks: tuple[CandidateTrack, ...] = ()
    genres: tuple[str, ...] = ()

    @property
    def track_count(self) -> int:
        return len(self.tracks)

    def artists(self) -> dict[UUID, CandidateArtist]:
        """Every artist credited on the release or any of its tracks, first seen first."""

        found: dict[UUID, CandidateArtist] = {}
        for credit in self.artist_credit:
            found.setdefault(credit.artist.mbid, credit.artist)
        for track in self.tracks:
            for role in CreditRole:
                for credit in track.credits.get(role, ()):
                    found.setdefault(credit.artist.mbid, credit.artist)
        return found
