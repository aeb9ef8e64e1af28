"""MusicBrainz response schemas for release matching and artist enrichment."""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

log = logging.getLogger(__name__)

type MBId = str
type MBDate = str  # Format: YYYY, YYYY-MM or YYYY-MM-DD


class MusicBrainzBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.debug(
            "MusicBrainz %s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


class MBEntityType(StrEnum):
    ARTIST = "artist"
    RECORDING = "recording"
    RELEASE = "release"
    RELEASE_GROUP = "release-group"
    WORK = "work"
    URL = "url"


class MusicBrainzArtist(MusicBrainzBaseModel):
    id: MBId
    name: str
    sort_name: str | None = Field(default=None, alias="sort-name")
    disambiguation: str | None = None
    type: str | None = None


class MusicBrainzArtistCredit(MusicBrainzBaseModel):
    artist: MusicBrainzArtist
    name: str | None = None
    join_phrase: str | None = Field(default=None, alias="joinphrase")


class MusicBrainzGenre(MusicBrainzBaseModel):
    name: str
    count: int = 0


class MusicBrainzUrl(MusicBrainzBaseModel):
    id: MBId | None = None
    resource: str


class MusicBrainzWork(MusicBrainzBaseModel):
    id: MBId | None = None
    title: str | None = None
    relations: list[MusicBrainzRelation] = Field(default_factory=list["MusicBrainzRelation"])


class MusicBrainzRelation(MusicBrainzBaseModel):
    type: str
    target_type: str | None = Field(default=None, alias="target-type")
    direction: str | None = None
    artist: MusicBrainzArtist | None = None
    work: MusicBrainzWork | None = None
    url: MusicBrainzUrl | None = None
    attributes: list[str] = Field(default_factory=list)
    ended: bool | None = None


class MusicBrainzRecording(MusicBrainzBaseModel):
    id: MBId
    title: str | None = None
    length: int | None = Field(default=None, description="Length in ms")
    disambiguation: str | None = None
    video: bool | None = None
    first_release_date: MBDate | None = Field(default=None, alias="first-release-date")
    artist_credit: list[MusicBrainzArtistCredit] = Field(
        default_factory=list["MusicBrainzArtistCredit"], alias="artist-credit"
    )
    genres: list[MusicBrainzGenre] = Field(default_factory=list["MusicBrainzGenre"])
    relations: list[MusicBrainzRelation] = Field(default_factory=list["MusicBrainzRelation"])
    releases: list[MusicBrainzReleaseRef] = Field(default_factory=list["MusicBrainzReleaseRef"])


class MusicBrainzTrack(MusicBrainzBaseModel):
    id: MBId
    title: str
    number: str | None = None
    position: int | None = None
    length: int | None = None
    recording: MusicBrainzRecording | None = None
    artist_credit: list[MusicBrainzArtistCredit] = Field(
        default_factory=list["MusicBrainzArtistCredit"], alias="artist-credit"
    )


class MusicBrainzMedium(MusicBrainzBaseModel):
    id: MBId | None = None
    position: int | None = None
    format: str | None = None
    track_count: int | None = Field(default=None, alias="track-count")
    track_offset: int | None = Field(default=None, alias="track-offset")
    tracks: list[MusicBrainzTrack] = Field(default_factory=list["MusicBrainzTrack"])
    # search results list the matching tracks under "track"
    matched_tracks: list[MusicBrainzTrack] = Field(
        default_factory=list["MusicBrainzTrack"], alias="track"
    )


class MusicBrainzLabel(MusicBrainzBaseModel):
    id: MBId | None = None
    name: str


class MusicBrainzLabelInfo(MusicBrainzBaseModel):
    catalog_number: str | None = Field(default=None, alias="catalog-number")
    label: MusicBrainzLabel | None = None


class MusicBrainzTextRepresentation(MusicBrainzBaseModel):
    language: str | None = None
    script: str | None = None


class MusicBrainzReleaseGroup(MusicBrainzBaseModel):
    id: MBId
    title: str | None = None
    disambiguation: str | None = None
    primary_type: str | None = Field(default=None, alias="primary-type")
    secondary_types: list[str] = Field(default_factory=list, alias="secondary-types")
    first_release_date: MBDate | None = Field(default=None, alias="first-release-date")
    genres: list[MusicBrainzGenre] = Field(default_factory=list["MusicBrainzGenre"])


class MusicBrainzRelease(MusicBrainzBaseModel):
    id: MBId
    title: str
    status: str | None = None
    score: int | None = None
    country: str | None = None
    date: MBDate | None = None
    asin: str | None = None
    barcode: str | None = None
    disambiguation: str | None = None
    track_count: int | None = Field(default=None, alias="track-count")
    text_representation: MusicBrainzTextRepresentation | None = Field(
        default=None, alias="text-representation"
    )
    artist_credit: list[MusicBrainzArtistCredit] = Field(
        default_factory=list["MusicBrainzArtistCredit"], alias="artist-credit"
    )
    release_group: MusicBrainzReleaseGroup | None = Field(default=None, alias="release-group")
    label_info: list[MusicBrainzLabelInfo] = Field(
        default_factory=list["MusicBrainzLabelInfo"], alias="label-info"
    )
    media: list[MusicBrainzMedium] = Field(default_factory=list["MusicBrainzMedium"])
    genres: list[MusicBrainzGenre] = Field(default_factory=list["MusicBrainzGenre"])


class MusicBrainzReleaseRef(MusicBrainzBaseModel):
    """Release summary embedded in recording search results."""

    id: MBId
    title: str | None = None
    status: str | None = None
    date: MBDate | None = None
    release_group: MusicBrainzReleaseGroup | None = Field(default=None, alias="release-group")
    media: list[MusicBrainzMedium] = Field(default_factory=list["MusicBrainzMedium"])


class MusicBrainzReleaseSearch(MusicBrainzBaseModel):
    created: str | None = None
    count: int | None = None
    offset: int | None = None
    releases: list[MusicBrainzRelease] = Field(default_factory=list["MusicBrainzRelease"])


class MusicBrainzRecordingSearch(MusicBrainzBaseModel):
    created: str | None = None
    count: int | None = None
    offset: int | None = None
    recordings: list[MusicBrainzRecording] = Field(default_factory=list["MusicBrainzRecording"])


class MusicBrainzArtistSearch(MusicBrainzBaseModel):
    created: str | None = None
    count: int | None = None
    offset: int | None = None
    artists: list[MusicBrainzArtist] = Field(default_factory=list["MusicBrainzArtist"])


class MusicBrainzArtistRelations(MusicBrainzBaseModel):
    id: MBId
    name: str | None = None
    relations: list[MusicBrainzRelation] = Field(default_factory=list["MusicBrainzRelation"])


class MusicBrainzWikipediaExtract(MusicBrainzBaseModel):
    content: str | None = None
    language: str | None = None
    title: str | None = None
    url: str | None = None


class MusicBrainzWikipediaDocument(MusicBrainzBaseModel):
    wikipedia_extract: MusicBrainzWikipediaExtract | None = Field(
        default=None, alias="wikipediaExtract"
    )


for _model in (
    MusicBrainzWork,
    MusicBrainzRelation,
    MusicBrainzRecording,
    MusicBrainzTrack,
    MusicBrainzMedium,
    MusicBrainzRelease,
    MusicBrainzReleaseRef,
    MusicBrainzReleaseSearch,
    MusicBrainzRecordingSearch,
):
    _model.model_rebuild()
