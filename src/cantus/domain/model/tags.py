"""Normalized tag data read from local audio files."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import PurePath
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping, Sequence


class TagKey(StrEnum):
    TITLE = "title"
    ARTIST = "artist"
    ARTISTS = "artists"
    ARTIST_SORT = "artist_sort"
    ALBUM = "album"
    ALBUM_ARTIST = "album_artist"
    ALBUM_ARTISTS = "album_artists"
    ALBUM_ARTIST_SORT = "album_artist_sort"
    TRACK_NUMBER = "track_number"
    TRACK_TOTAL = "track_total"
    DISC_NUMBER = "disc_number"
    DISC_TOTAL = "disc_total"
    DATE = "date"
    ORIGINAL_DATE = "original_date"
    GENRE = "genre"
    LABEL = "label"
    CATALOG_NUMBER = "catalog_number"
    COUNTRY = "country"
    MEDIA = "media"
    RELEASE_TYPE = "release_type"
    RELEASE_STATUS = "release_status"
    SCRIPT = "script"
    ASIN = "asin"
    COMPOSER = "composer"
    LYRICIST = "lyricist"
    MB_RELEASE_ID = "musicbrainz_release_id"
    MB_RELEASE_GROUP_ID = "musicbrainz_release_group_id"
    MB_TRACK_ID = "musicbrainz_track_id"
    MB_RECORDING_ID = "musicbrainz_recording_id"
    MB_ARTIST_ID = "musicbrainz_artist_id"
    MB_ALBUM_ARTIST_ID = "musicbrainz_album_artist_id"


_LEADING_INT = re.compile(r"^\s*(\d+)")
_DATE_PREFIX = re.compile(r"^\s*(\d{4})(?:-(\d{2}))?(?:-(\d{2}))?")


def parse_int(value: str | None) -> int | None:
    """Parse the leading integer of ``value`` ("3/12" -> 3, "07" -> 7)."""

    if value is None:
        return None
    found = _LEADING_INT.match(value)
    return int(found.group(1)) if found else None


def parse_total(value: str | None) -> int | None:
    """Parse the total part of an ``n/total`` value ("3/12" -> 12)."""

    if value is None or "/" not in value:
        return None
    return parse_int(value.split("/", 1)[1])


def normalize_date(value: str | None) -> str | None:
    """Reduce a date-ish tag value to ``YYYY``, ``YYYY-MM`` or ``YYYY-MM-DD``."""

    if value is None:
        return None
    found = _DATE_PREFIX.match(value)
    if not found:
        return None
    return "-".join(part for part in found.groups() if part)


def parse_uuid(value: str | None) -> UUID | None:
    if not value:
        return None
    try:
        return UUID(value.strip())
    except ValueError:
        return None


@dataclass(frozen=True, slots=True)
class TagBundle:
    """Multi-valued tags of a single audio file.

    Every value list is ordered as found in the file and never contains blank strings.
    """

    path: str
    format: str
    duration_ms: int | None = None
    values: Mapping[TagKey, tuple[str, ...]] = field(default_factory=dict)

    def get(self, key: TagKey) -> tuple[str, ...]:
        return self.values.get(key, ())

    def first(self, key: TagKey) -> str | None:
        found = self.get(key)
        return found[0] if found else None

    def first_int(self, key: TagKey) -> int | None:
        return parse_int(self.first(key))

    def first_uuid(self, key: TagKey) -> UUID | None:
        return parse_uuid(self.first(key))

    @property
    def title(self) -> str:
        return self.first(TagKey.TITLE) or PurePath(self.path).stem

    @property
    def track_number(self) -> int | None:
        return self.first_int(TagKey.TRACK_NUMBER)

    @property
    def disc_number(self) -> int | None:
        return self.first_int(TagKey.DISC_NUMBER)

    @property
    def artist_names(self) -> tuple[str, ...]:
        return self.get(TagKey.ARTISTS) or self.get(TagKey.ARTIST)

    @property
    def artist_text(self) -> str | None:
        return self.first(TagKey.ARTIST)

    @property
    def genres(self) -> tuple[str, ...]:
        return self.get(TagKey.GENRE)

    def canonical(self) -> dict[str, object]:
        return {
            "path": self.path,
            "format": self.format,
            "duration_ms": self.duration_ms,
            "values": {str(key): list(self.values[key]) for key in sorted(self.values)},
        }


def release_group_key(bundle: TagBundle) -> str:
    """Key under which files are resolved together as one release.

    Files carrying a MusicBrainz release id group by that id; otherwise by album title,
    album artist and containing directory; a file without album tags stands alone.
    """

    release_id = bundle.first_uuid(TagKey.MB_RELEASE_ID)
    if release_id is not None:
        return f"mbid:{release_id}"
    album = bundle.first(TagKey.ALBUM)
    if album:
        album_artist = bundle.first(TagKey.ALBUM_ARTIST) or bundle.first(TagKey.ARTIST) or ""
        parent = str(PurePath(bundle.path).parent)
        return f"album:{album.casefold()}|{album_artist.casefold()}|{parent}"
    return f"path:{bundle.path}"


@dataclass(frozen=True, slots=True)
class LocalRelease:
    """Tag bundles believed to belong to one release, in track order."""

    key: str
    bundles: tuple[TagBundle, ...]

    @classmethod
    def from_bundles(cls, key: str, bundles: Sequence[TagBundle]) -> LocalRelease:
        ordered = sorted(
            bundles,
            key=lambda b: (b.disc_number or 1, b.track_number or 0, b.path),
        )
        return cls(key=key, bundles=tuple(ordered))

    def __iter__(self) -> Iterator[TagBundle]:
        return iter(self.bundles)

    def __len__(self) -> int:
        return len(self.bundles)

    @property
    def is_loose(self) -> bool:
        """A single file without album tags."""

        return self.key.startswith("path:")

    def _first(self, key: TagKey) -> str | None:
        for bundle in self.bundles:
            found = bundle.first(key)
            if found:
                return found
        return None

    @property
    def title(self) -> str | None:
        return self._first(TagKey.ALBUM)

    @property
    def artist_names(self) -> tuple[str, ...]:
        for bundle in self.bundles:
            names = bundle.get(TagKey.ALBUM_ARTISTS) or bundle.get(TagKey.ALBUM_ARTIST)
            if names:
                return names
        return self.bundles[0].artist_names if self.bundles else ()

    @property
    def artist_text(self) -> str | None:
        return self._first(TagKey.ALBUM_ARTIST) or self._first(TagKey.ARTIST)

    @property
    def release_mbid(self) -> UUID | None:
        return parse_uuid(self._first(TagKey.MB_RELEASE_ID))

    @property
    def track_count(self) -> int:
        return len(self.bundles)

    @property
    def disc_count(self) -> int | None:
        declared = parse_int(self._first(TagKey.DISC_TOTAL))
        if declared is None:
            for bundle in self.bundles:
                declared = parse_total(bundle.first(TagKey.DISC_NUMBER))
                if declared is not None:
                    break
        discs = {bundle.disc_number for bundle in self.bundles if bundle.disc_number}
        if declared is None and not discs:
            return None
        return max(declared or 0, len(discs), max(discs, default=0))

    @property
    def date(self) -> str | None:
        return normalize_date(self._first(TagKey.DATE))

    @property
    def country(self) -> str | None:
        return self._first(TagKey.COUNTRY)

    @property
    def label(self) -> str | None:
        return self._first(TagKey.LABEL)

    @property
    def release_type(self) -> str | None:
        return self._first(TagKey.RELEASE_TYPE)

    @property
    def paths(self) -> tuple[str, ...]:
        return tuple(bundle.path for bundle in self.bundles)
