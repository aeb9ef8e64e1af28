"""Tag bundle extraction backed by mutagen."""

from __future__ import annotations

from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final

from mutagen import File as mutagen_file
from mutagen import MutagenError

from cantus.config.importing import DEFAULT_TAG_SEPARATORS
from cantus.domain.errors import TagExtractionFailure
from cantus.domain.model import TagBundle, TagKey

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

log = getLogger(__name__)

# Keys per container: ID3 frame, Vorbis comment, MP4 atom, APEv2 item.
# Lookups are case-insensitive.
TAG_SOURCES: Final[dict[TagKey, tuple[str, ...]]] = {
    TagKey.TITLE: ("TIT2", "title", "©nam"),
    TagKey.ARTIST: ("TPE1", "artist", "©ART"),
    TagKey.ARTISTS: ("TXXX:ARTISTS", "artists", "----:com.apple.iTunes:ARTISTS"),
    TagKey.ARTIST_SORT: ("TSOP", "artistsort", "soar", "artist sort"),
    TagKey.ALBUM: ("TALB", "album", "©alb"),
    TagKey.ALBUM_ARTIST: ("TPE2", "albumartist", "aART", "album artist"),
    TagKey.ALBUM_ARTISTS: (
        "TXXX:ALBUMARTISTS",
        "albumartists",
        "----:com.apple.iTunes:ALBUMARTISTS",
    ),
    TagKey.ALBUM_ARTIST_SORT: ("TSO2", "albumartistsort", "soaa"),
    TagKey.TRACK_NUMBER: ("TRCK", "tracknumber", "trkn", "track"),
    TagKey.TRACK_TOTAL: ("tracktotal", "totaltracks"),
    TagKey.DISC_NUMBER: ("TPOS", "discnumber", "disk", "disc"),
    TagKey.DISC_TOTAL: ("disctotal", "totaldiscs"),
    TagKey.DATE: ("TDRC", "TYER", "date", "year", "©day"),
    TagKey.ORIGINAL_DATE: ("TDOR", "TORY", "originaldate", "originalyear"),
    TagKey.GENRE: ("TCON", "genre", "©gen"),
    TagKey.LABEL: ("TPUB", "label", "organization", "----:com.apple.iTunes:LABEL"),
    TagKey.CATALOG_NUMBER: (
        "TXXX:CATALOGNUMBER",
        "catalognumber",
        "----:com.apple.iTunes:CATALOGNUMBER",
    ),
    TagKey.COUNTRY: (
        "TXXX:MusicBrainz Album Release Country",
        "releasecountry",
        "----:com.apple.iTunes:MusicBrainz Album Release Country",
    ),
    TagKey.MEDIA: ("TMED", "media", "----:com.apple.iTunes:MEDIA"),
    TagKey.RELEASE_TYPE: (
        "TXXX:MusicBrainz Album Type",
        "releasetype",
        "----:com.apple.iTunes:MusicBrainz Album Type",
    ),
    TagKey.RELEASE_STATUS: (
        "TXXX:MusicBrainz Album Status",
        "releasestatus",
        "----:com.apple.iTunes:MusicBrainz Album Status",
    ),
    TagKey.SCRIPT: ("TXXX:SCRIPT", "script", "----:com.apple.iTunes:SCRIPT"),
    TagKey.ASIN: ("TXXX:ASIN", "asin", "----:com.apple.iTunes:ASIN"),
    TagKey.COMPOSER: ("TCOM", "composer", "©wrt"),
    TagKey.LYRICIST: ("TEXT", "lyricist", "----:com.apple.iTunes:LYRICIST"),
    TagKey.MB_RELEASE_ID: (
        "TXXX:MusicBrainz Album Id",
        "musicbrainz_albumid",
        "----:com.apple.iTunes:MusicBrainz Album Id",
    ),
    TagKey.MB_RELEASE_GROUP_ID: (
        "TXXX:MusicBrainz Release Group Id",
        "musicbrainz_releasegroupid",
        "----:com.apple.iTunes:MusicBrainz Release Group Id",
    ),
    TagKey.MB_TRACK_ID: (
        "TXXX:MusicBrainz Release Track Id",
        "musicbrainz_releasetrackid",
        "----:com.apple.iTunes:MusicBrainz Release Track Id",
    ),
    TagKey.MB_RECORDING_ID: (
        "UFID:http://musicbrainz.org",
        "musicbrainz_trackid",
        "----:com.apple.iTunes:MusicBrainz Track Id",
    ),
    TagKey.MB_ARTIST_ID: (
        "TXXX:MusicBrainz Artist Id",
        "musicbrainz_artistid",
        "----:com.apple.iTunes:MusicBrainz Artist Id",
    ),
    TagKey.MB_ALBUM_ARTIST_ID: (
        "TXXX:MusicBrainz Album Artist Id",
        "musicbrainz_albumartistid",
        "----:com.apple.iTunes:MusicBrainz Album Artist Id",
    ),
}

MULTI_VALUED: Final = frozenset(
    {
        TagKey.ARTISTS,
        TagKey.ALBUM_ARTISTS,
        TagKey.GENRE,
        TagKey.COMPOSER,
        TagKey.LYRICIST,
        TagKey.MB_ARTIST_ID,
        TagKey.MB_ALBUM_ARTIST_ID,
    }
)

# MP4 stores track and disc numbers as (number, total) pairs
_PAIR_ATOMS: Final = frozenset({"trkn", "disk"})


def _as_text_list(value: Any) -> list[str]:
    """Flatten the value shapes mutagen produces (lists, frames, bytes) into strings."""

    if value is None:
        return []
    if isinstance(value, list | tuple):
        out: list[str] = []
        for item in value:
            out.extend(_as_text_list(item))
        return out
    if isinstance(value, bytes):
        return [value.decode("utf-8", errors="replace")]
    if isinstance(value, str):
        return [value]
    text = getattr(value, "text", None)
    if text is not None:
        return _as_text_list(text)
    data = getattr(value, "data", None)
    if isinstance(data, bytes):
        return _as_text_list(data)
    return [str(value)]


def _pair_text(value: Any) -> list[str]:
    out: list[str] = []
    for item in value if isinstance(value, list) else [value]:
        if isinstance(item, tuple) and item:
            number, *rest = item
            total = rest[0] if rest else 0
            out.append(f"{number}/{total}" if total else str(number))
        else:
            out.extend(_as_text_list(item))
    return out


def _raw_tags(audio: Any) -> dict[str, list[str]]:
    tags = getattr(audio, "tags", None)
    if tags is None:
        return {}
    raw: dict[str, list[str]] = {}
    items: Iterable[tuple[str, Any]]
    if hasattr(tags, "as_dict"):
        items = tags.as_dict().items()
    else:
        items = tags.items()
    for key, value in items:
        name = str(key)
        folded = name.casefold()
        texts = _pair_text(value) if name in _PAIR_ATOMS else _as_text_list(value)
        raw.setdefault(folded, []).extend(texts)
    return raw


def split_values(values: Iterable[str], separators: Sequence[str]) -> tuple[str, ...]:
    """Split on every separator, dropping blanks and exact duplicates."""

    parts = list(values)
    for separator in separators:
        parts = [piece for part in parts for piece in part.split(separator)]
    seen: set[str] = set()
    cleaned: list[str] = []
    for part in parts:
        text = part.strip()
        if text and text not in seen:
            seen.add(text)
            cleaned.append(text)
    return tuple(cleaned)


def normalize_tags(
    raw: Mapping[str, Sequence[str]],
    *,
    separators: Sequence[str] = DEFAULT_TAG_SEPARATORS,
) -> dict[TagKey, tuple[str, ...]]:
    """Map container specific keys onto ``TagKey`` values.

    Only multi-valued keys are split on ``separators``; single-valued keys keep their
    values as found (a title may legitimately contain ``;``), minus NUL terminators.
    """

    values: dict[TagKey, tuple[str, ...]] = {}
    for key, sources in TAG_SOURCES.items():
        found: list[str] = []
        for source in sources:
            found = list(raw.get(source.casefold(), ()))
            if found:
                break
        if not found:
            continue
        if key in MULTI_VALUED:
            cleaned = split_values(found, separators)
        else:
            cleaned = split_values(found, ("\x00",))
        if cleaned:
            values[key] = cleaned
    return values


def _duration_ms(audio: Any) -> int | None:
    info = getattr(audio, "info", None)
    length = getattr(info, "length", None)
    if isinstance(length, int | float) and length > 0:
        return int(length * 1000)
    return None


class MutagenTagExtractor:
    """Reads the tag bundle of one audio file."""

    def __init__(self, separators: Sequence[str] = DEFAULT_TAG_SEPARATORS) -> None:
        self.separators = tuple(separators)

    def __call__(self, path: Path) -> TagBundle:
        return self.extract(path)

    def extract(self, path: Path) -> TagBundle:
        location = str(path)
        try:
            audio = mutagen_file(path)
        except MutagenError as exc:
            # mutagen wraps I/O errors of the underlying open/read
            kind = "unreadable" if isinstance(exc.__context__, OSError) else "corrupt"
            raise TagExtractionFailure(location, kind, str(exc)) from exc
        except OSError as exc:
            raise TagExtractionFailure(location, "unreadable", str(exc)) from exc
        if audio is None:
            raise TagExtractionFailure(location, "unsupported")

        values = normalize_tags(_raw_tags(audio), separators=self.separators)
        log.debug("Extracted %d tag(s) from %s", len(values), location)
        return TagBundle(
            path=location,
            format=Path(path).suffix.lstrip(".").lower() or type(audio).__name__.lower(),
            duration_ms=_duration_ms(audio),
            values=values,
        )


if TYPE_CHECKING:
    from cantus.domain.ports.fetching import TagExtractor

    _extractor_check: TagExtractor = MutagenTagExtractor()
