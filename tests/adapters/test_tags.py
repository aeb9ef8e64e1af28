from __future__ import annotations

import struct
from typing import TYPE_CHECKING

import pytest
from mutagen.flac import FLAC

from cantus.adapters.tags import MutagenTagExtractor, normalize_tags, split_values
from cantus.domain.errors import TagExtractionFailure
from cantus.domain.model import TagKey

if TYPE_CHECKING:
    from pathlib import Path


def _write_flac(path: Path, *, seconds: int = 2, sample_rate: int = 44_100) -> None:
    """An audio-less FLAC file: the marker plus a single STREAMINFO block."""

    packed = (sample_rate << 44) | (1 << 41) | (15 << 36) | (seconds * sample_rate)
    streaminfo = (
        struct.pack(">HH", 4096, 4096)
        + b"\x00\x00\x00\x00\x00\x00"
        + struct.pack(">Q", packed)
        + b"\x00" * 16
    )
    header = bytes([0x80]) + len(streaminfo).to_bytes(3, "big")
    path.write_bytes(b"fLaC" + header + streaminfo)


def test_split_values_splits_and_deduplicates() -> None:
    assert split_values(["Rock; Pop", "Rock", " "], (";",)) == ("Rock", "Pop")
    assert split_values(["A\x00B"], ("\x00", ";")) == ("A", "B")


def test_normalize_tags_maps_container_keys() -> None:
    raw = {
        "tit2": ["Title; with semicolon"],
        "tpe1": ["Artist"],
        "txxx:artists": ["Artist\x00Guest"],
        "tcon": ["Rock;Pop"],
        "trck": ["3/12"],
        "txxx:musicbrainz album id": ["5b11f4ce-a62d-471e-81fc-a69a8278c7da"],
        "unknown": ["ignored"],
    }

    values = normalize_tags(raw)

    assert values[TagKey.TITLE] == ("Title; with semicolon",)
    assert values[TagKey.ARTISTS] == ("Artist", "Guest")
    assert values[TagKey.GENRE] == ("Rock", "Pop")
    assert values[TagKey.TRACK_NUMBER] == ("3/12",)
    assert TagKey.MB_RELEASE_ID in values
    assert len(values) == 6


def test_first_matching_source_key_wins() -> None:
    values = normalize_tags({"date": ["1999-01-02"], "year": ["1998"]})

    assert values == {TagKey.DATE: ("1999-01-02",)}


def test_extract_reads_vorbis_comments(tmp_path: Path) -> None:
    path = tmp_path / "Song.FLAC"
    _write_flac(path)
    audio = FLAC(path)
    audio["title"] = ["Song"]
    audio["artists"] = ["A", "B"]
    audio["genre"] = ["Rock;Pop"]
    audio["tracknumber"] = ["3/12"]
    audio["discnumber"] = ["1"]
    audio.save()

    bundle = MutagenTagExtractor()(path)

    assert bundle.path == str(path)
    assert bundle.format == "flac"
    assert bundle.duration_ms == 2000
    assert bundle.title == "Song"
    assert bundle.artist_names == ("A", "B")
    assert bundle.genres == ("Rock", "Pop")
    assert (bundle.track_number, bundle.disc_number) == (3, 1)


@pytest.mark.parametrize(
    ("name", "content", "kind"),
    [
        ("notes.flac", b"definitely not audio", "corrupt"),
        ("notes.txt", b"plain text", "unsupported"),
    ],
)
def test_extract_classifies_failures(tmp_path: Path, name: str, content: bytes, kind: str) -> None:
    path = tmp_path / name
    path.write_bytes(content)

    with pytest.raises(TagExtractionFailure) as caught:
        MutagenTagExtractor()(path)

    assert caught.value.kind == kind
    assert caught.value.path == str(path)


def test_missing_file_is_unreadable(tmp_path: Path) -> None:
    with pytest.raises(TagExtractionFailure) as caught:
        MutagenTagExtractor()(tmp_path / "missing.flac")

    assert caught.value.kind == "unreadable"
