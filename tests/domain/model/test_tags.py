from __future__ import annotations

from uuid import UUID

import pytest

from cantus.domain.model import LocalRelease, TagBundle, TagKey, release_group_key
from cantus.domain.model.tags import normalize_date, parse_int, parse_total, parse_uuid
from tests.helpers.catalog import make_bundle

RELEASE_ID = UUID("5b11f4ce-a62d-471e-81fc-a69a8278c7da")


@pytest.mark.parametrize(
    ("value", "expected"),
    [("3/12", 3), ("07", 7), (" 2", 2), ("A1", None), (None, None)],
)
def test_parse_int(value: str | None, expected: int | None) -> None:
    assert parse_int(value) == expected


def test_parse_total() -> None:
    assert parse_total("3/12") == 12
    assert parse_total("3") is None


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("1997", "1997"),
        ("1997-05", "1997-05"),
        ("1997-05-21T00:00:00", "1997-05-21"),
        ("unknown", None),
    ],
)
def test_normalize_date(value: str, expected: str | None) -> None:
    assert normalize_date(value) == expected


def test_parse_uuid_rejects_garbage() -> None:
    assert parse_uuid(f" {RELEASE_ID} ") == RELEASE_ID
    assert parse_uuid("not-an-id") is None


def test_bundle_title_falls_back_to_file_stem() -> None:
    bundle = TagBundle(path="/music/untitled track.mp3", format="mp3")

    assert bundle.title == "untitled track"
    assert bundle.artist_names == ()


def test_release_group_key_prefers_release_id() -> None:
    tagged = make_bundle("/m/a/1.flac", title="x", album="Album", release_id=RELEASE_ID)
    album = make_bundle("/m/a/1.flac", title="x", album="Album", artist="Band")
    loose = make_bundle("/m/loose.flac", title="x")

    assert release_group_key(tagged) == f"mbid:{RELEASE_ID}"
    assert release_group_key(album) == "album:album|band|/m/a"
    assert release_group_key(loose) == "path:/m/loose.flac"


def test_same_album_in_different_directories_is_kept_apart() -> None:
    first = make_bundle("/m/one/1.flac", title="x", album="Greatest Hits", artist="Band")
    second = make_bundle("/m/two/1.flac", title="x", album="Greatest Hits", artist="Band")

    assert release_group_key(first) != release_group_key(second)


def test_local_release_orders_by_disc_then_track() -> None:
    bundles = [
        make_bundle("/m/d2t1.flac", title="c", track=1, disc=2),
        make_bundle("/m/d1t2.flac", title="b", track=2, disc=1),
        make_bundle("/m/d1t1.flac", title="a", track=1),
    ]

    local = LocalRelease.from_bundles("album:x", bundles)

    assert local.paths == ("/m/d1t1.flac", "/m/d1t2.flac", "/m/d2t1.flac")
    assert local.disc_count == 2
    assert local.track_count == 3
    assert not local.is_loose


def test_local_release_disc_count_from_declared_total() -> None:
    bundle = make_bundle("/m/1.flac", title="a", extra={TagKey.DISC_NUMBER: ["1/3"]})

    untagged = make_bundle("/m/2.flac", title="b")

    assert LocalRelease.from_bundles("album:x", [bundle]).disc_count == 3
    assert LocalRelease.from_bundles("album:y", [untagged]).disc_count is None


def test_local_release_artist_prefers_album_artist() -> None:
    bundle = make_bundle("/m/1.flac", title="a", artist="Guest", album_artist="Band")
    local = LocalRelease.from_bundles("album:x", [bundle])

    assert local.artist_names == ("Band",)
    assert local.artist_text == "Band"
