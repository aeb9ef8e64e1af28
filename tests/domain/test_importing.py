from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from cantus.adapters.musicbrainz import MusicBrainzAPIError
from cantus.domain.importing import (
    FileState,
    LibraryImporter,
    group_bundles,
    release_query,
    scan_paths,
    track_query,
)
from cantus.domain.matching import CandidateMatcher
from cantus.domain.model import LocalRelease, TrackStatus, UnmatchedReason
from tests.helpers.catalog import (
    FakeMetadataSource,
    FakeTagExtractor,
    bundles_for,
    make_bundle,
    make_release,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from cantus.adapters.sqlalchemy.unit_of_work import SqlAlchemyCatalogUnitOfWork
    from cantus.domain.model import TagBundle
    from cantus.domain.resolution import EntityResolver

    CatalogFactory = Callable[[], SqlAlchemyCatalogUnitOfWork]

EXTENSIONS = (".flac", ".mp3")


@pytest.fixture
def source() -> FakeMetadataSource:
    return FakeMetadataSource()


@pytest.fixture
def extractor() -> FakeTagExtractor:
    return FakeTagExtractor()


@pytest.fixture
def importer(
    extractor: FakeTagExtractor,
    source: FakeMetadataSource,
    resolver: EntityResolver,
    catalog: CatalogFactory,
) -> LibraryImporter:
    return LibraryImporter(
        extractor=extractor,
        source=source,
        matcher=CandidateMatcher(),
        resolver=resolver,
        unit_of_work_factory=catalog,
        extensions=EXTENSIONS,
        workers=2,
    )


def _place(extractor: FakeTagExtractor, *bundles: TagBundle) -> None:
    for bundle in bundles:
        path = Path(bundle.path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.touch()
    extractor.add(*bundles)


def test_scan_paths_filters_extensions(tmp_path: Path) -> None:
    (tmp_path / "a").mkdir()
    for name in ("a/1.FLAC", "a/2.mp3", "a/cover.jpg", "notes.txt"):
        (tmp_path / name).touch()

    assert scan_paths(tmp_path, EXTENSIONS) == [
        str(tmp_path / "a/1.FLAC"),
        str(tmp_path / "a/2.mp3"),
    ]
    assert scan_paths(tmp_path / "a/2.mp3", EXTENSIONS) == [str(tmp_path / "a/2.mp3")]
    assert scan_paths(tmp_path / "notes.txt", EXTENSIONS) == []


def test_group_bundles_and_queries() -> None:
    bundles = [
        make_bundle("/m/a/2.flac", title="Two", artist="Band", album="LP", track=2),
        make_bundle("/m/a/1.flac", title="One", artist="Band", album="LP", track=1),
        make_bundle("/m/single.mp3", title="Loose", artist="Solo"),
    ]

    album, loose = group_bundles(bundles)

    assert album.paths == ("/m/a/1.flac", "/m/a/2.flac")
    assert loose.is_loose
    assert release_query(album) == {"release": "LP", "artist": "Band", "tracks": "2"}
    assert track_query(bundles[0]) == {"recording": "Two", "artist": "Band", "release": "LP"}
    assert track_query(bundles[2]) == {"recording": "Loose", "artist": "Solo"}


def test_import_resolves_a_tagged_album(
    tmp_path: Path,
    importer: LibraryImporter,
    extractor: FakeTagExtractor,
    source: FakeMetadataSource,
    catalog: CatalogFactory,
) -> None:
    release = make_release("Northern Lights", [["Aurora", "Polar", "Tundra"]])
    source.add(release)
    _place(extractor, *bundles_for(release, str(tmp_path / "northern")))

    report = asyncio.run(importer.import_library(tmp_path))

    assert report.scanned == 3
    assert report.count(FileState.RESOLVED) == 3
    assert report.errors == {}
    with catalog() as uow:
        tracks = uow.repositories.tracks.by_release(release.mbid)
        assert [track.title for track in tracks] == ["Aurora", "Polar", "Tundra"]


def test_rescan_skips_unchanged_files_and_removes_missing_ones(
    tmp_path: Path,
    importer: LibraryImporter,
    extractor: FakeTagExtractor,
    source: FakeMetadataSource,
    catalog: CatalogFactory,
) -> None:
    release = make_release("Rescan", [["A", "B"]])
    source.add(release)
    bundles = bundles_for(release, str(tmp_path / "rescan"))
    _place(extractor, *bundles)
    asyncio.run(importer.import_library(tmp_path))
    searches = len(source.searches)

    unchanged = asyncio.run(importer.import_library(tmp_path))
    Path(bundles[1].path).unlink()
    shrunk = asyncio.run(importer.import_library(tmp_path))

    assert unchanged.summary()["skipped"] == 2
    assert len(source.searches) == searches
    assert shrunk.removed == 1
    assert shrunk.states == {bundles[0].path: FileState.SKIPPED}
    with catalog() as uow:
        assert uow.repositories.tracks.paths() == [bundles[0].path]
        assert uow.repositories.releases.get(release.mbid) is not None


def test_changed_tags_are_reimported(
    tmp_path: Path,
    importer: LibraryImporter,
    extractor: FakeTagExtractor,
    source: FakeMetadataSource,
    catalog: CatalogFactory,
) -> None:
    release = make_release("Retag", [["A"]])
    source.add(release)
    (bundle,) = bundles_for(release, str(tmp_path / "retag"))
    _place(extractor, bundle)
    asyncio.run(importer.import_library(tmp_path))

    retagged = make_bundle(
        bundle.path,
        title="A",
        artist="Test Artist",
        album="Retag",
        album_artist="Test Artist",
        track=1,
        disc=1,
        genres=["Dub"],
    )
    extractor.add(retagged)
    report = asyncio.run(importer.import_library(tmp_path))

    assert report.states[bundle.path] is FileState.RESOLVED
    with catalog() as uow:
        track = uow.repositories.tracks.get_by_path(bundle.path)
        assert track is not None
        assert track.genres == ["Dub"]


def test_extraction_failures_do_not_stop_the_scan(
    tmp_path: Path,
    importer: LibraryImporter,
    extractor: FakeTagExtractor,
    source: FakeMetadataSource,
) -> None:
    release = make_release("Partial", [["A", "B"]])
    source.add(release)
    bundles = bundles_for(release, str(tmp_path / "partial"))
    _place(extractor, *bundles)
    broken = tmp_path / "partial" / "broken.mp3"
    broken.touch()
    extractor.failures[str(broken)] = "corrupt"

    report = asyncio.run(importer.import_library(tmp_path))

    assert report.states[str(broken)] is FileState.FAILED
    assert "corrupt" in report.errors[str(broken)]
    assert report.count(FileState.RESOLVED) == 2


def test_invalid_source_payloads_only_fail_their_group(
    tmp_path: Path,
    importer: LibraryImporter,
    extractor: FakeTagExtractor,
    source: FakeMetadataSource,
) -> None:
    release = make_release("Fine", [["A", "B"]])
    source.add(release)
    source.failures["Broken"] = MusicBrainzAPIError("Invalid MusicBrainzRelease payload")
    broken = make_bundle(
        str(tmp_path / "broken" / "1.flac"), title="X", artist="Test Artist", album="Broken"
    )
    _place(extractor, *bundles_for(release, str(tmp_path / "fine")), broken)

    report = asyncio.run(importer.import_library(tmp_path))

    assert report.count(FileState.RESOLVED) == 2
    assert report.states[broken.path] is FileState.FAILED
    assert "Invalid MusicBrainzRelease payload" in report.errors[broken.path]


def test_files_without_candidates_are_stored_unmatched(
    tmp_path: Path,
    importer: LibraryImporter,
    extractor: FakeTagExtractor,
    catalog: CatalogFactory,
) -> None:
    bundle = make_bundle(
        str(tmp_path / "demo" / "1.flac"), title="Demo", artist="Unknown", album="Demo Tape"
    )
    _place(extractor, bundle)

    report = asyncio.run(importer.import_library(tmp_path))

    assert report.states[bundle.path] is FileState.UNMATCHED
    with catalog() as uow:
        track = uow.repositories.tracks.get_by_path(bundle.path)
        assert track is not None
        assert track.status is TrackStatus.UNMATCHED
        assert track.unmatched_reason is UnmatchedReason.NO_CANDIDATE


def test_unmatched_files_are_matched_again_on_rescan(
    tmp_path: Path,
    importer: LibraryImporter,
    extractor: FakeTagExtractor,
    source: FakeMetadataSource,
    catalog: CatalogFactory,
) -> None:
    release = make_release("Late Arrival", [["Only"]])
    (bundle,) = bundles_for(release, str(tmp_path / "late"))
    _place(extractor, bundle)
    first = asyncio.run(importer.import_library(tmp_path))

    source.add(release)
    second = asyncio.run(importer.import_library(tmp_path))

    assert first.states[bundle.path] is FileState.UNMATCHED
    assert second.states[bundle.path] is FileState.RESOLVED
    assert second.summary()["skipped"] == 0
    with catalog() as uow:
        track = uow.repositories.tracks.get_by_path(bundle.path)
        assert track is not None
        assert track.status is TrackStatus.RESOLVED
        assert track.release_mbid == release.mbid


def test_loose_file_is_matched_through_its_recording(
    tmp_path: Path,
    importer: LibraryImporter,
    extractor: FakeTagExtractor,
    source: FakeMetadataSource,
    catalog: CatalogFactory,
) -> None:
    release = make_release("Single", [["Hit", "B-Side"]])
    source.add(release)
    source.tracks.append(release.tracks[1])
    bundle = make_bundle(
        str(tmp_path / "loose.mp3"), title="B-Side", artist="Test Artist", track=2, fmt="mp3"
    )
    _place(extractor, bundle)

    report = asyncio.run(importer.import_library(tmp_path))

    assert report.states[bundle.path] is FileState.RESOLVED
    assert source.lookups == [release.mbid]
    with catalog() as uow:
        track = uow.repositories.tracks.get_by_path(bundle.path)
        assert track is not None
        assert track.mbid == release.tracks[1].mbid
        assert track.release_mbid == release.mbid


def test_import_release_reports_unmatched_for_loose_file_without_release(
    importer: LibraryImporter,
    source: FakeMetadataSource,
) -> None:
    release = make_release("Vanished", [["Hit"]])
    source.tracks.append(release.tracks[0])
    bundle = make_bundle("/m/vanished.mp3", title="Hit", artist="Test Artist", track=1)
    local = LocalRelease.from_bundles(f"path:{bundle.path}", [bundle])

    state = asyncio.run(importer.import_release(local))

    assert state is FileState.UNMATCHED


def test_cleanup_after_import_reports_orphans(
    tmp_path: Path,
    importer: LibraryImporter,
    extractor: FakeTagExtractor,
    source: FakeMetadataSource,
) -> None:
    release = make_release("Brief", [["A"]])
    source.add(release)
    (bundle,) = bundles_for(release, str(tmp_path / "brief"))
    _place(extractor, bundle)
    asyncio.run(importer.import_library(tmp_path))
    Path(bundle.path).unlink()

    report = asyncio.run(importer.import_library(tmp_path, cleanup=True))

    assert report.removed == 1
    assert report.orphans is not None
    assert (report.orphans.releases, report.orphans.artists) == (1, 1)
