from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from cantus.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyCatalogUnitOfWork,
    StartupError,
    add_commit_listener,
    configured_engine,
    create_catalog_engine,
    is_started,
    remove_commit_listener,
    shutdown,
    startup,
)
from cantus.domain.errors import CatalogUnavailable, PersistenceConflict
from cantus.domain.model import (
    Artist,
    CatalogChange,
    ChangeKind,
    Credit,
    CreditRole,
    EntityKind,
    Release,
    Track,
)
from tests.helpers.catalog import mbid

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence
    from pathlib import Path

    from sqlalchemy.engine import Engine


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


@pytest.fixture
def published(catalog: Callable[[], SqlAlchemyCatalogUnitOfWork]) -> list[list[CatalogChange]]:
    _ = catalog
    batches: list[list[CatalogChange]] = []
    add_commit_listener(lambda changes: batches.append(list(changes)))
    return batches


def _add_artist(name: str) -> Artist:
    artist = Artist(mbid=mbid(f"artist:{name}"), name=name, sort_name=name)
    with SqlAlchemyCatalogUnitOfWork() as uow:
        uow.repositories.artists.add(artist)
        uow.commit()
    return artist


def test_unit_of_work_requires_startup() -> None:
    with pytest.raises(StartupError):
        SqlAlchemyCatalogUnitOfWork()
    assert issubclass(StartupError, CatalogUnavailable)


def test_startup_requires_force_for_reconfiguration(tmp_path: Path) -> None:
    engine_a = create_catalog_engine(f"sqlite+pysqlite:///{tmp_path / 'a.db'}")
    engine_b = create_catalog_engine(f"sqlite+pysqlite:///{tmp_path / 'b.db'}")

    startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    startup(engine=engine_b, force=True)
    assert configured_engine() is engine_b
    assert is_started()


def test_unreachable_database_is_reported(tmp_path: Path) -> None:
    missing = tmp_path / "missing" / "catalog.db"

    with pytest.raises(CatalogUnavailable):
        startup(database_uri=f"sqlite+pysqlite:///{missing}", force=True)

    assert not is_started()


def test_commit_persists_and_publishes_coalesced_changes(
    published: list[list[CatalogChange]],
) -> None:
    artist = Artist(mbid=mbid("artist:Nico"), name="Nico")

    with SqlAlchemyCatalogUnitOfWork() as uow:
        uow.repositories.artists.add(artist)
        uow.session.flush()
        artist.sort_name = "Nico"
        uow.commit()

    with SqlAlchemyCatalogUnitOfWork() as uow:
        stored = uow.repositories.artists.get(artist.mbid)
        assert stored is not None
        assert stored.sort_name == "Nico"

    assert published == [[CatalogChange(entity=EntityKind.ARTIST, mbid=artist.mbid)]]


def test_deletes_are_published(published: list[list[CatalogChange]]) -> None:
    artist = _add_artist("Gone")
    published.clear()

    with SqlAlchemyCatalogUnitOfWork() as uow:
        stored = uow.repositories.artists.get(artist.mbid)
        assert stored is not None
        uow.repositories.artists.delete(stored)
        uow.commit()

    assert published == [
        [CatalogChange(entity=EntityKind.ARTIST, mbid=artist.mbid, change=ChangeKind.DELETE)]
    ]


def test_rollback_discards_changes(published: list[list[CatalogChange]]) -> None:
    artist = Artist(mbid=mbid("artist:Draft"), name="Draft")

    with SqlAlchemyCatalogUnitOfWork() as uow:
        uow.repositories.artists.add(artist)
        uow.session.flush()
        uow.rollback()

    with SqlAlchemyCatalogUnitOfWork() as uow:
        assert uow.repositories.artists.get(artist.mbid) is None
    assert published == []


def test_unchanged_entities_publish_nothing(published: list[list[CatalogChange]]) -> None:
    artist = _add_artist("Stable")
    published.clear()

    with SqlAlchemyCatalogUnitOfWork() as uow:
        stored = uow.repositories.artists.get(artist.mbid)
        assert stored is not None
        stored.name = "Stable"
        uow.commit()

    assert published == []


def test_track_changes_republish_their_release(published: list[list[CatalogChange]]) -> None:
    release = Release(mbid=mbid("release:Parent"), title="Parent")
    track = Track(
        mbid=mbid("track:child"),
        title="Child",
        path="/m/parent/1.flac",
        format="flac",
        release_mbid=release.mbid,
    )
    with SqlAlchemyCatalogUnitOfWork() as uow:
        uow.repositories.releases.add(release)
        uow.repositories.tracks.add(track)
        uow.commit()
    published.clear()

    with SqlAlchemyCatalogUnitOfWork() as uow:
        stored = uow.repositories.tracks.get(track.mbid)
        assert stored is not None
        uow.repositories.tracks.delete(stored)
        uow.commit()

    assert published == [
        [
            CatalogChange(entity=EntityKind.TRACK, mbid=track.mbid, change=ChangeKind.DELETE),
            CatalogChange(entity=EntityKind.RELEASE, mbid=release.mbid),
        ]
    ]


def test_renamed_artists_republish_credited_subjects(
    published: list[list[CatalogChange]],
) -> None:
    artist = _add_artist("Prince")
    release = Release(mbid=mbid("release:Purple"), title="Purple")
    with SqlAlchemyCatalogUnitOfWork() as uow:
        uow.repositories.releases.add(release)
        uow.repositories.credits.replace(
            EntityKind.RELEASE, release.mbid, CreditRole.PRIMARY, [Credit(artist=artist.mbid)]
        )
        uow.commit()
    published.clear()

    with SqlAlchemyCatalogUnitOfWork() as uow:
        stored = uow.repositories.artists.get(artist.mbid)
        assert stored is not None
        stored.name = "Symbol"
        uow.commit()

    assert published == [
        [
            CatalogChange(entity=EntityKind.ARTIST, mbid=artist.mbid),
            CatalogChange(entity=EntityKind.RELEASE, mbid=release.mbid),
        ]
    ]


def test_failing_listener_does_not_break_commit(
    published: list[list[CatalogChange]],
    caplog: pytest.LogCaptureFixture,
) -> None:
    def broken(changes: Sequence[CatalogChange]) -> None:
        raise RuntimeError(f"cannot handle {len(changes)} changes")

    add_commit_listener(broken)
    caplog.set_level(logging.ERROR)

    artist = _add_artist("Resilient")

    remove_commit_listener(broken)
    with SqlAlchemyCatalogUnitOfWork() as uow:
        assert uow.repositories.artists.get(artist.mbid) is not None
    assert len(published) == 1
    assert any("Commit listener" in record.getMessage() for record in caplog.records)


def test_duplicate_insert_on_commit_is_a_conflict(
    catalog: Callable[[], SqlAlchemyCatalogUnitOfWork],
) -> None:
    artist = _add_artist("Twice")

    with catalog() as uow:
        uow.repositories.artists.add(Artist(mbid=artist.mbid, name="Twice again"))
        with pytest.raises(PersistenceConflict):
            uow.commit()

    with catalog() as uow:
        stored = uow.repositories.artists.get(artist.mbid)
        assert stored is not None
        assert stored.name == "Twice"


def test_integrity_errors_leaving_the_block_become_conflicts(
    catalog: Callable[[], SqlAlchemyCatalogUnitOfWork],
) -> None:
    artist = _add_artist("Clash")

    with pytest.raises(PersistenceConflict), catalog() as uow:
        uow.repositories.artists.add(Artist(mbid=artist.mbid, name="Clash"))
        uow.session.flush()


def test_session_is_closed_after_the_block(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    uow = SqlAlchemyCatalogUnitOfWork()

    with uow:
        assert uow.repositories.artists.all_ids() == []

    with pytest.raises(StartupError):
        _ = uow.session
