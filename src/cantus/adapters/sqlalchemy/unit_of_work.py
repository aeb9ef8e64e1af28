"""SQLAlchemy-backed unit of work for the catalog store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any, Literal, cast

from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from cantus.adapters.sqlalchemy.mappings import (
    ENTITY_KIND_BY_CLASS,
    enable_sqlite_foreign_keys,
    start_mappers,
)
from cantus.adapters.sqlalchemy.migrations import upgrade_head
from cantus.adapters.sqlalchemy.repositories import (
    CHANGES_KEY,
    SqlAlchemyArtistImageRepository,
    SqlAlchemyArtistRepository,
    SqlAlchemyArtistUrlRepository,
    SqlAlchemyCreditRepository,
    SqlAlchemyFingerprintRepository,
    SqlAlchemyReleaseImageRepository,
    SqlAlchemyReleaseRepository,
    SqlAlchemyTrackRepository,
    credited_subjects,
    record_change,
)
from cantus.config.storage import get_database_config
from cantus.domain.errors import CatalogUnavailable, PersistenceConflict
from cantus.domain.model import Artist, CatalogChange, ChangeKind, EntityKind, Track
from cantus.domain.ports.unit_of_work import CatalogRepositories, RepositoryCollection

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from types import TracebackType

    from sqlalchemy.engine import Engine

    from cantus.domain.ports.unit_of_work import CommitListener

log = getLogger(__name__)

_CONFLICT_ERRORS = (IntegrityError, OperationalError)


class StartupError(CatalogUnavailable):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None
    listeners: list[CommitListener] = field(default_factory=list)

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call cantus.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def create_catalog_engine(database_uri: str | None = None) -> Engine:
    """Create an engine for ``database_uri`` with foreign keys enforced on SQLite."""

    engine = create_engine(database_uri or get_database_config().uri, future=True)
    enable_sqlite_foreign_keys(engine)
    return engine


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the SQLAlchemy engine, schema, and session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or create_catalog_engine(database_uri)
    start_mappers()
    try:
        upgrade_head(engine=resolved_engine)
    except OperationalError as exc:
        raise CatalogUnavailable(f"Cannot open catalog database: {exc}") from exc

    _STATE.engine = resolved_engine


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None
    _STATE.listeners.clear()


def add_commit_listener(listener: CommitListener) -> None:
    """Call ``listener`` with the changes of every successful catalog commit."""

    _STATE.listeners.append(listener)


def remove_commit_listener(listener: CommitListener) -> None:
    if listener in _STATE.listeners:
        _STATE.listeners.remove(listener)


def _publish(changes: Sequence[CatalogChange]) -> None:
    if not changes:
        return
    for listener in tuple(_STATE.listeners):
        try:
            listener(changes)
        except Exception:
            log.exception("Commit listener %r failed", listener)


def _coalesce(changes: Iterable[CatalogChange]) -> list[CatalogChange]:
    """Keep the last change per entity, in first-seen order."""

    latest: dict[tuple[str, str], CatalogChange] = {}
    for change in changes:
        key = (change.entity.value, change.mbid.hex)
        latest.pop(key, None)
        latest[key] = change
    return list(latest.values())


def _record_dependents(session: Session, obj: object) -> None:
    """Queue the documents that embed data of ``obj``: a track's release, an artist's credits."""

    if isinstance(obj, Track) and obj.release_mbid is not None:
        record_change(session, CatalogChange(entity=EntityKind.RELEASE, mbid=obj.release_mbid))
    elif isinstance(obj, Artist):
        for kind, mbid in credited_subjects(session.connection(), obj.mbid):
            record_change(session, CatalogChange(entity=kind, mbid=mbid))


def _capture_changes(session: Session, flush_context: Any) -> None:  # noqa: ANN401
    _ = flush_context
    for obj in session.new:
        kind = ENTITY_KIND_BY_CLASS.get(type(obj))
        if kind is not None:
            record_change(session, CatalogChange(entity=kind, mbid=obj.mbid))
            if kind is EntityKind.TRACK:
                _record_dependents(session, obj)
    for obj in session.dirty:
        kind = ENTITY_KIND_BY_CLASS.get(type(obj))
        if kind is not None and session.is_modified(obj):
            record_change(session, CatalogChange(entity=kind, mbid=obj.mbid))
            _record_dependents(session, obj)
    for obj in session.deleted:
        kind = ENTITY_KIND_BY_CLASS.get(type(obj))
        if kind is not None:
            record_change(
                session, CatalogChange(entity=kind, mbid=obj.mbid, change=ChangeKind.DELETE)
            )
            if kind is EntityKind.TRACK:
                _record_dependents(session, obj)


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """Generic SQLAlchemy unit of work with pluggable repository collections.

    Integrity and locking failures raised while the unit of work is active surface as
    ``PersistenceConflict`` after the session has been rolled back. Changes to catalog
    entities are published to the registered commit listeners after a successful commit.
    """

    def __init__(self) -> None:
        self.session_factory: sessionmaker[Session] = _STATE.session_factory
        self._session: Session | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        self.session = self.session_factory()
        event.listen(self.session, "after_flush", _capture_changes)
        self._repositories = self._build_repositories(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        if exc_type is not None:
            self.rollback()
        session.close()
        self.session = None
        if isinstance(exc_value, _CONFLICT_ERRORS):
            raise PersistenceConflict("unit of work", detail=str(exc_value.orig)) from exc_value
        return False

    def commit(self) -> None:
        try:
            self.session.commit()
        except _CONFLICT_ERRORS as exc:
            self.rollback()
            raise PersistenceConflict("commit", detail=str(exc.orig)) from exc
        changes = _coalesce(
            cast("list[CatalogChange]", self.session.info.pop(CHANGES_KEY, []))
        )
        _publish(changes)

    def rollback(self) -> None:
        self.session.rollback()
        self.session.info.pop(CHANGES_KEY, None)

    @property
    def repositories(self) -> TRepositories:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


class SqlAlchemyCatalogUnitOfWork(BaseSqlAlchemyUnitOfWork[CatalogRepositories]):
    """Unit of work managing SQLAlchemy sessions for the catalog."""

    def _build_repositories(self, session: Session) -> CatalogRepositories:
        return CatalogRepositories(
            artists=SqlAlchemyArtistRepository(session),
            releases=SqlAlchemyReleaseRepository(session),
            tracks=SqlAlchemyTrackRepository(session),
            credits=SqlAlchemyCreditRepository(session),
            artist_urls=SqlAlchemyArtistUrlRepository(session),
            artist_images=SqlAlchemyArtistImageRepository(session),
            release_images=SqlAlchemyReleaseImageRepository(session),
            fingerprints=SqlAlchemyFingerprintRepository(session),
        )


if TYPE_CHECKING:
    from cantus.domain.ports.unit_of_work import CatalogUnitOfWork

    _uow_check: CatalogUnitOfWork = SqlAlchemyCatalogUnitOfWork()
