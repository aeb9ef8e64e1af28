"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import Text, delete, exists, func, or_, select, type_coerce, union

from cantus.adapters.sqlalchemy.mappings import (
    RELATION_TABLES,
    artist_credit_table,
    artist_image_table,
    artist_table,
    artist_url_table,
    fingerprint_table,
    release_artist_table,
    release_image_table,
    release_table,
    track_artist_table,
    track_table,
)
from cantus.domain.model import (
    Artist,
    ArtistImage,
    ArtistUrl,
    CatalogChange,
    Credit,
    CreditedArtist,
    EntityKind,
    FingerprintRecord,
    ImageKind,
    Release,
    ReleaseImage,
    Track,
    UrlKind,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime
    from uuid import UUID

    from sqlalchemy import ColumnElement, Connection, Select, Table
    from sqlalchemy.orm import Session

    from cantus.domain.model import CatalogFilter, CreditRole, TrackStatus

CHANGES_KEY = "cantus.catalog_changes"


def record_change(session: Session, change: CatalogChange) -> None:
    """Queue ``change`` for publication once the session commits."""

    changes = cast("list[CatalogChange]", session.info.setdefault(CHANGES_KEY, []))
    changes.append(change)


def credit_id(credit: Credit) -> str:
    return f"{credit.artist.hex}:{credit.join_phrase}"


def credited_subjects(connection: Connection, artist: UUID) -> list[tuple[EntityKind, UUID]]:
    """Releases and tracks whose credits, in any role, name ``artist``."""

    subjects: list[tuple[EntityKind, UUID]] = []
    for (kind, _role), table in RELATION_TABLES.items():
        stmt = select(table.c.ref).where(table.c.artist == artist)
        subjects.extend((kind, ref) for ref in connection.execute(stmt).scalars())
    return subjects


def _name_matches(column: Any, text: str) -> ColumnElement[bool]:  # noqa: ANN401
    return func.lower(column).contains(text.casefold(), autoescape=True)


def _genre_matches(genre: str) -> ColumnElement[bool]:
    # genres are stored as a JSON array, so match the quoted element
    stored = type_coerce(track_table.c.genres, Text)
    return stored.contains(json.dumps(genre), autoescape=True)


def _date_clauses(criteria: CatalogFilter) -> list[ColumnElement[bool]]:
    clauses: list[ColumnElement[bool]] = []
    if criteria.date_from:
        clauses.append(release_table.c.date >= criteria.date_from)
    if criteria.date_to:
        prefix = func.substr(release_table.c.date, 1, len(criteria.date_to))
        clauses.append(prefix <= criteria.date_to)
    return clauses


def _page[TSelect: Select[Any]](stmt: TSelect, criteria: CatalogFilter) -> TSelect:
    if criteria.offset:
        stmt = stmt.offset(criteria.offset)
    if criteria.limit is not None:
        stmt = stmt.limit(criteria.limit)
    return stmt


def _stale_subjects(
    session: Session,
    table: Table,
    kind: str,
    *,
    older_than: datetime,
    limit: int,
    where: ColumnElement[bool] | None = None,
) -> list[UUID]:
    stmt = (
        select(table.c.mbid)
        .outerjoin(
            fingerprint_table,
            (fingerprint_table.c.subject == table.c.mbid) & (fingerprint_table.c.kind == kind),
        )
        .where(
            or_(
                fingerprint_table.c.updated_at.is_(None),
                fingerprint_table.c.updated_at < older_than,
            )
        )
        .order_by(fingerprint_table.c.updated_at.is_not(None), table.c.mbid)
        .limit(limit)
    )
    if where is not None:
        stmt = stmt.where(where)
    return list(session.execute(stmt).scalars())


class SqlAlchemyCatalogRepository[TEntity: (Artist, Release, Track)]:
    """Shared helpers for repositories managing mapped catalog entities."""

    def __init__(self, session: Session, entity_cls: type[TEntity], table: Table) -> None:
        self.session = session
        self._entity_cls = entity_cls
        self._table = table

    def add(self, entity: TEntity) -> None:
        self.session.add(entity)

    def get(self, mbid: UUID) -> TEntity | None:
        return self.session.get(self._entity_cls, mbid)

    def delete(self, entity: TEntity) -> None:
        self.session.delete(entity)
        self.session.flush()

    def all_ids(self) -> list[UUID]:
        stmt = select(self._table.c.mbid).order_by(self._table.c.mbid)
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyArtistRepository(SqlAlchemyCatalogRepository[Artist]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Artist, artist_table)

    def find(self, *, name: str | None = None, limit: int | None = None) -> list[Artist]:
        stmt = select(Artist).order_by(artist_table.c.name, artist_table.c.mbid)
        if name:
            stmt = stmt.where(_name_matches(artist_table.c.name, name))
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.execute(stmt).scalars())

    def orphaned(self) -> list[UUID]:
        self.session.flush()
        referenced = union(*(select(table.c.artist) for table in RELATION_TABLES.values()))
        stmt = (
            select(artist_table.c.mbid)
            .where(artist_table.c.mbid.not_in(select(referenced.subquery().c.artist)))
            .order_by(artist_table.c.mbid)
        )
        return list(self.session.execute(stmt).scalars())

    def needing_enrichment(
        self,
        kind: str,
        *,
        older_than: datetime,
        limit: int,
        url_kind: UrlKind | None = None,
    ) -> list[UUID]:
        """Artists due for ``kind``, optionally only those with a url of ``url_kind``."""

        where: ColumnElement[bool] | None = None
        if url_kind is not None:
            where = artist_table.c.mbid.in_(
                select(artist_url_table.c.artist).where(artist_url_table.c.kind == url_kind.value)
            )
        return _stale_subjects(
            self.session, artist_table, kind, older_than=older_than, limit=limit, where=where
        )


class SqlAlchemyReleaseRepository(SqlAlchemyCatalogRepository[Release]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Release, release_table)

    def find(self, criteria: CatalogFilter) -> list[Release]:
        stmt = select(Release).order_by(release_table.c.title, release_table.c.mbid)
        if criteria.release is not None:
            stmt = stmt.where(release_table.c.mbid == criteria.release)
        if criteria.artist:
            credited = (
                select(release_artist_table.c.ref)
                .join(artist_table, artist_table.c.mbid == release_artist_table.c.artist)
                .where(_name_matches(artist_table.c.name, criteria.artist))
            )
            stmt = stmt.where(release_table.c.mbid.in_(credited))
        track_clauses: list[ColumnElement[bool]] = []
        if criteria.genre:
            track_clauses.append(_genre_matches(criteria.genre))
        if criteria.format:
            track_clauses.append(track_table.c.format == criteria.format)
        if criteria.status is not None:
            track_clauses.append(track_table.c.status == criteria.status)
        if track_clauses:
            stmt = stmt.where(
                release_table.c.mbid.in_(select(track_table.c.release_mbid).where(*track_clauses))
            )
        for clause in _date_clauses(criteria):
            stmt = stmt.where(clause)
        return list(self.session.execute(_page(stmt, criteria)).scalars())

    def orphaned(self) -> list[UUID]:
        self.session.flush()
        stmt = (
            select(release_table.c.mbid)
            .where(~exists().where(track_table.c.release_mbid == release_table.c.mbid))
            .order_by(release_table.c.mbid)
        )
        return list(self.session.execute(stmt).scalars())

    def needing_enrichment(self, kind: str, *, older_than: datetime, limit: int) -> list[UUID]:
        return _stale_subjects(
            self.session, release_table, kind, older_than=older_than, limit=limit
        )


class SqlAlchemyTrackRepository(SqlAlchemyCatalogRepository[Track]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Track, track_table)

    def get_by_path(self, path: str) -> Track | None:
        stmt = select(Track).where(track_table.c.path == path)
        return self.session.execute(stmt).scalar_one_or_none()

    def by_release(self, release: UUID) -> list[Track]:
        stmt = (
            select(Track)
            .where(track_table.c.release_mbid == release)
            .order_by(track_table.c.disc, track_table.c.number, track_table.c.path)
        )
        return list(self.session.execute(stmt).scalars())

    def find(self, criteria: CatalogFilter) -> list[Track]:
        stmt = (
            select(Track)
            .outerjoin(release_table, release_table.c.mbid == track_table.c.release_mbid)
            .order_by(
                release_table.c.title,
                track_table.c.disc,
                track_table.c.number,
                track_table.c.path,
            )
        )
        if criteria.release is not None:
            stmt = stmt.where(track_table.c.release_mbid == criteria.release)
        if criteria.artist:
            on_track = (
                select(track_artist_table.c.ref)
                .join(artist_table, artist_table.c.mbid == track_artist_table.c.artist)
                .where(_name_matches(artist_table.c.name, criteria.artist))
            )
            on_release = (
                select(release_artist_table.c.ref)
                .join(artist_table, artist_table.c.mbid == release_artist_table.c.artist)
                .where(_name_matches(artist_table.c.name, criteria.artist))
            )
            stmt = stmt.where(
                or_(
                    track_table.c.mbid.in_(on_track),
                    track_table.c.release_mbid.in_(on_release),
                )
            )
        if criteria.genre:
            stmt = stmt.where(_genre_matches(criteria.genre))
        if criteria.format:
            stmt = stmt.where(track_table.c.format == criteria.format)
        if criteria.status is not None:
            stmt = stmt.where(track_table.c.status == criteria.status)
        for clause in _date_clauses(criteria):
            stmt = stmt.where(clause)
        return list(self.session.execute(_page(stmt, criteria)).scalars())

    def paths(self) -> list[str]:
        stmt = select(track_table.c.path).order_by(track_table.c.path)
        return list(self.session.execute(stmt).scalars())

    def tags_fingerprints(self, *, status: TrackStatus | None = None) -> dict[str, str | None]:
        stmt = select(track_table.c.path, track_table.c.tags_fingerprint)
        if status is not None:
            stmt = stmt.where(track_table.c.status == status)
        return {path: value for path, value in self.session.execute(stmt)}


class SqlAlchemyCreditRepository:
    """Role-scoped credits stored in the per-role relation tables."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def replace(
        self,
        subject_kind: EntityKind,
        subject: UUID,
        role: CreditRole,
        credits: Sequence[Credit],
    ) -> None:
        table = RELATION_TABLES[subject_kind, role]
        current = self.entries(subject_kind, subject, role)
        if current == list(credits):
            return
        self.session.execute(delete(table).where(table.c.ref == subject))
        for position, credit in enumerate(credits):
            identifier = credit_id(credit)
            self.session.execute(
                artist_credit_table.insert()
                .prefix_with("OR IGNORE")
                .values(id=identifier, artist=credit.artist, join_phrase=credit.join_phrase)
            )
            self.session.execute(
                table.insert().values(
                    ref=subject,
                    artist=credit.artist,
                    position=position,
                    credit=identifier,
                )
            )
        record_change(self.session, CatalogChange(entity=subject_kind, mbid=subject))

    def entries(self, subject_kind: EntityKind, subject: UUID, role: CreditRole) -> list[Credit]:
        self.session.flush()
        table = RELATION_TABLES[subject_kind, role]
        stmt = (
            select(table.c.artist, artist_credit_table.c.join_phrase)
            .outerjoin(artist_credit_table, artist_credit_table.c.id == table.c.credit)
            .where(table.c.ref == subject)
            .order_by(table.c.position)
        )
        return [
            Credit(artist=artist, join_phrase=join_phrase or "")
            for artist, join_phrase in self.session.execute(stmt)
        ]

    def artists(
        self, subject_kind: EntityKind, subject: UUID, role: CreditRole
    ) -> list[CreditedArtist]:
        credited: list[CreditedArtist] = []
        for position, credit in enumerate(self.entries(subject_kind, subject, role)):
            artist = self.session.get(Artist, credit.artist)
            if artist is not None:
                credited.append(
                    CreditedArtist(artist=artist, position=position, join_phrase=credit.join_phrase)
                )
        return credited


class SqlAlchemyArtistUrlRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def replace(self, artist: UUID, urls: Sequence[ArtistUrl]) -> None:
        self.session.flush()
        self.session.execute(delete(artist_url_table).where(artist_url_table.c.artist == artist))
        if urls:
            self.session.execute(
                artist_url_table.insert(),
                [{"artist": artist, "url": item.url, "kind": item.kind.value} for item in urls],
            )

    def for_artist(self, artist: UUID) -> list[ArtistUrl]:
        stmt = (
            select(artist_url_table.c.url, artist_url_table.c.kind)
            .where(artist_url_table.c.artist == artist)
            .order_by(artist_url_table.c.kind, artist_url_table.c.url)
        )
        return [ArtistUrl(url=url, kind=UrlKind(kind)) for url, kind in self.session.execute(stmt)]


class SqlAlchemyArtistImageRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def replace(self, artist: UUID, images: Sequence[ArtistImage]) -> None:
        self.session.flush()
        self.session.execute(
            delete(artist_image_table).where(artist_image_table.c.artist == artist)
        )
        if images:
            self.session.execute(
                artist_image_table.insert(),
                [
                    {
                        "artist": artist,
                        "url": image.url,
                        "source": image.source,
                        "description": image.description,
                        "position": position,
                    }
                    for position, image in enumerate(images)
                ],
            )

    def for_artist(self, artist: UUID) -> list[ArtistImage]:
        stmt = (
            select(
                artist_image_table.c.url,
                artist_image_table.c.source,
                artist_image_table.c.description,
            )
            .where(artist_image_table.c.artist == artist)
            .order_by(artist_image_table.c.position)
        )
        return [
            ArtistImage(url=url, source=source, description=description)
            for url, source, description in self.session.execute(stmt)
        ]


class SqlAlchemyReleaseImageRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def replace(self, release: UUID, images: Sequence[ReleaseImage]) -> None:
        self.session.flush()
        self.session.execute(
            delete(release_image_table).where(release_image_table.c.release == release)
        )
        if images:
            self.session.execute(
                release_image_table.insert(),
                [
                    {
                        "release": release,
                        "url": image.url,
                        "kind": image.kind.value,
                        "source": image.source,
                    }
                    for image in images
                ],
            )

    def for_release(self, release: UUID) -> list[ReleaseImage]:
        stmt = (
            select(
                release_image_table.c.url,
                release_image_table.c.kind,
                release_image_table.c.source,
            )
            .where(release_image_table.c.release == release)
            .order_by(release_image_table.c.kind, release_image_table.c.url)
        )
        return [
            ReleaseImage(url=url, kind=ImageKind(kind), source=source)
            for url, kind, source in self.session.execute(stmt)
        ]


class SqlAlchemyFingerprintRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, subject: UUID, kind: str) -> FingerprintRecord | None:
        stmt = select(fingerprint_table.c.value, fingerprint_table.c.updated_at).where(
            fingerprint_table.c.subject == subject,
            fingerprint_table.c.kind == kind,
        )
        row = self.session.execute(stmt).one_or_none()
        if row is None:
            return None
        value, updated_at = row
        return FingerprintRecord(subject=subject, kind=kind, value=value, updated_at=updated_at)

    def put(self, subject: UUID, kind: str, value: str, *, at: datetime) -> None:
        matches = (fingerprint_table.c.subject == subject) & (fingerprint_table.c.kind == kind)
        updated = self.session.execute(
            fingerprint_table.update().where(matches).values(value=value, updated_at=at)
        )
        if not updated.rowcount:  # pyright: ignore[reportAttributeAccessIssue]
            self.session.execute(
                fingerprint_table.insert().values(
                    subject=subject, kind=kind, value=value, updated_at=at
                )
            )

    def purge(self, subjects: Sequence[UUID]) -> None:
        if not subjects:
            return
        self.session.execute(
            delete(fingerprint_table).where(fingerprint_table.c.subject.in_(list(subjects)))
        )


if TYPE_CHECKING:
    from cantus.domain.ports.persistence import (
        ArtistImageRepository,
        ArtistRepository,
        ArtistUrlRepository,
        CreditRepository,
        FingerprintRepository,
        ReleaseImageRepository,
        ReleaseRepository,
        TrackRepository,
    )

    _session_stub = cast("Session", object())
    _artist_repo: ArtistRepository = SqlAlchemyArtistRepository(_session_stub)
    _release_repo: ReleaseRepository = SqlAlchemyReleaseRepository(_session_stub)
    _track_repo: TrackRepository = SqlAlchemyTrackRepository(_session_stub)
    _credit_repo: CreditRepository = SqlAlchemyCreditRepository(_session_stub)
    _url_repo: ArtistUrlRepository = SqlAlchemyArtistUrlRepository(_session_stub)
    _artist_image_repo: ArtistImageRepository = SqlAlchemyArtistImageRepository(_session_stub)
    _image_repo: ReleaseImageRepository = SqlAlchemyReleaseImageRepository(_session_stub)
    _fingerprint_repo: FingerprintRepository = SqlAlchemyFingerprintRepository(_session_stub)
