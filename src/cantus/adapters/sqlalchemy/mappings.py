"""SQLAlchemy mapping metadata for the catalog."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from enum import StrEnum
from functools import cache
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Final, cast

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    PrimaryKeyConstraint,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    event,
    orm,
)
from sqlalchemy.orm import configure_mappers

from cantus.domain.model import (
    Artist,
    CreditRole,
    EntityKind,
    Release,
    Track,
    TrackStatus,
    UnmatchedReason,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class StringListType(TypeDecorator[list[str]]):
    """Ordered list of strings stored as a JSON array."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: list[str] | None, dialect: Dialect) -> str:
        _ = dialect
        return json.dumps(list(value or []))

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[str]:
        _ = dialect
        if value is None:
            return []
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return []
        items = cast(list[Any], loaded)
        return [item for item in items if isinstance(item, str)]


def _enum_values(enum_cls: type[StrEnum]) -> list[str]:
    return [member.value for member in enum_cls]


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Core tables -----------------------------------------------------------------

artist_table = Table(
    "artists",
    mapper_registry.metadata,
    Column("mbid", UUIDColumnType, primary_key=True),
    Column("name", String, nullable=False),
    Column("sort_name", String, nullable=True),
    Column("instruments", StringListType, nullable=False),
    Column("description", Text, nullable=True),
)

release_table = Table(
    "releases",
    mapper_registry.metadata,
    Column("mbid", UUIDColumnType, primary_key=True),
    Column("release_group_mbid", UUIDColumnType, nullable=True),
    Column("asin", String, nullable=True),
    Column("title", String, nullable=False),
    Column("discs", Integer, nullable=True),
    Column("media", String, nullable=True),
    Column("tracks", Integer, key="track_count", nullable=True),
    Column("country", String, nullable=True),
    Column("label", String, nullable=True),
    Column("catalog_no", String, nullable=True),
    Column("status", String, nullable=True),
    Column("release_type", String, nullable=True),
    Column("date", String, nullable=True),
    Column("original_date", String, nullable=True),
    Column("script", String, nullable=True),
    Column("fingerprint", String(64), nullable=True),
)

track_table = Table(
    "tracks",
    mapper_registry.metadata,
    Column("mbid", UUIDColumnType, primary_key=True),
    Column("title", String, nullable=False),
    Column("length", Integer, nullable=True),
    Column("disc", Integer, nullable=True),
    Column("disc_mbid", UUIDColumnType, nullable=True),
    Column("number", Integer, nullable=True),
    Column("genres", StringListType, nullable=False),
    Column(
        "release",
        UUIDColumnType,
        ForeignKey("releases.mbid", ondelete="CASCADE"),
        key="release_mbid",
        nullable=True,
    ),
    Column("format", String, nullable=False),
    Column("path", String, nullable=False, unique=True),
    Column(
        "status",
        Enum(TrackStatus, native_enum=False, length=16, values_callable=_enum_values),
        nullable=False,
        default=TrackStatus.RESOLVED,
    ),
    Column(
        "unmatched_reason",
        Enum(UnmatchedReason, native_enum=False, length=32, values_callable=_enum_values),
        nullable=True,
    ),
    Column("confidence", Float, nullable=True),
    Column("fingerprint", String(64), nullable=True),
    Column("tags_fingerprint", String(64), nullable=True),
    Index("ix_tracks_status", "status"),
)
Index("ix_tracks_release", track_table.c.release_mbid)

artist_credit_table = Table(
    "artist_credits",
    mapper_registry.metadata,
    Column("id", String, primary_key=True),
    Column(
        "artist",
        UUIDColumnType,
        ForeignKey("artists.mbid", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("join_phrase", String, nullable=False, default=""),
    UniqueConstraint("artist", "join_phrase"),
)


def _relation_table(name: str, ref_table: str) -> Table:
    return Table(
        name,
        mapper_registry.metadata,
        Column(
            "ref",
            UUIDColumnType,
            ForeignKey(f"{ref_table}.mbid", ondelete="CASCADE"),
            nullable=False,
        ),
        Column(
            "artist",
            UUIDColumnType,
            ForeignKey("artists.mbid", ondelete="CASCADE"),
            nullable=False,
        ),
        Column("position", Integer, nullable=False),
        Column(
            "credit",
            String,
            ForeignKey("artist_credits.id", ondelete="SET NULL"),
            nullable=True,
        ),
        PrimaryKeyConstraint("ref", "artist"),
        UniqueConstraint("ref", "position"),
        Index(f"ix_{name}_artist", "artist"),
    )


release_artist_table = _relation_table("release_artists", "releases")
track_artist_table = _relation_table("track_artists", "tracks")
track_performer_table = _relation_table("track_performers", "tracks")
track_engineer_table = _relation_table("track_engineers", "tracks")
track_mixer_table = _relation_table("track_mixers", "tracks")
track_producer_table = _relation_table("track_producers", "tracks")
track_lyricist_table = _relation_table("track_lyricists", "tracks")
track_writer_table = _relation_table("track_writers", "tracks")
track_composer_table = _relation_table("track_composers", "tracks")

RELATION_TABLES: Final[Mapping[tuple[EntityKind, CreditRole], Table]] = MappingProxyType(
    {
        (EntityKind.RELEASE, CreditRole.PRIMARY): release_artist_table,
        (EntityKind.TRACK, CreditRole.PRIMARY): track_artist_table,
        (EntityKind.TRACK, CreditRole.PERFORMER): track_performer_table,
        (EntityKind.TRACK, CreditRole.ENGINEER): track_engineer_table,
        (EntityKind.TRACK, CreditRole.MIXER): track_mixer_table,
        (EntityKind.TRACK, CreditRole.PRODUCER): track_producer_table,
        (EntityKind.TRACK, CreditRole.LYRICIST): track_lyricist_table,
        (EntityKind.TRACK, CreditRole.WRITER): track_writer_table,
        (EntityKind.TRACK, CreditRole.COMPOSER): track_composer_table,
    }
)

artist_url_table = Table(
    "artist_urls",
    mapper_registry.metadata,
    Column(
        "artist",
        UUIDColumnType,
        ForeignKey("artists.mbid", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("url", String, nullable=False),
    Column("kind", String(32), nullable=False),
    PrimaryKeyConstraint("artist", "url"),
)

artist_image_table = Table(
    "artist_images",
    mapper_registry.metadata,
    Column(
        "artist",
        UUIDColumnType,
        ForeignKey("artists.mbid", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("url", String, nullable=False),
    Column("source", String(32), nullable=False),
    Column("description", Text, nullable=True),
    Column("position", Integer, nullable=False),
    PrimaryKeyConstraint("artist", "url"),
)

release_image_table = Table(
    "release_images",
    mapper_registry.metadata,
    Column(
        "release",
        UUIDColumnType,
        ForeignKey("releases.mbid", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("url", String, nullable=False),
    Column("kind", String(16), nullable=False),
    Column("source", String(32), nullable=False),
    PrimaryKeyConstraint("release", "url"),
)

fingerprint_table = Table(
    "fingerprints",
    mapper_registry.metadata,
    Column("subject", UUIDColumnType, nullable=False),
    Column("kind", String(32), nullable=False),
    Column("value", String(64), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    PrimaryKeyConstraint("subject", "kind"),
)

ENTITY_KIND_BY_CLASS: Final[Mapping[type[object], EntityKind]] = MappingProxyType(
    {
        Artist: EntityKind.ARTIST,
        Release: EntityKind.RELEASE,
        Track: EntityKind.TRACK,
    }
)


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    """Turn on foreign key enforcement for every new SQLite connection of ``engine``."""

    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection: Any, connection_record: Any) -> None:  # noqa: ANN401
        _ = connection_record
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute("PRAGMA busy_timeout=5000")
        finally:
            cursor.close()


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the catalog entities."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(Artist, artist_table)
    mapper_registry.map_imperatively(Release, release_table)
    mapper_registry.map_imperatively(Track, track_table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
