"""SQLAlchemy adapter package for the cantus catalog."""

from __future__ import annotations

from .mappings import (
    ENTITY_KIND_BY_CLASS,
    RELATION_TABLES,
    create_all_tables,
    mapper_registry,
    start_mappers,
)
from .repositories import (
    SqlAlchemyArtistRepository,
    SqlAlchemyArtistUrlRepository,
    SqlAlchemyCreditRepository,
    SqlAlchemyFingerprintRepository,
    SqlAlchemyReleaseImageRepository,
    SqlAlchemyReleaseRepository,
    SqlAlchemyTrackRepository,
)
from .unit_of_work import (
    SqlAlchemyCatalogUnitOfWork,
    StartupError,
    add_commit_listener,
    create_catalog_engine,
    remove_commit_listener,
    shutdown,
    startup,
)

__all__ = [
    "ENTITY_KIND_BY_CLASS",
    "RELATION_TABLES",
    "SqlAlchemyArtistRepository",
    "SqlAlchemyArtistUrlRepository",
    "SqlAlchemyCatalogUnitOfWork",
    "SqlAlchemyCreditRepository",
    "SqlAlchemyFingerprintRepository",
    "SqlAlchemyReleaseImageRepository",
    "SqlAlchemyReleaseRepository",
    "SqlAlchemyTrackRepository",
    "StartupError",
    "add_commit_listener",
    "create_all_tables",
    "create_catalog_engine",
    "mapper_registry",
    "remove_commit_listener",
    "shutdown",
    "startup",
]
