from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from cantus.adapters.http_resilience import reset_limiters
from cantus.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyCatalogUnitOfWork,
    create_catalog_engine,
    shutdown,
    startup,
)
from cantus.domain.resolution import EntityResolver

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("MUSICBRAINZ_APP_NAME", "cantus-tests")
os.environ.setdefault("MUSICBRAINZ_CONTACT", "tests@example.invalid")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path

    from sqlalchemy.engine import Engine


@pytest.fixture
def sqlite_engine(tmp_path: Path) -> Iterator[Engine]:
    # a file database: worker threads each open their own connection
    engine = create_catalog_engine(f"sqlite+pysqlite:///{tmp_path / 'catalog.db'}")
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def catalog(sqlite_engine: Engine) -> Iterator[Callable[[], SqlAlchemyCatalogUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)
    try:
        yield SqlAlchemyCatalogUnitOfWork
    finally:
        shutdown()


@pytest.fixture
def resolver(catalog: Callable[[], SqlAlchemyCatalogUnitOfWork]) -> EntityResolver:
    return EntityResolver(unit_of_work_factory=catalog)


@pytest.fixture(autouse=True)
def fresh_limiters() -> Iterator[None]:
    reset_limiters()
    yield
    reset_limiters()
