from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from driververify.adapters.sqlalchemy import (
    SqlAlchemyDocumentStore,
    SqlAlchemyDocumentStoreUnitOfWork,
    create_all_tables,
    shutdown,
    startup,
)

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    # One shared connection keeps the in-memory database alive across sessions.
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_all_tables(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyDocumentStoreUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyDocumentStoreUnitOfWork:
        return SqlAlchemyDocumentStoreUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def document_store(
    sqlite_unit_of_work: Callable[[], SqlAlchemyDocumentStoreUnitOfWork],
) -> SqlAlchemyDocumentStore:
    return SqlAlchemyDocumentStore(sqlite_unit_of_work)
