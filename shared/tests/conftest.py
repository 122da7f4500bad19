"""Shared test fixtures for database tests (SQLite in-memory)."""

from collections.abc import Generator

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session

from shared.db.base import create_schema


@pytest.fixture(scope="session")
def db_engine() -> Engine:
    """One in-memory SQLite engine holding the dispatch log schema."""
    engine = create_engine("sqlite:///:memory:")
    create_schema(engine)
    return engine


@pytest.fixture()
def db_session(db_engine: Engine) -> Generator[Session, None, None]:
    """Session inside an outer transaction that is rolled back after each test."""
    connection = db_engine.connect()
    transaction = connection.begin()
    session = Session(bind=connection)

    yield session

    session.close()
    if transaction.is_active:
        transaction.rollback()
    connection.close()
