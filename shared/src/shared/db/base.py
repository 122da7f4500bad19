"""Declarative base plus engine/session factories for the dispatch log."""

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""


def create_db_engine(dsn: str, **kwargs: object) -> Engine:
    """Create a SQLAlchemy engine from a DSN string.

    Server databases should get ``pool_pre_ping=True``; the result sink
    writes from several dispatch threads and a stale pooled connection
    would otherwise surface as a sink error on the first write after a
    database restart.
    """
    return create_engine(dsn, **kwargs)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create a sessionmaker bound to *engine*.

    ``expire_on_commit=False`` keeps returned records readable after the
    short-lived sink session is closed.
    """
    return sessionmaker(bind=engine, expire_on_commit=False)


def create_schema(engine: Engine) -> None:
    """Create the dispatch log tables directly (SQLite and local runs).

    PostgreSQL deployments use the alembic migrations instead.
    """
    Base.metadata.create_all(engine)
