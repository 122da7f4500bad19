"""Database layer for the dispatch log: models, repository, engine/session utilities."""

from shared.db.base import Base, create_db_engine, create_schema, create_session_factory
from shared.db.models import DeliveryAttemptRecord, DispatchOutcomeRecord
from shared.db.repositories import DispatchLogRepository

__all__ = [
    "Base",
    "create_db_engine",
    "create_schema",
    "create_session_factory",
    "DeliveryAttemptRecord",
    "DispatchOutcomeRecord",
    "DispatchLogRepository",
]
