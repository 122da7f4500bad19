"""Wire a DispatchEngine from environment configuration."""

import logging
from collections.abc import Sequence

from shared.config import KafkaConfig, PostgresConfig
from shared.db.base import create_db_engine, create_schema, create_session_factory

from dispatcher.backoff import RetryPolicy
from dispatcher.config import DispatchConfig, ProviderConfig
from dispatcher.engine import DispatchEngine
from dispatcher.senders import create_default_registry
from dispatcher.sinks import (
    CompositeResultSink,
    InMemoryResultSink,
    KafkaResultSink,
    LoggingResultSink,
    ResultSink,
    SqlResultSink,
)

logger = logging.getLogger(__name__)


def _sql_sink(postgres_config: PostgresConfig) -> SqlResultSink:
    dsn = postgres_config.dsn
    if dsn.startswith("sqlite"):
        engine = create_db_engine(dsn)
        create_schema(engine)
    else:
        engine = create_db_engine(dsn, pool_pre_ping=True)
    return SqlResultSink(create_session_factory(engine), engine=engine)


def build_sink(
    names: Sequence[str],
    *,
    kafka_config: KafkaConfig | None = None,
    postgres_config: PostgresConfig | None = None,
) -> ResultSink:
    """Build the result sink(s) named in DISPATCH_RESULT_SINKS."""
    sinks: list[ResultSink] = []
    for name in names:
        if name == "log":
            sinks.append(LoggingResultSink())
        elif name == "memory":
            sinks.append(InMemoryResultSink())
        elif name == "sql":
            sinks.append(_sql_sink(postgres_config or PostgresConfig()))
        elif name == "kafka":
            sinks.append(KafkaResultSink(kafka_config or KafkaConfig()))
        else:
            raise ValueError(f"Unknown result sink: {name!r}")

    if len(sinks) == 1:
        return sinks[0]
    return CompositeResultSink(sinks)


def build_engine(
    config: DispatchConfig | None = None,
    provider_config: ProviderConfig | None = None,
    *,
    sink: ResultSink | None = None,
) -> DispatchEngine:
    """Create an engine with the default HTTP senders.

    *sink* overrides the sinks named in *config*.
    """
    config = config or DispatchConfig()
    registry = create_default_registry(
        provider_config or ProviderConfig(),
        timeout=config.attempt_timeout_seconds,
    )
    engine = DispatchEngine(
        registry,
        sink if sink is not None else build_sink(config.result_sinks),
        max_concurrency=config.max_concurrency,
        policy=RetryPolicy.from_config(config),
    )
    logger.info(
        "Dispatch engine ready",
        extra={
            "max_concurrency": config.max_concurrency,
            "max_attempts": config.max_attempts,
            "result_sinks": config.result_sinks,
        },
    )
    return engine
