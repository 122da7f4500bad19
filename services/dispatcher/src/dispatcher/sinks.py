"""Result sinks: observational consumers of attempts and outcomes.

The engine calls sinks through a guard, so an exception raised here is
logged and never reaches the caller of ``submit``.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

from confluent_kafka import KafkaError, Message, Producer
from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from shared.config import KafkaConfig
from shared.db.repositories import DispatchLogRepository
from shared.enums import FinalState

from dispatcher.outcomes import DeliveryAttempt, DispatchOutcome

logger = logging.getLogger(__name__)


class ResultSink(ABC):
    @abstractmethod
    def record(self, request_id: str, attempt: DeliveryAttempt) -> None:
        """Called once per attempt, before the engine moves on."""

    @abstractmethod
    def finalize(self, outcome: DispatchOutcome) -> None:
        """Called once per submission with its terminal outcome."""

    def close(self) -> None:
        """Flush and release resources."""


class LoggingResultSink(ResultSink):
    """Writes attempts and outcomes as structured log lines."""

    def __init__(self, name: str = "dispatcher.results") -> None:
        self._logger = logging.getLogger(name)

    def record(self, request_id: str, attempt: DeliveryAttempt) -> None:
        level = logging.INFO if attempt.succeeded else logging.WARNING
        self._logger.log(
            level,
            "Delivery attempt recorded",
            extra={"request_id": request_id, **attempt.to_dict()},
        )

    def finalize(self, outcome: DispatchOutcome) -> None:
        level = {
            FinalState.DELIVERED: logging.INFO,
            FinalState.REJECTED: logging.WARNING,
            FinalState.FAILED: logging.ERROR,
        }[outcome.final_state]
        self._logger.log(
            level,
            "Dispatch finalized",
            extra={
                "request_id": outcome.request_id,
                "status": outcome.final_state,
                "channel": outcome.channel,
                "error": outcome.error,
                "reason": outcome.reason,
                "attempts": outcome.attempt_count,
            },
        )


@dataclass(frozen=True, slots=True)
class SinkEntry:
    """One line of the in-memory log: either an attempt or an outcome."""

    request_id: str
    attempt: DeliveryAttempt | None = None
    outcome: DispatchOutcome | None = None


class InMemoryResultSink(ResultSink):
    """Append-only, thread-safe log kept in process memory."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: list[SinkEntry] = []

    def record(self, request_id: str, attempt: DeliveryAttempt) -> None:
        with self._lock:
            self._entries.append(SinkEntry(request_id, attempt=attempt))

    def finalize(self, outcome: DispatchOutcome) -> None:
        with self._lock:
            self._entries.append(SinkEntry(outcome.request_id, outcome=outcome))

    @property
    def entries(self) -> tuple[SinkEntry, ...]:
        with self._lock:
            return tuple(self._entries)

    @property
    def outcomes(self) -> list[DispatchOutcome]:
        return [e.outcome for e in self.entries if e.outcome is not None]

    def attempts_for(self, request_id: str) -> list[DeliveryAttempt]:
        return [
            e.attempt
            for e in self.entries
            if e.request_id == request_id and e.attempt is not None
        ]

    def outcome_for(self, request_id: str) -> DispatchOutcome | None:
        """Latest outcome recorded for *request_id*."""
        for entry in reversed(self.entries):
            if entry.request_id == request_id and entry.outcome is not None:
                return entry.outcome
        return None


class SqlResultSink(ResultSink):
    """Persists the log through DispatchLogRepository, one session per call."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        engine: Engine | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._engine = engine

    def record(self, request_id: str, attempt: DeliveryAttempt) -> None:
        with self._session_factory() as session:
            DispatchLogRepository(session).add_attempt(
                request_id,
                attempt.attempt_number,
                attempt.outcome,
                attempt.started_at,
                provider_status=attempt.provider_status,
                reason=attempt.reason,
                finished_at=attempt.finished_at,
            )
            session.commit()

    def finalize(self, outcome: DispatchOutcome) -> None:
        with self._session_factory() as session:
            DispatchLogRepository(session).add_outcome(
                outcome.request_id,
                outcome.final_state,
                outcome.attempt_count,
                channel=outcome.channel,
                error=outcome.error,
                reason=outcome.reason,
            )
            session.commit()

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()


class KafkaResultSink(ResultSink):
    """Publishes one status event per outcome to the delivery events topic.

    Individual attempts are not published; the event carries the attempt
    count and the last attempt's provider status instead.
    """

    def __init__(self, config: KafkaConfig) -> None:
        self._topic = config.delivery_events_topic
        self._producer = Producer({
            "bootstrap.servers": config.bootstrap_servers,
            "client.id": config.client_id,
            "acks": "all",
            "enable.idempotence": True,
            "linger.ms": 5,
            "compression.type": "lz4",
        })

    def record(self, request_id: str, attempt: DeliveryAttempt) -> None:
        return None

    def finalize(self, outcome: DispatchOutcome) -> None:
        last = outcome.attempts[-1] if outcome.attempts else None
        value = json.dumps({
            "request_id": outcome.request_id,
            "status": str(outcome.final_state),
            "channel": str(outcome.channel) if outcome.channel else None,
            "attempts": outcome.attempt_count,
            "provider_status": last.provider_status if last else None,
            "error": str(outcome.error) if outcome.error else None,
            "reason": outcome.reason,
        }).encode("utf-8")

        self._producer.produce(
            topic=self._topic,
            key=outcome.request_id.encode("utf-8"),
            value=value,
            on_delivery=self._on_delivery,
        )
        self._producer.poll(0)

    def close(self) -> None:
        remaining = self._producer.flush(10.0)
        if remaining > 0:
            logger.warning(
                "Producer closed with unflushed messages",
                extra={"remaining": remaining},
            )

    @staticmethod
    def _on_delivery(err: KafkaError | None, msg: Message) -> None:
        if err is not None:
            logger.error("Kafka delivery failed: %s", err)


class CompositeResultSink(ResultSink):
    """Fans out to several sinks; one failing sink does not starve the rest."""

    def __init__(self, sinks: Sequence[ResultSink]) -> None:
        self._sinks = tuple(sinks)

    @property
    def sinks(self) -> tuple[ResultSink, ...]:
        return self._sinks

    def record(self, request_id: str, attempt: DeliveryAttempt) -> None:
        for sink in self._sinks:
            try:
                sink.record(request_id, attempt)
            except Exception:
                logger.exception(
                    "Result sink failed to record attempt",
                    extra={"sink": type(sink).__name__, "request_id": request_id},
                )

    def finalize(self, outcome: DispatchOutcome) -> None:
        for sink in self._sinks:
            try:
                sink.finalize(outcome)
            except Exception:
                logger.exception(
                    "Result sink failed to finalize outcome",
                    extra={
                        "sink": type(sink).__name__,
                        "request_id": outcome.request_id,
                    },
                )

    def close(self) -> None:
        for sink in self._sinks:
            try:
                sink.close()
            except Exception:
                logger.exception(
                    "Result sink failed to close", extra={"sink": type(sink).__name__}
                )
