"""Data access repositories with constructor-injected sessions."""

import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from shared.db.models import DeliveryAttemptRecord, DispatchOutcomeRecord


class DispatchLogRepository:
    """Append-only access to the delivery_attempts and dispatch_outcomes tables."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def add_attempt(
        self,
        request_id: str,
        attempt_number: int,
        outcome: str,
        started_at: datetime.datetime,
        *,
        provider_status: int | None = None,
        reason: str | None = None,
        finished_at: datetime.datetime | None = None,
    ) -> DeliveryAttemptRecord:
        """Insert one attempt row and flush to populate server defaults."""
        record = DeliveryAttemptRecord(
            request_id=request_id,
            attempt_number=attempt_number,
            outcome=outcome,
            provider_status=provider_status,
            reason=reason,
            started_at=started_at,
            finished_at=finished_at,
        )
        self._session.add(record)
        self._session.flush()
        return record

    def add_outcome(
        self,
        request_id: str,
        final_state: str,
        attempt_count: int,
        *,
        channel: str | None = None,
        error: str | None = None,
        reason: str | None = None,
    ) -> DispatchOutcomeRecord:
        """Insert one terminal outcome row."""
        record = DispatchOutcomeRecord(
            request_id=request_id,
            channel=channel,
            final_state=final_state,
            error=error,
            reason=reason,
            attempt_count=attempt_count,
        )
        self._session.add(record)
        self._session.flush()
        return record

    def get_attempts(self, request_id: str) -> list[DeliveryAttemptRecord]:
        """All attempts for a request in insertion order."""
        stmt = (
            select(DeliveryAttemptRecord)
            .where(DeliveryAttemptRecord.request_id == request_id)
            .order_by(DeliveryAttemptRecord.id.asc())
        )
        return list(self._session.scalars(stmt).all())

    def get_latest_outcome(self, request_id: str) -> DispatchOutcomeRecord | None:
        """Most recent outcome for a request, or None if it never finished."""
        stmt = (
            select(DispatchOutcomeRecord)
            .where(DispatchOutcomeRecord.request_id == request_id)
            .order_by(DispatchOutcomeRecord.id.desc())
            .limit(1)
        )
        return self._session.scalars(stmt).first()

    def count_by_state(self) -> dict[str, int]:
        """Number of outcomes per final state.

        Handy for ad-hoc diagnosis of a persisted log.
        """
        stmt = select(
            DispatchOutcomeRecord.final_state, func.count(DispatchOutcomeRecord.id)
        ).group_by(DispatchOutcomeRecord.final_state)
        return {state: count for state, count in self._session.execute(stmt).all()}
