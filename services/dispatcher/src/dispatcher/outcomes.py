"""Attempt and outcome value types produced by the dispatch engine."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from shared.enums import AttemptOutcome, Channel, ErrorKind, FinalState

from dispatcher.errors import DispatchFailedError


@dataclass(frozen=True, slots=True)
class DeliveryAttempt:
    """One call to a channel sender."""

    attempt_number: int
    started_at: datetime
    outcome: AttemptOutcome
    finished_at: datetime | None = None
    provider_status: int | None = None
    reason: str | None = None
    timed_out: bool = False

    def __post_init__(self) -> None:
        if self.attempt_number < 1:
            raise ValueError(f"attempt_number must be >= 1, got {self.attempt_number}")

    @property
    def succeeded(self) -> bool:
        return self.outcome == AttemptOutcome.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        return {
            "attempt_number": self.attempt_number,
            "outcome": str(self.outcome),
            "provider_status": self.provider_status,
            "reason": self.reason,
            "timed_out": self.timed_out,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


@dataclass(frozen=True, slots=True)
class DispatchOutcome:
    """Terminal result of one submission.

    ``attempts`` is always numbered 1..n without gaps.  Rejected outcomes
    carry no attempts; delivered outcomes end with the successful one.
    """

    request_id: str
    final_state: FinalState
    attempts: tuple[DeliveryAttempt, ...] = ()
    channel: Channel | None = None
    error: ErrorKind | None = None
    reason: str | None = None

    def __post_init__(self) -> None:
        numbers = [a.attempt_number for a in self.attempts]
        if numbers != list(range(1, len(numbers) + 1)):
            raise ValueError(f"Attempt numbers must be contiguous from 1, got {numbers}")
        if self.final_state == FinalState.REJECTED and self.attempts:
            raise ValueError("A rejected outcome cannot carry attempts")
        if self.final_state == FinalState.DELIVERED and (
            not self.attempts or not self.attempts[-1].succeeded
        ):
            raise ValueError("A delivered outcome must end with a successful attempt")

    @classmethod
    def delivered(
        cls,
        request_id: str,
        attempts: tuple[DeliveryAttempt, ...],
        channel: Channel | None = None,
    ) -> "DispatchOutcome":
        return cls(request_id, FinalState.DELIVERED, attempts, channel=channel)

    @classmethod
    def failed(
        cls,
        request_id: str,
        attempts: tuple[DeliveryAttempt, ...],
        error: ErrorKind,
        reason: str | None = None,
        channel: Channel | None = None,
    ) -> "DispatchOutcome":
        return cls(
            request_id,
            FinalState.FAILED,
            attempts,
            channel=channel,
            error=error,
            reason=reason,
        )

    @classmethod
    def rejected(
        cls,
        request_id: str,
        error: ErrorKind,
        reason: str | None = None,
        channel: Channel | None = None,
    ) -> "DispatchOutcome":
        return cls(
            request_id,
            FinalState.REJECTED,
            (),
            channel=channel,
            error=error,
            reason=reason,
        )

    @property
    def ok(self) -> bool:
        return self.final_state == FinalState.DELIVERED

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)

    def raise_for_error(self) -> "DispatchOutcome":
        """Raise DispatchFailedError unless delivered; returns self otherwise.

        Lets a caller that treats any non-delivery as fatal write
        ``engine.submit(req).raise_for_error()``.
        """
        if not self.ok:
            raise DispatchFailedError(self)
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "request_id": self.request_id,
            "status": str(self.final_state),
            "channel": str(self.channel) if self.channel else None,
            "error": str(self.error) if self.error else None,
            "reason": self.reason,
            "attempts": [a.to_dict() for a in self.attempts],
        }
