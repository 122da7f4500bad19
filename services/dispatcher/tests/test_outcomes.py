"""Tests for DeliveryAttempt and DispatchOutcome."""

import datetime

import pytest

from shared.enums import AttemptOutcome, Channel, ErrorKind, FinalState

from dispatcher.errors import DispatchFailedError
from dispatcher.outcomes import DeliveryAttempt, DispatchOutcome

_T0 = datetime.datetime(2026, 3, 1, 9, 30, tzinfo=datetime.timezone.utc)


def _attempt(number: int, outcome: AttemptOutcome = AttemptOutcome.TRANSIENT_FAILURE) -> DeliveryAttempt:
    return DeliveryAttempt(attempt_number=number, started_at=_T0, outcome=outcome)


class TestDeliveryAttempt:
    def test_to_dict(self) -> None:
        attempt = DeliveryAttempt(
            attempt_number=2,
            started_at=_T0,
            finished_at=_T0 + datetime.timedelta(seconds=1),
            outcome=AttemptOutcome.SUCCESS,
            provider_status=201,
        )

        assert attempt.succeeded
        assert attempt.to_dict() == {
            "attempt_number": 2,
            "outcome": "success",
            "provider_status": 201,
            "reason": None,
            "timed_out": False,
            "started_at": "2026-03-01T09:30:00+00:00",
            "finished_at": "2026-03-01T09:30:01+00:00",
        }

    def test_attempt_number_starts_at_one(self) -> None:
        with pytest.raises(ValueError):
            _attempt(0)


class TestDispatchOutcomeInvariants:
    def test_attempts_must_be_contiguous(self) -> None:
        with pytest.raises(ValueError, match="contiguous"):
            DispatchOutcome.failed("r", (_attempt(1), _attempt(3)), ErrorKind.TRANSIENT_FAILURE)

    def test_attempts_must_start_at_one(self) -> None:
        with pytest.raises(ValueError):
            DispatchOutcome.failed("r", (_attempt(2),), ErrorKind.TRANSIENT_FAILURE)

    def test_rejected_cannot_carry_attempts(self) -> None:
        with pytest.raises(ValueError, match="rejected"):
            DispatchOutcome("r", FinalState.REJECTED, (_attempt(1),))

    def test_delivered_must_end_with_success(self) -> None:
        with pytest.raises(ValueError, match="delivered"):
            DispatchOutcome.delivered("r", (_attempt(1),))

    def test_delivered_requires_an_attempt(self) -> None:
        with pytest.raises(ValueError):
            DispatchOutcome.delivered("r", ())


class TestDispatchOutcome:
    def test_delivered(self) -> None:
        outcome = DispatchOutcome.delivered(
            "r", (_attempt(1), _attempt(2, AttemptOutcome.SUCCESS)), channel=Channel.SMS
        )

        assert outcome.ok
        assert outcome.attempt_count == 2
        assert outcome.error is None
        assert outcome.raise_for_error() is outcome

    def test_failed_raises_on_request(self) -> None:
        outcome = DispatchOutcome.failed(
            "r-9", (_attempt(1),), ErrorKind.PERMANENT_FAILURE, "HTTP 422"
        )

        with pytest.raises(DispatchFailedError) as exc_info:
            outcome.raise_for_error()

        assert exc_info.value.outcome is outcome
        assert str(exc_info.value) == "Dispatch r-9 failed (permanent_failure: HTTP 422)"

    def test_rejected_to_dict(self) -> None:
        outcome = DispatchOutcome.rejected("r", ErrorKind.UNKNOWN_CHANNEL, "Unknown channel: 'fax'")

        assert outcome.to_dict() == {
            "request_id": "r",
            "status": "rejected",
            "channel": None,
            "error": "unknown_channel",
            "reason": "Unknown channel: 'fax'",
            "attempts": [],
        }

    def test_to_dict_lists_attempts(self) -> None:
        outcome = DispatchOutcome.delivered(
            "r", (_attempt(1, AttemptOutcome.SUCCESS),), channel=Channel.PUSH
        )

        data = outcome.to_dict()

        assert data["status"] == "delivered"
        assert data["channel"] == "push"
        assert [a["attempt_number"] for a in data["attempts"]] == [1]
