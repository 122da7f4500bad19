"""Abstract channel sender interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar

from shared.enums import AttemptOutcome, Channel
from shared.notifications import NotificationRequest


@dataclass(frozen=True, slots=True)
class ChannelPayload:
    """What a sender needs from a request."""

    title: str
    content: str
    recipient: str

    @classmethod
    def from_request(cls, request: NotificationRequest) -> "ChannelPayload":
        return cls(
            title=request.title,
            content=request.content,
            recipient=(request.recipient or "").strip(),
        )


@dataclass(frozen=True, slots=True)
class SendResult:
    """Outcome of a single delivery attempt."""

    outcome: AttemptOutcome
    provider_status: int | None = None
    reason: str | None = None
    timed_out: bool = False

    @classmethod
    def success(
        cls, provider_status: int | None = None, reason: str | None = None
    ) -> "SendResult":
        return cls(AttemptOutcome.SUCCESS, provider_status, reason)

    @classmethod
    def transient(
        cls, reason: str, provider_status: int | None = None
    ) -> "SendResult":
        return cls(AttemptOutcome.TRANSIENT_FAILURE, provider_status, reason)

    @classmethod
    def permanent(
        cls, reason: str, provider_status: int | None = None
    ) -> "SendResult":
        return cls(AttemptOutcome.PERMANENT_FAILURE, provider_status, reason)

    @classmethod
    def timeout(cls, reason: str) -> "SendResult":
        return cls(AttemptOutcome.TRANSIENT_FAILURE, None, reason, timed_out=True)

    @property
    def ok(self) -> bool:
        return self.outcome == AttemptOutcome.SUCCESS


class ChannelSender(ABC):
    """Base class for all channel senders."""

    channel: ClassVar[Channel]

    @abstractmethod
    def send(self, payload: ChannelPayload) -> SendResult:
        """Make exactly one delivery attempt.

        Implementations must not raise: every non-success is classified
        as transient (worth retrying) or permanent, and anything that
        cannot be classified is transient.
        """

    def close(self) -> None:
        """Release network resources. Senders without any keep the default."""
