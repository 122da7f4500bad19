from enum import StrEnum


class Channel(StrEnum):
    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"

    @classmethod
    def parse(cls, value: object) -> "Channel":
        """Case-insensitive lookup against the closed channel set.

        Raises ValueError for anything that is not a known channel name.
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Channel must be a string, got {type(value).__name__}")
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown channel: {value!r}") from None


class AttemptOutcome(StrEnum):
    SUCCESS = "success"
    TRANSIENT_FAILURE = "transient_failure"
    PERMANENT_FAILURE = "permanent_failure"


class FinalState(StrEnum):
    DELIVERED = "delivered"
    FAILED = "failed"
    REJECTED = "rejected"


class ErrorKind(StrEnum):
    VALIDATION_ERROR = "validation_error"
    UNKNOWN_CHANNEL = "unknown_channel"
    DUPLICATE_IN_FLIGHT = "duplicate_in_flight"
    TRANSIENT_FAILURE = "transient_failure"
    PERMANENT_FAILURE = "permanent_failure"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
