"""Exceptions raised by the dispatcher.

Expected delivery conditions never surface as exceptions from
``DispatchEngine.submit``; they are reported in the returned outcome.
These types exist for registry lookups, for callers that opt into
raising via ``DispatchOutcome.raise_for_error`` and for misuse.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dispatcher.outcomes import DispatchOutcome


class DispatchError(Exception):
    """Base class for dispatcher errors."""


class UnknownChannelError(DispatchError, KeyError):
    """Channel identifier outside the supported set or not registered."""

    def __init__(self, channel: object) -> None:
        self.channel = channel
        super().__init__(channel)

    def __str__(self) -> str:
        return f"Unknown channel: {self.channel!r}"


class DispatchFailedError(DispatchError):
    """A dispatch ended in a state other than delivered."""

    def __init__(self, outcome: "DispatchOutcome") -> None:
        self.outcome = outcome
        detail = f"{outcome.error}" if outcome.error else "no error kind"
        if outcome.reason:
            detail = f"{detail}: {outcome.reason}"
        super().__init__(
            f"Dispatch {outcome.request_id} {outcome.final_state} ({detail})"
        )


class EngineClosedError(DispatchError, RuntimeError):
    """Submit called after the engine was closed."""
