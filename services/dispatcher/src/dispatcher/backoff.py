"""Retry policy: attempt budget plus capped exponential backoff with jitter."""

import random
from collections.abc import Callable
from dataclasses import dataclass, field

from dispatcher.config import DispatchConfig

# 2**64 already exceeds any sane cap; keeps the float math finite.
_MAX_EXPONENT = 64


def backoff_delay(
    attempt: int,
    base: float,
    cap: float,
    jitter: float = 0.0,
    rand: Callable[[], float] = random.random,
) -> float:
    """Seconds to wait after failed *attempt* (1-based) before the next one.

    ``base * 2**(attempt-1)`` capped at *cap*, then moved by up to
    ``±jitter`` of itself using *rand* (uniform in [0, 1)), and finally
    clamped to ``[0, cap]``.
    """
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")
    delay = min(cap, base * 2.0 ** min(attempt - 1, _MAX_EXPONENT))
    if jitter:
        delay += delay * jitter * (2.0 * rand() - 1.0)
    return max(0.0, min(cap, delay))


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_seconds: float = 0.5
    cap_seconds: float = 30.0
    jitter: float = 0.2
    rand: Callable[[], float] = field(default=random.random, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    @classmethod
    def from_config(cls, config: DispatchConfig) -> "RetryPolicy":
        return cls(
            max_attempts=config.max_attempts,
            base_seconds=config.backoff_base_seconds,
            cap_seconds=config.backoff_cap_seconds,
            jitter=config.backoff_jitter,
        )

    def delay(self, attempt: int) -> float:
        return backoff_delay(
            attempt, self.base_seconds, self.cap_seconds, self.jitter, self.rand
        )
