"""Backoff policies and clock abstraction for polling loops.

The upload verifier waits on an external state machine without a push channel.
Its timing is expressed through two small abstractions so that tests can drive
it with a fake clock instead of real sleeps:

- BackoffPolicy.next_delay(attempt) -> seconds to wait before the next poll
- Clock.now() / Clock.sleep() -> monotonic time source and suspension point
"""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass


class BackoffPolicy(ABC):
    """Computes the delay before the next poll."""

    @abstractmethod
    def next_delay(self, attempt: int) -> float:
        """Return the delay in seconds after poll number ``attempt`` (1-based)."""


@dataclass(frozen=True)
class LinearBackoff(BackoffPolicy):
    """Bounded, linearly increasing backoff.

    delay = min(maximum, initial + attempt * step)

    Defaults give 1.1s after the first poll, growing by 100ms per poll and
    capped at 5s.
    """

    initial: float = 1.0
    step: float = 0.1
    maximum: float = 5.0

    def next_delay(self, attempt: int) -> float:
        if attempt < 0:
            raise ValueError(f"attempt must be >= 0, got {attempt}")
        return min(self.maximum, self.initial + attempt * self.step)


@dataclass(frozen=True)
class FixedBackoff(BackoffPolicy):
    """Constant delay regardless of attempt number."""

    delay: float

    def next_delay(self, attempt: int) -> float:
        return self.delay


class Clock(ABC):
    """Monotonic time source with an awaitable sleep."""

    @abstractmethod
    def now(self) -> float:
        """Return monotonic seconds."""

    @abstractmethod
    async def sleep(self, seconds: float) -> None:
        """Suspend the calling task for ``seconds``."""


class SystemClock(Clock):
    """Clock backed by time.monotonic() and asyncio.sleep()."""

    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        if seconds > 0:
            await asyncio.sleep(seconds)
