"""Bounded retry loop used to poll external systems for readiness."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, List, Optional, TypeVar

from .errors import PollTimeoutError

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed-delay retry budget."""

    max_attempts: int
    delay: float

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.delay < 0:
            raise ValueError(f"delay cannot be negative, got {self.delay}")

    @property
    def worst_case(self) -> float:
        """Upper bound on time spent sleeping between attempts."""
        return self.max_attempts * self.delay


@dataclass(frozen=True)
class PollAttempt:
    """Outcome of one failed attempt."""

    number: int
    elapsed: float
    error: Optional[BaseException]


def do_with_retry(
    description: str,
    policy: RetryPolicy,
    action: Callable[[], T],
    *,
    deadline: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """
    Call ``action`` until it returns, up to ``policy.max_attempts`` times.

    Any ``Exception`` raised by ``action`` counts as "not ready yet"; the loop
    sleeps ``policy.delay`` and tries again. The first successful return value
    is returned.

    Args:
        description: Human readable name of what is being waited for
        policy: Attempt budget and delay
        action: Single-shot check
        deadline: Optional absolute ``clock()`` value after which no further
            attempt is started
        sleep: Sleep function (injectable for tests)
        clock: Monotonic clock (injectable for tests)

    Returns:
        The value returned by ``action``

    Raises:
        PollTimeoutError: If every attempt failed or the deadline passed
    """
    print(f"→ {description} (up to {policy.max_attempts} attempts, {policy.delay:g}s apart)")
    started = clock()
    attempts: List[PollAttempt] = []

    for number in range(1, policy.max_attempts + 1):
        try:
            result = action()
        except Exception as exc:
            attempts.append(PollAttempt(number, clock() - started, exc))
            print(f"  {description} returned an error: {exc}. Retry {number}/{policy.max_attempts}")
        else:
            print(f"  {description} succeeded on attempt {number}")
            return result

        if number == policy.max_attempts:
            break
        if deadline is not None and clock() + policy.delay >= deadline:
            print(f"  {description}: run deadline reached, giving up")
            break
        sleep(policy.delay)

    raise PollTimeoutError(description, attempts)
