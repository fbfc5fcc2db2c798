"""
Retry policies: how long ``ensure`` waits and how often it polls.

A policy pairs a maximum wait with a poll interval, given either as a fixed
number of seconds or as a backoff callable mapping the attempt number to
seconds. Named defaults apply unless a policy overrides them.
"""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Protocol

from deferred.core.outcome import OutcomeKind

if TYPE_CHECKING:
    from deferred.config.settings import EnsureSettings

# Named defaults. Override per policy, never globally.
DEFAULT_MAX_WAIT = 60.0
DEFAULT_POLL_INTERVAL = 0.25
DEFAULT_RETRY_ON = frozenset({OutcomeKind.RETRYABLE})


class Backoff(Protocol):
    """Maps a 1-based attempt number to the seconds to sleep after that attempt."""

    def __call__(self, attempt: int) -> float: ...


@dataclass(frozen=True)
class FixedInterval:
    """Sleep the same amount of time after every attempt."""

    seconds: float

    def __post_init__(self) -> None:
        if self.seconds <= 0:
            raise ValueError("seconds must be > 0")

    def __call__(self, attempt: int) -> float:
        return self.seconds


@dataclass(frozen=True)
class ExponentialBackoff:
    """
    Grow the sleep geometrically with the attempt number.

    The delay after attempt ``n`` is ``initial * multiplier ** (n - 1)``,
    capped at ``max_interval``. No jitter is applied, so successive delays
    never shrink.

    Example:
        backoff = ExponentialBackoff(initial=0.01)
        [backoff(n) for n in (1, 2, 3)]  # [0.01, 0.02, 0.04]
    """

    initial: float
    multiplier: float = 2.0
    max_interval: float | None = None

    def __post_init__(self) -> None:
        if self.initial <= 0:
            raise ValueError("initial must be > 0")
        if self.multiplier < 1.0:
            raise ValueError("multiplier must be >= 1.0")
        if self.max_interval is not None and self.max_interval < self.initial:
            raise ValueError("max_interval must be >= initial")

    def __call__(self, attempt: int) -> float:
        exponent = max(0, attempt - 1)
        if self.max_interval is not None and self.multiplier > 1.0:
            # No growth past the attempt that first reaches the cap.
            exponent = min(exponent, math.ceil(math.log(self.max_interval / self.initial, self.multiplier)))
        try:
            delay = float(self.initial) * float(self.multiplier) ** exponent
        except OverflowError:
            delay = math.inf
        if self.max_interval is not None:
            delay = min(delay, self.max_interval)
        return delay


@dataclass(frozen=True)
class RetryPolicy:
    """
    How long and how often ``ensure`` keeps trying.

    Policies are immutable and can be shared between concurrent ``ensure``
    calls.

    Attributes:
        max_wait: Seconds after the first attempt past which no further attempt
            is started. ``0`` means a single attempt.
        poll_interval: Seconds to sleep between attempts, or a backoff callable
            mapping the attempt number to seconds.
        retry_on: Outcome kinds that are retried. Defaults to Retryable only;
            including ``OutcomeKind.TERMINAL`` also retries terminal outcomes.

    Example:
        policy = RetryPolicy(max_wait=5.0, poll_interval=0.1)

        # backoff doubling from 10ms, never above one second
        policy = RetryPolicy(
            max_wait=30.0,
            poll_interval=ExponentialBackoff(initial=0.01, max_interval=1.0),
        )
    """

    max_wait: float = DEFAULT_MAX_WAIT
    poll_interval: float | Callable[[int], float] = DEFAULT_POLL_INTERVAL
    retry_on: frozenset[OutcomeKind] = DEFAULT_RETRY_ON

    def __post_init__(self) -> None:
        if self.max_wait < 0:
            raise ValueError("max_wait must be >= 0")
        if isinstance(self.poll_interval, (int, float)):
            if self.max_wait > 0 and self.poll_interval <= 0:
                raise ValueError("poll_interval must be > 0 when max_wait > 0")
        elif not callable(self.poll_interval):
            raise TypeError("poll_interval must be a number of seconds or a backoff callable")
        retry_on = frozenset(self.retry_on)
        if OutcomeKind.SUCCESS in retry_on:
            raise ValueError("retry_on cannot contain OutcomeKind.SUCCESS")
        object.__setattr__(self, "retry_on", retry_on)

    def interval_for(self, attempt: int) -> float:
        """Seconds to sleep after the given 1-based attempt."""
        if callable(self.poll_interval):
            delay = float(self.poll_interval(attempt))
            if delay <= 0:
                raise ValueError(f"Backoff returned a non-positive interval ({delay}) for attempt {attempt}")
            return delay
        return float(self.poll_interval)

    def should_retry(self, kind: OutcomeKind) -> bool:
        return kind in self.retry_on

    def replace(self, **overrides: Any) -> "RetryPolicy":
        """Copy of this policy with some fields overridden."""
        return dataclasses.replace(self, **overrides)

    @classmethod
    def no_retry(cls) -> "RetryPolicy":
        """Factory for a single attempt."""
        return cls(max_wait=0.0)

    @classmethod
    def within(
        cls,
        seconds: float,
        poll_interval: float | Callable[[int], float] = DEFAULT_POLL_INTERVAL,
    ) -> "RetryPolicy":
        return cls(max_wait=seconds, poll_interval=poll_interval)

    @classmethod
    def from_settings(cls, settings: "EnsureSettings") -> "RetryPolicy":
        """Factory from a validated ``EnsureSettings`` model."""
        poll_interval: float | Callable[[int], float]
        if settings.backoff == "exponential":
            poll_interval = ExponentialBackoff(
                initial=settings.poll_interval_seconds,
                multiplier=settings.backoff_multiplier,
                max_interval=settings.max_poll_interval_seconds,
            )
        else:
            poll_interval = settings.poll_interval_seconds

        retry_on = set(DEFAULT_RETRY_ON)
        if settings.retry_terminal:
            retry_on.add(OutcomeKind.TERMINAL)

        return cls(
            max_wait=settings.max_wait_seconds,
            poll_interval=poll_interval,
            retry_on=frozenset(retry_on),
        )

    @classmethod
    def from_environment(cls) -> "RetryPolicy":
        """Factory from the settings file and ``DEFERRED_*`` environment variables."""
        from deferred.config.environment import Environment

        return cls.from_settings(Environment.get_ensure_settings())


__all__ = [
    "DEFAULT_MAX_WAIT",
    "DEFAULT_POLL_INTERVAL",
    "DEFAULT_RETRY_ON",
    "Backoff",
    "ExponentialBackoff",
    "FixedInterval",
    "RetryPolicy",
]
