"""
Bounded waiting for deferred sources.

``ensure`` turns repeated non-blocking ``attempt_resolve`` calls into one
blocking wait bounded by ``RetryPolicy.max_wait``:

- the first attempt happens immediately;
- a successful outcome returns its value;
- a terminal outcome fails at once, without consuming the rest of the wait;
- a retryable outcome sleeps for the poll interval and tries again, unless the
  wait has expired, in which case ``DeadlineExceededError`` carries the last
  cause.

The final sleep is capped so that no attempt starts later than ``max_wait``
after the first one. Elapsed time is measured with a monotonic clock.
"""

from __future__ import annotations

import asyncio
import functools
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar

from deferred.config.logging_config import get_logger
from deferred.core.errors import DeadlineExceededError, EnsureFailedError
from deferred.core.outcome import ResolutionOutcome
from deferred.core.policy import RetryPolicy
from deferred.core.sources import AccessorSource, DeferredSource, resolve

log = get_logger(__name__)

T = TypeVar("T")

AttemptObserver = Callable[[int, ResolutionOutcome[Any]], None]


@dataclass(frozen=True)
class EnsureResult(Generic[T]):
    """
    Outcome of one ``ensure`` run.

    On success ``value`` holds the resolved value. On failure ``last_cause``
    holds the cause of the last failed attempt and ``deadline_exceeded`` tells
    whether the run ended because ``max_wait`` expired.
    """

    succeeded: bool
    value: T | None
    last_cause: BaseException | None
    attempts: int
    elapsed: float
    deadline_exceeded: bool = False
    source: Any = None
    max_wait: float | None = None

    def error(self) -> EnsureFailedError:
        """The exception describing this failed run."""
        if self.succeeded or self.last_cause is None:
            raise ValueError("A successful ensure result has no error")
        if self.deadline_exceeded:
            return DeadlineExceededError(
                self.last_cause,
                self.attempts,
                self.elapsed,
                source=self.source,
                max_wait=self.max_wait,
            )
        return EnsureFailedError(self.last_cause, self.attempts, self.elapsed, source=self.source)

    def unwrap(self) -> T:
        """Return the value, or raise ``EnsureFailedError`` chained to the last cause."""
        if self.succeeded:
            return self.value  # type: ignore[return-value]
        raise self.error() from self.last_cause


def as_source(source: DeferredSource[T] | Callable[[], T]) -> DeferredSource[T]:
    """Accept a source, or a bare resource accessor callable."""
    if isinstance(source, DeferredSource):
        return source
    if callable(source):
        return AccessorSource(source)
    raise TypeError(f"Expected a DeferredSource or a zero-argument callable, got {type(source).__name__}")


class _EnsureRun(Generic[T]):
    """
    State of a single ensure invocation.

    ``step()`` performs one attempt and returns either the final
    ``EnsureResult`` or the number of seconds to sleep before the next step.
    Sync and async drivers differ only in how they sleep.
    """

    def __init__(
        self,
        source: DeferredSource[T],
        policy: RetryPolicy,
        clock: Callable[[], float],
        on_attempt: AttemptObserver | None,
    ):
        self._source = source
        self._policy = policy
        self._clock = clock
        self._on_attempt = on_attempt
        self._start = clock()
        self.attempts = 0

    def step(self) -> EnsureResult[T] | float:
        outcome = resolve(self._source)
        self.attempts += 1
        elapsed = self._clock() - self._start

        if self._on_attempt is not None:
            self._on_attempt(self.attempts, outcome)

        if outcome.is_success:
            if self.attempts > 1:
                log.debug(
                    f"Resolved {self._source!r} after {self.attempts} attempts in {elapsed:.3f}s",
                    extra={"attempts": self.attempts, "elapsed": elapsed},
                )
            return EnsureResult(
                succeeded=True,
                value=outcome.value,
                last_cause=None,
                attempts=self.attempts,
                elapsed=elapsed,
                source=self._source,
                max_wait=self._policy.max_wait,
            )

        if not self._policy.should_retry(outcome.kind):
            log.info(
                f"Giving up on {self._source!r} after attempt {self.attempts}: "
                f"{outcome.kind.value} failure: {outcome.cause}",
                extra={"attempts": self.attempts, "elapsed": elapsed, "kind": outcome.kind.value},
            )
            return self._failure(outcome, elapsed, deadline_exceeded=False)

        remaining = self._policy.max_wait - elapsed
        if remaining <= 0:
            log.warning(
                f"Deadline of {self._policy.max_wait}s exceeded waiting for {self._source!r} "
                f"after {self.attempts} attempts: {outcome.cause}",
                extra={"attempts": self.attempts, "elapsed": elapsed, "max_wait": self._policy.max_wait},
            )
            return self._failure(outcome, elapsed, deadline_exceeded=True)

        delay = min(self._policy.interval_for(self.attempts), remaining)
        log.debug(
            f"{self._source!r} unavailable (attempt {self.attempts}), retrying in {delay:.3f}s: {outcome.cause}",
            extra={"attempt": self.attempts, "next_delay": delay, "remaining": remaining},
        )
        return delay

    def _failure(self, outcome: ResolutionOutcome[T], elapsed: float, deadline_exceeded: bool) -> EnsureResult[T]:
        return EnsureResult(
            succeeded=False,
            value=None,
            last_cause=outcome.cause,
            attempts=self.attempts,
            elapsed=elapsed,
            deadline_exceeded=deadline_exceeded,
            source=self._source,
            max_wait=self._policy.max_wait,
        )


def ensure_result(
    source: DeferredSource[T] | Callable[[], T],
    policy: RetryPolicy | None = None,
    *,
    on_attempt: AttemptObserver | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Any] = time.sleep,
) -> EnsureResult[T]:
    """
    Resolve ``source`` within the bounds of ``policy`` and report how it went.

    Args:
        source: The source to resolve, or a resource accessor callable.
        policy: Retry policy (default: ``RetryPolicy()``, 60s max wait).
        on_attempt: Optional observer called with ``(attempt, outcome)`` after
            every attempt.
        clock: Monotonic clock returning seconds.
        sleep: Blocking sleep function.

    Returns:
        An ``EnsureResult``; this function does not raise for resolution failures.
        ``deadline_exceeded`` is only set when a retried outcome outlived
        ``max_wait``. An outcome whose kind is not in ``policy.retry_on`` ends
        the run at once with ``deadline_exceeded=False``, even if it was
        Retryable.
    """
    run = _EnsureRun(as_source(source), policy or RetryPolicy(), clock, on_attempt)
    while True:
        step = run.step()
        if isinstance(step, EnsureResult):
            return step
        sleep(step)


def ensure(
    source: DeferredSource[T] | Callable[[], T],
    policy: RetryPolicy | None = None,
    *,
    on_attempt: AttemptObserver | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Any] = time.sleep,
) -> T:
    """
    Block until ``source`` resolves and return its value.

    Example:
        pid = ensure(
            deferred_from(lambda: read_pid_file(path), retry_on=(FileNotFoundError,)),
            RetryPolicy(max_wait=10.0, poll_interval=0.1),
        )

    Raises:
        DeadlineExceededError: If the source stayed unavailable for ``max_wait``.
        EnsureFailedError: If the source reported a terminal failure, or any
            outcome the policy does not retry. A Retryable outcome excluded
            from ``policy.retry_on`` raises this, not ``DeadlineExceededError``.
    """
    return ensure_result(source, policy, on_attempt=on_attempt, clock=clock, sleep=sleep).unwrap()


async def ensure_result_async(
    source: DeferredSource[T] | Callable[[], T],
    policy: RetryPolicy | None = None,
    *,
    on_attempt: AttemptObserver | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> EnsureResult[T]:
    """Like ``ensure_result`` but suspends with ``asyncio.sleep`` between attempts."""
    run = _EnsureRun(as_source(source), policy or RetryPolicy(), clock, on_attempt)
    while True:
        step = run.step()
        if isinstance(step, EnsureResult):
            return step
        await sleep(step)


async def ensure_async(
    source: DeferredSource[T] | Callable[[], T],
    policy: RetryPolicy | None = None,
    *,
    on_attempt: AttemptObserver | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Like ``ensure`` but suspends with ``asyncio.sleep`` between attempts."""
    result = await ensure_result_async(source, policy, on_attempt=on_attempt, clock=clock, sleep=sleep)
    return result.unwrap()


def ensured(
    policy: RetryPolicy | None = None,
    *,
    retry_on: tuple[type[BaseException], ...] = (),
    none_is_retryable: bool = False,
) -> Callable[[Callable[[], T]], Callable[[], T]]:
    """
    Decorator turning a resource accessor into a blocking, bounded getter.

    Example:
        @ensured(RetryPolicy(max_wait=5.0), retry_on=(ConnectionRefusedError,))
        def server_port() -> int:
            return check_port()

        port = server_port()  # waits up to 5s
    """

    def decorator(accessor: Callable[[], T]) -> Callable[[], T]:
        source = AccessorSource(accessor, retry_on=retry_on, none_is_retryable=none_is_retryable)

        @functools.wraps(accessor)
        def wrapper() -> T:
            return ensure(source, policy)

        return wrapper

    return decorator


__all__ = [
    "AttemptObserver",
    "EnsureResult",
    "as_source",
    "ensure",
    "ensure_async",
    "ensure_result",
    "ensure_result_async",
    "ensured",
]
