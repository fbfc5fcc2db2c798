"""
Assertions that a predicate eventually holds for a resolving value.

Example:
    counter = deferred_from(lambda: service.stats()).attribute("processed", int)
    assert_eventually(counter, at_least(10), RetryPolicy(max_wait=5.0, poll_interval=0.05))

On failure an ``EventuallyAssertionError`` reports the expectation, the last
value observed (when the source resolved at all), the last cause, the number
of attempts and the elapsed time.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, TypeVar

from deferred.core.ensure import AttemptObserver, EnsureResult, as_source, ensure_result, ensure_result_async
from deferred.core.errors import EventuallyAssertionError, PredicateMismatchError
from deferred.core.outcome import ResolutionOutcome
from deferred.core.policy import RetryPolicy
from deferred.core.sources import DeferredSource, PredicateMatch

T = TypeVar("T")


class _LastValueRecorder:
    """Remembers the most recent value ``match`` rejected."""

    def __init__(self, match: PredicateMatch[Any], chained: AttemptObserver | None):
        self._match = match
        self._chained = chained
        self.has_value = False
        self.last_value: Any = None

    def __call__(self, attempt: int, outcome: ResolutionOutcome[Any]) -> None:
        cause = outcome.cause
        if isinstance(cause, PredicateMismatchError) and cause.source is self._match:
            self.has_value = True
            self.last_value = cause.value
        if self._chained is not None:
            self._chained(attempt, outcome)


def _prepare(
    source: DeferredSource[T] | Callable[[], T],
    predicate: Callable[[T], bool],
    description: str | None,
    on_attempt: AttemptObserver | None,
) -> tuple[PredicateMatch[T], _LastValueRecorder]:
    match = PredicateMatch(as_source(source), predicate, description)
    return match, _LastValueRecorder(match, on_attempt)


def _conclude(result: EnsureResult[T], match: PredicateMatch[T], recorder: _LastValueRecorder) -> T:
    if result.succeeded:
        return result.value  # type: ignore[return-value]
    error = EventuallyAssertionError(
        description=match.describe(),
        last_cause=result.last_cause,
        attempts=result.attempts,
        elapsed=result.elapsed,
        has_value=recorder.has_value,
        last_value=recorder.last_value,
        source=match.base,
    )
    raise error from result.last_cause


def assert_eventually(
    source: DeferredSource[T] | Callable[[], T],
    predicate: Callable[[T], bool],
    policy: RetryPolicy | None = None,
    *,
    description: str | None = None,
    on_attempt: AttemptObserver | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Any] = time.sleep,
) -> T:
    """
    Wait until ``predicate`` holds for the value of ``source``.

    Args:
        source: The source to resolve, or a resource accessor callable.
        predicate: Test applied to every resolved value. ``Predicate``
            instances describe themselves; for other callables pass
            ``description``.
        policy: Retry policy (default: ``RetryPolicy()``).
        description: Human-readable expectation used in the failure report.

    Returns:
        The first value for which ``predicate`` held.

    Raises:
        EventuallyAssertionError: If the predicate did not hold before the
            deadline, or the source failed terminally.
    """
    match, recorder = _prepare(source, predicate, description, on_attempt)
    result = ensure_result(match, policy, on_attempt=recorder, clock=clock, sleep=sleep)
    return _conclude(result, match, recorder)


async def assert_eventually_async(
    source: DeferredSource[T] | Callable[[], T],
    predicate: Callable[[T], bool],
    policy: RetryPolicy | None = None,
    *,
    description: str | None = None,
    on_attempt: AttemptObserver | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Like ``assert_eventually`` but suspends with ``asyncio.sleep`` between attempts."""
    match, recorder = _prepare(source, predicate, description, on_attempt)
    result = await ensure_result_async(match, policy, on_attempt=recorder, clock=clock, sleep=sleep)
    return _conclude(result, match, recorder)


__all__ = ["assert_eventually", "assert_eventually_async"]
