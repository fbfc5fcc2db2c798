"""
Exception taxonomy for deferred resolution.

Accessors raise ``TemporarilyUnavailableError`` or ``PermanentlyUnavailableError``
to classify their own failures. The engine raises ``EnsureFailedError`` (or its
``DeadlineExceededError`` subclass) and the assertion layer raises
``EventuallyAssertionError``.
"""

from __future__ import annotations

from typing import Any


class DeferredError(Exception):
    """Base class for all errors raised by the deferred package."""


class TemporarilyUnavailableError(DeferredError):
    """The resource is not available now but may become available later."""

    def __init__(self, message: str = "Resource is temporarily unavailable", source: Any = None):
        self.source = source
        super().__init__(message)


class PermanentlyUnavailableError(DeferredError):
    """The resource can never become available under its current descriptor."""

    def __init__(self, message: str = "Resource is permanently unavailable", source: Any = None):
        self.source = source
        super().__init__(message)


class PredicateMismatchError(TemporarilyUnavailableError):
    """A value resolved but did not (yet) satisfy the required predicate."""

    def __init__(self, value: Any, description: str, source: Any = None):
        self.value = value
        self.description = description
        super().__init__(f"{value!r} does not satisfy {description}", source=source)


class EnsureFailedError(DeferredError):
    """
    Raised when ``ensure`` could not resolve a source.

    Attributes:
        last_cause: The cause carried by the last failed outcome.
        attempts: Number of resolution attempts made.
        elapsed: Seconds elapsed since the first attempt started.
        source: The source that was being resolved.
    """

    def __init__(
        self,
        last_cause: BaseException,
        attempts: int,
        elapsed: float,
        source: Any = None,
        message: str | None = None,
    ):
        self.last_cause = last_cause
        self.attempts = attempts
        self.elapsed = elapsed
        self.source = source
        self.message = message or (
            f"Failed to resolve {source!r} after {attempts} attempt(s) in {elapsed:.3f}s: {last_cause}"
        )
        super().__init__(self.message)


class DeadlineExceededError(EnsureFailedError):
    """Raised when retryable outcomes persisted until the maximum wait expired."""

    def __init__(
        self,
        last_cause: BaseException,
        attempts: int,
        elapsed: float,
        source: Any = None,
        max_wait: float | None = None,
    ):
        self.max_wait = max_wait
        super().__init__(
            last_cause,
            attempts,
            elapsed,
            source=source,
            message=(
                f"Gave up waiting for {source!r} after {elapsed:.3f}s "
                f"(max wait {max_wait}s, {attempts} attempt(s)): {last_cause}"
            ),
        )


class EventuallyAssertionError(AssertionError):
    """
    Raised when a predicate did not hold for a resolving value before the deadline.

    ``has_value`` tells apart "the resource never appeared" (False) from "the
    resource appeared with the wrong value" (True, see ``last_value``).
    """

    def __init__(
        self,
        description: str,
        last_cause: BaseException | None,
        attempts: int,
        elapsed: float,
        has_value: bool = False,
        last_value: Any = None,
        source: Any = None,
    ):
        self.description = description
        self.last_cause = last_cause
        self.attempts = attempts
        self.elapsed = elapsed
        self.has_value = has_value
        self.last_value = last_value
        self.source = source
        super().__init__(self._render())

    def _render(self) -> str:
        lines = [
            f"Expected {self.description}",
            f"  source:     {self.source!r}",
        ]
        if self.has_value:
            lines.append(f"  last value: {self.last_value!r}")
        else:
            lines.append("  last value: <never resolved>")
        lines.append(f"  last cause: {type(self.last_cause).__name__}: {self.last_cause}")
        lines.append(f"  attempts:   {self.attempts}")
        lines.append(f"  elapsed:    {self.elapsed:.3f}s")
        return "\n".join(lines)


__all__ = [
    "DeadlineExceededError",
    "DeferredError",
    "EnsureFailedError",
    "EventuallyAssertionError",
    "PermanentlyUnavailableError",
    "PredicateMismatchError",
    "TemporarilyUnavailableError",
]
