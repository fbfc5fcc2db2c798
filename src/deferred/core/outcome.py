"""The three-way result of a single resolution attempt."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from deferred.core.errors import PermanentlyUnavailableError, TemporarilyUnavailableError

T = TypeVar("T")
U = TypeVar("U")


class OutcomeKind(enum.Enum):
    """Kinds of resolution outcome."""

    SUCCESS = "success"
    RETRYABLE = "retryable"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class ResolutionOutcome(Generic[T]):
    """
    Result of one ``attempt_resolve`` call.

    Exactly one of the three kinds is active. Failure outcomes always carry a
    cause; success outcomes never do.

    Example:
        outcome = ResolutionOutcome.success(42)
        outcome.unwrap()  # 42

        outcome = ResolutionOutcome.retryable(TemporarilyUnavailableError("not yet"))
        outcome.is_retryable  # True
    """

    kind: OutcomeKind
    value: T | None = None
    cause: BaseException | None = None

    def __post_init__(self) -> None:
        if self.kind is OutcomeKind.SUCCESS:
            if self.cause is not None:
                raise ValueError("A successful outcome cannot carry a cause")
        elif self.cause is None:
            raise ValueError(f"A {self.kind.value} outcome requires a cause")

    @classmethod
    def success(cls, value: T) -> "ResolutionOutcome[T]":
        return cls(OutcomeKind.SUCCESS, value=value)

    @classmethod
    def retryable(cls, cause: BaseException) -> "ResolutionOutcome[Any]":
        return cls(OutcomeKind.RETRYABLE, cause=cause)

    @classmethod
    def terminal(cls, cause: BaseException) -> "ResolutionOutcome[Any]":
        return cls(OutcomeKind.TERMINAL, cause=cause)

    @property
    def is_success(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    @property
    def is_retryable(self) -> bool:
        return self.kind is OutcomeKind.RETRYABLE

    @property
    def is_terminal(self) -> bool:
        return self.kind is OutcomeKind.TERMINAL

    def unwrap(self) -> T:
        """Return the value, or raise the cause of a failed outcome."""
        if self.cause is not None:
            raise self.cause
        return self.value  # type: ignore[return-value]

    def map(self, fn: Callable[[T], U]) -> "ResolutionOutcome[U]":
        """Transform a success value; failures pass through untouched.

        An exception raised by ``fn`` is classified with ``classify_exception``.
        """
        if not self.is_success:
            return self  # type: ignore[return-value]
        try:
            return ResolutionOutcome.success(fn(self.value))  # type: ignore[arg-type]
        except Exception as e:
            return classify_exception(e)


def classify_exception(
    exc: BaseException,
    retryable: tuple[type[BaseException], ...] = (),
) -> ResolutionOutcome[Any]:
    """
    Map an exception raised while resolving to a failure outcome.

    ``TemporarilyUnavailableError`` and instances of the ``retryable`` types are
    Retryable. ``PermanentlyUnavailableError`` and every other exception are
    Terminal: unknown failures are not retried.
    """
    if isinstance(exc, PermanentlyUnavailableError):
        return ResolutionOutcome.terminal(exc)
    if isinstance(exc, TemporarilyUnavailableError):
        return ResolutionOutcome.retryable(exc)
    if retryable and isinstance(exc, retryable):
        return ResolutionOutcome.retryable(exc)
    return ResolutionOutcome.terminal(exc)


__all__ = ["OutcomeKind", "ResolutionOutcome", "classify_exception"]
