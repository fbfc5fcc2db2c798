"""
Deferred sources: immutable descriptors of how to obtain a value later.

Every source implements ``attempt_resolve()``, which makes one quick,
non-blocking attempt and reports a ``ResolutionOutcome`` instead of raising.
Sources compose: a ``DependentInvocation`` or ``PredicateMatch`` wraps another
source and only does its own work once the inner source has resolved.

Example:
    server = deferred_from(lambda: registry.lookup("server-1"), retry_on=(KeyError,))
    connections = server.invoking("connection_count").matching(at_least(2))

    resolve(connections)   # single attempt, returns a ResolutionOutcome
    ensure(connections)    # bounded wait, returns the value or raises
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, TypeVar

from deferred.config.logging_config import get_logger
from deferred.core.errors import (
    PermanentlyUnavailableError,
    PredicateMismatchError,
    TemporarilyUnavailableError,
)
from deferred.core.invocation import Invocation, invoking as _invoking
from deferred.core.outcome import ResolutionOutcome, classify_exception
from deferred.core.predicates import describe_predicate

log = get_logger(__name__)

T = TypeVar("T")


def _type_name(t: type | None) -> str:
    return t.__name__ if t is not None else "?"


class DeferredSource(ABC, Generic[T]):
    """
    Base class for all deferred sources.

    Implementations must not sleep and must not raise from
    ``attempt_resolve``: inherently transient failures are Retryable, failures
    that can never heal are Terminal. Sources hold no per-attempt state, so a
    single instance can be resolved concurrently from several threads.
    """

    @abstractmethod
    def attempt_resolve(self) -> ResolutionOutcome[T]:
        """Make one attempt to obtain the value."""

    @property
    def deferred_type(self) -> type | None:
        """The declared type of the resolved value, or None when unknown."""
        return None

    def invoking(
        self,
        selector: str | Callable[..., Any],
        *args: Any,
        retry_on: tuple[type[BaseException], ...] = (),
        **kwargs: Any,
    ) -> "DependentInvocation[Any]":
        """Source of ``selector(*args, **kwargs)`` applied to this source's value."""
        return DependentInvocation(self, _invoking(selector, *args, retry_on=retry_on, **kwargs))

    def attribute(self, name: str, type_: type | None = None) -> "DeferredAttribute[Any]":
        """Source of the attribute (or mapping key) ``name`` of this source's value."""
        return DeferredAttribute(self, name, type_)

    def matching(
        self,
        predicate: Callable[[T], bool],
        description: str | None = None,
    ) -> "PredicateMatch[T]":
        """Source that only resolves once ``predicate`` holds for this source's value."""
        return PredicateMatch(self, predicate, description)


@dataclass(frozen=True, repr=False)
class DirectValue(DeferredSource[T]):
    """A value that is already available."""

    value: T

    def attempt_resolve(self) -> ResolutionOutcome[T]:
        return ResolutionOutcome.success(self.value)

    @property
    def deferred_type(self) -> type | None:
        return None if self.value is None else type(self.value)

    def __repr__(self) -> str:
        return f"Deferred<Value>{{{self.value!r}}}"


@dataclass(frozen=True, repr=False)
class NullSentinel(DeferredSource[Any]):
    """
    An intentionally absent value of a known type.

    Always resolves to ``None``. Unlike a source that is not yet available,
    it never needs to be waited for.
    """

    type_: type | None = None

    def attempt_resolve(self) -> ResolutionOutcome[Any]:
        return ResolutionOutcome.success(None)

    @property
    def deferred_type(self) -> type | None:
        return self.type_

    def __repr__(self) -> str:
        return f"Deferred<Null>{{class={_type_name(self.type_)}}}"


@dataclass(frozen=True, repr=False)
class AccessorSource(DeferredSource[T]):
    """
    Adapts a resource accessor callable to the source protocol.

    The accessor takes no arguments and either returns the value or raises.
    Exceptions are classified with ``classify_exception``: accessors signal
    temporary absence with ``TemporarilyUnavailableError`` (or one of the
    ``retry_on`` types); anything else is terminal.

    Attributes:
        accessor: Zero-argument callable producing the value.
        type_: Declared type of the value; a value of another type is terminal.
        retry_on: Extra exception types to treat as temporary.
        none_is_retryable: Treat a ``None`` result as "not available yet".
        description: Used in reprs and diagnostics.
    """

    accessor: Callable[[], T]
    type_: type | None = None
    retry_on: tuple[type[BaseException], ...] = ()
    none_is_retryable: bool = False
    description: str | None = None

    def attempt_resolve(self) -> ResolutionOutcome[T]:
        try:
            value = self.accessor()
        except Exception as e:
            return classify_exception(e, self.retry_on)

        if value is None:
            if self.none_is_retryable:
                return ResolutionOutcome.retryable(
                    TemporarilyUnavailableError(f"{self!r} returned None", source=self)
                )
            return ResolutionOutcome.success(value)

        if self.type_ is not None and not isinstance(value, self.type_):
            return ResolutionOutcome.terminal(
                PermanentlyUnavailableError(
                    f"{self!r} produced {type(value).__name__}, expected {self.type_.__name__}",
                    source=self,
                )
            )
        return ResolutionOutcome.success(value)

    @property
    def deferred_type(self) -> type | None:
        return self.type_

    def __repr__(self) -> str:
        name = self.description or getattr(self.accessor, "__qualname__", repr(self.accessor))
        return f"Deferred<Accessor>{{{name}, class={_type_name(self.type_)}}}"


@dataclass(frozen=True, repr=False)
class DependentInvocation(DeferredSource[Any]):
    """
    Applies an ``Invocation`` to the value of another source.

    The operation runs at most once per attempt and only after ``base`` has
    resolved; base failures propagate unchanged. Exceptions from the operation
    are terminal unless listed in ``invocation.retry_on`` or raised as
    ``TemporarilyUnavailableError``. An operation may also return a
    ``ResolutionOutcome`` or another ``DeferredSource`` to classify its own
    result.
    """

    base: DeferredSource[Any]
    invocation: Invocation

    def attempt_resolve(self) -> ResolutionOutcome[Any]:
        outcome = self.base.attempt_resolve()
        if not outcome.is_success:
            return outcome

        try:
            result = self.invocation.apply(outcome.value)
        except Exception as e:
            return classify_exception(e, self.invocation.retry_on)

        if isinstance(result, ResolutionOutcome):
            return result
        if isinstance(result, DeferredSource):
            return result.attempt_resolve()
        return ResolutionOutcome.success(result)

    def __repr__(self) -> str:
        return f"Deferred<Invocation>{{on={self.base!r}, call={self.invocation.describe()}}}"


@dataclass(frozen=True, repr=False)
class DeferredAttribute(DeferredSource[Any]):
    """
    Reads an attribute, or mapping key, of another source's value.

    A ``None`` base value or a missing attribute is Retryable: the owner may
    not have registered it yet. A value that is not a ``type_`` is
    Terminal: it will never become one.
    """

    base: DeferredSource[Any]
    name: str
    type_: type | None = None

    def attempt_resolve(self) -> ResolutionOutcome[Any]:
        outcome = self.base.attempt_resolve()
        if not outcome.is_success:
            return outcome

        target = outcome.value
        if target is None:
            return ResolutionOutcome.retryable(
                TemporarilyUnavailableError(f"{self.base!r} resolved to None", source=self)
            )

        try:
            if isinstance(target, Mapping):
                value = target[self.name]
            else:
                value = getattr(target, self.name)
        except (KeyError, AttributeError) as e:
            cause = TemporarilyUnavailableError(f"{self.name!r} is not available on {target!r}", source=self)
            cause.__cause__ = e
            return ResolutionOutcome.retryable(cause)
        except Exception as e:
            return classify_exception(e)

        if self.type_ is not None and value is not None and not isinstance(value, self.type_):
            return ResolutionOutcome.terminal(
                PermanentlyUnavailableError(
                    f"{self.name!r} is {type(value).__name__}, expected {self.type_.__name__}",
                    source=self,
                )
            )
        return ResolutionOutcome.success(value)

    @property
    def deferred_type(self) -> type | None:
        return self.type_

    def __repr__(self) -> str:
        return f"Deferred<Attribute>{{on={self.base!r}, attribute={self.name}, class={_type_name(self.type_)}}}"


@dataclass(frozen=True, repr=False)
class PredicateMatch(DeferredSource[T]):
    """
    Resolves to the value of ``base`` only once ``predicate`` holds for it.

    A value that does not match is Retryable with a ``PredicateMismatchError``
    cause carrying the value. A predicate that raises is Terminal.
    """

    base: DeferredSource[T]
    predicate: Callable[[T], bool]
    description: str | None = field(default=None)

    def attempt_resolve(self) -> ResolutionOutcome[T]:
        outcome = self.base.attempt_resolve()
        if not outcome.is_success:
            return outcome

        value = outcome.value
        try:
            matched = bool(self.predicate(value))  # type: ignore[arg-type]
        except Exception as e:
            log.debug(f"Predicate {self.describe()} raised for {value!r}: {e}")
            return ResolutionOutcome.terminal(e)

        if matched:
            return outcome
        return ResolutionOutcome.retryable(PredicateMismatchError(value, self.describe(), source=self))

    def describe(self) -> str:
        return self.description or describe_predicate(self.predicate)

    @property
    def deferred_type(self) -> type | None:
        return self.base.deferred_type

    def __repr__(self) -> str:
        return f"Deferred<Match>{{on={self.base!r}, predicate={self.describe()}}}"


def deferred(value: T) -> DirectValue[T]:
    """Source of a value that is already available."""
    return DirectValue(value)


def deferred_null(type_: type | None = None) -> NullSentinel:
    """Source of an intentionally absent value of ``type_``."""
    return NullSentinel(type_)


def deferred_from(
    accessor: Callable[[], T],
    type_: type | None = None,
    *,
    retry_on: tuple[type[BaseException], ...] = (),
    none_is_retryable: bool = False,
    description: str | None = None,
) -> AccessorSource[T]:
    """Source backed by a resource accessor callable."""
    return AccessorSource(
        accessor,
        type_=type_,
        retry_on=retry_on,
        none_is_retryable=none_is_retryable,
        description=description,
    )


def resolve(source: DeferredSource[T]) -> ResolutionOutcome[T]:
    """
    Make a single, non-blocking resolution attempt.

    A source that breaks its contract by raising is reported as Terminal.
    """
    try:
        return source.attempt_resolve()
    except Exception as e:
        log.error(f"{source!r} raised from attempt_resolve instead of returning an outcome: {e}")
        return ResolutionOutcome.terminal(e)


__all__ = [
    "AccessorSource",
    "DeferredAttribute",
    "DeferredSource",
    "DependentInvocation",
    "DirectValue",
    "NullSentinel",
    "PredicateMatch",
    "deferred",
    "deferred_from",
    "deferred_null",
    "resolve",
]
