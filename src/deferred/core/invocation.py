"""
Explicit descriptors for operations applied to a resolved value.

An ``Invocation`` names the operation and its arguments up front, so that a
``DependentInvocation`` source can apply it once the value it depends on has
resolved. Compare:

    # call counter.get_count(scope="all") once the counter exists
    invoking("get_count", scope="all")

    # or apply any callable, which receives the resolved value first
    invoking(len)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping

from deferred.core.errors import PermanentlyUnavailableError


@dataclass(frozen=True)
class Invocation:
    """
    An operation to apply to a value, captured at construction time.

    Attributes:
        selector: Name of a method (or plain attribute) on the target, or a
            callable that receives the target as its first argument.
        args: Positional arguments passed after the target.
        kwargs: Keyword arguments, frozen on construction. Left out of the
            hash so that descriptors stay hashable; still part of equality.
        retry_on: Exception types raised by the operation that should be
            treated as temporary. Everything else is terminal.
    """

    selector: str | Callable[..., Any]
    args: tuple[Any, ...] = ()
    kwargs: Mapping[str, Any] = field(default_factory=dict, hash=False)
    retry_on: tuple[type[BaseException], ...] = ()

    def __post_init__(self) -> None:
        if isinstance(self.selector, str):
            if not self.selector.isidentifier():
                raise ValueError(f"Invalid selector name: {self.selector!r}")
        elif not callable(self.selector):
            raise TypeError(f"Selector must be a name or a callable, got {type(self.selector).__name__}")
        object.__setattr__(self, "args", tuple(self.args))
        object.__setattr__(self, "kwargs", MappingProxyType(dict(self.kwargs)))

    def apply(self, target: Any) -> Any:
        """
        Apply the operation to ``target``.

        A named selector that ``target`` does not have is a malformed selector
        and raises ``PermanentlyUnavailableError``. A named plain attribute (not
        callable) is returned as-is when no arguments were captured.
        """
        if not isinstance(self.selector, str):
            return self.selector(target, *self.args, **self.kwargs)

        try:
            member = getattr(target, self.selector)
        except AttributeError as e:
            raise PermanentlyUnavailableError(
                f"{type(target).__name__} has no attribute {self.selector!r}"
            ) from e

        if callable(member):
            return member(*self.args, **self.kwargs)
        if self.args or self.kwargs:
            raise PermanentlyUnavailableError(
                f"{type(target).__name__}.{self.selector} is not callable but arguments were given"
            )
        return member

    def describe(self) -> str:
        name = self.selector if isinstance(self.selector, str) else getattr(
            self.selector, "__qualname__", repr(self.selector)
        )
        params = [repr(a) for a in self.args]
        params.extend(f"{k}={v!r}" for k, v in self.kwargs.items())
        return f"{name}({', '.join(params)})"


def invoking(
    selector: str | Callable[..., Any],
    *args: Any,
    retry_on: tuple[type[BaseException], ...] = (),
    **kwargs: Any,
) -> Invocation:
    """Build an ``Invocation`` for ``selector`` called with the given arguments."""
    return Invocation(selector=selector, args=args, kwargs=kwargs, retry_on=retry_on)


__all__ = ["Invocation", "invoking"]
