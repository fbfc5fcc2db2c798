"""Named predicates that describe themselves in assertion reports."""

from __future__ import annotations

from typing import Any, Callable


class Predicate:
    """
    A boolean test over a value with a human-readable description.

    Example:
        ready = Predicate(lambda status: status == "READY", "status is READY")
        ready("STARTING")  # False
        str(ready)         # "status is READY"
    """

    def __init__(self, fn: Callable[[Any], bool], description: str):
        self._fn = fn
        self.description = description

    def __call__(self, value: Any) -> bool:
        return bool(self._fn(value))

    def __str__(self) -> str:
        return self.description

    def __repr__(self) -> str:
        return f"Predicate({self.description!r})"

    def __and__(self, other: Callable[[Any], bool]) -> "Predicate":
        return Predicate(
            lambda v: self(v) and bool(other(v)),
            f"({self.description} and {describe_predicate(other)})",
        )

    def __or__(self, other: Callable[[Any], bool]) -> "Predicate":
        return Predicate(
            lambda v: self(v) or bool(other(v)),
            f"({self.description} or {describe_predicate(other)})",
        )

    def __invert__(self) -> "Predicate":
        return Predicate(lambda v: not self(v), f"not {self.description}")


def describe_predicate(predicate: Callable[[Any], bool]) -> str:
    """Best-effort description of an arbitrary predicate callable."""
    description = getattr(predicate, "description", None)
    if isinstance(description, str):
        return description
    name = getattr(predicate, "__name__", None)
    if name and name != "<lambda>":
        return f"a value satisfying {name}"
    return f"a value satisfying {predicate!r}"


def satisfies(fn: Callable[[Any], bool], description: str) -> Predicate:
    return Predicate(fn, description)


def equal_to(expected: Any) -> Predicate:
    return Predicate(lambda v: v == expected, f"a value equal to {expected!r}")


def is_not_none() -> Predicate:
    return Predicate(lambda v: v is not None, "a value that is not None")


def greater_than(bound: Any) -> Predicate:
    return Predicate(lambda v: v is not None and v > bound, f"a value greater than {bound!r}")


def at_least(bound: Any) -> Predicate:
    return Predicate(lambda v: v is not None and v >= bound, f"a value of at least {bound!r}")


def contains(item: Any) -> Predicate:
    return Predicate(lambda v: v is not None and item in v, f"a value containing {item!r}")


__all__ = [
    "Predicate",
    "at_least",
    "contains",
    "describe_predicate",
    "equal_to",
    "greater_than",
    "is_not_none",
    "satisfies",
]
