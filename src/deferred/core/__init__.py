from .ensure import (
    EnsureResult,
    as_source,
    ensure,
    ensure_async,
    ensure_result,
    ensure_result_async,
    ensured,
)
from .errors import (
    DeadlineExceededError,
    DeferredError,
    EnsureFailedError,
    EventuallyAssertionError,
    PermanentlyUnavailableError,
    PredicateMismatchError,
    TemporarilyUnavailableError,
)
from .eventually import assert_eventually, assert_eventually_async
from .invocation import Invocation, invoking
from .outcome import OutcomeKind, ResolutionOutcome, classify_exception
from .policy import (
    DEFAULT_MAX_WAIT,
    DEFAULT_POLL_INTERVAL,
    ExponentialBackoff,
    FixedInterval,
    RetryPolicy,
)
from .predicates import (
    Predicate,
    at_least,
    contains,
    describe_predicate,
    equal_to,
    greater_than,
    is_not_none,
    satisfies,
)
from .sources import (
    AccessorSource,
    DeferredAttribute,
    DeferredSource,
    DependentInvocation,
    DirectValue,
    NullSentinel,
    PredicateMatch,
    deferred,
    deferred_from,
    deferred_null,
    resolve,
)

__all__ = [
    "DEFAULT_MAX_WAIT",
    "DEFAULT_POLL_INTERVAL",
    "AccessorSource",
    "DeadlineExceededError",
    "DeferredAttribute",
    "DeferredError",
    "DeferredSource",
    "DependentInvocation",
    "DirectValue",
    "EnsureFailedError",
    "EnsureResult",
    "EventuallyAssertionError",
    "ExponentialBackoff",
    "FixedInterval",
    "Invocation",
    "NullSentinel",
    "OutcomeKind",
    "PermanentlyUnavailableError",
    "Predicate",
    "PredicateMatch",
    "PredicateMismatchError",
    "ResolutionOutcome",
    "RetryPolicy",
    "TemporarilyUnavailableError",
    "as_source",
    "assert_eventually",
    "assert_eventually_async",
    "at_least",
    "classify_exception",
    "contains",
    "deferred",
    "deferred_from",
    "deferred_null",
    "describe_predicate",
    "ensure",
    "ensure_async",
    "ensure_result",
    "ensure_result_async",
    "ensured",
    "equal_to",
    "greater_than",
    "invoking",
    "is_not_none",
    "resolve",
    "satisfies",
]
