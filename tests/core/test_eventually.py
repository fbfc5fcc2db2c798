import itertools

import pytest

from deferred.core.errors import (
    EventuallyAssertionError,
    PermanentlyUnavailableError,
    PredicateMismatchError,
    TemporarilyUnavailableError,
)
from deferred.core.eventually import assert_eventually
from deferred.core.policy import RetryPolicy
from deferred.core.predicates import equal_to, greater_than
from deferred.core.sources import deferred, deferred_from, deferred_null


def scripted(*steps):
    """Accessor returning values, or raising exceptions, in order; repeats the last step."""
    calls = itertools.count()

    def accessor():
        step = steps[min(next(calls), len(steps) - 1)]
        if isinstance(step, BaseException):
            raise step
        return step

    return accessor


POLICY = RetryPolicy(max_wait=1.0, poll_interval=0.25)


class TestAssertEventually:
    """Tests for assert_eventually."""

    def test_returns_matching_value(self, fake_clock):
        value = assert_eventually(
            scripted(1, 2, 3),
            equal_to(3),
            POLICY,
            clock=fake_clock,
            sleep=fake_clock.sleep,
        )
        assert value == 3
        assert fake_clock.sleeps == [0.25, 0.25]

    def test_counter_reaches_three_in_four_attempts(self, fake_clock):
        counter = itertools.count()
        attempts = []
        value = assert_eventually(
            deferred_from(lambda: next(counter)),
            lambda v: v == 3,
            RetryPolicy(max_wait=10, poll_interval=0.125),
            on_attempt=lambda n, o: attempts.append(n),
            clock=fake_clock,
            sleep=fake_clock.sleep,
        )
        assert value == 3
        assert attempts == [1, 2, 3, 4]

    def test_wrong_value_is_reported(self, fake_clock):
        """Test that a resource that appeared with the wrong value is diagnosable."""
        with pytest.raises(EventuallyAssertionError) as exc_info:
            assert_eventually(deferred(2), greater_than(5), POLICY, clock=fake_clock, sleep=fake_clock.sleep)

        error = exc_info.value
        assert isinstance(error, AssertionError)
        assert error.has_value
        assert error.last_value == 2
        assert error.description == "a value greater than 5"
        assert error.attempts == 5
        assert error.elapsed == 1.0
        assert isinstance(error.last_cause, PredicateMismatchError)
        assert error.__cause__ is error.last_cause

        message = str(error)
        assert "Expected a value greater than 5" in message
        assert "last value: 2" in message
        assert "attempts:   5" in message
        assert "elapsed:    1.000s" in message

    def test_never_resolved_is_reported(self, fake_clock):
        """Test that a resource that never appeared is told apart from a wrong value."""
        with pytest.raises(EventuallyAssertionError) as exc_info:
            assert_eventually(
                scripted(TemporarilyUnavailableError("not registered")),
                equal_to(1),
                POLICY,
                clock=fake_clock,
                sleep=fake_clock.sleep,
            )

        error = exc_info.value
        assert not error.has_value
        assert error.last_value is None
        assert "<never resolved>" in str(error)
        assert "not registered" in str(error)

    def test_last_value_survives_later_unavailability(self, fake_clock):
        """Test that the last observed value is kept when the resource disappears again."""
        with pytest.raises(EventuallyAssertionError) as exc_info:
            assert_eventually(
                scripted(1, 2, TemporarilyUnavailableError("restarting")),
                equal_to(3),
                POLICY,
                clock=fake_clock,
                sleep=fake_clock.sleep,
            )

        error = exc_info.value
        assert error.has_value
        assert error.last_value == 2
        assert isinstance(error.last_cause, TemporarilyUnavailableError)
        assert not isinstance(error.last_cause, PredicateMismatchError)

    def test_terminal_fails_immediately(self, fake_clock):
        with pytest.raises(EventuallyAssertionError) as exc_info:
            assert_eventually(
                scripted(PermanentlyUnavailableError("fenced")),
                equal_to(1),
                RetryPolicy(max_wait=60),
                clock=fake_clock,
                sleep=fake_clock.sleep,
            )
        assert exc_info.value.attempts == 1
        assert exc_info.value.elapsed == 0
        assert fake_clock.sleeps == []

    def test_explicit_description(self, fake_clock):
        with pytest.raises(EventuallyAssertionError, match="Expected the cluster to be healthy"):
            assert_eventually(
                deferred("DEGRADED"),
                lambda status: status == "HEALTHY",
                RetryPolicy.no_retry(),
                description="the cluster to be healthy",
                clock=fake_clock,
                sleep=fake_clock.sleep,
            )

    def test_null_sentinel_value_is_observed(self, fake_clock):
        """Test that a resolved None counts as an observed value."""
        with pytest.raises(EventuallyAssertionError) as exc_info:
            assert_eventually(
                deferred_null(int),
                equal_to(0),
                RetryPolicy.no_retry(),
                clock=fake_clock,
                sleep=fake_clock.sleep,
            )
        assert exc_info.value.has_value
        assert "last value: None" in str(exc_info.value)

    def test_inner_mismatch_is_not_mistaken_for_observed_value(self, fake_clock):
        """Test that only values rejected by the asserted predicate are reported."""
        inner = deferred(1).matching(equal_to(2))
        with pytest.raises(EventuallyAssertionError) as exc_info:
            assert_eventually(inner, equal_to(1), RetryPolicy.no_retry(), clock=fake_clock, sleep=fake_clock.sleep)
        assert not exc_info.value.has_value

    def test_passes_with_real_clock(self):
        counter = itertools.count()
        assert assert_eventually(lambda: next(counter), equal_to(3), RetryPolicy(max_wait=5, poll_interval=0.01)) == 3
