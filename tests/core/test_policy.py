import math

import pytest
from pydantic import ValidationError

from deferred.config.settings import EnsureSettings
from deferred.core.outcome import OutcomeKind
from deferred.core.policy import (
    DEFAULT_MAX_WAIT,
    DEFAULT_POLL_INTERVAL,
    ExponentialBackoff,
    FixedInterval,
    RetryPolicy,
)


class TestBackoff:
    """Tests for poll interval strategies."""

    def test_fixed_interval(self):
        backoff = FixedInterval(0.5)
        assert [backoff(n) for n in (1, 2, 10)] == [0.5, 0.5, 0.5]

    def test_fixed_interval_must_be_positive(self):
        with pytest.raises(ValueError):
            FixedInterval(0)

    def test_exponential_doubles(self):
        backoff = ExponentialBackoff(initial=0.01)
        assert [backoff(n) for n in (1, 2, 3, 4)] == pytest.approx([0.01, 0.02, 0.04, 0.08])

    def test_exponential_is_capped(self):
        backoff = ExponentialBackoff(initial=1.0, multiplier=3.0, max_interval=5.0)
        assert [backoff(n) for n in (1, 2, 3, 4)] == [1.0, 3.0, 5.0, 5.0]

    def test_exponential_never_decreases(self):
        backoff = ExponentialBackoff(initial=0.1, multiplier=1.5, max_interval=2.0)
        delays = [backoff(n) for n in range(1, 20)]
        assert delays == sorted(delays)

    def test_capped_backoff_late_attempts(self):
        """Test that a capped backoff stays at the cap however many attempts were made."""
        backoff = ExponentialBackoff(initial=0.01, max_interval=1.0)
        assert backoff(5000) == 1.0
        assert backoff(10**9) == 1.0
        delays = [backoff(n) for n in range(1, 2000, 7)]
        assert delays == sorted(delays)

    def test_uncapped_backoff_saturates_to_infinity(self):
        """Test that an uncapped backoff grows without raising once floats run out."""
        backoff = ExponentialBackoff(initial=0.01)
        assert backoff(5000) == math.inf
        assert ExponentialBackoff(initial=1, multiplier=3)(5000) == math.inf
        assert RetryPolicy(poll_interval=backoff).interval_for(5000) == math.inf

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"initial": 0},
            {"initial": 1.0, "multiplier": 0.5},
            {"initial": 1.0, "max_interval": 0.5},
        ],
    )
    def test_exponential_validation(self, kwargs):
        with pytest.raises(ValueError):
            ExponentialBackoff(**kwargs)


class TestRetryPolicy:
    """Tests for RetryPolicy configuration."""

    def test_defaults(self):
        """Test the named defaults: 60s wait, short fixed interval, retryable only."""
        policy = RetryPolicy()
        assert policy.max_wait == DEFAULT_MAX_WAIT == 60.0
        assert policy.poll_interval == DEFAULT_POLL_INTERVAL
        assert policy.retry_on == frozenset({OutcomeKind.RETRYABLE})

    def test_negative_max_wait_rejected(self):
        with pytest.raises(ValueError, match="max_wait"):
            RetryPolicy(max_wait=-1)

    def test_non_positive_interval_rejected(self):
        with pytest.raises(ValueError, match="poll_interval"):
            RetryPolicy(max_wait=1.0, poll_interval=0)

    def test_zero_interval_allowed_without_waiting(self):
        assert RetryPolicy(max_wait=0, poll_interval=0).max_wait == 0

    def test_invalid_interval_type_rejected(self):
        with pytest.raises(TypeError):
            RetryPolicy(poll_interval="fast")  # type: ignore[arg-type]

    def test_success_cannot_be_retried(self):
        with pytest.raises(ValueError, match="SUCCESS"):
            RetryPolicy(retry_on={OutcomeKind.SUCCESS})

    def test_retry_on_is_frozen(self):
        policy = RetryPolicy(retry_on={OutcomeKind.RETRYABLE, OutcomeKind.TERMINAL})
        assert isinstance(policy.retry_on, frozenset)
        assert policy.should_retry(OutcomeKind.TERMINAL)

    def test_interval_for_fixed_and_backoff(self):
        assert RetryPolicy(poll_interval=0.1).interval_for(7) == 0.1
        policy = RetryPolicy(poll_interval=ExponentialBackoff(initial=0.5))
        assert policy.interval_for(3) == 2.0

    def test_backoff_returning_zero_is_rejected(self):
        policy = RetryPolicy(poll_interval=lambda attempt: 0)
        with pytest.raises(ValueError, match="non-positive"):
            policy.interval_for(1)

    def test_replace(self):
        policy = RetryPolicy(max_wait=5.0)
        shorter = policy.replace(max_wait=1.0)
        assert shorter.max_wait == 1.0
        assert policy.max_wait == 5.0
        assert shorter.poll_interval == policy.poll_interval

    def test_factories(self):
        assert RetryPolicy.no_retry().max_wait == 0
        within = RetryPolicy.within(3.0, poll_interval=0.5)
        assert (within.max_wait, within.poll_interval) == (3.0, 0.5)

    def test_policies_are_immutable(self):
        with pytest.raises(AttributeError):
            RetryPolicy().max_wait = 1  # type: ignore[misc]


class TestRetryPolicyFromSettings:
    """Tests for building policies from configuration."""

    def test_fixed_settings(self):
        policy = RetryPolicy.from_settings(EnsureSettings(max_wait_seconds=10, poll_interval_seconds=0.5))
        assert policy.max_wait == 10
        assert policy.poll_interval == 0.5
        assert policy.retry_on == frozenset({OutcomeKind.RETRYABLE})

    def test_exponential_settings(self):
        settings = EnsureSettings(
            poll_interval_seconds=0.1,
            backoff="exponential",
            backoff_multiplier=3,
            max_poll_interval_seconds=1.0,
        )
        policy = RetryPolicy.from_settings(settings)
        assert policy.poll_interval == ExponentialBackoff(initial=0.1, multiplier=3.0, max_interval=1.0)

    def test_retry_terminal_setting(self):
        policy = RetryPolicy.from_settings(EnsureSettings(retry_terminal=True))
        assert policy.retry_on == frozenset({OutcomeKind.RETRYABLE, OutcomeKind.TERMINAL})

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("DEFERRED_MAX_WAIT", "5")
        monkeypatch.setenv("DEFERRED_POLL_INTERVAL", "0.05")
        policy = RetryPolicy.from_environment()
        assert policy.max_wait == 5.0
        assert policy.poll_interval == 0.05

    def test_from_environment_defaults(self):
        policy = RetryPolicy.from_environment()
        assert policy == RetryPolicy()

    def test_from_environment_invalid_value(self, monkeypatch):
        monkeypatch.setenv("DEFERRED_MAX_WAIT", "-3")
        with pytest.raises(ValidationError):
            RetryPolicy.from_environment()
