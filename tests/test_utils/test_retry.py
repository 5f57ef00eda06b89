"""Tests for the retry helper."""

import pytest

from src.domain.errors import ConcurrencyError
from src.utils.retry import RetryPolicy, with_retry


class TestRetryPolicy:
    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)

    def test_delay_doubles_per_attempt(self):
        policy = RetryPolicy(base_delay=1.0, max_delay=30.0)
        assert [policy.delay_for(i) for i in (1, 2, 3)] == [1.0, 2.0, 4.0]

    def test_delay_capped(self):
        policy = RetryPolicy(base_delay=10.0, max_delay=15.0)
        assert policy.delay_for(5) == 15.0

    def test_jitter_bounds(self):
        policy = RetryPolicy(base_delay=1.0, jitter=0.5)
        for _ in range(20):
            assert 1.0 <= policy.delay_for(1) <= 1.5


class TestWithRetry:
    async def test_conflict_retried_once_then_succeeds(self):
        calls = []

        async def write(key, value=None):
            calls.append((key, value))
            if len(calls) == 1:
                raise ConcurrencyError(key)
            return value

        result = await with_retry(
            write, "k1", value=7, max_attempts=2, base_delay=0,
            exceptions=(ConcurrencyError,),
        )

        assert result == 7
        assert calls == [("k1", 7), ("k1", 7)]

    async def test_gives_up_after_max_attempts(self):
        attempts = []

        async def always_conflicts():
            attempts.append(1)
            raise ConcurrencyError("k1")

        with pytest.raises(ConcurrencyError):
            await with_retry(
                always_conflicts, max_attempts=2, base_delay=0,
                exceptions=(ConcurrencyError,),
            )
        assert len(attempts) == 2

    async def test_other_exceptions_not_retried(self):
        attempts = []

        async def wrong_type():
            attempts.append(1)
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            await with_retry(wrong_type, max_attempts=3, base_delay=0)
        assert len(attempts) == 1

    async def test_explicit_policy_wins(self):
        attempts = []

        async def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise ConnectionError("reset")
            return "ok"

        result = await with_retry(
            flaky, max_attempts=1, policy=RetryPolicy(max_attempts=3, base_delay=0)
        )

        assert result == "ok"
        assert len(attempts) == 3
