"""Unit tests for the rate-limit retry policy."""

import pytest

from lemstudio.core.model_adapters import GenerationResult, ImagePayload, OutcomeKind
from lemstudio.core.retry import RetryPolicy

RATE_LIMITED = GenerationResult.failure(OutcomeKind.RATE_LIMITED, "429 RESOURCE_EXHAUSTED", 429)
SUCCESS = GenerationResult.success(ImagePayload(b"img", mime_type="image/png"))


class ScriptedOperation:
    """Zero-argument coroutine function returning scripted results."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if len(self.results) > 1:
            return self.results.pop(0)
        return self.results[0]


class TestRetryPolicyConstruction:
    def test_defaults(self):
        policy = RetryPolicy()
        assert policy.max_retries == 3
        assert policy.initial_delay_ms == 2000

    def test_from_config(self, test_config):
        policy = RetryPolicy.from_config(test_config)
        assert policy.max_retries == test_config.max_retries
        assert policy.initial_delay_ms == test_config.initial_retry_delay_ms

    def test_negative_values_rejected(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_retries=-1)
        with pytest.raises(ValueError):
            RetryPolicy(initial_delay_ms=-5)

    def test_delay_doubles(self):
        policy = RetryPolicy(initial_delay_ms=2000)
        assert [policy.delay_ms(i) for i in range(3)] == [2000, 4000, 8000]


class TestRetryPolicyExecute:
    @pytest.mark.asyncio
    async def test_success_returns_immediately(self, recording_sleep):
        operation = ScriptedOperation(SUCCESS)
        result = await RetryPolicy(sleep=recording_sleep).execute(operation)
        assert result is SUCCESS
        assert operation.calls == 1
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_recovers_after_two_rate_limits(self, recording_sleep):
        """Two 429s then success: three calls, waits of 2 s and 4 s."""
        operation = ScriptedOperation(RATE_LIMITED, RATE_LIMITED, SUCCESS)
        result = await RetryPolicy(sleep=recording_sleep).execute(operation)
        assert result.ok
        assert operation.calls == 3
        assert recording_sleep.delays == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_budget_exhausted(self, recording_sleep):
        """A persistent rate limit is tried max_retries + 1 times."""
        operation = ScriptedOperation(RATE_LIMITED)
        result = await RetryPolicy(max_retries=3, sleep=recording_sleep).execute(operation)
        assert result.outcome is OutcomeKind.RATE_LIMITED
        assert operation.calls == 4
        assert recording_sleep.delays == [2.0, 4.0, 8.0]

    @pytest.mark.asyncio
    async def test_zero_retries(self, recording_sleep):
        operation = ScriptedOperation(RATE_LIMITED)
        result = await RetryPolicy(max_retries=0, sleep=recording_sleep).execute(operation)
        assert result.outcome is OutcomeKind.RATE_LIMITED
        assert operation.calls == 1
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "outcome", [OutcomeKind.UNAUTHORIZED, OutcomeKind.NOT_FOUND, OutcomeKind.FAILED]
    )
    async def test_other_failures_not_retried(self, recording_sleep, outcome):
        failure = GenerationResult.failure(outcome, "boom")
        operation = ScriptedOperation(failure)
        result = await RetryPolicy(sleep=recording_sleep).execute(operation)
        assert result is failure
        assert operation.calls == 1
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_rate_limit_then_hard_failure(self, recording_sleep):
        failure = GenerationResult.failure(OutcomeKind.FAILED, "server error", 500)
        operation = ScriptedOperation(RATE_LIMITED, failure)
        result = await RetryPolicy(sleep=recording_sleep).execute(operation)
        assert result is failure
        assert operation.calls == 2
        assert recording_sleep.delays == [2.0]
