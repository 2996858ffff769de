"""
Unit tests for the retry state machine.
"""
import pytest

from uruti_notifications.domain.retry import BackoffPolicy, DeliveryState, RetryExecution

from conftest import SleepRecorder


class TestBackoffPolicy:
    """Tests for BackoffPolicy."""

    def test_defaults(self):
        """Test default policy values."""
        policy = BackoffPolicy()
        assert policy.max_attempts == 3
        assert policy.base_delay_seconds == 1.0
        assert policy.multiplier == 2.0

    def test_exponential_delays(self):
        """Test delays double per attempt."""
        policy = BackoffPolicy(max_attempts=4)
        assert [policy.delay_after(n) for n in (1, 2, 3)] == [1.0, 2.0, 4.0]
        assert policy.schedule() == [1.0, 2.0, 4.0]

    def test_delay_capped(self):
        """Test delays never exceed the cap."""
        policy = BackoffPolicy(max_attempts=10, max_delay_seconds=5.0)
        assert policy.delay_after(8) == 5.0

    def test_invalid_attempts_rejected(self):
        """Test at least one attempt is required."""
        with pytest.raises(ValueError):
            BackoffPolicy(max_attempts=0)


class TestRetryExecution:
    """Tests for RetryExecution."""

    @pytest.mark.asyncio
    async def test_first_attempt_succeeds(self):
        """Test success on the first attempt needs no delay."""
        sleep = SleepRecorder()
        execution = RetryExecution(BackoffPolicy(), sleep=sleep)

        async def op(attempt):
            return f"id-{attempt}"

        assert await execution.run(op) == "id-1"
        assert execution.state is DeliveryState.SUCCEEDED
        assert sleep.delays == []
        assert len(execution.attempts) == 1

    @pytest.mark.asyncio
    async def test_always_failing_exhausts_budget(self):
        """Test exactly max_attempts attempts with growing delays between them."""
        sleep = SleepRecorder()
        execution = RetryExecution(BackoffPolicy(), sleep=sleep)
        calls = []

        async def op(attempt):
            calls.append(attempt)
            raise ConnectionError(f"down {attempt}")

        assert await execution.run(op) is None
        assert calls == [1, 2, 3]
        assert sleep.delays == [1.0, 2.0]
        assert execution.state is DeliveryState.FAILED
        assert str(execution.last_error) == "down 3"
        assert [a.next_delay_seconds for a in execution.attempts] == [1.0, 2.0, None]

    @pytest.mark.asyncio
    async def test_succeeds_on_third_attempt(self):
        """Test recovery after two failures returns the third result."""
        sleep = SleepRecorder()
        execution = RetryExecution(BackoffPolicy(), sleep=sleep)

        async def op(attempt):
            if attempt < 3:
                raise TimeoutError("slow")
            return "third"

        result = await execution.run(op, describe=lambda r: r)
        assert result == "third"
        assert sleep.delays == [1.0, 2.0]
        assert [a.success for a in execution.attempts] == [False, False, True]
        assert execution.attempts[-1].message_id == "third"

    @pytest.mark.asyncio
    async def test_permanent_error_stops_immediately(self):
        """Test a permanent error is not retried."""
        sleep = SleepRecorder()
        execution = RetryExecution(BackoffPolicy(), sleep=sleep, is_permanent=lambda e: isinstance(e, ValueError))

        async def op(attempt):
            raise ValueError("bad address")

        assert await execution.run(op) is None
        assert len(execution.attempts) == 1
        assert sleep.delays == []
        assert execution.state is DeliveryState.FAILED

    @pytest.mark.asyncio
    async def test_execution_is_single_use(self):
        """Test a finished execution refuses to run again."""
        execution = RetryExecution(BackoffPolicy(), sleep=SleepRecorder())

        async def op(attempt):
            return "ok"

        await execution.run(op)
        with pytest.raises(RuntimeError):
            await execution.run(op)
