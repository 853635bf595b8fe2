"""
Tests for the recovery policy, retry loop and circuit breaker.

Run with:
    pytest pipeline/tests/test_retry_policy.py -v
"""

import asyncio

import pytest

from pipeline.core.exceptions import (
    CircuitOpenError,
    ErrorKind,
    MailClientError,
    PipelineExecutionError,
    RetryExhaustedError,
)
from pipeline.core.retry import (
    CircuitBreaker,
    CircuitState,
    RecoveryStrategy,
    backoff_delay,
    classify_error,
    recovery_for,
    retry_async,
    should_retry,
)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class FlakyOperation:
    """Fails with the queued errors, then returns 'ok'."""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "ok"


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def record_sleep(sleeps):
    async def _sleep(delay):
        sleeps.append(delay)
    return _sleep


# ===================================================================
# PURE POLICY
# ===================================================================

@pytest.mark.unit
@pytest.mark.parametrize("kind,strategy", [
    (ErrorKind.PERMISSION_DENIED, RecoveryStrategy.FAIL_FAST),
    (ErrorKind.NOT_FOUND, RecoveryStrategy.FAIL_FAST),
    (ErrorKind.NETWORK, RecoveryStrategy.RETRY),
    (ErrorKind.TIMEOUT, RecoveryStrategy.RETRY),
    (ErrorKind.QUOTA, RecoveryStrategy.RETRY),
    (ErrorKind.INTERNAL, RecoveryStrategy.RETRY),
    (ErrorKind.API_UNAVAILABLE, RecoveryStrategy.RETRY),
    (ErrorKind.CONFIGURATION, RecoveryStrategy.RESET_DEFAULTS),
    (ErrorKind.PARSING, RecoveryStrategy.DEGRADE),
])
def test_recovery_lookup(kind, strategy):
    assert recovery_for(kind) is strategy


@pytest.mark.unit
def test_should_retry_respects_bound():
    assert should_retry(ErrorKind.NETWORK, 1, 3)
    assert should_retry(ErrorKind.NETWORK, 2, 3)
    assert not should_retry(ErrorKind.NETWORK, 3, 3)
    assert not should_retry(ErrorKind.PERMISSION_DENIED, 1, 3)


@pytest.mark.unit
def test_backoff_is_exponential_and_capped():
    no_jitter = lambda: 0.0  # noqa: E731
    assert backoff_delay(1, 0.5, 10.0, no_jitter) == 0.5
    assert backoff_delay(2, 0.5, 10.0, no_jitter) == 1.0
    assert backoff_delay(3, 0.5, 10.0, no_jitter) == 2.0
    assert backoff_delay(10, 0.5, 10.0, no_jitter) == 10.0


@pytest.mark.unit
def test_backoff_jitter_is_at_most_ten_percent():
    assert backoff_delay(2, 1.0, 100.0, lambda: 1.0) == pytest.approx(2.2)


@pytest.mark.unit
@pytest.mark.parametrize("error,kind", [
    (asyncio.TimeoutError(), ErrorKind.TIMEOUT),
    (ConnectionResetError(), ErrorKind.NETWORK),
    (PermissionError(), ErrorKind.PERMISSION_DENIED),
    (ValueError("boom"), ErrorKind.UNKNOWN),
    (MailClientError("quota", kind=ErrorKind.QUOTA), ErrorKind.QUOTA),
])
def test_classify_error(error, kind):
    assert classify_error(error) is kind


# ===================================================================
# RETRY LOOP
# ===================================================================

@pytest.mark.asyncio
async def test_transient_failures_are_retried(sleeps, record_sleep):
    operation = FlakyOperation(
        MailClientError("net", kind=ErrorKind.NETWORK),
        MailClientError("internal", kind=ErrorKind.INTERNAL),
    )
    result = await retry_async(operation, "get_body", max_attempts=3, base_delay=0.1, sleep=record_sleep)

    assert result == "ok"
    assert operation.calls == 3
    assert len(sleeps) == 2
    assert sleeps[0] < sleeps[1]


@pytest.mark.asyncio
async def test_permission_failures_fail_fast(sleeps, record_sleep):
    operation = FlakyOperation(MailClientError("denied", kind=ErrorKind.PERMISSION_DENIED))

    with pytest.raises(MailClientError) as exc_info:
        await retry_async(operation, "get_body", sleep=record_sleep)

    assert exc_info.value.kind is ErrorKind.PERMISSION_DENIED
    assert operation.calls == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_builtin_permission_error_is_wrapped(record_sleep):
    operation = FlakyOperation(PermissionError("no access"))

    with pytest.raises(PipelineExecutionError) as exc_info:
        await retry_async(operation, "get_recipients", sleep=record_sleep)

    assert exc_info.value.kind is ErrorKind.PERMISSION_DENIED
    assert operation.calls == 1


@pytest.mark.asyncio
async def test_retries_exhausted(record_sleep):
    operation = FlakyOperation(*[ConnectionError("down")] * 5)

    with pytest.raises(RetryExhaustedError) as exc_info:
        await retry_async(operation, "get_body", max_attempts=3, sleep=record_sleep)

    assert operation.calls == 3
    assert exc_info.value.attempts == 3
    assert isinstance(exc_info.value.original_error, ConnectionError)
    assert exc_info.value.kind is ErrorKind.RETRIES_EXHAUSTED


@pytest.mark.asyncio
async def test_per_attempt_timeout(record_sleep):
    calls = 0

    async def slow():
        nonlocal calls
        calls += 1
        if calls == 1:
            await asyncio.sleep(1)
        return "ok"

    result = await retry_async(slow, "get_body", timeout=0.01, sleep=record_sleep)
    assert result == "ok"
    assert calls == 2


# ===================================================================
# CIRCUIT BREAKER
# ===================================================================

@pytest.mark.unit
def test_circuit_opens_after_threshold():
    clock = FakeClock()
    breaker = CircuitBreaker(threshold=3, cooldown=30.0, clock=clock)

    for _ in range(2):
        breaker.record_failure()
    assert breaker.state is CircuitState.CLOSED

    breaker.record_failure()
    assert breaker.state is CircuitState.OPEN
    assert not breaker.allow_request()


@pytest.mark.unit
def test_circuit_half_opens_after_cooldown():
    clock = FakeClock()
    breaker = CircuitBreaker(threshold=1, cooldown=30.0, clock=clock)
    breaker.record_failure()

    clock.now = 29.9
    assert breaker.state is CircuitState.OPEN

    clock.now = 30.0
    assert breaker.state is CircuitState.HALF_OPEN
    assert breaker.allow_request()

    breaker.record_failure()
    assert breaker.state is CircuitState.OPEN

    clock.now = 61.0
    breaker.record_success()
    assert breaker.state is CircuitState.CLOSED
    assert breaker.consecutive_failures == 0


@pytest.mark.unit
def test_success_resets_failure_count():
    breaker = CircuitBreaker(threshold=3)
    breaker.record_failure()
    breaker.record_failure()
    breaker.record_success()
    breaker.record_failure()
    assert breaker.state is CircuitState.CLOSED


@pytest.mark.asyncio
async def test_open_circuit_skips_operation(record_sleep):
    breaker = CircuitBreaker(threshold=1, clock=FakeClock())
    failing = FlakyOperation(MailClientError("denied", kind=ErrorKind.PERMISSION_DENIED))

    with pytest.raises(MailClientError):
        await retry_async(failing, "get_body", circuit_breaker=breaker, sleep=record_sleep)

    operation = FlakyOperation()
    with pytest.raises(CircuitOpenError):
        await retry_async(operation, "get_body", circuit_breaker=breaker, sleep=record_sleep)
    assert operation.calls == 0
