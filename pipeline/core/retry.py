"""
Retry policy and circuit breaker for calls into the mail-client adapter.

Recovery is stateless: RECOVERY_POLICY maps an ErrorKind to a strategy and
the attempt count is threaded by the caller. The only state that survives
between calls is the CircuitBreaker's consecutive failure counter.
"""

import asyncio
import random
import time
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional, TypeVar

import logfire

from pipeline.core.exceptions import (
    CircuitOpenError,
    ErrorKind,
    PipelineExecutionError,
    RetryExhaustedError,
)

T = TypeVar("T")

# Defaults, overridden per call from ValidationConfig
MAX_RETRIES = 3
RETRY_BASE_DELAY_SECONDS = 0.5
RETRY_MAX_DELAY_SECONDS = 10.0
JITTER_RATIO = 0.1


class RecoveryStrategy(str, Enum):
    FAIL_FAST = "fail_fast"
    RETRY = "retry"
    RESET_DEFAULTS = "reset_defaults"
    DEGRADE = "degrade"


RECOVERY_POLICY: Dict[ErrorKind, RecoveryStrategy] = {
    ErrorKind.PERMISSION_DENIED: RecoveryStrategy.FAIL_FAST,
    ErrorKind.NOT_FOUND: RecoveryStrategy.FAIL_FAST,
    ErrorKind.NETWORK: RecoveryStrategy.RETRY,
    ErrorKind.TIMEOUT: RecoveryStrategy.RETRY,
    ErrorKind.QUOTA: RecoveryStrategy.RETRY,
    ErrorKind.INTERNAL: RecoveryStrategy.RETRY,
    ErrorKind.API_UNAVAILABLE: RecoveryStrategy.RETRY,
    ErrorKind.UNKNOWN: RecoveryStrategy.RETRY,
    ErrorKind.CONFIGURATION: RecoveryStrategy.RESET_DEFAULTS,
    ErrorKind.VALIDATION: RecoveryStrategy.DEGRADE,
    ErrorKind.PARSING: RecoveryStrategy.DEGRADE,
    ErrorKind.CIRCUIT_OPEN: RecoveryStrategy.DEGRADE,
    ErrorKind.RETRIES_EXHAUSTED: RecoveryStrategy.DEGRADE,
}


def recovery_for(kind: ErrorKind) -> RecoveryStrategy:
    return RECOVERY_POLICY.get(kind, RecoveryStrategy.DEGRADE)


def classify_error(error: BaseException) -> ErrorKind:
    """Map any exception to an ErrorKind."""
    if isinstance(error, PipelineExecutionError):
        return error.kind
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return ErrorKind.TIMEOUT
    if isinstance(error, ConnectionError):
        return ErrorKind.NETWORK
    if isinstance(error, PermissionError):
        return ErrorKind.PERMISSION_DENIED
    return ErrorKind.UNKNOWN


def should_retry(kind: ErrorKind, attempt: int, max_attempts: int) -> bool:
    """
    Decide whether a failed attempt is retried.

    Args:
        kind: Kind of the failure
        attempt: 1-based number of the attempt that just failed
        max_attempts: Upper bound on total attempts
    """
    return recovery_for(kind) is RecoveryStrategy.RETRY and attempt < max_attempts


def backoff_delay(
    attempt: int,
    base: float = RETRY_BASE_DELAY_SECONDS,
    cap: float = RETRY_MAX_DELAY_SECONDS,
    rng: Callable[[], float] = random.random,
) -> float:
    """
    Exponential backoff with up to 10% jitter, capped at `cap` seconds.

    attempt 1 -> base, attempt 2 -> 2*base, attempt 3 -> 4*base, ...
    """
    delay = min(cap, base * (2 ** max(0, attempt - 1)))
    jitter = delay * JITTER_RATIO * rng()
    return min(cap, delay + jitter)


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Consecutive-failure counter shared across validation passes.

    After `threshold` consecutive failed operations the circuit opens and
    calls fail immediately. Once `cooldown` seconds have passed one trial
    call is let through (half-open); its outcome closes or re-opens the circuit.
    """

    def __init__(
        self,
        threshold: int = 5,
        cooldown: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.threshold = threshold
        self.cooldown = cooldown
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._opened_at: Optional[float] = None

    @property
    def state(self) -> CircuitState:
        if (
            self._state is CircuitState.OPEN
            and self._opened_at is not None
            and self._clock() - self._opened_at >= self.cooldown
        ):
            self._state = CircuitState.HALF_OPEN
        return self._state

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    def allow_request(self) -> bool:
        return self.state is not CircuitState.OPEN

    def record_success(self) -> None:
        if self._state is not CircuitState.CLOSED:
            logfire.info("Circuit breaker closed", previous_failures=self._consecutive_failures)
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._opened_at = None

    def record_failure(self) -> None:
        self._consecutive_failures += 1
        half_open = self.state is CircuitState.HALF_OPEN
        if half_open or self._consecutive_failures >= self.threshold:
            if self._state is not CircuitState.OPEN:
                logfire.warning(
                    "Circuit breaker opened",
                    consecutive_failures=self._consecutive_failures,
                    cooldown=self.cooldown,
                )
            self._state = CircuitState.OPEN
            self._opened_at = self._clock()

    def reset(self) -> None:
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._opened_at = None


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    name: str,
    max_attempts: int = MAX_RETRIES,
    base_delay: float = RETRY_BASE_DELAY_SECONDS,
    max_delay: float = RETRY_MAX_DELAY_SECONDS,
    timeout: Optional[float] = None,
    circuit_breaker: Optional[CircuitBreaker] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run an async adapter call with bounded retries and exponential backoff.

    Raises:
        CircuitOpenError: If the breaker is open (operation is not called)
        PipelineExecutionError: Non-retryable failures, as raised or classified
        RetryExhaustedError: Retryable failures that used up every attempt
    """
    if circuit_breaker is not None and not circuit_breaker.allow_request():
        raise CircuitOpenError(context={"operation": name})

    for attempt in range(1, max_attempts + 1):
        try:
            if timeout is not None:
                result = await asyncio.wait_for(operation(), timeout)
            else:
                result = await operation()
            if circuit_breaker is not None:
                circuit_breaker.record_success()
            return result

        except asyncio.CancelledError:
            raise

        except Exception as e:
            kind = classify_error(e)
            error_msg = str(e)

            if should_retry(kind, attempt, max_attempts):
                delay = backoff_delay(attempt, base_delay, max_delay)
                logfire.warning(
                    "Mail client call failed, retrying",
                    operation=name,
                    error=error_msg[:200],
                    error_kind=kind.value,
                    attempt=attempt,
                    max_attempts=max_attempts,
                    retry_delay=delay,
                )
                await sleep(delay)
                continue

            if circuit_breaker is not None:
                circuit_breaker.record_failure()

            if recovery_for(kind) is RecoveryStrategy.RETRY:
                logfire.error(
                    "Mail client call failed after all retries",
                    operation=name,
                    error=error_msg[:200],
                    error_kind=kind.value,
                    attempts=attempt,
                )
                raise RetryExhaustedError(name, attempt, e) from e

            logfire.error(
                "Mail client call failed, not retrying",
                operation=name,
                error=error_msg[:200],
                error_kind=kind.value,
                attempt=attempt,
            )
            if isinstance(e, PipelineExecutionError):
                raise
            raise PipelineExecutionError(
                error_msg or type(e).__name__,
                kind=kind,
                context={"operation": name},
                original_error=e,
            ) from e

    raise RuntimeError("Unreachable: retry loop must return or raise")  # pragma: no cover
