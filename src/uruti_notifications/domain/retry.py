"""
Uruti Notifications - Retry with Backoff.

Explicit retry state machine used by channel adapters whose transport can
fail transiently. Delays are awaited through an injectable sleep so that a
retrying send suspends only its own task.

    idle -> attempting(n) -> succeeded
                          -> delaying(n) -> attempting(n+1) -> ...
                          -> failed
"""
from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from enum import Enum
from typing import Generic, TypeVar

import structlog
from pydantic import BaseModel, Field

logger = structlog.get_logger(__name__)

T = TypeVar("T")
SleepFunc = Callable[[float], Awaitable[None]]


class DeliveryState(str, Enum):
    """Retry execution states."""
    IDLE = "idle"
    ATTEMPTING = "attempting"
    DELAYING = "delaying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_TRANSITIONS: dict[DeliveryState, frozenset[DeliveryState]] = {
    DeliveryState.IDLE: frozenset({DeliveryState.ATTEMPTING}),
    DeliveryState.ATTEMPTING: frozenset(
        {DeliveryState.SUCCEEDED, DeliveryState.DELAYING, DeliveryState.FAILED}
    ),
    DeliveryState.DELAYING: frozenset({DeliveryState.ATTEMPTING}),
    DeliveryState.SUCCEEDED: frozenset(),
    DeliveryState.FAILED: frozenset(),
}


class BackoffPolicy(BaseModel):
    """Exponential backoff: ``base * multiplier ** (attempt - 1)``, capped."""
    max_attempts: int = Field(default=3, ge=1, le=10)
    base_delay_seconds: float = Field(default=1.0, ge=0.0)
    multiplier: float = Field(default=2.0, ge=1.0)
    max_delay_seconds: float = Field(default=30.0, ge=0.0)

    model_config = {"frozen": True}

    def delay_after(self, attempt_number: int) -> float:
        """Delay to wait after the given (1-based) failed attempt."""
        delay = self.base_delay_seconds * self.multiplier ** (attempt_number - 1)
        return min(delay, self.max_delay_seconds)

    def schedule(self) -> list[float]:
        """All delays between attempts, in order."""
        return [self.delay_after(n) for n in range(1, self.max_attempts)]


class DeliveryAttempt(BaseModel):
    """Record of a single attempt."""
    attempt_number: int = Field(..., ge=1)
    success: bool
    message_id: str | None = None
    error_message: str | None = None
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    next_delay_seconds: float | None = None


class RetryExecution(Generic[T]):
    """
    One bounded retry run for a single send.

    Args:
        policy: Backoff policy
        sleep: Awaitable sleep; defaults to ``asyncio.sleep``
        is_permanent: Predicate marking errors that must not be retried
    """

    def __init__(
        self,
        policy: BackoffPolicy,
        sleep: SleepFunc | None = None,
        is_permanent: Callable[[BaseException], bool] | None = None,
    ) -> None:
        self._policy = policy
        self._sleep = sleep or asyncio.sleep
        self._is_permanent = is_permanent or (lambda _: False)
        self._state = DeliveryState.IDLE
        self._attempt = 0
        self._attempts: list[DeliveryAttempt] = []
        self._last_error: BaseException | None = None

    @property
    def state(self) -> DeliveryState:
        return self._state

    @property
    def attempts(self) -> list[DeliveryAttempt]:
        return list(self._attempts)

    @property
    def last_error(self) -> BaseException | None:
        return self._last_error

    def _transition(self, target: DeliveryState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise RuntimeError(f"Illegal retry transition {self._state.value} -> {target.value}")
        self._state = target

    async def run(self, operation: Callable[[int], Awaitable[T]], describe: Callable[[T], str | None] | None = None) -> T | None:
        """
        Drive ``operation`` until it succeeds or the budget is exhausted.

        ``operation`` receives the 1-based attempt number. Returns the
        successful result, or None once the execution has failed; the last
        error is then available as :attr:`last_error`.
        """
        while True:
            self._transition(DeliveryState.ATTEMPTING)
            self._attempt += 1
            try:
                result = await operation(self._attempt)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._last_error = e
                permanent = self._is_permanent(e)
                exhausted = self._attempt >= self._policy.max_attempts
                delay = None if permanent or exhausted else self._policy.delay_after(self._attempt)
                self._attempts.append(DeliveryAttempt(
                    attempt_number=self._attempt,
                    success=False,
                    error_message=str(e),
                    next_delay_seconds=delay,
                ))
                logger.warning(
                    "delivery_attempt_failed",
                    attempt=self._attempt,
                    max_attempts=self._policy.max_attempts,
                    permanent=permanent,
                    retry_in_seconds=delay,
                    error=str(e),
                )
                if delay is None:
                    self._transition(DeliveryState.FAILED)
                    return None
                self._transition(DeliveryState.DELAYING)
                await self._sleep(delay)
                continue
            self._attempts.append(DeliveryAttempt(
                attempt_number=self._attempt,
                success=True,
                message_id=describe(result) if describe else None,
            ))
            self._transition(DeliveryState.SUCCEEDED)
            return result
