"""
Resilience patterns for the resume refresher.

This module provides two layers of bounded retry:
- Operation-level retry with exponential backoff (using tenacity)
- Process-level retry that tears the browser session down between attempts

Every attempt is reduced to a :class:`RetryAttempt` result; the retry loops
branch on that result instead of catching exceptions themselves.
"""

import asyncio
import time
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from tenacity import AsyncRetrying, RetryCallState, retry_if_result, stop_after_attempt, wait_exponential

from config import RetryConfig
from core.logger import get_structured_logger, bind_context

# Type variables for generic function signatures
T = TypeVar('T')

SleepFn = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class RetryPolicy:
    """Immutable retry settings for one call site (delays in milliseconds)."""

    max_attempts: int = 3
    base_delay_ms: float = 2000
    max_delay_ms: float = 10000
    backoff_multiplier: float = 2
    label: str = "operation"

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    @classmethod
    def for_operation(cls, retry_config: RetryConfig, label: str) -> "RetryPolicy":
        """Operation-level policy for ``label``, honouring per-label overrides."""
        policy = cls(
            max_attempts=retry_config.max_operation_retries,
            base_delay_ms=retry_config.base_delay_ms,
            max_delay_ms=retry_config.max_delay_ms,
            backoff_multiplier=retry_config.backoff_multiplier,
            label=label,
        )
        override = retry_config.overrides.get(label, {})
        return replace(policy, **override) if override else policy

    @classmethod
    def for_process(cls, retry_config: RetryConfig, label: str = "resume_update_process") -> "RetryPolicy":
        return cls(
            max_attempts=retry_config.max_process_retries,
            base_delay_ms=retry_config.base_delay_ms,
            max_delay_ms=retry_config.base_delay_ms,
            backoff_multiplier=1,
            label=label,
        )

    def delay_for(self, attempt: int) -> float:
        """Backoff in milliseconds after the failed ``attempt`` (1-indexed)."""
        return min(self.base_delay_ms * self.backoff_multiplier ** (attempt - 1), self.max_delay_ms)


@dataclass
class RetryAttempt(Generic[T]):
    """Outcome of a single attempt: either a value or the error it failed with."""

    number: int
    label: str
    duration_ms: float
    value: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


async def run_attempt(action: Callable[[], Awaitable[T]], label: str, number: int) -> RetryAttempt[T]:
    """Run ``action`` once and capture its outcome instead of raising."""
    start = time.monotonic()
    try:
        value = await action()
    except Exception as e:  # noqa: BLE001
        return RetryAttempt(number, label, (time.monotonic() - start) * 1000, error=e)
    return RetryAttempt(number, label, (time.monotonic() - start) * 1000, value=value)


def _attempt_failed(attempt: RetryAttempt) -> bool:
    return not attempt.succeeded


def _last_attempt(retry_state: RetryCallState) -> RetryAttempt:
    return retry_state.outcome.result()


class OperationRetrier:
    """
    Bounded retry with exponential backoff for a single fallible async action.

    Any failure is retried the same way; deciding whether an action is worth
    retrying at all is up to the caller.
    """

    def __init__(self, sleep: SleepFn = asyncio.sleep):
        """
        Args:
            sleep: Coroutine used for backoff delays (seconds); injectable for tests.
        """
        self.sleep = sleep
        self.logger = get_structured_logger(__name__)

    async def with_retry(self, action: Callable[[], Awaitable[T]], policy: Optional[RetryPolicy] = None) -> T:
        """
        Execute ``action`` up to ``policy.max_attempts`` times.

        Returns:
            The value of the first successful attempt.

        Raises:
            Exception: The error of the final attempt, unchanged.
        """
        policy = policy or RetryPolicy()
        op_logger = bind_context(self.logger, operation=policy.label)
        attempt_number = 0

        async def attempt_once() -> RetryAttempt[T]:
            nonlocal attempt_number
            attempt_number += 1
            op_logger.info("operation_attempt", attempt=attempt_number, max_attempts=policy.max_attempts)
            return await run_attempt(action, policy.label, attempt_number)

        def log_retry(retry_state: RetryCallState) -> None:
            attempt = _last_attempt(retry_state)
            op_logger.warning(
                "operation_retry",
                attempt=attempt.number,
                max_attempts=policy.max_attempts,
                error=str(attempt.error),
                error_type=type(attempt.error).__name__,
                duration_ms=round(attempt.duration_ms, 2),
                next_attempt_in_ms=round(retry_state.next_action.sleep * 1000),
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(policy.max_attempts),
            wait=wait_exponential(
                multiplier=policy.base_delay_ms / 1000.0,
                max=policy.max_delay_ms / 1000.0,
                exp_base=policy.backoff_multiplier,
            ),
            retry=retry_if_result(_attempt_failed),
            retry_error_callback=_last_attempt,
            before_sleep=log_retry,
            sleep=self.sleep,
        )
        attempt: RetryAttempt[T] = await retrying(attempt_once)

        if attempt.succeeded:
            if attempt.number > 1:
                op_logger.info("operation_recovered", attempt=attempt.number, max_attempts=policy.max_attempts)
            return attempt.value  # type: ignore[return-value]

        op_logger.error(
            "operation_failed_all_retries",
            attempts=attempt.number,
            error=str(attempt.error),
            error_type=type(attempt.error).__name__,
        )
        raise attempt.error


class ProcessRetrier:
    """
    Bounded retry of a whole multi-step workflow.

    Between attempts the provided teardown callback discards the partial state
    (the browser session) and a fixed delay is observed before the next run.
    """

    def __init__(self, sleep: SleepFn = asyncio.sleep):
        self.sleep = sleep
        self.logger = get_structured_logger(__name__)

    async def with_process_retry(
        self,
        workflow: Callable[[], Awaitable[T]],
        teardown_and_restart: Callable[[], Awaitable[None]],
        policy: Optional[RetryPolicy] = None,
    ) -> T:
        """
        Execute ``workflow`` with teardown between failed attempts.

        A failing ``teardown_and_restart`` is logged and does not stop the loop.

        Raises:
            Exception: The error of the final workflow attempt, unchanged.
        """
        policy = policy or RetryPolicy(label="process")
        op_logger = bind_context(self.logger, operation=policy.label)

        last_attempt: Optional[RetryAttempt[T]] = None
        for number in range(1, policy.max_attempts + 1):
            op_logger.info("process_attempt", attempt=number, max_attempts=policy.max_attempts)
            last_attempt = await run_attempt(workflow, policy.label, number)

            if last_attempt.succeeded:
                if number > 1:
                    op_logger.info("process_recovered", attempt=number, max_attempts=policy.max_attempts)
                return last_attempt.value  # type: ignore[return-value]

            if number == policy.max_attempts:
                break

            op_logger.warning(
                "process_retry_with_restart",
                attempt=number,
                max_attempts=policy.max_attempts,
                error=str(last_attempt.error),
                error_type=type(last_attempt.error).__name__,
            )
            teardown = await run_attempt(teardown_and_restart, f"{policy.label}_teardown", number)
            if not teardown.succeeded:
                op_logger.error(
                    "process_teardown_failed",
                    attempt=number,
                    error=str(teardown.error),
                    error_type=type(teardown.error).__name__,
                )
            await self.sleep(policy.base_delay_ms / 1000.0)

        op_logger.error(
            "process_failed_all_retries",
            attempts=policy.max_attempts,
            error=str(last_attempt.error),
            error_type=type(last_attempt.error).__name__,
        )
        raise last_attempt.error
