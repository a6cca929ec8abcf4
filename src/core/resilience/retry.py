"""
Retry utilities driven by an explicit classification table.

The decision for one attempt is a pure function,
decide_retry(attempt, error, config, classify), returning Success, Retry(delay)
or Abort(reason). run_with_retry drives an async operation with it and is the
only place that sleeps, through an injectable sleep callable so callers can
make waits interruptible and tests can count them.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar, Union

from core.errors.exceptions import RetryAbortedError
from core.types import RetryAction

logger = logging.getLogger(__name__)

T = TypeVar("T")

Classifier = Callable[[Exception], RetryAction]
Sleeper = Callable[[float], Awaitable[None]]


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: float = 2.0

    # Equal jitter on top of the computed delay; off for fixed-interval retries
    jitter: bool = True

    def __post_init__(self):
        """Ensure proper types from YAML/env vars."""
        self.max_attempts = int(self.max_attempts)
        self.base_delay = float(self.base_delay)
        self.max_delay = float(self.max_delay)
        self.exponential_base = float(self.exponential_base)
        self.jitter = self.jitter if isinstance(self.jitter, bool) else bool(self.jitter)

    @classmethod
    def fixed(cls, max_attempts: int, delay: float) -> "RetryConfig":
        """Constant delay between attempts, no jitter."""
        return cls(
            max_attempts=max_attempts,
            base_delay=delay,
            max_delay=delay,
            exponential_base=1.0,
            jitter=False,
        )

    def get_delay(self, attempt: int) -> float:
        """
        Calculate the delay before the next attempt.

        Args:
            attempt: 0-indexed attempt number that just failed

        Returns:
            Delay in seconds
        """
        base_delay = self.base_delay * (self.exponential_base**attempt)

        if self.jitter:
            # Equal jitter: half fixed, half random
            base_delay = (base_delay / 2) + random.uniform(0, base_delay / 2)

        return min(base_delay, self.max_delay)


@dataclass(frozen=True)
class Success:
    """The attempt counts as done."""


@dataclass(frozen=True)
class Retry:
    """Wait delay seconds, then try again."""

    delay: float


@dataclass(frozen=True)
class Abort:
    """Give up; exhausted is False when the error itself was non-retryable."""

    reason: str
    exhausted: bool = False


RetryDecision = Union[Success, Retry, Abort]


def decide_retry(
    attempt: int,
    error: Exception | None,
    config: RetryConfig,
    classify: Classifier,
) -> RetryDecision:
    """
    Decide what to do after one attempt.

    Args:
        attempt: 1-indexed number of the attempt that just finished
        error: Exception raised by the attempt, or None if it succeeded
        config: Retry limits and delays
        classify: Maps an error to SUCCEED, RETRY or ABORT

    Returns:
        Success, Retry(delay) or Abort(reason)
    """
    if error is None:
        return Success()

    action = classify(error)

    if action is RetryAction.SUCCEED:
        return Success()

    if action is RetryAction.ABORT:
        return Abort(f"non-retryable error: {error}")

    if attempt >= config.max_attempts:
        return Abort(
            f"gave up after {attempt} attempts (last error: {error})",
            exhausted=True,
        )

    return Retry(config.get_delay(attempt - 1))


@dataclass
class RetryStats:
    """Statistics from a retry operation."""

    attempts: int = 0
    waits: int = 0
    total_delay: float = 0.0
    final_error: Exception | None = None
    success: bool = False

    @property
    def retried(self) -> bool:
        """Whether any retries occurred."""
        return self.attempts > 1


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    classify: Classifier,
    config: RetryConfig,
    label: str = "operation",
    sleep: Sleeper = asyncio.sleep,
    stats: RetryStats | None = None,
) -> T | None:
    """
    Run an async operation until decide_retry says Success or Abort.

    Returns the operation's result, or None when an error was classified as
    SUCCEED (for example "already exists").

    Raises:
        RetryAbortedError: on a non-retryable error or when attempts run out
    """
    stats = stats if stats is not None else RetryStats()

    for attempt in range(1, config.max_attempts + 1):
        stats.attempts = attempt
        logger.info(
            "Attempting %s (attempt %d/%d)",
            label,
            attempt,
            config.max_attempts,
            extra={"operation": label, "attempt": attempt, "max_attempts": config.max_attempts},
        )
        try:
            result = await operation()
            error = None
        except Exception as e:
            result = None
            error = e
            stats.final_error = e

        decision = decide_retry(attempt, error, config, classify)

        if isinstance(decision, Success):
            stats.success = True
            if error is not None:
                logger.info(
                    "%s treated as success: %s",
                    label,
                    error,
                    extra={"operation": label, "attempt": attempt, "error_type": type(error).__name__},
                )
            elif attempt > 1:
                logger.info(
                    "Retry succeeded for %s after %d attempts",
                    label,
                    attempt,
                    extra={"operation": label, "total_attempts": attempt},
                )
            return result

        if isinstance(decision, Abort):
            logger.error(
                "Giving up on %s: %s",
                label,
                decision.reason,
                extra={
                    "operation": label,
                    "attempt": attempt,
                    "max_attempts": config.max_attempts,
                    "error_type": type(error).__name__,
                    "error_message": str(error)[:200],
                },
            )
            raise RetryAbortedError(
                f"{label} failed: {decision.reason}",
                attempts=attempt,
                exhausted=decision.exhausted,
                cause=error,
                context={"operation": label},
            ) from error

        logger.warning(
            "Retryable error for %s, will retry in %.1fs",
            label,
            decision.delay,
            extra={
                "operation": label,
                "attempt": attempt,
                "max_attempts": config.max_attempts,
                "delay_seconds": round(decision.delay, 2),
                "error_type": type(error).__name__,
                "error_message": str(error)[:200],
            },
        )
        stats.waits += 1
        stats.total_delay += decision.delay
        await sleep(decision.delay)

    # decide_retry aborts on the last attempt, so the loop never falls through
    raise RetryAbortedError(
        f"{label} failed without a decision", attempts=stats.attempts, exhausted=True
    )


__all__ = [
    "RetryConfig",
    "RetryStats",
    "RetryDecision",
    "Success",
    "Retry",
    "Abort",
    "decide_retry",
    "run_with_retry",
]
