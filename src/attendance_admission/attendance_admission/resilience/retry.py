from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

from .classifier import is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 10_000
    backoff_multiplier: float = 2.0
    jitter: bool = True

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay_ms < 0 or self.max_delay_ms < 0:
            raise ValueError("delays must not be negative")


@dataclass(frozen=True)
class InvocationOutcome(Generic[T]):
    succeeded: bool
    value: Optional[T]
    error: Optional[BaseException]
    attempts: int
    total_delay_ms: float


def compute_delay(attempt: int, policy: RetryPolicy, rng: Callable[[], float] = random.random) -> float:
    """Delay before retry number ``attempt`` (1-based), in ms.

    ``min(max, base * multiplier ** (attempt - 1))``; jitter adds up to 10%.
    """
    delay = float(policy.base_delay_ms)
    for _ in range(attempt - 1):
        if delay >= policy.max_delay_ms:
            break
        delay *= policy.backoff_multiplier
    delay = min(float(policy.max_delay_ms), delay)
    if policy.jitter:
        delay += rng() * 0.1 * delay
    return delay


class ResilientInvoker:
    """Run a callable, retrying transient failures with exponential backoff."""

    def __init__(
        self,
        *,
        classifier: Callable[[BaseException], bool] = is_retryable,
        sleep: Callable[[float], Any] = time.sleep,
        rng: Callable[[], float] = random.random,
    ):
        self._classifier = classifier
        self._sleep = sleep
        self._rng = rng

    def invoke(self, fn: Callable[[], T], policy: Optional[RetryPolicy] = None) -> InvocationOutcome[T]:
        policy = policy or RetryPolicy()
        total_delay = 0.0
        attempt = 0
        while True:
            attempt += 1
            try:
                value = fn()
            except Exception as exc:
                if not self._classifier(exc):
                    logger.info("attempt %d failed with non-retryable %s", attempt, type(exc).__name__)
                    return InvocationOutcome(False, None, exc, attempt, total_delay)
                if attempt >= policy.max_attempts:
                    logger.warning("giving up after %d attempt(s): %s", attempt, exc)
                    return InvocationOutcome(False, None, exc, attempt, total_delay)
                delay = compute_delay(attempt, policy, self._rng)
                logger.info("attempt %d failed (%s); retrying in %.0fms", attempt, type(exc).__name__, delay)
                self._sleep(delay / 1000.0)
                total_delay += delay
                continue
            return InvocationOutcome(True, value, None, attempt, total_delay)
