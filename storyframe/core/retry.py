"""
Retry utilities with exponential backoff.

Wraps a single upstream call (script generation, prompt generation,
refinement, media analysis) and absorbs transient capacity errors such as
rate limiting. Any other error propagates on the first attempt.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

from storyframe.core.constants import TRANSIENT_ERROR_MARKERS
from storyframe.core.exceptions import RateLimitError
from storyframe.core.logging_config import get_logger

logger = get_logger("core.retry")

T = TypeVar("T")

RetryPredicate = Callable[[BaseException], bool]
BackoffFunction = Callable[[int], float]
SleepFunction = Callable[[float], Awaitable[Any]]


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_retries: int = 3
    base_delay: float = 2.0  # Base delay in seconds
    max_delay: float = 60.0  # Maximum delay in seconds
    exponential_base: float = 2.0  # Multiplier for exponential backoff


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """
    Calculate delay before next retry attempt.

    Args:
        attempt: Current attempt number (0-indexed)
        config: Retry configuration

    Returns:
        Delay in seconds before next attempt
    """
    delay = config.base_delay * (config.exponential_base ** attempt)
    return min(delay, config.max_delay)


def _status_of(error: BaseException) -> Optional[int]:
    for attr in ("status_code", "status", "code"):
        value = getattr(error, attr, None)
        if callable(value):
            continue
        try:
            return int(value)
        except (TypeError, ValueError):
            continue
    return None


def is_transient_capacity_error(error: BaseException) -> bool:
    """
    Classify an upstream error as transient capacity exhaustion.

    True for an explicit 429 status, for a RateLimitError, or when the error
    text carries a quota / resource-exhaustion signal.
    """
    if isinstance(error, RateLimitError):
        return True
    if _status_of(error) == 429:
        return True
    message = str(error).lower()
    return any(marker.lower() in message for marker in TRANSIENT_ERROR_MARKERS)


class RetryPolicy:
    """
    Bounded exponential backoff around one awaitable call.

    The policy holds no per-call state, so one instance can wrap any number
    of concurrent or nested calls.

    Example:
        policy = RetryPolicy(LLM_RETRY_CONFIG)
        text = await policy.call(provider.generate, prompt)
    """

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        should_retry: RetryPredicate = is_transient_capacity_error,
        backoff: Optional[BackoffFunction] = None,
        sleep: SleepFunction = asyncio.sleep
    ):
        self.config = config or LLM_RETRY_CONFIG
        self.should_retry = should_retry
        self.backoff = backoff or (lambda attempt: calculate_delay(attempt, self.config))
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self.config.max_retries + 1

    async def call(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Call ``func`` and retry it while its errors are classified transient."""
        attempt = 0
        while True:
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                if not self.should_retry(e):
                    raise
                if attempt >= self.config.max_retries:
                    logger.error(
                        f"All {self.max_attempts} attempts failed. Last error: {e}"
                    )
                    raise

                delay = self.backoff(attempt)
                logger.warning(
                    f"Quota limit hit (attempt {attempt + 1}/{self.max_attempts}): {e}. "
                    f"Retrying in {delay:.2f}s..."
                )
                await self._sleep(delay)
                attempt += 1


# 2s, 4s, 8s between the four attempts
LLM_RETRY_CONFIG = RetryConfig(
    max_retries=3,
    base_delay=2.0,
    max_delay=30.0,
    exponential_base=2.0
)
