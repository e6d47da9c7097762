"""
Bounded retries for transient data-store and upstream failures.

Only errors that mean "try again later" are retried; authorization and
validation errors always surface on the first attempt.
"""

import asyncio
import random
from typing import Any, Optional, Callable, Awaitable, Tuple, Type

from .logging import get_logger


class RetryConfig:
    """Exponential backoff settings."""

    def __init__(self,
                 max_attempts: int = 3,
                 base_delay: float = 0.2,
                 max_delay: float = 2.0,
                 exponential_base: float = 2.0,
                 jitter: bool = True):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter

    def delay_for(self, attempt: int) -> float:
        """Delay after failed ``attempt`` (1-based)."""
        delay = min(self.base_delay * (self.exponential_base ** (attempt - 1)), self.max_delay)
        if self.jitter:
            delay += random.uniform(-delay * 0.1, delay * 0.1)
        return max(0.0, delay)


async def call_with_retry(func: Callable[..., Awaitable[Any]],
                          *args,
                          exceptions: Tuple[Type[BaseException], ...] = (Exception,),
                          config: Optional[RetryConfig] = None,
                          **kwargs) -> Any:
    """Await ``func`` retrying on ``exceptions``; the last error is re-raised."""
    config = config or RetryConfig()
    name = getattr(func, "__name__", "call")
    logger = get_logger(f"retry.{name}")

    for attempt in range(1, config.max_attempts + 1):
        try:
            result = await func(*args, **kwargs)
        except exceptions as e:
            if attempt == config.max_attempts:
                logger.error(
                    "Giving up after transient failures",
                    attempts=attempt,
                    function=name,
                    error=str(e)
                )
                raise

            delay = config.delay_for(attempt)
            logger.warning(
                "Transient failure, retrying",
                attempt=attempt,
                delay=delay,
                function=name,
                error=str(e)
            )
            await asyncio.sleep(delay)
            continue

        if attempt > 1:
            logger.info("Recovered after retry", attempt=attempt, function=name)
        return result
