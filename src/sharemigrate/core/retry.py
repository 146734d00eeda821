# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/sharemigrate/core/retry.py

"""
Retry with backoff for waiting on backend replication.

A version folder created through one EOS endpoint may not be visible yet
on the endpoint serving lookups, so the engine re-runs the lookup a
bounded number of times.
"""

import random
import time
from typing import Any, Callable, Tuple, Type

from loguru import logger

from sharemigrate.system.exceptions import NotYetVisibleError


class RetryConfig:
    """Configuration for retry behavior"""

    def __init__(
        self,
        max_attempts: int = 5,
        base_delay: float = 0.5,
        max_delay: float = 5.0,
        exponential_base: float = 2.0,
        jitter: bool = True
    ):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """Calculate delay for exponential backoff with optional jitter"""
    if attempt <= 0:
        return 0.0

    delay = config.base_delay * (config.exponential_base ** (attempt - 1))
    delay = min(delay, config.max_delay)

    if config.jitter:
        jitter_range = delay * 0.1
        delay += random.uniform(-jitter_range, jitter_range)

    return max(0.0, delay)


def is_retryable_error(exception: Exception, retryable_exceptions: Tuple[Type[Exception], ...]) -> bool:
    """Determine if an exception should trigger a retry"""
    if isinstance(exception, retryable_exceptions):
        if hasattr(exception, 'retry_possible'):
            return exception.retry_possible
        return True

    return False


class RetryableOperation:
    """Context manager for retry operations with detailed logging"""

    def __init__(
        self,
        operation_name: str,
        config: RetryConfig = None,
        retryable_exceptions: Tuple[Type[Exception], ...] = (NotYetVisibleError,)
    ):
        self.operation_name = operation_name
        self.config = config or RetryConfig()
        self.retryable_exceptions = retryable_exceptions
        self.attempt = 0
        self.start_time = None

    def __enter__(self):
        self.start_time = time.monotonic()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            duration = time.monotonic() - self.start_time
            logger.debug(f"{self.operation_name} completed in {duration:.2f}s after {self.attempt} attempt(s)")
        return False

    def execute(self, func: Callable, *args, **kwargs) -> Any:
        """Execute a function with retry logic"""
        last_exception = None

        for attempt in range(1, self.config.max_attempts + 1):
            self.attempt = attempt
            try:
                logger.debug(f"Executing {self.operation_name} (attempt {attempt}/{self.config.max_attempts})")
                result = func(*args, **kwargs)

                if attempt > 1:
                    logger.debug(f"{self.operation_name} succeeded on attempt {attempt}")

                return result

            except Exception as e:
                last_exception = e

                if not is_retryable_error(e, self.retryable_exceptions):
                    logger.debug(f"{self.operation_name} failed with non-retryable error: {e}")
                    raise

                if attempt >= self.config.max_attempts:
                    break

                delay = calculate_delay(attempt, self.config)
                logger.debug(
                    f"{self.operation_name} failed on attempt {attempt}/{self.config.max_attempts}: {e}. "
                    f"Retrying in {delay:.2f} seconds..."
                )

                if delay > 0:
                    time.sleep(delay)

        logger.debug(f"{self.operation_name} failed after {self.config.max_attempts} attempts")
        raise last_exception
