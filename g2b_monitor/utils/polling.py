"""
Condition polling and retry helpers.

The target portal renders asynchronously, so every wait in the navigation
flow is expressed as "poll a predicate until it holds or a timeout passes"
instead of a fixed sleep.
"""

import math
import time
from typing import TypeVar, Callable, Optional, Type, Tuple, Dict, Any
from functools import wraps
import logging

logger = logging.getLogger(__name__)

T = TypeVar('T')


class PollStrategy:
    """
    Timeout and interval for a polling loop.

    ``attempts`` is the number of predicate evaluations; the loop sleeps
    ``interval`` seconds between evaluations but not after the last one.
    """

    def __init__(self, timeout: float = 5.0, interval: float = 0.5):
        self.timeout = max(float(timeout), 0.0)
        self.interval = max(float(interval), 0.01)

    @property
    def attempts(self) -> int:
        return max(1, math.ceil(self.timeout / self.interval) + 1)

    @classmethod
    def from_config(cls, wait_config: Dict[str, Any], key: str, default_timeout: float,
                    default_interval: float = 0.5) -> "PollStrategy":
        """Build a strategy from ``crawler.wait`` settings (values in seconds)."""
        return cls(
            timeout=wait_config.get(key, default_timeout),
            interval=wait_config.get('poll_interval', default_interval),
        )

    def __repr__(self) -> str:
        return f"PollStrategy(timeout={self.timeout}, interval={self.interval})"


def poll_until(
    predicate: Callable[[], T],
    timeout: float = 5.0,
    interval: float = 0.5,
    attempts: Optional[int] = None,
    description: str = "condition"
) -> Optional[T]:
    """
    Evaluate ``predicate`` until it returns a truthy value.

    Exceptions raised by the predicate count as a falsy result, since the
    documents being polled may be detached or mid-navigation.

    Args:
        predicate: Zero-argument callable
        timeout: Total time budget in seconds
        interval: Delay between evaluations in seconds
        attempts: Explicit number of evaluations (overrides timeout)
        description: Label used in debug logs

    Returns:
        The first truthy predicate value, or None on timeout
    """
    strategy = PollStrategy(timeout, interval)
    total = attempts if attempts is not None else strategy.attempts

    for attempt in range(total):
        try:
            result = predicate()
            if result:
                return result
        except Exception as e:
            logger.debug(f"Polling '{description}' attempt {attempt + 1} raised: {e}")

        if attempt < total - 1:
            time.sleep(strategy.interval)

    logger.debug(f"Polling '{description}' gave up after {total} attempts")
    return None


class RetryStrategy:
    """
    Configurable retry strategy with exponential backoff.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        initial_delay: float = 1.0,
        backoff_factor: float = 2.0,
        max_delay: float = 10.0,
        exceptions: Tuple[Type[Exception], ...] = (Exception,)
    ):
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.backoff_factor = backoff_factor
        self.max_delay = max_delay
        self.exceptions = exceptions

    def calculate_delay(self, attempt: int) -> float:
        """
        Calculate delay for a given attempt using exponential backoff.

        Args:
            attempt: Current attempt number (0-indexed)

        Returns:
            Delay in seconds
        """
        delay = self.initial_delay * (self.backoff_factor ** attempt)
        return min(delay, self.max_delay)

    def should_retry(self, exception: Exception) -> bool:
        return isinstance(exception, self.exceptions)


def with_retry(
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
    max_delay: float = 10.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    on_retry: Optional[Callable[[int, Exception], None]] = None
) -> Callable:
    """
    Decorator for adding retry logic to synchronous functions.

    Example:
        @with_retry(max_attempts=2, initial_delay=2.0)
        def open_portal(page):
            page.goto(...)
    """
    strategy = RetryStrategy(
        max_attempts=max_attempts,
        initial_delay=initial_delay,
        backoff_factor=backoff_factor,
        max_delay=max_delay,
        exceptions=exceptions
    )

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            last_exception = None

            for attempt in range(strategy.max_attempts):
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    last_exception = e

                    if not strategy.should_retry(e):
                        logger.error(f"Non-retryable exception: {e}")
                        raise

                    if attempt < strategy.max_attempts - 1:
                        delay = strategy.calculate_delay(attempt)
                        logger.warning(
                            f"Attempt {attempt + 1}/{strategy.max_attempts} failed: {e}. "
                            f"Retrying in {delay:.2f}s..."
                        )

                        if on_retry:
                            on_retry(attempt + 1, e)

                        time.sleep(delay)
                    else:
                        logger.error(
                            f"All {strategy.max_attempts} attempts failed. Last error: {e}"
                        )

            if last_exception:
                raise last_exception
            raise RuntimeError("Retry logic failed without capturing exception")

        return wrapper

    return decorator
