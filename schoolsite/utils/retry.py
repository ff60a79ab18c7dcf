"""
Retry utilities with exponential backoff pattern.
Used for idempotent remote reads; remote writes are attempted once.
"""
import logging
import time
from typing import Callable, TypeVar, Optional

from schoolsite.core.config import calculate_backoff_delay

logger = logging.getLogger(__name__)

T = TypeVar("T")


def fetch_with_retry(
    fetch_fn: Callable[[], T],
    max_retries: int = 3,
    operation_name: str = "operation",
    sleep: Callable[[float], None] = time.sleep,
) -> Optional[T]:
    """
    Execute a function with exponential backoff retry logic.

    Args:
        fetch_fn: Function to execute (should return data or raise exception)
        max_retries: Maximum number of attempts
        operation_name: Name of the operation for logging
        sleep: Sleep function (replaced in tests)

    Returns:
        Result of fetch_fn()

    Raises:
        Exception: Re-raises the last exception if all retries fail
    """
    last_exception = None

    for attempt in range(max(max_retries, 1)):
        try:
            return fetch_fn()
        except Exception as e:
            last_exception = e
            if attempt < max_retries - 1:
                delay = calculate_backoff_delay(attempt)
                logger.warning(
                    f"{operation_name} failed (attempt {attempt + 1}/{max_retries}): {e}"
                )
                logger.info(f"Exponential backoff: {delay}s...")
                sleep(delay)
            else:
                logger.error(
                    f"{operation_name} failed after {max_retries} attempts: {e}"
                )

    if last_exception:
        raise last_exception

    return None
