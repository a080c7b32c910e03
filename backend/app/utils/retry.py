"""
Retry helper for upstream calls.

Fixed attempt count with linear backoff: after failed attempt ``n`` the
helper sleeps ``delay * n`` seconds before trying again.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    delay: float = 1.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    description: str = "operation",
) -> T:
    """
    Await ``operation()`` until it succeeds or ``max_retries`` attempts failed.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        max_retries: Total number of attempts (at least one is always made)
        delay: Base delay in seconds, multiplied by the attempt number
        retry_on: Exception types that trigger another attempt
        description: Label used in log messages

    Returns:
        The result of the first successful attempt

    Raises:
        The exception of the last attempt once all attempts failed
    """
    attempts = max(1, max_retries)
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except retry_on as e:
            if attempt == attempts:
                logger.error(f"{description} failed after {attempts} attempts: {e}")
                raise
            wait_time = delay * attempt
            logger.warning(
                f"{description} failed (attempt {attempt}/{attempts}): {e}. "
                f"Retrying in {wait_time} seconds..."
            )
            await asyncio.sleep(wait_time)

    # Unreachable: the loop either returns or re-raises
    raise RuntimeError(f"{description} exhausted retries")
