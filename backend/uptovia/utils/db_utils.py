"""Database utility functions."""
import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import OperationalError, InterfaceError

logger = logging.getLogger(__name__)

T = TypeVar('T')

TRANSIENT_ERROR_MARKERS = (
    "database is locked",
    "connection refused",
    "connection reset",
    "connection closed",
    "server closed",
    "timeout",
    "too many clients",
)


def is_transient_error(exc: Exception) -> bool:
    """Whether a driver error is worth retrying (lock contention, dropped connection)."""
    error_str = str(exc).lower()
    return any(marker in error_str for marker in TRANSIENT_ERROR_MARKERS)


async def retry_on_transient_error(
    coro_func: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 0.1,
) -> T:
    """Retry a database operation on transient errors with exponential backoff.

    Args:
        coro_func: Callable returning a fresh coroutine per attempt
        max_retries: Maximum number of attempts
        base_delay: Base delay in seconds (doubles with each retry)

    Raises:
        OperationalError/InterfaceError: if the error is not transient or
        every attempt failed
    """
    for attempt in range(1, max_retries + 1):
        try:
            return await coro_func()
        except (OperationalError, InterfaceError) as e:
            if attempt == max_retries or not is_transient_error(e):
                raise
            delay = base_delay * (2 ** (attempt - 1))
            logger.warning(f"Database transient error, retrying in {delay}s (attempt {attempt}/{max_retries})")
            await asyncio.sleep(delay)
    raise RuntimeError("max_retries must be at least 1")
