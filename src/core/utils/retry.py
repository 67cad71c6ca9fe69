import asyncio
from collections.abc import Callable
from functools import wraps
import inspect
import time
from typing import Any, TypeVar, cast

from loggers import get_logger

logger = get_logger(__name__)


F = TypeVar("F", bound=Callable[..., Any])


def with_retries(
    max_retries: int = 3,
    delay: float = 2,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
) -> Callable[[F], F]:
    """
    A universal retry decorator for both asynchronous and synchronous functions.

    The wrapped function is called up to `max_retries` times in total. Only
    exceptions listed in `retry_on` trigger another attempt; anything else
    propagates immediately. For `async def` functions the pause uses
    `asyncio.sleep`, for plain functions `time.sleep`.

    The delay between attempts increases linearly: `delay * attempt_number`.
    `delay=0` retries immediately.

    Args:
        max_retries (int): Total number of attempts before the last exception is raised. Default is 3.
        delay (float): Base delay in seconds between attempts. Default is 2.
        retry_on (tuple): Exception types that are worth another attempt. Default is (Exception,).

    Returns:
        The decorator function that wraps the target function with retry logic.

    Raises:
        The last exception encountered if all attempts fail.

    Example:
        @with_retries(max_retries=2, delay=0, retry_on=(UpstreamUnavailableException,))
        async def find_user(): ...

        @with_retries()
        def read_file(): ...
    """

    def decorator(func: F) -> F:
        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                for attempt in range(1, max_retries + 1):
                    try:
                        return await func(*args, **kwargs)
                    except retry_on as e:
                        logger.warning(
                            f"[RETRY] Async function '{func.__name__}' attempt {attempt} failed: {e}"
                        )
                        if attempt >= max_retries:
                            raise
                        if delay:
                            await asyncio.sleep(delay * attempt)

            return cast(F, async_wrapper)
        else:

            @wraps(func)
            def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
                for attempt in range(1, max_retries + 1):
                    try:
                        return func(*args, **kwargs)
                    except retry_on as e:
                        logger.warning(
                            f"[RETRY] Sync function '{func.__name__}' attempt {attempt} failed: {e}"
                        )
                        if attempt >= max_retries:
                            raise
                        if delay:
                            time.sleep(delay * attempt)

            return cast(F, sync_wrapper)

    return decorator
