"""Retry decorator for transient transport failures."""

import time
import random
from functools import wraps
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

from .logger import get_logger
import config

logger = get_logger()

F = TypeVar('F', bound=Callable[..., Any])

def retry_on_exception(
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    max_attempts: Optional[int] = None,
    initial_delay: Optional[float] = None,
    backoff_factor: float = 2.0,
    jitter: float = 0.1,
) -> Callable[[F], F]:
    """Decorator to retry a function call upon specific exceptions with exponential backoff.

    Args:
        exceptions: A tuple of exception types to catch and retry on.
        max_attempts: Maximum number of attempts (including the initial one).
            ``None`` reads ``config.RETRY_MAX_ATTEMPTS`` at call time.
        initial_delay: Delay before the first retry in seconds.
            ``None`` reads ``config.RETRY_INITIAL_DELAY`` at call time.
        backoff_factor: Multiplier for the delay in subsequent retries.
        jitter: Factor for adding random jitter to delay (delay * jitter * random.uniform(-1, 1)).

    Returns:
        A decorator function.
    """
    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            attempts_allowed = max(1, max_attempts if max_attempts is not None else config.RETRY_MAX_ATTEMPTS)
            delay = initial_delay if initial_delay is not None else config.RETRY_INITIAL_DELAY
            attempts = 0
            while True:
                attempts += 1
                try:
                    if attempts > 1:
                        logger.debug(f"Retrying {func.__name__} (Attempt {attempts}/{attempts_allowed})...")
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempts >= attempts_allowed:
                        logger.error(
                            f"Function {func.__name__} failed after {attempts_allowed} attempts due to {type(e).__name__}.",
                            exc_info=config.DEBUG
                        )
                        raise

                    wait_time = max(0.0, delay + delay * jitter * random.uniform(-1, 1))
                    logger.warning(
                        f"Function {func.__name__} failed with {type(e).__name__} (Attempt {attempts}/{attempts_allowed}). "
                        f"Retrying in {wait_time:.2f} seconds...",
                        exc_info=config.DEBUG
                    )
                    time.sleep(wait_time)
                    delay *= backoff_factor

        return wrapper # type: ignore
    return decorator
