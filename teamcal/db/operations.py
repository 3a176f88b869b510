"""Retry for transient database failures.

The reminder scanner runs outside any request, so a locked SQLite file or a
dropped PostgreSQL connection should cost one tick's work at most, not the
process.
"""

import logging
import time
from functools import wraps
from typing import Any, Callable, TypeVar, cast

from sqlalchemy.exc import OperationalError

from .db_core import DatabaseError

logger = logging.getLogger(__name__)

T = TypeVar('T')

def with_retry(
    max_attempts: int = 3,
    delay: float = 0.1,
    backoff: float = 2,
    exceptions: tuple = (OperationalError,)
) -> Callable:
    """
    Retry a unit of database work that opens its own session.

    Only ``exceptions`` are retried; domain errors such as ``NotFound`` or
    ``Conflict`` propagate on the first attempt.

    Args:
        max_attempts: Total attempts, including the first
        delay: Seconds to wait before the second attempt
        backoff: Multiplier applied to the wait after each failure
        exceptions: Exception types treated as transient

    Example:
        @with_retry()
        def release_claim(event_id: str, user_id: str, notification_at: datetime) -> None:
            with db.session() as session:
                session.query(EventNotification).filter(
                    EventNotification.event_id == event_id,
                    EventNotification.user_id == user_id,
                    EventNotification.notification_at == notification_at,
                ).delete(synchronize_session=False)
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            last_exception = None
            wait = delay

            for attempt in range(1, max_attempts + 1):
                try:
                    return cast(T, func(*args, **kwargs))
                except exceptions as e:
                    last_exception = e
                    if attempt == max_attempts:
                        logger.error(f"{func.__name__} failed after {max_attempts} attempts: {e}")
                        raise

                    logger.warning(
                        f"{func.__name__} hit a transient database error "
                        f"(attempt {attempt}/{max_attempts}): {e}. Retrying in {wait}s"
                    )
                    time.sleep(wait)
                    wait *= backoff

            raise last_exception or DatabaseError(f"{func.__name__} was not attempted")

        return wrapper
    return decorator
