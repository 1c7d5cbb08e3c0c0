"""
Bounded retry for lock conflicts.

Database lock timeouts and deadlocks surface as OperationalError. An
outermost call is retried from scratch up to CONCURRENCY_RETRIES times,
then reported as StockError('CONCURRENCY_CONFLICT'). Inside a caller's
transaction nothing is retried: the transaction is already broken.
"""

import functools
import logging

from django.db import OperationalError, transaction

from batchman.conf import batchman_settings
from batchman.exceptions import StockError

logger = logging.getLogger('batchman')


def retry_on_conflict(func):
    """Decorator for state-changing service methods."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        if transaction.get_connection().in_atomic_block:
            return func(*args, **kwargs)

        attempts = max(1, batchman_settings.CONCURRENCY_RETRIES + 1)
        last_error = None
        for attempt in range(1, attempts + 1):
            try:
                return func(*args, **kwargs)
            except OperationalError as exc:
                last_error = exc
                logger.warning(
                    "stock.concurrency.retry",
                    extra={
                        "operation": func.__qualname__,
                        "attempt": attempt,
                        "error": str(exc),
                    },
                )

        raise StockError(
            'CONCURRENCY_CONFLICT',
            operation=func.__qualname__,
            attempts=attempts,
        ) from last_error

    return wrapper
