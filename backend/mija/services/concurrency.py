# Overview: Transaction, locking and retry helpers used by every state-bearing service.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_in_transaction(func):
    """
    Run func() and commit; roll back and re-raise on any failure.

    Nothing func() wrote is visible after an exception, which is what makes
    multi-step operations such as checkout all-or-nothing.
    """
    try:
        result = func()
        db.session.commit()
        return result
    except Exception:
        db.session.rollback()
        raise


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1, retry_stale: bool = True):
    """
    Execute a transactional operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and, unless retry_stale is
    False, on StaleDataError (optimistic locking conflicts). Callers that must
    surface a conflict instead of retrying pass retry_stale=False.
    """
    retryable = (OperationalError, StaleDataError) if retry_stale else (OperationalError,)
    for attempt in range(attempts):
        try:
            return run_in_transaction(func)
        except retryable:
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
