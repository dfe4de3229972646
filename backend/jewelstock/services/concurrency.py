# Overview: Row locking, atomic write units and caller-side retry for concurrent stock writes.

from __future__ import annotations

import time
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConcurrencyConflict


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    Product.version_id still catches a competing write at flush time.
    """
    return query.with_for_update()


@contextmanager
def atomic(session):
    """
    One unit of work: commit on success, roll back on any failure.

    Storage races (lock timeouts, deadlocks, stale version_id) surface as
    ConcurrencyConflict so callers can decide whether to retry. Nothing is
    retried here.
    """
    try:
        yield
        session.commit()
    except (OperationalError, StaleDataError) as exc:
        session.rollback()
        raise ConcurrencyConflict("write conflicted with a concurrent update; retry") from exc
    except Exception:
        session.rollback()
        raise


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a write on behalf of a caller, retrying on ConcurrencyConflict.

    Used by the HTTP layer; the core services themselves never retry.
    """
    for attempt in range(attempts):
        try:
            return func()
        except ConcurrencyConflict:
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
