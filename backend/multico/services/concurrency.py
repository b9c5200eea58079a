# Overview: Service-layer helpers for row locking and retrying units of work.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    SELECT ... FOR UPDATE on balance and status rows.

    SQLite ignores the clause; Postgres holds the row lock until commit.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run func, rolling back and starting over on deadlocks, lock timeouts
    (OperationalError) and version_id conflicts (StaleDataError).

    func must rebuild everything it writes: the rollback before each new
    attempt discards whatever the failed attempt flushed.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt == attempts:
                logger.error("Giving up after %d attempts: %s", attempts, type(exc).__name__)
                raise
            logger.warning("Unit of work failed with %s, retrying (%d/%d)", type(exc).__name__, attempt, attempts)
            time.sleep(backoff_base * (2 ** (attempt - 1)))


def commit_unit(op, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run a service write and commit it as one retried unit.

    A failed commit rolls back the whole unit, so the write is rebuilt by
    calling op again before the next commit. Returns what op returned.
    """
    def _unit():
        result = op()
        db.session.commit()
        return result
    return run_with_retry(_unit, attempts=attempts, backoff_base=backoff_base)
