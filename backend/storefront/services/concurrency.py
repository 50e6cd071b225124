# Overview: Row locking and retry helpers shared by the checkout and order services.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """SELECT ... FOR UPDATE on PostgreSQL; SQLite drops the clause."""
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run func as one unit of work and return its result.

    The session is rolled back on every failure. Lock timeouts, deadlocks and
    stale rows are rerun up to `attempts` times, sleeping backoff_base, then
    twice that, and so on. Pass attempts=1 when func talks to the payment
    gateway.
    """
    attempt = 1
    while True:
        try:
            return func()
        except RETRYABLE_ERRORS:
            db.session.rollback()
            if attempt >= attempts:
                raise
            time.sleep(backoff_base * (2 ** (attempt - 1)))
            attempt += 1
        except Exception:
            db.session.rollback()
            raise
