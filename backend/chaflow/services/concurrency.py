# Overview: Service-layer helpers for retrying database writes that race on unique keys or locks.

from __future__ import annotations

import time

from sqlalchemy.exc import IntegrityError, OperationalError

from ..extensions import db


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.05, retry_on=(OperationalError,)):
    """
    Execute a DB operation, rolling back and retrying on the given errors.

    func is called again from scratch on each attempt, so it must rebuild
    any state that depends on the failed transaction (e.g. a fresh code).
    """
    for attempt in range(attempts):
        try:
            return func()
        except retry_on:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))


def insert_with_unique_retry(build, *, attempts: int = 3):
    """
    Add and commit the object returned by build(), retrying on IntegrityError.

    Used where a generated identifier can collide with a concurrent insert.
    """
    def _op():
        obj = build()
        db.session.add(obj)
        db.session.commit()
        return obj

    return run_with_retry(_op, attempts=attempts, backoff_base=0.0, retry_on=(IntegrityError, OperationalError))
