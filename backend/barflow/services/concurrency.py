# Overview: Row locking and retry helpers shared by services that mutate running balances.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking before a read-modify-write.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; the version_id column on
    CreditCustomer still catches a lost update there (StaleDataError).
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.05):
    """
    Run a unit of work, retrying on lock contention or a stale version.

    func must be self-contained: it re-reads what it needs and commits.
    The session is rolled back between attempts.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
