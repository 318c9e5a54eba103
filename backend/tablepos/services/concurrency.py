# Overview: Transaction boundary for every mutating service call; row locks plus optimistic retry.

"""
Concurrency strategy

Product, DiningTable, CashRegister and Discount rows carry a `version_id`
(SQLAlchemy version_id_col). Services load the rows they are about to mutate
through `lock_for_update`, then run the whole operation inside
`run_in_transaction`:

- the body and a single commit form one unit of work
- any exception rolls the session back, so nothing partial is committed
- OperationalError (lock timeout, deadlock) and StaleDataError (another
  writer bumped version_id first) re-run the whole body with backoff
- business errors (errors.PosError) propagate immediately, never retried
"""

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; the version_id check still
    catches lost updates there.
    """
    return query.with_for_update()


def _configured_attempts() -> int:
    return int(current_app.config.get("TX_RETRY_ATTEMPTS", 3))


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.05):
    """
    Execute a DB operation with retry on concurrency-related failures.

    The session is rolled back after every failure; only OperationalError and
    StaleDataError lead to another attempt.
    """
    if attempts is None:
        attempts = _configured_attempts()
    # The body always runs at least once; 0 or less means "no retries"
    attempts = max(1, int(attempts))
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Concurrent update detected (%s); retrying %d/%d",
                type(exc).__name__, attempt + 1, attempts - 1,
            )
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise


def run_in_transaction(func, *, attempts: int | None = None):
    """Run func and commit its work as one unit; see module docstring."""
    def _op():
        result = func()
        db.session.commit()
        return result
    return run_with_retry(_op, attempts=attempts)
