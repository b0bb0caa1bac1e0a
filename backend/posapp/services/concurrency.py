# Overview: Transaction helpers shared by every service that writes more than one row.

from __future__ import annotations

import logging
import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, so begin_write() takes the
    database write lock up front there instead.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, "database is locked") and
    StaleDataError (optimistic locking conflicts).
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            logger.warning("Retrying after concurrency failure (attempt %d): %s", attempt + 1, exc)
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def begin_write() -> None:
    """
    Open the write transaction for the current unit of work.

    On SQLite this issues BEGIN IMMEDIATE so two registers selling the same
    product serialize on the database lock instead of both passing the stock
    check. Skipped when the driver already has a transaction open.
    """
    if db.engine.dialect.name != "sqlite":
        return
    dbapi_conn = db.session.connection().connection.dbapi_connection
    if getattr(dbapi_conn, "in_transaction", False):
        return
    db.session.execute(text("BEGIN IMMEDIATE"))


def atomic(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run func() as one unit of work: begin, run, commit.

    Any exception rolls the whole unit back before it propagates, so a
    rejected operation leaves no partial rows behind.
    """
    def _op():
        begin_write()
        try:
            result = func()
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return result

    return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
