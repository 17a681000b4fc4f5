# Overview: Row locking for stock-mutating units of work.

from __future__ import annotations

from sqlalchemy import text

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for stock/cost read-modify-write.

    Rows already in the session's identity map are refreshed from the locked
    read, so the caller never computes from a value loaded before the lock.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_write_transaction()
    covers it by taking the database write lock up front.
    """
    return query.with_for_update().populate_existing()


def begin_write_transaction() -> None:
    """
    Serialize writers on SQLite.

    SQLite has no row locks; BEGIN IMMEDIATE takes the reserved lock before
    the first read so two postings cannot both read the same stock position.
    Waiting for the lock is bounded by the driver's busy timeout; a timeout
    surfaces as OperationalError and is not retried here.
    Other backends rely on lock_for_update().
    """
    if db.engine.dialect.name != "sqlite":
        return
    dbapi_connection = db.session.connection().connection.dbapi_connection
    if not dbapi_connection.in_transaction:
        db.session.execute(text("BEGIN IMMEDIATE"))
