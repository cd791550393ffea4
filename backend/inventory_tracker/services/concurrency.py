# Overview: Single-writer discipline for store mutations.

from __future__ import annotations

import threading
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError

from ..extensions import db
from ..validation import BackendUnavailableError


# One writer at a time per process. Re-entrant so a store method may call
# another store method while holding it.
_writer_lock = threading.RLock()


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


@contextmanager
def serialized_write():
    """
    Hold the writer lock for the duration of a mutation.

    OperationalError (database down, locked, unreachable) is rolled back and
    surfaced as BackendUnavailableError. Everything else propagates unchanged.
    """
    with _writer_lock:
        try:
            yield
        except OperationalError as exc:
            db.session.rollback()
            raise BackendUnavailableError("Inventory database unavailable") from exc


def read_guard(func):
    """Run a read, mapping OperationalError to BackendUnavailableError."""
    try:
        return func()
    except OperationalError as exc:
        db.session.rollback()
        raise BackendUnavailableError("Inventory database unavailable") from exc
