# Overview: Storage-boundary helpers: write transactions, row locking and conflict retry.

from __future__ import annotations

import logging
import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, DBAPIError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Backing store unavailable or write rejected. Nothing from the unit of work was kept."""


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_write() takes the
    database write lock up front instead.
    """
    return query.with_for_update()


def begin_write() -> None:
    """
    Open the current unit of work as a write transaction.

    On SQLite this issues BEGIN IMMEDIATE so that concurrent writers are
    serialized before any read-then-write happens. Other dialects rely on
    lock_for_update() and version_id columns.
    """
    if db.engine.dialect.name != "sqlite":
        return
    raw = db.session.connection().connection.dbapi_connection
    if not raw.in_transaction:
        db.session.execute(text("BEGIN IMMEDIATE"))


def _configured_attempts(default: int = 3) -> int:
    try:
        return int(current_app.config.get("STORAGE_RETRY_ATTEMPTS", default))
    except RuntimeError:
        return default


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.1):
    """
    Execute a unit of work with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic version conflicts). Any failure rolls the session back, so a
    rejected unit of work never leaves partial writes behind. Exhausted
    retries surface as StorageError.
    """
    attempts = attempts or _configured_attempts()
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            logger.warning("Storage conflict (attempt %s/%s): %s", attempt + 1, attempts, exc)
            if attempt >= attempts - 1:
                raise StorageError("Storage unavailable, please retry") from exc
            time.sleep(backoff_base * (2 ** attempt))
        except DBAPIError as exc:
            db.session.rollback()
            raise StorageError("Write rejected by storage") from exc
        except Exception:
            db.session.rollback()
            raise
