# Overview: Compare-and-swap retry helpers shared by every order write path.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import ConflictError


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The version_id check on write still catches lost races either way.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None, label: str = "order write"):
    """
    Execute a read-modify-write operation with retry on lost races.

    func must re-read everything it depends on each time it is called, so
    every rule is re-evaluated against the freshly read record.

    Retries on ConflictError / StaleDataError (another writer committed
    first) and OperationalError (locks). Any other exception propagates
    unchanged on the first attempt. Exhausting the budget raises
    ConflictError.
    """
    if attempts is None:
        attempts = int(current_app.config.get("CAS_RETRY_ATTEMPTS", 3))
    if backoff_base is None:
        backoff_base = float(current_app.config.get("CAS_RETRY_BACKOFF", 0.05))
    attempts = max(1, attempts)

    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (ConflictError, StaleDataError, OperationalError) as exc:
            db.session.rollback()
            last_exc = exc
            current_app.logger.warning(
                "%s lost a concurrent update (attempt %d/%d): %s",
                label, attempt + 1, attempts, exc,
            )
            if attempt < attempts - 1 and backoff_base > 0:
                time.sleep(backoff_base * (2 ** attempt))

    current_app.logger.error("%s gave up after %d attempts", label, attempts)
    raise ConflictError(
        f"{label} conflicted with a concurrent update; retry later"
    ) from last_exc
