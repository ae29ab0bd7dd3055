# Overview: Service-layer operations for concurrency; retry wrapper for optimistic writes.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from .document_store import VersionConflict


RETRYABLE_ERRORS = (VersionConflict, OperationalError, StaleDataError)


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None, on_conflict=None):
    """
    Execute a read-decide-write operation with retry on concurrency failures.

    The whole of func is re-run on each attempt, so it must re-read whatever it
    decides on. on_conflict(exc) is called before each retry, letting callers
    that keep their own snapshot refresh it.
    """
    if attempts is None:
        attempts = current_app.config.get("STOCK_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("STOCK_RETRY_BACKOFF", 0.1)

    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Concurrent write detected (attempt %d/%d): %s", attempt + 1, attempts, exc
            )
            if on_conflict is not None:
                on_conflict(exc)
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
