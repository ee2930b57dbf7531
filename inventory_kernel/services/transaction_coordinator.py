"""
TransactionCoordinator -- unit-of-work discipline for inventory mutations.

Responsibility:
    Opens one session per unit of work, runs the operation against it,
    commits on success, rolls back and re-raises on any failure, and always
    closes the session.  Translates driver failures into the kernel's typed
    errors so callers never see raw DBAPI exceptions.

Architecture position:
    Kernel > Services -- imperative shell.  Wraps BatchStore,
    FifoConsumptionEngine and each single-batch step of ExpirySweep.  The
    session is passed explicitly to the operation; there is no ambient
    transaction state.

Invariants enforced:
    - All internal mutations of a unit of work commit together or not at all.
    - No silent retries: Conflict and StoreUnavailable propagate to the caller.
    - A caller-supplied timeout aborts the session before commit.

Failure modes:
    - ConflictError: serialization failure, deadlock, StaleDataError or
      IntegrityError raised by a concurrent writer.
    - TransactionTimeoutError: deadline exceeded or statement cancelled.
    - StoreUnavailableError: any other DBAPI/driver failure, including a
      failed commit.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Callable, Generator, TypeVar
from uuid import uuid4

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from inventory_kernel.exceptions import (
    ConflictError,
    StoreUnavailableError,
    TransactionTimeoutError,
)
from inventory_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.transaction")

T = TypeVar("T")

# PostgreSQL SQLSTATEs
_CONFLICT_SQLSTATES = frozenset({"40001", "40P01"})  # serialization_failure, deadlock
_CANCELLED_SQLSTATES = frozenset({"57014"})  # query_canceled (statement_timeout)


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


class TransactionCoordinator:
    """
    Runs operations inside atomic sessions.

    Contract:
        ``run(name, fn)`` calls ``fn(session)`` inside a fresh session and
        returns its result after a successful commit.

    Guarantees:
        - Commit only after ``fn`` returned and the deadline (if any) holds.
        - Rollback, close and re-raise on every failure path.

    Non-goals:
        - Does NOT retry.  Retry policy belongs to the caller.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        default_timeout_seconds: float | None = None,
    ):
        self._session_factory = session_factory
        self._default_timeout = default_timeout_seconds

    @contextmanager
    def unit_of_work(
        self,
        name: str,
        timeout_seconds: float | None = None,
    ) -> Generator[Session, None, None]:
        """
        Provide a session whose work commits atomically on exit.

        Preconditions: ``name`` identifies the operation for logs and errors.
        Postconditions: On normal exit the session is committed and closed.
            On exception it is rolled back and closed, and a typed error is
            raised in place of driver exceptions.
        """
        timeout = timeout_seconds if timeout_seconds is not None else self._default_timeout
        started = time.monotonic()
        correlation_id = LogContext.get_all().get("correlation_id") or str(uuid4())

        try:
            session = self._session_factory()
        except DBAPIError as exc:
            logger.error("session_open_failed", extra={"op": name}, exc_info=True)
            raise StoreUnavailableError(f"{name}: could not open session") from exc

        with LogContext.bind(correlation_id=correlation_id, operation=name):
            logger.debug("transaction_started", extra={"timeout_seconds": timeout})
            try:
                if timeout is not None:
                    self._apply_statement_timeout(session, timeout)
                yield session
                elapsed = time.monotonic() - started
                if timeout is not None and elapsed > timeout:
                    raise TransactionTimeoutError(name, timeout)
                session.commit()
                logger.debug(
                    "transaction_committed",
                    extra={"duration_ms": round(elapsed * 1000, 2)},
                )
            except Exception as exc:
                session.rollback()
                logger.warning(
                    "transaction_rolled_back",
                    extra={"duration_ms": round((time.monotonic() - started) * 1000, 2)},
                    exc_info=True,
                )
                translated = self._translate(name, exc, timeout)
                if translated is exc:
                    raise
                raise translated from exc
            finally:
                session.close()

    def run(
        self,
        name: str,
        operation: Callable[[Session], T],
        timeout_seconds: float | None = None,
    ) -> T:
        """Run ``operation(session)`` in its own unit of work and return its result."""
        with self.unit_of_work(name, timeout_seconds) as session:
            return operation(session)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _apply_statement_timeout(session: Session, timeout: float) -> None:
        if session.get_bind().dialect.name != "postgresql":
            return
        millis = max(1, int(timeout * 1000))
        session.execute(text(f"SET LOCAL statement_timeout = {millis}"))

    @staticmethod
    def _translate(name: str, exc: Exception, timeout: float | None) -> Exception:
        """Map driver-level failures onto the typed taxonomy."""
        if isinstance(exc, StaleDataError):
            return ConflictError("unit_of_work", name, str(exc))
        if isinstance(exc, IntegrityError):
            return ConflictError("unit_of_work", name, "constraint violated by concurrent write")
        if isinstance(exc, DBAPIError):
            state = _sqlstate(exc)
            if state in _CONFLICT_SQLSTATES:
                return ConflictError("unit_of_work", name, f"sqlstate {state}")
            if state in _CANCELLED_SQLSTATES and timeout is not None:
                return TransactionTimeoutError(name, timeout)
            if isinstance(exc, OperationalError) and "locked" in str(exc.orig).lower():
                return ConflictError("unit_of_work", name, "database is locked")
            return StoreUnavailableError(f"{name}: {type(exc.orig).__name__}")
        return exc
