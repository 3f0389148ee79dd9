"""
Transaction Utilities for the Storefront Backend
================================================

Explicit, parameter-passed transaction handles for operations that lock rows
and must commit or roll back as a single unit.

Usage Examples:
    # Context manager yielding the handle
    with unit_of_work(lock_timeout=5) as uow:
        product = product_repository.get_for_update(uow, product_id)
        uow.advance(TransactionState.PERSISTING)
        ...
"""

import logging
import time
from contextlib import contextmanager
from enum import Enum
from typing import Optional

from django.db import DEFAULT_DB_ALIAS, DatabaseError, IntegrityError, OperationalError, connections, transaction

logger = logging.getLogger(__name__)

# Driver messages / codes that mean "gave up waiting for a row lock"
LOCK_TIMEOUT_SIGNATURES = (
    "lock timeout",  # PostgreSQL: canceling statement due to lock timeout
    "could not obtain lock",  # PostgreSQL NOWAIT (55P03)
    "lock wait timeout exceeded",  # MySQL 1205
    "database is locked",  # SQLite busy timeout
    "database table is locked",
)
LOCK_TIMEOUT_CODES = {"55P03", 1205}

DEADLOCK_SIGNATURES = ("deadlock",)
DEADLOCK_CODES = {"40P01", 1213}


class TransactionError(Exception):
    """Custom exception for transaction-related errors"""

    pass


class LockTimeoutError(TransactionError):
    """Exception raised when a row lock could not be acquired in time"""

    pass


class DeadlockError(TransactionError):
    """Exception raised when a deadlock is detected"""

    pass


class TransactionState(str, Enum):
    """Lifecycle of a unit of work."""

    STARTED = "STARTED"
    VALIDATING = "VALIDATING"
    DECREMENTING = "DECREMENTING"
    PERSISTING = "PERSISTING"
    COMMITTED = "COMMITTED"
    ROLLED_BACK = "ROLLED_BACK"

    @property
    def is_terminal(self) -> bool:
        return self in (TransactionState.COMMITTED, TransactionState.ROLLED_BACK)


_STATE_ORDER = [
    TransactionState.STARTED,
    TransactionState.VALIDATING,
    TransactionState.DECREMENTING,
    TransactionState.PERSISTING,
]


class UnitOfWork:
    """
    Handle for one open database transaction.

    Repositories receive the handle as their first argument and route every
    query through ``uow.using`` so the work joins this transaction. Row locks
    taken through the handle are released only by commit or rollback.

    Attributes:
        using: Database alias the transaction is open on
        lock_timeout: Seconds to wait for a row lock (None = server default)
        state: Current TransactionState
    """

    def __init__(self, using: str = DEFAULT_DB_ALIAS, lock_timeout: Optional[float] = None):
        self.using = using
        self.lock_timeout = lock_timeout
        self.state = TransactionState.STARTED

    @property
    def connection(self):
        return connections[self.using]

    @property
    def vendor(self) -> str:
        return self.connection.vendor

    @property
    def is_active(self) -> bool:
        return not self.state.is_terminal

    def advance(self, state: TransactionState) -> None:
        """
        Move the transaction to a later, non-terminal phase.

        Raises:
            TransactionError: if the handle is closed or the move goes backwards
        """
        if state.is_terminal:
            raise TransactionError(f"{state.value} is set by the transaction boundary, not by callers")
        if not self.is_active:
            raise TransactionError(f"Transaction already {self.state.value}")
        if _STATE_ORDER.index(state) < _STATE_ORDER.index(self.state):
            raise TransactionError(f"Cannot move transaction from {self.state.value} back to {state.value}")

        logger.debug(f"Transaction on '{self.using}': {self.state.value} -> {state.value}")
        self.state = state

    def _close(self, state: TransactionState) -> None:
        logger.debug(f"Transaction on '{self.using}': {self.state.value} -> {state.value}")
        self.state = state

    def __repr__(self):
        return f"<UnitOfWork using={self.using!r} state={self.state.value}>"


def set_lock_timeout(uow: UnitOfWork) -> None:
    """
    Apply ``uow.lock_timeout`` to the current transaction.

    PostgreSQL scopes the value to the transaction (SET LOCAL); MySQL only
    supports it per session. Other vendors keep their default behaviour.
    """
    if uow.lock_timeout is None:
        return

    vendor = uow.vendor
    with uow.connection.cursor() as cursor:
        if vendor == "postgresql":
            cursor.execute(f"SET LOCAL lock_timeout = '{int(uow.lock_timeout * 1000)}ms'")
        elif vendor == "mysql":
            cursor.execute(f"SET SESSION innodb_lock_wait_timeout = {max(1, int(uow.lock_timeout))}")
        else:
            logger.debug(f"Lock timeout not supported on {vendor}, using server default")
            return

    logger.debug(f"Set lock timeout to {uow.lock_timeout}s on {vendor}")


def _error_code(error: DatabaseError):
    cause = error.__cause__
    pgcode = getattr(cause, "pgcode", None) or getattr(cause, "sqlstate", None)
    if pgcode:
        return pgcode
    args = getattr(cause, "args", None) or error.args
    if args and isinstance(args[0], int):
        return args[0]
    return None


def is_lock_timeout(error: DatabaseError) -> bool:
    message = str(error).lower()
    return _error_code(error) in LOCK_TIMEOUT_CODES or any(sig in message for sig in LOCK_TIMEOUT_SIGNATURES)


def is_deadlock(error: DatabaseError) -> bool:
    message = str(error).lower()
    return _error_code(error) in DEADLOCK_CODES or any(sig in message for sig in DEADLOCK_SIGNATURES)


def classify_database_error(error: DatabaseError) -> TransactionError:
    """Map a driver error onto the transaction error hierarchy."""
    if is_lock_timeout(error):
        return LockTimeoutError(f"Timed out waiting for a row lock: {error}")
    if is_deadlock(error):
        return DeadlockError(f"Deadlock detected: {error}")
    return TransactionError(f"Transaction failed: {error}")


@contextmanager
def unit_of_work(using: str = DEFAULT_DB_ALIAS, lock_timeout: Optional[float] = None):
    """
    Open a transaction and yield its explicit handle.

    Commits when the block exits normally. Any exception rolls the whole
    transaction back before it propagates; database lock and integrity
    failures are re-raised as TransactionError subclasses, everything else
    propagates unchanged.

    Args:
        using: Database alias
        lock_timeout: Seconds to wait for row locks (None = server default)

    Usage:
        with unit_of_work() as uow:
            product = repository.get_for_update(uow, product_id)
    """
    uow = UnitOfWork(using=using, lock_timeout=lock_timeout)
    try:
        with transaction.atomic(using=using):
            logger.debug(f"Started transaction on '{using}'")
            set_lock_timeout(uow)
            yield uow
    except (IntegrityError, OperationalError) as e:
        uow._close(TransactionState.ROLLED_BACK)
        translated = classify_database_error(e)
        logger.error(f"Database error in transaction, rolled back: {e}")
        raise translated from e
    except BaseException:
        uow._close(TransactionState.ROLLED_BACK)
        raise

    uow._close(TransactionState.COMMITTED)
    logger.debug("Transaction committed successfully")


@contextmanager
def rollback_safe_operation(operation_name="Unknown"):
    """
    Context manager that logs the outcome and duration of an operation.

    Args:
        operation_name (str): Name of the operation for logging

    Usage:
        with rollback_safe_operation("Order Cancellation"):
            with unit_of_work() as uow:
                ...
    """
    start_time = time.time()
    logger.info(f"Starting rollback-safe operation: {operation_name}")

    try:
        yield
        elapsed = time.time() - start_time
        logger.info(f"Operation '{operation_name}' completed successfully in {elapsed:.3f}s")
    except Exception as e:
        elapsed = time.time() - start_time
        logger.warning(f"Operation '{operation_name}' rolled back after {elapsed:.3f}s: {e}")
        raise

