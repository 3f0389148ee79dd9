from unittest.mock import patch

import pytest
from django.db import IntegrityError, OperationalError

from utils.transaction_utils import (
    DeadlockError,
    LockTimeoutError,
    TransactionError,
    TransactionState,
    UnitOfWork,
    classify_database_error,
    is_deadlock,
    is_lock_timeout,
    set_lock_timeout,
    unit_of_work,
)


class FakeDriverError(Exception):
    def __init__(self, message, pgcode=None):
        super().__init__(message)
        self.pgcode = pgcode


def wrapped(django_error_class, cause):
    error = django_error_class(str(cause))
    error.__cause__ = cause
    return error


@pytest.mark.unit
class TestErrorClassification:
    def test_postgres_lock_timeout_by_sqlstate(self):
        error = wrapped(OperationalError, FakeDriverError("canceling statement", pgcode="55P03"))
        assert is_lock_timeout(error)
        assert isinstance(classify_database_error(error), LockTimeoutError)

    def test_mysql_lock_wait_timeout_by_errno(self):
        error = wrapped(OperationalError, FakeDriverError(1205, None))
        assert is_lock_timeout(error)

    def test_sqlite_database_locked(self):
        error = OperationalError("database is locked")
        assert isinstance(classify_database_error(error), LockTimeoutError)

    def test_deadlock(self):
        error = wrapped(OperationalError, FakeDriverError("deadlock detected", pgcode="40P01"))
        assert is_deadlock(error)
        assert not is_lock_timeout(error)
        assert isinstance(classify_database_error(error), DeadlockError)

    def test_other_errors_are_plain_transaction_errors(self):
        error = IntegrityError("UNIQUE constraint failed: marketplace_payment.transaction_id")
        assert type(classify_database_error(error)) is TransactionError


@pytest.mark.unit
class TestUnitOfWorkStates:
    def test_advances_forward(self):
        uow = UnitOfWork()
        uow.advance(TransactionState.VALIDATING)
        uow.advance(TransactionState.DECREMENTING)
        uow.advance(TransactionState.PERSISTING)
        assert uow.state == TransactionState.PERSISTING
        assert uow.is_active

    def test_cannot_move_backwards(self):
        uow = UnitOfWork()
        uow.advance(TransactionState.PERSISTING)
        with pytest.raises(TransactionError):
            uow.advance(TransactionState.VALIDATING)

    @pytest.mark.parametrize("state", [TransactionState.COMMITTED, TransactionState.ROLLED_BACK])
    def test_terminal_states_belong_to_the_boundary(self, state):
        uow = UnitOfWork()
        with pytest.raises(TransactionError):
            uow.advance(state)

    def test_closed_handle_rejects_advance(self):
        uow = UnitOfWork()
        uow._close(TransactionState.COMMITTED)
        assert not uow.is_active
        with pytest.raises(TransactionError):
            uow.advance(TransactionState.VALIDATING)


@pytest.mark.django_db
class TestUnitOfWorkBoundary:
    def test_commits_on_normal_exit(self):
        with unit_of_work() as uow:
            assert uow.state == TransactionState.STARTED
        assert uow.state == TransactionState.COMMITTED

    def test_rolls_back_and_reraises(self):
        with pytest.raises(ValueError):
            with unit_of_work() as uow:
                raise ValueError("boom")
        assert uow.state == TransactionState.ROLLED_BACK

    def test_translates_database_errors_after_rollback(self):
        with pytest.raises(LockTimeoutError) as exc_info:
            with unit_of_work() as uow:
                raise OperationalError("database is locked")
        assert uow.state == TransactionState.ROLLED_BACK
        assert isinstance(exc_info.value.__cause__, OperationalError)

    def test_lock_timeout_ignored_without_vendor_support(self):
        uow = UnitOfWork(lock_timeout=2)
        with patch.object(UnitOfWork, "vendor", new="sqlite"):
            # No statement is issued for vendors without a lock timeout setting
            with patch.object(UnitOfWork, "connection") as connection:
                set_lock_timeout(uow)
                connection.cursor.return_value.__enter__.return_value.execute.assert_not_called()

    def test_lock_timeout_postgres_statement(self):
        uow = UnitOfWork(lock_timeout=2.5)
        with patch.object(UnitOfWork, "vendor", new="postgresql"):
            with patch.object(UnitOfWork, "connection") as connection:
                set_lock_timeout(uow)
        cursor = connection.cursor.return_value.__enter__.return_value
        cursor.execute.assert_called_once_with("SET LOCAL lock_timeout = '2500ms'")
