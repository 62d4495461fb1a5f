"""
Tests for database session management utilities.
"""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, Mock, patch

import pytest
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from vet_scheduling.database.session import (
    SessionManager,
    get_session_manager,
    initialize_session_manager,
    is_transient_error,
)
from vet_scheduling.exceptions import (
    BusinessRuleException,
    DatabaseException,
    TransactionException,
)


class FakeDriverError(Exception):
    def __init__(self, sqlstate):
        super().__init__(f"sqlstate {sqlstate}")
        self.sqlstate = sqlstate


def db_error(cls=DBAPIError, sqlstate=None):
    return cls("INSERT ...", {}, FakeDriverError(sqlstate))


class TestTransientErrors:
    """Test classification of retryable errors."""

    def test_operational_error(self):
        """Test operational errors are transient."""
        assert is_transient_error(db_error(OperationalError))

    @pytest.mark.parametrize("sqlstate", ["40001", "40P01"])
    def test_serialization_and_deadlock(self, sqlstate):
        """Test serialization failures and deadlocks are transient."""
        assert is_transient_error(db_error(sqlstate=sqlstate))

    def test_integrity_error(self):
        """Test constraint violations are not transient."""
        assert not is_transient_error(db_error(IntegrityError, sqlstate="23505"))

    def test_other_exception(self):
        """Test non-database errors are not transient."""
        assert not is_transient_error(ValueError("boom"))


class TestSessionManager:
    """Test cases for SessionManager class."""

    def test_session_manager_initialization(self):
        """Test SessionManager initialization."""
        mock_engine = Mock()
        manager = SessionManager(mock_engine)

        assert manager.engine == mock_engine
        assert manager.session_factory is not None

    @pytest.mark.asyncio
    async def test_get_session_with_exception(self):
        """Test get_session rolls back and closes on error."""
        manager = SessionManager(Mock())
        mock_session = AsyncMock()

        with patch.object(manager, "create_session", return_value=mock_session):
            with pytest.raises(ValueError):
                async with manager.get_session():
                    raise ValueError("Test error")

            mock_session.rollback.assert_called_once()
            mock_session.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_get_transaction_sets_isolation_level(self):
        """Test the isolation level is applied on PostgreSQL."""
        mock_engine = Mock()
        mock_engine.dialect.name = "postgresql"
        manager = SessionManager(mock_engine)
        mock_session = AsyncMock()

        @asynccontextmanager
        async def mock_begin():
            yield None

        mock_session.begin = mock_begin

        with patch.object(manager, "get_session") as mock_get_session:
            mock_get_session.return_value.__aenter__.return_value = mock_session

            async with manager.get_transaction("SERIALIZABLE") as session:
                assert session == mock_session

        mock_session.connection.assert_awaited_once_with(
            execution_options={"isolation_level": "SERIALIZABLE"}
        )

    @pytest.mark.asyncio
    async def test_get_transaction_skips_isolation_on_sqlite(self):
        """Test SQLite transactions are left at their default isolation."""
        mock_engine = Mock()
        mock_engine.dialect.name = "sqlite"
        manager = SessionManager(mock_engine)
        mock_session = AsyncMock()

        @asynccontextmanager
        async def mock_begin():
            yield None

        mock_session.begin = mock_begin

        with patch.object(manager, "get_session") as mock_get_session:
            mock_get_session.return_value.__aenter__.return_value = mock_session

            async with manager.get_transaction("SERIALIZABLE"):
                pass

        mock_session.connection.assert_not_called()

    @pytest.mark.asyncio
    async def test_execute_in_transaction_success(self):
        """Test execute_in_transaction with successful operation."""
        manager = SessionManager(Mock())

        async def double(session, value):
            return value * 2

        with patch.object(manager, "get_transaction") as mock_get_transaction:
            mock_get_transaction.return_value.__aenter__.return_value = AsyncMock()

            assert await manager.execute_in_transaction(double, 5) == 10

    @pytest.mark.asyncio
    async def test_execute_in_transaction_wraps_errors(self):
        """Test database errors become TransactionException."""
        manager = SessionManager(Mock())

        async def failing(session):
            raise db_error(IntegrityError)

        with patch.object(manager, "get_transaction") as mock_get_transaction:
            mock_get_transaction.return_value.__aenter__.return_value = AsyncMock()

            with pytest.raises(TransactionException) as exc_info:
                await manager.execute_in_transaction(failing)

        assert exc_info.value.details["operation"] == "failing"

    @pytest.mark.asyncio
    async def test_execute_in_transaction_passes_domain_errors(self):
        """Test package exceptions are not wrapped."""
        manager = SessionManager(Mock())

        async def failing(session):
            raise BusinessRuleException("Not allowed", rule_name="test_rule")

        with patch.object(manager, "get_transaction") as mock_get_transaction:
            mock_get_transaction.return_value.__aenter__.return_value = AsyncMock()

            with pytest.raises(BusinessRuleException):
                await manager.execute_in_transaction(failing)


class TestExecuteWithRetry:
    """Test the retry wrapper."""

    @pytest.mark.asyncio
    async def test_success_first_attempt(self):
        """Test a successful operation runs once."""
        manager = SessionManager(Mock())
        operation = AsyncMock(return_value="booked")

        with patch.object(manager, "get_transaction") as mock_get_transaction:
            mock_get_transaction.return_value.__aenter__.return_value = AsyncMock()

            result = await manager.execute_with_retry(
                operation, isolation_level="SERIALIZABLE"
            )

        assert result == "booked"
        operation.assert_awaited_once()
        mock_get_transaction.assert_called_once_with("SERIALIZABLE")

    @pytest.mark.asyncio
    async def test_retries_serialization_failure(self):
        """Test the whole operation is re-run after a serialization failure."""
        manager = SessionManager(Mock())
        operation = AsyncMock(side_effect=[db_error(sqlstate="40001"), "booked"])

        with patch.object(manager, "get_transaction") as mock_get_transaction, patch(
            "vet_scheduling.database.session.asyncio.sleep", new=AsyncMock()
        ) as mock_sleep:
            mock_get_transaction.return_value.__aenter__.return_value = AsyncMock()

            result = await manager.execute_with_retry(operation, retry_delay=0.5)

        assert result == "booked"
        assert operation.await_count == 2
        mock_sleep.assert_awaited_once_with(0.5)

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        """Test persistent transient failures raise DatabaseException."""
        manager = SessionManager(Mock())
        operation = AsyncMock(side_effect=db_error(OperationalError))

        with patch.object(manager, "get_transaction") as mock_get_transaction, patch(
            "vet_scheduling.database.session.asyncio.sleep", new=AsyncMock()
        ) as mock_sleep:
            mock_get_transaction.return_value.__aenter__.return_value = AsyncMock()

            with pytest.raises(DatabaseException) as exc_info:
                await manager.execute_with_retry(operation, max_retries=2, retry_delay=1.0)

        assert operation.await_count == 3
        assert [c.args[0] for c in mock_sleep.await_args_list] == [1.0, 2.0]
        assert exc_info.value.retry_count == 2
        assert "after 3 attempts" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_non_transient_error_not_retried(self):
        """Test constraint violations fail immediately."""
        manager = SessionManager(Mock())
        operation = AsyncMock(side_effect=db_error(IntegrityError))

        with patch.object(manager, "get_transaction") as mock_get_transaction:
            mock_get_transaction.return_value.__aenter__.return_value = AsyncMock()

            with pytest.raises(DatabaseException):
                await manager.execute_with_retry(operation)

        operation.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_domain_errors_pass_through(self):
        """Test package exceptions raised by the operation are not retried."""
        manager = SessionManager(Mock())
        operation = AsyncMock(side_effect=BusinessRuleException("Not allowed"))

        with patch.object(manager, "get_transaction") as mock_get_transaction:
            mock_get_transaction.return_value.__aenter__.return_value = AsyncMock()

            with pytest.raises(BusinessRuleException):
                await manager.execute_with_retry(operation)

        operation.assert_awaited_once()


class TestHealthCheck:
    """Test the health check against a real engine."""

    @pytest.mark.asyncio
    async def test_healthy(self, session_manager):
        """Test a working database reports healthy."""
        assert await session_manager.health_check() == {"status": "healthy"}


class TestGlobalSessionManager:
    """Test the module-level session manager."""

    def test_initialize_and_get(self):
        """Test initialization makes the manager retrievable."""
        manager = initialize_session_manager(Mock())

        assert get_session_manager() is manager

    def test_not_initialized(self):
        """Test a missing manager raises RuntimeError."""
        with patch("vet_scheduling.database.session._session_manager", None):
            with pytest.raises(RuntimeError):
                get_session_manager()
