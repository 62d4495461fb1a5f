"""
Database session management utilities for the vet-scheduling package.

This module provides the async session factory, transaction helpers, and the
retry wrapper that booking writes run through.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Awaitable, Callable, Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, DisconnectionError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ..exceptions import DatabaseException, TransactionException, VetSchedulingException

logger = logging.getLogger(__name__)

# serialization_failure, deadlock_detected
RETRYABLE_SQLSTATES = ("40001", "40P01")


def is_transient_error(error: Exception) -> bool:
    """
    Check whether a database error is worth retrying.

    Disconnects and operational errors are transient, as are PostgreSQL
    serialization failures and deadlocks raised under strict isolation.
    """
    if isinstance(error, (DisconnectionError, OperationalError)):
        return True
    if isinstance(error, DBAPIError):
        return DatabaseException.sqlstate_of(error) in RETRYABLE_SQLSTATES
    return False


def _operation_name(operation: Any) -> str:
    return operation.__name__ if hasattr(operation, "__name__") else str(operation)


class SessionManager:
    """Manages database sessions and provides transaction utilities."""

    def __init__(
        self, engine: AsyncEngine, session_config: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize session manager with database engine.

        Args:
            engine: SQLAlchemy async engine
            session_config: Optional session configuration overrides
        """
        self.engine = engine

        default_config = {
            "expire_on_commit": False,
            "autoflush": True,
        }
        if session_config:
            default_config.update(session_config)

        self.session_factory = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            autoflush=default_config["autoflush"],
            expire_on_commit=default_config["expire_on_commit"],
        )

    async def create_session(self) -> AsyncSession:
        """
        Create a new database session.

        Returns:
            New async database session
        """
        return self.session_factory()

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Context manager for database sessions with automatic cleanup.

        Yields:
            Database session

        Example:
            async with session_manager.get_session() as session:
                result = await session.execute(select(Appointment))
        """
        session = await self.create_session()
        try:
            yield session
        except Exception as e:
            await session.rollback()
            logger.error(f"Session error, rolling back: {e}")
            raise
        finally:
            await session.close()

    @asynccontextmanager
    async def get_transaction(
        self, isolation_level: Optional[str] = None
    ) -> AsyncGenerator[AsyncSession, None]:
        """
        Context manager for database transactions with automatic commit/rollback.

        Args:
            isolation_level: Optional isolation level for this transaction,
                e.g. ``"SERIALIZABLE"``

        Yields:
            Database session within a transaction

        Example:
            async with session_manager.get_transaction("SERIALIZABLE") as session:
                session.add(appointment)
                # Transaction is automatically committed on success
        """
        async with self.get_session() as session:
            async with session.begin():
                # SQLite transactions are serializable already
                if isolation_level and self.engine.dialect.name != "sqlite":
                    await session.connection(
                        execution_options={"isolation_level": isolation_level}
                    )
                try:
                    yield session
                except Exception as e:
                    logger.error(f"Transaction error, rolling back: {e}")
                    raise

    async def execute_in_transaction(
        self, operation: Any, *args: Any, **kwargs: Any
    ) -> Any:
        """
        Execute an operation within a transaction.

        Args:
            operation: Async function to execute
            *args: Arguments to pass to the operation
            **kwargs: Keyword arguments to pass to the operation

        Returns:
            Result of the operation

        Raises:
            TransactionException: If database transaction fails
        """
        async with self.get_transaction() as session:
            try:
                return await operation(session, *args, **kwargs)
            except VetSchedulingException:
                raise
            except SQLAlchemyError as e:
                logger.error(f"Database operation failed: {e}")
                raise TransactionException(
                    "Database transaction failed",
                    operation=_operation_name(operation),
                    original_error=e,
                )
            except Exception as e:
                logger.error(f"Unexpected error in transaction: {e}")
                raise TransactionException(
                    "Unexpected error in transaction",
                    operation=_operation_name(operation),
                    original_error=e,
                )

    async def health_check(self) -> Dict[str, Any]:
        """
        Run a trivial query and report whether the database answers.

        Returns:
            Dictionary with ``status`` of ``healthy`` or ``unhealthy``
        """
        try:
            async with self.get_session() as session:
                await session.execute(text("SELECT 1"))
            return {"status": "healthy"}
        except SQLAlchemyError as e:
            logger.error(f"Database error during health check: {e}")
            return {"status": "unhealthy", "error": str(e)}

    async def close_all_sessions(self) -> None:
        """Close all active sessions and dispose of the engine."""
        await self.engine.dispose()
        logger.info("All database sessions and connections closed")

    async def execute_with_retry(
        self,
        operation: Callable[[AsyncSession], Awaitable[Any]],
        max_retries: int = 3,
        retry_delay: float = 1.0,
        exponential_backoff: bool = True,
        isolation_level: Optional[str] = None,
    ) -> Any:
        """
        Execute a database operation in one transaction, retrying transient failures.

        The whole operation is re-run on each attempt, so reads done inside
        it (such as capacity counts) are repeated against fresh state.

        Args:
            operation: Async function that takes a session and returns a result
            max_retries: Maximum number of retry attempts
            retry_delay: Initial delay between retries in seconds
            exponential_backoff: Whether to use exponential backoff
            isolation_level: Isolation level for each attempt's transaction

        Returns:
            Result of the operation

        Raises:
            VetSchedulingException: Raised by the operation itself, unchanged
            DatabaseException: If operation fails after all retries
        """
        last_exception: Optional[Exception] = None

        for attempt in range(max_retries + 1):
            try:
                async with self.get_transaction(isolation_level) as session:
                    return await operation(session)

            except VetSchedulingException:
                raise

            except Exception as e:
                if not is_transient_error(e):
                    logger.error(f"Non-retryable database operation error: {e}")
                    raise DatabaseException(
                        "Database operation failed",
                        details={"operation": _operation_name(operation)},
                        original_error=e,
                    )

                last_exception = e
                if attempt < max_retries:
                    delay = retry_delay * (2**attempt if exponential_backoff else 1)
                    logger.warning(
                        f"Database operation failed (attempt {attempt + 1}/{max_retries + 1}), "
                        f"retrying in {delay}s: {e}",
                        extra={"operation": _operation_name(operation)},
                    )
                    await asyncio.sleep(delay)
                else:
                    logger.error(
                        f"Database operation failed after {max_retries + 1} attempts: {e}"
                    )

        raise DatabaseException(
            f"Database operation failed after {max_retries + 1} attempts",
            details={"operation": _operation_name(operation)},
            original_error=last_exception,
            retry_count=max_retries,
        )


# Global session manager instance (will be initialized by application)
_session_manager: Optional[SessionManager] = None


def initialize_session_manager(engine: AsyncEngine) -> SessionManager:
    """
    Initialize the global session manager.

    Args:
        engine: SQLAlchemy async engine

    Returns:
        Initialized session manager
    """
    global _session_manager
    _session_manager = SessionManager(engine)
    logger.info("Session manager initialized")
    return _session_manager


def get_session_manager() -> SessionManager:
    """
    Get the global session manager instance.

    Raises:
        RuntimeError: If session manager is not initialized
    """
    if _session_manager is None:
        raise RuntimeError(
            "Session manager not initialized. Call initialize_session_manager() first."
        )
    return _session_manager
