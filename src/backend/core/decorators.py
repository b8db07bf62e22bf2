"""
Centralized error handling decorators for database operations.
Provides reusable decorators that wrap service methods with transaction
handling, error classification and operation logging.
"""
import functools
import inspect
import logging
import traceback
from typing import Any, Callable, Optional

from sqlalchemy.exc import (
    DisconnectionError,
    IntegrityError,
    InvalidRequestError,
    OperationalError,
    PendingRollbackError,
    SQLAlchemyError,
    StatementError,
    TimeoutError,
)
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import AppError


logger = logging.getLogger(__name__)


class DatabaseErrorHandler:
    """Centralized database error handling utilities."""

    DATABASE_EXCEPTIONS = (
        SQLAlchemyError,
        IntegrityError,
        OperationalError,
        DisconnectionError,
        TimeoutError,
        StatementError,
        InvalidRequestError,
        PendingRollbackError,
        ConnectionError,
    )

    @staticmethod
    def handle_database_error(
        exc: Exception,
        operation: str,
        context: Optional[dict] = None
    ) -> tuple[bool, str]:
        """
        Classify a database error and build its log message.

        Args:
            exc: The exception that occurred
            operation: Description of the database operation
            context: Additional context information

        Returns:
            Tuple of (is_recoverable, error_message)
        """
        context_str = f" | Context: {context}" if context else ""

        if isinstance(exc, IntegrityError):
            return False, f"Database integrity error during {operation}: {exc}{context_str}"
        if isinstance(exc, (ConnectionError, DisconnectionError)):
            return True, f"Database connection error during {operation}: {exc}{context_str}"
        if isinstance(exc, TimeoutError):
            return True, f"Database timeout during {operation}: {exc}{context_str}"
        if isinstance(exc, OperationalError):
            return True, f"Database operational error during {operation}: {exc}{context_str}"
        if isinstance(exc, StatementError):
            return False, f"Database statement error during {operation}: {exc}{context_str}"
        return False, (
            f"Unexpected database error during {operation}: "
            f"{type(exc).__name__}: {exc}{context_str}"
        )


def _is_async(func: Callable) -> bool:
    return inspect.iscoroutinefunction(func) or inspect.iscoroutinefunction(
        getattr(func, "__wrapped__", None)
    )


def _find_session(args: tuple, kwargs: dict) -> Optional[AsyncSession]:
    for value in (*args, *kwargs.values()):
        if isinstance(value, AsyncSession):
            return value
    return None


def handle_database_exceptions(
    operation_name: Optional[str] = None,
    log_level: str = "error"
) -> Callable:
    """
    Decorator to wrap async database operations with error logging.

    Application errors (validation, permission, not found) are expected
    outcomes and pass through untouched. Database errors are classified,
    logged at ``log_level`` and re-raised. Anything else is logged with its
    traceback and re-raised.
    """
    def decorator(func: Callable) -> Callable:
        if not _is_async(func):
            raise TypeError(f"{func.__name__} must be async to use handle_database_exceptions")

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs) -> Any:
            operation = operation_name or getattr(func, "__name__", "unknown")
            try:
                result = await func(*args, **kwargs)
                logger.debug(f"Successfully completed {operation}")
                return result
            except AppError:
                raise
            except DatabaseErrorHandler.DATABASE_EXCEPTIONS as exc:
                context = {
                    "function": getattr(func, "__name__", "unknown"),
                    "kwargs_keys": list(kwargs.keys()),
                }
                _, error_msg = DatabaseErrorHandler.handle_database_error(exc, operation, context)
                getattr(logger, log_level)(error_msg)
                raise
            except Exception as exc:
                logger.error(
                    f"Unexpected error in {operation}: {type(exc).__name__}: {exc}\n"
                    f"Traceback: {traceback.format_exc()}"
                )
                raise

        return async_wrapper

    return decorator


def database_transaction(
    operation_name: Optional[str] = None,
    commit_on_success: bool = True,
    rollback_on_error: bool = True
) -> Callable:
    """
    Decorator to run an async operation as one transaction.

    The AsyncSession is located among the call arguments. Everything the
    operation flushed is committed together on success and rolled back
    together on any error.
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs) -> Any:
            operation = operation_name or getattr(func, "__name__", "unknown")
            db_session = _find_session(args, kwargs)

            if db_session is None:
                logger.warning(f"No AsyncSession found for transaction operation {operation}")
                return await func(*args, **kwargs)

            try:
                logger.debug(f"Starting database transaction for {operation}")
                result = await func(*args, **kwargs)

                if commit_on_success:
                    await db_session.commit()
                    logger.debug(f"Transaction committed for {operation}")

                return result

            except Exception:
                if rollback_on_error:
                    try:
                        await db_session.rollback()
                        logger.debug(f"Transaction rolled back for {operation} due to error")
                    except SQLAlchemyError as rollback_exc:
                        logger.error(f"Failed to rollback transaction for {operation}: {rollback_exc}")
                raise

        return async_wrapper

    return decorator


def log_database_operation(
    operation: str,
    level: str = "debug"
) -> Callable:
    """
    Decorator to log the start, completion and failure of an operation.

    Args:
        operation: Description of the operation
        level: Logging level ('debug', 'info', 'warning', 'error')
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs) -> Any:
            logger_method = getattr(logger, level)
            func_name = getattr(func, "__name__", "unknown")
            logger_method(f"Starting {operation} via {func_name}")

            try:
                result = await func(*args, **kwargs)
                logger_method(f"Completed {operation} via {func_name}")
                return result
            except Exception as exc:
                logger_method(f"Failed {operation} via {func_name}: {exc}")
                raise

        return async_wrapper

    return decorator


def critical_database_operation(func=None, operation_name: Optional[str] = None) -> Callable:
    """
    Critical database operation decorator that always logs errors and reraises.
    Use for reads whose failure must surface to the caller.

    Can be used with or without parentheses:
        @critical_database_operation
        @critical_database_operation()
        @critical_database_operation("custom name")
    """
    def decorator(f: Callable) -> Callable:
        return handle_database_exceptions(operation_name=operation_name, log_level="error")(f)

    if func is None:
        return decorator
    if callable(func):
        return decorator(func)
    return critical_database_operation(operation_name=func)


def transactional_database_operation(func=None, operation_name: Optional[str] = None) -> Callable:
    """
    Combined decorator for transactional database operations with error handling.

    Can be used with or without parentheses:
        @transactional_database_operation
        @transactional_database_operation()
        @transactional_database_operation("operation_name")
    """
    def decorator(f: Callable) -> Callable:
        transaction_decorated = database_transaction(operation_name=operation_name)(f)
        return handle_database_exceptions(operation_name=operation_name)(transaction_decorated)

    if func is None:
        return decorator
    if callable(func):
        return decorator(func)
    return transactional_database_operation(operation_name=func)
