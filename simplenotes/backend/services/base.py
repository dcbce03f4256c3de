"""
Base Service.

A service operation is one repository call. BaseService opens a session for
it on the supervisor's current pool, hands the attempt to the QueryExecutor
(which owns the single retry), and turns whatever escapes into the error
the API reports:

    connection-class failure  -> DatabaseUnavailableError  (503)
    other SQLAlchemy failure  -> DatabaseError             (500)
    ApplicationError          -> unchanged
    anything else             -> unchanged (caught by the 500 fallback)
"""

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from simplenotes.backend.core.exceptions import (
    ApplicationError,
    DatabaseError,
    DatabaseUnavailableError,
)
from simplenotes.backend.core.logging import get_logger
from simplenotes.backend.core.resilience import QueryExecutor, is_connection_error

T = TypeVar("T")


class BaseService:
    def __init__(self, executor: QueryExecutor) -> None:
        self._executor = executor
        self._logger = get_logger(type(self).__module__)

    @property
    def executor(self) -> QueryExecutor:
        return self._executor

    async def _run_in_session(
        self,
        operation: str,
        work: Callable[[AsyncSession], Awaitable[T]],
    ) -> T:
        """
        Run ``work`` through the executor, opening a new session per attempt.

        A retry that follows a pool recreation therefore lands on the new pool.
        """
        supervisor = self._executor.supervisor

        async def attempt() -> T:
            async with supervisor.session() as session:
                return await work(session)

        try:
            return await self._executor.execute(attempt)
        except ApplicationError:
            raise
        except Exception as e:
            translated = self._translate(operation, e)
            if translated is None:
                raise
            raise translated from e

    def _translate(self, operation: str, error: Exception) -> ApplicationError | None:
        if is_connection_error(error):
            self._logger.error("Database unavailable", extra={"operation": operation, "error": str(error)})
            return DatabaseUnavailableError()
        if isinstance(error, SQLAlchemyError):
            self._logger.error("Database error", extra={"operation": operation, "error": str(error)})
            return DatabaseError(f"Database operation failed: {operation}")
        return None

    def _log_operation(self, operation: str, **context: Any) -> None:
        self._logger.info(operation, extra={"service": type(self).__name__, **context})
