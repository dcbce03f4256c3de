"""Unit tests for simplenotes.backend.core.resilience."""

import errno
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from simplenotes.backend.core.database import PoolUnavailableError
from simplenotes.backend.core.resilience import (
    QueryExecutor,
    error_code,
    is_connection_error,
    log_retry,
)


class _DriverError(Exception):
    """Driver exception carrying an asyncpg-style sqlstate."""

    def __init__(self, message: str, sqlstate: str) -> None:
        super().__init__(message)
        self.sqlstate = sqlstate


class TestIsConnectionError:
    @pytest.mark.parametrize(
        "exc",
        [
            ConnectionRefusedError(),
            ConnectionResetError(),
            PoolUnavailableError("no url"),
            Exception("Connection terminated unexpectedly"),
            _DriverError("terminating due to administrator command", "57P01"),
            _DriverError("could not establish", "08001"),
            OSError(errno.ECONNREFUSED, "refused"),
            TimeoutError(),
        ],
    )
    def test_connection_class(self, exc):
        assert is_connection_error(exc) is True

    @pytest.mark.parametrize(
        "exc",
        [
            ValueError("invalid literal"),
            _DriverError('relation "notes" does not exist', "42P01"),
            KeyError("id"),
        ],
    )
    def test_not_connection_class(self, exc):
        assert is_connection_error(exc) is False

    def test_wrapped_driver_error_is_found_through_orig(self):
        orig = _DriverError("server closed the socket", "08006")
        wrapped = OperationalError("SELECT 1", {}, orig)

        assert is_connection_error(wrapped) is True

    def test_invalidated_dbapi_error(self):
        wrapped = DBAPIError("SELECT 1", {}, Exception("boom"), connection_invalidated=True)

        assert is_connection_error(wrapped) is True

    def test_cause_chain_is_followed(self):
        try:
            try:
                raise ConnectionResetError("reset")
            except ConnectionResetError as inner:
                raise RuntimeError("query failed") from inner
        except RuntimeError as outer:
            assert is_connection_error(outer) is True

    def test_sql_parameters_mentioning_connection_do_not_count(self):
        orig = _DriverError("duplicate key value violates unique constraint", "23505")
        wrapped = IntegrityError(
            "INSERT INTO notes (title) VALUES ($1)",
            ("my connection notes",),
            orig,
        )

        assert is_connection_error(wrapped) is False


class TestErrorCode:
    def test_sqlstate(self):
        assert error_code(_DriverError("x", "57P01")) == "57P01"

    def test_pgcode(self):
        exc = Exception("x")
        exc.pgcode = "08003"
        assert error_code(exc) == "08003"

    def test_errno_name(self):
        assert error_code(OSError(errno.ECONNRESET, "reset")) == "ECONNRESET"

    def test_none(self):
        assert error_code(ValueError("x")) is None


class TestLogRetry:
    def test_emits_structured_event(self):
        retry_state = MagicMock()
        retry_state.attempt_number = 1
        retry_state.start_time = 10.0
        retry_state.outcome_timestamp = 10.25
        retry_state.outcome.failed = True
        retry_state.outcome.exception.return_value = ConnectionResetError("reset")

        with patch("simplenotes.backend.core.resilience.logger") as mock_logger:
            log_retry(retry_state, dependency="database")

        mock_logger.warning.assert_called_once()
        extra = mock_logger.warning.call_args.kwargs["extra"]
        assert extra["resilience_event"] == "retry_attempt"
        assert extra["dependency"] == "database"
        assert extra["attempt"] == 1
        assert extra["duration_ms"] == 250
        assert extra["error"] == "reset"


class TestQueryExecutor:
    @pytest.fixture
    def supervisor(self) -> MagicMock:
        supervisor = MagicMock()
        supervisor.schedule_probe = MagicMock()
        supervisor.probe = AsyncMock(return_value=True)
        return supervisor

    @pytest.fixture
    def executor(self, supervisor: MagicMock) -> QueryExecutor:
        return QueryExecutor(supervisor, max_retries=1, retry_delay=0)

    @pytest.mark.asyncio
    async def test_success_on_first_attempt(self, executor, supervisor):
        operation = AsyncMock(return_value="rows")

        assert await executor.execute(operation) == "rows"

        operation.assert_awaited_once()
        supervisor.schedule_probe.assert_called_once()
        supervisor.probe.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_one_connection_failure_is_retried(self, executor, supervisor):
        operation = AsyncMock(side_effect=[ConnectionResetError("reset"), "rows"])

        assert await executor.execute(operation) == "rows"

        assert operation.await_count == 2
        supervisor.probe.assert_awaited_once_with(force=True)

    @pytest.mark.asyncio
    async def test_retry_budget_is_one(self, executor, supervisor):
        operation = AsyncMock(
            side_effect=[ConnectionRefusedError(), ConnectionRefusedError(), "rows"]
        )

        with pytest.raises(ConnectionRefusedError):
            await executor.execute(operation)

        assert operation.await_count == 2
        supervisor.probe.assert_awaited_once_with(force=True)

    @pytest.mark.asyncio
    async def test_non_connection_error_is_not_retried(self, executor, supervisor):
        operation = AsyncMock(side_effect=ValueError("bad input"))

        with pytest.raises(ValueError):
            await executor.execute(operation)

        operation.assert_awaited_once()
        supervisor.probe.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_zero_retries(self, supervisor):
        executor = QueryExecutor(supervisor, max_retries=0, retry_delay=0)
        operation = AsyncMock(side_effect=ConnectionRefusedError())

        with pytest.raises(ConnectionRefusedError):
            await executor.execute(operation)

        operation.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_retry_is_logged(self, executor):
        operation = AsyncMock(side_effect=[ConnectionResetError("reset"), "rows"])

        with patch("simplenotes.backend.core.resilience.logger") as mock_logger:
            await executor.execute(operation)

        mock_logger.warning.assert_called_once()
        assert mock_logger.warning.call_args.kwargs["extra"]["dependency"] == "database"

    def test_from_config(self, supervisor):
        db_config = MagicMock()
        db_config.executor.max_retries = 2
        db_config.executor.retry_delay_ms = 250

        executor = QueryExecutor.from_config(supervisor, db_config)

        assert executor.max_retries == 2
        assert executor.retry_delay == 0.25
