"""
Resilience Infrastructure.

Connection-error classification, the retry logging callback, and the
QueryExecutor that wraps every database operation.

The executor applies a deliberately small policy:

    nudge liveness probe (not awaited) → attempt
        ├─ success                      → result
        ├─ non-connection error         → raise immediately
        └─ connection error, budget left → wait → forced probe → attempt again
                                           (outcome returned or raised as-is)

Usage:
    from simplenotes.backend.core.resilience import QueryExecutor

    executor = QueryExecutor(supervisor, max_retries=1, retry_delay=0.5)

    async def load_notes():
        async with supervisor.session() as session:
            return await NoteRepository(session).get_all_active()

    notes = await executor.execute(load_notes)

Retries are logged as structured events:

    jq 'select(.resilience_event == "retry_attempt")' logs/system.jsonl
"""

import errno
from collections.abc import Awaitable, Callable, Iterator
from functools import partial
from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy.exc import DBAPIError, StatementError
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

from simplenotes.backend.core.logging import get_logger

if TYPE_CHECKING:
    from simplenotes.backend.core.config_schema import DatabaseSchema
    from simplenotes.backend.core.database import ConnectionSupervisor

logger = get_logger(__name__)

T = TypeVar("T")

CONNECTION_ERROR_CODES = frozenset({
    "08000",  # connection_exception
    "08001",  # sqlclient_unable_to_establish_sqlconnection
    "08003",  # connection_does_not_exist
    "08004",  # sqlserver_rejected_establishment_of_sqlconnection
    "08006",  # connection_failure
    "57P01",  # admin_shutdown
    "57P02",  # crash_shutdown
    "57P03",  # cannot_connect_now
    "ECONNREFUSED",
    "ECONNRESET",
})
"""Driver and socket codes that denote a terminated or unavailable connection."""


def _error_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield exc and every exception wrapped by it (orig, cause, context)."""
    seen: set[int] = set()
    pending: list[BaseException | None] = [exc]
    while pending:
        current = pending.pop()
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        pending.append(getattr(current, "orig", None))
        pending.append(current.__cause__)
        pending.append(current.__context__)


def error_code(exc: BaseException) -> str | None:
    """
    Extract a driver-level error code from a single exception.

    Looks at asyncpg's ``sqlstate``, psycopg's ``pgcode`` and, for socket
    errors, the symbolic errno name (e.g. ``ECONNREFUSED``).
    """
    for attr in ("sqlstate", "pgcode"):
        code = getattr(exc, attr, None)
        if code:
            return str(code)
    if isinstance(exc, OSError) and exc.errno:
        return errno.errorcode.get(exc.errno)
    return None


def is_connection_error(exc: BaseException) -> bool:
    """
    Decide whether a failure is connection-class.

    Connection-class errors are the only ones worth retrying: the pool may
    have gone stale while idle, and a fresh connection can succeed. A bare
    TimeoutError counts: asyncpg raises one, with no message, when
    connect_timeout expires. Query errors, constraint violations and bad
    input are never connection-class.
    """
    for err in _error_chain(exc):
        if isinstance(err, (ConnectionError, TimeoutError)):
            return True
        if isinstance(err, DBAPIError) and err.connection_invalidated:
            return True
        # Statement wrappers embed SQL parameters; judge them by their orig.
        if not isinstance(err, StatementError) and "connection" in str(err).lower():
            return True
        if error_code(err) in CONNECTION_ERROR_CODES:
            return True
    return False


def log_retry(retry_state: Any, dependency: str | None = None) -> None:
    """Tenacity before_sleep callback that emits structured retry events.

    Pass this as `before_sleep=log_retry` in any retrying policy, or bind the
    dependency name with functools.partial when there is no wrapped function.

    Args:
        retry_state: tenacity.RetryCallState instance
        dependency: Name of the dependency being retried (defaults to the
            wrapped function's name)
    """
    duration_ms = None
    if retry_state.outcome_timestamp and retry_state.start_time:
        duration_ms = round(
            (retry_state.outcome_timestamp - retry_state.start_time) * 1000
        )

    error = None
    if retry_state.outcome and retry_state.outcome.failed:
        error = str(retry_state.outcome.exception())

    name = dependency or getattr(retry_state.fn, "__name__", "unknown")

    logger.warning(
        f"Retrying {name} (attempt {retry_state.attempt_number})",
        extra={
            "resilience_event": "retry_attempt",
            "dependency": name,
            "attempt": retry_state.attempt_number,
            "duration_ms": duration_ms,
            "error": error,
        },
    )


class QueryExecutor:
    """
    Runs one database operation with at most ``max_retries`` retries.

    The operation is a zero-argument coroutine function that issues one
    logical query against the supervisor's *current* pool; it is re-invoked
    on retry so that a recreated pool is picked up.
    """

    def __init__(
        self,
        supervisor: "ConnectionSupervisor",
        max_retries: int = 1,
        retry_delay: float = 0.5,
    ) -> None:
        self.supervisor = supervisor
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    @classmethod
    def from_config(
        cls,
        supervisor: "ConnectionSupervisor",
        db_config: "DatabaseSchema",
    ) -> "QueryExecutor":
        """Build an executor from database.yaml settings."""
        return cls(
            supervisor,
            max_retries=db_config.executor.max_retries,
            retry_delay=db_config.executor.retry_delay_ms / 1000,
        )

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_fixed(self.retry_delay),
            retry=retry_if_exception(is_connection_error),
            before_sleep=partial(log_retry, dependency="database"),
            reraise=True,
        )

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Execute ``operation`` with pre-flight liveness nudge and bounded retry.

        Raises:
            Whatever ``operation`` raised: immediately for non-connection
            errors, after the retry budget is spent for connection errors.
        """
        self.supervisor.schedule_probe()

        async for attempt in self._retrying():
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    await self.supervisor.probe(force=True)
                return await operation()

        raise AssertionError("unreachable: retry loop exited without outcome")
