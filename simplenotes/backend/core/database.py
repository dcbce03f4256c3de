"""
Database Connection Supervision.

Owns the SQLAlchemy async engine (the connection pool) and keeps it usable
against a managed Postgres instance whose connections are dropped without
warning. One ConnectionSupervisor instance lives on ``app.state``; there is
no module-level engine.

Lifecycle:
    create()        - build a fresh engine, closing the previous one in the
                      background; fall back to UnavailablePool on failure
    probe(force)    - cheap liveness check; repeated failures recreate the pool
    start()/stop()  - initial probe plus a fixed-interval background probe

State (plain attributes, mutated only on the event loop, never locked):
    pool, connected, consecutive_failures, last_probe_time, generation

Usage:
    supervisor = ConnectionSupervisor.from_config(get_database_url(), db_config)
    await supervisor.start()

    async with supervisor.session() as session:
        ...

    await supervisor.stop()
"""

import asyncio
import ssl
import time
from collections.abc import AsyncIterator, Callable, Coroutine
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event, text
from sqlalchemy.engine import ExceptionContext, make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

import simplenotes.backend.models.note  # noqa: F401  registers the notes table
from simplenotes.backend.core.config_schema import DatabaseSchema
from simplenotes.backend.core.logging import get_logger
from simplenotes.backend.core.resilience import is_connection_error
from simplenotes.backend.models.base import Base

logger = get_logger(__name__)

# libpq-only query parameters that asyncpg.connect() rejects.
_LIBPQ_ONLY_PARAMS = ("sslmode", "channel_binding")


class PoolUnavailableError(ConnectionError):
    """Raised by UnavailablePool for every attempt to use it."""

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason
        super().__init__("Database connection pool not available")


class UnavailablePool:
    """
    Stand-in pool used when the real engine could not be built.

    Callers always get a pool handle to call into: every use fails with the
    same connection-class error, and closing it does nothing.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason

    def connect(self) -> Any:
        raise PoolUnavailableError(self.reason)

    def begin(self) -> Any:
        raise PoolUnavailableError(self.reason)

    def session_factory(self) -> AsyncSession:
        raise PoolUnavailableError(self.reason)

    async def dispose(self) -> None:
        return None

    def __repr__(self) -> str:
        return f"<UnavailablePool(reason={self.reason!r})>"


def _ssl_context(mode: str) -> ssl.SSLContext | bool:
    """Build the asyncpg ``ssl`` argument for an ssl_mode from database.yaml."""
    if mode == "disable":
        return False
    context = ssl.create_default_context()
    if mode == "require":
        # Managed providers commonly present certificates we cannot verify.
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def build_engine(
    database_url: str,
    *,
    pool_size: int = 5,
    max_overflow: int = 5,
    pool_timeout: int = 10,
    pool_recycle: int = 300,
    connect_timeout: int = 10,
    command_timeout: int = 30,
    keepalive_idle_seconds: int = 10,
    ssl_mode: str = "require",
    echo: bool = False,
) -> AsyncEngine:
    """
    Create an async engine for DATABASE_URL.

    Postgres URLs (``postgres://`` or ``postgresql://``, as handed out by
    hosting providers) are switched to the asyncpg driver. SQLite URLs get a
    single shared connection so in-memory databases survive across sessions.

    Raises:
        sqlalchemy.exc.ArgumentError: If the URL cannot be parsed
    """
    url = make_url(database_url)
    backend = url.get_backend_name()

    if backend == "sqlite":
        return create_async_engine(
            url.set(drivername="sqlite+aiosqlite"),
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )

    if backend not in ("postgres", "postgresql"):
        return create_async_engine(url, echo=echo)

    url = url.set(drivername="postgresql+asyncpg").difference_update_query(
        _LIBPQ_ONLY_PARAMS
    )

    connect_args: dict[str, Any] = {
        "ssl": _ssl_context(ssl_mode),
        "timeout": connect_timeout,
        "command_timeout": command_timeout,
    }
    if keepalive_idle_seconds > 0:
        connect_args["server_settings"] = {
            "tcp_keepalives_idle": str(keepalive_idle_seconds),
        }

    return create_async_engine(
        url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=pool_timeout,
        pool_recycle=pool_recycle,
        echo=echo,
        connect_args=connect_args,
    )


def describe_url(database_url: str | None) -> str:
    """Render DATABASE_URL for logs with the password masked."""
    if not database_url:
        return "No DATABASE_URL found"
    try:
        return make_url(database_url).render_as_string(hide_password=True)
    except ArgumentError:
        return "(unparseable URL)"


class ConnectionSupervisor:
    """
    Keeps one connection pool alive and tracks whether it is reachable.

    ``connected`` approximates whether the most recent probe succeeded.
    Request handlers never wait on it; the QueryExecutor nudges it and
    forces it after a connection failure.
    """

    def __init__(
        self,
        database_url: str | None,
        *,
        engine_factory: Callable[..., AsyncEngine] = build_engine,
        engine_options: dict[str, Any] | None = None,
        probe_query: str = "SELECT NOW()",
        probe_timeout: float = 5.0,
        probe_interval: float = 30.0,
        failure_threshold: int = 3,
    ) -> None:
        self.database_url = database_url
        self.probe_query = probe_query
        self.probe_timeout = probe_timeout
        self.probe_interval = probe_interval
        self.failure_threshold = failure_threshold

        self.pool: AsyncEngine | UnavailablePool | None = None
        self.connected = False
        self.consecutive_failures = 0
        self.last_probe_time: float | None = None
        self.generation = 0

        self._engine_factory = engine_factory
        self._engine_options = engine_options or {}
        self._session_factory: Callable[[], AsyncSession] | None = None
        self._probe_task: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()
        self._stopped = False

    @classmethod
    def from_config(
        cls,
        database_url: str | None,
        db_config: DatabaseSchema,
    ) -> "ConnectionSupervisor":
        """Build a supervisor from database.yaml settings."""
        return cls(
            database_url,
            engine_options={
                "pool_size": db_config.pool_size,
                "max_overflow": db_config.max_overflow,
                "pool_timeout": db_config.pool_timeout,
                "pool_recycle": db_config.pool_recycle,
                "connect_timeout": db_config.connect_timeout,
                "command_timeout": db_config.command_timeout,
                "keepalive_idle_seconds": db_config.keepalive_idle_seconds,
                "ssl_mode": db_config.ssl_mode,
                "echo": db_config.echo,
            },
            probe_query=db_config.supervisor.probe_query,
            probe_timeout=db_config.supervisor.probe_timeout_seconds,
            probe_interval=db_config.supervisor.probe_interval_seconds,
            failure_threshold=db_config.supervisor.failure_threshold,
        )

    # -------------------------------------------------------------------------
    # Pool lifecycle
    # -------------------------------------------------------------------------

    def create(self) -> None:
        """
        Replace the current pool with a freshly built one.

        Never raises. If the engine cannot be built, the supervisor holds an
        UnavailablePool so that failures surface uniformly at query time.
        The previous pool, if any, is disposed in a background task, so this
        must run on the event loop when a pool already exists.
        """
        previous = self.pool

        try:
            if not self.database_url:
                raise ValueError("DATABASE_URL is not set")
            engine = self._engine_factory(self.database_url, **self._engine_options)
            self._attach_listeners(engine)
            self.pool = engine
            self._session_factory = async_sessionmaker(
                engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
        except Exception as e:
            logger.error(
                "Database pool creation failed, using unavailable pool",
                extra={"error": str(e)},
            )
            stub = UnavailablePool(str(e))
            self.pool = stub
            self._session_factory = stub.session_factory

        self.generation += 1
        logger.info(
            "Database pool created",
            extra={"generation": self.generation, "pool": type(self.pool).__name__},
        )

        if previous is not None:
            self._spawn(self._dispose(previous), name="db-pool-dispose")

    async def _dispose(self, pool: AsyncEngine | UnavailablePool) -> None:
        """Close a pool, logging instead of raising on failure."""
        try:
            await pool.dispose()
        except Exception as e:
            logger.warning(
                "Error closing previous database pool",
                extra={"error": str(e)},
            )

    def _attach_listeners(self, engine: AsyncEngine) -> None:
        """Register the pool error listeners on a newly built engine."""
        event.listen(engine.sync_engine, "handle_error", self._on_engine_error)
        event.listen(engine.sync_engine, "invalidate", self._on_connection_invalidated)

    def _on_engine_error(self, context: ExceptionContext) -> None:
        """
        React to an error raised through a pooled connection.

        Connection-class errors drop ``connected`` right away, and the
        offending connection is discarded instead of going back to the
        idle set. The rest of the pool is left alone.
        """
        if not (context.is_disconnect or is_connection_error(context.original_exception)):
            return

        self.connected = False
        logger.warning(
            "Database connection error reported by pool",
            extra={
                "error": str(context.original_exception),
                "generation": self.generation,
            },
        )

        if context.connection is not None:
            context.is_disconnect = True
            context.invalidate_pool_on_disconnect = False

    def _on_connection_invalidated(
        self,
        dbapi_connection: Any,
        connection_record: Any,
        exception: BaseException | None,
    ) -> None:
        """Pool 'invalidate' hook: an exception-driven invalidation means we are down."""
        if exception is None:
            return
        self.connected = False
        logger.warning(
            "Pooled database connection invalidated",
            extra={"error": str(exception), "generation": self.generation},
        )

    # -------------------------------------------------------------------------
    # Liveness
    # -------------------------------------------------------------------------

    async def ping(self) -> Any:
        """
        Run the probe query once against the current pool.

        Does not touch supervisor state.

        Returns:
            The scalar returned by the probe query (server time for SELECT NOW())

        Raises:
            Any driver, pool or timeout error
        """
        pool = self.pool
        if pool is None:
            raise PoolUnavailableError("pool has not been created")

        async with asyncio.timeout(self.probe_timeout):
            async with pool.connect() as conn:
                result = await conn.execute(text(self.probe_query))
                return result.scalar()

    async def probe(self, force: bool = False) -> bool:
        """
        Check that the database is reachable.

        Args:
            force: Skip the short-circuit on an already-connected pool

        Returns:
            True if connected, False if the probe failed or the supervisor
            has been stopped. Never raises.
        """
        if self._stopped:
            return False

        if not force and self.connected:
            return True

        if self.pool is None:
            self.create()

        self.last_probe_time = time.monotonic()

        try:
            await self.ping()
        except Exception as e:
            return self._record_probe_failure(e)

        if not self.connected:
            logger.info(
                "Database connection established",
                extra={"generation": self.generation},
            )
        self.connected = True
        self.consecutive_failures = 0
        return True

    def _record_probe_failure(self, error: Exception) -> bool:
        self.connected = False
        self.consecutive_failures += 1

        logger.warning(
            "Database probe failed",
            extra={
                "error": str(error) or type(error).__name__,
                "consecutive_failures": self.consecutive_failures,
                "generation": self.generation,
            },
        )

        if self.consecutive_failures >= self.failure_threshold:
            logger.error(
                "Recreating database pool after repeated probe failures",
                extra={
                    "consecutive_failures": self.consecutive_failures,
                    "generation": self.generation,
                },
            )
            self.create()
            self.consecutive_failures = 0

        return False

    def schedule_probe(self) -> None:
        """Start a non-forced probe in the background without waiting for it."""
        self._spawn(self.probe(), name="db-probe")

    async def _probe_loop(self) -> None:
        while True:
            await asyncio.sleep(self.probe_interval)
            logger.debug("Performing periodic database probe")
            await self.probe(force=True)

    # -------------------------------------------------------------------------
    # Application lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """
        Create the pool, probe it once, and start the background probe loop.

        The outcome of the initial probe is only logged: the application
        starts either way and recovers once the database is reachable.
        """
        if not self.database_url:
            logger.error("DATABASE_URL environment variable is not set")
        else:
            logger.info(
                "Connecting to database",
                extra={"url": describe_url(self.database_url)},
            )

        self._stopped = False
        self.create()

        if await self.probe(force=True):
            logger.info("Database connection successful")
        else:
            logger.warning("Starting despite database connection issues")

        self._probe_task = asyncio.create_task(self._probe_loop(), name="db-probe-loop")

    async def stop(self) -> None:
        """
        Cancel the probe loop and every pending background task, then dispose
        the pool. Probes requested afterwards return False without I/O.
        """
        self._stopped = True

        pending = list(self._tasks)
        if self._probe_task is not None:
            pending.append(self._probe_task)
            self._probe_task = None

        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        if self.pool is not None:
            await self._dispose(self.pool)

        self.pool = None
        self._session_factory = None
        self.connected = False
        logger.info("Database supervisor stopped")

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Open a session on the current pool.

        Commits when the block succeeds, rolls back and re-raises otherwise.
        The pool is looked up on entry, so a retried operation picks up a
        pool recreated in between.
        """
        session_factory = self._session_factory
        if session_factory is None:
            raise PoolUnavailableError("pool has not been created")

        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def ensure_schema(self) -> None:
        """Create missing tables on the current pool (no migrations)."""
        if self.pool is None:
            raise PoolUnavailableError("pool has not been created")
        async with self.pool.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    # -------------------------------------------------------------------------
    # Background tasks
    # -------------------------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> None:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Background database task failed",
                extra={"task": task.get_name(), "error": str(exc)},
            )
