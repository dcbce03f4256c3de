"""
Unit Test Fixtures.

Fakes and mocks shared by the unit tests. Nothing here opens a socket.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest


# =============================================================================
# Fake Engine
# =============================================================================


class FakeConnection:
    """Connection handed out by FakeEngine.connect()."""

    def __init__(self, engine: "FakeEngine") -> None:
        self.engine = engine

    async def execute(self, statement: Any) -> MagicMock:
        self.engine.queries += 1
        if self.engine.delay:
            await asyncio.sleep(self.engine.delay)
        if self.engine.failing:
            raise ConnectionRefusedError("connection refused")
        result = MagicMock()
        result.scalar.return_value = "2024-01-01 00:00:00"
        return result


class FakeEngine:
    """
    Stand-in for an AsyncEngine.

    Flip ``failing`` to make every query raise a connection error; set
    ``delay`` to make queries slow.
    """

    def __init__(self, url: str, **options: Any) -> None:
        self.url = url
        self.options = options
        self.failing = False
        self.delay = 0.0
        self.queries = 0
        self.disposed = False
        self.dispose_error: Exception | None = None
        self.sync_engine = MagicMock()

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[FakeConnection]:
        yield FakeConnection(self)

    async def dispose(self) -> None:
        if self.dispose_error is not None:
            raise self.dispose_error
        self.disposed = True


class FakeEngineFactory:
    """engine_factory that records every engine it builds."""

    def __init__(self) -> None:
        self.engines: list[FakeEngine] = []
        self.fail_new_engines = False

    def __call__(self, url: str, **options: Any) -> FakeEngine:
        engine = FakeEngine(url, **options)
        engine.failing = self.fail_new_engines
        self.engines.append(engine)
        return engine


@pytest.fixture
def engine_factory() -> FakeEngineFactory:
    """Provide a recording fake engine factory."""
    return FakeEngineFactory()


@pytest.fixture
def mock_event():
    """Patch SQLAlchemy event registration; fake engines cannot take listeners."""
    with patch("simplenotes.backend.core.database.event") as mocked:
        yield mocked


# =============================================================================
# Database Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_db_session() -> AsyncMock:
    """AsyncSession stand-in; ``add`` is the only synchronous method."""
    session = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def mock_supervisor(mock_db_session: AsyncMock) -> MagicMock:
    """
    Mock ConnectionSupervisor whose session() yields mock_db_session.

    Usage:
        def test_service(mock_supervisor):
            executor = QueryExecutor(mock_supervisor, retry_delay=0)
    """
    supervisor = MagicMock()
    supervisor.connected = True
    supervisor.probe_timeout = 5.0
    supervisor.probe = AsyncMock(return_value=True)
    supervisor.ping = AsyncMock(return_value="2024-01-01 00:00:00")
    supervisor.schedule_probe = MagicMock()

    @asynccontextmanager
    async def session() -> AsyncIterator[AsyncMock]:
        yield mock_db_session

    supervisor.session = session
    return supervisor
