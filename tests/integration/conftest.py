"""
Integration Test Fixtures.

The app under test talks to a real database through the same
ConnectionSupervisor and QueryExecutor it uses in production.
"""

from collections.abc import AsyncGenerator
from typing import Any

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from simplenotes.backend.core.database import ConnectionSupervisor
from simplenotes.backend.core.resilience import QueryExecutor


@pytest.fixture
def app(supervisor: ConnectionSupervisor, executor: QueryExecutor) -> FastAPI:
    """
    The application with the test supervisor and executor on app.state.

    ASGITransport skips the lifespan, so nothing else would install them.
    """
    from simplenotes.backend.main import create_app

    application = create_app()
    application.state.supervisor = supervisor
    application.state.executor = executor
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


class ApiAssertions:
    """Checks on the flat ErrorResponse body."""

    @staticmethod
    def assert_error(response: Any, status: int, code: str | None = None) -> dict[str, Any]:
        assert response.status_code == status, f"{response.status_code}: {response.text}"
        body = response.json()
        assert body.get("error"), f"no error text in {body}"
        if code is not None:
            assert body.get("code") == code, f"expected {code}, got {body.get('code')}"
        return body

    @staticmethod
    def assert_malformed(response: Any, field: str | None = None) -> dict[str, Any]:
        """A rejected request: 500 with the offending fields listed."""
        body = ApiAssertions.assert_error(response, 500, "VAL_REQUEST_INVALID")
        if field is not None:
            named = [e.get("field", "") for e in body["details"]["validation_errors"]]
            assert any(field in name for name in named), f"{field!r} not in {named}"
        return body


@pytest.fixture
def api() -> ApiAssertions:
    return ApiAssertions()
