"""
Unit Tests for Exception Handlers.

Each handler is called directly with a mocked Request.
"""

import json
from unittest.mock import MagicMock

import pytest
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from simplenotes.backend.core.exception_handlers import (
    EXCEPTION_STATUS_MAP,
    application_error_handler,
    http_exception_handler,
    make_unhandled_exception_handler,
    request_id_of,
    request_validation_handler,
)
from simplenotes.backend.core.exceptions import (
    ApplicationError,
    DatabaseError,
    DatabaseUnavailableError,
    NotFoundError,
)


def _body(response) -> dict:
    return json.loads(response.body)


@pytest.fixture
def mock_request():
    request = MagicMock(spec=Request)
    request.url.path = "/api/notes/7"
    request.method = "PUT"
    request.headers = {"x-request-id": "test-123"}
    del request.state.request_id
    return request


class TestExceptionStatusMapping:
    @pytest.mark.parametrize("exc_type, status", [
        (NotFoundError, 404),
        (DatabaseUnavailableError, 503),
        (DatabaseError, 500),
    ])
    def test_mapping(self, exc_type, status):
        assert EXCEPTION_STATUS_MAP[exc_type] == status


class TestRequestIdOf:
    def test_prefers_request_state(self):
        request = MagicMock(spec=Request)
        request.state.request_id = "state-123"
        request.headers = {"x-request-id": "header-456"}

        assert request_id_of(request) == "state-123"

    def test_falls_back_to_header(self, mock_request):
        assert request_id_of(mock_request) == "test-123"

    def test_none_when_absent(self):
        request = MagicMock(spec=Request)
        del request.state.request_id
        request.headers = {}

        assert request_id_of(request) is None


class TestApplicationErrorHandler:
    @pytest.mark.asyncio
    async def test_not_found(self, mock_request):
        response = await application_error_handler(mock_request, NotFoundError("Note not found"))

        assert response.status_code == 404
        assert _body(response) == {
            "error": "Note not found",
            "code": "RES_NOT_FOUND",
            "request_id": "test-123",
        }

    @pytest.mark.asyncio
    async def test_database_unavailable_has_message(self, mock_request):
        response = await application_error_handler(mock_request, DatabaseUnavailableError())

        body = _body(response)
        assert response.status_code == 503
        assert body["error"] == "Database service unavailable"
        assert body["code"] == "SYS_DATABASE_UNAVAILABLE"
        assert "temporarily unable to connect to the database" in body["message"]

    @pytest.mark.asyncio
    async def test_database_error(self, mock_request):
        response = await application_error_handler(mock_request, DatabaseError())

        assert response.status_code == 500
        assert _body(response)["code"] == "SYS_DATABASE_ERROR"
        assert "message" not in _body(response)

    @pytest.mark.asyncio
    async def test_unmapped_application_error_is_500(self, mock_request):
        response = await application_error_handler(mock_request, ApplicationError("Something odd"))

        assert response.status_code == 500
        assert _body(response)["code"] == "SYS_INTERNAL_ERROR"


class TestRequestValidationHandler:
    @pytest.mark.asyncio
    async def test_malformed_request_is_500_with_field_errors(self, mock_request):
        exc = RequestValidationError([
            {"loc": ("body", "color"), "msg": "String should match pattern", "type": "string_pattern_mismatch"},
            {"loc": ("path", "note_id"), "msg": "Input should be a valid integer", "type": "int_parsing"},
        ])

        response = await request_validation_handler(mock_request, exc)

        body = _body(response)
        assert response.status_code == 500
        assert body["error"] == "Invalid request"
        assert body["code"] == "VAL_REQUEST_INVALID"
        errors = body["details"]["validation_errors"]
        assert [e["field"] for e in errors] == ["body.color", "path.note_id"]
        assert errors[1]["type"] == "int_parsing"


class TestHttpExceptionHandler:
    @pytest.mark.asyncio
    async def test_unknown_route_names_the_path(self, mock_request):
        mock_request.url.path = "/api/unknown"

        response = await http_exception_handler(mock_request, StarletteHTTPException(404))

        body = _body(response)
        assert response.status_code == 404
        assert body["error"] == "Not found"
        assert body["code"] == "RES_ROUTE_NOT_FOUND"
        assert body["message"] == "The requested endpoint /api/unknown does not exist"
        assert body["path"] == "/api/unknown"

    @pytest.mark.asyncio
    async def test_other_status_codes_keep_headers(self, mock_request):
        exc = StarletteHTTPException(405, detail="Method Not Allowed", headers={"Allow": "GET"})

        response = await http_exception_handler(mock_request, exc)

        assert response.status_code == 405
        assert _body(response)["code"] == "HTTP_405"
        assert "path" not in _body(response)
        assert response.headers["Allow"] == "GET"


class TestUnhandledExceptionHandler:
    @pytest.mark.asyncio
    async def test_hides_internal_details_by_default(self, mock_request):
        handler = make_unhandled_exception_handler(detailed_errors=False)

        response = await handler(mock_request, RuntimeError("secret connection string"))

        body = _body(response)
        assert response.status_code == 500
        assert body["error"] == "An unexpected error occurred"
        assert body["code"] == "SYS_INTERNAL_ERROR"
        assert "details" not in body
        assert "secret" not in response.body.decode()

    @pytest.mark.asyncio
    async def test_detailed_errors(self, mock_request):
        handler = make_unhandled_exception_handler(detailed_errors=True)

        response = await handler(mock_request, KeyError("title"))

        details = _body(response)["details"]
        assert details["exception"] == "KeyError"
        assert "title" in details["hint"]
