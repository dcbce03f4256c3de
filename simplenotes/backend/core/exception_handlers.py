"""
Exception Handlers.

Every failure leaves the API as one flat ErrorResponse:

    {"error": "Note not found", "code": "RES_NOT_FOUND", "request_id": "..."}

Status codes:
    404  NotFoundError, or a route that does not exist
    503  DatabaseUnavailableError (connection lost, retry already spent)
    500  everything else: query errors, malformed requests, unexpected bugs

Malformed requests (bad JSON, a non-numeric id, a color that is not hex)
are rejected before any database call and never retried, but they share
the 500 status of every other non-connection failure.

Usage:
    register_exception_handlers(app, detailed_errors=True)
"""

from typing import Any, Callable

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from simplenotes.backend.core.exceptions import (
    ApplicationError,
    DatabaseError,
    DatabaseUnavailableError,
    NotFoundError,
)
from simplenotes.backend.core.logging import get_logger
from simplenotes.backend.schemas.base import ErrorResponse

logger = get_logger(__name__)

EXCEPTION_STATUS_MAP: dict[type[ApplicationError], int] = {
    NotFoundError: 404,
    DatabaseUnavailableError: 503,
    DatabaseError: 500,
}


def request_id_of(request: Request) -> str | None:
    """Correlation id set by RequestContextMiddleware, else the raw header."""
    return getattr(request.state, "request_id", None) or request.headers.get("x-request-id")


def error_response(
    request: Request,
    status_code: int,
    error: str,
    code: str,
    *,
    headers: dict[str, str] | None = None,
    **fields: Any,
) -> JSONResponse:
    body = ErrorResponse(error=error, code=code, request_id=request_id_of(request), **fields)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
        headers=headers,
    )


def _where(request: Request) -> dict[str, Any]:
    return {"method": request.method, "path": request.url.path}


async def application_error_handler(request: Request, exc: ApplicationError) -> JSONResponse:
    """Map a service-raised error to its status code."""
    status_code = EXCEPTION_STATUS_MAP.get(type(exc), 500)

    log = logger.error if status_code >= 500 else logger.warning
    log(exc.message, extra={"code": exc.code, "status": status_code, **_where(request)})

    return error_response(request, status_code, exc.message, exc.code, message=exc.detail)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Reject a malformed body or path parameter with 500, listing the bad fields."""
    problems = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())),
            "message": err.get("msg", "Invalid value"),
            "type": err.get("type", "unknown"),
        }
        for err in exc.errors()
    ]
    logger.warning(
        "Malformed request",
        extra={"fields": [p["field"] for p in problems], **_where(request)},
    )
    return error_response(
        request,
        500,
        "Invalid request",
        "VAL_REQUEST_INVALID",
        details={"validation_errors": problems},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Routing-level errors; an unknown route names the path it was asked for."""
    path = request.url.path
    logger.warning("HTTP error", extra={"status": exc.status_code, **_where(request)})

    if exc.status_code == 404:
        return error_response(
            request,
            404,
            "Not found",
            "RES_ROUTE_NOT_FOUND",
            message=f"The requested endpoint {path} does not exist",
            path=path,
            headers=exc.headers,
        )
    return error_response(
        request,
        exc.status_code,
        str(exc.detail),
        f"HTTP_{exc.status_code}",
        headers=exc.headers,
    )


def make_unhandled_exception_handler(
    detailed_errors: bool,
) -> Callable[[Request, Exception], Any]:
    """
    Build the catch-all 500 handler.

    With ``detailed_errors`` (features.api_detailed_errors, development only)
    the exception type and text are added under ``details``.
    """

    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "Unhandled exception",
            extra={"exception_type": type(exc).__name__, **_where(request)},
        )
        details = {"exception": type(exc).__name__, "hint": str(exc)} if detailed_errors else None
        return error_response(
            request,
            500,
            "An unexpected error occurred",
            "SYS_INTERNAL_ERROR",
            details=details,
        )

    return unhandled_exception_handler


def register_exception_handlers(app: FastAPI, detailed_errors: bool = False) -> None:
    app.add_exception_handler(ApplicationError, application_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, make_unhandled_exception_handler(detailed_errors))
