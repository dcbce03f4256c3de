"""
Request Context Middleware.

For every request: a correlation id (X-Request-ID, generated when absent),
the calling frontend (X-Frontend-ID), the elapsed time (X-Response-Time),
and one access log line. The id, frontend, method and path are bound to
structlog's contextvars while the request runs, so every record logged on
its behalf carries them.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from simplenotes.backend.core.logging import get_logger

logger = get_logger(__name__)

FRONTENDS = frozenset({"web", "cli", "api", "internal"})


def resolve_frontend(header: str | None) -> str:
    """Normalise X-Frontend-ID; anything unrecognised is "unknown"."""
    value = (header or "").strip().lower()
    return value if value in FRONTENDS else "unknown"


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Handlers read the values back from ``request.state.request_id`` and
    ``request.state.frontend``. ``log_requests`` follows
    features.api_request_logging.
    """

    def __init__(self, app: ASGIApp, log_requests: bool = True) -> None:
        super().__init__(app)
        self.log_requests = log_requests

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        frontend = resolve_frontend(request.headers.get("X-Frontend-ID"))
        request.state.request_id = request_id
        request.state.frontend = frontend

        started = time.perf_counter()
        with structlog.contextvars.bound_contextvars(
            request_id=request_id,
            frontend=frontend,
            method=request.method,
            path=request.url.path,
        ):
            try:
                response = await call_next(request)
            except Exception as exc:
                logger.error(
                    "Request raised",
                    extra={"duration_ms": _elapsed_ms(started), "error_type": type(exc).__name__},
                )
                raise

            elapsed = _elapsed_ms(started)
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time"] = f"{elapsed}ms"
            if self.log_requests:
                logger.info(
                    f"{request.method} {request.url.path}",
                    extra={"status_code": response.status_code, "duration_ms": elapsed},
                )

        return response
