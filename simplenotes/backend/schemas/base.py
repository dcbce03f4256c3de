"""
Error body shared by every endpoint.

Successful responses return the resource itself (a note, a list of notes,
or a small confirmation object), so only errors need a common shape.
"""

from typing import Any

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """
    Flat error body.

    ``error`` is the human-readable text clients display as-is; ``code`` is
    stable for programs (``RES_NOT_FOUND``, ``SYS_DATABASE_UNAVAILABLE``).
    ``path`` is only set for requests to routes that do not exist.
    """

    error: str
    code: str
    message: str | None = None
    path: str | None = None
    details: dict[str, Any] | None = None
    request_id: str | None = None
