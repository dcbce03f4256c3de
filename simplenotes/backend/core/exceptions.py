"""
Application Errors.

Services raise these; core/exception_handlers.py turns them into HTTP
responses. ``message`` becomes the body's ``error`` field, ``detail`` its
``message`` field.
"""


class ApplicationError(Exception):
    """An expected failure with a stable machine-readable code."""

    def __init__(
        self,
        message: str,
        code: str = "SYS_INTERNAL_ERROR",
        detail: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.detail = detail


class NotFoundError(ApplicationError):
    """An id-targeted write matched no row."""

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message, code="RES_NOT_FOUND")


class DatabaseUnavailableError(ApplicationError):
    """The database stayed unreachable through the executor's retry."""

    def __init__(
        self,
        message: str = "Database service unavailable",
        detail: str | None = (
            "The server is temporarily unable to connect to the database. "
            "Please try again later."
        ),
    ) -> None:
        super().__init__(message, code="SYS_DATABASE_UNAVAILABLE", detail=detail)


class DatabaseError(ApplicationError):
    """A query failed for a reason other than connectivity."""

    def __init__(self, message: str = "Database error") -> None:
        super().__init__(message, code="SYS_DATABASE_ERROR")
