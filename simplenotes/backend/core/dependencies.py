"""
FastAPI Dependencies.

Shared dependencies for request handling. The supervisor and executor are
created by the application lifespan and stored on ``app.state``; tests can
replace them there or override these dependencies.
"""

from typing import Annotated

from fastapi import Depends, Request

from simplenotes.backend.core.database import ConnectionSupervisor
from simplenotes.backend.core.resilience import QueryExecutor
from simplenotes.backend.services.note import NoteService


def get_supervisor(request: Request) -> ConnectionSupervisor:
    """Return the application's connection supervisor."""
    return request.app.state.supervisor


def get_query_executor(request: Request) -> QueryExecutor:
    """Return the application's query executor."""
    return request.app.state.executor


Supervisor = Annotated[ConnectionSupervisor, Depends(get_supervisor)]
Executor = Annotated[QueryExecutor, Depends(get_query_executor)]


def get_note_service(executor: Executor) -> NoteService:
    """Build a NoteService bound to the application's executor."""
    return NoteService(executor)


NoteServiceDep = Annotated[NoteService, Depends(get_note_service)]
