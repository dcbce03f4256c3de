"""
API Router.

Aggregates all endpoint routers mounted under the API prefix.
"""

from fastapi import APIRouter

from simplenotes.backend.api.endpoints import notes

router = APIRouter()

# Notes endpoints
router.include_router(notes.router, prefix="/notes", tags=["notes"])
