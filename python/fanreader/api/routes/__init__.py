"""API route definitions.

Uses a factory pattern to avoid import-time settings loading.
"""

from fastapi import APIRouter

from fanreader.api.routes.comments import router as comments_router
from fanreader.api.routes.health import router as health_router
from fanreader.api.routes.preferences import router as preferences_router
from fanreader.api.routes.reader import router as reader_router
from fanreader.api.routes.session import router as session_router
from fanreader.api.routes.speech import router as speech_router


def create_api_router() -> APIRouter:
    """Create and configure the API router.

    Returns:
        Configured APIRouter with all routes registered.
    """
    api_router = APIRouter()
    api_router.include_router(health_router, tags=["health"])
    api_router.include_router(session_router, tags=["session"])
    api_router.include_router(reader_router, tags=["reader"])
    api_router.include_router(comments_router, tags=["comments"])
    api_router.include_router(preferences_router, tags=["preferences"])
    api_router.include_router(speech_router, tags=["speech"])
    return api_router


__all__ = ["create_api_router"]
