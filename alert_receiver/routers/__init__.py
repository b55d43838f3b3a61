"""API routers for the alert receiver."""
from fastapi import APIRouter

from . import health, receiver, topics


def get_api_router() -> APIRouter:
    """Return the root API router."""

    api_router = APIRouter()
    api_router.include_router(health.router)
    api_router.include_router(receiver.router)
    api_router.include_router(topics.router)
    return api_router
