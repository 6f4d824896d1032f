"""API routes module."""
from fastapi import APIRouter

from . import health, watch, workspace


def create_api_router() -> APIRouter:
    """
    Create and configure the main API router.

    Returns:
        Configured APIRouter instance
    """
    router = APIRouter()

    router.include_router(health.router, tags=["Health"])
    router.include_router(workspace.router, prefix="/api", tags=["Workspace"])
    router.include_router(watch.router, prefix="/api", tags=["Watch"])

    return router


__all__ = ["create_api_router"]
