"""Health check routes."""
from fastapi import APIRouter

from shared.config import resolve_workspace_root

router = APIRouter()


@router.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "dench-api",
        "workspace": resolve_workspace_root() is not None,
    }
