"""Workspace change stream (SSE) route."""
from fastapi import APIRouter, HTTPException
from fastapi.responses import StreamingResponse

from dench_api.schemas import ErrorResponse
from dench_api.services import stream_workspace_changes
from dench_api.services.errors import WorkspaceUnavailableError
from shared.config import resolve_workspace_root

router = APIRouter()


@router.get("/workspace/watch", responses={404: {"model": ErrorResponse}})
async def watch_workspace():
    """Stream workspace change notifications.

    Events:
        connected: sent once when the stream opens
        change: {type, path}, debounced; clients refetch the tree
        error: {error}, when file watching is unavailable (stream then ends)

    A ": heartbeat" comment is sent periodically while idle.
    """
    root = resolve_workspace_root()
    if root is None:
        raise HTTPException(status_code=404, detail=WorkspaceUnavailableError("Workspace not found").to_detail())

    return StreamingResponse(
        stream_workspace_changes(root),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache, no-transform",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )
