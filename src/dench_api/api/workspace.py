"""Workspace file operation routes.

Every failure is answered with ``{"detail": {"error": ..., "reason": ...}}``;
only workspace-relative paths appear in responses.
"""
from fastapi import APIRouter, HTTPException, Query

from dench_api.schemas import (
    CopyRequest,
    CopyResult,
    ErrorResponse,
    FileReadResponse,
    FileTreeResponse,
    FileWriteRequest,
    MoveRequest,
    MoveResult,
    PathRequest,
    PathResult,
    RenameRequest,
    RenameResult,
)
from dench_api.services import WorkspaceError, WorkspaceService

router = APIRouter()

ERROR_RESPONSES = {
    status: {"model": ErrorResponse}
    for status in (400, 403, 404, 409, 500)
}


def _to_http(e: WorkspaceError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/workspace/tree", response_model=FileTreeResponse)
async def get_workspace_tree():
    """List the full workspace tree. Side-effect free; reflects current disk state."""
    service = WorkspaceService()
    tree, exists = await service.list_tree()
    return FileTreeResponse(tree=tree, exists=exists)


@router.get("/workspace/file", response_model=FileReadResponse, responses=ERROR_RESPONSES)
async def read_workspace_file(
    path: str = Query(..., min_length=1, description="Relative path to file"),
):
    """Read a text file from the workspace."""
    try:
        service = WorkspaceService()
        content, content_type, size = await service.read_file(path)
        return FileReadResponse(path=path, content=content, type=content_type, size=size)
    except WorkspaceError as e:
        raise _to_http(e)


@router.post("/workspace/file", response_model=PathResult, responses=ERROR_RESPONSES)
async def write_workspace_file(body: FileWriteRequest):
    """Write a file, creating parent directories as needed."""
    try:
        service = WorkspaceService()
        return await service.write_file(body.path, body.content)
    except WorkspaceError as e:
        raise _to_http(e)


@router.delete("/workspace/file", response_model=PathResult, responses=ERROR_RESPONSES)
async def delete_workspace_file(body: PathRequest):
    """Delete a file or folder. Irreversible: callers must confirm first.

    System files (.object.yaml, workspace.duckdb, ...) are protected.
    """
    try:
        service = WorkspaceService()
        return await service.delete(body.path)
    except WorkspaceError as e:
        raise _to_http(e)


@router.post("/workspace/rename", response_model=RenameResult, responses=ERROR_RESPONSES)
async def rename_workspace_entry(body: RenameRequest):
    """Rename a file or folder within its directory."""
    try:
        service = WorkspaceService()
        return await service.rename(body.path, body.new_name)
    except WorkspaceError as e:
        raise _to_http(e)


@router.post("/workspace/move", response_model=MoveResult, responses=ERROR_RESPONSES)
async def move_workspace_entry(body: MoveRequest):
    """Move a file or folder into another directory."""
    try:
        service = WorkspaceService()
        return await service.move(body.source_path, body.destination_dir)
    except WorkspaceError as e:
        raise _to_http(e)


@router.post("/workspace/copy", response_model=CopyResult, responses=ERROR_RESPONSES)
async def copy_workspace_entry(body: CopyRequest):
    """Duplicate a file or folder ("<name> copy" next to it by default)."""
    try:
        service = WorkspaceService()
        return await service.copy(body.path, body.destination_path)
    except WorkspaceError as e:
        raise _to_http(e)


@router.post("/workspace/mkdir", response_model=PathResult, responses=ERROR_RESPONSES)
async def make_workspace_directory(body: PathRequest):
    """Create a directory (and missing parents)."""
    try:
        service = WorkspaceService()
        return await service.mkdir(body.path)
    except WorkspaceError as e:
        raise _to_http(e)
