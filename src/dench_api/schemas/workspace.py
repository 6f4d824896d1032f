"""Workspace file operation schemas."""
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    """Accepts and emits the camelCase field names the web client uses."""

    model_config = ConfigDict(populate_by_name=True)


# ==================== Requests ====================

class PathRequest(_CamelModel):
    """Delete / mkdir request."""
    path: str = Field(..., min_length=1, description="Relative path")


class RenameRequest(_CamelModel):
    """Rename request."""
    path: str = Field(..., min_length=1, description="Relative path of the entry to rename")
    new_name: str = Field(..., alias="newName", min_length=1, description="New base name")


class MoveRequest(_CamelModel):
    """Move request."""
    source_path: str = Field(..., alias="sourcePath", min_length=1)
    destination_dir: str = Field(..., alias="destinationDir", min_length=1)


class CopyRequest(_CamelModel):
    """Copy request. Without destinationPath a "<name> copy" sibling is created."""
    path: str = Field(..., min_length=1)
    destination_path: str | None = Field(None, alias="destinationPath")


class FileWriteRequest(_CamelModel):
    """Write file request."""
    path: str = Field(..., min_length=1)
    content: str


# ==================== Responses ====================

class PathResult(_CamelModel):
    """Delete / mkdir / write result."""
    ok: bool = True
    path: str


class RenameResult(_CamelModel):
    """Rename / move result."""
    ok: bool = True
    old_path: str = Field(..., alias="oldPath")
    new_path: str = Field(..., alias="newPath")


class MoveResult(RenameResult):
    """Move result."""


class CopyResult(_CamelModel):
    """Copy result."""
    ok: bool = True
    source_path: str = Field(..., alias="sourcePath")
    new_path: str = Field(..., alias="newPath")


class ErrorDetail(BaseModel):
    """Failure description."""
    error: str = Field(..., description="Human readable message, relative paths only")
    reason: str = Field(..., description="Failure kind, e.g. NotFound or SystemFileProtected")


class ErrorResponse(BaseModel):
    """Failure body (FastAPI HTTPException shape)."""
    detail: ErrorDetail


TreeNodeType = Literal["object", "document", "folder", "file", "database", "report", "code"]


class FileTreeNode(_CamelModel):
    """Recursive file tree node."""
    name: str
    path: str
    type: TreeNodeType
    size: int | None = None
    children: list["FileTreeNode"] | None = None


class FileTreeResponse(BaseModel):
    """Full workspace file tree response."""
    tree: list[FileTreeNode]
    exists: bool


class FileReadResponse(BaseModel):
    """File read response."""
    path: str
    content: str
    type: Literal["markdown", "yaml", "code", "text"]
    size: int
