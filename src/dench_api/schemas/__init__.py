"""Dench API schemas module."""
from .workspace import (
    CopyRequest,
    CopyResult,
    ErrorDetail,
    ErrorResponse,
    FileReadResponse,
    FileTreeNode,
    FileTreeResponse,
    FileWriteRequest,
    MoveRequest,
    MoveResult,
    PathRequest,
    PathResult,
    RenameRequest,
    RenameResult,
)

__all__ = [
    # Requests
    "PathRequest",
    "RenameRequest",
    "MoveRequest",
    "CopyRequest",
    "FileWriteRequest",
    # Responses
    "PathResult",
    "RenameResult",
    "MoveResult",
    "CopyResult",
    "ErrorDetail",
    "ErrorResponse",
    "FileTreeNode",
    "FileTreeResponse",
    "FileReadResponse",
]
