"""Filesystem change schemas."""
from enum import Enum

from pydantic import BaseModel, Field


class ChangeKind(str, Enum):
    """Kinds of raw filesystem change."""

    ADD = "add"
    CHANGE = "change"
    REMOVE = "remove"
    ADD_DIR = "addDir"
    REMOVE_DIR = "removeDir"


class FileChange(BaseModel):
    """A single raw change observed under the workspace root."""

    kind: ChangeKind = Field(..., description="Change kind")
    path: str = Field(..., description="Path relative to the workspace root")
