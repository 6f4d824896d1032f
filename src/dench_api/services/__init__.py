"""Business logic services module."""
from .errors import WorkspaceError
from .watch_service import ChangeWatcher, stream_workspace_changes
from .workspace_service import WorkspaceService

__all__ = [
    "WorkspaceError",
    "WorkspaceService",
    "ChangeWatcher",
    "stream_workspace_changes",
]
