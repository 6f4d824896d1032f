"""Shared configuration, path resolution and wire schemas.

Used by both the API service and the client.
"""
# Config
from .config import resolve_workspace_root, settings

# Utils
from .utils import is_system_file, resolve_path


__all__ = [
    # Config
    "settings",
    "resolve_workspace_root",
    # Utils
    "is_system_file",
    "resolve_path",
]
