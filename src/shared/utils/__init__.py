"""Utility functions module."""
from .filesystem import (
    PathRejection,
    ResolveMode,
    WorkspacePath,
    normalize_relative_path,
    resolve_path,
    safe_resolve_new_path,
    safe_resolve_path,
)
from .system_files import SYSTEM_FILE_NAMES, is_system_file

__all__ = [
    # Path resolution
    "PathRejection",
    "ResolveMode",
    "WorkspacePath",
    "normalize_relative_path",
    "resolve_path",
    "safe_resolve_new_path",
    "safe_resolve_path",
    # System files
    "SYSTEM_FILE_NAMES",
    "is_system_file",
]
