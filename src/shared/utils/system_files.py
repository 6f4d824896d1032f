"""Reserved workspace files that mutating operations must not touch."""
import re
from pathlib import PurePosixPath

# Per-object metadata sidecar, workspace context, primary DuckDB file
SYSTEM_FILE_NAMES = frozenset({
    ".object.yaml",
    "workspace.duckdb",
    "workspace_context.yaml",
})

# DuckDB write-ahead-log / temp companions (workspace.duckdb.wal, .tmp, ...)
_SYSTEM_FILE_PATTERNS = (
    re.compile(r"^workspace\.duckdb\.[^/]+$"),
)


def is_system_file(path: str) -> bool:
    """
    Check whether a path names a reserved workspace file.

    Only the final path segment is looked at; this says nothing about
    whether the path is safe or exists.

    Args:
        path: Relative path (or bare name)

    Returns:
        True if the base name is a system file
    """
    name = PurePosixPath(path.replace("\\", "/").rstrip("/")).name
    if not name:
        return False
    if name in SYSTEM_FILE_NAMES:
        return True
    return any(pattern.match(name) for pattern in _SYSTEM_FILE_PATTERNS)
