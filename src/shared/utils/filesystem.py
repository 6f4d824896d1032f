"""Filesystem utility functions.

Workspace-relative path resolution. Every path that crosses the API boundary
is resolved here against the workspace root before any disk access.
"""
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class ResolveMode(str, Enum):
    """How a relative path is resolved."""

    MUST_EXIST = "must_exist"  # read / delete / rename source / move / copy source
    MAY_NOT_EXIST = "may_not_exist"  # mkdir / rename target / copy target / new file


class PathRejection(str, Enum):
    """Sentinel returned instead of a path when resolution fails."""

    INVALID = "invalid"
    ESCAPES_ROOT = "escapes_root"
    IS_ROOT = "is_root"
    NOT_FOUND = "not_found"


_DRIVE_LETTER = re.compile(r"^[A-Za-z]:")


@dataclass(frozen=True)
class WorkspacePath:
    """A path validated against a workspace root.

    ``absolute`` is the entry itself (the parent is canonical, the last segment
    is not followed, so a symlink stays a symlink). ``canonical`` is the fully
    resolved location and is what containment checks compare.
    """

    root: Path
    absolute: Path
    canonical: Path

    @property
    def relative(self) -> str:
        """Posix path relative to the root ("." for the root itself)."""
        if self.absolute == self.root:
            return "."
        return self.absolute.relative_to(self.root).as_posix()

    @property
    def name(self) -> str:
        return self.absolute.name

    @property
    def is_root(self) -> bool:
        return self.absolute == self.root

    def exists(self) -> bool:
        return self.absolute.exists() or self.absolute.is_symlink()

    def is_dir(self) -> bool:
        return self.absolute.is_dir()

    def contains(self, other: "WorkspacePath") -> bool:
        """True if ``other`` is this path or lies underneath it."""
        return other.canonical == self.canonical or self.is_ancestor_of(other)

    def is_ancestor_of(self, other: "WorkspacePath") -> bool:
        """True if ``other`` lies strictly underneath this path.

        Compares whole path segments, so ``/ws/foo`` is not an ancestor of
        ``/ws/foobar``.
        """
        if other.canonical == self.canonical:
            return False
        return other.canonical.is_relative_to(self.canonical)

    def sibling(self, name: str) -> str:
        """Relative path of ``name`` in the same parent directory."""
        parent = Path(self.relative).parent.as_posix()
        return name if parent == "." else f"{parent}/{name}"

    def child(self, name: str) -> str:
        """Relative path of ``name`` inside this directory."""
        return name if self.is_root else f"{self.relative}/{name}"

    def __str__(self) -> str:
        return self.relative


def normalize_relative_path(relative_path: str) -> str | PathRejection:
    """
    Normalize a workspace-relative path.

    Collapses ``.`` and ``..`` segments and repeated or trailing slashes.
    Absolute paths, drive letters, UNC paths, backslashes and NUL bytes are
    rejected outright rather than converted.

    Args:
        relative_path: Path supplied by a client or the agent

    Returns:
        Normalized posix path ("." for the root), or a PathRejection
    """
    if not isinstance(relative_path, str) or relative_path == "":
        return PathRejection.INVALID
    if "\\" in relative_path or "\x00" in relative_path:
        return PathRejection.INVALID
    if relative_path.startswith("/") or _DRIVE_LETTER.match(relative_path):
        return PathRejection.INVALID

    segments: list[str] = []
    for segment in relative_path.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if not segments:
                return PathRejection.ESCAPES_ROOT
            segments.pop()
            continue
        segments.append(segment)

    return "/".join(segments) if segments else "."


def resolve_path(
    root: Path,
    relative_path: str,
    mode: ResolveMode = ResolveMode.MUST_EXIST,
    *,
    allow_root: bool = False,
) -> WorkspacePath | PathRejection:
    """
    Resolve a relative path against the workspace root.

    Never raises for bad input: every violation is reported as a
    PathRejection so no absolute path ends up in an error message.

    Args:
        root: Workspace root directory
        relative_path: Relative path to resolve
        mode: MUST_EXIST requires the entry to exist; MAY_NOT_EXIST only
            requires its location to be inside the root
        allow_root: Whether "." (the root itself) is an acceptable result

    Returns:
        The validated WorkspacePath, or a PathRejection
    """
    normalized = normalize_relative_path(relative_path)
    if isinstance(normalized, PathRejection):
        return normalized

    try:
        root_resolved = Path(root).resolve()
    except (OSError, RuntimeError):
        return PathRejection.INVALID

    if normalized == ".":
        if not allow_root:
            return PathRejection.IS_ROOT
        return WorkspacePath(root=root_resolved, absolute=root_resolved, canonical=root_resolved)

    candidate = root_resolved / normalized
    try:
        parent = candidate.parent.resolve()
        canonical = candidate.resolve()
    except (OSError, RuntimeError):
        # Symlink loops end up here
        return PathRejection.INVALID

    # Both the parent and the followed target must stay under the root
    if parent != root_resolved and not parent.is_relative_to(root_resolved):
        return PathRejection.ESCAPES_ROOT
    if canonical == root_resolved or not canonical.is_relative_to(root_resolved):
        return PathRejection.ESCAPES_ROOT

    resolved = WorkspacePath(
        root=root_resolved,
        absolute=parent / candidate.name,
        canonical=canonical,
    )
    if mode is ResolveMode.MUST_EXIST and not resolved.exists():
        return PathRejection.NOT_FOUND
    return resolved


def safe_resolve_path(root: Path, relative_path: str) -> Path | None:
    """
    Resolve an existing entry inside root.

    Returns:
        Absolute path, or None if rejected or missing
    """
    resolved = resolve_path(root, relative_path, ResolveMode.MUST_EXIST)
    if isinstance(resolved, PathRejection):
        return None
    return resolved.absolute


def safe_resolve_new_path(root: Path, relative_path: str) -> Path | None:
    """
    Resolve a path that may not exist yet (its location must be inside root).

    Returns:
        Absolute path, or None if rejected
    """
    resolved = resolve_path(root, relative_path, ResolveMode.MAY_NOT_EXIST)
    if isinstance(resolved, PathRejection):
        return None
    return resolved.absolute
