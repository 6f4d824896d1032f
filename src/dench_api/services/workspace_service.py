"""Workspace file operations service."""
import asyncio
import os
import shutil
from pathlib import Path, PurePosixPath

import aiofiles
import aiofiles.os
import loguru

from shared.config import resolve_workspace_root, settings
from shared.utils import PathRejection, ResolveMode, WorkspacePath, is_system_file, resolve_path

from dench_api.schemas import CopyResult, FileTreeNode, MoveResult, PathResult, RenameResult

from .errors import (
    ConflictError,
    InvalidDestinationError,
    InvalidNameError,
    InvalidPathError,
    IOFailureError,
    SelfContainmentError,
    SystemFileProtectedError,
    TypeMismatchError,
    WorkspaceUnavailableError,
    rejection_to_error,
)

# Directories never shown in the tree
TREE_SKIP_DIRS = frozenset({"node_modules", ".git", ".Trash", "__pycache__", ".cache"})

DATABASE_EXTENSIONS = frozenset({"duckdb", "sqlite", "sqlite3", "db"})
DOCUMENT_EXTENSIONS = frozenset({"md", "mdx"})
YAML_EXTENSIONS = frozenset({"yaml", "yml"})
CODE_EXTENSIONS = frozenset({
    "ts", "tsx", "js", "jsx", "mjs", "cjs",
    "py", "rb", "go", "rs", "java", "kt", "swift",
    "c", "cpp", "h", "hpp", "cs",
    "css", "scss", "less",
    "html", "htm", "xml", "svg",
    "json", "jsonc", "toml",
    "sh", "bash", "zsh", "fish", "ps1",
    "sql", "graphql", "gql",
    "dockerfile", "makefile", "cmake",
    "r", "lua", "php", "vue", "svelte",
    "diff", "patch", "ini", "env",
    "tf", "proto", "zig",
    "elixir", "ex", "erl", "hs", "scala", "clj", "dart",
})

OBJECT_SIDECAR = ".object.yaml"
REPORT_SUFFIX = ".report.json"


def _extension(name: str) -> str:
    return name.rsplit(".", 1)[-1].lower() if "." in name else ""


def classify_file_type(name: str) -> str:
    """Classify a file for the tree: report, database, document, code or file."""
    if name.endswith(REPORT_SUFFIX):
        return "report"
    ext = _extension(name)
    if ext in DATABASE_EXTENSIONS:
        return "database"
    if ext in DOCUMENT_EXTENSIONS:
        return "document"
    if ext in CODE_EXTENSIONS:
        return "code"
    return "file"


def classify_content_type(name: str) -> str:
    """Content type reported by file reads: markdown, yaml, code or text."""
    ext = _extension(name)
    if ext in DOCUMENT_EXTENSIONS:
        return "markdown"
    if ext in YAML_EXTENSIONS:
        return "yaml"
    if ext in CODE_EXTENSIONS:
        return "code"
    return "text"


def copy_name_for(name: str, is_dir: bool) -> str:
    """
    Default name for a duplicate.

    ``report.pdf`` -> ``report copy.pdf``, directory ``notes`` -> ``notes copy``.
    """
    if is_dir:
        return f"{name} copy"
    suffix = PurePosixPath(name).suffix
    if not suffix:
        return f"{name} copy"
    return f"{name[:-len(suffix)]} copy{suffix}"


def _same_entry(a: Path, b: Path) -> bool:
    """True if both paths name the same directory entry (symlinks not followed)."""
    try:
        sa, sb = os.lstat(a), os.lstat(b)
    except OSError:
        return False
    return (sa.st_dev, sa.st_ino) == (sb.st_dev, sb.st_ino)


def validate_new_name(new_name: str) -> None:
    """
    Validate a rename target as a single path segment.

    Leading dots are allowed.

    Raises:
        InvalidNameError: If the name is empty, contains a separator or is . / ..
    """
    if (
        not new_name.strip()
        or "/" in new_name
        or "\\" in new_name
        or "\x00" in new_name
        or new_name in (".", "..")
    ):
        raise InvalidNameError("Invalid file name")


class WorkspaceService:
    """Workspace file operations business logic.

    All paths accepted and returned are relative to the workspace root.
    """

    def __init__(self, root: Path | None = None):
        self._root = root

    @property
    def root(self) -> Path:
        """
        Workspace root, resolved lazily.

        Raises:
            WorkspaceUnavailableError: If no workspace directory exists
        """
        if self._root is None:
            self._root = resolve_workspace_root()
        if self._root is None:
            raise WorkspaceUnavailableError("Workspace not found")
        return self._root

    # ==================== Resolution helpers ====================

    def _resolve_existing(self, relative_path: str, message: str, *, allow_root: bool = False) -> WorkspacePath:
        resolved = resolve_path(self.root, relative_path, ResolveMode.MUST_EXIST, allow_root=allow_root)
        if isinstance(resolved, PathRejection):
            loguru.logger.warning(f"workspace: rejected path={relative_path!r} rejection={resolved.value}")
            raise rejection_to_error(resolved, message)
        return resolved

    def _resolve_new(self, relative_path: str, error_cls, message: str) -> WorkspacePath:
        resolved = resolve_path(self.root, relative_path, ResolveMode.MAY_NOT_EXIST)
        if isinstance(resolved, PathRejection):
            loguru.logger.warning(f"workspace: rejected target path={relative_path!r} rejection={resolved.value}")
            raise error_cls(message)
        return resolved

    def _guard_system_file(self, resolved: WorkspacePath, message: str) -> None:
        """Check the normalized path too: ``workspace.duckdb/x/..`` names the database."""
        if is_system_file(resolved.relative):
            loguru.logger.warning(f"workspace: refused system file path={resolved.relative}")
            raise SystemFileProtectedError(message)

    def _io_failure(self, action: str, relative_path: str, exc: OSError) -> IOFailureError:
        """Build an IOFailure whose message never includes an absolute path."""
        loguru.logger.error(
            f"workspace: {action} failed path={relative_path!r} error={exc!s}",
            exc_info=True,
        )
        detail = exc.strerror or type(exc).__name__
        return IOFailureError(f"{action.capitalize()} failed: {detail}")

    # ==================== Mutations ====================

    async def delete(self, relative_path: str) -> PathResult:
        """
        Delete a file, or a directory recursively. There is no undo.

        Raises:
            SystemFileProtectedError, NotFoundError, PathTraversalError,
            InvalidPathError, IOFailureError
        """
        if is_system_file(relative_path):
            raise SystemFileProtectedError("Cannot delete system file")

        target = self._resolve_existing(relative_path, "File not found or path traversal rejected")
        self._guard_system_file(target, "Cannot delete system file")

        try:
            if target.is_dir() and not target.absolute.is_symlink():
                await asyncio.to_thread(shutil.rmtree, target.absolute)
            else:
                await aiofiles.os.remove(target.absolute)
        except OSError as e:
            raise self._io_failure("delete", target.relative, e)

        loguru.logger.info(f"workspace: deleted path={target.relative}")
        return PathResult(path=target.relative)

    async def rename(self, relative_path: str, new_name: str) -> RenameResult:
        """
        Rename an entry within its parent directory.

        Renaming to the current name is a no-op.

        Raises:
            SystemFileProtectedError, InvalidNameError, NotFoundError,
            InvalidDestinationError, ConflictError, IOFailureError
        """
        if is_system_file(relative_path):
            raise SystemFileProtectedError("Cannot rename system file")
        validate_new_name(new_name)

        source = self._resolve_existing(relative_path, "Source not found or path traversal rejected")
        self._guard_system_file(source, "Cannot rename system file")
        if new_name == source.name:
            return RenameResult(old_path=source.relative, new_path=source.relative)

        target = self._resolve_new(source.sibling(new_name), InvalidDestinationError, "Invalid destination path")

        # A case-only rename on a case-insensitive filesystem sees itself as the target
        if target.exists() and not _same_entry(source.absolute, target.absolute):
            raise ConflictError(f"A file named '{new_name}' already exists")

        try:
            await aiofiles.os.rename(source.absolute, target.absolute)
        except OSError as e:
            raise self._io_failure("rename", source.relative, e)

        loguru.logger.info(f"workspace: renamed old_path={source.relative} new_path={target.relative}")
        return RenameResult(old_path=source.relative, new_path=target.relative)

    async def move(self, source_path: str, destination_dir: str) -> MoveResult:
        """
        Move an entry into another directory, keeping its name.

        Raises:
            SystemFileProtectedError, NotFoundError, TypeMismatchError,
            SelfContainmentError, ConflictError, IOFailureError
        """
        if is_system_file(source_path):
            raise SystemFileProtectedError("Cannot move system file")

        source = self._resolve_existing(source_path, "Source not found or path traversal rejected")
        self._guard_system_file(source, "Cannot move system file")
        destination = self._resolve_existing(
            destination_dir,
            "Destination not found or path traversal rejected",
            allow_root=True,
        )

        if not destination.is_dir():
            raise TypeMismatchError("Destination is not a directory")
        if source.contains(destination):
            raise SelfContainmentError("Cannot move a folder into itself")

        target = self._resolve_new(destination.child(source.name), InvalidDestinationError, "Invalid destination path")
        if target.exists():
            raise ConflictError(f"'{source.name}' already exists in destination")

        try:
            await aiofiles.os.rename(source.absolute, target.absolute)
        except OSError as e:
            raise self._io_failure("move", source.relative, e)

        loguru.logger.info(f"workspace: moved old_path={source.relative} new_path={target.relative}")
        return MoveResult(old_path=source.relative, new_path=target.relative)

    async def copy(self, relative_path: str, destination_path: str | None = None) -> CopyResult:
        """
        Duplicate a file or directory.

        System files may be copied: only the original is protected. Without
        ``destination_path`` the copy is placed next to the source as
        ``<name> copy<ext>``.

        Raises:
            NotFoundError, InvalidDestinationError, ConflictError,
            SelfContainmentError, IOFailureError
        """
        source = self._resolve_existing(relative_path, "Source not found or path traversal rejected")
        is_dir = source.is_dir()

        if destination_path:
            destination_rel = destination_path
        else:
            destination_rel = source.sibling(copy_name_for(source.name, is_dir))

        destination = self._resolve_new(destination_rel, InvalidDestinationError, "Invalid destination path")
        if destination.exists():
            raise ConflictError("Destination already exists")
        if is_dir and source.contains(destination):
            raise SelfContainmentError("Cannot copy a folder into itself")

        try:
            if is_dir:
                await asyncio.to_thread(shutil.copytree, source.absolute, destination.absolute, symlinks=True)
            else:
                await aiofiles.os.makedirs(destination.absolute.parent, exist_ok=True)
                await asyncio.to_thread(shutil.copy2, source.absolute, destination.absolute)
        except OSError as e:
            raise self._io_failure("copy", source.relative, e)

        loguru.logger.info(f"workspace: copied source_path={source.relative} new_path={destination.relative}")
        return CopyResult(source_path=source.relative, new_path=destination.relative)

    async def mkdir(self, relative_path: str) -> PathResult:
        """
        Create a directory and any missing ancestors.

        Raises:
            InvalidPathError, ConflictError, IOFailureError
        """
        target = self._resolve_new(relative_path, InvalidPathError, "Invalid path or path traversal rejected")
        if target.exists():
            raise ConflictError("Directory already exists")

        try:
            await aiofiles.os.makedirs(target.absolute, exist_ok=False)
        except FileExistsError:
            # Created concurrently between the check and makedirs
            raise ConflictError("Directory already exists")
        except OSError as e:
            raise self._io_failure("mkdir", target.relative, e)

        loguru.logger.info(f"workspace: created directory path={target.relative}")
        return PathResult(path=target.relative)

    # ==================== Files ====================

    async def read_file(self, relative_path: str) -> tuple[str, str, int]:
        """
        Read a text file from the workspace.

        Returns:
            Tuple of (content, content type, size)

        Raises:
            NotFoundError, PathTraversalError, TypeMismatchError, IOFailureError
        """
        file = self._resolve_existing(relative_path, "File not found or access denied")
        if not file.absolute.is_file():
            raise TypeMismatchError("Not a file")

        try:
            async with aiofiles.open(file.absolute, "r", encoding="utf-8", errors="replace") as f:
                content = await f.read()
            size = (await aiofiles.os.stat(file.absolute)).st_size
        except OSError as e:
            raise self._io_failure("read", file.relative, e)

        return content, classify_content_type(file.name), size

    async def write_file(self, relative_path: str, content: str) -> PathResult:
        """
        Write a text file, creating parent directories as needed.

        Raises:
            SystemFileProtectedError, InvalidPathError, TypeMismatchError, IOFailureError
        """
        if is_system_file(relative_path):
            raise SystemFileProtectedError("Cannot write system file")

        file = self._resolve_new(relative_path, InvalidPathError, "Invalid path or path traversal rejected")
        self._guard_system_file(file, "Cannot write system file")
        if file.is_dir():
            raise TypeMismatchError("Path is a directory")

        try:
            await aiofiles.os.makedirs(file.absolute.parent, exist_ok=True)
            async with aiofiles.open(file.absolute, "w", encoding="utf-8") as f:
                await f.write(content)
        except OSError as e:
            raise self._io_failure("write", file.relative, e)

        loguru.logger.info(f"workspace: wrote file path={file.relative} bytes={len(content.encode('utf-8'))}")
        return PathResult(path=file.relative)

    # ==================== Tree ====================

    async def list_tree(self) -> tuple[list[FileTreeNode], bool]:
        """
        Recursively list the workspace tree.

        Dot-entries and dependency directories are hidden. A directory that
        holds an ``.object.yaml`` sidecar is reported as an ``object``.

        Returns:
            Tuple of (root-level nodes, whether the workspace exists)
        """
        try:
            root = self.root
        except WorkspaceUnavailableError:
            return [], False
        return await asyncio.to_thread(self._build_tree, root, root, 0), True

    def _build_tree(self, root: Path, base_path: Path, depth: int) -> list[FileTreeNode]:
        if depth >= settings.tree_max_depth:
            return []
        try:
            items = list(base_path.iterdir())
        except OSError:
            return []

        # Folders first, then case-insensitive by name
        items.sort(key=lambda p: (not p.is_dir(), p.name.lower()))

        nodes = []
        for item in items:
            if item.name.startswith("."):
                continue
            rel_path = item.relative_to(root).as_posix()
            if item.is_dir():
                if item.name in TREE_SKIP_DIRS:
                    continue
                node_type = "object" if (item / OBJECT_SIDECAR).is_file() else "folder"
                nodes.append(FileTreeNode(
                    name=item.name,
                    path=rel_path,
                    type=node_type,
                    children=self._build_tree(root, item, depth + 1),
                ))
            elif item.is_file():
                try:
                    size = item.stat().st_size
                except OSError:
                    # Removed while walking
                    continue
                nodes.append(FileTreeNode(
                    name=item.name,
                    path=rel_path,
                    type=classify_file_type(item.name),
                    size=size,
                ))
        return nodes
