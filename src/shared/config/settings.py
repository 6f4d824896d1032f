"""Shared settings and configuration."""
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # Workspace
    # Explicit workspace root; when unset the root is derived from openclaw_home
    workspace_root: str | None = None
    openclaw_home: str = "~/.openclaw"
    openclaw_profile: str | None = None  # workspace-<profile> instead of workspace
    workspace_dirname: str = "dench"

    # Tree listing
    tree_max_depth: int = 10

    # Change watcher
    watch_enabled: bool = True
    watch_debounce_ms: int = 200  # coalescing window before a change event is pushed
    watch_heartbeat_seconds: float = 30.0  # keeps proxies from closing idle streams
    watch_max_depth: int = 10
    watch_native_debounce_ms: int = 50  # watchfiles' own batching window
    watch_ignore_dirs: list[str] = ["node_modules"]
    watch_ignore_patterns: list[str] = [r"\.duckdb\.wal$", r"\.duckdb\.tmp$"]

    # API server
    api_host: str = "127.0.0.1"
    api_port: int = 8100
    api_reload: bool = False
    cors_origins: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=[".env", ".env.local"],
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()


def resolve_workspace_root(config: Settings | None = None) -> Path | None:
    """
    Resolve the workspace root directory.

    Uses ``workspace_root`` when configured, otherwise
    ``<openclaw_home>/workspace[-<profile>]/<workspace_dirname>``.

    Args:
        config: Settings to read (defaults to the module settings)

    Returns:
        Canonical absolute root, or None if it does not exist as a directory
    """
    config = config or settings
    if config.workspace_root:
        candidate = Path(config.workspace_root).expanduser()
    else:
        workspace_dir = "workspace"
        if config.openclaw_profile:
            workspace_dir = f"workspace-{config.openclaw_profile}"
        candidate = Path(config.openclaw_home).expanduser() / workspace_dir / config.workspace_dirname

    try:
        root = candidate.resolve()
    except OSError:
        return None
    if not root.is_dir():
        return None
    return root
