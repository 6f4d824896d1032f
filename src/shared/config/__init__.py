"""Configuration module."""
from .settings import Settings, resolve_workspace_root, settings

__all__ = ["Settings", "resolve_workspace_root", "settings"]
