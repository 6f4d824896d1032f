"""Shared schemas for the Dench workspace."""
from .change import ChangeKind, FileChange
from .sse import (
    HEARTBEAT_FRAME,
    ChangeEvent,
    ConnectedEvent,
    ErrorEvent,
    SSEEvent,
    change_to_sse,
)

__all__ = [
    # Change schemas
    "ChangeKind",
    "FileChange",
    # SSE schemas
    "SSEEvent",
    "ConnectedEvent",
    "ChangeEvent",
    "ErrorEvent",
    "HEARTBEAT_FRAME",
    "change_to_sse",
]
