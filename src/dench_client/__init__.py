"""Dench workspace client: live tree via the change stream, plus mutation calls."""
from .backoff import BackoffPolicy
from .config import ClientSettings, client_settings
from .sse import SSEMessage, parse_sse_lines
from .stream_client import ChangeStreamClient, ConnectionState, StreamUnavailableError
from .workspace_client import WorkspaceClient, WorkspaceRequestError

__all__ = [
    "BackoffPolicy",
    "ClientSettings",
    "client_settings",
    "SSEMessage",
    "parse_sse_lines",
    "ChangeStreamClient",
    "ConnectionState",
    "StreamUnavailableError",
    "WorkspaceClient",
    "WorkspaceRequestError",
]
