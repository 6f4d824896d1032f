"""Workspace operation errors.

Each error carries a machine-readable ``reason`` and the HTTP status the API
layer answers with. Messages only ever mention workspace-relative paths.
"""
from shared.utils import PathRejection


class WorkspaceError(Exception):
    """Base class for failures of a workspace operation."""

    reason = "IOFailure"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_detail(self) -> dict[str, str]:
        return {"error": self.message, "reason": self.reason}


class InvalidInputError(WorkspaceError):
    reason = "InvalidInput"
    status_code = 400


class InvalidNameError(WorkspaceError):
    reason = "InvalidName"
    status_code = 400


class InvalidPathError(WorkspaceError):
    reason = "InvalidPath"
    status_code = 400


class InvalidDestinationError(WorkspaceError):
    reason = "InvalidDestination"
    status_code = 400


class PathTraversalError(WorkspaceError):
    reason = "PathTraversalRejected"
    status_code = 404


class NotFoundError(WorkspaceError):
    reason = "NotFound"
    status_code = 404


class SystemFileProtectedError(WorkspaceError):
    reason = "SystemFileProtected"
    status_code = 403


class ConflictError(WorkspaceError):
    reason = "Conflict"
    status_code = 409


class TypeMismatchError(WorkspaceError):
    reason = "TypeMismatch"
    status_code = 400


class SelfContainmentError(WorkspaceError):
    reason = "SelfContainment"
    status_code = 400


class IOFailureError(WorkspaceError):
    reason = "IOFailure"
    status_code = 500


class WorkspaceUnavailableError(WorkspaceError):
    reason = "WorkspaceUnavailable"
    status_code = 404


class WatchUnavailableError(WorkspaceError):
    reason = "WatchUnavailable"
    status_code = 503


def rejection_to_error(rejection: PathRejection, message: str) -> WorkspaceError:
    """
    Map a PathRejection on a *source* path to an error.

    Traversal gets the same message as any other rejection; it never names
    the refused segment.
    """
    if rejection is PathRejection.NOT_FOUND:
        return NotFoundError(message)
    if rejection is PathRejection.ESCAPES_ROOT:
        return PathTraversalError(message)
    return InvalidPathError(message)
