"""Failure conditions surfaced by the workspace.

None of these are fatal: each leaves in-memory state at its last known good
value and is recovered by repeating the action.
"""


class WorkspaceError(Exception):
    """Base class for workspace operation failures."""

    def __init__(self, message: str, path: str, *, detail: str | None = None):
        super().__init__(message)
        self.path = path
        self.detail = detail or message


class LoadFailed(WorkspaceError):
    """Fetching a directory listing or file content failed."""


class SaveFailed(WorkspaceError):
    """Persisting a buffer failed; the tab stays dirty."""


class CreateFailed(WorkspaceError):
    """Creating a file failed."""


class DeleteFailed(WorkspaceError):
    """Deleting a file or directory failed."""


class MoveFailed(WorkspaceError):
    """Moving or renaming a path failed."""
