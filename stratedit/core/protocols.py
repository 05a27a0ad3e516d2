"""Protocol definitions for the remote source store."""

from typing import Protocol, runtime_checkable

from stratedit.core.models import SourceDirectory, SourceFile


@runtime_checkable
class SourceStore(Protocol):
    """Remote source of truth for strategy files and directories.

    Paths are store-relative, "/"-separated; the empty path denotes the root.
    A save acknowledgment guarantees that a later get on the same path
    returns that content.
    """

    async def get(self, path: str) -> SourceFile | SourceDirectory:
        """Fetch a file with its content, or a directory with its children.

        Raises:
            APIError: If the request fails
        """
        ...

    async def save(self, path: str, content: str) -> None:
        """Overwrite the whole content of a file, creating it if needed.

        Raises:
            APIError: If the request fails
        """
        ...

    async def delete(self, path: str) -> None:
        """Delete a file, or a directory recursively.

        Raises:
            APIError: If the request fails
        """
        ...

    async def move(self, old_path: str, new_path: str) -> None:
        """Rename or relocate a file or subtree.

        Raises:
            APIError: If the request fails
        """
        ...


@runtime_checkable
class StrategyScaffolder(Protocol):
    """Store that can scaffold a new strategy crate under the root."""

    async def add_strategy(self, name: str) -> None:
        """Create the strategy named `name`.

        Raises:
            APIError: If the request fails
        """
        ...
