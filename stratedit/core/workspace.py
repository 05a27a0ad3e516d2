"""Editing session over a strategy source store.

Ties the tree cache and the tab manager together the way the strategy page
uses them: clicking a file opens (or re-selects) a tab, and every tree
mutation is followed by an explicit reload of the directories it touched.
"""

from __future__ import annotations

import structlog

from stratedit.config.schema import WorkspaceConfig
from stratedit.constants import DEFAULT_AUTOSAVE_DELAY_S, ROOT_PATH
from stratedit.core.errors import CreateFailed, LoadFailed
from stratedit.core.file_tree import FileTreeCache
from stratedit.core.models import FileNode, Tab
from stratedit.core.protocols import SourceStore, StrategyScaffolder
from stratedit.core.source_client import APIError
from stratedit.core.tab_manager import TabManager
from stratedit.utils import join_path, parent_path

logger = structlog.get_logger(__name__)


class Workspace:
    """One user's editing session: a file tree plus open tabs."""

    def __init__(
        self,
        store: SourceStore,
        *,
        autosave_delay_s: float = DEFAULT_AUTOSAVE_DELAY_S,
        autosave_enabled: bool = True,
    ) -> None:
        self.store = store
        self.tree = FileTreeCache(store)
        self.tabs = TabManager(store, autosave_delay_s=autosave_delay_s, autosave_enabled=autosave_enabled)

    @classmethod
    def from_config(cls, store: SourceStore, config: WorkspaceConfig) -> "Workspace":
        return cls(store, autosave_delay_s=config.autosave.delay_s, autosave_enabled=config.autosave.enabled)

    async def open_path(self, path: str) -> Tab:
        """Open the file at `path` in a tab, fetching it only if not already open.

        Raises:
            LoadFailed: If the file cannot be fetched
        """
        index = self.tabs.index_of(path)
        if index is None:
            content = await self.tree.read_file(path)
            # open_file selects instead if a concurrent open got there first
            index = self.tabs.open_file(path, content)
        else:
            self.tabs.select_tab(index)
        return self.tabs.tabs[index]

    async def refresh(self, path: str = ROOT_PATH) -> list[FileNode]:
        """Drop the cached listing of `path` and fetch it again.

        Raises:
            LoadFailed: If the fetch fails
        """
        self.tree.invalidate(path)
        return await self.tree.expand(path)

    async def _reload(self, path: str) -> None:
        """Re-fetch `path` after a mutation, if it had been expanded before."""
        was_resolved = self.tree.is_resolved(path)
        self.tree.invalidate(path)
        if not was_resolved:
            return
        try:
            await self.tree.expand(path)
        except LoadFailed as e:
            # The mutation itself succeeded; the directory stays unresolved until the next expand.
            logger.warning("Reload after mutation failed", path=path, error=str(e))

    async def create_file(self, parent: str, filename: str) -> str:
        """Create an empty file named `filename` inside `parent`.

        Returns:
            Path of the new file

        Raises:
            CreateFailed: If the name is empty or the store rejects the request
        """
        name = filename.strip()
        if not name:
            raise CreateFailed("File name must not be empty", parent)
        path = join_path(parent, name)
        await self.tree.create(path)
        await self._reload(parent)
        return path

    async def delete_path(self, path: str) -> None:
        """Delete a file or directory and close the tabs that pointed into it.

        Raises:
            DeleteFailed: If the store rejects the request
        """
        await self.tree.delete(path)
        closed = self.tabs.close_tabs_under(path)
        if closed:
            logger.info("Closed tabs for deleted path", path=path, count=len(closed))
        self.tree.invalidate(path)
        await self._reload(parent_path(path))

    async def move_path(self, old_path: str, new_path: str) -> None:
        """Move a file or directory; open tabs follow the move.

        Raises:
            MoveFailed: If the store rejects the request
        """
        await self.tree.move(old_path, new_path)
        self.tabs.retarget(old_path, new_path)
        self.tree.invalidate(old_path)
        for directory in dict.fromkeys((parent_path(old_path), parent_path(new_path))):
            await self._reload(directory)

    async def add_strategy(self, name: str) -> None:
        """Scaffold a new strategy and reload the root listing.

        Raises:
            CreateFailed: If the store rejects the request
            TypeError: If the store cannot scaffold strategies
        """
        if not isinstance(self.store, StrategyScaffolder):
            raise TypeError(f"{type(self.store).__name__} cannot add strategies")
        try:
            await self.store.add_strategy(name)
        except APIError as e:
            logger.warning("Failed to add strategy", name=name, error=str(e))
            raise CreateFailed(f"Failed to add strategy {name}: {e}", name, detail=e.detail) from e
        logger.info("Added strategy", name=name)
        await self._reload(ROOT_PATH)

    async def close(self) -> None:
        """Stop autosave timers and wait for issued saves."""
        await self.tabs.close()
