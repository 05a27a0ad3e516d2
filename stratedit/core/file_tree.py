"""Lazily loaded view of the remote strategy source tree.

Nodes live in a flat arena keyed by path; a directory's children are a tuple
of child paths that exists only once the directory has been expanded. Cached
listings are never refreshed behind the caller's back: after a create, delete
or move the caller invalidates the affected directory and expands it again.
"""

from __future__ import annotations

import asyncio
import itertools
from functools import partial

import structlog

from stratedit.constants import ROOT_PATH
from stratedit.core.errors import CreateFailed, DeleteFailed, LoadFailed, MoveFailed
from stratedit.core.models import FileNode, NodeType, SourceDirectory
from stratedit.core.protocols import SourceStore
from stratedit.core.source_client import APIError
from stratedit.utils import is_same_or_child, parent_path

logger = structlog.get_logger(__name__)


def _describe(path: str) -> str:
    return path or "<root>"


class FileTreeCache:
    """Path-addressed cache of directory listings fetched from a SourceStore."""

    def __init__(self, store: SourceStore) -> None:
        self._store = store
        self._nodes: dict[str, FileNode] = {ROOT_PATH: FileNode(path=ROOT_PATH, type=NodeType.DIRECTORY)}
        self._children: dict[str, tuple[str, ...]] = {}
        self._pending: dict[str, asyncio.Task[list[FileNode]]] = {}
        # Token of the fetch allowed to store a listing; present only while one is pending.
        # invalidate() drops it, so an older in-flight fetch cannot repopulate the listing.
        self._generation: dict[str, int] = {}
        self._generations = itertools.count(1)

    # ==================== Lookups ====================

    def node(self, path: str) -> FileNode | None:
        """Return the known node at `path` without fetching."""
        return self._nodes.get(path)

    def cached_children(self, path: str) -> list[FileNode] | None:
        """Return cached children of `path`, or None when not resolved."""
        child_paths = self._children.get(path)
        if child_paths is None:
            return None
        return [self._nodes[p] for p in child_paths]

    def is_resolved(self, path: str) -> bool:
        return path in self._children

    def is_loading(self, path: str) -> bool:
        return path in self._pending

    # ==================== Loading ====================

    async def get_root(self) -> list[FileNode]:
        """Return the root listing, fetching it on first use."""
        return await self.expand(ROOT_PATH)

    async def expand(self, path: str) -> list[FileNode]:
        """Return the children of the directory at `path`.

        The first call fetches from the store; later calls are served from the
        cache until `invalidate(path)`. Concurrent callers share one fetch.

        Raises:
            LoadFailed: If the fetch fails or `path` is not a directory. The
                directory stays unresolved and the next call retries.
        """
        cached = self.cached_children(path)
        if cached is not None:
            return cached

        task = self._pending.get(path)
        if task is None:
            generation = next(self._generations)
            self._generation[path] = generation
            task = asyncio.create_task(self._fetch_children(path, generation), name=f"expand:{_describe(path)}")
            self._pending[path] = task
            task.add_done_callback(partial(self._clear_pending, path))
        # Shielded so one cancelled caller does not cancel the fetch for the others.
        return await asyncio.shield(task)

    def _clear_pending(self, path: str, task: asyncio.Task[list[FileNode]]) -> None:
        if self._pending.get(path) is task:
            del self._pending[path]
            del self._generation[path]

    async def _fetch_children(self, path: str, generation: int) -> list[FileNode]:
        logger.debug("Fetching directory", path=path)
        try:
            entry = await self._store.get(path)
        except APIError as e:
            logger.warning("Failed to load directory", path=path, error=str(e))
            raise LoadFailed(f"Failed to load {_describe(path)}: {e}", path, detail=e.detail) from e

        if not isinstance(entry, SourceDirectory):
            raise LoadFailed(f"Not a directory: {_describe(path)}", path)

        children = list(entry.children)
        if self._generation.get(path) == generation:
            self._store_listing(path, children)
        else:
            logger.debug("Discarding listing fetched before invalidation", path=path)
        return children

    def _store_listing(self, path: str, children: list[FileNode]) -> None:
        child_paths = tuple(child.path for child in children)
        keep = set(child_paths)
        stale = [p for p in self._nodes if p != path and p not in keep and parent_path(p) == path]
        for stale_path in stale:
            self._forget_subtree(stale_path)
        for child in children:
            previous = self._nodes.get(child.path)
            if previous is not None and previous.type is not child.type:
                self._forget_subtree(child.path)
            self._nodes[child.path] = child
        self._children[path] = child_paths

    def _forget_subtree(self, path: str) -> None:
        for known in [p for p in self._nodes if is_same_or_child(p, path)]:
            del self._nodes[known]
            self._children.pop(known, None)
            self._pending.pop(known, None)
            self._generation.pop(known, None)

    def invalidate(self, path: str) -> None:
        """Discard the cached listing of `path`; the next expand re-fetches."""
        self._children.pop(path, None)
        self._pending.pop(path, None)
        self._generation.pop(path, None)
        logger.debug("Invalidated directory", path=path)

    async def read_file(self, path: str) -> str:
        """Fetch the current content of the file at `path`.

        Raises:
            LoadFailed: If the fetch fails or `path` is a directory.
        """
        try:
            entry = await self._store.get(path)
        except APIError as e:
            logger.warning("Failed to load file", path=path, error=str(e))
            raise LoadFailed(f"Failed to load {_describe(path)}: {e}", path, detail=e.detail) from e
        if isinstance(entry, SourceDirectory):
            raise LoadFailed(f"Not a file: {_describe(path)}", path)
        return entry.content

    # ==================== Mutations ====================

    async def create(self, path: str, content: str = "") -> None:
        """Create a file at `path`. Does not invalidate the parent listing.

        Raises:
            CreateFailed: If the store rejects the request.
        """
        try:
            await self._store.save(path, content)
        except APIError as e:
            logger.warning("Failed to create file", path=path, error=str(e))
            raise CreateFailed(f"Failed to create {path}: {e}", path, detail=e.detail) from e
        logger.info("Created file", path=path)

    async def delete(self, path: str) -> None:
        """Delete the file or directory at `path`. Does not invalidate the parent listing.

        Raises:
            DeleteFailed: If the store rejects the request.
        """
        try:
            await self._store.delete(path)
        except APIError as e:
            logger.warning("Failed to delete path", path=path, error=str(e))
            raise DeleteFailed(f"Failed to delete {path}: {e}", path, detail=e.detail) from e
        logger.info("Deleted path", path=path)

    async def move(self, old_path: str, new_path: str) -> None:
        """Move `old_path` to `new_path`. Does not invalidate either parent listing.

        Raises:
            MoveFailed: If the store rejects the request.
        """
        try:
            await self._store.move(old_path, new_path)
        except APIError as e:
            logger.warning("Failed to move path", old_path=old_path, new_path=new_path, error=str(e))
            raise MoveFailed(f"Failed to move {old_path} to {new_path}: {e}", old_path, detail=e.detail) from e
        logger.info("Moved path", old_path=old_path, new_path=new_path)
