"""Debounced, per-path serialized persistence of dirty editor buffers.

Each path gets one inactivity timer and, while saves of it are running or
waiting, one lock:

- `arm(path)` (re)starts the timer; a new edit cancels the previous one.
- When the timer expires, a save task is spawned. It waits for any save of
  the same path that is still in flight, then asks the host for a snapshot.
  The host declines when the tab was closed, saved meanwhile, or is no
  longer the active tab.
- After the store acknowledges, the host clears the dirty flag only if the
  buffer revision still matches the snapshot.

Cancelling a timer never cancels a request that was already issued. Failures
are not retried; they are logged and handed to failure listeners.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Protocol

import structlog

from stratedit.constants import DEFAULT_AUTOSAVE_DELAY_S
from stratedit.core.errors import SaveFailed
from stratedit.core.models import SaveSnapshot
from stratedit.core.protocols import SourceStore
from stratedit.core.source_client import APIError
from stratedit.core.task_registry import TaskRegistry

logger = structlog.get_logger(__name__)

SaveFailureListener = Callable[[SaveFailed], None]


class SaveHost(Protocol):
    """Owner of the buffers being saved."""

    def take_snapshot(self, path: str, *, autosave: bool) -> SaveSnapshot | None:
        """Capture the buffer at `path`, or None when there is nothing to save.

        With `autosave` the tab must also be dirty and active.
        """
        ...

    def mark_saved(self, snapshot: SaveSnapshot) -> bool:
        """Record an acknowledged save; return True when the tab became clean."""
        ...


class AutosavePolicy:
    """Per-path debounce timers plus serialized commits to a SourceStore."""

    def __init__(
        self,
        store: SourceStore,
        host: SaveHost,
        *,
        delay_s: float = DEFAULT_AUTOSAVE_DELAY_S,
        enabled: bool = True,
        registry: TaskRegistry | None = None,
    ) -> None:
        self._store = store
        self._host = host
        self.delay_s = delay_s
        self.enabled = enabled
        self._registry = registry or TaskRegistry()
        self._timers: dict[str, asyncio.Task[None]] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        # Commits holding or waiting for each lock; the lock is dropped at zero.
        self._lock_users: dict[str, int] = {}
        self._failure_listeners: list[SaveFailureListener] = []

    def add_failure_listener(self, listener: SaveFailureListener) -> None:
        """Register a callback for failed background saves."""
        self._failure_listeners.append(listener)

    def has_pending_timer(self, path: str) -> bool:
        task = self._timers.get(path)
        return task is not None and not task.done()

    def is_saving(self, path: str) -> bool:
        lock = self._locks.get(path)
        return lock is not None and lock.locked()

    # ==================== Timers ====================

    def arm(self, path: str) -> None:
        """(Re)start the inactivity timer for `path`."""
        if not self.enabled:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, autosave timer not armed", path=path)
            return
        self.cancel(path)
        self._timers[path] = loop.create_task(self._expire(path), name=f"autosave-timer:{path}")

    def cancel(self, path: str) -> bool:
        """Cancel the pending timer for `path`. Returns True if one was pending."""
        task = self._timers.pop(path, None)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    async def _expire(self, path: str) -> None:
        await asyncio.sleep(self.delay_s)
        if self._timers.get(path) is asyncio.current_task():
            del self._timers[path]
        # From here on the save runs on its own task; closing the tab cannot cancel it.
        self._registry.spawn(self._autosave(path), name=f"autosave:{path}")

    async def _autosave(self, path: str) -> None:
        try:
            await self.commit(path, autosave=True)
        except SaveFailed as e:
            for listener in list(self._failure_listeners):
                listener(e)

    # ==================== Commits ====================

    async def commit(self, path: str, *, autosave: bool = False) -> bool:
        """Save the buffer at `path`, serialized with other saves of that path.

        Returns:
            True if the tab is clean after the save, False if nothing was saved
            or an edit landed while the request was in flight.

        Raises:
            SaveFailed: If the store rejects the request. The tab stays dirty.
        """
        lock = self._locks.setdefault(path, asyncio.Lock())
        self._lock_users[path] = self._lock_users.get(path, 0) + 1
        try:
            async with lock:
                return await self._commit_locked(path, autosave)
        finally:
            self._lock_users[path] -= 1
            if not self._lock_users[path]:
                del self._lock_users[path]
                del self._locks[path]

    async def _commit_locked(self, path: str, autosave: bool) -> bool:
        snapshot = self._host.take_snapshot(path, autosave=autosave)
        if snapshot is None:
            logger.debug("Nothing to save", path=path, autosave=autosave)
            return False
        try:
            await self._store.save(snapshot.path, snapshot.content)
        except APIError as e:
            logger.warning("Failed to save file", path=path, autosave=autosave, error=str(e))
            raise SaveFailed(f"Failed to save {path}: {e}", path, detail=e.detail) from e
        clean = self._host.mark_saved(snapshot)
        logger.info("Saved file", path=path, autosave=autosave, clean=clean)
        return clean

    async def close(self, timeout: float = 5.0) -> None:
        """Cancel every pending timer and wait for issued saves to settle."""
        for path in list(self._timers):
            self.cancel(path)
        await self._registry.drain(timeout=timeout)
