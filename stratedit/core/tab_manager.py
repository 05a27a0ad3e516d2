"""Open editor tabs: ordering, selection, dirty tracking and display names."""

from __future__ import annotations

import itertools
from collections.abc import Callable, Iterable

import structlog

from stratedit.constants import DEFAULT_AUTOSAVE_DELAY_S
from stratedit.core.autosave import AutosavePolicy, SaveFailureListener
from stratedit.core.display_names import resolve_display_names
from stratedit.core.models import SaveSnapshot, Tab
from stratedit.core.protocols import SourceStore
from stratedit.utils import basename, is_same_or_child

logger = structlog.get_logger(__name__)

DisplayNameResolver = Callable[[Iterable[str]], dict[str, str]]


class TabManager:
    """Ordered set of open tabs, at most one per path.

    Tab order is insertion order. The active tab is addressed by index and is
    None when no tab is open. Display names are recomputed when tabs are opened,
    closed or retargeted, never on edits.
    """

    def __init__(
        self,
        store: SourceStore,
        *,
        autosave_delay_s: float = DEFAULT_AUTOSAVE_DELAY_S,
        autosave_enabled: bool = True,
        resolver: DisplayNameResolver = resolve_display_names,
    ) -> None:
        self._tabs: list[Tab] = []
        self._by_path: dict[str, Tab] = {}
        self._active_index: int | None = None
        # Revisions are unique across tabs so a snapshot never matches a reopened tab.
        self._revisions = itertools.count(1)
        self._resolve = resolver
        self.autosave = AutosavePolicy(store, self, delay_s=autosave_delay_s, enabled=autosave_enabled)

    # ==================== Accessors ====================

    @property
    def tabs(self) -> tuple[Tab, ...]:
        return tuple(self._tabs)

    @property
    def active_index(self) -> int | None:
        return self._active_index

    @property
    def active_tab(self) -> Tab | None:
        if self._active_index is None:
            return None
        return self._tabs[self._active_index]

    def __len__(self) -> int:
        return len(self._tabs)

    def tab_for_path(self, path: str) -> Tab | None:
        return self._by_path.get(path)

    def index_of(self, path: str) -> int | None:
        tab = self._by_path.get(path)
        if tab is None:
            return None
        return self._tabs.index(tab)

    def display_names(self) -> list[str]:
        return [tab.display_name for tab in self._tabs]

    def _tab_at(self, index: int) -> Tab:
        if not 0 <= index < len(self._tabs):
            raise IndexError(f"No tab at index {index} ({len(self._tabs)} open)")
        return self._tabs[index]

    def on_save_failed(self, listener: SaveFailureListener) -> None:
        """Register a callback for failed autosaves."""
        self.autosave.add_failure_listener(listener)

    # ==================== Operations ====================

    def open_file(self, path: str, content: str) -> int:
        """Open `path` with `content`, or select it if it is already open.

        Returns:
            Index of the now active tab
        """
        existing = self.index_of(path)
        if existing is not None:
            self.select_tab(existing)
            return existing

        tab = Tab(path=path, content=content, revision=next(self._revisions))
        self._tabs.append(tab)
        self._by_path[path] = tab
        self._refresh_display_names()
        self._active_index = len(self._tabs) - 1
        logger.debug("Opened tab", path=path, index=self._active_index)
        return self._active_index

    def select_tab(self, index: int) -> None:
        """Make the tab at `index` active. Never saves the previously active tab."""
        tab = self._tab_at(index)
        self._active_index = index
        if tab.is_dirty:
            self.autosave.arm(tab.path)

    def close_tab(self, index: int) -> Tab:
        """Close the tab at `index`, dropping unsaved edits and its pending autosave.

        Returns:
            The closed tab
        """
        tab = self._tab_at(index)
        del self._tabs[index]
        del self._by_path[tab.path]
        self.autosave.cancel(tab.path)
        self._refresh_display_names()

        if self._active_index == index:
            self._active_index = min(index, len(self._tabs) - 1) if self._tabs else None
        elif self._active_index is not None and index < self._active_index:
            self._active_index -= 1

        if tab.is_dirty:
            logger.info("Closed tab with unsaved changes", path=tab.path)
        return tab

    def edit_content(self, index: int, new_content: str) -> None:
        """Replace the buffer of the tab at `index` and mark it dirty.

        The tab is marked dirty even when the text is unchanged.
        """
        tab = self._tab_at(index)
        tab.content = new_content
        tab.is_dirty = True
        tab.revision = next(self._revisions)
        if index == self._active_index:
            self.autosave.arm(tab.path)

    async def save_tab(self, index: int) -> bool:
        """Save the tab at `index` now, whether or not it is dirty.

        Returns:
            True if the tab is clean afterwards

        Raises:
            SaveFailed: If the store rejects the request
        """
        tab = self._tab_at(index)
        self.autosave.cancel(tab.path)
        return await self.autosave.commit(tab.path)

    def close_tabs_under(self, path: str) -> list[Tab]:
        """Close every tab at or below `path` (after it was deleted)."""
        closed: list[Tab] = []
        for index in reversed(range(len(self._tabs))):
            if is_same_or_child(self._tabs[index].path, path):
                closed.append(self.close_tab(index))
        return closed

    def retarget(self, old_path: str, new_path: str) -> int:
        """Point tabs at or below `old_path` at their location under `new_path`.

        Returns:
            Number of tabs updated
        """
        moved = [tab for tab in self._tabs if is_same_or_child(tab.path, old_path)]
        for tab in moved:
            # An in-flight save for the old path will not clear the dirty flag.
            self.autosave.cancel(tab.path)
            del self._by_path[tab.path]
            tab.path = new_path + tab.path[len(old_path) :]
            tab.name = basename(tab.path)
            self._by_path[tab.path] = tab
        if not moved:
            return 0
        self._refresh_display_names()
        active = self.active_tab
        if active is not None and active in moved and active.is_dirty:
            self.autosave.arm(active.path)
        logger.debug("Retargeted tabs", old_path=old_path, new_path=new_path, count=len(moved))
        return len(moved)

    async def close(self) -> None:
        """Cancel pending autosave timers and wait for issued saves to finish."""
        await self.autosave.close()

    def _refresh_display_names(self) -> None:
        names = self._resolve(tab.path for tab in self._tabs)
        for tab in self._tabs:
            tab.display_name = names[tab.path]

    # ==================== SaveHost ====================

    def take_snapshot(self, path: str, *, autosave: bool) -> SaveSnapshot | None:
        tab = self._by_path.get(path)
        if tab is None:
            return None
        if autosave and (not tab.is_dirty or tab is not self.active_tab):
            return None
        return SaveSnapshot(path=tab.path, content=tab.content, revision=tab.revision)

    def mark_saved(self, snapshot: SaveSnapshot) -> bool:
        tab = self._by_path.get(snapshot.path)
        if tab is None or tab.revision != snapshot.revision:
            return False
        tab.is_dirty = False
        return True
