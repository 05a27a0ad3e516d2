"""Unit tests for debounced autosave and serialized saves."""

import asyncio

import pytest

from stratedit.core.errors import SaveFailed
from stratedit.core.tab_manager import TabManager

DELAY_S = 0.01
SETTLE_S = 0.05


@pytest.fixture
def manager(store):
    return TabManager(store, autosave_delay_s=DELAY_S)


@pytest.mark.asyncio
async def test_burst_of_edits_saves_once_with_latest_content(manager, store):
    manager.open_file("alpha/src/lib.rs", "// alpha\n")

    manager.edit_content(0, "a")
    manager.edit_content(0, "ab")
    manager.edit_content(0, "abc")
    assert manager.autosave.has_pending_timer("alpha/src/lib.rs")

    await asyncio.sleep(SETTLE_S)

    assert store.count("save", "alpha/src/lib.rs") == 1
    assert store.files["alpha/src/lib.rs"] == "abc"
    assert not manager.tabs[0].is_dirty
    assert not manager.autosave.has_pending_timer("alpha/src/lib.rs")
    await manager.close()


@pytest.mark.asyncio
async def test_disabled_autosave_never_saves(store):
    manager = TabManager(store, autosave_delay_s=DELAY_S, autosave_enabled=False)
    manager.open_file("README.md", "")
    manager.edit_content(0, "changed")

    await asyncio.sleep(SETTLE_S)

    assert store.count("save") == 0
    assert manager.tabs[0].is_dirty
    await manager.close()


@pytest.mark.asyncio
async def test_edit_during_inflight_save_keeps_tab_dirty(store):
    manager = TabManager(store, autosave_enabled=False)
    manager.open_file("README.md", "")
    manager.edit_content(0, "first")
    gate = store.hold("save")

    save = asyncio.create_task(manager.save_tab(0))
    await asyncio.sleep(0)
    assert manager.autosave.is_saving("README.md")
    manager.edit_content(0, "second")
    gate.set()

    assert await save is False
    assert store.files["README.md"] == "first"
    assert manager.tabs[0].is_dirty
    assert manager.tabs[0].content == "second"


@pytest.mark.asyncio
async def test_newer_edit_is_saved_after_inflight_save(manager, store):
    manager.open_file("README.md", "")
    gate = store.hold("save")
    manager.edit_content(0, "first")
    await asyncio.sleep(SETTLE_S)
    assert store.count("save") == 1

    manager.edit_content(0, "second")
    gate.set()
    await asyncio.sleep(SETTLE_S)

    assert [call[2] for call in store.calls if call[0] == "save"] == ["first", "second"]
    assert store.files["README.md"] == "second"
    assert not manager.tabs[0].is_dirty
    await manager.close()


@pytest.mark.asyncio
async def test_saves_of_same_path_are_serialized(store):
    manager = TabManager(store, autosave_enabled=False)
    manager.open_file("README.md", "one")
    gate = store.hold("save")

    first = asyncio.create_task(manager.save_tab(0))
    second = asyncio.create_task(manager.save_tab(0))
    await asyncio.sleep(0.01)

    assert store.count("save") == 1

    gate.set()
    await asyncio.gather(first, second)
    assert store.count("save") == 2
    assert not manager.autosave.is_saving("README.md")
    assert "README.md" not in manager.autosave._locks


@pytest.mark.asyncio
async def test_manual_save_writes_clean_tab(store):
    manager = TabManager(store, autosave_enabled=False)
    manager.open_file("README.md", "# strategies\n")

    assert await manager.save_tab(0) is True
    assert store.count("save", "README.md") == 1


@pytest.mark.asyncio
async def test_manual_save_cancels_pending_timer(manager, store):
    manager.open_file("README.md", "")
    manager.edit_content(0, "now")

    assert await manager.save_tab(0) is True
    await asyncio.sleep(SETTLE_S)

    assert store.count("save") == 1
    await manager.close()


@pytest.mark.asyncio
async def test_manual_save_failure_keeps_tab_dirty(store):
    manager = TabManager(store, autosave_enabled=False)
    manager.open_file("README.md", "")
    manager.edit_content(0, "lost?")
    store.fail_next("save", "disk full")

    with pytest.raises(SaveFailed) as exc_info:
        await manager.save_tab(0)

    assert exc_info.value.path == "README.md"
    assert "disk full" in str(exc_info.value)
    assert manager.tabs[0].is_dirty
    assert manager.tabs[0].content == "lost?"
    assert store.files["README.md"] == "# strategies\n"
    assert "README.md" not in manager.autosave._locks


@pytest.mark.asyncio
async def test_autosave_failure_notifies_listeners_and_keeps_dirty(manager, store):
    failures: list[SaveFailed] = []
    manager.on_save_failed(failures.append)
    manager.open_file("README.md", "")
    store.fail_next("save")

    manager.edit_content(0, "changed")
    await asyncio.sleep(SETTLE_S)

    assert len(failures) == 1
    assert failures[0].path == "README.md"
    assert manager.tabs[0].is_dirty
    assert manager.tabs[0].content == "changed"
    # Not retried until the next edit
    assert store.count("save") == 1
    await manager.close()


@pytest.mark.asyncio
async def test_closing_tab_cancels_pending_autosave(manager, store):
    manager.open_file("README.md", "")
    manager.edit_content(0, "discarded")

    manager.close_tab(0)
    await asyncio.sleep(SETTLE_S)

    assert store.count("save") == 0
    assert store.files["README.md"] == "# strategies\n"
    await manager.close()


@pytest.mark.asyncio
async def test_closing_tab_does_not_cancel_issued_save(manager, store):
    manager.open_file("README.md", "")
    gate = store.hold("save")
    manager.edit_content(0, "issued")
    await asyncio.sleep(SETTLE_S)
    assert manager.autosave.is_saving("README.md")

    manager.close_tab(0)
    gate.set()
    await manager.close()

    assert store.files["README.md"] == "issued"


@pytest.mark.asyncio
async def test_timer_for_tab_switched_away_from_does_not_save(manager, store):
    manager.open_file("a.rs", "")
    manager.open_file("b.rs", "")
    manager.select_tab(0)
    manager.edit_content(0, "pending")

    manager.select_tab(1)
    await asyncio.sleep(SETTLE_S)

    assert store.count("save") == 0
    assert manager.tabs[0].is_dirty
    await manager.close()


@pytest.mark.asyncio
async def test_selecting_dirty_tab_rearms_autosave(manager, store):
    manager.open_file("a.rs", "")
    manager.open_file("b.rs", "")
    manager.select_tab(0)
    manager.edit_content(0, "pending")
    manager.select_tab(1)
    await asyncio.sleep(SETTLE_S)

    manager.select_tab(0)
    await asyncio.sleep(SETTLE_S)

    assert store.files["a.rs"] == "pending"
    assert not manager.tabs[0].is_dirty
    await manager.close()


@pytest.mark.asyncio
async def test_edit_of_inactive_tab_does_not_arm(manager):
    manager.open_file("a.rs", "")
    manager.open_file("b.rs", "")

    manager.edit_content(0, "background")

    assert not manager.autosave.has_pending_timer("a.rs")
    await manager.close()


@pytest.mark.asyncio
async def test_close_cancels_timers(manager, store):
    manager.open_file("README.md", "")
    manager.edit_content(0, "unsaved")

    await manager.close()
    await asyncio.sleep(SETTLE_S)

    assert store.count("save") == 0
    assert not manager.autosave.has_pending_timer("README.md")


def test_arm_without_running_loop_is_ignored(manager):
    manager.open_file("README.md", "")

    manager.edit_content(0, "offline")

    assert not manager.autosave.has_pending_timer("README.md")
    assert manager.tabs[0].is_dirty
