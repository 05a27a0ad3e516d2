"""Pytest configuration for stratedit tests."""

import asyncio
import logging

import pytest
import structlog

from stratedit.core.models import FileNode, NodeType, SourceDirectory, SourceFile
from stratedit.core.source_client import APIError
from stratedit.utils import is_same_or_child, parent_path

structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.CRITICAL))


def pytest_collection_modifyitems(config, items):
    """Set per-marker timeouts: unit=1s, integration=5s."""
    for item in items:
        if "unit" in item.keywords:
            item.add_marker(pytest.mark.timeout(1))
        elif "integration" in item.keywords:
            item.add_marker(pytest.mark.timeout(5))


class InMemorySourceStore:
    """SourceStore double backed by a dict of file contents.

    Directories exist implicitly through the paths of the files below them,
    plus any registered with `add_directory`. Every call is counted; a call
    can be made to fail once with `fail_next`, or held until released with
    `hold`.
    """

    def __init__(self, files: dict[str, str] | None = None) -> None:
        self.files: dict[str, str] = dict(files or {})
        self.directories: set[str] = set()
        self.calls: list[tuple[str, ...]] = []
        self._failures: dict[str, APIError] = {}
        self._gates: dict[str, asyncio.Event] = {}

    def add_directory(self, path: str) -> None:
        self.directories.add(path)

    def fail_next(self, method: str, message: str = "boom", status_code: int | None = 500) -> None:
        self._failures[method] = APIError(message, status_code=status_code)

    def hold(self, method: str) -> asyncio.Event:
        """Block calls to `method` until the returned event is set."""
        gate = asyncio.Event()
        self._gates[method] = gate
        return gate

    def count(self, method: str, *args: str) -> int:
        return sum(1 for call in self.calls if call[0] == method and call[1 : 1 + len(args)] == args)

    async def _enter(self, method: str) -> None:
        gate = self._gates.get(method)
        if gate is not None:
            await gate.wait()
        error = self._failures.pop(method, None)
        if error is not None:
            raise error

    def _all_directories(self) -> set[str]:
        dirs = {""} | set(self.directories)
        for path in list(self.files) + list(self.directories):
            while "/" in path:
                path = parent_path(path)
                dirs.add(path)
        return dirs

    async def get(self, path: str) -> SourceFile | SourceDirectory:
        self.calls.append(("get", path))
        await self._enter("get")
        if path in self.files:
            return SourceFile(type="file", path=path, content=self.files[path])
        directories = self._all_directories()
        if path not in directories:
            raise APIError("API request failed: 404 Path does not exist", status_code=404)
        children = [FileNode(path=d, type=NodeType.DIRECTORY) for d in directories if d and d != path and parent_path(d) == path]
        children.sort(key=lambda node: node.name)
        files = [FileNode(path=f, type=NodeType.FILE) for f in self.files if parent_path(f) == path]
        files.sort(key=lambda node: node.name)
        return SourceDirectory(type="directory", path=path, children=children + files)

    async def save(self, path: str, content: str) -> None:
        self.calls.append(("save", path, content))
        await self._enter("save")
        self.files[path] = content

    async def delete(self, path: str) -> None:
        self.calls.append(("delete", path))
        await self._enter("delete")
        removed = [f for f in self.files if is_same_or_child(f, path)]
        removed_dirs = [d for d in self.directories if is_same_or_child(d, path)]
        if not removed and not removed_dirs:
            raise APIError("API request failed: 404 Path does not exist", status_code=404)
        for f in removed:
            del self.files[f]
        self.directories.difference_update(removed_dirs)

    async def move(self, old_path: str, new_path: str) -> None:
        self.calls.append(("move", old_path, new_path))
        await self._enter("move")
        moved = [f for f in self.files if is_same_or_child(f, old_path)]
        if not moved:
            raise APIError("API request failed: 404 Path does not exist", status_code=404)
        for f in moved:
            self.files[new_path + f[len(old_path) :]] = self.files.pop(f)

    async def add_strategy(self, name: str) -> None:
        self.calls.append(("add_strategy", name))
        await self._enter("add_strategy")
        self.files[f"{name}/Cargo.toml"] = f'[package]\nname = "{name}"\n'
        self.files[f"{name}/src/lib.rs"] = ""


@pytest.fixture
def store() -> InMemorySourceStore:
    """Store with two strategies sharing file names."""
    return InMemorySourceStore(
        {
            "alpha/Cargo.toml": "[package]\nname = \"alpha\"\n",
            "alpha/src/lib.rs": "// alpha\n",
            "beta/Cargo.toml": "[package]\nname = \"beta\"\n",
            "beta/src/lib.rs": "// beta\n",
            "README.md": "# strategies\n",
        }
    )
