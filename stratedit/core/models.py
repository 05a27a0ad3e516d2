"""Data models for the strategy source tree and open editor tabs."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Literal, TypeAlias

from pydantic import Field, TypeAdapter

from stratedit.constants import DEFAULT_LANGUAGE, LANGUAGE_BY_EXTENSION
from stratedit.utils import basename


class NodeType(str, Enum):
    """Kind of entry in the source tree."""

    FILE = "file"
    DIRECTORY = "directory"


@dataclass(frozen=True)
class FileNode:
    """One entry of the remote hierarchy, addressed by its path."""

    path: str
    type: NodeType
    name: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            object.__setattr__(self, "name", basename(self.path))

    @property
    def is_directory(self) -> bool:
        return self.type is NodeType.DIRECTORY


@dataclass(frozen=True)
class SourceFile:
    type: Literal["file"]
    path: str
    content: str
    name: str = ""


@dataclass(frozen=True)
class SourceDirectory:
    type: Literal["directory"]
    path: str
    children: list[FileNode]
    name: str = ""


SourceEntry: TypeAlias = Annotated[SourceFile | SourceDirectory, Field(discriminator="type")]

SOURCE_ENTRY_ADAPTER: TypeAdapter[SourceFile | SourceDirectory] = TypeAdapter(SourceEntry)


@dataclass(frozen=True)
class ErrorBody:
    """Error payload returned by the store: {"error": kind, "message": text}."""

    error: str
    message: str


def language_for(filename: str) -> str:
    """Editor language for a file name, by extension."""
    for extension, language in LANGUAGE_BY_EXTENSION.items():
        if filename.endswith(extension):
            return language
    return DEFAULT_LANGUAGE


@dataclass
class Tab:
    """One open edit session over a remote file."""

    path: str
    content: str
    name: str = ""
    display_name: str = ""
    is_dirty: bool = False
    # Changes on every edit; a save only clears is_dirty if it still matches.
    revision: int = 0

    def __post_init__(self) -> None:
        if not self.name:
            self.name = basename(self.path)
        if not self.display_name:
            self.display_name = self.name

    @property
    def language(self) -> str:
        return language_for(self.name)


@dataclass(frozen=True)
class SaveSnapshot:
    """Buffer content captured for one save request."""

    path: str
    content: str
    revision: int
