"""stratedit: command line access to the strategy source store.

Usage:
    stratedit ls [path]
    stratedit cat <path>
    stratedit touch <path>
    stratedit rm <path>
    stratedit mv <old_path> <new_path>
    stratedit add-strategy <name>
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import TextIO

from pydantic import ValidationError

from stratedit import __version__
from stratedit.config import config_path, get_config
from stratedit.config.schema import WorkspaceConfig
from stratedit.constants import ROOT_PATH
from stratedit.core.errors import WorkspaceError
from stratedit.core.models import FileNode
from stratedit.core.source_client import APIError, SourceAPIClient
from stratedit.core.workspace import Workspace
from stratedit.logging_config import setup_logging
from stratedit.utils import basename, parent_path


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="stratedit", description="Browse and edit strategy sources.")
    parser.add_argument("--version", action="version", version=f"stratedit {__version__}")
    parser.add_argument("--base-url", help="Store API root (overrides api.base_url)")
    parser.add_argument("--log-level", help="Log level (overrides STRATEDIT_LOG_LEVEL)")
    commands = parser.add_subparsers(dest="command", required=True)

    ls = commands.add_parser("ls", help="List a directory")
    ls.add_argument("path", nargs="?", default=ROOT_PATH)

    cat = commands.add_parser("cat", help="Print a file")
    cat.add_argument("path")

    touch = commands.add_parser("touch", help="Create an empty file")
    touch.add_argument("path")

    rm = commands.add_parser("rm", help="Delete a file or directory")
    rm.add_argument("path")

    mv = commands.add_parser("mv", help="Move a file or directory")
    mv.add_argument("old_path")
    mv.add_argument("new_path")

    add = commands.add_parser("add-strategy", help="Scaffold a new strategy")
    add.add_argument("name")
    return parser


def _format_listing(children: list[FileNode]) -> str:
    return "\n".join(f"{child.name}/" if child.is_directory else child.name for child in children)


async def _run(args: argparse.Namespace, config: WorkspaceConfig, out: TextIO) -> None:
    base_url = args.base_url or config.api.base_url
    async with SourceAPIClient(base_url=base_url, timeout=config.api.timeout_s) as client:
        # One-shot commands never leave edits behind, so autosave stays off.
        workspace = Workspace(client, autosave_enabled=False)
        try:
            if args.command == "ls":
                out.write(_format_listing(await workspace.tree.expand(args.path)) + "\n")
            elif args.command == "cat":
                out.write(await workspace.tree.read_file(args.path))
            elif args.command == "touch":
                path = args.path.rstrip("/")
                await workspace.create_file(parent_path(path), basename(path))
            elif args.command == "rm":
                await workspace.delete_path(args.path)
            elif args.command == "mv":
                await workspace.move_path(args.old_path, args.new_path)
            elif args.command == "add-strategy":
                await workspace.add_strategy(args.name)
        finally:
            await workspace.close()


def _main_impl(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    try:
        config = get_config()
    except ValidationError as e:
        sys.stderr.write(f"stratedit error: invalid config {config_path()}: {e}\n")
        return 1
    setup_logging(args.log_level or config.log_level)
    try:
        asyncio.run(_run(args, config, sys.stdout))
    except (WorkspaceError, APIError) as e:
        sys.stderr.write(f"stratedit error: {e}\n")
        return 1
    return 0


def main() -> None:
    try:
        sys.exit(_main_impl())
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
