"""Utility functions for stratedit."""

import os
import re

from stratedit.constants import PATH_SEPARATOR, ROOT_PATH


def expand_env_vars(config: object) -> object:
    """Recursively expand environment variables in config.

    Replaces ${VAR} patterns with environment variable values. Unknown
    variables are left untouched.

    Args:
        config: Configuration object (dict, list, str, or primitive)

    Returns:
        Configuration with all ${VAR} patterns replaced
    """
    if isinstance(config, dict):
        return {k: expand_env_vars(v) for k, v in config.items()}  # type: ignore[misc]
    if isinstance(config, list):
        return [expand_env_vars(item) for item in config]
    if isinstance(config, str):

        def replace_env_var(match: re.Match[str]) -> str:
            env_var = match.group(1)
            return os.getenv(env_var, match.group(0))

        return re.sub(r"\$\{([^}]+)\}", replace_env_var, config)
    return config


def basename(path: str) -> str:
    """Return the last segment of a store path ("" for the root)."""
    return path.rsplit(PATH_SEPARATOR, 1)[-1]


def parent_path(path: str) -> str:
    """Return the directory containing `path`; top-level entries live in the root."""
    if PATH_SEPARATOR not in path:
        return ROOT_PATH
    return path.rsplit(PATH_SEPARATOR, 1)[0]


def join_path(parent: str, name: str) -> str:
    """Join a directory path and an entry name, treating "" as the root."""
    if not parent:
        return name
    return f"{parent}{PATH_SEPARATOR}{name}"


def is_same_or_child(candidate: str, parent: str) -> bool:
    """True when `candidate` is `parent` or lives somewhere below it."""
    if parent == ROOT_PATH:
        return True
    return candidate == parent or candidate.startswith(f"{parent}{PATH_SEPARATOR}")
