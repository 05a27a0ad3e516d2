"""Collision-free tab labels.

Tabs whose files share a basename are told apart by the shortest run of
parent directories that no other colliding tab ends with:

    strategies/alpha/lib.rs, strategies/beta/lib.rs -> alpha/lib.rs, beta/lib.rs
"""

from __future__ import annotations

from collections.abc import Iterable

from stratedit.constants import PATH_SEPARATOR
from stratedit.utils import basename


def _ends_with(path: str, suffix: str) -> bool:
    return path == suffix or path.endswith(PATH_SEPARATOR + suffix)


def _disambiguate(path: str, others: list[str]) -> str:
    parts = path.split(PATH_SEPARATOR)
    for depth in range(2, len(parts) + 1):
        suffix = PATH_SEPARATOR.join(parts[-depth:])
        if not any(_ends_with(other, suffix) for other in others):
            return suffix
    # Only reachable when another path ends with this whole path.
    return path


def resolve_display_names(paths: Iterable[str]) -> dict[str, str]:
    """Map each open path to its display name.

    The result depends only on the set of paths, not on their order.
    """
    unique_paths = list(dict.fromkeys(paths))
    groups: dict[str, list[str]] = {}
    for path in unique_paths:
        groups.setdefault(basename(path), []).append(path)

    names: dict[str, str] = {}
    for name, group in groups.items():
        if len(group) == 1:
            names[group[0]] = name
            continue
        for path in group:
            names[path] = _disambiguate(path, [other for other in group if other != path])
    return names
