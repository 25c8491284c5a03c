"""Watch-root expansion into the set of directories to poll.

Recursive roots are re-walked on every call so directories created after
startup are picked up. Scan failures skip the affected subtree only.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from .errors import FilesystemError

logger = logging.getLogger(__name__)

SKIPPED_DIRECTORY_NAMES = frozenset({"testdata", "vendor"})


@dataclass(frozen=True)
class WatchRoot:
    """One directory requested for watching, optionally with descendants."""

    path: Path
    recursive: bool = False


def is_walkable_directory_name(name: str) -> bool:
    """Return whether the Go tool would descend into a directory called ``name``."""
    if name.startswith((".", "_")):
        return False
    return name not in SKIPPED_DIRECTORY_NAMES


def list_subdirectories(directory: Path) -> list[Path]:
    """List walkable child directories of ``directory`` in name order.

    Symlinked directories are not followed. Raises ``FilesystemError`` when
    ``directory`` cannot be scanned.
    """
    children: list[Path] = []
    try:
        with os.scandir(directory) as entries:
            for child in entries:
                if not is_walkable_directory_name(child.name):
                    continue
                try:
                    is_dir = child.is_dir(follow_symlinks=False)
                except OSError:
                    is_dir = False
                if is_dir:
                    children.append(Path(child.path))
    except OSError as exc:
        raise FilesystemError(directory, exc) from exc
    children.sort(key=lambda path: path.name)
    return children


def walk_directories(root: Path) -> list[Path]:
    """Return ``root`` plus every walkable descendant directory, depth-first."""
    found: list[Path] = []
    stack = [root]
    while stack:
        directory = stack.pop()
        try:
            children = list_subdirectories(directory)
        except FilesystemError as exc:
            logger.debug("skipping %s: %s", directory, exc)
            if directory == root:
                return []
            continue
        found.append(directory)
        stack.extend(reversed(children))
    return found


def enumerate_directories(roots: Iterable[WatchRoot]) -> list[Path]:
    """Expand ``roots`` into a sorted, de-duplicated list of directories.

    Non-recursive roots contribute themselves when they are directories.
    Missing roots contribute nothing.
    """
    seen: set[Path] = set()
    for root in roots:
        if not root.path.is_dir():
            logger.debug("watch root %s is not a directory", root.path)
            continue
        if root.recursive:
            seen.update(walk_directories(root.path))
        else:
            seen.add(root.path)
    return sorted(seen, key=lambda path: str(path))


__all__ = [
    "WatchRoot",
    "SKIPPED_DIRECTORY_NAMES",
    "is_walkable_directory_name",
    "list_subdirectories",
    "walk_directories",
    "enumerate_directories",
]
