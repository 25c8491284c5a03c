"""Poll-based staleness detection for watched directories.

Compares stat stamps of each directory's control file and of the sources its
directives referenced last time. A stamp captures existence plus mtime/size,
so deletions, re-creations and in-place edits all register as changes.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

from .control_file import control_file_path

FileStamp = tuple[str, int, int]

MISSING_STAMP: FileStamp = ("missing", 0, 0)


def file_stamp(path: Path) -> FileStamp:
    """Return a stable stat tuple describing ``path`` existence and metadata."""
    try:
        st = path.stat()
    except FileNotFoundError:
        return MISSING_STAMP
    except OSError:
        return ("error", 0, 0)
    return ("ok", st.st_mtime_ns, st.st_size)


@dataclass
class WatchedDirectory:
    """Per-directory poll state, owned by the updater registry."""

    path: Path
    package_name: str = ""
    last_control_stamp: FileStamp | None = None
    source_stamps: dict[Path, FileStamp] = field(default_factory=dict)

    @property
    def control_path(self) -> Path:
        return control_file_path(self.path)

    @property
    def observed(self) -> bool:
        return self.last_control_stamp is not None


@dataclass(frozen=True)
class DirectoryStamp:
    """Snapshot of the stamps a cycle processed."""

    control: FileStamp
    sources: dict[Path, FileStamp]


class ChangeDetector:
    """Timestamp comparison behind an ``is_stale``/``mark_fresh`` contract."""

    def __init__(self, stamp_for: Callable[[Path], FileStamp] = file_stamp) -> None:
        self._stamp_for = stamp_for

    def is_stale(self, watched: WatchedDirectory) -> bool:
        """Return whether ``watched`` needs another cycle.

        A never-processed directory is always stale.
        """
        if watched.last_control_stamp is None:
            return True
        if self._stamp_for(watched.control_path) != watched.last_control_stamp:
            return True
        for path, recorded in watched.source_stamps.items():
            if self._stamp_for(path) != recorded:
                return True
        return False

    def control_stamp(self, watched: WatchedDirectory) -> FileStamp:
        return self._stamp_for(watched.control_path)

    def observe(self, control: FileStamp, source_paths: Iterable[Path]) -> DirectoryStamp:
        """Capture stamps for ``source_paths`` alongside an existing control stamp.

        Call before generation so edits made while generating trigger the
        next cycle.
        """
        sources = {path: self._stamp_for(path) for path in source_paths}
        return DirectoryStamp(control=control, sources=sources)

    def mark_fresh(self, watched: WatchedDirectory, stamp: DirectoryStamp) -> None:
        """Record ``stamp`` as the last processed state of ``watched``."""
        watched.last_control_stamp = stamp.control
        watched.source_stamps = dict(stamp.sources)


__all__ = [
    "FileStamp",
    "MISSING_STAMP",
    "file_stamp",
    "WatchedDirectory",
    "DirectoryStamp",
    "ChangeDetector",
]
