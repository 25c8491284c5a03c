"""Error taxonomy for the watch-and-update engine.

Every error is scoped to the smallest unit it affects (one control-file line,
one directive, one directory). None of them is allowed to stop the watch loop.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path


class MockwatchError(Exception):
    """Base class for all recoverable mockwatch failures."""


class ParseError(MockwatchError):
    """Malformed control-file line; fails the whole file for one cycle."""

    def __init__(self, line_number: int, line: str, message: str) -> None:
        self.line_number = line_number
        self.line = line
        self.message = message
        super().__init__(f"line {line_number}: {message}: {line.strip()!r}")


class UnresolvablePackageError(MockwatchError):
    """A directive's package reference does not map to an existing directory."""

    def __init__(self, package_ref: str, searched: Sequence[Path] = ()) -> None:
        self.package_ref = package_ref
        self.searched = tuple(searched)
        where = ", ".join(str(path) for path in self.searched) or "no package roots"
        super().__init__(f"cannot resolve package {package_ref!r} (searched: {where})")


class GenerationError(MockwatchError):
    """The external generator failed for one directive."""

    def __init__(self, description: str, detail: str = "") -> None:
        self.description = description
        self.detail = detail
        message = f"generating {description} failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class FilesystemError(MockwatchError):
    """A watched path vanished or could not be read mid-cycle."""

    def __init__(self, path: Path, cause: BaseException | None = None) -> None:
        self.path = path
        self.cause = cause
        suffix = f": {cause}" if cause is not None else ""
        super().__init__(f"filesystem error at {path}{suffix}")


__all__ = [
    "MockwatchError",
    "ParseError",
    "UnresolvablePackageError",
    "GenerationError",
    "FilesystemError",
]
