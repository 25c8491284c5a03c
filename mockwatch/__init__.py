"""Public package surface for mockwatch.

Exports ``MockFileUpdater`` for programmatic use and ``main`` for the CLI.
Most implementation lives in submodules under ``mockwatch``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .runtime.updater import MockFileUpdater


def main(*args, **kwargs):
    """Lazily import CLI entrypoint to keep package imports lightweight."""
    from .cli import main as _main

    return _main(*args, **kwargs)


def __getattr__(name: str):
    if name == "MockFileUpdater":
        from .runtime.updater import MockFileUpdater as _MockFileUpdater

        return _MockFileUpdater
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["MockFileUpdater", "main"]
