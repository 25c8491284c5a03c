"""Runtime orchestration: config, generation dispatch and the watch loop.

Imports are lazy so ``mockwatch.runtime.config`` can be loaded without
pulling in the thread-pool machinery.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .dispatch import DispatchResult, GenerationDispatcher, GenerationTask
    from .updater import DirectoryCycleResult, MockFileUpdater


def __getattr__(name: str):
    if name in {"MockFileUpdater", "DirectoryCycleResult"}:
        from . import updater as _updater

        return getattr(_updater, name)
    if name in {"GenerationDispatcher", "GenerationTask", "DispatchResult"}:
        from . import dispatch as _dispatch

        return getattr(_dispatch, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "MockFileUpdater",
    "DirectoryCycleResult",
    "GenerationDispatcher",
    "GenerationTask",
    "DispatchResult",
]
