"""Generation task construction and de-duplicated dispatch.

Each task is keyed by ``(directory, interface)``. While a task for a key is
running, further requests for that key collapse into one pending request
that the running caller executes once it finishes (latest request wins).
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path

from ..control_file import Directive, SourceFileRef
from ..errors import GenerationError
from ..generator import Generator, InterfaceSpec, OutputOverrides
from ..gosource import GO_SOURCE_SUFFIX, declared_interfaces, read_text
from ..packages import TEST_PACKAGE_SUFFIX, ResolvedPackage

logger = logging.getLogger(__name__)

MOCK_FILE_PREFIX = "mock_"
MOCK_FILE_SUFFIX = "_test.go"


def default_output_name(directive: Directive) -> str:
    """Return the deterministic default file name for ``directive``'s mock."""
    if isinstance(directive, SourceFileRef):
        stem = Path(directive.file_path).name[: -len(GO_SOURCE_SUFFIX)]
    else:
        stem = directive.interface_name
    return f"{MOCK_FILE_PREFIX}{stem.lower()}{MOCK_FILE_SUFFIX}"


@dataclass(frozen=True)
class GenerationTask:
    """One resolved mock request, ready for the generator."""

    directory: Path
    directive: Directive
    source: ResolvedPackage
    package_name: str
    output_path: Path

    @property
    def key(self) -> tuple[Path, str]:
        return (self.directory, self.directive.target)

    def interface_spec(self) -> InterfaceSpec:
        if isinstance(self.directive, SourceFileRef):
            source_file = Path(self.directive.file_path)
            if not source_file.is_absolute():
                source_file = self.source.directory / source_file
            return InterfaceSpec(source=self.source, source_file=source_file)
        return InterfaceSpec(source=self.source, interface_name=self.directive.interface_name)

    def overrides(self) -> OutputOverrides:
        return OutputOverrides(output_path=self.output_path, package_name=self.package_name)

    def describe(self) -> str:
        return f"{self.directive.describe()} -> {self.output_path}"


def output_path_for(directory: Path, directive: Directive) -> Path:
    """Return where ``directive``'s mock is written, relative to ``directory``.

    ``-o`` paths are normalized so ``..`` segments and symlinked parents
    compare equal to the plain paths of the files they name.
    """
    if directive.output_path:
        output_path = Path(directive.output_path)
        if not output_path.is_absolute():
            output_path = directory / output_path
        return output_path.resolve()
    return directory / default_output_name(directive)


def build_task(
    directory: Path,
    directive: Directive,
    source: ResolvedPackage,
    directory_package_name: str,
) -> GenerationTask:
    """Apply ``-o``/``--package`` overrides or defaults to ``directive``.

    Outputs always land relative to the declaring ``directory`` and default to
    its package name plus ``_test``, even for cross-package references.
    """
    package_name = directive.package_name or f"{directory_package_name}{TEST_PACKAGE_SUFFIX}"
    return GenerationTask(
        directory=directory,
        directive=directive,
        source=source,
        package_name=package_name,
        output_path=output_path_for(directory, directive),
    )


def check_source_file(task: GenerationTask) -> None:
    """Raise ``GenerationError`` when a source-file target declares no interfaces."""
    source_file = task.interface_spec().source_file
    if source_file is None:
        return
    try:
        source = read_text(source_file)
    except OSError as exc:
        raise GenerationError(task.directive.describe(), f"cannot read {source_file}: {exc}") from exc
    if not declared_interfaces(source):
        raise GenerationError(task.directive.describe(), f"{source_file} declares no interfaces")


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of one ``dispatch`` call."""

    task: GenerationTask
    output_path: Path | None = None
    error: GenerationError | None = None
    coalesced: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


class GenerationDispatcher:
    """Run generator calls with at most one in flight per task key."""

    def __init__(self, generator: Generator) -> None:
        self._generator = generator
        self._lock = threading.Lock()
        self._in_flight: set[tuple[Path, str]] = set()
        self._pending: dict[tuple[Path, str], GenerationTask] = {}

    def in_flight(self) -> set[tuple[Path, str]]:
        with self._lock:
            return set(self._in_flight)

    def _run(self, task: GenerationTask) -> DispatchResult:
        try:
            check_source_file(task)
            written = self._generator.generate(task.directory, task.interface_spec(), task.overrides())
        except GenerationError as exc:
            return DispatchResult(task=task, error=exc)
        except Exception as exc:
            logger.debug("generator raised for %s", task.describe(), exc_info=True)
            return DispatchResult(task=task, error=GenerationError(task.directive.describe(), str(exc)))
        return DispatchResult(task=task, output_path=written)

    def dispatch(self, task: GenerationTask) -> DispatchResult:
        """Generate ``task`` synchronously unless its key is already running.

        A coalesced call returns immediately with ``coalesced=True``; its task
        runs after the in-flight one, on the in-flight caller's thread, and
        that caller returns the result of the last task it ran.
        """
        key = task.key
        with self._lock:
            if key in self._in_flight:
                self._pending[key] = task
                return DispatchResult(task=task, coalesced=True)
            self._in_flight.add(key)

        current = task
        try:
            while True:
                result = self._run(current)
                with self._lock:
                    following = self._pending.pop(key, None)
                    if following is None:
                        self._in_flight.discard(key)
                        return result
                current = following
        except BaseException:
            with self._lock:
                self._pending.pop(key, None)
                self._in_flight.discard(key)
            raise


__all__ = [
    "MOCK_FILE_PREFIX",
    "MOCK_FILE_SUFFIX",
    "default_output_name",
    "GenerationTask",
    "output_path_for",
    "build_task",
    "check_source_file",
    "DispatchResult",
    "GenerationDispatcher",
]
