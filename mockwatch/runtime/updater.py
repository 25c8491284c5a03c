"""Watch loop that keeps mock files in sync with ``interfaces_to_mock`` files.

``MockFileUpdater`` owns the registry of watched directories. Each poll cycle
expands the watch roots, picks the stale directories and runs one directory
cycle for each: parse the control file, resolve every directive, dispatch the
generation tasks in file order and record the processed stamps.

Directory cycles run on a thread pool, at most one per directory at a time.
No error escapes a directory cycle; ``update`` only returns on stop.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Hashable, Iterable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from ..control_file import (
    SourceFileRef,
    control_file_path,
    ensure_control_file,
    parse_control_file,
    read_control_file,
)
from ..directories import WatchRoot, enumerate_directories
from ..errors import FilesystemError, ParseError, UnresolvablePackageError
from ..generator import CommandGenerator, Generator
from ..gosource import go_source_files
from ..packages import PackageResolver, package_name_for
from ..watch import ChangeDetector, DirectoryStamp, WatchedDirectory
from .config import DEFAULT_POLL_INTERVAL_SECONDS, clamp_poll_interval
from .dispatch import DispatchResult, GenerationDispatcher, GenerationTask, build_task, output_path_for

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4
_PARSE_ERROR_KEY = "<control file>"


@dataclass(frozen=True)
class DirectoryCycleResult:
    """Outcome of processing one stale directory."""

    directory: Path
    results: tuple[DispatchResult, ...] = ()
    parse_error: ParseError | None = None
    resolve_errors: tuple[UnresolvablePackageError, ...] = ()
    unexpected_error: Exception | None = None
    has_control_file: bool = True

    @property
    def generated(self) -> list[Path]:
        return [result.output_path for result in self.results if result.output_path is not None]

    @property
    def failed(self) -> list[DispatchResult]:
        return [result for result in self.results if result.error is not None]


class ErrorLog:
    """Log each distinct problem once until it changes or goes away.

    Entries are keyed by ``(directory, directive target)``; a cleared entry
    is logged at INFO so the user sees the fix land.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last: dict[tuple[Path, Hashable], str] = {}

    def report(self, directory: Path, key: Hashable, message: str) -> None:
        with self._lock:
            if self._last.get((directory, key)) == message:
                return
            self._last[(directory, key)] = message
        logger.warning("%s", message)

    def clear(self, directory: Path, key: Hashable) -> None:
        with self._lock:
            previous = self._last.pop((directory, key), None)
        if previous is not None:
            logger.info("%s: fixed: %s", directory, key)

    def retain(self, directory: Path, keys: Iterable[Hashable]) -> None:
        """Forget recorded problems of ``directory`` not listed in ``keys``."""
        keep = set(keys)
        with self._lock:
            for entry in [entry for entry in self._last if entry[0] == directory and entry[1] not in keep]:
                del self._last[entry]

    def active(self) -> dict[tuple[Path, Hashable], str]:
        with self._lock:
            return dict(self._last)


def tracked_sources(task: GenerationTask) -> list[Path]:
    """Return source files whose edits should regenerate ``task``'s mock."""
    if isinstance(task.directive, SourceFileRef):
        spec = task.interface_spec()
        return [spec.source_file] if spec.source_file is not None else []
    return go_source_files(task.source.directory)


def _absolute(base_dir: Path, directory: str | Path) -> Path:
    path = Path(directory).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return path.resolve()


class MockFileUpdater:
    """Poll watch roots and regenerate mocks whose inputs changed.

    Relative ``directories`` are resolved against ``base_dir`` (the working
    directory at construction time when omitted); the process working
    directory is never changed.
    """

    def __init__(
        self,
        directories: Sequence[str | Path],
        recursive: bool = False,
        *,
        generator: Generator | None = None,
        package_roots: Sequence[Path] | None = None,
        base_dir: Path | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        max_workers: int = DEFAULT_MAX_WORKERS,
        create_control_files: bool = False,
        detector: ChangeDetector | None = None,
    ) -> None:
        base = Path.cwd() if base_dir is None else Path(base_dir)
        self.roots: tuple[WatchRoot, ...] = tuple(
            WatchRoot(path=_absolute(base, directory), recursive=recursive) for directory in directories
        )
        self.generator: Generator = generator if generator is not None else CommandGenerator()
        self.resolver = PackageResolver(package_roots)
        self.detector = detector if detector is not None else ChangeDetector()
        self.dispatcher = GenerationDispatcher(self.generator)
        self.poll_interval = clamp_poll_interval(poll_interval)
        self.max_workers = max(1, int(max_workers))
        self.create_control_files = create_control_files
        self.registry: dict[Path, WatchedDirectory] = {}
        self.errors = ErrorLog()
        self._stop_event = threading.Event()
        self._control_files_checked = False

    def stop(self) -> None:
        """Ask a running ``update`` loop to return after in-flight work."""
        self._stop_event.set()

    def _ensure_control_files(self) -> None:
        if self._control_files_checked:
            return
        self._control_files_checked = True
        if not self.create_control_files:
            return
        for root in self.roots:
            if not root.path.is_dir():
                continue
            try:
                if ensure_control_file(root.path):
                    logger.info("created %s", control_file_path(root.path))
            except OSError as exc:
                logger.warning("cannot create control file in %s: %s", root.path, exc)

    def watched_directories(self) -> list[WatchedDirectory]:
        """Expand the roots and return registry entries, creating new ones."""
        self._ensure_control_files()
        watched: list[WatchedDirectory] = []
        for path in enumerate_directories(self.roots):
            entry = self.registry.get(path)
            if entry is None:
                entry = WatchedDirectory(path=path)
                self.registry[path] = entry
                logger.debug("watching %s", path)
            watched.append(entry)
        return watched

    def process_directory(self, watched: WatchedDirectory) -> DirectoryCycleResult:
        """Run one full cycle for ``watched`` and record it as fresh.

        Raises ``FilesystemError`` when the control file exists but cannot be
        read; the directory then stays stale and is retried.
        """
        directory = watched.path
        control = self.detector.control_stamp(watched)
        content: str | None = None
        if control[0] != "missing":
            try:
                content = read_control_file(directory)
            except OSError as exc:
                raise FilesystemError(watched.control_path, exc) from exc

        if content is None:
            self.errors.retain(directory, ())
            self.detector.mark_fresh(watched, DirectoryStamp(control=control, sources={}))
            return DirectoryCycleResult(directory=directory, has_control_file=False)

        try:
            directives = parse_control_file(content)
        except ParseError as exc:
            self.errors.retain(directory, (_PARSE_ERROR_KEY,))
            self.errors.report(directory, _PARSE_ERROR_KEY, f"{watched.control_path}: {exc}")
            self.detector.mark_fresh(watched, DirectoryStamp(control=control, sources={}))
            return DirectoryCycleResult(directory=directory, parse_error=exc)
        self.errors.clear(directory, _PARSE_ERROR_KEY)

        outputs = frozenset(output_path_for(directory, directive) for directive in directives)
        watched.package_name = package_name_for(directory, outputs)
        tasks: list[GenerationTask] = []
        resolve_errors: list[UnresolvablePackageError] = []
        sources: dict[Path, None] = {}
        for directive in directives:
            try:
                source = self.resolver.resolve(directory, directive.package_ref, outputs)
            except UnresolvablePackageError as exc:
                resolve_errors.append(exc)
                self.errors.report(
                    directory,
                    directive.target,
                    f"{watched.control_path}:{directive.line_number}: {exc}",
                )
                # The package appearing later makes the directory stale again.
                for candidate in exc.searched:
                    sources.setdefault(candidate, None)
                continue
            tasks.append(build_task(directory, directive, source, watched.package_name))

        excluded = {path.resolve() for path in outputs}
        for task in tasks:
            for path in tracked_sources(task):
                if path.resolve() not in excluded:
                    sources.setdefault(path, None)
        stamp = self.detector.observe(control, sources)

        results: list[DispatchResult] = []
        for task in tasks:
            result = self.dispatcher.dispatch(task)
            results.append(result)
            if result.error is not None:
                self.errors.report(
                    directory,
                    task.directive.target,
                    f"{watched.control_path}:{task.directive.line_number}: {result.error}",
                )
            elif result.coalesced:
                logger.debug("coalesced %s", task.describe())
            else:
                self.errors.clear(directory, task.directive.target)
                logger.info("generated %s", result.output_path)

        self.errors.retain(directory, [directive.target for directive in directives])
        self.detector.mark_fresh(watched, stamp)
        return DirectoryCycleResult(
            directory=directory,
            results=tuple(results),
            resolve_errors=tuple(resolve_errors),
        )

    def _process_safely(self, watched: WatchedDirectory) -> DirectoryCycleResult:
        try:
            return self.process_directory(watched)
        except FilesystemError as exc:
            logger.debug("skipping %s: %s", watched.path, exc)
            return DirectoryCycleResult(directory=watched.path, unexpected_error=exc)
        except Exception as exc:
            logger.exception("cycle for %s failed", watched.path)
            return DirectoryCycleResult(directory=watched.path, unexpected_error=exc)

    def update_once(self) -> list[DirectoryCycleResult]:
        """Run a single synchronous poll cycle over all stale directories."""
        results: list[DirectoryCycleResult] = []
        for watched in self.watched_directories():
            if self.detector.is_stale(watched):
                results.append(self._process_safely(watched))
        return results

    def update(self, stop_event: threading.Event | None = None) -> None:
        """Poll forever, returning only after ``stop()`` or ``stop_event``.

        In-flight directory cycles are allowed to finish before returning so
        no mock file is left half written.
        """

        def should_stop() -> bool:
            return self._stop_event.is_set() or (stop_event is not None and stop_event.is_set())

        logger.info(
            "watching %s",
            ", ".join(f"{root.path}{' (recursive)' if root.recursive else ''}" for root in self.roots),
        )
        active: dict[Path, Future[DirectoryCycleResult]] = {}
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="mockwatch-cycle") as executor:
            while not should_stop():
                for path in [path for path, future in active.items() if future.done()]:
                    del active[path]
                for watched in self.watched_directories():
                    if should_stop():
                        break
                    if watched.path in active or not self.detector.is_stale(watched):
                        continue
                    active[watched.path] = executor.submit(self._process_safely, watched)
                self._stop_event.wait(self.poll_interval)
        logger.info("stopped watching")


__all__ = [
    "DEFAULT_MAX_WORKERS",
    "DirectoryCycleResult",
    "ErrorLog",
    "MockFileUpdater",
    "tracked_sources",
]
