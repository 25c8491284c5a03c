"""Package reference resolution for control-file directives.

Maps an optional import-style package reference to a concrete directory and
its Go package name. Bare references resolve against the configured package
roots (``$GOPATH/src`` semantics); ``./`` and ``../`` references resolve
against the declaring directory.
"""

from __future__ import annotations

import logging
import os
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from .errors import UnresolvablePackageError
from .gosource import go_source_files, read_package_name, read_text

logger = logging.getLogger(__name__)

PACKAGE_ROOT_ENV = "MOCKWATCH_PACKAGE_ROOT"
TEST_PACKAGE_SUFFIX = "_test"


@dataclass(frozen=True)
class ResolvedPackage:
    """Concrete directory plus package name a directive points at."""

    directory: Path
    package_name: str
    import_path: str | None = None


def default_package_roots(environ: Mapping[str, str] | None = None) -> list[Path]:
    """Return package roots from the environment.

    ``MOCKWATCH_PACKAGE_ROOT`` (an ``os.pathsep`` list) wins; otherwise every
    ``GOPATH`` entry contributes ``<entry>/src``; otherwise ``~/go/src``.
    """
    env = os.environ if environ is None else environ
    explicit = env.get(PACKAGE_ROOT_ENV, "")
    if explicit.strip():
        return [Path(part).expanduser() for part in explicit.split(os.pathsep) if part.strip()]
    gopath = env.get("GOPATH", "")
    if gopath.strip():
        return [Path(part).expanduser() / "src" for part in gopath.split(os.pathsep) if part.strip()]
    return [Path.home() / "go" / "src"]


def package_name_for(directory: Path, exclude: Iterable[Path] = ()) -> str:
    """Return the Go package name declared by files in ``directory``.

    Only non-test ``.go`` files are read, ``*_test`` package clauses are
    ignored and files listed in ``exclude`` (the directory's own mock outputs)
    are skipped, so generated mocks never influence the result. When files
    disagree, the most common name wins (ties go to the first file in name
    order). Falls back to the directory name.
    """
    skipped = {path.resolve() for path in exclude}
    counts: Counter[str] = Counter()
    first_seen: dict[str, int] = {}
    for position, path in enumerate(go_source_files(directory)):
        if skipped and path.resolve() in skipped:
            continue
        try:
            name = read_package_name(read_text(path))
        except OSError:
            continue
        if not name or name.endswith(TEST_PACKAGE_SUFFIX):
            continue
        counts[name] += 1
        first_seen.setdefault(name, position)
    if counts:
        return min(counts, key=lambda name: (-counts[name], first_seen[name]))
    return directory.name


class PackageResolver:
    """Resolve directive package references to directories and package names."""

    def __init__(self, package_roots: Sequence[Path] | None = None) -> None:
        roots = default_package_roots() if package_roots is None else package_roots
        self.package_roots: tuple[Path, ...] = tuple(Path(root) for root in roots)

    def resolve(
        self,
        current_directory: Path,
        package_ref: str | None,
        exclude: Iterable[Path] = (),
    ) -> ResolvedPackage:
        """Resolve ``package_ref`` as seen from ``current_directory``.

        ``exclude`` lists mock outputs to ignore when reading package names.
        Raises ``UnresolvablePackageError`` when no candidate directory exists.
        """
        if package_ref is None:
            return ResolvedPackage(
                directory=current_directory,
                package_name=package_name_for(current_directory, exclude),
            )

        candidates = self._candidates(current_directory, package_ref)
        for candidate in candidates:
            if candidate.is_dir():
                logger.debug("resolved package %s to %s", package_ref, candidate)
                return ResolvedPackage(
                    directory=candidate,
                    package_name=package_name_for(candidate, exclude),
                    import_path=package_ref,
                )
        raise UnresolvablePackageError(package_ref, candidates)

    def _candidates(self, current_directory: Path, package_ref: str) -> list[Path]:
        ref = package_ref.rstrip("/")
        if ref in {".", ".."} or ref.startswith(("./", "../")):
            return [(current_directory / ref).resolve()]
        if Path(ref).is_absolute():
            return [Path(ref)]
        return [root / ref for root in self.package_roots]


__all__ = [
    "PACKAGE_ROOT_ENV",
    "ResolvedPackage",
    "PackageResolver",
    "default_package_roots",
    "package_name_for",
]
