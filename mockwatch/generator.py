"""Mock generator contract and the external-command adapter.

The watch engine only needs ``generate(package_directory, interface, overrides)``
to write one file. ``CommandGenerator`` satisfies it by running a generator
CLI (``pegomock generate`` by default) in the source package directory.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from .errors import GenerationError
from .packages import ResolvedPackage

logger = logging.getLogger(__name__)

DEFAULT_GENERATOR_COMMAND: tuple[str, ...] = ("pegomock", "generate")
DEFAULT_GENERATOR_TIMEOUT_SECONDS = 120.0
_STDERR_TAIL_LINES = 20


@dataclass(frozen=True)
class InterfaceSpec:
    """What to mock: one named interface, or every interface in a file."""

    source: ResolvedPackage
    interface_name: str | None = None
    source_file: Path | None = None

    def describe(self) -> str:
        if self.source_file is not None:
            return str(self.source_file)
        return f"{self.source.package_name}.{self.interface_name}"


@dataclass(frozen=True)
class OutputOverrides:
    """Effective output location and package clause for one mock."""

    output_path: Path
    package_name: str


class Generator(Protocol):
    def generate(self, package_directory: Path, interface: InterfaceSpec, overrides: OutputOverrides) -> Path:
        """Write one mock file and return its path, raising ``GenerationError``."""
        ...


def _stderr_tail(text: str) -> str:
    lines = [line for line in text.strip().splitlines() if line.strip()]
    return "\n".join(lines[-_STDERR_TAIL_LINES:])


class CommandGenerator:
    """Run an external mock generator command for each request.

    Invocation shape::

        <command> --output <abs path> --package <name> <InterfaceName | abs .go path>

    The command runs with ``cwd`` set to the package holding the interface,
    so interface names resolve the way the generator's own CLI expects.
    """

    def __init__(
        self,
        command: Sequence[str] = DEFAULT_GENERATOR_COMMAND,
        timeout_seconds: float = DEFAULT_GENERATOR_TIMEOUT_SECONDS,
    ) -> None:
        if not command:
            raise ValueError("generator command must not be empty")
        self.command = tuple(command)
        self.timeout_seconds = timeout_seconds

    def is_available(self) -> bool:
        """Return whether the command's executable can be found on ``PATH``."""
        return shutil.which(self.command[0]) is not None

    def build_argv(self, interface: InterfaceSpec, overrides: OutputOverrides) -> list[str]:
        argv = [
            *self.command,
            "--output",
            str(overrides.output_path),
            "--package",
            overrides.package_name,
        ]
        if interface.source_file is not None:
            argv.append(str(interface.source_file))
        elif interface.interface_name is not None:
            argv.append(interface.interface_name)
        else:
            raise GenerationError(interface.describe(), "nothing to generate")
        return argv

    def generate(self, package_directory: Path, interface: InterfaceSpec, overrides: OutputOverrides) -> Path:
        argv = self.build_argv(interface, overrides)
        logger.debug("running %s in %s for %s", argv, interface.source.directory, package_directory)
        try:
            proc = subprocess.run(
                argv,
                cwd=interface.source.directory,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
                timeout=self.timeout_seconds,
            )
        except FileNotFoundError as exc:
            raise GenerationError(interface.describe(), f"generator command not found: {self.command[0]}") from exc
        except subprocess.TimeoutExpired as exc:
            raise GenerationError(interface.describe(), f"timed out after {self.timeout_seconds:g}s") from exc
        except OSError as exc:
            raise GenerationError(interface.describe(), str(exc)) from exc

        if proc.returncode != 0:
            detail = _stderr_tail(proc.stderr) or f"exit status {proc.returncode}"
            raise GenerationError(interface.describe(), detail)
        if not overrides.output_path.is_file():
            raise GenerationError(interface.describe(), f"generator did not write {overrides.output_path}")
        return overrides.output_path


__all__ = [
    "DEFAULT_GENERATOR_COMMAND",
    "DEFAULT_GENERATOR_TIMEOUT_SECONDS",
    "InterfaceSpec",
    "OutputOverrides",
    "Generator",
    "CommandGenerator",
]
