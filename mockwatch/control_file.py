"""Parsing of ``interfaces_to_mock`` control files into directives.

Each non-blank, non-comment line requests one mock. The accepted shape is::

    [packageRef] [-o PATH | --package NAME]... target

where ``target`` is an interface name or a ``.go`` file whose interfaces are
all mocked. Parsing is fail-fast: the first malformed line rejects the file.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .errors import ParseError
from .gosource import read_text

CONTROL_FILE_NAME = "interfaces_to_mock"
SOURCE_FILE_EXTENSION = ".go"
COMMENT_PREFIXES = ("#", "//")

CONTROL_FILE_TEMPLATE = """\
# Each line names an interface to mock, optionally preceded by flags:
#
#   MyInterface
#   -o my_mock.go MyInterface
#   --package mypkg_test MyInterface
#   some/other/package TheirInterface
#   file_with_interfaces.go
#
# Mocks are regenerated whenever this file or the referenced sources change.
"""

_FLAG_NAMES = {
    "-o": "output",
    "--output": "output",
    "--package": "package",
}


@dataclass(frozen=True)
class NamedInterface:
    """Request to mock one interface by name."""

    package_ref: str | None
    interface_name: str
    output_path: str | None = None
    package_name: str | None = None
    line_number: int = 0

    @property
    def target(self) -> str:
        return self.interface_name

    def describe(self) -> str:
        if self.package_ref:
            return f"{self.package_ref} {self.interface_name}"
        return self.interface_name


@dataclass(frozen=True)
class SourceFileRef:
    """Request to mock every interface declared in one Go file."""

    package_ref: str | None
    file_path: str
    output_path: str | None = None
    package_name: str | None = None
    line_number: int = 0

    @property
    def target(self) -> str:
        return self.file_path

    def describe(self) -> str:
        return self.file_path


Directive = NamedInterface | SourceFileRef


def is_source_file_target(token: str) -> bool:
    """Return whether ``token`` names a Go source file rather than an interface."""
    return token.endswith(SOURCE_FILE_EXTENSION) and len(token) > len(SOURCE_FILE_EXTENSION)


def _split_flag(token: str) -> tuple[str, str | None]:
    """Split ``--flag=value`` forms; other tokens return ``(token, None)``."""
    if token.startswith("--") and "=" in token:
        name, _, value = token.partition("=")
        return name, value
    return token, None


def parse_line(line: str, line_number: int) -> Directive | None:
    """Parse one control-file line.

    Returns ``None`` for blank and comment lines. Raises ``ParseError`` for
    unknown flags, missing or repeated flag arguments, flags outside the
    package-ref/target gap, extra tokens, or a missing target.
    """
    tokens = line.split()
    if not tokens or tokens[0].startswith(COMMENT_PREFIXES):
        return None

    positionals: list[str] = []
    values: dict[str, str] = {}
    flag_before_positionals = False
    ends_with_flag = False
    index = 0
    while index < len(tokens):
        token = tokens[index]
        if not token.startswith("-"):
            if len(positionals) == 2:
                raise ParseError(line_number, line, f"unexpected token {token!r}")
            if positionals and flag_before_positionals:
                raise ParseError(line_number, line, "package reference must come before flags")
            positionals.append(token)
            ends_with_flag = False
            index += 1
            continue

        if len(positionals) == 2:
            raise ParseError(line_number, line, f"unexpected flag {token!r} after target")
        name, value = _split_flag(token)
        canonical = _FLAG_NAMES.get(name)
        if canonical is None:
            raise ParseError(line_number, line, f"unknown flag {name!r}")
        if canonical in values:
            raise ParseError(line_number, line, f"flag {name!r} given more than once")
        if value is None:
            if index + 1 >= len(tokens):
                raise ParseError(line_number, line, f"flag {name!r} requires an argument")
            value = tokens[index + 1]
            index += 2
        else:
            index += 1
        if not value:
            raise ParseError(line_number, line, f"flag {name!r} requires an argument")
        values[canonical] = value
        if not positionals:
            flag_before_positionals = True
        ends_with_flag = True

    if not positionals:
        raise ParseError(line_number, line, "missing interface name or source file")
    if ends_with_flag:
        raise ParseError(line_number, line, "flags must come before the target")

    if len(positionals) == 2:
        package_ref, target = positionals
        if is_source_file_target(package_ref) or is_source_file_target(target):
            raise ParseError(line_number, line, "a package reference cannot be combined with a source file")
    else:
        package_ref, target = None, positionals[0]

    if is_source_file_target(target):
        return SourceFileRef(
            package_ref=package_ref,
            file_path=target,
            output_path=values.get("output"),
            package_name=values.get("package"),
            line_number=line_number,
        )
    return NamedInterface(
        package_ref=package_ref,
        interface_name=target,
        output_path=values.get("output"),
        package_name=values.get("package"),
        line_number=line_number,
    )


def parse_control_file(content: str) -> tuple[Directive, ...]:
    """Parse control-file text into directives, preserving line order."""
    directives: list[Directive] = []
    for line_number, line in enumerate(content.splitlines(), start=1):
        directive = parse_line(line, line_number)
        if directive is not None:
            directives.append(directive)
    return tuple(directives)


def control_file_path(directory: Path) -> Path:
    return directory / CONTROL_FILE_NAME


def read_control_file(directory: Path) -> str | None:
    """Return control-file text for ``directory`` or ``None`` when absent."""
    path = control_file_path(directory)
    try:
        content = read_text(path)
    except FileNotFoundError:
        return None
    return content.removeprefix("\ufeff")


def ensure_control_file(directory: Path) -> bool:
    """Create a commented control file in ``directory`` if none exists.

    Returns ``True`` when a new file was written.
    """
    path = control_file_path(directory)
    if path.exists():
        return False
    try:
        with path.open("x", encoding="utf-8") as handle:
            handle.write(CONTROL_FILE_TEMPLATE)
    except FileExistsError:
        return False
    return True


__all__ = [
    "CONTROL_FILE_NAME",
    "CONTROL_FILE_TEMPLATE",
    "SOURCE_FILE_EXTENSION",
    "NamedInterface",
    "SourceFileRef",
    "Directive",
    "is_source_file_target",
    "parse_line",
    "parse_control_file",
    "control_file_path",
    "read_control_file",
    "ensure_control_file",
]
