"""Go source inspection built on the Pygments Go lexer.

Extracts package clauses and interface declarations without a Go toolchain.
The lexer is only used for tokenization; no semantic analysis happens here.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

from pygments.lexers import GoLexer
from pygments.token import Comment, Keyword, Name, Punctuation, Text

GO_SOURCE_SUFFIX = ".go"
GO_TEST_SUFFIX = "_test.go"

_LEXER = GoLexer()


def read_text(path: Path) -> str:
    """Read text using tolerant encoding fallback order.

    Attempts UTF-8, UTF-8 with BOM, then latin-1; as a final fallback decodes
    raw bytes with UTF-8 replacement semantics.
    """
    for encoding in ("utf-8", "utf-8-sig", "latin-1"):
        try:
            return path.read_text(encoding=encoding)
        except UnicodeDecodeError:
            continue
    return path.read_bytes().decode("utf-8", errors="replace")


def _significant_tokens(source: str) -> Iterator[tuple[object, str]]:
    """Yield lexer tokens with whitespace and comments removed.

    Whitespace containing a newline is reported as a ``;`` punctuation token,
    mirroring Go's automatic semicolon insertion closely enough for
    declaration scanning.
    """
    for ttype, value in _LEXER.get_tokens(source):
        if ttype in Comment:
            continue
        if ttype in Text:
            if "\n" in value:
                yield Punctuation, ";"
            continue
        yield ttype, value


def read_package_name(source: str) -> str | None:
    """Return the identifier of the first ``package`` clause, if any."""
    tokens = _significant_tokens(source)
    for ttype, value in tokens:
        if ttype in Keyword.Namespace and value == "package":
            following = next(tokens, None)
            if following is not None and following[0] in Name:
                return following[1]
            return None
    return None


def _skip_bracketed(tokens: list[tuple[object, str]], index: int) -> int:
    """Return index just past a balanced ``[...]`` group starting at ``index``."""
    depth = 0
    while index < len(tokens):
        value = tokens[index][1]
        if value == "[":
            depth += 1
        elif value == "]":
            depth -= 1
            if depth == 0:
                return index + 1
        index += 1
    return index


def _interface_at(tokens: list[tuple[object, str]], index: int) -> str | None:
    """Return the type name at ``index`` when its type spec is an interface."""
    if index >= len(tokens) or tokens[index][0] not in Name:
        return None
    name = tokens[index][1]
    cursor = index + 1
    if cursor < len(tokens) and tokens[cursor][1] == "[":
        cursor = _skip_bracketed(tokens, cursor)
    if cursor < len(tokens) and tokens[cursor][0] in Keyword.Declaration and tokens[cursor][1] == "interface":
        return name
    return None


def declared_interfaces(source: str) -> list[str]:
    """List interface type names declared at any ``type`` site, in order.

    Handles single declarations and grouped ``type ( ... )`` blocks; generic
    type parameter lists are skipped.
    """
    tokens = list(_significant_tokens(source))
    names: list[str] = []
    index = 0
    while index < len(tokens):
        ttype, value = tokens[index]
        if not (ttype in Keyword.Declaration and value == "type"):
            index += 1
            continue

        index += 1
        if index < len(tokens) and tokens[index][0] in Punctuation and tokens[index][1] == "(":
            depth = 1
            index += 1
            expect_name = True
            while index < len(tokens) and depth > 0:
                value = tokens[index][1]
                if depth == 1 and value == ";":
                    expect_name = True
                    index += 1
                    continue
                if depth == 1 and expect_name:
                    found = _interface_at(tokens, index)
                    if found is not None:
                        names.append(found)
                    expect_name = False
                if value in {"(", "{", "["}:
                    depth += 1
                elif value in {")", "}", "]"}:
                    depth -= 1
                index += 1
            continue

        found = _interface_at(tokens, index)
        if found is not None:
            names.append(found)
    return names


def is_go_source_file(name: str) -> bool:
    """Return whether ``name`` is a non-test Go source file name."""
    return name.endswith(GO_SOURCE_SUFFIX) and not name.endswith(GO_TEST_SUFFIX) and not name.startswith(".")


def go_source_files(directory: Path) -> list[Path]:
    """Return sorted non-test ``.go`` files directly inside ``directory``.

    Unreadable or missing directories yield an empty list.
    """
    files: list[Path] = []
    try:
        with os.scandir(directory) as entries:
            for entry in entries:
                if not is_go_source_file(entry.name):
                    continue
                try:
                    if not entry.is_file():
                        continue
                except OSError:
                    continue
                files.append(Path(entry.path))
    except OSError:
        return []
    files.sort(key=lambda path: path.name)
    return files


__all__ = [
    "GO_SOURCE_SUFFIX",
    "GO_TEST_SUFFIX",
    "read_text",
    "read_package_name",
    "declared_interfaces",
    "is_go_source_file",
    "go_source_files",
]
