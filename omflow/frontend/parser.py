"""
Structural parsing of Modelica source files.

This is not a Modelica grammar. It splits a source file into its top-level
class definitions (with their original text, comments included) so that
programs can be merged declaration by declaration before the compiler sees
them. Everything inside a class body is left to the compiler.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from omflow.errors import ParseError

logger = logging.getLogger(__name__)

_PREFIXES = r"(?:(?:encapsulated|partial|final|replaceable|inner|outer|redeclare)\s+)*"
_RESTRICTION = (
    r"(?:expandable\s+)?connector"
    r"|(?:operator\s+)?record"
    r"|(?:(?:pure|impure)\s+)?(?:operator\s+)?function"
    r"|model|block|type|package|class|operator"
)
_CLASS_HEADER = re.compile(
    rf"(?P<prefixes>{_PREFIXES})(?P<kind>{_RESTRICTION})\s+(?P<name>[A-Za-z_]\w*)\b"
)
_WITHIN = re.compile(r"within\s*(?P<package>[A-Za-z_][\w.]*)?\s*;")


@dataclass(frozen=True)
class Declaration:
    """One top-level class definition and its source text."""

    name: str
    kind: str
    text: str
    line: int = 1

    @property
    def restriction(self) -> str:
        """Last word of the class kind (``function`` for ``impure function``)."""
        return self.kind.split()[-1]


@dataclass(frozen=True)
class ParsedProgram:
    """Result of parsing one file: its ``within`` clause and class definitions."""

    declarations: tuple[Declaration, ...]
    path: Optional[Path] = None
    within: Optional[str] = None

    @property
    def names(self) -> list[str]:
        return [d.name for d in self.declarations]


def parse_file(path: Union[str, Path]) -> ParsedProgram:
    """Read and parse a Modelica file."""
    path = Path(path)
    try:
        source = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ParseError(f"cannot read file ({exc.strerror})", str(path)) from exc
    return parse_source(source, path=path)


def parse_source(source: str, path: Optional[Path] = None) -> ParsedProgram:
    """Split Modelica source text into top-level class definitions."""
    where = str(path) if path else None
    code = _blank_comments(source, where)

    pos = _skip_space(code, 0)
    within = None
    match = _WITHIN.match(code, pos)
    if match:
        within = match.group("package") or ""
        pos = _skip_space(code, match.end())

    declarations = []
    while pos < len(code):
        header = _CLASS_HEADER.match(code, pos)
        if header is None:
            raise ParseError(
                f"line {_line_of(code, pos)}: expected a class definition, "
                f"found {code[pos:pos + 20].strip()!r}",
                where,
            )
        name = header.group("name")
        kind = " ".join(header.group("kind").split())
        end = _declaration_end(code, header.end(), name, where)
        declarations.append(
            Declaration(
                name=name,
                kind=kind,
                text=source[pos:end].strip(),
                line=_line_of(code, pos),
            )
        )
        pos = _skip_space(code, end)

    if not declarations:
        raise ParseError("no class definitions found", where)

    logger.debug("Parsed %s: %s", where or "<source>", ", ".join(d.name for d in declarations))
    return ParsedProgram(declarations=tuple(declarations), path=path, within=within)


def _declaration_end(code: str, pos: int, name: str, where: Optional[str]) -> int:
    """Index just past the terminating ``;`` of the class starting before ``pos``."""
    rest = _skip_space(code, pos)
    if code.startswith("=", rest):
        # short class definition: type Voltage = Real(unit="V");
        depth = 0
        for i in range(rest, len(code)):
            c = code[i]
            if c in "([{":
                depth += 1
            elif c in ")]}":
                depth -= 1
            elif c == ";" and depth == 0:
                return i + 1
        raise ParseError(f"unterminated short class definition '{name}'", where)

    end = re.compile(rf"\bend\s+{re.escape(name)}\s*;").search(code, pos)
    if end is None:
        raise ParseError(
            f"line {_line_of(code, pos)}: missing 'end {name};' for class '{name}'", where
        )
    return end.end()


def _blank_comments(source: str, where: Optional[str]) -> str:
    """Replace comments with spaces, keeping string literals and offsets intact."""
    out = list(source)
    i = 0
    n = len(source)
    while i < n:
        c = source[i]
        if c == '"':
            i += 1
            while i < n and source[i] != '"':
                i += 2 if source[i] == "\\" else 1
            if i >= n:
                raise ParseError("unterminated string literal", where)
            i += 1
        elif source.startswith("//", i):
            while i < n and source[i] != "\n":
                out[i] = " "
                i += 1
        elif source.startswith("/*", i):
            close = source.find("*/", i + 2)
            if close < 0:
                raise ParseError(f"line {_line_of(source, i)}: unterminated comment", where)
            for j in range(i, close + 2):
                if source[j] != "\n":
                    out[j] = " "
            i = close + 2
        else:
            i += 1
    return "".join(out)


def _skip_space(code: str, pos: int) -> int:
    while pos < len(code) and code[pos].isspace():
        pos += 1
    return pos


def _line_of(code: str, pos: int) -> int:
    return code.count("\n", 0, pos) + 1
