"""
Intermediate program: the ordered list of declarations handed to instantiation.

A program is a value. Merging never mutates either operand; ``prepend``
returns a new program whose leading elements come from the library, so that
library definitions are seen first when names are resolved.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Union

from omflow.errors import ParseError
from omflow.frontend.parser import Declaration, ParsedProgram


@dataclass(frozen=True)
class LibraryRoot:
    """A structured library directory (``<root>/package.mo``) passed to the compiler as a path."""

    name: str
    path: Path


Element = Union[Declaration, LibraryRoot]


@dataclass(frozen=True)
class Program:
    elements: tuple[Element, ...] = ()

    @classmethod
    def from_parsed(cls, parsed: ParsedProgram) -> "Program":
        """
        Build a top-level program from a parsed file.

        Raises:
            ParseError: the file declares its classes inside a package with
                ``within``; such a file is only meaningful as part of that
                package's library
        """
        if parsed.within:
            raise ParseError(
                f"'within {parsed.within};' places these classes inside package "
                f"{parsed.within}; load that package as a library instead",
                str(parsed.path) if parsed.path else None,
            )
        return cls(elements=tuple(parsed.declarations))

    def prepend(self, library: "Program") -> "Program":
        """Return ``library`` followed by this program."""
        return Program(elements=library.elements + self.elements)

    def __len__(self) -> int:
        return len(self.elements)

    def __iter__(self) -> Iterator[Element]:
        return iter(self.elements)

    @property
    def names(self) -> list[str]:
        return [e.name for e in self.elements]

    @property
    def declarations(self) -> list[Declaration]:
        return [e for e in self.elements if isinstance(e, Declaration)]

    @property
    def library_roots(self) -> list[LibraryRoot]:
        return [e for e in self.elements if isinstance(e, LibraryRoot)]

    def lookup(self, name: str) -> Optional[Element]:
        """First element defining the top-level part of ``name``."""
        head = name.split(".", 1)[0]
        for element in self.elements:
            if element.name == head:
                return element
        return None

    def defines(self, name: str) -> bool:
        return self.lookup(name) is not None

    def shadowed(self) -> list[Element]:
        """Elements hidden by an earlier element of the same name."""
        seen = set()
        hidden = []
        for element in self.elements:
            if element.name in seen:
                hidden.append(element)
            seen.add(element.name)
        return hidden

    def source_text(self) -> str:
        """Inline declarations joined in program order, first definition of a name wins."""
        hidden = {id(e) for e in self.shadowed()}
        return "\n\n".join(d.text for d in self.declarations if id(d) not in hidden) + "\n"

    def library_paths(self) -> list[str]:
        return [str(root.path) for root in self.library_roots]
