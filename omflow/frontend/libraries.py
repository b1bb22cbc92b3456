"""
Resolution of library identifiers to files and directories.

Library identifiers have the form ``NAME`` or ``NAME:VERSION``, e.g.
``MSL:3.2.3``. ``MSL`` is an alias for the Modelica Standard Library,
whose top-level package is ``Modelica``. A library is searched for in each
search directory as:

- ``<dir>/<Package> <version>/package.mo`` (the layout of MSL releases)
- ``<dir>/<Package>-<version>/package.mo`` or ``<dir>/<Package>_<version>/package.mo``
- ``<dir>/<Package>/package.mo`` whose ``version`` annotation matches
- ``<dir>/<Package>.mo`` (single-file library)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from omflow.errors import LibraryLoadError

ALIASES = {"MSL": "Modelica"}

_VERSION_ANNOTATION = re.compile(r'\bversion\s*=\s*"([^"]+)"')


@dataclass(frozen=True)
class LibraryId:
    package: str
    version: Optional[str] = None

    @classmethod
    def parse(cls, library_id: str) -> "LibraryId":
        name, _, version = library_id.partition(":")
        name = name.strip()
        if not name:
            raise LibraryLoadError(library_id, "empty library name")
        return cls(package=ALIASES.get(name, name), version=version.strip() or None)


def resolve_library(library_id: str, search_paths: Iterable[Path]) -> Path:
    """Locate the root of a library (a directory holding ``package.mo``, or a ``.mo`` file)."""
    lib = LibraryId.parse(library_id)
    searched = []
    for base in search_paths:
        base = Path(base)
        searched.append(str(base))
        found = _find_in(base, lib)
        if found is not None:
            return found

    where = ", ".join(searched) if searched else "no search paths configured"
    raise LibraryLoadError(library_id, f"not found (searched: {where})")


def _find_in(base: Path, lib: LibraryId) -> Optional[Path]:
    if not base.is_dir():
        return None

    if lib.version:
        for sep in (" ", "-", "_"):
            candidate = base / f"{lib.package}{sep}{lib.version}"
            if (candidate / "package.mo").is_file():
                return candidate

    candidate = base / lib.package
    if (candidate / "package.mo").is_file():
        if lib.version is None or _declared_version(candidate / "package.mo") == lib.version:
            return candidate

    single = base / f"{lib.package}.mo"
    if single.is_file():
        if lib.version is None or _declared_version(single) == lib.version:
            return single
    return None


def _declared_version(path: Path) -> Optional[str]:
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None
    match = _VERSION_ANNOTATION.search(text)
    return match.group(1) if match else None
