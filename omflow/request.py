"""
Request values selecting between the variants of ``flatten`` and ``simulate``.

``flatten`` sources its library from nowhere, from the library cache, or
from the frontend's standard library loader. ``simulate`` either compiles a
fresh file or reuses the registered artifact.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from omflow.config import SolverStrategy


@dataclass(frozen=True)
class NoLibrary:
    pass


@dataclass(frozen=True)
class NamedLibrary:
    """A library previously loaded with ``Session.load_library``."""

    library_id: str


@dataclass(frozen=True)
class StandardLibrary:
    """A standard library version loaded and merged by the frontend itself."""

    version: str


LibrarySpec = Union[NoLibrary, NamedLibrary, StandardLibrary]


@dataclass(frozen=True)
class FlattenRequest:
    model_name: str
    model_file: Union[str, Path]
    library: LibrarySpec = NoLibrary()
    scalarize: bool = True


@dataclass(frozen=True)
class FreshFile:
    """Translate ``model_file`` before simulating."""

    model_file: Union[str, Path]
    use_standard_library: bool = False
    standard_library_version: Optional[str] = None


@dataclass(frozen=True)
class RegistryLookup:
    """Simulate the artifact already registered under the model name."""


ModelSource = Union[FreshFile, RegistryLookup]


@dataclass(frozen=True)
class SimulationRequest:
    """Times may be given as ints and are stored as floats."""

    model_name: str
    source: ModelSource = RegistryLookup()
    start_time: Union[int, float] = 0.0
    stop_time: Union[int, float] = 1.0
    solver: Optional[SolverStrategy] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "start_time", float(self.start_time))
        object.__setattr__(self, "stop_time", float(self.stop_time))
