"""
Session configuration.

Defaults can be overridden per session or picked up from the environment
with ``OmflowConfig.from_env()``:

- ``OMFLOW_LIBRARY_PATH``: extra library search directories (``os.pathsep`` separated)
- ``OMFLOW_MSL_VERSION``: default standard library version, e.g. ``MSL:4.0.0``
- ``OMFLOW_SOLVER``: default integrator plugin name, e.g. ``cvodes``
- ``OMFLOW_OUTPUT_POINTS``: number of output samples per simulation
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from pathlib import Path
from typing import Any, Optional, Union

DEFAULT_MSL_VERSION = "MSL:3.2.3"
DEFAULT_SOLVER = "idas"
DEFAULT_OUTPUT_POINTS = 501


class RecoveryPolicy(Enum):
    """Which failures ``resimulate`` converts into a logged, recovered outcome."""

    NOT_COMPILED = auto()  # only a registry miss is recovered
    ANY_FAILURE = auto()  # every failure is recovered


@dataclass(frozen=True)
class SolverStrategy:
    """
    Integration method selector.

    ``name`` is the integrator plugin (``idas``, ``cvodes``, ``collocation``,
    ``rk``); ``options`` are passed through to the integrator untouched.
    """

    name: str = DEFAULT_SOLVER
    options: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def coerce(cls, value: Union[str, "SolverStrategy"]) -> "SolverStrategy":
        if isinstance(value, SolverStrategy):
            return value
        return cls(name=value)

    def __str__(self) -> str:
        return self.name


@dataclass
class OmflowConfig:
    """Settings shared by every operation of a ``Session``."""

    standard_library_version: str = DEFAULT_MSL_VERSION
    library_paths: list[Union[str, Path]] = field(default_factory=list)
    use_modelica_path: bool = True
    solver: SolverStrategy = field(default_factory=SolverStrategy)
    output_points: int = DEFAULT_OUTPUT_POINTS
    scalarize: bool = True
    recovery_policy: RecoveryPolicy = RecoveryPolicy.NOT_COMPILED
    threads: Optional[int] = None

    def __post_init__(self) -> None:
        self.library_paths = [Path(p) for p in self.library_paths]
        if self.output_points < 2:
            raise ValueError(f"output_points must be at least 2, got {self.output_points}")

    @classmethod
    def from_env(cls, **overrides: Any) -> "OmflowConfig":
        """Build a config from ``OMFLOW_*`` environment variables, then apply overrides."""
        config = cls()
        raw_paths = os.environ.get("OMFLOW_LIBRARY_PATH", "")
        if raw_paths:
            config.library_paths = [Path(p) for p in raw_paths.split(os.pathsep) if p]
        if "OMFLOW_MSL_VERSION" in os.environ:
            config.standard_library_version = os.environ["OMFLOW_MSL_VERSION"]
        if "OMFLOW_SOLVER" in os.environ:
            config.solver = SolverStrategy(os.environ["OMFLOW_SOLVER"])
        if "OMFLOW_OUTPUT_POINTS" in os.environ:
            config.output_points = int(os.environ["OMFLOW_OUTPUT_POINTS"])
        return replace(config, **overrides)

    def search_paths(self) -> list[Path]:
        """Library search directories: explicit paths first, then MODELICAPATH."""
        paths = list(self.library_paths)
        if self.use_modelica_path:
            for entry in os.environ.get("MODELICAPATH", "").split(os.pathsep):
                if entry:
                    paths.append(Path(entry))
        return paths
