"""
Module-level convenience API on a shared default session.

Handy in notebooks and scripts:

    >>> import omflow.api as om
    >>> om.load_library("MSL:3.2.3")
    >>> om.translate("Pendulum", "pendulum.mo")
    >>> traj = om.simulate("Pendulum", stop_time=10.0)
    >>> om.resimulate("Pendulum", stop_time=20.0)

Code that needs isolation (tests, concurrent callers) should create its own
``Session`` instead.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Union

from omflow.config import SolverStrategy
from omflow.session import Session

_default_session: Optional[Session] = None

PathLike = Union[str, Path]
SolverLike = Union[str, SolverStrategy]
Time = Union[int, float]


def get_session() -> Session:
    """The default session, created on first use."""
    global _default_session
    if _default_session is None:
        _default_session = Session()
    return _default_session


def set_session(session: Optional[Session]) -> None:
    """Replace the default session (None resets it)."""
    global _default_session
    _default_session = session


def load_library(library_id: str) -> None:
    """Load a library, e.g. ``MSL:3.2.3`` or ``MSL:4.0.0``."""
    get_session().load_library(library_id)


def parse_file(model_file: PathLike) -> Any:
    return get_session().parse_file(model_file)


def translate_to_intermediate(model_file: PathLike) -> Any:
    return get_session().translate_to_intermediate(model_file)


def flatten(
    model_name: str,
    model_file: PathLike,
    library: Optional[str] = None,
    scalarize: Optional[bool] = None,
) -> tuple[Any, Any]:
    """
    Flatten a model, optionally against a loaded library. Returns (flat_model, function_cache).

    ``scalarize`` defaults to the session setting.
    """
    return get_session().flatten(model_name, model_file, library=library, scalarize=scalarize)


def to_text(flat_model: Any) -> str:
    return get_session().to_text(flat_model)


def generate_flat_modelica(
    model_name: str,
    model_file: PathLike,
    use_standard_library: bool = False,
    standard_library_version: Optional[str] = None,
) -> str:
    """Returns the flat Modelica representation as a string."""
    return get_session().generate_flat_modelica(
        model_name, model_file, use_standard_library, standard_library_version
    )


def translate(
    model_name: str,
    model_file: PathLike,
    use_standard_library: bool = False,
    standard_library_version: Optional[str] = None,
) -> None:
    get_session().translate(model_name, model_file, use_standard_library, standard_library_version)


def simulate(
    model_name: str,
    model_file: Optional[PathLike] = None,
    start_time: Time = 0.0,
    stop_time: Time = 1.0,
    use_standard_library: bool = False,
    standard_library_version: Optional[str] = None,
    solver: Optional[SolverLike] = None,
) -> Any:
    return get_session().simulate(
        model_name,
        model_file,
        start_time=start_time,
        stop_time=stop_time,
        use_standard_library=use_standard_library,
        standard_library_version=standard_library_version,
        solver=solver,
    )


def resimulate(
    model_name: str,
    start_time: Time = 0.0,
    stop_time: Time = 1.0,
    solver: Optional[SolverLike] = None,
) -> Optional[Any]:
    """Resimulates an already compiled model; logs the compiled models if there is none."""
    return get_session().resimulate(model_name, start_time, stop_time, solver)


def list_compiled_models() -> list[str]:
    return get_session().list_compiled_models()


def list_available_models() -> list[str]:
    """List models that are currently available for direct simulation."""
    return get_session().list_available_models()


def log_frontend() -> None:
    """Turns on debugging output for the frontend."""
    get_session().enable_frontend_diagnostics()


def log_backend() -> None:
    """Turns on debugging output for the backend."""
    get_session().enable_backend_diagnostics()
