"""
omflow - Compile-and-simulate orchestration for Modelica models

Parses Modelica sources, merges libraries, flattens with Rumoca, translates
the flat equations to CasADi and integrates them, keeping compiled models
around for resimulation.
"""

from beartype.claw import beartype_package

beartype_package(__name__)

__version__ = "0.1.0"

from omflow.config import OmflowConfig, RecoveryPolicy, SolverStrategy
from omflow.errors import (
    OmflowError,
    ParseError,
    LibraryNotLoadedError,
    LibraryLoadError,
    InstantiationError,
    TranslationError,
    SimulationError,
    ModelNotCompiledError,
)
from omflow.request import (
    FlattenRequest,
    SimulationRequest,
    NoLibrary,
    NamedLibrary,
    StandardLibrary,
    FreshFile,
    RegistryLookup,
)
from omflow.session import Session

__all__ = [
    "__version__",
    "load_ipython_extension",
    # Orchestration
    "Session",
    "OmflowConfig",
    "RecoveryPolicy",
    "SolverStrategy",
    # Requests
    "FlattenRequest",
    "SimulationRequest",
    "NoLibrary",
    "NamedLibrary",
    "StandardLibrary",
    "FreshFile",
    "RegistryLookup",
    # Errors
    "OmflowError",
    "ParseError",
    "LibraryNotLoadedError",
    "LibraryLoadError",
    "InstantiationError",
    "TranslationError",
    "SimulationError",
    "ModelNotCompiledError",
]


def load_ipython_extension(ipython):
    """
    Load omflow magic commands for Jupyter notebooks.

    Usage in a notebook:
        %load_ext omflow

        %%modelica_translate Decay
        model Decay
            Real x(start=1);
        equation
            der(x) = -x;
        end Decay;
    """
    from .magic import load_ipython_extension as _load

    _load(ipython)
