"""
Backend implementations: flat models to simulatable artifacts.

- CasADi: translation to a semi-explicit DAE, integration with SUNDIALS (CVODES/IDAS)
"""

from omflow.backend.base import Backend
from omflow.backend.casadi import CasadiBackend, CompiledModel
from omflow.backend.result import Trajectory

__all__ = [
    "Backend",
    "CasadiBackend",
    "CompiledModel",
    "Trajectory",
]
