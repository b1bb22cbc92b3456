"""
Frontend: Modelica source to flat models.

- ``parser``: structural split of source files into class definitions
- ``program``: intermediate programs and library merging
- ``rumoca_frontend``: the default ``Frontend``, flattening with Rumoca
- ``text``: flat Modelica rendering
"""

from omflow.frontend.base import Frontend
from omflow.frontend.flat import FlatModel, FunctionCache
from omflow.frontend.parser import Declaration, ParsedProgram, parse_file, parse_source
from omflow.frontend.program import LibraryRoot, Program
from omflow.frontend.rumoca_frontend import RumocaFrontend
from omflow.frontend.text import render_flat_model

__all__ = [
    "Frontend",
    "RumocaFrontend",
    "FlatModel",
    "FunctionCache",
    "Declaration",
    "ParsedProgram",
    "Program",
    "LibraryRoot",
    "parse_file",
    "parse_source",
    "render_flat_model",
]
