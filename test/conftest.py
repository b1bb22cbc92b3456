"""
Shared fixtures: in-memory collaborators for orchestration tests.

The fakes implement the Frontend/Backend contracts with the real structural
parser and program types, so library merging behaves as in production, but
instantiation and integration are trivial and need neither rumoca nor a
numerical solver.
"""

from pathlib import Path

import numpy as np
import pytest

from omflow.backend.base import Backend
from omflow.backend.result import Trajectory
from omflow.config import OmflowConfig
from omflow.errors import InstantiationError, LibraryLoadError, SimulationError
from omflow.frontend.base import Frontend
from omflow.frontend.flat import FlatModel, FunctionCache
from omflow.frontend.parser import parse_file, parse_source
from omflow.frontend.program import Program
from omflow.frontend.text import render_flat_model
from omflow.session import Session

PENDULUM_LIBRARY = """
package Modelica
  constant Real g_n = 9.80665 "Standard acceleration of gravity";
end Modelica;

model Pendulum "library pendulum"
  Real theta;
end Pendulum;
"""

PENDULUM_MODEL = """
model Pendulum "user pendulum"
  parameter Real L = 1.0;
  Real theta(start = 0.5);
  Real omega;
equation
  der(theta) = omega;
  der(omega) = -Modelica.g_n / L * sin(theta);
end Pendulum;

model Helper
  Real x;
equation
  x = 1;
end Helper;
"""

DECAY_MODEL = """
model Decay
  Real x(start = 1);
equation
  der(x) = -x;
end Decay;
"""


class FakeFrontend(Frontend):
    """Frontend whose flat models record which declaration was instantiated."""

    def __init__(self, libraries=None):
        self.libraries = dict(libraries or {})
        self.calls = []

    def parse(self, path):
        self.calls.append(("parse", str(path)))
        return parse_file(path)

    def to_intermediate(self, parsed):
        return Program.from_parsed(parsed)

    def instantiate(self, model_name, program, scalarize=True):
        self.calls.append(("instantiate", model_name, scalarize))
        element = program.lookup(model_name)
        if element is None:
            raise InstantiationError(model_name, "not defined in program")
        document = {
            "model_name": model_name,
            "variables": [{"name": "x", "type": "Real", "start": 1.0}],
            "equations": [],
            "metadata": {"description": _description(element.text)},
        }
        return FlatModel(name=model_name, document=document, scalarized=scalarize), FunctionCache()

    def load_library(self, library_id):
        self.calls.append(("load_library", library_id))
        if library_id not in self.libraries:
            raise LibraryLoadError(library_id, "unknown version")
        return Program.from_parsed(parse_source(self.libraries[library_id]))

    def flatten_with_standard_library(self, model_name, path, version):
        self.calls.append(("flatten_with_standard_library", model_name, version))
        program = self.to_intermediate(self.parse(path)).prepend(self.load_library(version))
        return self.instantiate(model_name, program)

    def to_text(self, flat_model):
        return render_flat_model(flat_model)


class FakeArtifact:
    def __init__(self, flat_model, serial):
        self.flat_model = flat_model
        self.serial = serial


class FakeBackend(Backend):
    """Backend producing a decaying trajectory sampled at 11 points."""

    def __init__(self, fail_integration=False):
        self.fail_integration = fail_integration
        self.compiled = []
        self.integrations = []

    def compile(self, flat_model):
        artifact = FakeArtifact(flat_model, len(self.compiled))
        self.compiled.append(artifact)
        return artifact

    def integrate(self, artifact, time_span, solver):
        self.integrations.append((artifact, time_span, solver))
        if self.fail_integration:
            raise SimulationError("integrator diverged")
        t0, t1 = time_span
        t = np.linspace(t0, t1, 11)
        return Trajectory(
            t=t,
            _data={"x": np.exp(-(t - t0))},
            model_name=artifact.flat_model.name,
            state_names=["x"],
            solver=solver.name,
        )


def _description(text):
    first_line = text.splitlines()[0]
    return first_line.split('"')[1] if '"' in first_line else ""


def write_model(directory: Path, name: str, source: str) -> Path:
    path = directory / name
    path.write_text(source)
    return path


@pytest.fixture
def frontend():
    return FakeFrontend(libraries={"MSL:3.2.3": PENDULUM_LIBRARY})


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def session(frontend, backend):
    return Session(frontend=frontend, backend=backend, config=OmflowConfig())


@pytest.fixture
def model_file(tmp_path):
    """Factory writing Modelica source to a file under tmp_path."""

    def _write(source, name="model.mo"):
        return write_model(tmp_path, name, source)

    return _write


@pytest.fixture
def pendulum_file(tmp_path):
    return write_model(tmp_path, "pendulum.mo", PENDULUM_MODEL)


@pytest.fixture
def decay_file(tmp_path):
    return write_model(tmp_path, "decay.mo", DECAY_MODEL)
