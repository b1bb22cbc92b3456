"""
Tests for session configuration and logging setup.
"""

import logging
import os
from pathlib import Path

import pytest

from omflow.config import (
    DEFAULT_MSL_VERSION,
    DEFAULT_OUTPUT_POINTS,
    OmflowConfig,
    RecoveryPolicy,
    SolverStrategy,
)
from omflow.logging_config import configure_logging


def test_defaults():
    config = OmflowConfig()
    assert config.standard_library_version == DEFAULT_MSL_VERSION == "MSL:3.2.3"
    assert config.solver == SolverStrategy("idas")
    assert config.output_points == DEFAULT_OUTPUT_POINTS
    assert config.scalarize
    assert config.recovery_policy is RecoveryPolicy.NOT_COMPILED
    assert config.library_paths == []


def test_library_paths_are_normalized():
    config = OmflowConfig(library_paths=["/opt/modelica", Path("/usr/lib/omlibrary")])
    assert config.library_paths == [Path("/opt/modelica"), Path("/usr/lib/omlibrary")]


def test_output_points_validation():
    with pytest.raises(ValueError, match="output_points"):
        OmflowConfig(output_points=1)


def test_solver_strategy_coerce():
    assert SolverStrategy.coerce("cvodes") == SolverStrategy("cvodes")
    strategy = SolverStrategy("idas", {"abstol": 1e-10})
    assert SolverStrategy.coerce(strategy) is strategy
    assert str(strategy) == "idas"


def test_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("OMFLOW_LIBRARY_PATH", os.pathsep.join([str(tmp_path / "a"), str(tmp_path / "b")]))
    monkeypatch.setenv("OMFLOW_MSL_VERSION", "MSL:4.0.0")
    monkeypatch.setenv("OMFLOW_SOLVER", "cvodes")
    monkeypatch.setenv("OMFLOW_OUTPUT_POINTS", "11")

    config = OmflowConfig.from_env()
    assert config.library_paths == [tmp_path / "a", tmp_path / "b"]
    assert config.standard_library_version == "MSL:4.0.0"
    assert config.solver.name == "cvodes"
    assert config.output_points == 11


def test_from_env_overrides(monkeypatch):
    monkeypatch.setenv("OMFLOW_SOLVER", "cvodes")
    config = OmflowConfig.from_env(solver=SolverStrategy("collocation"), scalarize=False)
    assert config.solver.name == "collocation"
    assert not config.scalarize


def test_from_env_validates(monkeypatch):
    monkeypatch.setenv("OMFLOW_OUTPUT_POINTS", "1")
    with pytest.raises(ValueError):
        OmflowConfig.from_env()


def test_search_paths(monkeypatch, tmp_path):
    monkeypatch.setenv("MODELICAPATH", os.pathsep.join([str(tmp_path / "env"), ""]))
    config = OmflowConfig(library_paths=[tmp_path / "explicit"])
    assert config.search_paths() == [tmp_path / "explicit", tmp_path / "env"]

    config = OmflowConfig(library_paths=[tmp_path / "explicit"], use_modelica_path=False)
    assert config.search_paths() == [tmp_path / "explicit"]


def test_configure_logging(monkeypatch):
    monkeypatch.setenv("OMFLOW_LOG_LEVEL", "warning")
    logger = configure_logging()
    assert logger.name == "omflow"
    assert logger.level == logging.WARNING

    logger = configure_logging(level="debug")
    assert logger.level == logging.DEBUG
    logger.setLevel(logging.NOTSET)
