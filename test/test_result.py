"""
Tests for simulation trajectories.
"""

import numpy as np
import pytest

from omflow.backend.result import Trajectory


@pytest.fixture
def traj():
    t = np.linspace(0.0, 2.0, 5)
    return Trajectory(
        t=t,
        _data={"x": np.exp(-t), "v": np.column_stack([t, 2 * t])},
        model_name="Decay",
        state_names=["x", "v"],
        solver="idas",
    )


def test_access(traj):
    assert len(traj) == 5
    assert traj.names == ["x", "v"]
    assert "x" in traj
    assert "y" not in traj
    assert traj["t"] is traj.t
    assert traj["time"] is traj.t
    assert traj.start_time == 0.0
    assert traj.stop_time == 2.0


def test_unknown_variable(traj):
    with pytest.raises(KeyError, match="Available"):
        traj["y"]


def test_final(traj):
    final = traj.final()
    assert final["x"] == pytest.approx(np.exp(-2.0))
    assert final["v"].tolist() == [2.0, 4.0]


def test_to_csv(traj, tmp_path):
    path = tmp_path / "decay.csv"
    traj.to_csv(path)
    header = path.read_text().splitlines()[0]
    assert header == "time,x,v[1],v[2]"

    data = np.loadtxt(path, delimiter=",", skiprows=1)
    assert data.shape == (5, 4)
    assert np.allclose(data[:, 0], traj.t)
    assert np.allclose(data[:, 3], 2 * traj.t)
