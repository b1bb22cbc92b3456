"""
Simulation trajectories.

Results are numpy arrays for direct use with matplotlib/numpy:
``plt.plot(traj.t, traj["theta"])``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Union

import numpy as np


@dataclass
class Trajectory:
    """
    Time series of a simulated model over ``[t[0], t[-1]]``.

    Example
    -------
    >>> traj = session.simulate("Pendulum", stop_time=10.0)  # doctest: +SKIP
    >>> traj.start_time, traj.stop_time  # doctest: +SKIP
    (0.0, 10.0)
    >>> traj["theta"][-1]  # doctest: +SKIP
    """

    # Time vector
    t: np.ndarray

    # Trajectory data: name -> array
    _data: Dict[str, np.ndarray] = field(default_factory=dict)

    # Metadata
    model_name: str = ""
    state_names: List[str] = field(default_factory=list)
    algebraic_names: List[str] = field(default_factory=list)
    solver: str = ""

    def __getitem__(self, key: str) -> np.ndarray:
        if key in ("t", "time"):
            return self.t
        if key not in self._data:
            raise KeyError(f"Variable '{key}' not in result. Available: {self.names}")
        return self._data[key]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self.t)

    @property
    def names(self) -> List[str]:
        return list(self._data.keys())

    @property
    def start_time(self) -> float:
        return float(self.t[0])

    @property
    def stop_time(self) -> float:
        return float(self.t[-1])

    def final(self) -> Dict[str, np.ndarray]:
        """Values of every variable at the last time point."""
        return {name: values[-1] for name, values in self._data.items()}

    def to_csv(self, path: Union[str, Path]) -> None:
        """Write ``time`` plus one column per scalar (or array element) trajectory."""
        columns = [self.t]
        header = ["time"]
        for name, values in self._data.items():
            values = np.asarray(values)
            if values.ndim == 1:
                columns.append(values)
                header.append(name)
            else:
                for i in range(values.shape[1]):
                    columns.append(values[:, i])
                    header.append(f"{name}[{i + 1}]")
        np.savetxt(
            path,
            np.column_stack(columns),
            delimiter=",",
            header=",".join(header),
            comments="",
        )
