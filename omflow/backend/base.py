"""
Base backend interface.
"""

from abc import ABC, abstractmethod
from typing import Any

from omflow.config import SolverStrategy


class Backend(ABC):
    """
    Abstract base class for backends.

    A backend turns a flat model into a simulatable artifact and integrates
    that artifact. Registering the artifact under a model name is the
    session's job, not the backend's.
    """

    @abstractmethod
    def compile(self, flat_model: Any) -> Any:
        """
        Translate a flat model into a compiled artifact.

        Raises ``TranslationError`` if the model cannot be translated.
        """

    @abstractmethod
    def integrate(
        self,
        artifact: Any,
        time_span: tuple[float, float],
        solver: SolverStrategy,
    ) -> Any:
        """
        Integrate a compiled artifact over ``time_span``.

        Args:
            artifact: Value previously returned by ``compile``
            time_span: (start_time, stop_time), forwarded without validation
            solver: Integration method selector

        Raises ``SimulationError`` if the integrator fails.
        """
