"""
Error kinds raised by the compile-and-simulate pipeline.

Every error raised by a collaborator is propagated unchanged, with one
exception: ``Session.resimulate`` recovers from ``ModelNotCompiledError``.
"""

from typing import Iterable, Optional


class OmflowError(Exception):
    """Base class for all pipeline errors."""


class ParseError(OmflowError):
    """Malformed Modelica source."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


class LibraryNotLoadedError(OmflowError):
    """A library was referenced before it was loaded into the library cache."""

    def __init__(self, library_id: str) -> None:
        self.library_id = library_id
        super().__init__(f"Library {library_id} not loaded")


class LibraryLoadError(OmflowError):
    """The frontend could not load the named library."""

    def __init__(self, library_id: str, reason: str) -> None:
        self.library_id = library_id
        super().__init__(f"Failed to load library {library_id}: {reason}")


class InstantiationError(OmflowError):
    """The model could not be flattened (unknown model name, compiler failure)."""

    def __init__(self, model_name: str, reason: str) -> None:
        self.model_name = model_name
        super().__init__(f"Failed to instantiate {model_name}: {reason}")


class TranslationError(OmflowError):
    """The backend could not turn a flat model into a simulatable artifact."""


class SimulationError(OmflowError):
    """The numerical integrator failed."""


class ModelNotCompiledError(OmflowError, KeyError):
    """No compiled artifact is registered under the requested model name."""

    def __init__(self, model_name: str, available: Iterable[str] = ()) -> None:
        self.model_name = model_name
        self.available = list(available)
        super().__init__(model_name)

    def __str__(self) -> str:
        return (
            f"Model '{self.model_name}' is not compiled. "
            f"Available: {', '.join(self.available) if self.available else '(none)'}"
        )
