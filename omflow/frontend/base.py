"""
Frontend collaborator interface.

A frontend turns source files into flat models. The session only sequences
these calls; the values passing between them are opaque to it.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Union


class Frontend(ABC):
    @abstractmethod
    def parse(self, path: Union[str, Path]) -> Any:
        """Parse a source file. Raises ``ParseError`` on malformed input."""

    @abstractmethod
    def to_intermediate(self, parsed: Any) -> Any:
        """
        Translate a parsed file into an intermediate program.

        The returned program must support ``prepend(library_program)``.
        """

    @abstractmethod
    def instantiate(self, model_name: str, program: Any, scalarize: bool = True) -> tuple[Any, Any]:
        """
        Flatten ``model_name`` from ``program``.

        Returns:
            (flat_model, function_cache) from the same instantiation.

        Raises ``InstantiationError`` if the model is not defined in the program.
        """

    @abstractmethod
    def load_library(self, library_id: str) -> Any:
        """Load a library as an intermediate program. Raises ``LibraryLoadError``."""

    @abstractmethod
    def flatten_with_standard_library(
        self, model_name: str, path: Union[str, Path], version: str
    ) -> tuple[Any, Any]:
        """Load (if needed) the given standard library version and flatten against it."""

    @abstractmethod
    def to_text(self, flat_model: Any) -> str:
        """Render a flat model as text."""
