"""
Library cache and model registry.

Both are plain keyed stores owned by a ``Session``. Storing under an
existing key replaces the previous value; nothing is ever versioned or
evicted.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator

from omflow.errors import LibraryNotLoadedError, ModelNotCompiledError

logger = logging.getLogger(__name__)


class LibraryCache:
    """Library identifier -> intermediate program of the library."""

    def __init__(self) -> None:
        self._programs: dict[str, Any] = {}

    def store(self, library_id: str, program: Any) -> None:
        if library_id in self._programs:
            logger.debug("Replacing cached library %s", library_id)
        self._programs[library_id] = program

    def get(self, library_id: str) -> Any:
        try:
            return self._programs[library_id]
        except KeyError:
            raise LibraryNotLoadedError(library_id) from None

    def identifiers(self) -> list[str]:
        return list(self._programs)

    def __contains__(self, library_id: object) -> bool:
        return library_id in self._programs

    def __len__(self) -> int:
        return len(self._programs)


class ModelRegistry:
    """Model name -> most recently compiled artifact."""

    def __init__(self) -> None:
        self._artifacts: dict[str, Any] = {}

    def register(self, model_name: str, artifact: Any) -> bool:
        """Insert or overwrite; returns True if an earlier artifact was replaced."""
        replaced = model_name in self._artifacts
        self._artifacts[model_name] = artifact
        return replaced

    def lookup(self, model_name: str) -> Any:
        try:
            return self._artifacts[model_name]
        except KeyError:
            raise ModelNotCompiledError(model_name, self.names()) from None

    def names(self) -> list[str]:
        return list(self._artifacts)

    def __contains__(self, model_name: object) -> bool:
        return model_name in self._artifacts

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._artifacts))

    def __len__(self) -> int:
        return len(self._artifacts)
