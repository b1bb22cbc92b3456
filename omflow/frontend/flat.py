"""
Flat model values produced by instantiation.

A ``FlatModel`` wraps the Base Modelica (MCP-0031) JSON document emitted by
the compiler. The ``FunctionCache`` produced by the same instantiation call
holds the function definitions the flat equations refer to; the two are
only meaningful together.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class FunctionCache:
    functions: dict[str, dict[str, Any]] = field(default_factory=dict)

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "FunctionCache":
        raw = document.get("functions", [])
        if isinstance(raw, dict):
            return cls(functions=dict(raw))
        return cls(functions={f["name"]: f for f in raw if "name" in f})

    def __contains__(self, name: object) -> bool:
        return name in self.functions

    def __len__(self) -> int:
        return len(self.functions)

    def get(self, name: str) -> Optional[dict[str, Any]]:
        return self.functions.get(name)


@dataclass(frozen=True)
class FlatModel:
    name: str
    document: dict[str, Any]
    scalarized: bool = True

    @property
    def constants(self) -> list[dict[str, Any]]:
        return self.document.get("constants", [])

    @property
    def parameters(self) -> list[dict[str, Any]]:
        return self.document.get("parameters", [])

    @property
    def variables(self) -> list[dict[str, Any]]:
        return self.document.get("variables", [])

    @property
    def equations(self) -> list[dict[str, Any]]:
        return self.document.get("equations", [])

    @property
    def initial_equations(self) -> list[dict[str, Any]]:
        return self.document.get("initial_equations", [])

    @property
    def description(self) -> str:
        return self.document.get("metadata", {}).get("description", "")
