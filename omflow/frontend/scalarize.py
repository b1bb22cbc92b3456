"""
Scalarization of flat Base Modelica documents.

For-equations over literal ranges are unrolled into one equation per index
value, with the loop index replaced by an integer literal everywhere in the
body. Loops whose range is not a literal are left untouched.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)


def scalarize_document(document: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``document`` with literal-range for-equations unrolled."""
    result = copy.deepcopy(document)
    for section in ("equations", "initial_equations"):
        if section in result:
            result[section] = unroll_equations(result[section])
    return result


def unroll_equations(equations: list[dict[str, Any]]) -> list[dict[str, Any]]:
    out = []
    for eq in equations:
        if eq.get("eq_type") != "for":
            out.append(eq)
            continue

        if len(eq["indices"]) != 1:
            out.append(eq)
            continue
        index = eq["indices"][0]
        values = literal_range(index["range"])
        if values is None:
            logger.debug("Keeping for-equation over non-literal range for %s", index["index"])
            out.append(eq)
            continue

        for value in values:
            body = [substitute_index(inner, index["index"], value) for inner in eq["equations"]]
            out.extend(unroll_equations(body))
    return out


def literal_range(expr: Any) -> Optional[list[int]]:
    """Integer values of a range expression, or None if it is not literal."""
    if not isinstance(expr, dict):
        return None

    if expr.get("op") in ("range", ":"):
        bounds = [_int_literal(a) for a in expr.get("args", [])]
    elif "start" in expr and ("stop" in expr or "end" in expr):
        bounds = [_int_literal(expr["start"])]
        if "step" in expr:
            bounds.append(_int_literal(expr["step"]))
        bounds.append(_int_literal(expr.get("stop", expr.get("end"))))
    else:
        return None

    if any(b is None for b in bounds):
        return None
    if len(bounds) == 2:
        start, stop = bounds
        step = 1
    elif len(bounds) == 3:
        start, step, stop = bounds
    else:
        return None
    if step == 0:
        return None
    return list(range(start, stop + (1 if step > 0 else -1), step))


def substitute_index(node: Any, index: str, value: int) -> Any:
    """Replace references to the loop index ``index`` with the literal ``value``."""
    if isinstance(node, list):
        return [substitute_index(n, index, value) for n in node]
    if not isinstance(node, dict):
        return node

    op = node.get("op")
    if op == "var" and node.get("name") == index:
        return {"op": "literal", "value": value}
    if op == "component_ref":
        parts = node.get("parts", [])
        if len(parts) == 1 and parts[0]["name"] == index and not parts[0].get("subscripts"):
            return {"op": "literal", "value": value}

    return {key: substitute_index(val, index, value) for key, val in node.items()}


def _int_literal(expr: Any) -> Optional[int]:
    if isinstance(expr, bool):
        return None
    if isinstance(expr, int):
        return expr
    if isinstance(expr, dict) and expr.get("op") == "literal":
        value = expr.get("value")
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
    return None
