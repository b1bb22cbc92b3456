"""
Render a flat model as flat Modelica text.

The output is deterministic: the same document always renders to the same
text, in document order.
"""

from __future__ import annotations

from typing import Any

from omflow.frontend.flat import FlatModel

INDENT = "  "

_BINARY_PRECEDENCE = {
    "or": 1,
    "and": 2,
    "<": 4,
    "<=": 4,
    ">": 4,
    ">=": 4,
    "==": 4,
    "!=": 4,
    "+": 5,
    "-": 5,
    "*": 7,
    "/": 7,
    "^": 8,
}
_BINARY_SPELLING = {"!=": "<>"}
_UNARY = {"neg": ("-", 6), "pos": ("+", 6), "not": ("not ", 3)}


def render_flat_model(flat: FlatModel) -> str:
    lines = [f"model {_quote_name(flat.name)}{_description(flat.description)}"]

    for const in flat.constants:
        lines.append(INDENT + "constant " + _declaration(const) + ";")
    for param in flat.parameters:
        lines.append(INDENT + "parameter " + _declaration(param) + ";")
    for var in flat.variables:
        prefix = ""
        if var.get("variability") == "discrete":
            prefix += "discrete "
        if var.get("causality") in ("input", "output"):
            prefix += var["causality"] + " "
        lines.append(INDENT + prefix + _declaration(var) + ";")

    if flat.initial_equations:
        lines.append("initial equation")
        for eq in flat.initial_equations:
            lines.extend(render_equation(eq, 1))

    if flat.equations:
        lines.append("equation")
        for eq in flat.equations:
            lines.extend(render_equation(eq, 1))

    lines.append(f"end {_quote_name(flat.name)};")
    return "\n".join(lines) + "\n"


def render_equation(eq: dict[str, Any], depth: int = 0) -> list[str]:
    pad = INDENT * depth
    eq_type = eq.get("eq_type", "simple")

    if eq_type == "simple":
        lhs = render_expr(eq["lhs"]) if eq.get("lhs") else "0"
        return [f"{pad}{lhs} = {render_expr(eq['rhs'])};"]

    if eq_type == "for":
        index = eq["indices"][0]
        lines = [f"{pad}for {index['index']} in {render_expr(index['range'])} loop"]
        for inner in eq["equations"]:
            lines.extend(render_equation(inner, depth + 1))
        lines.append(f"{pad}end for;")
        return lines

    if eq_type in ("if", "when"):
        lines = []
        for i, branch in enumerate(eq.get("branches", [])):
            keyword = eq_type if i == 0 else f"else{eq_type}"
            lines.append(f"{pad}{keyword} {render_expr(branch['condition'])} then")
            for inner in branch["equations"]:
                lines.extend(render_equation(inner, depth + 1))
        if eq.get("else_equations"):
            lines.append(f"{pad}else")
            for inner in eq["else_equations"]:
                lines.extend(render_equation(inner, depth + 1))
        lines.append(f"{pad}end {eq_type};")
        return lines

    raise ValueError(f"Unknown equation type: {eq_type}")


def render_expr(expr: Any, parent: int = 0) -> str:
    """Render an expression; ``parent`` is the binding strength of the enclosing operator."""
    if not isinstance(expr, dict):
        return _literal(expr)

    op = expr["op"]

    if op == "literal":
        return _literal(expr["value"])
    if op == "var":
        return expr["name"]
    if op == "component_ref":
        return ".".join(_ref_part(p) for p in expr["parts"])

    if op in _BINARY_PRECEDENCE:
        prec = _BINARY_PRECEDENCE[op]
        lhs, rhs = expr["args"]
        # left-associative except ^, so the right operand binds one tighter
        text = (
            f"{render_expr(lhs, prec)} {_BINARY_SPELLING.get(op, op)} "
            f"{render_expr(rhs, prec + 1)}"
        )
        return f"({text})" if prec < parent else text

    if op in _UNARY:
        symbol, prec = _UNARY[op]
        text = symbol + render_expr(expr["args"][0], prec + 1)
        return f"({text})" if prec < parent else text

    if op == "if":
        text = (
            f"if {render_expr(expr['condition'])} then {render_expr(expr['then'])} "
            f"else {render_expr(expr['else'])}"
        )
        return f"({text})" if parent > 0 else text

    if op == "array":
        items = expr.get("elements", expr.get("args", []))
        return "{" + ", ".join(render_expr(e) for e in items) + "}"

    if op in ("range", ":"):
        return ":".join(render_expr(a, 5) for a in expr["args"])

    func = expr["func"] if op == "call" else op
    args = ", ".join(render_expr(a) for a in expr.get("args", []))
    return f"{func}({args})"


def _declaration(data: dict[str, Any]) -> str:
    text = f"{data.get('type', 'Real')} {data['name']}"
    dims = data.get("dimensions")
    if dims:
        text += "[" + ", ".join(str(d) for d in dims) + "]"

    modifiers = []
    for key in ("start", "fixed", "min", "max", "nominal"):
        if data.get(key) is not None:
            modifiers.append(f"{key} = {render_expr(data[key])}")
    if data.get("unit"):
        modifiers.append(f'unit = "{data["unit"]}"')
    if modifiers:
        text += "(" + ", ".join(modifiers) + ")"

    if data.get("value") is not None:
        text += " = " + render_expr(data["value"])
    return text + _description(data.get("description", ""))


def _ref_part(part: dict[str, Any]) -> str:
    subs = part.get("subscripts") or []
    if not subs:
        return part["name"]
    return part["name"] + "[" + ", ".join(render_expr(s) for s in subs) + "]"


def _literal(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return '"' + value.replace('"', '\\"') + '"'
    if isinstance(value, list):
        return "{" + ", ".join(_literal(v) for v in value) + "}"
    return repr(value)


def _description(text: str) -> str:
    return f' "{text}"' if text else ""


def _quote_name(name: str) -> str:
    # flattened names keep their dots, only the model name needs quoting
    return f"'{name}'" if "." in name else name
