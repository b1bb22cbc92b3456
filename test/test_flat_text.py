"""
Tests for flat models and flat Modelica text rendering.
"""

import pytest

from omflow.frontend.flat import FlatModel, FunctionCache
from omflow.frontend.text import render_equation, render_expr, render_flat_model


def var(name):
    return {"op": "var", "name": name}


def lit(value):
    return {"op": "literal", "value": value}


def binop(op, lhs, rhs):
    return {"op": op, "args": [lhs, rhs]}


def simple(lhs, rhs):
    return {"eq_type": "simple", "lhs": lhs, "rhs": rhs}


TANK = {
    "model_name": "Tank",
    "constants": [{"name": "g", "type": "Real", "value": 9.81}],
    "parameters": [
        {"name": "A", "type": "Real", "value": 2.0, "unit": "m2", "description": "area"},
    ],
    "variables": [
        {"name": "h", "type": "Real", "start": 1.0, "unit": "m"},
        {"name": "q", "type": "Real", "causality": "input"},
        {"name": "n", "type": "Integer", "variability": "discrete"},
        {"name": "v", "type": "Real", "dimensions": [3]},
    ],
    "initial_equations": [simple(var("h"), lit(1.0))],
    "equations": [
        simple(
            {"op": "der", "args": [var("h")]},
            binop(
                "/",
                binop("-", var("q"), {"op": "call", "func": "sqrt", "args": [var("h")]}),
                var("A"),
            ),
        ),
    ],
    "functions": [{"name": "Tank.helper", "inputs": [], "outputs": []}],
}


def test_render_flat_model():
    text = render_flat_model(FlatModel(name="Tank", document=TANK))
    assert text.splitlines() == [
        "model Tank",
        "  constant Real g = 9.81;",
        '  parameter Real A(unit = "m2") = 2.0 "area";',
        '  Real h(start = 1.0, unit = "m");',
        "  input Real q;",
        "  discrete Integer n;",
        "  Real v[3];",
        "initial equation",
        "  h = 1.0;",
        "equation",
        "  der(h) = (q - sqrt(h)) / A;",
        "end Tank;",
    ]


def test_render_is_deterministic():
    flat = FlatModel(name="Tank", document=TANK)
    assert render_flat_model(flat) == render_flat_model(flat)


def test_dotted_model_name_is_quoted():
    text = render_flat_model(FlatModel(name="Lib.Tank", document={"model_name": "Lib.Tank"}))
    assert text == "model 'Lib.Tank'\nend 'Lib.Tank';\n"


def test_flat_model_accessors():
    flat = FlatModel(name="Tank", document=TANK)
    assert [p["name"] for p in flat.parameters] == ["A"]
    assert len(flat.variables) == 4
    assert len(flat.initial_equations) == 1
    assert flat.description == ""
    assert flat.scalarized


def test_function_cache_from_list_and_dict():
    functions = FunctionCache.from_document(TANK)
    assert "Tank.helper" in functions
    assert len(functions) == 1
    assert functions.get("missing") is None

    functions = FunctionCache.from_document({"functions": {"f": {"name": "f"}}})
    assert functions.get("f") == {"name": "f"}
    assert len(FunctionCache.from_document({})) == 0


@pytest.mark.parametrize(
    "expr, expected",
    [
        (binop("-", var("a"), binop("-", var("b"), var("c"))), "a - (b - c)"),
        (binop("-", binop("-", var("a"), var("b")), var("c")), "a - b - c"),
        (binop("*", binop("+", var("a"), var("b")), var("c")), "(a + b) * c"),
        (binop("^", var("a"), binop("^", var("b"), var("c"))), "a ^ (b ^ c)"),
        ({"op": "neg", "args": [binop("+", var("a"), var("b"))]}, "-(a + b)"),
        ({"op": "pos", "args": [var("a")]}, "+a"),
        (binop("*", {"op": "pos", "args": [binop("+", var("a"), var("b"))]}, var("c")), "(+(a + b)) * c"),
        (binop("!=", var("a"), lit(1)), "a <> 1"),
        (binop("and", var("p"), {"op": "not", "args": [var("q")]}), "p and not q"),
        (lit(True), "true"),
        (lit("on"), '"on"'),
        ({"op": "array", "elements": [lit(1), lit(2)]}, "{1, 2}"),
        ({"op": "call", "func": "atan2", "args": [var("y"), var("x")]}, "atan2(y, x)"),
        ({"op": "pre", "args": [var("n")]}, "pre(n)"),
    ],
)
def test_render_expr(expr, expected):
    assert render_expr(expr) == expected


def test_render_if_expression_is_parenthesized_inside_operators():
    cond = {"op": "if", "condition": binop(">", var("x"), lit(0)), "then": var("x"), "else": lit(0)}
    assert render_expr(cond) == "if x > 0 then x else 0"
    assert render_expr(binop("+", cond, lit(1))) == "(if x > 0 then x else 0) + 1"


def test_render_component_ref_with_subscripts():
    ref = {
        "op": "component_ref",
        "parts": [{"name": "body"}, {"name": "r", "subscripts": [lit(2)]}],
    }
    assert render_expr(ref) == "body.r[2]"


def test_render_for_equation():
    ref = {"op": "component_ref", "parts": [{"name": "v", "subscripts": [var("i")]}]}
    eq = {
        "eq_type": "for",
        "indices": [{"index": "i", "range": {"op": "range", "args": [lit(1), lit(3)]}}],
        "equations": [simple(ref, var("i"))],
    }
    assert render_equation(eq, 1) == ["  for i in 1:3 loop", "    v[i] = i;", "  end for;"]


def test_render_when_equation():
    eq = {
        "eq_type": "when",
        "branches": [
            {"condition": binop(">", var("h"), lit(2.0)), "equations": [simple(var("n"), lit(1))]},
            {"condition": binop("<", var("h"), lit(0.5)), "equations": [simple(var("n"), lit(0))]},
        ],
    }
    assert render_equation(eq) == [
        "when h > 2.0 then",
        "  n = 1;",
        "elsewhen h < 0.5 then",
        "  n = 0;",
        "end when;",
    ]


def test_render_if_equation_with_else():
    eq = {
        "eq_type": "if",
        "branches": [{"condition": var("on"), "equations": [simple(var("u"), lit(1.0))]}],
        "else_equations": [simple(var("u"), lit(0.0))],
    }
    assert render_equation(eq) == ["if on then", "  u = 1.0;", "else", "  u = 0.0;", "end if;"]


def test_residual_equation_without_lhs():
    eq = {"eq_type": "simple", "rhs": binop("-", var("x"), var("y"))}
    assert render_equation(eq) == ["0 = x - y;"]


def test_unknown_equation_type():
    with pytest.raises(ValueError, match="Unknown equation type"):
        render_equation({"eq_type": "assert"})
