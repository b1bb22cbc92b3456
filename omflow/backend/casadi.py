"""
CasADi backend: flat Base Modelica documents to simulatable DAEs.

Translation builds a semi-explicit DAE

    der(x) = f(t, x, z, p)
         0 = g(t, x, z, p)

from the flat equations:

- ``der(x) = expr`` defines the derivative of state ``x`` directly
- ``y = expr`` for a not-yet-defined algebraic variable ``y`` is substituted
  symbolically (``y`` becomes an output, not an unknown)
- every other equation becomes a residual; algebraic variables left without
  an explicit definition, and derivatives appearing inside residuals, are
  the algebraic unknowns ``z``

Parameters, inputs (held at their start value) and constants are evaluated
numerically at translation time. Integration uses the SUNDIALS integrators
shipped with CasADi; the solver strategy name selects the plugin.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import casadi as ca
import numpy as np

from omflow.backend.base import Backend
from omflow.backend.result import Trajectory
from omflow.config import DEFAULT_OUTPUT_POINTS, SolverStrategy
from omflow.errors import SimulationError, TranslationError
from omflow.frontend.flat import FlatModel

logger = logging.getLogger(__name__)

# (variable name, 0-based element index) or (variable name, None) for the whole variable
Key = tuple[str, Optional[int]]

_BINARY = {
    "+": lambda l, r: l + r,
    "-": lambda l, r: l - r,
    "*": lambda l, r: l * r,
    "/": lambda l, r: l / r,
    "^": lambda l, r: l**r,
    "<": lambda l, r: l < r,
    "<=": lambda l, r: l <= r,
    ">": lambda l, r: l > r,
    ">=": lambda l, r: l >= r,
    "==": lambda l, r: l == r,
    "!=": lambda l, r: l != r,
    "and": ca.logic_and,
    "or": ca.logic_or,
}

_FUNCTIONS = {
    "sin": ca.sin,
    "cos": ca.cos,
    "tan": ca.tan,
    "asin": ca.asin,
    "acos": ca.acos,
    "atan": ca.atan,
    "atan2": ca.atan2,
    "sinh": ca.sinh,
    "cosh": ca.cosh,
    "tanh": ca.tanh,
    "exp": ca.exp,
    "log": ca.log,
    "ln": ca.log,
    "log10": ca.log10,
    "sqrt": ca.sqrt,
    "abs": ca.fabs,
    "sign": ca.sign,
    "floor": ca.floor,
    "ceil": ca.ceil,
    "min": ca.fmin,
    "max": ca.fmax,
}


@dataclass
class CompiledModel:
    """Simulatable artifact of one model."""

    name: str
    dae: dict[str, Any]
    x0: np.ndarray
    z0: np.ndarray
    p0: np.ndarray
    # (name, shape) blocks making up x and z, in vector order
    state_layout: list[tuple[str, tuple]] = field(default_factory=list)
    algebraic_layout: list[tuple[str, tuple]] = field(default_factory=list)
    param_names: list[str] = field(default_factory=list)
    # explicitly defined algebraic variables, evaluated from (t, x, z, p)
    outputs: Optional[ca.Function] = None
    output_layout: list[tuple[str, tuple]] = field(default_factory=list)

    @property
    def n_states(self) -> int:
        return int(self.x0.size)

    @property
    def n_algebraic(self) -> int:
        return int(self.z0.size)

    @property
    def state_names(self) -> list[str]:
        return [name for name, _ in self.state_layout]


class CasadiBackend(Backend):
    """
    Example:
        >>> backend = CasadiBackend()
        >>> artifact = backend.compile(flat_model)
        >>> traj = backend.integrate(artifact, (0.0, 10.0), SolverStrategy("idas"))
    """

    def __init__(self, output_points: int = DEFAULT_OUTPUT_POINTS) -> None:
        if output_points < 2:
            raise ValueError(f"output_points must be at least 2, got {output_points}")
        self.output_points = output_points

    def compile(self, flat_model: FlatModel) -> CompiledModel:
        artifact = _Translator(flat_model).translate()
        logger.debug(
            "Compiled %s: %d states, %d algebraic unknowns, %d parameters, %d outputs",
            artifact.name,
            artifact.n_states,
            artifact.n_algebraic,
            artifact.p0.size,
            len(artifact.output_layout),
        )
        return artifact

    def integrate(
        self,
        artifact: CompiledModel,
        time_span: tuple[float, float],
        solver: SolverStrategy,
    ) -> Trajectory:
        t0, t1 = time_span
        grid = np.linspace(t0, t1, self.output_points)
        n = len(grid)
        logger.debug("Integrating %s over [%g, %g] with %s", artifact.name, t0, t1, solver.name)

        xf = np.zeros((0, n))
        zf = np.zeros((0, n))
        if artifact.n_states > 0:
            args = {"x0": artifact.x0}
            if "p" in artifact.dae:
                args["p"] = artifact.p0
            if "z" in artifact.dae:
                args["z0"] = artifact.z0
            try:
                integrator = ca.integrator(
                    "sim", solver.name, artifact.dae, t0, grid.tolist(), dict(solver.options)
                )
                result = integrator(**args)
            except RuntimeError as exc:
                raise SimulationError(
                    f"{solver.name} failed to integrate {artifact.name}: {exc}"
                ) from exc
            xf = result["xf"].full()
            if "z" in artifact.dae:
                zf = result["zf"].full()

        data = {}
        data.update(_unpack(xf, artifact.state_layout))
        data.update(_unpack(zf, artifact.algebraic_layout))

        if artifact.outputs is not None:
            mapped = artifact.outputs.map(n)
            p_grid = np.tile(artifact.p0.reshape(-1, 1), (1, n))
            values = mapped.call([grid.reshape(1, -1), xf, zf, p_grid])
            stacked = np.vstack([np.asarray(v.full()) for v in values])
            data.update(_unpack(stacked, artifact.output_layout))

        return Trajectory(
            t=grid,
            _data=data,
            model_name=artifact.name,
            state_names=artifact.state_names,
            algebraic_names=[name for name, _ in artifact.algebraic_layout + artifact.output_layout],
            solver=solver.name,
        )


def _unpack(rows: np.ndarray, layout: list[tuple[str, tuple]]) -> dict[str, np.ndarray]:
    """Split stacked (n_elements, n_steps) data back into per-variable arrays."""
    data = {}
    offset = 0
    for name, shape in layout:
        size = int(np.prod(shape)) if shape else 1
        block = rows[offset : offset + size, :]
        offset += size
        if not shape:
            data[name] = block[0, :].copy()
        elif len(shape) == 1:
            data[name] = block.T.copy()
        else:
            # column-major element order, as produced by ca.vec
            data[name] = block.T.reshape((-1, shape[1], shape[0])).transpose(0, 2, 1)
    return data


class _Translator:
    """Single-use translation of one flat model."""

    def __init__(self, flat: FlatModel) -> None:
        self.flat = flat
        self.time = ca.SX.sym("time")
        self.symbols: dict[str, ca.SX] = {"time": self.time}
        self.shapes: dict[str, tuple] = {}
        self.entries: dict[str, dict[str, Any]] = {}
        self.kinds: dict[str, str] = {}

        self.numeric: dict[str, np.ndarray] = {}
        self._evaluating: set[str] = set()
        self.der_symbols: dict[Key, ca.SX] = {}

    # ---------------------------------------------------------------- declarations

    def _declare(self, entry: dict[str, Any], kind: str) -> None:
        name = entry["name"]
        if name in self.symbols:
            raise TranslationError(f"{self.flat.name}: duplicate declaration of '{name}'")
        shape = self._dimensions(entry)
        if len(shape) > 2:
            raise TranslationError(
                f"{self.flat.name}: arrays with more than 2 dimensions are not supported ({name})"
            )
        self.symbols[name] = ca.SX.sym(name, *shape) if shape else ca.SX.sym(name)
        self.shapes[name] = shape
        self.entries[name] = entry
        if kind == "variable" and entry.get("causality") == "input":
            kind = "input"
        self.kinds[name] = kind

    def _dimensions(self, entry: dict[str, Any]) -> tuple:
        dims = entry.get("dimensions") or []
        shape = []
        for d in dims:
            if isinstance(d, dict) and d.get("op") == "literal":
                d = d.get("value")
            if not isinstance(d, (int, float)) or isinstance(d, bool) or int(d) != d:
                raise TranslationError(
                    f"{self.flat.name}: non-literal dimension {d!r} of '{entry['name']}'"
                )
            shape.append(int(d))
        return tuple(shape)

    def _size(self, name: str) -> int:
        shape = self.shapes.get(name, ())
        return int(np.prod(shape)) if shape else 1

    # ---------------------------------------------------------------- translation

    def translate(self) -> CompiledModel:
        flat = self.flat
        for entry in flat.constants:
            self._declare(entry, "constant")
        for entry in flat.parameters:
            self._declare(entry, "parameter")
        for entry in flat.variables:
            self._declare(entry, "variable")

        for eq in flat.equations:
            if eq.get("eq_type", "simple") != "simple":
                raise TranslationError(
                    f"{flat.name}: {eq.get('eq_type')}-equations are not supported by the "
                    "CasADi backend (for-equations need scalarize=True and literal ranges)"
                )

        state_names = self._find_states(flat.equations)

        explicit_der: dict[Key, ca.SX] = {}
        explicit_alg: dict[str, ca.SX] = {}
        residuals: list[ca.SX] = []
        for eq in flat.equations:
            lhs, rhs = eq.get("lhs"), eq["rhs"]
            der_arg = _der_argument(lhs)
            if der_arg is not None:
                key = self._key(der_arg)
                if key in explicit_der:
                    raise TranslationError(f"{flat.name}: derivative of {_label(key)} defined twice")
                explicit_der[key] = self._convert(rhs)
                continue
            target = _plain_ref_name(lhs)
            if (
                target is not None
                and self.kinds.get(target) == "variable"
                and target not in state_names
                and target not in explicit_alg
            ):
                explicit_alg[target] = self._convert(rhs)
                continue
            residual = self._convert(rhs) if lhs is None else self._convert(lhs) - self._convert(rhs)
            residuals.append(ca.vec(residual))

        # Substitute explicit definitions (algebraic variables, and derivatives that
        # also appear inside residuals) until nothing refers to them anymore.
        def_syms = [self.symbols[name] for name in explicit_alg]
        def_exprs = list(explicit_alg.values())
        for key, sym in self.der_symbols.items():
            if key in explicit_der:
                def_syms.append(sym)
                def_exprs.append(explicit_der[key])
        def_exprs = self._resolve(def_syms, def_exprs)

        ders = list(explicit_der.values())
        if def_syms:
            ders = ca.substitute(ders, def_syms, def_exprs) if ders else []
            residuals = ca.substitute(residuals, def_syms, def_exprs) if residuals else []
        explicit_der = dict(zip(explicit_der.keys(), ders))
        alg_exprs = def_exprs[: len(explicit_alg)]

        # state vector and its derivative
        state_layout = []
        x_parts, ode_parts = [], []
        for name in self._ordered(state_names):
            state_layout.append((name, self.shapes[name]))
            x_parts.append(ca.vec(self.symbols[name]))
            ode_parts.extend(self._state_derivative(name, explicit_der))

        # algebraic unknowns: undefined variables, then implicit derivatives
        algebraic_layout = []
        z_parts = []
        for name in self._ordered(self.kinds):
            if self.kinds[name] == "variable" and name not in state_names and name not in explicit_alg:
                algebraic_layout.append((name, self.shapes[name]))
                z_parts.append(ca.vec(self.symbols[name]))
        for key, sym in self.der_symbols.items():
            if key not in explicit_der:
                shape = () if key[1] is not None else self.shapes[key[0]]
                algebraic_layout.append((f"der({_label(key)})", shape))
                z_parts.append(ca.vec(sym))

        x = ca.vertcat(*x_parts) if x_parts else ca.SX(0, 1)
        z = ca.vertcat(*z_parts) if z_parts else ca.SX(0, 1)
        alg = ca.vertcat(*residuals) if residuals else ca.SX(0, 1)
        ode = ca.vertcat(*ode_parts) if ode_parts else ca.SX(0, 1)
        if alg.numel() != z.numel():
            raise TranslationError(
                f"{flat.name}: system is not balanced: {alg.numel()} implicit equations for "
                f"{z.numel()} algebraic unknowns "
                f"({', '.join(name for name, _ in algebraic_layout) or 'none'})"
            )
        if x.numel() == 0 and z.numel() > 0:
            raise TranslationError(
                f"{flat.name}: purely algebraic systems with implicit equations are not supported"
            )

        # parameters and inputs form p; constants are already numeric in every expression
        param_names = [n for n in self._ordered(self.kinds) if self.kinds[n] in ("parameter", "input")]
        p = ca.vertcat(*[ca.vec(self.symbols[n]) for n in param_names]) if param_names else ca.SX(0, 1)
        p0 = self._stack([self._value(n) for n in param_names])

        starts = self._initial_overrides()
        x0 = self._stack([starts.get(name, self._value(name)) for name, _ in state_layout])
        z0 = self._stack(
            [
                starts.get(name, self._value(name)) if name in self.entries else np.zeros(int(np.prod(shape) or 1))
                for name, shape in algebraic_layout
            ]
        )

        try:
            ca.Function("check", [self.time, x, z, p], [ode, alg])
        except RuntimeError as exc:
            raise TranslationError(
                f"{flat.name}: equations refer to variables without a defining equation ({exc})"
            ) from exc

        dae: dict[str, Any] = {"t": self.time, "x": x, "ode": ode}
        if param_names:
            dae["p"] = p
        if z_parts:
            dae["z"] = z
            dae["alg"] = alg

        outputs = None
        output_layout = []
        if explicit_alg:
            output_layout = [(name, self.shapes[name]) for name in explicit_alg]
            outputs = ca.Function(
                "outputs", [self.time, x, z, p], [ca.vec(e) for e in alg_exprs]
            )

        return CompiledModel(
            name=flat.name,
            dae=dae,
            x0=x0,
            z0=z0,
            p0=p0,
            state_layout=state_layout,
            algebraic_layout=algebraic_layout,
            param_names=param_names,
            outputs=outputs,
            output_layout=output_layout,
        )

    def _find_states(self, equations: list[dict[str, Any]]) -> set[str]:
        states: set[str] = set()

        def visit(node: Any) -> None:
            if isinstance(node, list):
                for item in node:
                    visit(item)
            elif isinstance(node, dict):
                arg = _der_argument(node)
                if arg is not None:
                    name = _ref_name(arg)
                    if self.kinds.get(name) != "variable":
                        raise TranslationError(f"{self.flat.name}: der() of non-variable '{name}'")
                    states.add(name)
                for value in node.values():
                    visit(value)

        visit(equations)
        return states

    def _state_derivative(self, name: str, explicit_der: dict[Key, ca.SX]) -> list[ca.SX]:
        whole = (name, None)
        if whole in explicit_der:
            expr = ca.vec(explicit_der[whole])
            if expr.numel() != self._size(name):
                raise TranslationError(
                    f"{self.flat.name}: der({name}) has {expr.numel()} elements, "
                    f"expected {self._size(name)}"
                )
            return [expr]
        if whole in self.der_symbols:
            return [ca.vec(self.der_symbols[whole])]

        parts = []
        for i in range(self._size(name)):
            key = (name, i) if self.shapes[name] else whole
            if key in explicit_der:
                parts.append(explicit_der[key])
            elif key in self.der_symbols:
                parts.append(self.der_symbols[key])
            else:
                raise TranslationError(f"{self.flat.name}: no equation defines der({_label(key)})")
        return parts

    def _resolve(self, syms: list[ca.SX], exprs: list[ca.SX]) -> list[ca.SX]:
        """Substitute definitions into each other until they are free of ``syms``."""
        if not syms:
            return exprs
        stacked = ca.vertcat(*[ca.vec(s) for s in syms])
        for _ in range(len(syms) + 1):
            if not any(ca.depends_on(e, stacked) for e in exprs):
                return exprs
            exprs = ca.substitute(exprs, syms, exprs)
        raise TranslationError(f"{self.flat.name}: algebraic loop among explicit equations")

    def _initial_overrides(self) -> dict[str, np.ndarray]:
        """Start values assigned by ``x = expr`` initial equations."""
        overrides = {}
        for eq in self.flat.initial_equations:
            target = _plain_ref_name(eq.get("lhs"))
            if eq.get("eq_type", "simple") == "simple" and target in self.entries:
                overrides[target] = self._evaluate(eq["rhs"], target)
            else:
                logger.warning("%s: ignoring initial equation %s", self.flat.name, eq)
        return overrides

    # ---------------------------------------------------------------- numeric values

    def _value(self, name: str) -> np.ndarray:
        """Numeric value of a declared component: binding, else start, else zero."""
        if name in self.numeric:
            return self.numeric[name]
        if name in self._evaluating:
            raise TranslationError(f"{self.flat.name}: circular binding for '{name}'")
        entry = self.entries[name]
        raw = entry.get("value")
        if raw is None:
            raw = entry.get("start")
        self._evaluating.add(name)
        try:
            value = np.zeros(self._size(name)) if raw is None else self._evaluate(raw, name)
        finally:
            self._evaluating.discard(name)
        self.numeric[name] = value
        return value

    def _evaluate(self, raw: Any, name: str) -> np.ndarray:
        if isinstance(raw, dict):
            expr = self._convert(raw)
            known = [n for n in self.entries if ca.depends_on(expr, self.symbols[n])]
            if known:
                expr = ca.substitute(
                    [expr],
                    [self.symbols[n] for n in known],
                    [self._constant(n) for n in known],
                )[0]
            try:
                value = ca.Function("value", [], [expr]).call([])[0].full()
            except RuntimeError as exc:
                raise TranslationError(
                    f"{self.flat.name}: cannot evaluate the value of '{name}' ({exc})"
                ) from exc
        else:
            value = np.asarray(raw, dtype=float)
        value = np.asarray(value, dtype=float).flatten(order="F")
        size = self._size(name)
        if value.size == 1 and size > 1:
            value = np.full(size, value[0])
        if value.size != size:
            raise TranslationError(
                f"{self.flat.name}: value of '{name}' has {value.size} elements, expected {size}"
            )
        return value

    def _constant(self, name: str) -> ca.SX:
        value = self._value(name)
        shape = self.shapes[name]
        if not shape:
            return ca.SX(float(value[0]))
        if len(shape) == 1:
            return ca.SX(ca.DM(value))
        return ca.SX(ca.DM(value.reshape(shape, order="F")))

    @staticmethod
    def _stack(values: list[np.ndarray]) -> np.ndarray:
        return np.concatenate([np.ravel(v) for v in values]) if values else np.zeros(0)

    def _ordered(self, names: Any) -> list[str]:
        """``names`` in declaration order."""
        return [n for n in self.entries if n in names]

    # ---------------------------------------------------------------- expressions

    def _key(self, ref: dict[str, Any]) -> Key:
        name = _ref_name(ref)
        subscripts = _subscripts(ref)
        if not subscripts:
            return (name, None)
        shape = self.shapes.get(name, ())
        if len(subscripts) != len(shape):
            raise TranslationError(f"{self.flat.name}: wrong number of subscripts for '{name}'")
        idx = [self._index(s, name) for s in subscripts]
        if len(idx) == 1:
            return (name, idx[0])
        return (name, idx[1] * shape[0] + idx[0])

    def _index(self, sub: Any, name: str) -> int:
        if isinstance(sub, dict) and sub.get("op") == "literal":
            sub = sub.get("value")
        if not isinstance(sub, (int, float)) or isinstance(sub, bool) or int(sub) != sub:
            raise TranslationError(
                f"{self.flat.name}: non-literal subscript of '{name}' (flatten with scalarize=True)"
            )
        return int(sub) - 1

    def _der_symbol(self, ref: dict[str, Any]) -> ca.SX:
        key = self._key(ref)
        if key not in self.der_symbols:
            name, idx = key
            if idx is None and self.shapes[name]:
                self.der_symbols[key] = ca.SX.sym(f"der({name})", *self.shapes[name])
            else:
                self.der_symbols[key] = ca.SX.sym(f"der({_label(key)})")
        return self.der_symbols[key]

    def _convert(self, expr: Any) -> ca.SX:
        """Convert a Base Modelica expression to a CasADi expression."""
        if isinstance(expr, bool):
            return ca.SX(float(expr))
        if isinstance(expr, (int, float)):
            return ca.SX(float(expr))
        if isinstance(expr, list):
            return ca.vertcat(*[self._convert(e) for e in expr])
        if not isinstance(expr, dict):
            raise TranslationError(f"{self.flat.name}: unsupported expression {expr!r}")

        op = expr["op"]

        if op == "literal":
            value = expr["value"]
            if isinstance(value, str):
                raise TranslationError(f"{self.flat.name}: string literals are not supported")
            return self._convert(value)

        if op in ("var", "component_ref"):
            return self._reference(expr)

        if op in _BINARY:
            lhs, rhs = expr["args"]
            return _BINARY[op](self._convert(lhs), self._convert(rhs))

        if op == "neg":
            return -self._convert(expr["args"][0])
        if op == "pos":
            return self._convert(expr["args"][0])
        if op == "not":
            return ca.logic_not(self._convert(expr["args"][0]))

        if op == "if":
            return ca.if_else(
                self._convert(expr["condition"]),
                self._convert(expr["then"]),
                self._convert(expr["else"]),
            )

        if op == "array":
            return ca.vertcat(*[self._convert(e) for e in expr.get("elements", expr.get("args", []))])

        func = expr["func"] if op == "call" else op
        args = expr.get("args", [])
        if func == "der":
            return self._der_symbol(args[0])
        if func == "pre":
            return self._convert(args[0])
        if func in ("min", "max") and len(args) == 1:
            values = self._convert(args[0])
            reduce = ca.mmin if func == "min" else ca.mmax
            return reduce(values)
        if func in _FUNCTIONS:
            return _FUNCTIONS[func](*[self._convert(a) for a in args])
        raise TranslationError(f"{self.flat.name}: unsupported function '{func}'")

    def _reference(self, expr: dict[str, Any]) -> ca.SX:
        name = _ref_name(expr)
        if name not in self.symbols:
            available = sorted(n for n in self.symbols if n != "time")
            raise TranslationError(
                f"{self.flat.name}: unknown variable '{name}'. Available: {', '.join(available)}"
            )
        base = self._constant(name) if self.kinds.get(name) == "constant" else self.symbols[name]
        subscripts = _subscripts(expr)
        if not subscripts:
            return base
        idx = [self._index(s, name) for s in subscripts]
        if len(idx) == 1:
            return base[idx[0]]
        if len(idx) == 2:
            return base[idx[0], idx[1]]
        raise TranslationError(f"{self.flat.name}: too many subscripts for '{name}'")


def _der_argument(node: Any) -> Optional[dict[str, Any]]:
    """The argument of a ``der(...)`` expression, or None."""
    if not isinstance(node, dict):
        return None
    op = node.get("op")
    if op == "der" or (op == "call" and node.get("func") == "der"):
        args = node.get("args", [])
        return args[0] if args else None
    return None


def _ref_name(ref: dict[str, Any]) -> str:
    if ref.get("op") == "var":
        return ref["name"]
    if ref.get("op") == "component_ref":
        return ".".join(part["name"] for part in ref["parts"])
    raise TranslationError(f"expected a variable reference, got {ref.get('op')!r}")


def _subscripts(ref: dict[str, Any]) -> list[Any]:
    if ref.get("op") == "component_ref":
        return list(ref["parts"][-1].get("subscripts") or [])
    return list(ref.get("subscripts") or [])


def _plain_ref_name(node: Any) -> Optional[str]:
    """Name of an unsubscripted variable reference, or None."""
    if not isinstance(node, dict) or node.get("op") not in ("var", "component_ref"):
        return None
    if _subscripts(node):
        return None
    return _ref_name(node)


def _label(key: Key) -> str:
    name, idx = key
    return name if idx is None else f"{name}[{idx + 1}]"
