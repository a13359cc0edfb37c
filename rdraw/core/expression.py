# File: rdraw/core/expression.py
# Project: RelativeDraw (RDR)
# Version: 0.2.0
# Status: stable
# Date: 2026-10-19
# Purpose: Coordenadas relativas (constante | referencia | expresión) y contextos de evaluación.
# Notes:
#   - El contexto siempre se pasa explícito a resolve(); los valores no guardan estado global.
#   - Solo un subconjunto aritmético (+ - * /, min/max/abs, símbolos); no es un lenguaje general.
from __future__ import annotations

import ast
import math
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol, Union

from rdraw.utils.errors import (
    ExpressionEvaluationError,
    ExpressionSyntaxError,
    RdrValidationError,
    UnresolvedSymbolError,
)

CONSTANT = "constant"
REFERENCE = "reference"
EXPRESSION = "expression"

_FUNCTIONS = {
    "min": (1, None),
    "max": (1, None),
    "abs": (1, 1),
}

_BINOPS = {ast.Add: "+", ast.Sub: "-", ast.Mult: "*", ast.Div: "/"}
_PRECEDENCE = {"+": 1, "-": 1, "*": 2, "/": 2}


class EvaluationContext(Protocol):
    """Lo único que el motor le pide a un contexto: un número por símbolo."""

    def get_symbol_value(self, symbol: str) -> float:  # pragma: no cover (protocol)
        ...


class MappingContext:
    """Contexto respaldado por un dict nombre -> número."""

    def __init__(self, values: Optional[Mapping[str, float]] = None, **kwargs: float) -> None:
        self._values: dict[str, float] = dict(values or {})
        self._values.update(kwargs)

    def get_symbol_value(self, symbol: str) -> float:
        try:
            return float(self._values[symbol])
        except KeyError:
            raise UnresolvedSymbolError(symbol) from None

    def __repr__(self) -> str:
        return f"MappingContext({self._values!r})"


class _EmptyContext:
    def get_symbol_value(self, symbol: str) -> float:
        raise UnresolvedSymbolError(symbol)

    def __repr__(self) -> str:
        return "EMPTY_CONTEXT"


EMPTY_CONTEXT = _EmptyContext()


# ----------------------------
# Parse (ast -> árbol interno)
# ----------------------------
# Nodos internos (tuplas inmutables):
#   ("num", float) | ("sym", "a.b") | ("neg", node) | ("bin", op, l, r) | ("call", name, (args...))

class _Converter(ast.NodeVisitor):
    """Convierte el ast de Python al árbol interno, rechazando todo lo demás."""

    def __init__(self, text: str) -> None:
        self._text = text

    def fail(self, what: str) -> ExpressionSyntaxError:
        return ExpressionSyntaxError(f"Coordenada inválida {self._text!r}: {what}")

    def generic_visit(self, node: ast.AST) -> Any:  # noqa: ANN401
        raise self.fail(f"no soportado ({type(node).__name__})")

    def visit_Expression(self, node: ast.Expression) -> Any:  # noqa: ANN401
        return self.visit(node.body)

    def visit_Constant(self, node: ast.Constant) -> Any:  # noqa: ANN401
        v = node.value
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise self.fail(f"literal no numérico {v!r}")
        if not math.isfinite(float(v)):
            raise self.fail("literal no finito")
        return ("num", float(v))

    def visit_Name(self, node: ast.Name) -> Any:  # noqa: ANN401
        return ("sym", node.id)

    def visit_Attribute(self, node: ast.Attribute) -> Any:  # noqa: ANN401
        parts = [node.attr]
        cur = node.value
        while isinstance(cur, ast.Attribute):
            parts.append(cur.attr)
            cur = cur.value
        if not isinstance(cur, ast.Name):
            raise self.fail("símbolo compuesto inválido")
        parts.append(cur.id)
        return ("sym", ".".join(reversed(parts)))

    def visit_UnaryOp(self, node: ast.UnaryOp) -> Any:  # noqa: ANN401
        operand = self.visit(node.operand)
        if isinstance(node.op, ast.UAdd):
            return operand
        if not isinstance(node.op, ast.USub):
            raise self.fail(f"operador unario {type(node.op).__name__}")
        if operand[0] == "num":
            return ("num", -operand[1])
        if operand[0] == "neg":
            return operand[1]
        return ("neg", operand)

    def visit_BinOp(self, node: ast.BinOp) -> Any:  # noqa: ANN401
        op = _BINOPS.get(type(node.op))
        if op is None:
            raise self.fail(f"operador {type(node.op).__name__}")
        return ("bin", op, self.visit(node.left), self.visit(node.right))

    def visit_Call(self, node: ast.Call) -> Any:  # noqa: ANN401
        if not isinstance(node.func, ast.Name) or node.func.id not in _FUNCTIONS or node.keywords:
            raise self.fail("función no soportada")
        name = node.func.id
        lo, hi = _FUNCTIONS[name]
        n = len(node.args)
        if n < lo or (hi is not None and n > hi):
            raise self.fail(f"{name}() con {n} argumentos")
        return ("call", name, tuple(self.visit(a) for a in node.args))


def _parse_node(text: str) -> tuple:
    src = str(text).strip()
    if not src:
        raise ExpressionSyntaxError("Coordenada vacía")
    try:
        tree = ast.parse(src, mode="eval")
    except SyntaxError as e:
        raise ExpressionSyntaxError(f"Coordenada inválida {src!r}: {e.msg}") from e
    return _Converter(src).visit(tree)


# ----------------------------
# Render canónico
# ----------------------------

def format_number(v: float) -> str:
    """Forma más corta: 100.0 -> '100', 12.5 -> '12.5'."""
    f = float(v)
    if f == int(f) and abs(f) < 1e15:
        return str(int(f))
    return repr(f)


def _prec(node: tuple) -> int:
    kind = node[0]
    if kind == "bin":
        return _PRECEDENCE[node[1]]
    if kind == "neg":
        return 3
    return 4


def _render(node: tuple) -> str:
    kind = node[0]
    if kind == "num":
        return format_number(node[1])
    if kind == "sym":
        return node[1]
    if kind == "neg":
        inner = _render(node[1])
        return f"-({inner})" if _prec(node[1]) < 3 else f"-{inner}"
    if kind == "call":
        return f"{node[1]}({', '.join(_render(a) for a in node[2])})"
    op, left, right = node[1], node[2], node[3]
    p = _PRECEDENCE[op]
    ls = _render(left)
    rs = _render(right)
    if _prec(left) < p:
        ls = f"({ls})"
    # Operando derecho de igual precedencia siempre entre paréntesis: el árbol se preserva.
    if _prec(right) <= p:
        rs = f"({rs})"
    return f"{ls} {op} {rs}"


def _evaluate(node: tuple, context: EvaluationContext) -> float:
    kind = node[0]
    if kind == "num":
        return node[1]
    if kind == "sym":
        return float(context.get_symbol_value(node[1]))
    if kind == "neg":
        return -_evaluate(node[1], context)
    if kind == "call":
        args = [_evaluate(a, context) for a in node[2]]
        if node[1] == "min":
            return min(args)
        if node[1] == "max":
            return max(args)
        return abs(args[0])
    op = node[1]
    a = _evaluate(node[2], context)
    b = _evaluate(node[3], context)
    if op == "+":
        return a + b
    if op == "-":
        return a - b
    if op == "*":
        return a * b
    if b == 0:
        raise ExpressionEvaluationError(f"División por cero en {_render(node)!r}")
    return a / b


def _collect_symbols(node: tuple, out: list[str]) -> None:
    kind = node[0]
    if kind == "sym":
        if node[1] not in out:
            out.append(node[1])
    elif kind == "neg":
        _collect_symbols(node[1], out)
    elif kind == "bin":
        _collect_symbols(node[2], out)
        _collect_symbols(node[3], out)
    elif kind == "call":
        for a in node[2]:
            _collect_symbols(a, out)


# ----------------------------
# RelativeValue
# ----------------------------

@dataclass(frozen=True)
class RelativeValue:
    """Escalar simbólico: constante, referencia a un símbolo, o expresión.

    La igualdad (y el hash) es por string canónico; es además el formato persistido.
    """

    canonical: str
    _node: tuple = field(compare=False, repr=False)

    @classmethod
    def constant(cls, value: float) -> "RelativeValue":
        try:
            f = float(value)
        except (TypeError, ValueError) as e:
            raise RdrValidationError(f"Constante inválida: {value!r}") from e
        if not math.isfinite(f):
            raise RdrValidationError(f"Constante no finita: {value!r}")
        node = ("num", f)
        return cls(_render(node), node)

    @classmethod
    def parse(cls, text: str) -> "RelativeValue":
        node = _parse_node(text)
        return cls(_render(node), node)

    @classmethod
    def coerce(cls, value: "RelativeValueLike") -> "RelativeValue":
        if isinstance(value, RelativeValue):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return cls.constant(value)
        if isinstance(value, str):
            return cls.parse(value)
        raise RdrValidationError(f"No se puede convertir a coordenada: {value!r}")

    @property
    def kind(self) -> str:
        k = self._node[0]
        if k == "num":
            return CONSTANT
        if k == "sym":
            return REFERENCE
        return EXPRESSION

    def is_dynamic(self) -> bool:
        return self._node[0] != "num"

    def resolve(self, context: Optional[EvaluationContext] = None) -> float:
        """Evalúa la coordenada. Las constantes no consultan el contexto.

        Raises:
            UnresolvedSymbolError: el contexto no conoce un símbolo (es un LookupError).
            ExpressionEvaluationError: división por cero.
        """
        if self._node[0] == "num":
            return self._node[1]
        return _evaluate(self._node, context if context is not None else EMPTY_CONTEXT)

    def referenced_symbols(self) -> tuple[str, ...]:
        out: list[str] = []
        _collect_symbols(self._node, out)
        return tuple(out)

    def references_symbol(self, symbol: str) -> bool:
        return symbol in self.referenced_symbols()

    def to_canonical_string(self) -> str:
        return self.canonical

    def __str__(self) -> str:
        return self.canonical


RelativeValueLike = Union[RelativeValue, float, int, str]
