# File: rdraw/core/relative.py
# Project: RelativeDraw (RDR)
# Version: 0.2.0
# Status: stable
# Date: 2026-10-19
# Purpose: Punto, rectángulo y paralelogramo con coordenadas relativas.
# Notes: Resuelven a tipos Qt (QPointF/QRectF). Sin validación de "cordura" geométrica.
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from PySide6.QtCore import QPointF, QRectF

from rdraw.core.expression import EvaluationContext, RelativeValue, RelativeValueLike
from rdraw.utils.errors import ExpressionSyntaxError


def split_top_level(text: str) -> list[str]:
    """Separa por comas que no están dentro de paréntesis ('min(a, b), 3' -> 2 partes)."""
    parts: list[str] = []
    depth = 0
    cur: list[str] = []
    for ch in str(text):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append("".join(cur).strip())
            cur = []
            continue
        cur.append(ch)
    parts.append("".join(cur).strip())
    return parts


def _parse_parts(text: str, n: int, what: str) -> list[RelativeValue]:
    parts = split_top_level(text)
    if len(parts) != n:
        raise ExpressionSyntaxError(f"{what} inválido: {text!r} (se esperan {n} componentes)")
    return [RelativeValue.parse(p) for p in parts]


@dataclass(frozen=True)
class RelativePoint:
    x: RelativeValue
    y: RelativeValue

    @classmethod
    def of(cls, x: RelativeValueLike = 0.0, y: RelativeValueLike = 0.0) -> "RelativePoint":
        return cls(RelativeValue.coerce(x), RelativeValue.coerce(y))

    @classmethod
    def from_qpointf(cls, p: QPointF) -> "RelativePoint":
        return cls(RelativeValue.constant(p.x()), RelativeValue.constant(p.y()))

    @classmethod
    def parse(cls, text: str) -> "RelativePoint":
        """'10, width / 2' -> RelativePoint."""
        x, y = _parse_parts(text, 2, "Punto")
        return cls(x, y)

    def resolve(self, context: Optional[EvaluationContext] = None) -> QPointF:
        return QPointF(self.x.resolve(context), self.y.resolve(context))

    def is_dynamic(self) -> bool:
        return self.x.is_dynamic() or self.y.is_dynamic()

    def to_string(self) -> str:
        return f"{self.x}, {self.y}"

    def __str__(self) -> str:
        return self.to_string()


@dataclass(frozen=True)
class RelativeRectangle:
    left: RelativeValue
    right: RelativeValue
    top: RelativeValue
    bottom: RelativeValue

    @classmethod
    def of(
        cls,
        left: RelativeValueLike,
        right: RelativeValueLike,
        top: RelativeValueLike,
        bottom: RelativeValueLike,
    ) -> "RelativeRectangle":
        return cls(
            RelativeValue.coerce(left),
            RelativeValue.coerce(right),
            RelativeValue.coerce(top),
            RelativeValue.coerce(bottom),
        )

    @classmethod
    def from_qrectf(cls, r: QRectF) -> "RelativeRectangle":
        return cls.of(r.left(), r.right(), r.top(), r.bottom())

    @classmethod
    def parse(cls, text: str) -> "RelativeRectangle":
        """Formato persistido: 'left, top, right, bottom'."""
        left, top, right, bottom = _parse_parts(text, 4, "Rectángulo")
        return cls(left, right, top, bottom)

    def resolve(self, context: Optional[EvaluationContext] = None) -> QRectF:
        x = self.left.resolve(context)
        y = self.top.resolve(context)
        return QRectF(x, y, self.right.resolve(context) - x, self.bottom.resolve(context) - y)

    def is_dynamic(self) -> bool:
        return any(v.is_dynamic() for v in (self.left, self.right, self.top, self.bottom))

    def to_string(self) -> str:
        return f"{self.left}, {self.top}, {self.right}, {self.bottom}"

    def __str__(self) -> str:
        return self.to_string()


@dataclass(frozen=True)
class RelativeParallelogram:
    """Región afín definida por 3 esquinas; bottom_right se deriva, nunca se guarda."""

    top_left: RelativePoint
    top_right: RelativePoint
    bottom_left: RelativePoint

    @classmethod
    def from_points(cls, top_left: QPointF, top_right: QPointF, bottom_left: QPointF) -> "RelativeParallelogram":
        return cls(
            RelativePoint.from_qpointf(top_left),
            RelativePoint.from_qpointf(top_right),
            RelativePoint.from_qpointf(bottom_left),
        )

    @classmethod
    def from_rect(cls, r: QRectF) -> "RelativeParallelogram":
        return cls.from_points(r.topLeft(), r.topRight(), r.bottomLeft())

    def resolve_three_points(self, context: Optional[EvaluationContext] = None) -> tuple[QPointF, QPointF, QPointF]:
        return (
            self.top_left.resolve(context),
            self.top_right.resolve(context),
            self.bottom_left.resolve(context),
        )

    def resolve_four_corners(self, context: Optional[EvaluationContext] = None) -> tuple[QPointF, QPointF, QPointF, QPointF]:
        tl, tr, bl = self.resolve_three_points(context)
        return tl, tr, bl, tr + bl - tl

    def bottom_right(self, context: Optional[EvaluationContext] = None) -> QPointF:
        return self.resolve_four_corners(context)[3]

    def get_bounding_box(self, context: Optional[EvaluationContext] = None) -> QRectF:
        corners = self.resolve_four_corners(context)
        xs = [p.x() for p in corners]
        ys = [p.y() for p in corners]
        return QRectF(min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys))

    def is_dynamic(self) -> bool:
        return self.top_left.is_dynamic() or self.top_right.is_dynamic() or self.bottom_left.is_dynamic()

    def to_strings(self) -> tuple[str, str, str]:
        return (self.top_left.to_string(), self.top_right.to_string(), self.bottom_left.to_string())
