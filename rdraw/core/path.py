# File: rdraw/core/path.py
# Project: RelativeDraw (RDR)
# Version: 0.2.0
# Status: stable
# Date: 2026-10-19
# Purpose: Path vectorial con puntos de control relativos -> QPainterPath.
# Notes:
#   - Segmentos = variante cerrada (tag + tabla fija de cantidad de puntos), valores inmutables.
#   - El flag "dinámico" se memoiza al agregar y nunca baja (ver DESIGN.md, igualdad estricta).
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Iterator, Optional

from PySide6.QtCore import Qt
from PySide6.QtGui import QPainterPath

from rdraw.core.expression import EvaluationContext
from rdraw.core.relative import RelativePoint
from rdraw.core.version import DEFAULT_POINT
from rdraw.utils.errors import RdrSchemaError, RdrValidationError

log = logging.getLogger(__name__)


class SegmentType(str, Enum):
    """Tag del segmento. El valor es el nombre persistido."""

    START = "Move"
    LINE = "Line"
    QUAD = "Quad"
    CUBIC = "Cubic"
    CLOSE = "Close"


POINT_COUNT = {
    SegmentType.START: 1,
    SegmentType.LINE: 1,
    SegmentType.QUAD: 2,
    SegmentType.CUBIC: 3,
    SegmentType.CLOSE: 0,
}

_POINT_FIELDS = ("point1", "point2", "point3")


@dataclass(frozen=True)
class PathSegment:
    type: SegmentType
    points: tuple[RelativePoint, ...] = ()

    def __post_init__(self) -> None:
        # Normaliza: el tag siempre es SegmentType y los puntos una tupla de RelativePoint.
        try:
            seg_type = SegmentType(self.type)
        except (TypeError, ValueError):
            raise RdrValidationError(f"Tipo de segmento inválido: {self.type!r}") from None
        object.__setattr__(self, "type", seg_type)
        object.__setattr__(self, "points", tuple(_as_point(p) for p in self.points))
        expected = POINT_COUNT[seg_type]
        if len(self.points) != expected:
            raise RdrValidationError(
                f"Segmento {self.type.value}: se esperan {expected} puntos, llegaron {len(self.points)}"
            )

    def is_dynamic(self) -> bool:
        return any(p.is_dynamic() for p in self.points)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"type": self.type.value}
        for name, p in zip(_POINT_FIELDS, self.points):
            d[name] = p.to_string()
        return d

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "PathSegment":
        if not isinstance(d, dict):
            raise RdrSchemaError("Segmento inválido: se esperaba dict")
        raw_type = d.get("type")
        try:
            seg_type = SegmentType(raw_type)
        except ValueError:
            raise RdrSchemaError(f"Segmento con type inválido: {raw_type!r}") from None
        points = tuple(
            _point_or_default(d.get(name), f"{seg_type.value}.{name}")
            for name in _POINT_FIELDS[: POINT_COUNT[seg_type]]
        )
        return PathSegment(seg_type, points)


def _as_point(p: Any) -> RelativePoint:
    if isinstance(p, RelativePoint):
        return p
    if isinstance(p, str):
        return RelativePoint.parse(p)
    try:
        x, y = p
    except (TypeError, ValueError):
        raise RdrValidationError(f"Punto inválido: {p!r}") from None
    return RelativePoint.of(x, y)


def _point_or_default(raw: Any, field: str) -> RelativePoint:
    """Un punto persistido ilegible no rompe la carga: cae al default documentado."""
    if isinstance(raw, str):
        try:
            return RelativePoint.parse(raw)
        except RdrValidationError as e:
            log.warning("Campo %s ilegible (%s); se usa %r", field, e, DEFAULT_POINT)
    else:
        log.warning("Campo %s ausente o no-string (%r); se usa %r", field, raw, DEFAULT_POINT)
    return RelativePoint.parse(DEFAULT_POINT)


# ----------------------------
# Constructores de segmentos
# ----------------------------

def start_sub_path(pos: RelativePoint) -> PathSegment:
    return PathSegment(SegmentType.START, (pos,))


def line_to(end: RelativePoint) -> PathSegment:
    return PathSegment(SegmentType.LINE, (end,))


def quadratic_to(control: RelativePoint, end: RelativePoint) -> PathSegment:
    return PathSegment(SegmentType.QUAD, (control, end))


def cubic_to(control1: RelativePoint, control2: RelativePoint, end: RelativePoint) -> PathSegment:
    return PathSegment(SegmentType.CUBIC, (control1, control2, end))


def close_sub_path() -> PathSegment:
    return PathSegment(SegmentType.CLOSE)


# ----------------------------
# RelativePath
# ----------------------------

class RelativePath:
    """Secuencia ordenada de segmentos + regla de relleno + flag dinámico memoizado."""

    def __init__(self, segments: Iterable[PathSegment] = (), *, non_zero_winding: bool = True) -> None:
        self._segments: list[PathSegment] = []
        self.non_zero_winding = bool(non_zero_winding)
        self._contains_dynamic_points = False
        for seg in segments:
            self.append(seg)

    @classmethod
    def from_qpath(cls, path: QPainterPath) -> "RelativePath":
        """Copia un path concreto: todo constante, 1 segmento por comando primitivo.

        QPainterPath solo tiene move/line/curve (los quad se guardan como cúbicas
        y el close como un line al inicio), así que eso es lo que sale.
        """
        out = cls(non_zero_winding=path.fillRule() == Qt.FillRule.WindingFill)
        n = path.elementCount()
        i = 0
        while i < n:
            e = path.elementAt(i)
            if e.isMoveTo():
                out.append(start_sub_path(RelativePoint.of(e.x, e.y)))
                i += 1
            elif e.isLineTo():
                out.append(line_to(RelativePoint.of(e.x, e.y)))
                i += 1
            elif e.isCurveTo() and i + 2 < n:
                c2 = path.elementAt(i + 1)
                end = path.elementAt(i + 2)
                out.append(cubic_to(
                    RelativePoint.of(e.x, e.y),
                    RelativePoint.of(c2.x, c2.y),
                    RelativePoint.of(end.x, end.y),
                ))
                i += 3
            else:
                raise RdrValidationError(f"QPainterPath con elemento inesperado en {i}: {e.type}")
        return out

    # ---------------------------- mutación ----------------------------

    def append(self, segment: PathSegment) -> None:
        self._segments.append(segment)
        self._contains_dynamic_points = self._contains_dynamic_points or segment.is_dynamic()

    def replace_segment(self, index: int, segment: PathSegment) -> None:
        """Reemplaza un segmento entero. El flag dinámico solo puede subir."""
        self._segments[index] = segment
        self._contains_dynamic_points = self._contains_dynamic_points or segment.is_dynamic()

    # ---------------------------- consulta ----------------------------

    @property
    def segments(self) -> tuple[PathSegment, ...]:
        return tuple(self._segments)

    def __len__(self) -> int:
        return len(self._segments)

    def __iter__(self) -> Iterator[PathSegment]:
        return iter(self._segments)

    def __getitem__(self, index: int) -> PathSegment:
        return self._segments[index]

    def contains_any_dynamic_points(self) -> bool:
        return self._contains_dynamic_points

    def materialize(self, context: Optional[EvaluationContext] = None) -> QPainterPath:
        """Resuelve cada punto contra `context` y arma el QPainterPath en orden.

        Un símbolo no resuelto se propaga (UnresolvedSymbolError): decide el llamador.
        """
        out = QPainterPath()
        out.setFillRule(Qt.FillRule.WindingFill if self.non_zero_winding else Qt.FillRule.OddEvenFill)
        for seg in self._segments:
            t = seg.type
            if t is SegmentType.START:
                out.moveTo(seg.points[0].resolve(context))
            elif t is SegmentType.LINE:
                out.lineTo(seg.points[0].resolve(context))
            elif t is SegmentType.QUAD:
                out.quadTo(seg.points[0].resolve(context), seg.points[1].resolve(context))
            elif t is SegmentType.CUBIC:
                out.cubicTo(
                    seg.points[0].resolve(context),
                    seg.points[1].resolve(context),
                    seg.points[2].resolve(context),
                )
            elif t is SegmentType.CLOSE:
                out.closeSubpath()
        return out

    def clone(self) -> "RelativePath":
        out = RelativePath(non_zero_winding=self.non_zero_winding)
        # Los segmentos son inmutables: copiar la lista alcanza.
        out._segments = list(self._segments)
        out._contains_dynamic_points = self._contains_dynamic_points
        return out

    def swap_with(self, other: "RelativePath") -> None:
        self._segments, other._segments = other._segments, self._segments
        self.non_zero_winding, other.non_zero_winding = other.non_zero_winding, self.non_zero_winding
        self._contains_dynamic_points, other._contains_dynamic_points = (
            other._contains_dynamic_points,
            self._contains_dynamic_points,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RelativePath):
            return NotImplemented
        # Igualdad estricta: compara el flag dinámico memoizado, no uno recalculado.
        if (
            len(self._segments) != len(other._segments)
            or self.non_zero_winding != other.non_zero_winding
            or self._contains_dynamic_points != other._contains_dynamic_points
        ):
            return False
        for a, b in zip(self._segments, other._segments):
            if a.type is not b.type:
                return False
            assert len(a.points) == len(b.points)
            if a.points != b.points:
                return False
        return True

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"RelativePath({len(self._segments)} segmentos, non_zero_winding={self.non_zero_winding}, "
            f"dynamic={self._contains_dynamic_points})"
        )

    # ---------------------------- persistencia ----------------------------

    def to_list(self) -> list[dict[str, Any]]:
        return [seg.to_dict() for seg in self._segments]

    @staticmethod
    def from_list(items: Any, *, non_zero_winding: bool = True) -> "RelativePath":
        if not isinstance(items, list):
            raise RdrSchemaError("path inválido: se espera lista de segmentos")
        return RelativePath((PathSegment.from_dict(x) for x in items), non_zero_winding=non_zero_winding)
