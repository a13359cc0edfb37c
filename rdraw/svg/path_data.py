# File: rdraw/svg/path_data.py
# Project: RelativeDraw (RDR)
# Version: 0.2.0
# Status: stable
# Date: 2026-10-19
# Purpose: Puente SVG <-> RelativePath usando svgelements (atributo d).
# Notes:
#   - Import: todo queda constante (no hay símbolos en un d de SVG).
#   - Export: conserva el tipo exacto de cada comando (quad y close incluidos), a diferencia de QPainterPath.
from __future__ import annotations

from typing import Optional

from svgelements import Arc, Close, CubicBezier, Line, Move, QuadraticBezier
from svgelements import Path as SvgPath

from rdraw.core.expression import EvaluationContext
from rdraw.core.path import (
    RelativePath,
    SegmentType,
    close_sub_path,
    cubic_to,
    line_to,
    quadratic_to,
    start_sub_path,
)
from rdraw.core.relative import RelativePoint
from rdraw.utils.errors import RdrValidationError

_ARC_SAMPLES = 12


def _rp(pt) -> RelativePoint:
    return RelativePoint.of(float(pt.x), float(pt.y))


def relative_path_from_svg_d(d: str, *, non_zero_winding: bool = True) -> RelativePath:
    """Parsea un atributo d de SVG a un RelativePath constante.

    Los arcos se aproximan con cúbicas (si la versión de svgelements lo soporta);
    si queda alguno, se samplea como polilínea.
    """
    try:
        sp = SvgPath(d)
    except Exception as e:  # svgelements levanta varios tipos según el token
        raise RdrValidationError(f"Path SVG inválido: {d!r}") from e
    if hasattr(sp, "approximate_arcs_with_cubics"):
        sp.approximate_arcs_with_cubics()

    out = RelativePath(non_zero_winding=non_zero_winding)
    started = False
    for seg in sp:
        if isinstance(seg, Move):
            out.append(start_sub_path(_rp(seg.end)))
            started = True
            continue

        # si no hubo move previo, anclamos en el start
        if not started and getattr(seg, "start", None) is not None:
            out.append(start_sub_path(_rp(seg.start)))
            started = True

        # Close antes que Line: en svgelements ambos son lineales.
        if isinstance(seg, Close):
            out.append(close_sub_path())
        elif isinstance(seg, Line):
            out.append(line_to(_rp(seg.end)))
        elif isinstance(seg, QuadraticBezier):
            out.append(quadratic_to(_rp(seg.control), _rp(seg.end)))
        elif isinstance(seg, CubicBezier):
            out.append(cubic_to(_rp(seg.control1), _rp(seg.control2), _rp(seg.end)))
        elif isinstance(seg, Arc):
            for i in range(1, _ARC_SAMPLES + 1):
                out.append(line_to(_rp(seg.point(i / _ARC_SAMPLES))))
        else:
            raise RdrValidationError(f"Segmento SVG no soportado: {type(seg).__name__}")
    return out


def relative_path_to_svg(path: RelativePath, context: Optional[EvaluationContext] = None) -> SvgPath:
    """Resuelve el path y lo devuelve como svgelements.Path (mismos comandos, mismo orden)."""
    sp = SvgPath()
    for seg in path:
        pts = [p.resolve(context) for p in seg.points]
        xy = [(p.x(), p.y()) for p in pts]
        if seg.type is SegmentType.START:
            sp.move(xy[0])
        elif seg.type is SegmentType.LINE:
            sp.line(xy[0])
        elif seg.type is SegmentType.QUAD:
            sp.quad(xy[0], xy[1])
        elif seg.type is SegmentType.CUBIC:
            sp.cubic(xy[0], xy[1], xy[2])
        elif seg.type is SegmentType.CLOSE:
            sp.closed()
    return sp
