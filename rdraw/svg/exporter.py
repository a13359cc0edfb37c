# File: rdraw/svg/exporter.py
# Project: RelativeDraw (RDR)
# Version: 0.2.0
# Status: stable
# Date: 2026-10-19
# Purpose: Export SVG de la geometría resuelta (un <path> por DrawablePath, en coords del documento).
# Notes:
#   - Contornos-only (fill none). Cada path se arma con svgelements y se mapea por la cadena de transforms.
#   - Los comandos salen tal cual están en el RelativePath (Q y Z incluidos).
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator
from xml.etree.ElementTree import Element, SubElement, tostring

from PySide6.QtGui import QTransform
from svgelements import Matrix
from svgelements import Path as SvgPath

from rdraw.core.composite import CompositeNode
from rdraw.core.drawable import Drawable, DrawablePath
from rdraw.core.expression import format_number
from rdraw.svg.path_data import relative_path_to_svg
from rdraw.utils.errors import ExpressionEvaluationError, RdrIOError

log = logging.getLogger(__name__)


def qtransform_to_matrix(t: QTransform) -> Matrix:
    """QTransform -> svgelements.Matrix (misma convención: x' = a*x + c*y + e)."""
    return Matrix(t.m11(), t.m12(), t.m21(), t.m22(), t.dx(), t.dy())


def iter_resolved_paths(root: Drawable) -> Iterator[tuple[DrawablePath, SvgPath]]:
    """(nodo, svgelements.Path en coords del documento) para cada hoja, en orden.

    Una hoja que no se puede resolver se omite con un warning.
    """

    def walk(node: Drawable, acc: QTransform) -> Iterator[tuple[DrawablePath, SvgPath]]:
        if isinstance(node, DrawablePath):
            try:
                sp = relative_path_to_svg(node.path, node.context)
            except ExpressionEvaluationError as e:
                log.warning("Path %s no se exporta: %s", node.id, e)
                return
            if not acc.isIdentity():
                sp = sp * qtransform_to_matrix(acc)
                sp.reify()
            yield node, sp
        elif isinstance(node, CompositeNode):
            for child in node.children:
                yield from walk(child, child.transform() * acc)

    yield from walk(root, root.transform())


def _union_bbox(paths: list[SvgPath]) -> tuple[float, float, float, float]:
    boxes = [b for b in (sp.bbox() for sp in paths) if b is not None]
    if not boxes:
        return 0.0, 0.0, 0.0, 0.0
    x0 = min(b[0] for b in boxes)
    y0 = min(b[1] for b in boxes)
    x1 = max(b[2] for b in boxes)
    y1 = max(b[3] for b in boxes)
    return x0, y0, x1 - x0, y1 - y0


def export_svg(root: Drawable, out_path: str | Path) -> Path:
    p = Path(out_path)
    if p.suffix.lower() != ".svg":
        p = p.with_suffix(".svg")

    items = list(iter_resolved_paths(root))

    svg = Element(
        "svg",
        {
            "xmlns": "http://www.w3.org/2000/svg",
            "version": "1.1",
            "viewBox": " ".join(format_number(v) for v in _union_bbox([sp for _, sp in items])),
        },
    )
    group = SubElement(svg, "g", {"id": root.id, "fill": "none", "stroke": "black"})
    for node, sp in items:
        SubElement(group, "path", {
            "id": node.id,
            "d": sp.d(),
            "fill-rule": "nonzero" if node.path.non_zero_winding else "evenodd",
        })

    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(tostring(svg, encoding="unicode"), encoding="utf-8")
        return p
    except OSError as e:
        raise RdrIOError(f"No se pudo exportar SVG: {p}") from e
