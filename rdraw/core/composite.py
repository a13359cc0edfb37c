# File: rdraw/core/composite.py
# Project: RelativeDraw (RDR)
# Version: 0.2.0
# Status: stable
# Date: 2026-10-19
# Purpose: Nodo compuesto: content area (markers) -> bounding parallelogram (transform afín) + auto-fit a hijos.
# Notes:
#   - El content area y el bounding box se resuelven contra el PADRE; los hijos se resuelven contra este nodo.
#   - Auto-fit = compensar (mover hijos por -delta) y después redimensionar; protegido contra reentrada.
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from PySide6.QtCore import QPointF, QRectF
from PySide6.QtGui import QPainterPath, QTransform

from rdraw.core.drawable import Drawable
from rdraw.core.markers import MarkerList
from rdraw.core.relative import RelativeParallelogram, RelativePoint, RelativeRectangle
from rdraw.core.settings import EngineSettings
from rdraw.core.version import DEFAULT_BOTTOM_LEFT, DEFAULT_TOP_LEFT, DEFAULT_TOP_RIGHT
from rdraw.geom.affine import fit_or_identity
from rdraw.utils.errors import (
    CircularReferenceError,
    ExpressionEvaluationError,
    RdrValidationError,
    UnresolvedSymbolError,
)

log = logging.getLogger(__name__)

CONTENT_LEFT = "left"
CONTENT_RIGHT = "right"
CONTENT_TOP = "top"
CONTENT_BOTTOM = "bottom"


class CompositeNode(Drawable):
    """Grupo de drawables con su propio sistema de coordenadas lógico.

    Es a la vez un EvaluationContext: los símbolos son sus markers (eje X primero, después Y).
    """

    type_name = "Group"
    id_prefix = "group"

    def __init__(
        self,
        node_id: str = "",
        *,
        fit_to_children: bool = True,
        settings: Optional[EngineSettings] = None,
    ) -> None:
        super().__init__(node_id)
        self.settings = settings or EngineSettings.from_env()
        self.fit_to_children = bool(fit_to_children)
        self.markers_x = MarkerList()
        self.markers_y = MarkerList()
        self._children: list[Drawable] = []
        self._bounding_box = RelativeParallelogram(
            RelativePoint.parse(DEFAULT_TOP_LEFT),
            RelativePoint.parse(DEFAULT_TOP_RIGHT),
            RelativePoint.parse(DEFAULT_BOTTOM_LEFT),
        )
        self._update_bounds_reentrant = False
        self.set_content_area(RelativeRectangle.of(0.0, 100.0, 0.0, 100.0))

    # ---------------------------- contexto ----------------------------

    def get_symbol_value(self, symbol: str) -> float:
        """Valor de un marker; su posición se evalúa en este mismo contexto.

        Solo lee: la cadena de markers en curso viaja en un _MarkerScope por llamada.
        """
        return self._marker_value(symbol, ())

    def _marker_value(self, symbol: str, chain: tuple[str, ...]) -> float:
        if "." in symbol:
            # Un nodo solo expone markers, no miembros.
            raise UnresolvedSymbolError(symbol)
        marker = self.markers_x.get_marker(symbol) or self.markers_y.get_marker(symbol)
        if marker is None:
            raise UnresolvedSymbolError(symbol)
        if symbol in chain:
            raise CircularReferenceError(
                symbol, "Referencia circular entre markers: " + " -> ".join(chain + (symbol,))
            )
        if len(chain) >= self.settings.max_symbol_depth:
            raise UnresolvedSymbolError(
                symbol, f"Cadena de markers demasiado profunda (> {self.settings.max_symbol_depth}) en {symbol!r}"
            )
        return marker.position.resolve(_MarkerScope(self, chain + (symbol,)))

    # ---------------------------- markers / content area ----------------------------

    def get_markers(self, x_axis: bool) -> MarkerList:
        return self.markers_x if x_axis else self.markers_y

    def get_content_area(self) -> RelativeRectangle:
        mx0, mx1 = self.markers_x.get_marker(0), self.markers_x.get_marker(1)
        my0, my1 = self.markers_y.get_marker(0), self.markers_y.get_marker(1)
        if (
            mx0 is None or mx1 is None or my0 is None or my1 is None
            or (mx0.name, mx1.name) != (CONTENT_LEFT, CONTENT_RIGHT)
            or (my0.name, my1.name) != (CONTENT_TOP, CONTENT_BOTTOM)
        ):
            raise RdrValidationError(
                f"Grupo {self.id}: los markers no empiezan con left/right y top/bottom "
                f"(x={self.markers_x.names}, y={self.markers_y.names})"
            )
        return RelativeRectangle(mx0.position, mx1.position, my0.position, my1.position)

    def set_content_area(self, area: RelativeRectangle) -> None:
        self.markers_x.set_marker(CONTENT_LEFT, area.left)
        self.markers_x.set_marker(CONTENT_RIGHT, area.right)
        self.markers_y.set_marker(CONTENT_TOP, area.top)
        self.markers_y.set_marker(CONTENT_BOTTOM, area.bottom)
        self.markers_changed()

    def set_marker(self, x_axis: bool, name: str, position: Any) -> None:
        self.get_markers(x_axis).set_marker(name, position)
        self.markers_changed()

    def markers_changed(self) -> None:
        """Los markers cambiaron: hijos dinámicos re-resuelven y se recalcula el transform."""
        for child in list(self._children):
            child.parent_markers_changed()
        self.refresh_transform()

    def parent_markers_changed(self) -> None:
        # Bounding box y content area se resuelven contra el padre.
        self.refresh_transform()

    # ---------------------------- bounding box ----------------------------

    @property
    def bounding_box(self) -> RelativeParallelogram:
        return self._bounding_box

    def set_bounding_box(self, box: RelativeParallelogram) -> None:
        self._bounding_box = box
        self.refresh_transform()

    def reset_bounding_box_to_content_area(self) -> None:
        content = self.get_content_area()
        self.set_bounding_box(RelativeParallelogram(
            RelativePoint(content.left, content.top),
            RelativePoint(content.right, content.top),
            RelativePoint(content.left, content.bottom),
        ))

    def reset_content_and_bounding_box_to_fit_children(self) -> None:
        area = self.get_drawable_bounds()
        self.set_content_area(RelativeRectangle.from_qrectf(area))
        self.reset_bounding_box_to_content_area()

    # ---------------------------- transform ----------------------------

    def refresh_transform(self) -> None:
        """Ajuste afín content(C0,C1,C2) -> bounding box(P0,P1,P2); identidad si es degenerado."""
        ctx = self.context
        try:
            target = self._bounding_box.resolve_three_points(ctx)
            content = self.get_content_area().resolve(ctx)
        except ExpressionEvaluationError as e:
            log.warning("Grupo %s: no se pudo resolver bounds/content (%s); se usa identidad", self.id, e)
            self.set_transform(QTransform())
            return
        source = (content.topLeft(), content.topRight(), content.bottomLeft())
        self.set_transform(fit_or_identity(source, target, eps=self.settings.affine_epsilon))

    # ---------------------------- hijos ----------------------------

    @property
    def children(self) -> tuple[Drawable, ...]:
        return tuple(self._children)

    def add_child(self, child: Drawable, index: int = -1) -> None:
        old_parent = child.parent
        if old_parent is not None:
            old_parent.remove_child(child)
        if index < 0 or index >= len(self._children):
            self._children.append(child)
        else:
            self._children.insert(index, child)
        child._set_parent(self)
        self.children_changed()

    def remove_child(self, child: Drawable) -> None:
        self._children.remove(child)
        child._set_parent(None)
        self.children_changed()

    def parent_hierarchy_changed(self) -> None:
        parent = self.parent
        if parent is not None:
            self.origin_relative_to_component = parent.origin_relative_to_component - self.position()
        self.refresh_transform()

    def children_changed(self) -> None:
        if self.fit_to_children:
            self._child_layout_changed()

    def child_bounds_changed(self, child: Drawable) -> None:
        if self.fit_to_children:
            self._child_layout_changed()

    def _child_layout_changed(self) -> None:
        self.update_bounds_to_fit_children()
        self.refresh_transform()

    @contextmanager
    def _updating_bounds(self) -> Iterator[None]:
        self._update_bounds_reentrant = True
        try:
            yield
        finally:
            self._update_bounds_reentrant = False

    def update_bounds_to_fit_children(self) -> None:
        """Ajusta bounds() a la unión de los hijos sin que los hijos "salten".

        Si la unión no empieza en el origen local, primero se corre el origen y cada hijo
        por -delta (posición absoluta intacta) y recién después se redimensiona.
        Reentrar en el mismo nodo mientras corre es un no-op.
        """
        if self._update_bounds_reentrant:
            log.debug("Grupo %s: update_bounds_to_fit_children reentrante, se ignora", self.id)
            return

        with self._updating_bounds():
            child_area = QRectF()
            for c in self._children:
                child_area = child_area.united(c.bounds())

            delta = child_area.topLeft()
            child_area.translate(self.position())

            if child_area == self.bounds():
                return

            if not delta.isNull():
                self.origin_relative_to_component = self.origin_relative_to_component - delta
                for c in list(self._children):
                    c.set_bounds(c.bounds().translated(-delta))

            self.set_bounds(child_area)

    # ---------------------------- geometría ----------------------------

    def get_drawable_bounds(self) -> QRectF:
        """Unión de los bounds lógicos de los hijos, con el transform de cada hijo aplicado."""
        r = QRectF()
        for c in self._children:
            b = c.drawable_bounds()
            r = r.united(c.transform().mapRect(b) if c.is_transformed() else b)
        return r

    def drawable_bounds(self) -> QRectF:
        return self.get_drawable_bounds()

    def to_qpath(self) -> QPainterPath:
        out = QPainterPath()
        for c in self._children:
            p = c.to_qpath()
            out.addPath(c.transform().map(p) if c.is_transformed() else p)
        return out

    def map_to_parent(self, p: QPointF) -> QPointF:
        return self._transform.map(QPointF(p))

    # ---------------------------- copia / persistencia ----------------------------

    def create_copy(self) -> "CompositeNode":
        out = CompositeNode(fit_to_children=self.fit_to_children, settings=self.settings)
        out._bounding_box = self._bounding_box
        out.markers_x.apply_from(self.markers_x)
        out.markers_y.apply_from(self.markers_y)
        for c in self._children:
            out.add_child(c.create_copy())
        out.refresh_transform()
        return out

    def to_dict(self) -> dict[str, Any]:
        top_left, top_right, bottom_left = self._bounding_box.to_strings()
        return {
            "type": self.type_name,
            "id": self.id,
            "topLeft": top_left,
            "topRight": top_right,
            "bottomLeft": bottom_left,
            "drawables": [c.to_dict() for c in self._children],
            "markersX": self.markers_x.to_list(),
            "markersY": self.markers_y.to_list(),
        }


class _MarkerScope:
    """Contexto de una resolución en curso: el grupo más la cadena de markers ya abiertos."""

    __slots__ = ("node", "chain")

    def __init__(self, node: CompositeNode, chain: tuple[str, ...]) -> None:
        self.node = node
        self.chain = chain

    def get_symbol_value(self, symbol: str) -> float:
        return self.node._marker_value(symbol, self.chain)
