# File: rdraw/core/drawable.py
# Project: RelativeDraw (RDR)
# Version: 0.2.0
# Status: stable
# Date: 2026-10-19
# Purpose: Nodo base del árbol (bounds en el padre, transform, back-reference al padre) y DrawablePath.
# Notes:
#   - El padre NO es dueño por referencia inversa: se guarda como weakref.
#   - Un DrawablePath resuelve su RelativePath contra el contexto del padre (sus markers).
from __future__ import annotations

import logging
import uuid
import weakref
from typing import TYPE_CHECKING, Any, Optional

from PySide6.QtCore import QPointF, QRectF
from PySide6.QtGui import QPainterPath, QTransform

from rdraw.core.expression import EMPTY_CONTEXT, EvaluationContext
from rdraw.core.path import RelativePath
from rdraw.utils.errors import ExpressionEvaluationError

if TYPE_CHECKING:
    from rdraw.core.composite import CompositeNode

log = logging.getLogger(__name__)


def new_node_id(prefix: str = "node") -> str:
    """Genera un id corto y único (UUID truncado, sin estado global)."""
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


class Drawable:
    """Base común de los nodos dibujables.

    - `bounds()`: rect del nodo en coordenadas del padre (lo que mueve el auto-fit).
    - `transform()`: mapea coordenadas lógicas del nodo al espacio del padre.
    - `origin_relative_to_component`: offset del origen lógico dentro de `bounds()`.
    """

    type_name = ""
    id_prefix = "node"

    def __init__(self, node_id: str = "") -> None:
        self.id = str(node_id) if node_id else new_node_id(self.id_prefix)
        self._parent_ref: Optional[weakref.ReferenceType] = None
        self._bounds = QRectF()
        self._transform = QTransform()
        self.origin_relative_to_component = QPointF()

    # ---------------------------- jerarquía ----------------------------

    @property
    def parent(self) -> Optional["CompositeNode"]:
        return self._parent_ref() if self._parent_ref is not None else None

    def _set_parent(self, parent: Optional["CompositeNode"]) -> None:
        self._parent_ref = weakref.ref(parent) if parent is not None else None
        self.parent_hierarchy_changed()

    def parent_hierarchy_changed(self) -> None:
        pass

    def parent_markers_changed(self) -> None:
        """El padre cambió sus markers: los nodos con coordenadas dinámicas deben re-resolver."""

    @property
    def context(self) -> EvaluationContext:
        """Contexto de resolución de este nodo: su padre (o vacío en la raíz)."""
        parent = self.parent
        return parent if parent is not None else EMPTY_CONTEXT

    # ---------------------------- bounds ----------------------------

    def bounds(self) -> QRectF:
        return QRectF(self._bounds)

    def position(self) -> QPointF:
        return self._bounds.topLeft()

    def set_bounds(self, rect: QRectF) -> None:
        rect = QRectF(rect)
        if rect == self._bounds:
            return
        self._bounds = rect
        self.moved_or_resized()
        parent = self.parent
        if parent is not None:
            parent.child_bounds_changed(self)

    def moved_or_resized(self) -> None:
        pass

    def set_bounds_to_enclose(self, area: QRectF) -> None:
        """Ajusta bounds para contener `area` (coords lógicas) respetando el origen del padre."""
        parent = self.parent
        parent_origin = QPointF(parent.origin_relative_to_component) if parent is not None else QPointF()
        new_bounds = QRectF(area).translated(parent_origin)
        self.origin_relative_to_component = parent_origin - new_bounds.topLeft()
        self.set_bounds(new_bounds)

    # ---------------------------- transform ----------------------------

    def transform(self) -> QTransform:
        return QTransform(self._transform)

    def set_transform(self, t: QTransform) -> None:
        self._transform = QTransform(t)

    def is_transformed(self) -> bool:
        return not self._transform.isIdentity()

    # ---------------------------- contrato ----------------------------

    def drawable_bounds(self) -> QRectF:
        raise NotImplementedError

    def to_qpath(self) -> QPainterPath:
        """Geometria resuelta en coordenadas lógicas propias (sin aplicar transform())."""
        raise NotImplementedError

    def create_copy(self) -> "Drawable":
        raise NotImplementedError

    def to_dict(self) -> dict[str, Any]:
        raise NotImplementedError


class DrawablePath(Drawable):
    """Hoja con un RelativePath; el QPainterPath resuelto se cachea hasta el próximo refresh()."""

    type_name = "Path"
    id_prefix = "path"

    def __init__(self, path: Optional[RelativePath] = None, node_id: str = "") -> None:
        super().__init__(node_id)
        self._relative_path = path.clone() if path is not None else RelativePath()
        self._resolved = QPainterPath()
        self.refresh()

    @property
    def path(self) -> RelativePath:
        return self._relative_path.clone()

    def set_path(self, path: RelativePath) -> None:
        self._relative_path = path.clone()
        self.refresh()

    def refresh(self) -> None:
        """Re-resuelve el path contra el contexto actual y ajusta bounds."""
        try:
            self._resolved = self._relative_path.materialize(self.context)
        except ExpressionEvaluationError as e:
            # El nodo decide: path vacío, el resto del árbol sigue.
            log.warning("Path %s no se pudo resolver: %s", self.id, e)
            self._resolved = QPainterPath()
        self.set_bounds_to_enclose(self._resolved.boundingRect())

    def parent_hierarchy_changed(self) -> None:
        self.refresh()

    def parent_markers_changed(self) -> None:
        if self._relative_path.contains_any_dynamic_points():
            self.refresh()

    def drawable_bounds(self) -> QRectF:
        return self._resolved.boundingRect()

    def to_qpath(self) -> QPainterPath:
        return QPainterPath(self._resolved)

    def create_copy(self) -> "DrawablePath":
        return DrawablePath(self._relative_path)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type_name,
            "id": self.id,
            "nonZeroWinding": bool(self._relative_path.non_zero_winding),
            "path": self._relative_path.to_list(),
        }
