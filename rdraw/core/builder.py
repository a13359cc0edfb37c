# File: rdraw/core/builder.py
# Project: RelativeDraw (RDR)
# Version: 0.2.0
# Status: stable
# Date: 2026-10-19
# Purpose: Reconstrucción del árbol de drawables desde dicts persistidos (Group / Path).
# Notes:
#   - Campos de coordenadas ilegibles NO rompen la carga: default documentado + warning.
#   - Un `type` desconocido sí es error de esquema.
from __future__ import annotations

import logging
from typing import Any, Optional

from rdraw.core.composite import CompositeNode
from rdraw.core.drawable import Drawable, DrawablePath
from rdraw.core.markers import MarkerList
from rdraw.core.path import RelativePath
from rdraw.core.relative import RelativeParallelogram, RelativePoint
from rdraw.core.settings import EngineSettings
from rdraw.core.version import DEFAULT_BOTTOM_LEFT, DEFAULT_TOP_LEFT, DEFAULT_TOP_RIGHT
from rdraw.utils.errors import RdrSchemaError, RdrValidationError

log = logging.getLogger(__name__)


def drawable_from_dict(d: Any, *, settings: Optional[EngineSettings] = None) -> Drawable:
    if not isinstance(d, dict):
        raise RdrSchemaError("Nodo inválido: se esperaba dict")
    node_type = d.get("type")
    if node_type == CompositeNode.type_name:
        return composite_from_dict(d, settings=settings)
    if node_type == DrawablePath.type_name:
        return path_from_dict(d)
    raise RdrSchemaError(f"Nodo {d.get('id')!r}: type inválido: {node_type!r}")


def path_from_dict(d: dict[str, Any]) -> DrawablePath:
    node_id = str(d.get("id") or "")
    path = RelativePath.from_list(d.get("path") or [], non_zero_winding=_winding(d, node_id))
    return DrawablePath(path, node_id=node_id)


def composite_from_dict(d: dict[str, Any], *, settings: Optional[EngineSettings] = None) -> CompositeNode:
    node = CompositeNode(node_id=str(d.get("id") or ""), settings=settings)
    refresh_composite_from_dict(node, d)
    return node


def bounding_box_from_dict(d: dict[str, Any]) -> RelativeParallelogram:
    return RelativeParallelogram(
        _corner(d, "topLeft", DEFAULT_TOP_LEFT),
        _corner(d, "topRight", DEFAULT_TOP_RIGHT),
        _corner(d, "bottomLeft", DEFAULT_BOTTOM_LEFT),
    )


def refresh_composite_from_dict(node: CompositeNode, d: dict[str, Any]) -> None:
    """Aplica un dict persistido sobre un grupo existente (bounds, markers, hijos)."""
    node._bounding_box = bounding_box_from_dict(d)

    # Markers antes que los hijos: los paths hijos se resuelven contra ellos.
    # Sin lista persistida se conserva el content area por defecto del nodo.
    if d.get("markersX") is not None:
        node.markers_x.apply_from(MarkerList.from_list(d.get("markersX")))
    if d.get("markersY") is not None:
        node.markers_y.apply_from(MarkerList.from_list(d.get("markersY")))
    try:
        node.get_content_area()
    except RdrValidationError as e:
        raise RdrSchemaError(str(e)) from e

    for c in node.children:
        node.remove_child(c)

    children_raw = d.get("drawables") or []
    if not isinstance(children_raw, list):
        raise RdrSchemaError(f"Grupo {node.id!r}: drawables inválido: se espera lista")
    _uniq_ids(children_raw)
    for x in children_raw:
        node.add_child(drawable_from_dict(x, settings=node.settings))

    node.refresh_transform()


def _winding(d: dict[str, Any], node_id: str) -> bool:
    raw = d.get("nonZeroWinding", True)
    if isinstance(raw, bool):
        return raw
    log.warning("Path %s: nonZeroWinding no-bool (%r); se usa True", node_id, raw)
    return True


def _corner(d: dict[str, Any], key: str, default: str) -> RelativePoint:
    raw = d.get(key, default)
    if isinstance(raw, str):
        try:
            return RelativePoint.parse(raw)
        except RdrValidationError as e:
            log.warning("Campo %s ilegible (%s); se usa %r", key, e, default)
    else:
        log.warning("Campo %s no-string (%r); se usa %r", key, raw, default)
    return RelativePoint.parse(default)


def _uniq_ids(items: list[Any]) -> None:
    seen: set[str] = set()
    for x in items:
        oid = str(x.get("id") or "") if isinstance(x, dict) else ""
        if not oid:
            continue
        if oid in seen:
            raise RdrSchemaError(f"IDs duplicados en drawables[]: {oid!r}")
        seen.add(oid)
