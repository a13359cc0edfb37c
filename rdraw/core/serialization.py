# File: rdraw/core/serialization.py
# Project: RelativeDraw (RDR)
# Version: 0.2.0
# Status: stable
# Date: 2026-10-19
# Purpose: Carga/guardado de documentos .rdr (JSON legible).
# Notes: El transform cacheado nunca se persiste; se recalcula al cargar.
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

from rdraw.core.builder import drawable_from_dict
from rdraw.core.drawable import Drawable
from rdraw.core.settings import EngineSettings
from rdraw.core.version import SCHEMA_VERSION
from rdraw.utils.errors import RdrIOError, RdrSchemaError, RdrValidationError


def document_to_dict(root: Drawable) -> dict[str, Any]:
    return {"schema_version": SCHEMA_VERSION, "root": root.to_dict()}


def document_from_dict(data: Any, *, settings: Optional[EngineSettings] = None) -> Drawable:
    if not isinstance(data, dict):
        raise RdrSchemaError(".rdr inválido: raíz no es objeto JSON")
    try:
        schema_version = int(data.get("schema_version"))
    except (TypeError, ValueError) as e:
        raise RdrSchemaError(f"Campo schema_version inválido (int): {data.get('schema_version')!r}") from e
    if schema_version != SCHEMA_VERSION:
        raise RdrSchemaError(
            f".rdr incompatible: schema_version={schema_version} (se espera {SCHEMA_VERSION})"
        )
    if "root" not in data:
        raise RdrSchemaError(".rdr inválido: falta 'root'")
    return drawable_from_dict(data["root"], settings=settings)


def save_document(root: Drawable, path: str | Path) -> Path:
    """Guarda el árbol en JSON con extensión .rdr.

    Escribe de forma atómica (tmp + replace) para evitar archivos corruptos.
    """
    p = Path(path)
    if p.suffix.lower() != ".rdr":
        p = p.with_suffix(".rdr")

    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        txt = json.dumps(document_to_dict(root), ensure_ascii=False, indent=2)
        tmp = p.with_suffix(p.suffix + ".tmp")
        tmp.write_text(txt, encoding="utf-8")
        tmp.replace(p)
        return p
    except OSError as e:
        raise RdrIOError("No se pudo guardar .rdr: {}".format(p)) from e


def load_document(path: str | Path, *, settings: Optional[EngineSettings] = None) -> Drawable:
    p = Path(path)
    try:
        raw = p.read_text(encoding="utf-8")
    except OSError as e:
        raise RdrIOError("No se pudo leer .rdr: {}".format(p)) from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise RdrValidationError(
            ".rdr inválido (JSON malformado): {} (línea {}, columna {})".format(p, e.lineno, e.colno)
        ) from e

    return document_from_dict(data, settings=settings)
