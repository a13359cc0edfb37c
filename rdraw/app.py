# File: rdraw/app.py
# Project: RelativeDraw (RDR)
# Version: 0.2.0
# Status: stable
# Date: 2026-10-19
# Purpose: Entry-point de línea de comandos (inspect / export de documentos .rdr).
# Notes: Sin Qt widgets: solo QtCore/QtGui para la geometría.
from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence

from rdraw.core.composite import CompositeNode
from rdraw.core.drawable import Drawable
from rdraw.core.expression import format_number
from rdraw.core.serialization import load_document
from rdraw.core.settings import EngineSettings, apply_project_settings
from rdraw.core.version import APP_NAME, APP_VERSION
from rdraw.svg.exporter import export_svg
from rdraw.utils.errors import RdrError
from rdraw.utils.log import configure_from_settings, get_logger

log = get_logger(__name__)


def describe_tree(node: Drawable, depth: int = 0) -> list[str]:
    """Una línea por nodo: id, tipo, bounds en el padre y transform (m11 m12 m21 m22 dx dy)."""
    b = node.bounds()
    t = node.transform()
    nums = (t.m11(), t.m12(), t.m21(), t.m22(), t.dx(), t.dy())
    line = "{}{} [{}] bounds=({}, {}, {}, {}) transform=({})".format(
        "  " * depth,
        node.id,
        node.type_name,
        format_number(b.x()),
        format_number(b.y()),
        format_number(b.width()),
        format_number(b.height()),
        " ".join(format_number(v) for v in nums),
    )
    lines = [line]
    if isinstance(node, CompositeNode):
        for child in node.children:
            lines.extend(describe_tree(child, depth + 1))
    return lines


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="rdraw", description=f"{APP_NAME} v{APP_VERSION}")
    sub = ap.add_subparsers(dest="command", required=True)

    p_inspect = sub.add_parser("inspect", help="Muestra el árbol resuelto de un .rdr")
    p_inspect.add_argument("file")

    p_export = sub.add_parser("export", help="Exporta la geometría resuelta a SVG")
    p_export.add_argument("file")
    p_export.add_argument("out")
    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    # Project-level defaults (repo-local): rdraw_settings.json
    apply_project_settings(logger=log, prefer_env=True)
    settings = EngineSettings.from_env()
    configure_from_settings(settings)

    try:
        root = load_document(args.file, settings=settings)
        if args.command == "inspect":
            print("\n".join(describe_tree(root)))
        else:
            out = export_svg(root, args.out)
            log.info("SVG exportado: %s", out)
    except RdrError as e:
        log.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
