# File: rdraw/core/settings.py
# Project: RelativeDraw (RDR)
# Version: 0.2.0
# Status: stable
# Date: 2026-10-19
# Purpose: Configuración del motor (tolerancias, logging) vía JSON de proyecto + env vars.
# Notes: No depende de Qt. El JSON se aplica como RDR_* y EngineSettings lee el entorno.
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

log = logging.getLogger(__name__)


# ------------------------------
# Project settings (repo-local)
# ------------------------------
# Archivo esperado: rdraw_settings.json en la raíz del proyecto (o en un padre del CWD).
PROJECT_SETTINGS_FILENAME = "rdraw_settings.json"

DEFAULT_AFFINE_EPSILON = 1e-9
DEFAULT_MAX_SYMBOL_DEPTH = 64
DEFAULT_LOG_LEVEL = "info"
DEFAULT_LOG_DIR = "logs"

VALID_LOG_LEVELS = ("debug", "info", "warning", "error")


def find_project_settings_path(start: Path | None = None) -> Path | None:
    """Busca rdraw_settings.json subiendo desde start (o CWD)."""
    start = (start or Path.cwd()).resolve()
    for p in (start, *start.parents):
        candidate = p / PROJECT_SETTINGS_FILENAME
        if candidate.is_file():
            return candidate
    return None


def load_project_settings(start: Path | None = None, *, logger: logging.Logger | None = None) -> Dict[str, Any]:
    """Carga el JSON de project settings. Devuelve {} si no existe o es inválido."""
    _log = logger or log
    p = find_project_settings_path(start)
    if not p:
        return {}
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
        return data if isinstance(data, dict) else {}
    except (OSError, ValueError) as e:
        _log.warning("No se pudo leer %s: %s", p, e)
        return {}


def _deep_get(d: Dict[str, Any], path: str, default: Any = None) -> Any:
    cur: Any = d
    for part in path.split("."):
        if not isinstance(cur, dict) or part not in cur:
            return default
        cur = cur[part]
    return cur


def apply_project_settings(
    start: Path | None = None,
    *,
    logger: logging.Logger | None = None,
    prefer_env: bool = True,
) -> Dict[str, Any]:
    """Carga rdraw_settings.json (si existe) y aplica overrides vía variables de entorno.

    - Si `prefer_env=True`, una env var ya seteada NO se pisa (ganan los overrides manuales).
    - Si `prefer_env=False`, el JSON pisa la env var.

    Devuelve un dict con los valores *aplicados desde JSON* (útil para logging/debug).
    """
    _log = logger or log
    data = load_project_settings(start, logger=_log)
    if not data:
        return {}

    applied: Dict[str, Any] = {}

    def _set_env(key: str, value: Any) -> None:
        if prefer_env and os.environ.get(key):
            return
        os.environ[key] = str(value)

    eps = _deep_get(data, "engine.affine_epsilon")
    if isinstance(eps, (int, float)) and 0.0 < float(eps) <= 1e-2:
        applied["engine.affine_epsilon"] = float(eps)
        _set_env("RDR_AFFINE_EPS", float(eps))

    depth = _deep_get(data, "engine.max_symbol_depth")
    if isinstance(depth, int) and 1 <= depth <= 1024:
        applied["engine.max_symbol_depth"] = depth
        _set_env("RDR_MAX_SYMBOL_DEPTH", depth)

    level = _deep_get(data, "log.level")
    if isinstance(level, str) and level.strip().lower() in VALID_LOG_LEVELS:
        applied["log.level"] = level.strip().lower()
        _set_env("RDR_LOG_LEVEL", applied["log.level"])

    log_dir = _deep_get(data, "log.dir")
    if isinstance(log_dir, str) and log_dir.strip():
        applied["log.dir"] = log_dir.strip()
        _set_env("RDR_LOG_DIR", applied["log.dir"])

    if applied:
        _log.info("Project settings aplicados: %s", applied)
    return applied


@dataclass(frozen=True)
class EngineSettings:
    """Parámetros del motor de geometría relativa."""

    # Ajuste afín degenerado si sin(ángulo entre lados) <= affine_epsilon.
    affine_epsilon: float = DEFAULT_AFFINE_EPSILON
    # Profundidad máxima al resolver markers que referencian otros markers.
    max_symbol_depth: int = DEFAULT_MAX_SYMBOL_DEPTH
    log_level: str = DEFAULT_LOG_LEVEL
    log_dir: str = DEFAULT_LOG_DIR

    @classmethod
    def from_env(cls, environ: Dict[str, str] | None = None) -> "EngineSettings":
        env = os.environ if environ is None else environ
        return cls(
            affine_epsilon=_coerce_float(env.get("RDR_AFFINE_EPS"), 0.0, 1e-2, DEFAULT_AFFINE_EPSILON),
            max_symbol_depth=_coerce_int(env.get("RDR_MAX_SYMBOL_DEPTH"), 1, 1024, DEFAULT_MAX_SYMBOL_DEPTH),
            log_level=_coerce_log_level(env.get("RDR_LOG_LEVEL")),
            log_dir=str(env.get("RDR_LOG_DIR") or DEFAULT_LOG_DIR),
        )


def _coerce_float(v: Any, min_v: float, max_v: float, default: float) -> float:
    if v is None or v == "":
        return float(default)
    try:
        n = float(v)
    except (TypeError, ValueError):
        return float(default)
    if not (min_v < n <= max_v):
        return float(default)
    return n


def _coerce_int(v: Any, min_v: int, max_v: int, default: int) -> int:
    try:
        n = int(v)
    except (TypeError, ValueError):
        return int(default)
    if n < min_v:
        return min_v
    if n > max_v:
        return max_v
    return n


def _coerce_log_level(v: Any) -> str:
    s = str(v or "").strip().lower()
    if s in VALID_LOG_LEVELS:
        return s
    return DEFAULT_LOG_LEVEL
