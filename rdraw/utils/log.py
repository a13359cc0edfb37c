# File: rdraw/utils/log.py
# Project: RelativeDraw (RDR)
# Version: 0.2.0
# Status: stable
# Date: 2026-10-19
# Purpose: Logging del proceso (consola + rdraw.log) configurado desde EngineSettings.
# Notes:
#   - Los módulos solo hacen logging.getLogger(__name__); los handlers se instalan una vez en el root.
#   - Un directorio de logs no escribible no es fatal: queda solo la consola.
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from rdraw.core.settings import EngineSettings

LOG_FILENAME = "rdraw.log"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

_CONFIGURED = False
_LOG_FILE: Optional[Path] = None


def _install(handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
    logging.getLogger().addHandler(handler)


def setup_logging(log_dir: str | os.PathLike = "logs", level: int = logging.INFO) -> Optional[Path]:
    """Instala consola + archivo en el logger raíz y devuelve la ruta del archivo.

    Solo la primera llamada tiene efecto; las siguientes devuelven el archivo ya
    configurado (o None si quedó solo la consola).
    """
    global _CONFIGURED, _LOG_FILE
    if _CONFIGURED:
        return _LOG_FILE

    logging.getLogger().setLevel(level)
    _install(logging.StreamHandler(), level)

    target = Path(log_dir) / LOG_FILENAME
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        _install(logging.FileHandler(target, encoding="utf-8"), level)
        _LOG_FILE = target
    except OSError as e:
        logging.getLogger(__name__).warning("Sin archivo de log en %s: %s", target, e)
        _LOG_FILE = None

    _CONFIGURED = True
    return _LOG_FILE


def configure_from_settings(settings: EngineSettings) -> Optional[Path]:
    """setup_logging con carpeta y nivel de EngineSettings (RDR_LOG_DIR / RDR_LOG_LEVEL)."""
    return setup_logging(settings.log_dir, level_from_name(settings.log_level))


def level_from_name(name: str, default: int = logging.INFO) -> int:
    """'debug' -> logging.DEBUG, etc. Nombres desconocidos devuelven `default`."""
    value = logging.getLevelName(str(name or "").strip().upper())
    return value if isinstance(value, int) else default


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
