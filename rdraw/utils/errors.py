# File: rdraw/utils/errors.py
# Project: RelativeDraw (RDR)
# Version: 0.2.0
# Status: stable
# Date: 2026-10-19
# Purpose: Errores tipados del proyecto.
# Notes: Los errores de evaluación son locales a una coordenada; el llamador decide.
from __future__ import annotations


class RdrError(Exception):
    """Error base del proyecto."""


class RdrValidationError(RdrError):
    """Error de validación (input/archivo/estructura)."""


class RdrIOError(RdrError):
    """Error de E/S (lectura/escritura)."""


class RdrSchemaError(RdrValidationError):
    """Error de esquema (documento .rdr.json) o incompatibilidad de versión."""


class ExpressionSyntaxError(RdrValidationError):
    """Texto de coordenada que no se puede parsear."""


class ExpressionEvaluationError(RdrError):
    """Falla al resolver una coordenada contra un contexto."""


class UnresolvedSymbolError(ExpressionEvaluationError, LookupError):
    """El contexto no puede dar un valor para el símbolo referenciado."""

    def __init__(self, symbol: str, message: str | None = None) -> None:
        self.symbol = str(symbol)
        super().__init__(message or f"Símbolo no resuelto: {self.symbol!r}")


class CircularReferenceError(UnresolvedSymbolError):
    """Un marker termina referenciándose a sí mismo."""
