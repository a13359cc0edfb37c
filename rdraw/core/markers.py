# File: rdraw/core/markers.py
# Project: RelativeDraw (RDR)
# Version: 0.2.0
# Status: stable
# Date: 2026-10-19
# Purpose: Markers (anclas con nombre) por eje, en orden de inserción.
# Notes: Los dos primeros markers de cada eje son los bordes del content area (convención, no se fuerza acá).
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Union

from rdraw.core.expression import RelativeValue, RelativeValueLike
from rdraw.utils.errors import RdrSchemaError, RdrValidationError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Marker:
    name: str
    position: RelativeValue

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "position": self.position.to_canonical_string()}


class MarkerList:
    """Mapa ordenado nombre -> Marker (nombres únicos)."""

    def __init__(self) -> None:
        self._markers: list[Marker] = []

    def __len__(self) -> int:
        return len(self._markers)

    def __iter__(self) -> Iterator[Marker]:
        return iter(self._markers)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MarkerList):
            return NotImplemented
        return self._markers == other._markers

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return "MarkerList(" + ", ".join(f"{m.name}={m.position}" for m in self._markers) + ")"

    @property
    def names(self) -> list[str]:
        return [m.name for m in self._markers]

    def _index_of(self, name: str) -> int:
        for i, m in enumerate(self._markers):
            if m.name == name:
                return i
        return -1

    def get_marker(self, key: Union[str, int]) -> Optional[Marker]:
        """Por nombre o por índice. Devuelve None si no existe."""
        if isinstance(key, int):
            if 0 <= key < len(self._markers):
                return self._markers[key]
            return None
        i = self._index_of(key)
        return self._markers[i] if i >= 0 else None

    def set_marker(self, name: str, position: RelativeValueLike) -> Marker:
        """Inserta al final, o pisa el valor conservando la posición original."""
        name = str(name)
        marker = Marker(name, RelativeValue.coerce(position))
        i = self._index_of(name)
        if i >= 0:
            self._markers[i] = marker
        else:
            self._markers.append(marker)
        return marker

    def remove_marker(self, name: str) -> bool:
        i = self._index_of(name)
        if i < 0:
            return False
        del self._markers[i]
        return True

    def apply_from(self, other: "MarkerList") -> None:
        """Reemplaza el set completo (p. ej. al recargar desde persistencia)."""
        self._markers = list(other._markers)

    def copy(self) -> "MarkerList":
        out = MarkerList()
        out.apply_from(self)
        return out

    def to_list(self) -> list[dict[str, Any]]:
        return [m.to_dict() for m in self._markers]

    @staticmethod
    def from_list(items: Any) -> "MarkerList":
        if items is None:
            return MarkerList()
        if not isinstance(items, list):
            raise RdrSchemaError("markers inválido: se espera lista")
        out = MarkerList()
        for idx, d in enumerate(items):
            if not isinstance(d, dict) or not str(d.get("name", "")).strip():
                raise RdrSchemaError(f"markers[{idx}] inválido: falta 'name'")
            out.set_marker(str(d["name"]), _position_or_zero(d.get("position"), str(d["name"])))
        return out


def _position_or_zero(raw: Any, name: str) -> RelativeValue:
    try:
        return RelativeValue.coerce(raw)
    except RdrValidationError as e:
        log.warning("Marker %r ilegible (%s); se usa 0", name, e)
        return RelativeValue.constant(0.0)
