"""Geometry helpers.

This package is intentionally small: concrete Qt geometry only, no
relative coordinates and no knowledge of the node tree.
"""

from __future__ import annotations
