"""Three-point affine fit.

Problem
- A composite node maps its logical content rectangle onto a bounding
  parallelogram in parent space. Three corner correspondences define the
  affine map uniquely: C0->P0 (top-left), C1->P1 (top-right), C2->P2
  (bottom-left).

Approach
- Solve the 2x2 linear part from the edge vectors (C1-C0, C2-C0) and
  (P1-P0, P2-P0), then the translation from C0->P0.
- Degenerate input (collinear/coincident source or target points) has no
  unique non-singular solution: return the identity instead of raising.
  Degeneracy is judged on the angle between the edges, not on the raw
  determinant, so tiny but well-formed regions still fit.

QTransform convention: x' = m11*x + m21*y + dx, y' = m12*x + m22*y + dy.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence

from PySide6.QtCore import QPointF
from PySide6.QtGui import QTransform

from rdraw.core.settings import DEFAULT_AFFINE_EPSILON


def cross(u: QPointF, v: QPointF) -> float:
    return float(u.x() * v.y() - u.y() * v.x())


def is_degenerate(u: QPointF, v: QPointF, *, eps: float = DEFAULT_AFFINE_EPSILON) -> bool:
    """True when edges u, v do not span a parallelogram.

    Compares the cross product with |u|*|v| (the sine of the angle between
    them), so the verdict does not depend on the size of the region.
    """
    scale = math.hypot(u.x(), u.y()) * math.hypot(v.x(), v.y())
    return scale == 0.0 or abs(cross(u, v)) <= eps * scale


def from_target_points(
    source: Sequence[QPointF],
    target: Sequence[QPointF],
    *,
    eps: float = DEFAULT_AFFINE_EPSILON,
) -> Optional[QTransform]:
    """Return T with T(source[i]) == target[i] for i in 0..2, or None if source or target is degenerate."""
    s0, s1, s2 = source
    t0, t1, t2 = target
    u = s1 - s0
    v = s2 - s0
    a = t1 - t0
    b = t2 - t0
    if is_degenerate(u, v, eps=eps) or is_degenerate(a, b, eps=eps):
        return None

    det = cross(u, v)
    # L = [a b] * inverse([u v])
    l11 = (a.x() * v.y() - b.x() * u.y()) / det
    l12 = (b.x() * u.x() - a.x() * v.x()) / det
    l21 = (a.y() * v.y() - b.y() * u.y()) / det
    l22 = (b.y() * u.x() - a.y() * v.x()) / det

    dx = t0.x() - (l11 * s0.x() + l12 * s0.y())
    dy = t0.y() - (l21 * s0.x() + l22 * s0.y())
    return QTransform(l11, l21, l12, l22, dx, dy)


def fit_or_identity(
    source: Sequence[QPointF],
    target: Sequence[QPointF],
    *,
    eps: float = DEFAULT_AFFINE_EPSILON,
) -> QTransform:
    """Like `from_target_points`, but any degenerate fit collapses to the identity."""
    t = from_target_points(source, target, eps=eps)
    return t if t is not None else QTransform()
