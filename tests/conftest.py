"""Shared fixtures for rdraw tests."""
import pytest

from rdraw.core.composite import CompositeNode
from rdraw.core.drawable import DrawablePath
from rdraw.core.path import (
    RelativePath, start_sub_path, line_to, quadratic_to, close_sub_path,
)
from rdraw.core.relative import RelativePoint
from rdraw.core.settings import EngineSettings


@pytest.fixture
def settings():
    """Engine settings with defaults (independent of RDR_* env vars)."""
    return EngineSettings()


@pytest.fixture
def quad_path():
    """Start(0,0), Line(10,0), Quad((10,10),(0,10)), Close; non-zero winding."""
    return RelativePath([
        start_sub_path(RelativePoint.of(0, 0)),
        line_to(RelativePoint.of(10, 0)),
        quadratic_to(RelativePoint.of(10, 10), RelativePoint.of(0, 10)),
        close_sub_path(),
    ])


@pytest.fixture
def make_square():
    """Factory: closed axis-aligned square path at (x, y) with side `size`."""
    def _make(x, y, size):
        return RelativePath([
            start_sub_path(RelativePoint.of(x, y)),
            line_to(RelativePoint.of(x + size, y)),
            line_to(RelativePoint.of(x + size, y + size)),
            line_to(RelativePoint.of(x, y + size)),
            close_sub_path(),
        ])
    return _make


@pytest.fixture
def group(settings):
    """Empty auto-fitting group with the default 0..100 content area."""
    return CompositeNode("g", settings=settings)


@pytest.fixture
def group_with_squares(group, make_square):
    """Group with two square children: (10,10) side 10, then (-5,0) side 5."""
    a = DrawablePath(make_square(10, 10, 10), node_id="a")
    b = DrawablePath(make_square(-5, 0, 5), node_id="b")
    group.add_child(a)
    group.add_child(b)
    return group, a, b
