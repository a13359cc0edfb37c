"""Tests for rdraw/core/composite.py and rdraw/core/drawable.py (tree, transform, auto-fit)."""
import gc
import logging
import threading

import pytest
from PySide6.QtCore import QPointF, QRectF

from rdraw.core.composite import CompositeNode
from rdraw.core.drawable import DrawablePath
from rdraw.core.expression import RelativeValue
from rdraw.core.path import RelativePath, line_to, start_sub_path
from rdraw.core.relative import RelativeParallelogram, RelativePoint, RelativeRectangle
from rdraw.core.settings import EngineSettings
from rdraw.utils.errors import CircularReferenceError, RdrValidationError, UnresolvedSymbolError


def _approx(p, x, y, tol=1e-9):
    return abs(p.x() - x) < tol and abs(p.y() - y) < tol


def _assert_children_anchored(group):
    """Posición absoluta de cada hijo == esquina de su geometría en coords del grupo."""
    for c in group.children:
        absolute = group.position() + c.position()
        assert absolute == c.drawable_bounds().topLeft(), c.id


# ---------------------------- transform ----------------------------

def test_default_group_has_identity_transform(group):
    assert group.get_content_area() == RelativeRectangle.of(0, 100, 0, 100)
    assert not group.is_transformed()


def test_bounding_box_scales_content(group):
    group.set_bounding_box(RelativeParallelogram.from_points(QPointF(10, 10), QPointF(110, 10), QPointF(10, 60)))
    assert _approx(group.map_to_parent(QPointF(50, 50)), 60, 35)
    assert _approx(group.map_to_parent(QPointF(0, 0)), 10, 10)


def test_degenerate_bounding_box_gives_identity(group):
    group.set_bounding_box(RelativeParallelogram.from_points(QPointF(0, 0), QPointF(10, 0), QPointF(20, 0)))
    assert not group.is_transformed()


def test_unresolvable_bounding_box_logs_and_uses_identity(group, caplog):
    group.set_bounding_box(RelativeParallelogram.from_points(QPointF(10, 10), QPointF(110, 10), QPointF(10, 60)))
    assert group.is_transformed()
    with caplog.at_level(logging.WARNING):
        group.set_bounding_box(RelativeParallelogram(
            RelativePoint.of("missing", 0), RelativePoint.of(100, 0), RelativePoint.of(0, 100),
        ))
    assert not group.is_transformed()
    assert "identidad" in caplog.text


def test_reset_bounding_box_to_content_area(group):
    group.set_content_area(RelativeRectangle.of(-50, 50, 0, 20))
    assert group.is_transformed()
    group.reset_bounding_box_to_content_area()
    assert group.bounding_box.to_strings() == ("-50, 0", "50, 0", "-50, 20")
    assert not group.is_transformed()


def test_content_area_requires_reserved_marker_names(group):
    group.markers_x.remove_marker("left")
    with pytest.raises(RdrValidationError):
        group.get_content_area()


def test_nested_bounding_box_follows_parent_markers(settings):
    outer = CompositeNode("outer", settings=settings)
    inner = CompositeNode("inner", settings=settings)
    outer.add_child(inner)
    inner.set_bounding_box(RelativeParallelogram(
        RelativePoint.of("left", "top"),
        RelativePoint.of("right / 2", "top"),
        RelativePoint.of("left", "bottom / 2"),
    ))
    assert abs(inner.transform().m11() - 0.5) < 1e-12
    outer.set_content_area(RelativeRectangle.of(0, 200, 0, 200))
    assert abs(inner.transform().m11() - 1.0) < 1e-12
    assert abs(inner.transform().m22() - 1.0) < 1e-12


# ---------------------------- markers como símbolos ----------------------------

def test_markers_resolve_as_symbols(group):
    group.set_marker(True, "mid", "(left + right) / 2")
    group.set_marker(False, "third", "bottom / 3 + mid")
    assert group.get_symbol_value("mid") == 50
    assert abs(group.get_symbol_value("third") - (100 / 3 + 50)) < 1e-12
    assert group.get_markers(True).names == ["left", "right", "mid"]
    assert group.get_markers(False).names == ["top", "bottom", "third"]


def test_unknown_and_dotted_symbols(group):
    with pytest.raises(UnresolvedSymbolError):
        group.get_symbol_value("nope")
    with pytest.raises(LookupError):
        group.get_symbol_value("left.x")


def test_circular_markers_detected(group):
    group.set_marker(True, "p", "q + 1")
    group.set_marker(True, "q", "p * 2")
    with pytest.raises(CircularReferenceError):
        group.get_symbol_value("p")
    # un ciclo fallido no deja rastro en el nodo
    assert group.get_symbol_value("left") == 0


def test_marker_chain_depth_limit():
    g = CompositeNode("g", settings=EngineSettings(max_symbol_depth=2))
    g.set_marker(True, "m0", "m1")
    g.set_marker(True, "m1", "m2")
    g.set_marker(True, "m2", "7")
    with pytest.raises(UnresolvedSymbolError) as exc:
        g.get_symbol_value("m0")
    assert not isinstance(exc.value, CircularReferenceError)
    assert g.get_symbol_value("m1") == 7


def test_dynamic_child_follows_markers(settings):
    g = CompositeNode("g", fit_to_children=False, settings=settings)
    p = DrawablePath(RelativePath([
        start_sub_path(RelativePoint.of(0, 0)),
        line_to(RelativePoint.of("right", "bottom")),
    ]), node_id="p")
    g.add_child(p)
    assert p.drawable_bounds() == QRectF(0, 0, 100, 100)
    g.set_content_area(RelativeRectangle.of(0, 200, 0, 50))
    assert p.drawable_bounds() == QRectF(0, 0, 200, 50)
    assert _approx(g.map_to_parent(QPointF(200, 50)), 100, 100)


def test_unresolved_child_path_is_empty(group, caplog):
    with caplog.at_level(logging.WARNING):
        p = DrawablePath(RelativePath([start_sub_path(RelativePoint.of("ghost", 0))]), node_id="p")
        group.add_child(p)
    assert p.to_qpath().isEmpty()
    assert "ghost" in caplog.text


# ---------------------------- jerarquía ----------------------------

def test_parent_is_weak(make_square, settings):
    g = CompositeNode("tmp", settings=settings)
    a = DrawablePath(make_square(0, 0, 1))
    g.add_child(a)
    assert a.parent is g
    del g
    gc.collect()
    assert a.parent is None


def test_reparenting_moves_child(settings, make_square):
    g1 = CompositeNode("g1", settings=settings)
    g2 = CompositeNode("g2", settings=settings)
    a = DrawablePath(make_square(0, 0, 1), node_id="a")
    g1.add_child(a)
    g2.add_child(a)
    assert g1.children == ()
    assert g2.children == (a,)
    assert a.parent is g2


def test_add_child_at_index(group, make_square):
    a = DrawablePath(make_square(0, 0, 1), node_id="a")
    b = DrawablePath(make_square(0, 0, 1), node_id="b")
    group.add_child(a)
    group.add_child(b, 0)
    assert [c.id for c in group.children] == ["b", "a"]


# ---------------------------- auto-fit ----------------------------

def test_auto_fit_compensates_children(group_with_squares):
    g, a, b = group_with_squares
    assert g.bounds() == QRectF(-5, 0, 25, 20)
    assert a.bounds() == QRectF(15, 10, 10, 10)
    assert b.bounds() == QRectF(0, 0, 5, 5)
    assert g.origin_relative_to_component == QPointF(5, 0)
    _assert_children_anchored(g)


def _layout_snapshot(g, a, b):
    return (
        g.bounds(), a.bounds(), b.bounds(), QPointF(g.origin_relative_to_component),
        g.get_content_area(), g.bounding_box, g.transform(),
    )


def test_auto_fit_is_idempotent(group_with_squares):
    g, a, b = group_with_squares
    before = _layout_snapshot(g, a, b)
    g.update_bounds_to_fit_children()
    g.update_bounds_to_fit_children()
    assert _layout_snapshot(g, a, b) == before


def test_child_bounds_notification_is_idempotent(group_with_squares):
    g, a, b = group_with_squares
    before = _layout_snapshot(g, a, b)
    g.child_bounds_changed(a)
    first = _layout_snapshot(g, a, b)
    g.child_bounds_changed(a)
    assert first == before
    assert _layout_snapshot(g, a, b) == first
    _assert_children_anchored(g)


def test_auto_fit_after_remove(group_with_squares):
    g, a, b = group_with_squares
    g.remove_child(b)
    assert b.parent is None
    assert g.bounds() == QRectF(10, 10, 10, 10)
    assert a.bounds() == QRectF(0, 0, 10, 10)
    _assert_children_anchored(g)


def test_auto_fit_disabled(settings, make_square):
    g = CompositeNode("g", fit_to_children=False, settings=settings)
    g.add_child(DrawablePath(make_square(10, 10, 10)))
    assert g.bounds() == QRectF()


class _EagerPath(DrawablePath):
    """Hoja que pide re-ajustar al padre cada vez que se mueve."""

    def __init__(self, path, node_id=""):
        self.calls = 0
        super().__init__(path, node_id=node_id)

    def moved_or_resized(self):
        self.calls += 1
        parent = self.parent
        if parent is not None:
            parent.update_bounds_to_fit_children()


def test_reentrant_update_is_a_no_op(group, make_square):
    a = _EagerPath(make_square(10, 10, 10), node_id="a")
    b = _EagerPath(make_square(-5, 0, 5), node_id="b")
    group.add_child(a)
    group.add_child(b)
    assert a.calls > 0 and b.calls > 0
    assert group.bounds() == QRectF(-5, 0, 25, 20)
    _assert_children_anchored(group)


def test_guard_is_cleared_after_exception(group_with_squares, monkeypatch):
    g, a, b = group_with_squares

    def boom():
        raise RuntimeError("boom")

    monkeypatch.setattr(a, "bounds", boom)
    with pytest.raises(RuntimeError):
        g.update_bounds_to_fit_children()
    assert g._update_bounds_reentrant is False
    monkeypatch.undo()
    g.update_bounds_to_fit_children()
    assert g.bounds() == QRectF(-5, 0, 25, 20)


def test_reset_content_and_bounding_box_to_fit_children(group_with_squares):
    g, a, b = group_with_squares
    g.reset_content_and_bounding_box_to_fit_children()
    assert g.get_content_area() == RelativeRectangle.of(-5, 20, 0, 20)
    assert g.bounding_box.to_strings() == ("-5, 0", "20, 0", "-5, 20")
    assert not g.is_transformed()


def test_drawable_bounds_and_qpath_union(group_with_squares):
    g, a, b = group_with_squares
    assert g.drawable_bounds() == QRectF(-5, 0, 25, 20)
    assert g.to_qpath().boundingRect() == QRectF(-5, 0, 25, 20)


# ---------------------------- copia ----------------------------

def test_create_copy_is_deep(group_with_squares):
    g, a, b = group_with_squares
    g.set_marker(True, "mid", "(left + right) / 2")
    c = g.create_copy()
    assert c.id != g.id
    assert c.markers_x == g.markers_x and c.markers_y == g.markers_y
    assert c.bounding_box == g.bounding_box
    assert [x.drawable_bounds() for x in c.children] == [a.drawable_bounds(), b.drawable_bounds()]
    assert c.bounds() == g.bounds()
    c.set_marker(True, "mid", 1)
    assert g.get_symbol_value("mid") == 50
    assert all(x.parent is c for x in c.children)


# ---------------------------- lectores concurrentes ----------------------------

def test_concurrent_marker_reads_do_not_interfere(group):
    entered = threading.Event()
    release = threading.Event()

    class _GatedValue(RelativeValue):
        """Frena la resolución en el hilo secundario hasta que el principal haya leído."""

        def resolve(self, context=None):
            if threading.current_thread() is not threading.main_thread():
                entered.set()
                release.wait(5)
            return super().resolve(context)

    group.markers_x.set_marker("a", _GatedValue.parse("left + 1"))
    results = {}

    def reader():
        results["worker"] = group.get_symbol_value("a")

    worker = threading.Thread(target=reader)
    worker.start()
    try:
        assert entered.wait(5)
        # el otro hilo está en medio de resolver "a"
        results["main"] = group.get_symbol_value("a")
    finally:
        release.set()
        worker.join(5)
    assert results == {"worker": 1.0, "main": 1.0}


def test_symbol_lookup_leaves_node_untouched(group):
    group.set_marker(True, "mid", "(left + right) / 2")
    group.set_marker(True, "loop", "loop + 1")
    before = dict(vars(group))
    markers_before = group.markers_x.copy()
    assert group.get_symbol_value("mid") == 50
    with pytest.raises(CircularReferenceError):
        group.get_symbol_value("loop")
    after = dict(vars(group))
    assert after.keys() == before.keys()
    assert all(after[k] is before[k] for k in before)
    assert group.markers_x == markers_before
