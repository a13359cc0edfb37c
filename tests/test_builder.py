"""Tests for rdraw/core/builder.py and rdraw/core/serialization.py (persistence)."""
import json
import logging

import pytest
from PySide6.QtCore import QPointF

from rdraw.core.builder import composite_from_dict, drawable_from_dict
from rdraw.core.composite import CompositeNode
from rdraw.core.drawable import DrawablePath
from rdraw.core.path import RelativePath, line_to, start_sub_path
from rdraw.core.relative import RelativeParallelogram, RelativePoint
from rdraw.core.serialization import document_from_dict, document_to_dict, load_document, save_document
from rdraw.core.version import SCHEMA_VERSION
from rdraw.utils.errors import RdrError, RdrIOError, RdrSchemaError, RdrValidationError


@pytest.fixture
def rich_group(group_with_squares):
    g, a, b = group_with_squares
    g.set_marker(True, "mid", "(left + right) / 2")
    g.set_marker(False, "base", "bottom - 10")
    g.set_marker(False, "half", "base / 2")
    g.add_child(DrawablePath(RelativePath([
        start_sub_path(RelativePoint.of("left", "top")),
        line_to(RelativePoint.of("mid", "base")),
    ], non_zero_winding=False), node_id="dyn"))
    g.set_bounding_box(RelativeParallelogram.from_points(QPointF(10, 10), QPointF(110, 10), QPointF(10, 60)))
    return g


def test_group_dict_layout(rich_group):
    d = rich_group.to_dict()
    assert d["type"] == "Group"
    assert d["id"] == "g"
    assert (d["topLeft"], d["topRight"], d["bottomLeft"]) == ("10, 10", "110, 10", "10, 60")
    assert [m["name"] for m in d["markersX"]] == ["left", "right", "mid"]
    assert [m["name"] for m in d["markersY"]] == ["top", "bottom", "base", "half"]
    assert [c["id"] for c in d["drawables"]] == ["a", "b", "dyn"]
    dyn = d["drawables"][2]
    assert dyn == {
        "type": "Path",
        "id": "dyn",
        "nonZeroWinding": False,
        "path": [
            {"type": "Move", "point1": "left, top"},
            {"type": "Line", "point1": "mid, base"},
        ],
    }


def test_round_trip_is_lossless(rich_group, settings):
    d = rich_group.to_dict()
    again = drawable_from_dict(d, settings=settings)
    assert isinstance(again, CompositeNode)
    assert again.to_dict() == d
    assert again.markers_x == rich_group.markers_x
    assert again.markers_y == rich_group.markers_y
    assert again.get_symbol_value("half") == 45
    # el transform se recalcula al cargar
    assert again.transform() == rich_group.transform()
    assert [c.drawable_bounds() for c in again.children] == [c.drawable_bounds() for c in rich_group.children]


def test_missing_fields_use_defaults(settings):
    g = composite_from_dict({"type": "Group", "id": "x"}, settings=settings)
    d = g.to_dict()
    assert (d["topLeft"], d["topRight"], d["bottomLeft"]) == ("0, 0", "100, 0", "0, 100")
    assert d["markersX"] == [{"name": "left", "position": "0"}, {"name": "right", "position": "100"}]
    assert d["drawables"] == []
    assert not g.is_transformed()


def test_malformed_corner_falls_back(settings, caplog):
    with caplog.at_level(logging.WARNING):
        g = composite_from_dict({"type": "Group", "topLeft": "((", "topRight": 5}, settings=settings)
    assert g.bounding_box.to_strings() == ("0, 0", "100, 0", "0, 100")
    assert "topLeft" in caplog.text and "topRight" in caplog.text


def test_unknown_node_type():
    with pytest.raises(RdrSchemaError):
        drawable_from_dict({"type": "Circle", "id": "c"})
    with pytest.raises(RdrSchemaError):
        drawable_from_dict(["Group"])


def test_duplicate_child_ids(settings):
    child = {"type": "Path", "id": "same", "path": []}
    with pytest.raises(RdrSchemaError):
        drawable_from_dict({"type": "Group", "drawables": [child, dict(child)]}, settings=settings)


def test_markers_without_content_edges(settings):
    with pytest.raises(RdrSchemaError):
        drawable_from_dict({"type": "Group", "markersX": [{"name": "a", "position": "1"}]}, settings=settings)


def test_drawables_must_be_a_list(settings):
    with pytest.raises(RdrSchemaError):
        drawable_from_dict({"type": "Group", "drawables": {"id": "a"}}, settings=settings)


# ---------------------------- documento ----------------------------

def test_document_envelope(rich_group):
    doc = document_to_dict(rich_group)
    assert doc["schema_version"] == SCHEMA_VERSION
    assert doc["root"]["id"] == "g"


def test_save_and_load(rich_group, settings, tmp_path):
    out = save_document(rich_group, tmp_path / "sub" / "doc.json")
    assert out.name == "doc.rdr"
    assert out.is_file()
    assert not (tmp_path / "sub" / "doc.rdr.tmp").exists()
    loaded = load_document(out, settings=settings)
    assert loaded.to_dict() == rich_group.to_dict()


def test_schema_version_mismatch(rich_group):
    doc = document_to_dict(rich_group)
    doc["schema_version"] = SCHEMA_VERSION + 1
    with pytest.raises(RdrSchemaError):
        document_from_dict(doc)
    with pytest.raises(RdrSchemaError):
        document_from_dict({"schema_version": SCHEMA_VERSION})
    with pytest.raises(RdrSchemaError):
        document_from_dict({"schema_version": "one", "root": {}})


def test_bad_json_file(tmp_path):
    p = tmp_path / "broken.rdr"
    p.write_text("{ not json", encoding="utf-8")
    with pytest.raises(RdrValidationError):
        load_document(p)


def test_missing_file(tmp_path):
    with pytest.raises(RdrIOError) as exc:
        load_document(tmp_path / "nope.rdr")
    assert isinstance(exc.value, RdrError)


def test_saved_file_is_readable_json(rich_group, tmp_path):
    out = save_document(rich_group, tmp_path / "doc.rdr")
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["root"]["markersX"][2] == {"name": "mid", "position": "(left + right) / 2"}


@pytest.mark.parametrize("raw", ["false", 0, None])
def test_non_bool_winding_falls_back(raw, caplog):
    with caplog.at_level(logging.WARNING):
        node = drawable_from_dict({"type": "Path", "id": "p", "nonZeroWinding": raw, "path": []})
    assert node.path.non_zero_winding is True
    assert "nonZeroWinding" in caplog.text


def test_bool_winding_is_kept():
    node = drawable_from_dict({"type": "Path", "id": "p", "nonZeroWinding": False, "path": []})
    assert node.path.non_zero_winding is False
