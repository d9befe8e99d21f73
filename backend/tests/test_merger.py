"""
Tests for the Layout Merger

Run with: pytest tests/test_merger.py -v
"""

import pytest

from layout_editor.core.exceptions import InvalidEditError
from layout_editor.core.merger import merge_layout
from layout_editor.models.layout import LayoutDocument, LayoutObjectEdit

from conftest import PALETTE


def bed_only() -> LayoutDocument:
    # Out-of-range width/height on purpose: merge itself never validates
    return LayoutDocument.model_validate({
        "objects": [{"name": "bed", "x": 0.2, "y": 0.5, "width": 1.2, "height": 2.0}],
        "style": "modern",
        "colorPalette": PALETTE,
    })


# ============ Field Merge ============

def test_partial_edit_overwrites_only_given_fields():
    """Fields missing from the edit keep their stored values."""
    result = merge_layout(bed_only(), [{"name": "bed", "x": 0.5}])

    assert [o.model_dump() for o in result.objects] == [
        {"name": "bed", "x": 0.5, "y": 0.5, "width": 1.2, "height": 2.0}
    ]
    print("✓ Partial edit merged")


def test_unknown_name_is_appended():
    result = merge_layout(
        bed_only(),
        [{"name": "lamp", "x": 0.1, "y": 0.1, "width": 0.1, "height": 0.3}]
    )

    assert result.object_names() == ["bed", "lamp"]
    assert result.objects[0] == bed_only().objects[0]
    assert result.get_object("lamp").height == 0.3


def test_missing_name_raises():
    with pytest.raises(InvalidEditError) as exc_info:
        merge_layout(bed_only(), [{"x": 0.1}])
    assert exc_info.value.index == 0


def test_blank_name_raises():
    with pytest.raises(InvalidEditError):
        merge_layout(bed_only(), [{"name": "bed", "x": 0.3}, {"name": "   ", "x": 0.1}])


def test_null_coordinate_raises():
    """Sending null is not the same as leaving a field out."""
    with pytest.raises(InvalidEditError) as exc_info:
        merge_layout(bed_only(), [{"name": "bed", "x": None}])
    assert "x" in exc_info.value.message


def test_non_mapping_edit_raises():
    with pytest.raises(InvalidEditError):
        merge_layout(bed_only(), ["bed"])


# ============ Ordering ============

def test_edited_objects_keep_their_position(base_document):
    result = merge_layout(base_document, [
        {"name": "desk", "y": 0.9},
        {"name": "bed", "width": 0.1},
    ])
    assert result.object_names() == ["bed", "desk"]
    assert result.get_object("desk").y == 0.9
    assert result.get_object("bed").width == 0.1


def test_new_objects_appended_in_edit_order(base_document):
    result = merge_layout(base_document, [
        {"name": "rug", "x": 0.3},
        {"name": "bed", "x": 0.0},
        {"name": "chair", "x": 0.6},
    ])
    assert result.object_names() == ["bed", "desk", "rug", "chair"]


def test_duplicate_edits_last_wins(base_document):
    result = merge_layout(base_document, [
        {"name": "bed", "x": 0.1},
        {"name": "bed", "x": 0.9},
    ])
    assert result.get_object("bed").x == 0.9


def test_duplicate_new_name_added_once(base_document):
    result = merge_layout(base_document, [
        {"name": "lamp", "x": 0.1, "y": 0.2},
        {"name": "lamp", "x": 0.4},
    ])
    assert result.object_names() == ["bed", "desk", "lamp"]
    lamp = result.get_object("lamp")
    assert lamp.x == 0.4
    assert lamp.y is None


def test_new_object_without_geometry_keeps_it_absent(base_document):
    result = merge_layout(base_document, [{"name": "plant"}])
    plant = result.get_object("plant")
    assert plant.missing_geometry() == ["x", "y", "width", "height"]
    assert result.to_json_dict()["objects"][-1] == {"name": "plant"}


# ============ Laws ============

def test_identity(base_document):
    assert merge_layout(base_document, []).to_json_dict() == base_document.to_json_dict()


def test_base_is_not_mutated(base_document):
    before = base_document.to_json_dict()
    merge_layout(base_document, [{"name": "bed", "x": 0.9}, {"name": "lamp", "x": 0.1}])
    assert base_document.to_json_dict() == before


def test_result_does_not_share_lists_with_base(base_document):
    result = merge_layout(base_document, [])
    assert result.objects is not base_document.objects
    assert result.color_palette is not base_document.color_palette


def test_deterministic(base_document):
    edits = [{"name": "desk", "x": 0.05}, {"name": "shelf", "y": 0.4}]
    assert merge_layout(base_document, edits).to_json_dict() == merge_layout(base_document, edits).to_json_dict()


@pytest.mark.parametrize("edits", [
    [{"name": "bed", "x": 0.0}],
    [{"name": "bed", "y": 1.0}, {"name": "desk", "height": 0.5}],
    [{"name": "desk", "x": 0.3, "y": 0.3, "width": 0.3, "height": 0.3}],
])
def test_existing_names_keep_length_and_names(base_document, edits):
    result = merge_layout(base_document, edits)
    assert len(result.objects) == len(base_document.objects)
    assert set(result.object_names()) == set(base_document.object_names())


@pytest.mark.parametrize("edits,unknown", [
    ([{"name": "lamp"}], 1),
    ([{"name": "lamp"}, {"name": "bed", "x": 0.1}, {"name": "rug"}], 2),
    ([{"name": "lamp"}, {"name": "lamp"}], 1),
])
def test_unknown_names_grow_the_layout(base_document, edits, unknown):
    result = merge_layout(base_document, edits)
    assert len(result.objects) == len(base_document.objects) + unknown


def test_style_and_palette_carried_through(base_document):
    result = merge_layout(base_document, [{"name": "bed", "x": 0.3, "style": "cozy"}])
    assert result.style == base_document.style
    assert result.color_palette == base_document.color_palette


def test_accepts_edit_models(base_document):
    edit = LayoutObjectEdit(name="desk", width=0.05)
    assert edit.changes() == {"width": 0.05}

    result = merge_layout(base_document, [edit])
    assert result.get_object("desk").width == 0.05
    assert result.get_object("desk").x == 0.7
