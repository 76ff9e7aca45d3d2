"""Tests for the geometric primitives."""

import math

import pytest

from models.layout_types import Alignment, Block, BoundingBox, Page, Text
from processors.geometry import (
    alignment,
    check_page,
    exceeds,
    horizontal_spacing,
    page_geometry_issues,
    partition_valid,
    on_row,
    shape_of,
    union_box,
    vertical_overlap,
    vertical_spacing,
    within,
)
from utils.validation import InvalidGeometryError


class TestShape:
    def test_shape_of_valid_box(self, make_token):
        shape = shape_of(make_token(5, 5, width=20, height=8))
        assert shape.width == 20
        assert shape.height == 8

    def test_negative_width_is_invalid(self, make_token):
        token = make_token(0, 0, width=-1, token_id="bad")
        with pytest.raises(InvalidGeometryError) as exc_info:
            shape_of(token)
        assert exc_info.value.entity_kind == "token"
        assert exc_info.value.entity_id == "bad"

    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
    def test_non_finite_coordinate_is_invalid(self, make_token, value):
        with pytest.raises(InvalidGeometryError):
            shape_of(make_token(value, 0))

    def test_zero_extent_is_valid(self, make_token):
        assert shape_of(make_token(0, 0, width=0, height=0)).width == 0


class TestSpacing:
    def test_horizontal_gap_is_order_independent(self, make_token):
        a, b = make_token(0, 0), make_token(15, 0)
        assert horizontal_spacing(a, b) == 5
        assert horizontal_spacing(b, a) == 5

    def test_horizontal_overlap_is_negative(self, make_token):
        assert horizontal_spacing(make_token(0, 0), make_token(6, 0)) == -4

    def test_vertical_gap(self, make_token):
        a, b = make_token(0, 0), make_token(0, 25)
        assert vertical_spacing(a, b) == 15
        assert vertical_spacing(b, a) == 15

    def test_vertical_overlap(self, make_token):
        assert vertical_overlap(make_token(0, 0), make_token(0, 4)) == 6
        assert vertical_overlap(make_token(0, 0), make_token(0, 30)) == 0


class TestTolerance:
    def test_within(self):
        assert within(10.0, 10.4, 0.5)
        assert not within(10.0, 10.6, 0.5)

    def test_exceeds_uses_tolerance(self):
        assert not exceeds(7.0, 5.0, 2.0)
        assert exceeds(7.1, 5.0, 2.0)

    def test_alignment_edges(self, make_token):
        a = make_token(0, 0)
        b = make_token(30, 0.3)
        assert alignment(a, b, 0.5) == {
            Alignment.TOP, Alignment.BOTTOM, Alignment.BASELINE, Alignment.CENTER_Y,
        }
        assert alignment(a, b, 0.1) == frozenset()

    def test_alignment_left_and_right(self, make_token):
        a = make_token(0, 0, width=50)
        b = make_token(0, 40, width=50)
        assert alignment(a, b, 0.5) == {Alignment.LEFT, Alignment.RIGHT, Alignment.CENTER_X}

    def test_horizontal_center_alignment(self, make_token):
        a = make_token(0, 0, width=40)
        b = make_token(10, 30, width=20)
        assert alignment(a, b, 0.5) == {Alignment.CENTER_X}

    def test_vertical_center_alignment(self, make_token):
        a = make_token(0, 0, height=20)
        b = make_token(30, 5, height=10)
        assert alignment(a, b, 0.5) == {Alignment.CENTER_Y}

    def test_on_row_by_baseline(self, make_token):
        row = make_token(0, 0)
        assert on_row(row.baseline, row, make_token(20, 1), 2.0)

    def test_on_row_by_overlap(self, make_token):
        # Baselines 4 apart, but the boxes overlap by 6 of 10
        row = make_token(0, 0)
        assert on_row(row.baseline, row, make_token(20, 4), 1.0)
        assert not on_row(row.baseline, row, make_token(20, 12), 1.0)


class TestBoxes:
    def test_union_box(self, make_token):
        box = union_box([make_token(0, 0), make_token(40, 20, width=5, height=5)])
        assert (box.x, box.y, box.width, box.height) == (0, 0, 45, 25)

    def test_union_of_nothing(self):
        assert union_box([]) == BoundingBox(x=0, y=0, width=0, height=0)

    def test_box_baseline_defaults_to_bottom(self):
        assert BoundingBox(x=0, y=5, width=1, height=10).baseline == 15


class TestValidity:
    def test_partition_valid(self, make_token):
        good = make_token(0, 0)
        bad = make_token(0, 0, height=-2, token_id="neg")
        valid, issues = partition_valid([good, bad])
        assert valid == [good]
        assert len(issues) == 1
        assert issues[0].entity_id == "neg"

    def test_non_finite_baseline_is_reported(self, make_token):
        valid, issues = partition_valid([make_token(0, 0, base=math.nan)])
        assert valid == []
        assert "baseline" in issues[0].message

    def test_page_issues_cover_tokens(self, make_token, make_page):
        text = Text(
            id="text1", x=0, y=0, width=40, height=10,
            tokens=[make_token(0, 0), make_token(20, 0, width=-3, token_id="neg")],
        )
        block = Block(id="b1", x=0, y=0, width=40, height=10, texts=[text])
        issues = page_geometry_issues(make_page([block]))
        assert [(issue.entity_kind, issue.entity_id) for issue in issues] == [("token", "neg")]

    def test_invalid_text_drops_its_tokens(self, make_token, make_block, make_page):
        block = make_block([make_token(0, 0), make_token(20, 0, width=-3)])
        issues = page_geometry_issues(make_page([block]))
        assert [issue.entity_kind for issue in issues] == ["text"]

    @pytest.mark.parametrize("width", [0, -10, math.nan])
    def test_check_page_rejects_bad_size(self, width):
        with pytest.raises(InvalidGeometryError):
            check_page(Page(width=width, height=100))
