"""Tests for the line detector."""

import pytest

from models.layout_types import Block, Style, Text
from processors.layout_config import LayoutConfig
from processors.line_detection import detect_lines
from utils.validation import InvalidGeometryError, LayoutValidationError


class TestLineGrouping:
    def test_wide_gap_splits_row(self, make_token, make_block):
        # Gaps of 5, 5 and 40 with a horizontal mode of 5
        tokens = [make_token(x, 0, token_id=f"w{i}") for i, x in enumerate((0, 15, 30, 80))]
        lines = detect_lines(make_block(tokens))

        assert len(lines) == 2
        assert lines[0].token_ids == ("w0", "w1", "w2")
        assert lines[1].token_ids == ("w3",)

    def test_explicit_thresholds(self, make_token, make_block, thresholds):
        tokens = [make_token(x, 0) for x in (0, 15, 30, 80)]
        lines = detect_lines(make_block(tokens), LayoutConfig(), thresholds)
        assert [len(line.token_ids) for line in lines] == [3, 1]

    def test_slack_factor_widens_lines(self, make_token, make_block, thresholds):
        tokens = [make_token(x, 0) for x in (0, 15, 30, 80)]
        lines = detect_lines(make_block(tokens), LayoutConfig(horizontal_slack_factor=10), thresholds)
        assert len(lines) == 1

    def test_rows_become_lines_top_to_bottom(self, make_row, make_block):
        block = make_block(make_row(40, 0, 3) + make_row(0, 0, 3) + make_row(20, 0, 3))
        lines = detect_lines(block)

        assert [line.y for line in lines] == [0, 20, 40]
        assert [line.id for line in lines] == ["b1_l000", "b1_l001", "b1_l002"]
        assert all(line.block_id == "b1" for line in lines)

    def test_members_ordered_left_to_right(self, make_token, make_block):
        tokens = [
            make_token(30, 0, base=9.8, token_id="c"),
            make_token(0, 0, base=10.3, token_id="a"),
            make_token(15, 0, base=10.0, token_id="b"),
        ]
        lines = detect_lines(make_block(tokens))
        assert len(lines) == 1
        assert lines[0].token_ids == ("a", "b", "c")

    def test_line_box_is_union_of_members(self, make_row, make_block):
        line = detect_lines(make_block(make_row(7, 20, 4)))[0]
        assert (line.x, line.y, line.width, line.height) == (20, 7, 55, 10)
        assert line.baseline == 17

    def test_side_by_side_groups_stay_apart(self, make_token, make_block):
        # Slightly jittered baselines interleave the two groups in sweep order
        tokens = [
            make_token(0, 0, base=10.0, token_id="l1"),
            make_token(300, 0, base=10.05, token_id="r1"),
            make_token(15, 0, base=10.1, token_id="l2"),
            make_token(315, 0, base=10.15, token_id="r2"),
        ]
        lines = detect_lines(make_block(tokens))
        assert sorted(line.token_ids for line in lines) == [("l1", "l2"), ("r1", "r2")]

    def test_common_style(self, make_token, make_block):
        style = Style(font_family="Times", font_size=10, bold=False)
        tokens = [make_token(0, 0, style=style), make_token(15, 0, style=style)]
        assert detect_lines(make_block(tokens))[0].style == style

    def test_mixed_style_keeps_shared_fields(self, make_token, make_block):
        tokens = [
            make_token(0, 0, style=Style(font_family="Times", bold=True)),
            make_token(15, 0, style=Style(font_family="Times", bold=False)),
        ]
        style = detect_lines(make_block(tokens))[0].style
        assert style.font_family == "Times"
        assert style.bold is None

    def test_average_font_size(self, make_token, make_block):
        tokens = [
            make_token(0, 0, style=Style(font_size=9)),
            make_token(15, 0, style=Style(font_size=12)),
            make_token(30, 0),
        ]
        line = detect_lines(make_block(tokens))[0]
        assert line.avg_font_size == pytest.approx(10.5)
        assert line.style is None

    def test_average_font_size_unknown(self, make_token, make_block):
        tokens = [make_token(0, 0), make_token(15, 0, style=Style(font_family="Times"))]
        assert detect_lines(make_block(tokens))[0].avg_font_size is None


class TestPartition:
    def test_every_token_in_exactly_one_line(self, make_row, make_token, make_block):
        tokens = make_row(0, 0, 5) + make_row(20, 0, 2) + make_row(20, 200, 3) + [make_token(90, 60)]
        block = make_block(tokens)
        lines = detect_lines(block)

        assigned = [tid for line in lines for tid in line.token_ids]
        assert len(assigned) == len(set(assigned))
        assert set(assigned) == {token.id for token in block.tokens()}

    def test_empty_block(self):
        assert detect_lines(Block(id="empty", x=0, y=0, width=10, height=10)) == []

    def test_invalid_tokens_are_skipped(self, make_row, make_token, make_block):
        block = make_block(make_row(0, 0, 3) + [make_token(50, 0, height=-1, token_id="bad")])
        lines = detect_lines(block)
        assert "bad" not in {tid for line in lines for tid in line.token_ids}
        assert sum(len(line.token_ids) for line in lines) == 3

    def test_invalid_block_raises(self):
        block = Block(id="b", x=0, y=0, width=-1, height=10)
        with pytest.raises(InvalidGeometryError):
            detect_lines(block)

    def test_invalid_config_raises(self, make_row, make_block):
        with pytest.raises(LayoutValidationError):
            detect_lines(make_block(make_row(0, 0, 2)), LayoutConfig(alignment_tolerance=-1))


class TestTextGranularity:
    def test_texts_are_grouped_with_their_tokens(self, make_token):
        first = Text(
            id="text1", x=0, y=0, width=25, height=10,
            tokens=[make_token(0, 0, token_id="a"), make_token(15, 0, token_id="b")],
        )
        second = Text(id="text2", x=30, y=0, width=10, height=10, tokens=[make_token(30, 0, token_id="c")])
        block = Block(id="b1", x=0, y=0, width=40, height=10, texts=[second, first])

        lines = detect_lines(block, LayoutConfig(line_granularity="text"))

        assert len(lines) == 1
        assert lines[0].member_ids == ("text1", "text2")
        assert lines[0].token_ids == ("a", "b", "c")
