"""Paragraph & Orphan Detector

Splits the lines of a column into paragraphs and flags the paragraphs cut
by a column boundary. Paragraphs never span columns.
"""

import logging
from typing import List, Optional

from models.layout_types import Alignment, BoundaryFlag, Column, Line, PageThresholds, Paragraph
from processors.geometry import alignment, exceeds, union_box, vertical_spacing
from processors.layout_config import LayoutConfig, resolve_layout_config
from processors.spacing_mode import compute_thresholds, with_line_spacing

logger = logging.getLogger(__name__)


def _starts_paragraph(previous: Line, current: Line, max_gap: float, epsilon: float) -> bool:
    if exceeds(vertical_spacing(previous, current), max_gap, epsilon):
        return True
    return Alignment.LEFT not in alignment(previous, current, epsilon)


def _boundary_flag(index: int, count: int, is_first_column: bool, is_last_column: bool) -> BoundaryFlag:
    # A paragraph that is both first and last of a middle column is a widow
    if index == count - 1 and not is_last_column:
        return BoundaryFlag.WIDOW
    if index == 0 and not is_first_column:
        return BoundaryFlag.ORPHAN
    return BoundaryFlag.NONE


def detect_paragraphs(
    column: Column,
    config: Optional[LayoutConfig] = None,
    thresholds: Optional[PageThresholds] = None,
    *,
    is_first_column: bool = True,
    is_last_column: bool = True
) -> List[Paragraph]:
    """
    Group the lines of a column into paragraphs.

    A new paragraph starts when the gap to the previous line exceeds
    `line_spacing_mode * paragraph_spacing_factor` or when the left edges
    are not aligned.

    Args:
        column: Column whose lines are ordered top to bottom
        config: Detector options (defaults when None)
        thresholds: Page thresholds; the line spacing mode is derived from
            this column when missing
        is_first_column: Whether the column is the document's first column
        is_last_column: Whether the column is the document's last column

    Returns:
        Paragraphs top to bottom. The last paragraph of any column but the
        document's last is flagged WIDOW; the first paragraph of any column
        but the document's first is flagged ORPHAN.
    """
    config = resolve_layout_config(config)
    lines = list(column.lines)
    if not lines:
        return []

    if thresholds is None:
        thresholds = compute_thresholds(lines, config)
    if thresholds.line_spacing_mode is None:
        thresholds = with_line_spacing(thresholds, [column])

    epsilon = thresholds.alignment_tolerance
    max_gap = thresholds.line_spacing_mode * config.paragraph_spacing_factor

    groups: List[List[Line]] = [[lines[0]]]
    for previous, current in zip(lines, lines[1:]):
        if _starts_paragraph(previous, current, max_gap, epsilon):
            groups.append([current])
        else:
            groups[-1].append(current)

    paragraphs = []
    for index, group in enumerate(groups):
        box = union_box(group)
        paragraphs.append(Paragraph(
            id=f"{column.id}_p{index:03d}",
            column_id=column.id,
            x=box.x,
            y=box.y,
            width=box.width,
            height=box.height,
            line_ids=tuple(line.id for line in group),
            boundary=_boundary_flag(index, len(groups), is_first_column, is_last_column),
        ))

    logger.debug(f"Column {column.id}: {len(lines)} lines grouped into {len(paragraphs)} paragraphs")
    return paragraphs
