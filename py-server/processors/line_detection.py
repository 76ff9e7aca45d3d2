"""Line Detector

Groups the tokens (or text runs) of a block into lines. Elements are swept
in (baseline, x) order; each one joins the nearest open line it shares a row
with when the horizontal gap stays within the adaptive spacing threshold,
otherwise it opens a new line. A line stays open until an element that no
longer shares its row is met.
"""

import logging
from typing import List, Optional

from models.layout_types import Block, BoundingBox, Line, PageThresholds, Style
from processors.geometry import (
    block_elements,
    exceeds,
    horizontal_spacing,
    on_row,
    reading_order_key,
    shape_of,
    union_box,
)
from processors.layout_config import LayoutConfig, resolve_layout_config
from processors.spacing_mode import compute_thresholds

logger = logging.getLogger(__name__)


class _OpenLine:
    """Line under construction during the sweep"""

    def __init__(self, element: BoundingBox):
        self.base = element.baseline
        self.box = element
        self.members = [element]

    def add(self, element: BoundingBox):
        self.members.append(element)
        self.box = union_box([self.box, element])


def _member_token_ids(member) -> List[str]:
    # Text runs contribute their tokens, tokens contribute themselves
    tokens = getattr(member, 'tokens', None)
    if tokens is None:
        return [member.id]
    return [token.id for token in tokens]


def _freeze(block: Block, index: int, line: _OpenLine) -> Line:
    members = sorted(line.members, key=lambda m: (m.x, m.y))
    box = union_box(members)
    return Line(
        id=f"{block.id}_l{index:03d}",
        block_id=block.id,
        x=box.x,
        y=box.y,
        width=box.width,
        height=box.height,
        base=line.base,
        member_ids=tuple(m.id for m in members),
        token_ids=tuple(tid for m in members for tid in _member_token_ids(m)),
        style=Style.common(m.style for m in members),
        avg_font_size=Style.average_font_size(m.style for m in members),
    )


def detect_lines(
    block: Block,
    config: Optional[LayoutConfig] = None,
    thresholds: Optional[PageThresholds] = None
) -> List[Line]:
    """
    Group a block's elements into lines.

    Args:
        block: Block to analyze
        config: Detector options (defaults when None)
        thresholds: Page thresholds; computed from the block itself when None

    Returns:
        Lines in sweep order (top to bottom), members ordered left to right.
        Every valid element belongs to exactly one line.

    Raises:
        InvalidGeometryError: If the block's own geometry is invalid
        LayoutValidationError: If the configuration is invalid
    """
    config = resolve_layout_config(config)
    shape_of(block)

    elements, issues = block_elements(block, config.line_granularity)
    for issue in issues:
        logger.warning(f"Block {block.id}: skipping {issue.message}")

    if not elements:
        return []

    if thresholds is None:
        thresholds = compute_thresholds(elements, config)

    epsilon = thresholds.alignment_tolerance
    max_gap = thresholds.horizontal_spacing_mode * config.horizontal_slack_factor

    lines: List[_OpenLine] = []
    open_lines: List[_OpenLine] = []

    for element in sorted(elements, key=reading_order_key):
        open_lines = [line for line in open_lines if on_row(line.base, line.box, element, epsilon)]

        target = None
        best_gap = None
        for line in open_lines:
            gap = horizontal_spacing(line.box, element)
            if exceeds(gap, max_gap, epsilon):
                continue
            if best_gap is None or gap < best_gap:
                target, best_gap = line, gap

        if target is not None:
            target.add(element)
        else:
            target = _OpenLine(element)
            lines.append(target)
            open_lines.append(target)

    result = [_freeze(block, index, line) for index, line in enumerate(lines)]
    logger.debug(f"Block {block.id}: {len(elements)} elements grouped into {len(result)} lines")
    return result
