"""Geometric primitives over bounding boxes

Pure shape, spacing and alignment measurements. Every comparison takes its
tolerance as an explicit argument; nothing here compares raw coordinates for
equality.
"""

import logging
from typing import FrozenSet, Iterable, List, Sequence, Tuple, TypeVar

from models.layout_types import (
    Alignment,
    Block,
    BoundingBox,
    GeometryIssue,
    Page,
    Shape,
)
from utils.validation import InvalidGeometryError, is_finite_number

logger = logging.getLogger(__name__)

BoxT = TypeVar("BoxT", bound=BoundingBox)

ROW_OVERLAP_RATIO = 0.5


def _entity_kind(box: BoundingBox) -> str:
    return type(box).__name__.lower()


def shape_of(box: BoundingBox) -> Shape:
    """Width and height of a box

    Raises:
        InvalidGeometryError: negative extent or non-finite coordinate
    """
    entity_id = getattr(box, 'id', None)
    kind = _entity_kind(box)

    for name in ('x', 'y', 'width', 'height'):
        if not is_finite_number(getattr(box, name)):
            raise InvalidGeometryError(
                f"{kind} {entity_id!r}: non-finite {name} ({getattr(box, name)})",
                entity_kind=kind,
                entity_id=entity_id,
            )

    if box.width < 0 or box.height < 0:
        raise InvalidGeometryError(
            f"{kind} {entity_id!r}: negative extent ({box.width} x {box.height})",
            entity_kind=kind,
            entity_id=entity_id,
        )

    return Shape(width=box.width, height=box.height)


def horizontal_spacing(a: BoundingBox, b: BoundingBox) -> float:
    """Gap between the right edge of the left-most box and the left edge of the other.

    Negative values denote horizontal overlap.
    """
    left, other = (a, b) if a.x <= b.x else (b, a)
    return other.left - left.right


def vertical_spacing(a: BoundingBox, b: BoundingBox) -> float:
    """Gap between the bottom edge of the top-most box and the top edge of the other.

    Negative values denote vertical overlap.
    """
    upper, other = (a, b) if a.y <= b.y else (b, a)
    return other.top - upper.bottom


def vertical_overlap(a: BoundingBox, b: BoundingBox) -> float:
    """Length of the shared y-range (0 when disjoint)"""
    return max(0.0, min(a.bottom, b.bottom) - max(a.top, b.top))


def within(a: float, b: float, tolerance: float) -> bool:
    """Tolerance-based equality"""
    return abs(a - b) <= tolerance


def exceeds(value: float, threshold: float, tolerance: float) -> bool:
    """True if value is above threshold by more than the tolerance"""
    return value > threshold + tolerance


def alignment(a: BoundingBox, b: BoundingBox, epsilon: float) -> FrozenSet[Alignment]:
    """Edges and centers shared by two boxes within epsilon"""
    edges = {
        Alignment.LEFT: (a.left, b.left),
        Alignment.RIGHT: (a.right, b.right),
        Alignment.TOP: (a.top, b.top),
        Alignment.BOTTOM: (a.bottom, b.bottom),
        Alignment.BASELINE: (a.baseline, b.baseline),
        Alignment.CENTER_X: (a.center_x, b.center_x),
        Alignment.CENTER_Y: (a.center_y, b.center_y),
    }
    return frozenset(edge for edge, (ea, eb) in edges.items() if within(ea, eb, epsilon))


def on_row(base: float, row_box: BoundingBox, box: BoundingBox, epsilon: float) -> bool:
    """Check if a box belongs to a row given by its reference baseline and extent.

    Either the baselines match within epsilon, or the vertical extents
    overlap by more than half the shorter height.
    """
    if within(base, box.baseline, epsilon):
        return True
    shorter = min(row_box.height, box.height)
    return vertical_overlap(row_box, box) > shorter * ROW_OVERLAP_RATIO


def union_box(boxes: Iterable[BoundingBox]) -> BoundingBox:
    """Calculate bounding box encompassing all boxes"""
    boxes = list(boxes)
    if not boxes:
        return BoundingBox(x=0, y=0, width=0, height=0)

    min_x = min(b.left for b in boxes)
    min_y = min(b.top for b in boxes)
    max_x = max(b.right for b in boxes)
    max_y = max(b.bottom for b in boxes)
    return BoundingBox(x=min_x, y=min_y, width=max_x - min_x, height=max_y - min_y)


def reading_order_key(box: BoundingBox) -> Tuple[float, float]:
    """Sort key for sweeping elements row by row"""
    return (box.baseline, box.x)


def partition_valid(elements: Sequence[BoxT]) -> Tuple[List[BoxT], List[GeometryIssue]]:
    """Split elements into geometrically valid ones and issues for the rest"""
    valid: List[BoxT] = []
    issues: List[GeometryIssue] = []

    for element in elements:
        try:
            shape_of(element)
        except InvalidGeometryError as e:
            issues.append(GeometryIssue(entity_kind=e.entity_kind, entity_id=e.entity_id, message=str(e)))
            continue
        if not is_finite_number(element.baseline):
            entity_id = getattr(element, 'id', None)
            issues.append(GeometryIssue(
                entity_kind=_entity_kind(element),
                entity_id=entity_id,
                message=f"{_entity_kind(element)} {entity_id!r}: non-finite baseline",
            ))
            continue
        valid.append(element)

    return valid, issues


def block_elements(block: Block, granularity: str = "token") -> Tuple[list, List[GeometryIssue]]:
    """Valid elements of a block at the requested granularity.

    Invalid texts are dropped together with their tokens.
    """
    texts, issues = partition_valid(block.texts)
    if granularity == "text":
        return texts, issues

    tokens, token_issues = partition_valid([token for text in texts for token in text.tokens])
    return tokens, issues + token_issues


def check_page(page: Page) -> None:
    """Raise InvalidGeometryError unless the page has a positive, finite size"""
    for name in ('width', 'height'):
        value = getattr(page, name)
        if not is_finite_number(value) or value <= 0:
            raise InvalidGeometryError(
                f"page {page.number}: {name} must be positive and finite, got {value}",
                entity_kind="page",
                entity_id=page.id or str(page.number),
            )


def page_geometry_issues(page: Page, granularity: str = "token") -> List[GeometryIssue]:
    """Every invalid block, text and token of a page"""
    blocks, issues = partition_valid(page.blocks)
    for block in blocks:
        _, element_issues = block_elements(block, granularity)
        issues.extend(element_issues)

    if issues:
        logger.debug(f"Page {page.number}: {len(issues)} entities with invalid geometry")
    return issues
