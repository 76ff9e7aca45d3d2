"""Statistical Mode Engine

Turns spacing distributions into adaptive thresholds. Values are quantized
into buckets whose width scales with the page's median element height, the
most populous bucket wins, and its mean becomes the representative spacing.
Thresholds are computed once per page and handed to every detector as a
PageThresholds value.
"""

import logging
import statistics
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from models.layout_types import BoundingBox, Column, Line, Page, PageThresholds
from processors.geometry import (
    block_elements,
    horizontal_spacing,
    on_row,
    partition_valid,
    reading_order_key,
    union_box,
    vertical_spacing,
    within,
)
from processors.layout_config import LayoutConfig
from utils.validation import EmptyDistributionError

logger = logging.getLogger(__name__)

MIN_QUANTIZATION_RESOLUTION = 1e-2
DEFAULT_FALLBACK_SPACING = 1.0


# ============================================================================
# Mode computation
# ============================================================================

def spacing_mode(values: Iterable[float], resolution: float) -> float:
    """
    Most frequent quantized value of a spacing distribution.

    Each value is rounded to the nearest multiple of `resolution`. The
    bucket holding the most values wins; ties go to the smaller spacing.
    The result is the mean of the winning bucket's raw values, so it is
    independent of the order of the input.

    Args:
        values: Spacing measurements; non-finite entries are ignored
        resolution: Bucket width in page units

    Returns:
        Representative spacing

    Raises:
        EmptyDistributionError: If no finite value remains
        ValueError: If resolution is not positive
    """
    if not resolution > 0:
        raise ValueError(f"Quantization resolution must be positive, got {resolution}")

    data = np.asarray(list(values), dtype=float)
    data = data[np.isfinite(data)]
    if data.size == 0:
        raise EmptyDistributionError("No finite spacing values to compute a mode from")

    buckets = np.floor(data / resolution + 0.5).astype(np.int64)
    unique_buckets, inverse, counts = np.unique(buckets, return_inverse=True, return_counts=True)

    # np.unique sorts ascending and argmax returns the first maximum
    winner = int(np.argmax(counts))
    members = data[inverse.reshape(-1) == winner]

    logger.debug(
        f"Spacing mode {members.mean():.3f} from {data.size} values "
        f"({len(unique_buckets)} buckets, resolution {resolution:.3f})"
    )
    return float(members.mean())


def mode_or_fallback(
    values: Sequence[float],
    resolution: float,
    fallback: float,
    label: str = "spacing"
) -> Tuple[float, bool]:
    """
    Spacing mode, or a fallback value when the distribution is empty.

    Returns:
        Tuple of (value, used_fallback)
    """
    try:
        return spacing_mode(values, resolution), False
    except EmptyDistributionError:
        logger.warning(f"No {label} measurements, falling back to {fallback:.3f}")
        return fallback, True


# ============================================================================
# Distribution collection
# ============================================================================

def group_rows(elements: Sequence[BoundingBox], epsilon: float) -> List[List[BoundingBox]]:
    """Sweep elements in (baseline, x) order and cut them into text rows"""
    rows: List[List[BoundingBox]] = []
    base: Optional[float] = None
    row_box: Optional[BoundingBox] = None

    for element in sorted(elements, key=reading_order_key):
        if rows and on_row(base, row_box, element, epsilon):
            rows[-1].append(element)
            row_box = union_box([row_box, element])
        else:
            rows.append([element])
            base = element.baseline
            row_box = element

    return rows


def collect_horizontal_spacings(elements: Sequence[BoundingBox], epsilon: float) -> List[float]:
    """Positive gaps between horizontally consecutive elements of the same row"""
    spacings = []
    for row in group_rows(elements, epsilon):
        ordered = sorted(row, key=lambda e: e.x)
        for left, right in zip(ordered, ordered[1:]):
            gap = horizontal_spacing(left, right)
            if gap > 0:
                spacings.append(gap)
    return spacings


def collect_line_spacings(lines: Sequence[Line], epsilon: float) -> List[float]:
    """
    Vertical gaps between consecutive lines of one column.

    Lines whose baselines match within epsilon sit side by side and are
    skipped; overlapping lines contribute a gap of zero.
    """
    spacings = []
    for previous, current in zip(lines, lines[1:]):
        if within(previous.baseline, current.baseline, epsilon):
            continue
        spacings.append(max(0.0, vertical_spacing(previous, current)))
    return spacings


# ============================================================================
# Per-page thresholds
# ============================================================================

def compute_thresholds(elements: Sequence[BoundingBox], config: LayoutConfig) -> PageThresholds:
    """
    Adaptive thresholds for a set of valid elements.

    The alignment tolerance and the quantization resolution both scale with
    the median element height. Without any same-row gap the horizontal mode
    falls back to the median height.
    """
    heights = [e.height for e in elements]
    median_height = float(statistics.median(heights)) if heights else 0.0

    epsilon = config.alignment_tolerance * median_height
    resolution = max(config.quantization_fraction * median_height, MIN_QUANTIZATION_RESOLUTION)
    fallback = median_height if median_height > 0 else DEFAULT_FALLBACK_SPACING

    horizontal_mode, horizontal_fallback = mode_or_fallback(
        collect_horizontal_spacings(elements, epsilon),
        resolution,
        fallback,
        label="horizontal spacing",
    )

    return PageThresholds(
        median_height=median_height,
        alignment_tolerance=epsilon,
        quantization_resolution=resolution,
        horizontal_spacing_mode=horizontal_mode,
        horizontal_fallback=horizontal_fallback,
    )


def compute_page_thresholds(page: Page, config: LayoutConfig) -> PageThresholds:
    """Thresholds over every valid element of a page at the configured granularity"""
    blocks, _ = partition_valid(page.blocks)
    elements = []
    for block in blocks:
        block_valid, _ = block_elements(block, config.line_granularity)
        elements.extend(block_valid)

    thresholds = compute_thresholds(elements, config)
    logger.debug(
        f"Page {page.number}: median height {thresholds.median_height:.2f}, "
        f"epsilon {thresholds.alignment_tolerance:.2f}, "
        f"horizontal mode {thresholds.horizontal_spacing_mode:.2f}"
    )
    return thresholds


def with_line_spacing(thresholds: PageThresholds, columns: Sequence[Column]) -> PageThresholds:
    """Copy of the thresholds with the line spacing mode over all columns"""
    spacings = []
    for column in columns:
        spacings.extend(collect_line_spacings(column.lines, thresholds.alignment_tolerance))

    fallback = thresholds.median_height if thresholds.median_height > 0 else DEFAULT_FALLBACK_SPACING
    line_mode, line_fallback = mode_or_fallback(
        spacings,
        thresholds.quantization_resolution,
        fallback,
        label="line spacing",
    )
    return thresholds.model_copy(update={
        'line_spacing_mode': line_mode,
        'line_fallback': line_fallback,
    })
