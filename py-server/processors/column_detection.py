"""Column Detector

Partitions a page into vertical reading bands. Line boxes are rasterized
into a numpy occupancy grid; x bins that stay empty across most text-bearing
rows form gutter candidates, and wide enough candidate runs inside the
content span split the page at their midpoints.
"""

import logging
import math
from bisect import bisect_left
from typing import List, Optional, Sequence, Tuple

import numpy as np

from models.layout_types import Column, Line, Page, PageThresholds
from processors.geometry import check_page, exceeds, partition_valid
from processors.layout_config import LayoutConfig, resolve_layout_config
from processors.line_detection import detect_lines
from processors.spacing_mode import compute_page_thresholds

logger = logging.getLogger(__name__)


def _occupancy_grid(lines: Sequence[Line], page_width: float, resolution: float) -> np.ndarray:
    """Boolean grid (rows x bins) marking the cells covered by a line box"""
    top = min(line.top for line in lines)
    bottom = max(line.bottom for line in lines)

    n_bins = max(1, math.ceil(page_width / resolution))
    n_rows = max(1, math.ceil((bottom - top) / resolution))
    grid = np.zeros((n_rows, n_bins), dtype=bool)

    for line in lines:
        r0 = min(n_rows - 1, max(0, math.floor((line.top - top) / resolution)))
        r1 = min(n_rows, max(r0 + 1, math.ceil((line.bottom - top) / resolution)))
        c0 = min(n_bins - 1, max(0, math.floor(line.left / resolution)))
        c1 = min(n_bins, max(c0 + 1, math.ceil(line.right / resolution)))
        grid[r0:r1, c0:c1] = True

    return grid


def _candidate_runs(candidates: np.ndarray) -> List[Tuple[int, int]]:
    """Maximal runs of True as inclusive (start, end) bin indices"""
    padded = np.concatenate(([False], candidates, [False])).astype(np.int8)
    changes = np.diff(padded)
    starts = np.flatnonzero(changes == 1)
    ends = np.flatnonzero(changes == -1) - 1
    return list(zip(starts.tolist(), ends.tolist()))


def find_gutters(
    lines: Sequence[Line],
    page_width: float,
    horizontal_spacing_mode: float,
    config: Optional[LayoutConfig] = None
) -> List[Tuple[float, float]]:
    """
    Locate the vertical whitespace bands separating reading columns.

    A bin is a gutter candidate when it is uncovered in at least
    `gutter_min_fraction` of the rows that carry text. Each candidate run is
    clipped to the content span and trimmed to its least covered bins, so a
    short column next to a gutter does not drag the run onto the margin.
    Runs still touching the content edges are margins, not gutters.

    Args:
        lines: Lines of the page
        page_width: Page width in page units
        horizontal_spacing_mode: Page horizontal spacing mode
        config: Detector options

    Returns:
        Gutters as (x_start, x_end) pairs, left to right
    """
    config = resolve_layout_config(config)
    if not lines:
        return []

    resolution = config.profile_resolution
    grid = _occupancy_grid(lines, page_width, resolution)

    text_rows = grid[grid.any(axis=1)]
    covered_bins = np.flatnonzero(grid.any(axis=0))
    content_start, content_end = int(covered_bins[0]), int(covered_bins[-1])

    coverage = text_rows.sum(axis=0)
    empty_fraction = (text_rows.shape[0] - coverage) / text_rows.shape[0]
    candidates = empty_fraction >= config.gutter_min_fraction
    min_width = horizontal_spacing_mode * config.gutter_width_factor

    gutters = []
    for start, end in _candidate_runs(candidates):
        start, end = max(start, content_start), min(end, content_end)
        if start > end:
            continue

        run = coverage[start:end + 1]
        lowest = np.flatnonzero(run == run.min())
        start, end = start + int(lowest[0]), start + int(lowest[-1])

        if start <= content_start or end >= content_end:
            continue
        width = (end - start + 1) * resolution
        if not exceeds(width, min_width, resolution):
            continue
        gutters.append((start * resolution, min(page_width, (end + 1) * resolution)))

    logger.debug(f"Found {len(gutters)} gutters (min width {min_width:.2f}) on {len(lines)} lines")
    return gutters


def _page_lines(page: Page, config: LayoutConfig, thresholds: PageThresholds) -> List[Line]:
    blocks, _ = partition_valid(page.blocks)
    lines = []
    for block in blocks:
        lines.extend(detect_lines(block, config, thresholds))
    return lines


def detect_columns(
    page: Page,
    config: Optional[LayoutConfig] = None,
    thresholds: Optional[PageThresholds] = None,
    lines: Optional[Sequence[Line]] = None
) -> List[Column]:
    """
    Partition a page into columns and assign each line to one of them.

    Columns are disjoint, ordered left to right and jointly span
    [0, page width). A line belongs to the column containing its horizontal
    center; a center on a boundary goes to the left column.

    Args:
        page: Page to analyze
        config: Detector options (defaults when None)
        thresholds: Page thresholds; computed from the page when None
        lines: Lines of the page; detected block by block when None

    Raises:
        InvalidGeometryError: If the page size is not positive and finite
        LayoutValidationError: If the configuration is invalid
    """
    config = resolve_layout_config(config)
    check_page(page)

    if thresholds is None:
        thresholds = compute_page_thresholds(page, config)
    if lines is None:
        lines = _page_lines(page, config, thresholds)

    gutters = find_gutters(lines, page.width, thresholds.horizontal_spacing_mode, config)
    boundaries = [(x_start + x_end) / 2 for x_start, x_end in gutters]
    edges = [0.0] + boundaries + [float(page.width)]

    members: List[List[Line]] = [[] for _ in range(len(edges) - 1)]
    for line in lines:
        center = min(max(line.center_x, 0.0), float(page.width))
        members[bisect_left(boundaries, center)].append(line)

    columns = []
    for index, column_lines in enumerate(members):
        column_lines.sort(key=lambda line: (line.y, line.x))
        columns.append(Column(
            id=f"p{page.number:03d}_c{index:02d}",
            page_number=page.number,
            index=index,
            x_start=edges[index],
            x_end=edges[index + 1],
            lines=tuple(column_lines),
        ))

    logger.debug(
        f"Page {page.number}: {len(columns)} columns "
        f"(boundaries {[round(b, 2) for b in boundaries]})"
    )
    return columns
