"""
Layout Inference Components

Clustering stages that recover the logical layout of a page from the
geometry of its tokens:

- Geometric primitives: shape, spacing and tolerance-based alignment
- Statistical mode engine: adaptive thresholds from spacing distributions
- Line detector: tokens or text runs into lines
- Column detector: lines into vertical reading bands
- Paragraph detector: column lines into paragraphs with orphan/widow flags

Each detector is a pure function of its inputs, a LayoutConfig and the
page's PageThresholds.
"""

from processors.layout_config import LayoutConfig, resolve_layout_config
from processors.geometry import (
    alignment,
    exceeds,
    horizontal_spacing,
    shape_of,
    vertical_spacing,
    within,
)
from processors.spacing_mode import (
    compute_page_thresholds,
    compute_thresholds,
    spacing_mode,
    with_line_spacing,
)
from processors.line_detection import detect_lines
from processors.column_detection import detect_columns, find_gutters
from processors.paragraph_detection import detect_paragraphs

__version__ = "1.0.0"
__all__ = [
    'LayoutConfig',
    'resolve_layout_config',
    'alignment',
    'exceeds',
    'horizontal_spacing',
    'shape_of',
    'vertical_spacing',
    'within',
    'compute_page_thresholds',
    'compute_thresholds',
    'spacing_mode',
    'with_line_spacing',
    'detect_lines',
    'detect_columns',
    'find_gutters',
    'detect_paragraphs',
]
