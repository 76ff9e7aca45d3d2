"""
Layout Inference Engine

Core engine module for coordinating layout analysis.
Runs the per-page pipeline and fans pages out to a worker pool.
"""

__version__ = "1.0.0"

from engine.config import EngineConfig, LayoutConfig
from engine.layout_engine import LayoutEngine, analyze_document, analyze_page

__all__ = [
    'LayoutEngine',
    'EngineConfig',
    'LayoutConfig',
    'analyze_document',
    'analyze_page',
]
