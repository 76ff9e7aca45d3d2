"""
Document Layout Extractor

Single entry point from raw uploaded bytes to a DocumentLayout: picks the
ingestion adapter for the content, then runs the layout engine.
"""

import logging
import os
from dataclasses import replace
from typing import Optional

from engine.config import EngineConfig, LayoutConfig
from engine.layout_engine import LayoutEngine
from extractors.pdf_reader import read_pdf_document
from extractors.xml_reader import parse_interchange_format
from models.layout_types import Document, DocumentLayout
from utils.validation import VALIDATION_CONSTANTS

logger = logging.getLogger(__name__)


def is_pdf_content(content: bytes, filename: Optional[str] = None) -> bool:
    """Check if content should go through the PDF reader rather than the XML one"""
    if content.startswith(VALIDATION_CONSTANTS['PDF_SIGNATURE']):
        return True
    return os.path.splitext(filename or '')[1].lower() == '.pdf'


def read_document(content: bytes, filename: Optional[str] = None) -> Document:
    """
    Build the Document object model for uploaded content.

    Raises:
        MalformedInputError: If the adapter cannot read the content
    """
    if is_pdf_content(content, filename):
        logger.debug(f"Reading {filename or 'upload'} as PDF")
        return read_pdf_document(content)

    logger.debug(f"Reading {filename or 'upload'} as pdf2xml")
    return parse_interchange_format(content)


def extract_layout(
    content: bytes,
    filename: Optional[str] = None,
    layout_config: Optional[LayoutConfig] = None,
    engine_config: Optional[EngineConfig] = None
) -> DocumentLayout:
    """
    Recover the layout of an uploaded document.

    Args:
        content: Raw file bytes (pdf2xml XML or PDF)
        filename: Original file name, used when the content has no signature
        layout_config: Detector options; overrides the engine config's layout
        engine_config: Worker pool and resource limits

    Returns:
        DocumentLayout with pages in document order

    Raises:
        MalformedInputError: If the content cannot be read
        LayoutValidationError: If a configuration is invalid
        ProcessingTimeoutError: If the analysis exceeds its time budget
        MemoryLimitError: If the process exceeds its memory budget
    """
    engine_config = engine_config or EngineConfig.default()
    if layout_config is not None:
        engine_config = replace(engine_config, layout=layout_config)

    document = read_document(content, filename)

    with LayoutEngine(engine_config) as engine:
        layout = engine.analyze(document)

    logger.info(
        f"Layout extraction complete: {len(layout.pages)} pages, "
        f"{sum(len(page.paragraphs) for page in layout.pages)} paragraphs"
    )
    return layout
