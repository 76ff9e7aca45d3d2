"""
Layout Engine - Page Pipeline Coordinator

Runs the layout pipeline (thresholds → lines → columns → line spacing →
paragraphs) on every page of a document. Pages are independent units of
work: the engine fans them out to a thread pool and reassembles the results
in document order.

Usage:
    >>> from engine.layout_engine import LayoutEngine
    >>> from engine.config import EngineConfig
    >>>
    >>> with LayoutEngine(EngineConfig(max_workers=8)) as engine:
    ...     layout = engine.analyze(document)
    ...     print(f"{len(layout.pages)} pages analyzed")
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Any, Dict, List, Optional, Sequence, Union

from engine.config import EngineConfig
from models.layout_types import Document, DocumentLayout, GeometryIssue, Page, PageLayout
from processors.column_detection import detect_columns
from processors.geometry import check_page, page_geometry_issues, partition_valid
from processors.layout_config import LayoutConfig, resolve_layout_config
from processors.line_detection import detect_lines
from processors.paragraph_detection import detect_paragraphs
from processors.spacing_mode import compute_page_thresholds, with_line_spacing
from utils.validation import (
    InvalidGeometryError,
    LayoutValidationError,
    ProcessingTimeoutError,
    ResourceManager,
)

logger = logging.getLogger(__name__)


def analyze_page(
    page: Page,
    config: Optional[LayoutConfig] = None,
    *,
    is_first_page: bool = True,
    is_last_page: bool = True
) -> PageLayout:
    """
    Recover the layout of a single page.

    Invalid blocks, texts and tokens are reported as issues and skipped; a
    page without a positive, finite size yields a layout with no columns.

    Args:
        page: Page to analyze
        config: Detector options (defaults when None)
        is_first_page: Whether the page opens the document
        is_last_page: Whether the page closes the document

    Returns:
        PageLayout with thresholds, columns, paragraphs and issues
    """
    config = resolve_layout_config(config)

    try:
        check_page(page)
    except InvalidGeometryError as e:
        logger.warning(f"Skipping page {page.number}: {e}")
        return PageLayout(
            page_number=page.number,
            width=page.width,
            height=page.height,
            issues=(GeometryIssue(entity_kind=e.entity_kind, entity_id=e.entity_id, message=str(e)),),
        )

    issues = page_geometry_issues(page, config.line_granularity)
    if issues:
        logger.warning(f"Page {page.number}: skipping {len(issues)} entities with invalid geometry")

    thresholds = compute_page_thresholds(page, config)

    lines = []
    blocks, _ = partition_valid(page.blocks)
    for block in blocks:
        lines.extend(detect_lines(block, config, thresholds))

    columns = detect_columns(page, config, thresholds, lines=lines)
    thresholds = with_line_spacing(thresholds, columns)

    # Document boundaries are the first and last columns that hold text
    filled = [j for j, column in enumerate(columns) if column.lines]
    paragraphs = []
    for j, column in enumerate(columns):
        paragraphs.extend(detect_paragraphs(
            column,
            config,
            thresholds,
            is_first_column=is_first_page and bool(filled) and j == filled[0],
            is_last_column=is_last_page and bool(filled) and j == filled[-1],
        ))

    logger.debug(
        f"Page {page.number}: {len(lines)} lines, {len(columns)} columns, "
        f"{len(paragraphs)} paragraphs, {len(issues)} issues"
    )

    return PageLayout(
        page_number=page.number,
        width=page.width,
        height=page.height,
        thresholds=thresholds,
        columns=tuple(columns),
        paragraphs=tuple(paragraphs),
        issues=tuple(issues),
    )


class LayoutEngine:
    """
    Layout inference engine with a worker pool and batch resource limits.

    The pool is created when entering the context manager and shut down on
    exit. Each page is analyzed by one worker; no state is shared between
    workers.

    Example:
        >>> with LayoutEngine() as engine:
        ...     layouts = engine.analyze_many([first_document, second_document])
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        """
        Initialize the engine with an optional configuration.

        Args:
            config: Engine configuration (uses defaults if None)

        Raises:
            LayoutValidationError: If configuration is invalid
        """
        self.config = config or EngineConfig.default()

        if not self.config.validate():
            raise LayoutValidationError("Invalid engine configuration")

        self._executor: Optional[ThreadPoolExecutor] = None
        self._pages_analyzed = 0

        logger.debug(f"LayoutEngine initialized: {self.config!r}")

    def __enter__(self) -> 'LayoutEngine':
        logger.info(f"Starting layout engine with {self.config.max_workers} workers")
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.max_workers,
            thread_name_prefix="layout",
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """
        Exit context manager - shut the worker pool down.

        Pending pages are cancelled if an exception occurred.
        """
        logger.info("Closing layout engine")
        if self._executor is not None:
            self._executor.shutdown(wait=True, cancel_futures=exc_type is not None)
            self._executor = None

        if exc_type is not None:
            logger.error(f"Exception during layout analysis: {exc_val}")

        # Don't suppress exceptions
        return False

    @property
    def is_open(self) -> bool:
        """Check if engine is currently open."""
        return self._executor is not None

    def analyze(self, document: Document) -> DocumentLayout:
        """
        Analyze every page of a document.

        Raises:
            RuntimeError: If engine not opened
            ProcessingTimeoutError: If the pages are not done in time
            MemoryLimitError: If the process exceeds its memory budget
        """
        return self.analyze_many([document])[0]

    def analyze_many(self, documents: Sequence[Document]) -> List[DocumentLayout]:
        """
        Analyze a batch of documents concurrently.

        All pages of all documents share the worker pool and the batch time
        budget. Results keep the input order of documents and pages.

        Raises:
            RuntimeError: If engine not opened
            ProcessingTimeoutError: If the batch exceeds timeout_seconds
            MemoryLimitError: If the process exceeds max_memory_mb
        """
        if self._executor is None:
            raise RuntimeError("Engine not opened - use within context manager")

        results: List[List[Optional[PageLayout]]] = [[None] * len(doc.pages) for doc in documents]
        jobs = {}

        with ResourceManager(self.config.max_memory_mb, self.config.timeout_seconds) as resources:
            for d, document in enumerate(documents):
                last = len(document.pages) - 1
                for p, page in enumerate(document.pages):
                    future = self._executor.submit(
                        analyze_page,
                        page,
                        self.config.layout,
                        is_first_page=p == 0,
                        is_last_page=p == last,
                    )
                    jobs[future] = (d, p)

            logger.info(f"Analyzing {len(jobs)} pages from {len(documents)} documents")

            try:
                for future in as_completed(jobs, timeout=self.config.timeout_seconds):
                    d, p = jobs[future]
                    results[d][p] = future.result()
                    resources.check_limits()
            except FuturesTimeoutError:
                self._cancel(jobs)
                raise ProcessingTimeoutError(
                    f"Layout analysis timed out after {self.config.timeout_seconds}s"
                )
            except Exception:
                self._cancel(jobs)
                raise

        self._pages_analyzed += len(jobs)
        return [DocumentLayout(pages=tuple(pages)) for pages in results]

    @staticmethod
    def _cancel(jobs) -> None:
        cancelled = sum(1 for future in jobs if future.cancel())
        if cancelled:
            logger.warning(f"Cancelled {cancelled} pending pages")

    def get_status(self) -> Dict[str, Any]:
        """
        Get engine status information.

        Returns:
            Dictionary with status information
        """
        return {
            'is_open': self.is_open,
            'pages_analyzed': self._pages_analyzed,
            'config': self.config.to_dict(),
        }

    def __repr__(self) -> str:
        """String representation for debugging."""
        status = "open" if self.is_open else "closed"
        return f"LayoutEngine({status}, {self.config.max_workers} workers)"


def analyze_document(
    document: Document,
    config: Optional[Union[EngineConfig, LayoutConfig]] = None
) -> DocumentLayout:
    """
    Analyze one document with a short-lived engine.

    Args:
        document: Document to analyze
        config: Engine configuration, or detector options alone

    Returns:
        DocumentLayout with pages in document order
    """
    if isinstance(config, LayoutConfig):
        config = EngineConfig(layout=config)

    with LayoutEngine(config) as engine:
        return engine.analyze(document)
