"""
Layout Input Validation and Resource Management Utilities
Error types, upload validation, and resource monitoring for layout analysis.
"""

import math
import os
import time
import psutil
from typing import Optional, Tuple
import logging

logger = logging.getLogger(__name__)

# Validation constants
VALIDATION_CONSTANTS = {
    'PDF_SIGNATURE': b'%PDF',
    'XML_BYTE_ORDER_MARK': b'\xef\xbb\xbf',
    'SUPPORTED_EXTENSIONS': ('.xml', '.pdf'),
    'MAX_FILE_SIZE_MB': 50,
    'MAX_PROCESSING_TIME_SECONDS': 300,  # 5 minutes
    'MAX_MEMORY_USAGE_MB': 1000,  # 1GB
}

class LayoutValidationError(Exception):
    """Custom exception for invalid layout input or configuration"""
    pass

class MalformedInputError(LayoutValidationError):
    """Raised by ingestion adapters for structurally invalid input"""
    pass

class InvalidGeometryError(LayoutValidationError):
    """Negative extent or non-finite coordinate on a single entity"""

    def __init__(self, message: str, entity_kind: str = "box", entity_id: Optional[str] = None):
        super().__init__(message)
        self.entity_kind = entity_kind
        self.entity_id = entity_id

class EmptyDistributionError(ValueError):
    """No measurement to compute a spacing mode from"""
    pass

class ProcessingTimeoutError(Exception):
    """Custom exception for processing timeouts"""
    pass

class MemoryLimitError(Exception):
    """Custom exception for memory limit exceeded"""
    pass

def is_finite_number(value) -> bool:
    """Check that a value is a real, finite number"""
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False

def validate_file_content(
    content: bytes,
    filename: Optional[str] = None,
    max_size_mb: Optional[int] = None
) -> Tuple[bool, Optional[str]]:
    """
    Validate uploaded file content before analysis

    Args:
        content: Raw file content bytes
        filename: Original file name, used to pick the expected format
        max_size_mb: Maximum file size in MB

    Returns:
        Tuple of (is_valid, error_message)
    """
    if max_size_mb is None:
        max_size_mb = VALIDATION_CONSTANTS['MAX_FILE_SIZE_MB']

    extension = os.path.splitext(filename or '')[1].lower()
    if extension not in VALIDATION_CONSTANTS['SUPPORTED_EXTENSIONS']:
        return False, f"Unsupported file type '{extension or filename}'. Expected one of {VALIDATION_CONSTANTS['SUPPORTED_EXTENSIONS']}"

    # Check size
    size_mb = len(content) / (1024 * 1024)
    if size_mb > max_size_mb:
        return False, f"File too large: {size_mb:.1f}MB (max: {max_size_mb}MB)"

    if not content.strip():
        return False, "File is empty"

    if extension == '.pdf':
        if not content.startswith(VALIDATION_CONSTANTS['PDF_SIGNATURE']):
            return False, "Invalid PDF signature in uploaded content"
    else:
        body = content
        if body.startswith(VALIDATION_CONSTANTS['XML_BYTE_ORDER_MARK']):
            body = body[len(VALIDATION_CONSTANTS['XML_BYTE_ORDER_MARK']):]
        if not body.lstrip().startswith(b'<'):
            return False, "Uploaded content does not look like XML"

    return True, None

class ResourceManager:
    """
    Context manager for tracking and limiting resource usage during layout analysis
    """

    def __init__(self, max_memory_mb: Optional[int] = None, max_time_seconds: Optional[int] = None):
        self.max_memory_mb = max_memory_mb or VALIDATION_CONSTANTS['MAX_MEMORY_USAGE_MB']
        self.max_time_seconds = max_time_seconds or VALIDATION_CONSTANTS['MAX_PROCESSING_TIME_SECONDS']
        self.start_time = None
        self.start_memory = None

    def __enter__(self):
        self.start_time = time.time()
        self.start_memory = psutil.Process().memory_info().rss / (1024 * 1024)
        logger.debug(f"ResourceManager: Starting processing with {self.start_memory:.1f}MB memory")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time:
            processing_time = time.time() - self.start_time
            current_memory = psutil.Process().memory_info().rss / (1024 * 1024)
            memory_delta = current_memory - self.start_memory if self.start_memory else 0

            logger.info(f"ResourceManager: Processing completed in {processing_time:.2f}s, "
                       f"memory usage: {memory_delta:+.1f}MB")
        return False

    @property
    def elapsed_seconds(self) -> float:
        if self.start_time is None:
            return 0.0
        return time.time() - self.start_time

    def remaining_seconds(self) -> float:
        """Time left before the processing limit is reached"""
        return max(0.0, self.max_time_seconds - self.elapsed_seconds)

    def check_limits(self):
        """Check if resource limits have been exceeded"""
        # Check time limit
        if self.start_time and self.elapsed_seconds > self.max_time_seconds:
            raise ProcessingTimeoutError(
                f"Processing timeout: {self.elapsed_seconds:.1f}s "
                f"(max: {self.max_time_seconds}s)"
            )

        # Check memory limit
        try:
            current_memory = psutil.Process().memory_info().rss / (1024 * 1024)
        except psutil.Error as e:
            logger.warning(f"Could not check memory usage: {e}")
            return

        if current_memory > self.max_memory_mb:
            raise MemoryLimitError(
                f"Memory limit exceeded: {current_memory:.1f}MB "
                f"(max: {self.max_memory_mb}MB)"
            )

__all__ = [
    'validate_file_content',
    'is_finite_number',
    'ResourceManager',
    'LayoutValidationError',
    'MalformedInputError',
    'InvalidGeometryError',
    'EmptyDistributionError',
    'ProcessingTimeoutError',
    'MemoryLimitError',
    'VALIDATION_CONSTANTS'
]
