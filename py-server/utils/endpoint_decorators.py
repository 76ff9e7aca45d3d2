"""
Decorators for FastAPI endpoint error handling and resource management.

This module provides decorators to handle common patterns in layout analysis
endpoints, such as upload validation, processing timeouts and error mapping.
"""

import logging
import asyncio
from functools import wraps
from typing import Callable, Optional
from fastapi import UploadFile, HTTPException, Request

from utils.validation import (
    validate_file_content,
    LayoutValidationError,
    ProcessingTimeoutError,
    MemoryLimitError,
    VALIDATION_CONSTANTS
)

logger = logging.getLogger(__name__)


def _to_http_exception(error: Exception, subject: str, timeout_seconds: float) -> HTTPException:
    """Map a layout analysis failure to the HTTP error reported to the client"""
    if isinstance(error, HTTPException):
        return error
    if isinstance(error, asyncio.TimeoutError):
        logger.error(f"Processing timed out after {timeout_seconds}s for {subject}")
        return HTTPException(
            status_code=408,
            detail=f"Layout analysis timed out after {timeout_seconds} seconds."
        )
    if isinstance(error, LayoutValidationError):
        logger.warning(f"Layout validation failed for {subject}: {error}")
        return HTTPException(
            status_code=400,
            detail=f"Layout validation failed: {str(error)}"
        )
    if isinstance(error, ProcessingTimeoutError):
        logger.error(f"Processing timeout for {subject}: {error}")
        return HTTPException(
            status_code=408,
            detail=f"Processing timeout: {str(error)}"
        )
    if isinstance(error, MemoryLimitError):
        logger.error(f"Memory limit exceeded for {subject}: {error}")
        return HTTPException(
            status_code=507,
            detail=f"Memory limit exceeded: {str(error)}"
        )

    logger.error(f"Unexpected error processing {subject}: {error}")
    logger.exception("Full exception details:")
    return HTTPException(
        status_code=500,
        detail=f"Internal server error during layout analysis: {str(error)}"
    )


async def _run_with_timeout(func: Callable, args, kwargs, subject: str, timeout_seconds: float):
    try:
        return await asyncio.wait_for(func(*args, **kwargs), timeout=timeout_seconds)
    except Exception as e:
        raise _to_http_exception(e, subject, timeout_seconds)


def handle_layout_upload(func: Callable) -> Callable:
    """
    Decorator to handle common upload processing patterns:
    - File type validation
    - File content reading and validation
    - Processing timeout management
    - Standardized error handling

    The decorated function must accept `request: Request` as a keyword argument.
    The decorator will store data in `request.state`:
    - `request.state.file_content`: Raw bytes of the uploaded file
    - `request.state.filename`: Original name of the uploaded file
    """
    @wraps(func)
    async def wrapper(*args, **kwargs):
        request: Request = kwargs.get('request')
        if not request:
            raise HTTPException(
                status_code=500,
                detail="Endpoint decorated with handle_layout_upload must accept 'request: Request'"
            )

        file: UploadFile = kwargs.get('file')
        if not file:
            raise HTTPException(
                status_code=400,
                detail="File parameter is required"
            )

        # Defaults to the configured max if not provided
        processing_timeout: Optional[int] = kwargs.get('processing_timeout')
        timeout_seconds = processing_timeout or VALIDATION_CONSTANTS['MAX_PROCESSING_TIME_SECONDS']

        try:
            content = await file.read()
        except Exception as e:
            logger.error(f"Error reading uploaded file: {e}")
            raise HTTPException(
                status_code=400,
                detail=f"Error reading uploaded file: {str(e)}"
            )

        is_valid_content, content_error = validate_file_content(
            content,
            filename=file.filename,
            max_size_mb=VALIDATION_CONSTANTS['MAX_FILE_SIZE_MB']
        )

        if not is_valid_content:
            logger.warning(f"File content validation failed for {file.filename}: {content_error}")
            raise HTTPException(
                status_code=400,
                detail=content_error
            )

        request.state.file_content = content
        request.state.filename = file.filename

        return await _run_with_timeout(func, args, kwargs, file.filename, timeout_seconds)

    return wrapper


def handle_layout_errors(func: Callable) -> Callable:
    """
    Decorator for endpoints taking a parsed document instead of an upload.

    Applies the processing timeout and the same error mapping as
    handle_layout_upload.
    """
    @wraps(func)
    async def wrapper(*args, **kwargs):
        processing_timeout: Optional[int] = kwargs.get('processing_timeout')
        timeout_seconds = processing_timeout or VALIDATION_CONSTANTS['MAX_PROCESSING_TIME_SECONDS']
        return await _run_with_timeout(func, args, kwargs, "document payload", timeout_seconds)

    return wrapper
