"""Utilities package for han-excel.

This package provides:
- Centralized exception classes (exceptions.py)
- Structured logging utilities (logging.py)
"""

from han_excel.utils.exceptions import (
    BuildError,
    CellError,
    ErrorCode,
    ErrorType,
    HanExcelError,
    ReaderError,
    StyleError,
    ValidationError,
    WorksheetError,
    WorksheetExistsError,
    WorksheetStateError,
)
from han_excel.utils.logging import (
    LogContext,
    StructuredLogger,
    get_build_id,
    get_logger,
    set_build_id,
)

__all__ = [
    # Exceptions
    "BuildError",
    "CellError",
    "ErrorCode",
    "ErrorType",
    "HanExcelError",
    "ReaderError",
    "StyleError",
    "ValidationError",
    "WorksheetError",
    "WorksheetExistsError",
    "WorksheetStateError",
    # Logging
    "LogContext",
    "StructuredLogger",
    "get_build_id",
    "get_logger",
    "set_build_id",
]
