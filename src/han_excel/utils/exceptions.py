"""Centralized exception classes for han-excel.

This module provides a hierarchy of custom exceptions with error codes,
a mapping onto the five error kinds carried by failure results, and
structured error details for consistent error handling.

Exception Hierarchy:
    HanExcelError (base)
    ├── ValidationError
    ├── BuildError
    ├── StyleError
    ├── WorksheetError
    │   ├── WorksheetExistsError
    │   └── WorksheetStateError
    ├── CellError
    └── ReaderError

Error Codes:
    All errors have a unique error code (e.g., "E1001") that can be used
    for programmatic error handling and documentation.
"""

from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from han_excel.result import ErrorInfo


class ErrorType(str, Enum):
    """Kinds of failure reported through results."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    BUILD_ERROR = "BUILD_ERROR"
    STYLE_ERROR = "STYLE_ERROR"
    WORKSHEET_ERROR = "WORKSHEET_ERROR"
    CELL_ERROR = "CELL_ERROR"


class ErrorCode(str, Enum):
    """Enumeration of all error codes used in the package.

    Error codes are grouped by category:
    - E1xxx: Validation errors
    - E2xxx: Build and export errors
    - E3xxx: Style errors
    - E4xxx: Worksheet errors
    - E5xxx: Cell errors
    - E6xxx: Reader errors
    - E9xxx: Internal errors
    """

    # Validation errors (E1xxx)
    VALIDATION_FAILED = "E1001"
    EMPTY_WORKBOOK = "E1002"
    EMPTY_WORKSHEET = "E1003"
    INVALID_OPTION = "E1004"

    # Build errors (E2xxx)
    BUILD_FAILED = "E2001"
    BUILD_IN_PROGRESS = "E2002"
    SERIALIZATION_FAILED = "E2003"
    DOWNLOAD_FAILED = "E2004"

    # Style errors (E3xxx)
    INVALID_STYLE = "E3001"

    # Worksheet errors (E4xxx)
    WORKSHEET_EXISTS = "E4001"
    WORKSHEET_NOT_FOUND = "E4002"
    WORKSHEET_LIMIT_EXCEEDED = "E4003"
    INVALID_WORKSHEET_NAME = "E4004"
    WORKSHEET_ALREADY_BUILT = "E4005"

    # Cell errors (E5xxx)
    ROW_LIMIT_EXCEEDED = "E5001"
    COLUMN_LIMIT_EXCEEDED = "E5002"

    # Reader errors (E6xxx)
    READ_FAILED = "E6001"
    MAPPER_FAILED = "E6002"
    FILE_NOT_FOUND = "E6003"

    # Internal errors (E9xxx)
    INTERNAL_ERROR = "E9001"


class HanExcelError(Exception):
    """Base exception for all han-excel errors.

    All custom exceptions in the package should inherit from this class.
    It provides:
    - Unique error codes for programmatic handling
    - The result error kind the exception maps to
    - Structured error details for logging and debugging

    Attributes:
        message: Human-readable error message.
        error_code: Unique error code from ErrorCode enum.
        details: Optional dictionary with additional error details.
        error_type: Error kind used when converted to a failure result.
    """

    error_type: ErrorType = ErrorType.BUILD_ERROR

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Error code from ErrorCode enum.
            details: Optional additional details about the error.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert the exception to a dictionary.

        Returns:
            Dictionary with error information.
        """
        result: dict[str, Any] = {
            "error_code": self.error_code.value,
            "error_type": self.error_type.value,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result

    def to_error_info(self, stack: str = "") -> "ErrorInfo":
        """Convert the exception to the error payload of a failure result."""
        from han_excel.result import ErrorInfo

        details = dict(self.details)
        details["error_code"] = self.error_code.value
        return ErrorInfo(
            kind=self.error_type,
            message=self.message,
            stack=stack,
            details=details,
        )

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code.value}] {self.message}"


# =============================================================================
# Validation Errors (E1xxx)
# =============================================================================


class ValidationError(HanExcelError):
    """Structural precondition failure for workbooks, worksheets or options."""

    error_type = ErrorType.VALIDATION_ERROR

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        field: str | None = None,
        errors: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with validation details.

        Args:
            message: Main error message.
            error_code: Error code.
            field: Field that failed validation.
            errors: List of validation errors.
            details: Additional details.
        """
        details = details or {}
        if field:
            details["field"] = field
        if errors:
            details["validation_errors"] = errors
        super().__init__(message, error_code, details)
        self.field = field
        self.errors = errors or []


# =============================================================================
# Build Errors (E2xxx)
# =============================================================================


class BuildError(HanExcelError):
    """Raised when building or exporting a workbook fails."""

    error_type = ErrorType.BUILD_ERROR

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.BUILD_FAILED,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code, details)


# =============================================================================
# Style Errors (E3xxx)
# =============================================================================


class StyleError(HanExcelError):
    """Raised for style descriptors that cannot be expressed by the engine."""

    error_type = ErrorType.STYLE_ERROR

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INVALID_STYLE,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code, details)


# =============================================================================
# Worksheet Errors (E4xxx)
# =============================================================================


class WorksheetError(HanExcelError):
    """Base class for worksheet-related errors."""

    error_type = ErrorType.WORKSHEET_ERROR

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INVALID_WORKSHEET_NAME,
        worksheet_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with worksheet information.

        Args:
            message: Error message.
            error_code: Error code.
            worksheet_name: Name of the worksheet involved.
            details: Additional details.
        """
        details = details or {}
        if worksheet_name:
            details["worksheet_name"] = worksheet_name
        super().__init__(message, error_code, details)
        self.worksheet_name = worksheet_name


class WorksheetExistsError(WorksheetError):
    """Raised when adding a worksheet whose name is already taken."""

    def __init__(self, worksheet_name: str) -> None:
        super().__init__(
            message=f'Worksheet "{worksheet_name}" already exists',
            error_code=ErrorCode.WORKSHEET_EXISTS,
            worksheet_name=worksheet_name,
        )


class WorksheetStateError(WorksheetError):
    """Raised when staging content on a worksheet that was already built."""

    def __init__(self, worksheet_name: str, operation: str) -> None:
        super().__init__(
            message=(
                f'Worksheet "{worksheet_name}" has already been built; '
                f"{operation} is not allowed"
            ),
            error_code=ErrorCode.WORKSHEET_ALREADY_BUILT,
            worksheet_name=worksheet_name,
            details={"operation": operation},
        )


# =============================================================================
# Cell Errors (E5xxx)
# =============================================================================


class CellError(HanExcelError):
    """Raised when a cell cannot be placed on the grid."""

    error_type = ErrorType.CELL_ERROR

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        row: int | None = None,
        column: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with grid position.

        Args:
            message: Error message.
            error_code: Error code.
            row: 1-based row of the offending cell.
            column: 1-based column of the offending cell.
            details: Additional details.
        """
        details = details or {}
        if row is not None:
            details["row"] = row
        if column is not None:
            details["column"] = column
        super().__init__(message, error_code, details)
        self.row = row
        self.column = column


# =============================================================================
# Reader Errors (E6xxx)
# =============================================================================


class ReaderError(HanExcelError):
    """Raised when a workbook cannot be read or projected."""

    error_type = ErrorType.VALIDATION_ERROR

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.READ_FAILED,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code, details)
