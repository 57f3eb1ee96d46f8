"""Structured logging utilities for han-excel.

This module provides:
- Build and worksheet tracking using contextvars for correlation
- Structured logging with consistent key=value suffixes
- Performance metrics logging helpers
- Progress tracking for multi-worksheet builds

Usage:
    from han_excel.utils.logging import get_logger, LogContext

    logger = get_logger(__name__)

    with LogContext(build_id="b-1f2e", worksheet="Sales"):
        logger.info("Emitting body rows", rows=12)

    with timed_operation(logger, "serialize") as metrics:
        metrics.cells_written = 240
"""

import logging
import time
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

# Context variables for build tracking
_build_id_var: ContextVar[str | None] = ContextVar("build_id", default=None)
_worksheet_var: ContextVar[str | None] = ContextVar("worksheet", default=None)
_extra_context_var: ContextVar[dict[str, Any] | None] = ContextVar(
    "extra_context", default=None
)


def get_build_id() -> str | None:
    """Get the current build ID from context.

    Returns:
        The current build ID or None if not set.
    """
    return _build_id_var.get()


def set_build_id(build_id: str | None) -> None:
    """Set the build ID in context.

    Args:
        build_id: The build ID to set, or None to clear.
    """
    _build_id_var.set(build_id)


def get_worksheet_name() -> str | None:
    """Get the name of the worksheet currently being processed."""
    return _worksheet_var.get()


def set_worksheet_name(name: str | None) -> None:
    """Set the worksheet name in context."""
    _worksheet_var.set(name)


def get_extra_context() -> dict[str, Any]:
    """Get additional context from context vars.

    Returns:
        Dictionary of extra context values.
    """
    ctx = _extra_context_var.get()
    return ctx if ctx is not None else {}


def set_extra_context(context: dict[str, Any]) -> None:
    """Set additional context in context vars.

    Args:
        context: Dictionary of extra context values.
    """
    _extra_context_var.set(context)


def clear_context() -> None:
    """Clear all context variables."""
    _build_id_var.set(None)
    _worksheet_var.set(None)
    _extra_context_var.set(None)


@dataclass
class PerformanceMetrics:
    """Container for performance metrics of a build phase.

    Attributes:
        operation: Name of the operation being measured.
        start_time: When the operation started.
        end_time: When the operation ended.
        duration_seconds: Duration in seconds.
        worksheets_built: Number of worksheets built (if applicable).
        cells_written: Number of cells written (if applicable).
        styles_applied: Number of styles applied (if applicable).
        bytes_written: Size of the serialized output (if applicable).
        custom_metrics: Additional custom metrics.
    """

    operation: str
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    duration_seconds: float = 0.0
    worksheets_built: int = 0
    cells_written: int = 0
    styles_applied: int = 0
    bytes_written: int = 0
    custom_metrics: dict[str, Any] = field(default_factory=dict)

    def finish(self) -> None:
        """Mark the operation as complete and calculate duration."""
        self.end_time = datetime.now(UTC)
        self.duration_seconds = (self.end_time - self.start_time).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging.

        Returns:
            Dictionary with all non-empty metrics.
        """
        result: dict[str, Any] = {
            "operation": self.operation,
            "duration_seconds": self.duration_seconds,
        }
        if self.worksheets_built > 0:
            result["worksheets_built"] = self.worksheets_built
        if self.cells_written > 0:
            result["cells_written"] = self.cells_written
        if self.styles_applied > 0:
            result["styles_applied"] = self.styles_applied
        if self.bytes_written > 0:
            result["bytes_written"] = self.bytes_written
        if self.custom_metrics:
            result["custom_metrics"] = self.custom_metrics
        return result


class StructuredLogFormatter(logging.Formatter):
    """Log formatter that prefixes records with the build context.

    Adds build_id and worksheet to log records when available, plus any
    extra context set through LogContext.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record with context information.

        Args:
            record: The log record to format.

        Returns:
            Formatted log message string.
        """
        prefix_parts = []
        build_id = get_build_id()
        if build_id:
            prefix_parts.append(f"build_id={build_id}")
        worksheet = get_worksheet_name()
        if worksheet:
            prefix_parts.append(f"worksheet={worksheet}")

        for key, value in get_extra_context().items():
            prefix_parts.append(f"{key}={value}")

        prefix = f"[{' '.join(prefix_parts)}] " if prefix_parts else ""

        original_msg = record.msg
        record.msg = f"{prefix}{original_msg}"
        result = super().format(record)
        record.msg = original_msg

        return result


class StructuredLogger:
    """Logger wrapper with structured key=value messages.

    Wraps a standard Python logger with additional methods for:
    - Logging with trailing key=value pairs
    - Performance metrics logging
    - Progress tracking
    - Build outcome logging
    """

    def __init__(self, name: str) -> None:
        """Initialize the structured logger.

        Args:
            name: Logger name (typically __name__ of the module).
        """
        self._logger = logging.getLogger(name)
        self._name = name

    @property
    def logger(self) -> logging.Logger:
        """Access the underlying Python logger."""
        return self._logger

    def _build_message(self, message: str, **kwargs: Any) -> str:
        """Build a message with structured key-value pairs.

        Args:
            message: Base message.
            **kwargs: Additional key-value pairs to include.

        Returns:
            Formatted message string.
        """
        if not kwargs:
            return message

        parts = [f"{k}={v}" for k, v in kwargs.items()]
        return f"{message} | {', '.join(parts)}"

    def debug(self, message: str, **kwargs: Any) -> None:
        self._logger.debug(self._build_message(message, **kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        self._logger.info(self._build_message(message, **kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        self._logger.warning(self._build_message(message, **kwargs))

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        """Log an error message.

        Args:
            message: Log message.
            exc_info: Whether to include exception info.
            **kwargs: Additional structured data.
        """
        self._logger.error(self._build_message(message, **kwargs), exc_info=exc_info)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log an exception with traceback.

        Args:
            message: Log message.
            **kwargs: Additional structured data.
        """
        self._logger.exception(self._build_message(message, **kwargs))

    def log_performance(self, metrics: PerformanceMetrics) -> None:
        """Log performance metrics.

        Args:
            metrics: Performance metrics to log.
        """
        self.info(f"Performance: {metrics.operation}", **metrics.to_dict())

    def log_progress(
        self,
        stage: str,
        current: int,
        total: int,
        details: str | None = None,
    ) -> None:
        """Log progress for multi-step operations.

        Args:
            stage: Current processing stage.
            current: Current progress count.
            total: Total items to process.
            details: Optional additional details.
        """
        percentage = (current / total * 100) if total > 0 else 0
        kwargs: dict[str, Any] = {
            "current": current,
            "total": total,
            "percentage": f"{percentage:.1f}%",
        }
        if details:
            kwargs["details"] = details
        self.info(f"Progress: {stage}", **kwargs)

    def log_build_result(
        self,
        success: bool,
        duration_seconds: float,
        worksheets: int,
        file_size: int = 0,
        error_message: str | None = None,
    ) -> None:
        """Log the outcome of a workbook build.

        Args:
            success: Whether the build succeeded.
            duration_seconds: Total build time.
            worksheets: Number of worksheets in the workbook.
            file_size: Size of the serialized workbook in bytes.
            error_message: Error message if the build failed.
        """
        kwargs: dict[str, Any] = {
            "success": success,
            "duration_seconds": f"{duration_seconds:.3f}",
            "worksheets": worksheets,
        }
        if success:
            kwargs["file_size"] = file_size
        if error_message:
            kwargs["error"] = error_message

        level = logging.INFO if success else logging.ERROR
        self._logger.log(level, self._build_message("Build finished", **kwargs))


class LogContext:
    """Context manager for adding temporary context to logs.

    Usage:
        with LogContext(worksheet="Sales", table="Q1"):
            logger.info("Emitting rows")  # Includes worksheet and table
    """

    def __init__(self, **kwargs: Any) -> None:
        """Initialize with context values.

        Args:
            **kwargs: Key-value pairs to add to log context.
        """
        self._new_context = kwargs
        self._old_context: dict[str, Any] = {}
        self._old_build_id: str | None = None
        self._old_worksheet: str | None = None

    def __enter__(self) -> "LogContext":
        """Enter the context, saving old values and setting new ones."""
        self._old_context = get_extra_context().copy()
        self._old_build_id = get_build_id()
        self._old_worksheet = get_worksheet_name()

        new_context = dict(self._new_context)
        build_id = new_context.pop("build_id", None)
        worksheet = new_context.pop("worksheet", None)

        if build_id is not None:
            set_build_id(build_id)
        if worksheet is not None:
            set_worksheet_name(worksheet)

        merged = self._old_context.copy()
        merged.update(new_context)
        set_extra_context(merged)

        return self

    def __exit__(self, *args: Any) -> None:
        """Exit the context, restoring old values."""
        set_extra_context(self._old_context)
        set_build_id(self._old_build_id)
        set_worksheet_name(self._old_worksheet)


@contextmanager
def timed_operation(
    logger: StructuredLogger,
    operation: str,
    enabled: bool = True,
) -> Generator[PerformanceMetrics, None, None]:
    """Context manager for timing operations.

    Usage:
        with timed_operation(logger, "serialize") as metrics:
            metrics.bytes_written = len(data)

        # Logs: "Performance: serialize | duration_seconds=..."

    Args:
        logger: Logger to use for output.
        operation: Name of the operation.
        enabled: When False the metrics are still collected but not logged.

    Yields:
        PerformanceMetrics instance for tracking.
    """
    metrics = PerformanceMetrics(operation=operation)
    try:
        yield metrics
    finally:
        metrics.finish()
        if enabled:
            logger.log_performance(metrics)


def configure_logging(
    level: int | str = logging.INFO,
    format_string: str | None = None,
    use_structured_formatter: bool = True,
) -> None:
    """Configure logging for applications using han-excel.

    Args:
        level: Log level (int or string like "INFO").
        format_string: Custom format string (uses default if None).
        use_structured_formatter: Whether to use the structured formatter.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())

    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setLevel(level)

    formatter: logging.Formatter
    if use_structured_formatter:
        formatter = StructuredLogFormatter(format_string)
    else:
        formatter = logging.Formatter(format_string)

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger for a module.

    Args:
        name: Logger name (typically __name__).

    Returns:
        StructuredLogger instance.

    Example:
        logger = get_logger(__name__)
        logger.info("Worksheet built", worksheet="Sales", rows=10)
    """
    return StructuredLogger(name)


class ProgressTracker:
    """Helper for tracking and logging progress of multi-step operations.

    Usage:
        tracker = ProgressTracker(logger, "Building worksheets", total=3)
        for worksheet in worksheets:
            build(worksheet)
            tracker.update(details=worksheet.name)
        tracker.complete()
    """

    def __init__(
        self,
        logger: StructuredLogger,
        stage: str,
        total: int,
        log_interval: int = 1,
    ) -> None:
        """Initialize the progress tracker.

        Args:
            logger: Logger to use.
            stage: Description of the stage being tracked.
            total: Total number of items.
            log_interval: Log every N updates (1 = every update).
        """
        self._logger = logger
        self._stage = stage
        self._total = total
        self._current = 0
        self._log_interval = log_interval
        self._start_time = time.time()

    @property
    def current(self) -> int:
        return self._current

    def update(self, increment: int = 1, details: str | None = None) -> None:
        """Update progress.

        Args:
            increment: Number of items completed.
            details: Optional details about current item.
        """
        self._current += increment
        if self._current % self._log_interval == 0 or self._current == self._total:
            self._logger.log_progress(
                self._stage,
                self._current,
                self._total,
                details,
            )

    def complete(self) -> float:
        """Mark progress as complete.

        Returns:
            Total duration in seconds.
        """
        duration = time.time() - self._start_time
        self._logger.info(
            f"Completed: {self._stage}",
            total_items=self._total,
            duration_seconds=f"{duration:.2f}",
        )
        return duration
