"""Han Excel - fluent builder and reader for xlsx workbooks on top of openpyxl."""

from han_excel.cells import (
    CellPosition,
    CellType,
    DataCell,
    DataValidationRule,
    FooterCell,
    HeaderCell,
    NumberFormat,
)
from han_excel.events import EventBus, ListenerOptions
from han_excel.models import (
    BuilderConfig,
    BuilderEvent,
    BuilderEventType,
    BuildOptions,
    BuildStats,
    DownloadOptions,
    WorkbookMetadata,
    WorksheetConfig,
)
from han_excel.output.formats import OutputFormat
from han_excel.result import ErrorInfo, Failure, Result, Success
from han_excel.services import (
    ExcelBuilder,
    ExcelReader,
    ReaderOptions,
    Worksheet,
    create_builder,
)
from han_excel.styles import Style, StyleBuilder, StyleTheme, get_theme

__all__ = [
    "BuildOptions",
    "BuildStats",
    "BuilderConfig",
    "BuilderEvent",
    "BuilderEventType",
    "CellPosition",
    "CellType",
    "DataCell",
    "DataValidationRule",
    "DownloadOptions",
    "ErrorInfo",
    "EventBus",
    "ExcelBuilder",
    "ExcelReader",
    "Failure",
    "FooterCell",
    "HeaderCell",
    "ListenerOptions",
    "NumberFormat",
    "OutputFormat",
    "ReaderOptions",
    "Result",
    "Style",
    "StyleBuilder",
    "StyleTheme",
    "Success",
    "WorkbookMetadata",
    "Worksheet",
    "WorksheetConfig",
    "create_builder",
    "get_theme",
]
__version__ = "0.1.0"
