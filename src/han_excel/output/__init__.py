"""Serialized output and reader projections.

This module provides the Blob/save helpers used by the builder and the
dataclasses returned by ExcelReader.
"""

from han_excel.output.export import Blob, resolve_path, save_as, serialize_workbook
from han_excel.output.formats import (
    DetailedCell,
    DetailedFormat,
    FlatSheet,
    FlatWorkbook,
    JsonCell,
    JsonRow,
    JsonSheet,
    JsonWorkbook,
    OutputFormat,
)

__all__ = [
    "Blob",
    "DetailedCell",
    "DetailedFormat",
    "FlatSheet",
    "FlatWorkbook",
    "JsonCell",
    "JsonRow",
    "JsonSheet",
    "JsonWorkbook",
    "OutputFormat",
    "resolve_path",
    "save_as",
    "serialize_workbook",
]
