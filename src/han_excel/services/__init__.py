"""Workbook building and reading services."""

from han_excel.services.excel_builder import ExcelBuilder, create_builder
from han_excel.services.excel_reader import ExcelReader, ReaderOptions
from han_excel.services.worksheet import Worksheet

__all__ = ["ExcelBuilder", "ExcelReader", "ReaderOptions", "Worksheet", "create_builder"]
