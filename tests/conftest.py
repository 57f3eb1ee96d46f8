from __future__ import annotations

from collections.abc import Callable
from io import BytesIO

import pytest
from openpyxl import Workbook, load_workbook

from han_excel.cells import DataCell, FooterCell, HeaderCell
from han_excel.models import BuilderConfig, WorksheetConfig
from han_excel.services.excel_builder import ExcelBuilder
from han_excel.services.worksheet import Worksheet
from han_excel.styles.builder import StyleBuilder
from han_excel.styles.style import Style
from han_excel.utils.logging import clear_context


@pytest.fixture(autouse=True)
def _reset_log_context() -> None:
    clear_context()


@pytest.fixture
def builder() -> ExcelBuilder:
    """Builder with default limits and events enabled."""
    return ExcelBuilder(BuilderConfig())


@pytest.fixture
def worksheet() -> Worksheet:
    return Worksheet(WorksheetConfig(name="Sheet1"))


@pytest.fixture
def workbook() -> Workbook:
    """Empty openpyxl workbook without its default sheet."""
    wb = Workbook()
    wb.remove(wb.active)
    return wb


@pytest.fixture
def bold_style() -> Style:
    return StyleBuilder.create().font_bold().background_color("#FFEEAA").build()


@pytest.fixture
def sales_headers() -> tuple[HeaderCell, list[HeaderCell]]:
    """Title header plus two flat sub-headers."""
    title = HeaderCell(key="title", value="Sales Report", merge_cell=True)
    sub_headers = [
        HeaderCell(key="product", value="Product"),
        HeaderCell(key="amount", value="Amount"),
    ]
    return title, sub_headers


@pytest.fixture
def sales_row() -> list[DataCell]:
    return [
        DataCell(key="p1", value="Widget", header="product"),
        DataCell(key="a1", value=120, header="amount"),
    ]


@pytest.fixture
def total_footer() -> FooterCell:
    return FooterCell(key="total", value="Total", merge_cell=True, merge_to=2)


@pytest.fixture
def load_xlsx() -> Callable[[bytes], Workbook]:
    """Parse built workbook bytes back with openpyxl."""

    def _load(data: bytes) -> Workbook:
        return load_workbook(BytesIO(data))

    return _load
