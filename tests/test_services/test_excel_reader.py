"""Tests for ExcelReader projections."""

from __future__ import annotations

from datetime import datetime
from io import BytesIO
from pathlib import Path

import pandas as pd
import pytest
from openpyxl import Workbook
from openpyxl.comments import Comment

from han_excel.cells import DataCell, HeaderCell
from han_excel.models import BuilderConfig, WorkbookMetadata
from han_excel.output.formats import (
    DetailedFormat,
    FlatSheet,
    FlatWorkbook,
    JsonWorkbook,
    OutputFormat,
)
from han_excel.result import Failure, Success
from han_excel.services.excel_builder import ExcelBuilder
from han_excel.services.excel_reader import ExcelReader, ReaderOptions
from han_excel.utils.exceptions import ErrorCode, ErrorType


@pytest.fixture
def reader() -> ExcelReader:
    return ExcelReader()


@pytest.fixture
def sample_bytes() -> bytes:
    """Two-sheet workbook: a sales table and a sheet of mixed cell kinds."""
    wb = Workbook()
    sales = wb.active
    sales.title = "Sales"
    sales.append(["Product", "Amount", "Date"])
    sales.append(["Widget", 120, datetime(2024, 1, 15)])
    sales.append(["Gadget", 80.5, datetime(2024, 2, 1)])
    sales["A4"] = "Total"
    sales["B4"] = "=SUM(B2:B3)"
    sales["B2"].number_format = "#,##0"

    notes = wb.create_sheet("Notes")
    notes["A1"] = "Docs"
    notes["A1"].hyperlink = "https://example.com/docs"
    notes["A2"] = "Note"
    notes["A2"].comment = Comment("Remember", "tester")
    notes["A3"] = True

    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


class TestWorksheetFormat:
    """Tests for the nested worksheet projection."""

    async def test_reads_every_sheet(self, reader: ExcelReader, sample_bytes: bytes) -> None:
        result = await reader.from_bytes(sample_bytes)

        assert isinstance(result, Success)
        workbook = result.data
        assert isinstance(workbook, JsonWorkbook)
        assert workbook.total_sheets == 2
        assert [(s.name, s.index) for s in workbook.sheets] == [("Sales", 0), ("Notes", 1)]

        sales = workbook.sheets[0]
        assert sales.total_rows == 4
        assert sales.total_columns == 3
        assert sales.headers is None
        assert [c.value for c in sales.rows[0].cells] == ["Product", "Amount", "Date"]
        assert sales.rows[0].data is None
        assert [c.reference for c in sales.rows[3].cells] == ["A4", "B4"]

    async def test_first_row_as_headers(self, reader: ExcelReader, sample_bytes: bytes) -> None:
        result = await reader.from_bytes(
            sample_bytes, ReaderOptions(sheet_name="Sales", use_first_row_as_headers=True)
        )

        sheet = result.data.sheets[0]
        assert sheet.headers == ["Product", "Amount", "Date"]
        assert sheet.total_rows == 3
        assert sheet.rows[0].row_number == 2
        assert sheet.rows[0].data == {
            "Product": "Widget",
            "Amount": 120,
            "Date": "2024-01-15T00:00:00",
        }

    async def test_header_overrides(self, reader: ExcelReader, sample_bytes: bytes) -> None:
        by_column = await reader.from_bytes(
            sample_bytes,
            ReaderOptions(sheet_name=0, use_first_row_as_headers=True, headers={2: "Qty"}),
        )
        assert by_column.data.sheets[0].headers == ["Product", "Qty", "Date"]

        by_position = await reader.from_bytes(
            sample_bytes,
            ReaderOptions(sheet_name=0, use_first_row_as_headers=True, headers=["Name"]),
        )
        assert by_position.data.sheets[0].headers == ["Name", "Amount", "Date"]

    async def test_cell_types(self, reader: ExcelReader, sample_bytes: bytes) -> None:
        result = await reader.from_bytes(sample_bytes, ReaderOptions(sheet_name="Sales"))
        rows = result.data.sheets[0].rows

        assert [c.type for c in rows[1].cells] == ["string", "number", "date"]
        assert rows[1].cells[2].value == "2024-01-15T00:00:00"
        total = rows[3].cells[1]
        # No cached value is stored, so the formula source is returned
        assert total.value == "=SUM(B2:B3)"
        assert total.type == "unknown"
        assert total.formula is None

    async def test_include_formulas(self, reader: ExcelReader, sample_bytes: bytes) -> None:
        result = await reader.from_bytes(
            sample_bytes, ReaderOptions(sheet_name="Sales", include_formulas=True)
        )
        total = result.data.sheets[0].rows[3].cells[1]
        assert total.type == "formula"
        assert total.formula == "=SUM(B2:B3)"

    async def test_dates_as_objects(self, reader: ExcelReader, sample_bytes: bytes) -> None:
        result = await reader.from_bytes(
            sample_bytes, ReaderOptions(sheet_name="Sales", dates_as_iso=False)
        )
        assert result.data.sheets[0].rows[1].cells[2].value == datetime(2024, 1, 15)

    async def test_hyperlinks_comments_booleans(
        self, reader: ExcelReader, sample_bytes: bytes
    ) -> None:
        result = await reader.from_bytes(sample_bytes, ReaderOptions(sheet_name=1))
        sheet = result.data.sheets[0]
        link, note, flag = (row.cells[0] for row in sheet.rows)

        assert sheet.name == "Notes"
        assert (link.value, link.type) == ("Docs", "hyperlink")
        assert note.comment == "Remember"
        assert (flag.value, flag.type) == (True, "boolean")

    async def test_include_formatting(self, reader: ExcelReader, sample_bytes: bytes) -> None:
        result = await reader.from_bytes(
            sample_bytes, ReaderOptions(sheet_name="Sales", include_formatting=True)
        )
        row = result.data.sheets[0].rows[1]
        assert row.cells[0].formatted_value is None
        assert row.cells[1].formatted_value == "120"

    async def test_range_selection(self, reader: ExcelReader, sample_bytes: bytes) -> None:
        result = await reader.from_bytes(
            sample_bytes,
            ReaderOptions(sheet_name="Sales", start_row=2, end_row=3, start_column=2),
        )
        rows = result.data.sheets[0].rows
        assert [r.row_number for r in rows] == [2, 3]
        assert [c.reference for c in rows[0].cells] == ["B2", "C2"]

    async def test_include_empty_rows(self, reader: ExcelReader, sample_bytes: bytes) -> None:
        result = await reader.from_bytes(
            sample_bytes,
            ReaderOptions(sheet_name="Sales", end_row=5, include_empty_rows=True),
        )
        rows = result.data.sheets[0].rows
        assert len(rows) == 5
        assert [c.type for c in rows[4].cells] == ["null", "null", "null"]
        assert rows[3].cells[2].value is None

    async def test_to_dict_omits_missing_fields(
        self, reader: ExcelReader, sample_bytes: bytes
    ) -> None:
        result = await reader.from_bytes(sample_bytes, ReaderOptions(sheet_name="Sales"))
        data = result.data.to_dict()
        assert data["total_sheets"] == 1
        assert data["sheets"][0]["rows"][0]["cells"][0] == {
            "value": "Product",
            "type": "string",
            "reference": "A1",
        }


class TestSheetSelection:
    """Tests for selecting sheets that do not exist."""

    @pytest.mark.parametrize("sheet_name", ["Missing", 2, -1])
    async def test_missing_sheet(
        self, reader: ExcelReader, sample_bytes: bytes, sheet_name: str | int
    ) -> None:
        result = await reader.from_bytes(sample_bytes, ReaderOptions(sheet_name=sheet_name))
        assert isinstance(result, Failure)
        assert result.error.kind == ErrorType.VALIDATION_ERROR
        assert result.error.details["error_code"] == ErrorCode.WORKSHEET_NOT_FOUND.value


class TestDetailedFormat:
    """Tests for the detailed cell list projection."""

    async def test_cells(self, reader: ExcelReader, sample_bytes: bytes) -> None:
        result = await reader.from_bytes(
            sample_bytes,
            ReaderOptions(output_format=OutputFormat.DETAILED, sheet_name="Sales"),
        )

        detailed = result.data
        assert isinstance(detailed, DetailedFormat)
        assert detailed.total_cells == 11
        amount = detailed.cells[4]
        assert amount.reference == "B2"
        assert amount.column == 2
        assert amount.column_letter == "B"
        assert amount.row == 2
        assert amount.sheet == "Sales"
        assert amount.text == "120"
        assert amount.type == "number"

    async def test_all_sheets(self, reader: ExcelReader, sample_bytes: bytes) -> None:
        result = await reader.from_bytes(
            sample_bytes, ReaderOptions(output_format=OutputFormat.DETAILED)
        )
        assert {cell.sheet for cell in result.data.cells} == {"Sales", "Notes"}
        assert result.data.total_cells == 14


class TestFlatFormat:
    """Tests for the flat projection."""

    async def test_single_sheet_with_headers(
        self, reader: ExcelReader, sample_bytes: bytes
    ) -> None:
        result = await reader.from_bytes(
            sample_bytes,
            ReaderOptions(
                output_format=OutputFormat.FLAT,
                sheet_name="Sales",
                use_first_row_as_headers=True,
            ),
        )

        flat = result.data
        assert isinstance(flat, FlatSheet)
        assert flat.sheet == "Sales"
        assert flat.headers == ["Product", "Amount", "Date"]
        assert flat.total_rows == 3
        assert flat.data[1] == {
            "Product": "Gadget",
            "Amount": 80.5,
            "Date": "2024-02-01T00:00:00",
        }
        assert flat.data[2] == {"Product": "Total", "Amount": "=SUM(B2:B3)", "Date": None}

    async def test_to_dataframe(self, reader: ExcelReader, sample_bytes: bytes) -> None:
        result = await reader.from_bytes(
            sample_bytes,
            ReaderOptions(
                output_format=OutputFormat.FLAT,
                sheet_name="Sales",
                use_first_row_as_headers=True,
                end_row=3,
            ),
        )
        frame = result.data.to_dataframe()
        assert isinstance(frame, pd.DataFrame)
        assert list(frame.columns) == ["Product", "Amount", "Date"]
        assert frame["Amount"].tolist() == [120, 80.5]

    async def test_all_sheets(self, reader: ExcelReader, sample_bytes: bytes) -> None:
        result = await reader.from_bytes(
            sample_bytes, ReaderOptions(output_format=OutputFormat.FLAT)
        )
        flat = result.data
        assert isinstance(flat, FlatWorkbook)
        assert list(flat.sheets) == ["Sales", "Notes"]
        assert flat.sheets["Notes"].data == [["Docs"], ["Note"], [True]]
        assert flat.sheets["Notes"].headers is None


class TestMapper:
    """Tests for the mapper hook."""

    async def test_mapper_output_returned(
        self, reader: ExcelReader, sample_bytes: bytes
    ) -> None:
        result = await reader.from_bytes(
            sample_bytes, ReaderOptions(mapper=lambda wb: [s.name for s in wb.sheets])
        )
        assert isinstance(result, Success)
        assert result.data == ["Sales", "Notes"]

    async def test_mapper_error(self, reader: ExcelReader, sample_bytes: bytes) -> None:
        def broken(_: JsonWorkbook) -> None:
            raise ValueError("bad shape")

        result = await reader.from_bytes(sample_bytes, ReaderOptions(mapper=broken))

        assert isinstance(result, Failure)
        assert result.error.kind == ErrorType.VALIDATION_ERROR
        assert result.error.message == "Mapper function error: bad shape"
        assert result.error.details["error_code"] == ErrorCode.MAPPER_FAILED.value


class TestSources:
    """Tests for the bytes, file and path entry points."""

    async def test_invalid_bytes(self, reader: ExcelReader) -> None:
        result = await reader.from_bytes(b"not a workbook")
        assert isinstance(result, Failure)
        assert result.error.kind == ErrorType.VALIDATION_ERROR
        assert result.error.message.startswith("Failed to read workbook")
        assert result.error.details["error_code"] == ErrorCode.READ_FAILED.value

    async def test_from_file(self, reader: ExcelReader, sample_bytes: bytes) -> None:
        result = await reader.from_file(BytesIO(sample_bytes))
        assert isinstance(result, Success)
        assert result.data.total_sheets == 2

    async def test_from_path(
        self, reader: ExcelReader, sample_bytes: bytes, tmp_path: Path
    ) -> None:
        path = tmp_path / "sample.xlsx"
        path.write_bytes(sample_bytes)
        result = await reader.from_path(path)
        assert isinstance(result, Success)
        assert result.data.sheets[1].name == "Notes"

    async def test_from_missing_path(self, reader: ExcelReader, tmp_path: Path) -> None:
        result = await reader.from_path(tmp_path / "missing.xlsx")
        assert isinstance(result, Failure)
        assert result.error.details["error_code"] == ErrorCode.FILE_NOT_FOUND.value


class TestBuilderRoundTrip:
    """Reading workbooks produced by ExcelBuilder."""

    @staticmethod
    async def build_regions(metadata: WorkbookMetadata | None = None) -> bytes:
        builder = ExcelBuilder(BuilderConfig(metadata=metadata or WorkbookMetadata()))
        for total, name in enumerate(("North", "South", "East"), start=1):
            sheet = builder.add_worksheet(name)
            sheet.add_header(
                HeaderCell(key="title", value=f"{name} Report", merge_cell=True)
            )
            sheet.add_sub_headers(
                [
                    HeaderCell(key="region", value="Region"),
                    HeaderCell(key="total", value="Total"),
                ]
            )
            sheet.add_row(
                [
                    DataCell(key="r", value=name, header="region"),
                    DataCell(key="t", value=total * 100, header="total"),
                ]
            )
        built = await builder.build()
        assert isinstance(built, Success)
        return built.data

    async def test_metadata_and_content(self, reader: ExcelReader) -> None:
        """Headers come from the sub-header row below the merged title."""
        data = await self.build_regions(
            WorkbookMetadata(title="Quarterly", company="Acme")
        )

        result = await reader.from_bytes(
            data, ReaderOptions(use_first_row_as_headers=True, start_row=2)
        )

        workbook = result.data
        assert workbook.total_sheets == 3
        assert [s.headers for s in workbook.sheets] == [["Region", "Total"]] * 3
        assert [s.rows[0].data for s in workbook.sheets] == [
            {"Region": "North", "Total": 100},
            {"Region": "South", "Total": 200},
            {"Region": "East", "Total": 300},
        ]
        assert [s.rows[0].row_number for s in workbook.sheets] == [3, 3, 3]
        assert workbook.metadata["title"] == "Quarterly"
        assert workbook.metadata["company"] == "Acme"
        assert workbook.metadata["author"] == "Han Excel Builder"
        assert isinstance(workbook.metadata["created"], str)

    async def test_merged_title_row(self, reader: ExcelReader) -> None:
        """The merged title reads as a single cell; the covered cell is skipped."""
        data = await self.build_regions()

        result = await reader.from_bytes(data, ReaderOptions(sheet_name="North"))

        sheet = result.data.sheets[0]
        title_row, header_row, body_row = sheet.rows
        assert [(c.reference, c.value) for c in title_row.cells] == [
            ("A1", "North Report")
        ]
        assert [c.value for c in header_row.cells] == ["Region", "Total"]
        assert [c.value for c in body_row.cells] == ["North", 100]
        assert sheet.total_columns == 2
