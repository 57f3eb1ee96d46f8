"""Read xlsx workbooks back into nested, detailed or flat projections."""

from __future__ import annotations

import asyncio
import time
import traceback
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import date, datetime, time as dt_time
from io import BytesIO
from pathlib import Path
from typing import Any, BinaryIO

from openpyxl import Workbook, load_workbook
from openpyxl.cell import Cell
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

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
from han_excel.result import Result, Success, failure, failure_from_exception
from han_excel.utils.exceptions import ErrorCode, ErrorType, ReaderError
from han_excel.utils.logging import get_logger

logger = get_logger(__name__)

EMPTY_VALUES = (None, "")


@dataclass
class ReaderOptions:
    """Options controlling how a workbook is projected.

    Attributes:
        output_format: Shape of the returned data.
        mapper: Callable applied to the projected shape before it is returned.
        include_empty_rows: Keep empty cells and rows instead of skipping them.
        use_first_row_as_headers: Treat the first row of the range as headers.
        headers: Header names overriding the first row, either positional or
            keyed by 1-based column number.
        sheet_name: Sheet to read, by name or 0-based index. All sheets when None.
        start_row: First 1-based row to read.
        end_row: Last row to read; defaults to the sheet's last row.
        start_column: First 1-based column to read.
        end_column: Last column to read; defaults to the sheet's last column.
        include_formatting: Add a formatted value for cells with a number format.
        include_formulas: Report formula cells as formulas with their source.
        dates_as_iso: Return dates as ISO 8601 strings.
    """

    output_format: OutputFormat = OutputFormat.WORKSHEET
    mapper: Callable[[Any], Any] | None = None
    include_empty_rows: bool = False
    use_first_row_as_headers: bool = False
    headers: list[str] | dict[int, str] | None = None
    sheet_name: str | int | None = None
    start_row: int = 1
    end_row: int | None = None
    start_column: int = 1
    end_column: int | None = None
    include_formatting: bool = False
    include_formulas: bool = False
    dates_as_iso: bool = True


@dataclass
class _CellValue:
    value: Any
    type: str
    formatted_value: str | None = None
    formula: str | None = None


def _load_workbooks(data: bytes) -> tuple[Workbook, Workbook]:
    """Load the workbook twice: once for formulas, once for cached values."""
    try:
        workbook = load_workbook(BytesIO(data), data_only=False)
        computed_wb = load_workbook(BytesIO(data), data_only=True)
    except Exception as e:
        raise ReaderError(f"Failed to read workbook: {e}") from e
    return workbook, computed_wb


class ExcelReader:
    """Project xlsx content into JSON-friendly dataclasses using openpyxl."""

    async def from_bytes(
        self, data: bytes, options: ReaderOptions | None = None
    ) -> Result[Any]:
        """Read a workbook from raw bytes.

        Returns:
            Success with the projected shape (or the mapper's output), or a
            VALIDATION_ERROR failure when the input cannot be read or the
            mapper raises.
        """
        opts = options or ReaderOptions()
        start = time.perf_counter()
        try:
            workbook, computed_wb = await asyncio.to_thread(_load_workbooks, data)
            projected = self.project(workbook, computed_wb, opts)
        except ReaderError as e:
            logger.error("Failed to read workbook", error=e.message)
            return failure_from_exception(e)
        except Exception as e:
            logger.exception("Failed to project workbook")
            return failure_from_exception(e, ErrorType.VALIDATION_ERROR)

        if opts.mapper is not None:
            try:
                projected = opts.mapper(projected)
            except Exception as e:
                logger.error("Mapper function failed", error=str(e))
                return failure(
                    ErrorType.VALIDATION_ERROR,
                    f"Mapper function error: {e}",
                    stack="".join(traceback.format_exception(e)),
                    details={"error_code": ErrorCode.MAPPER_FAILED.value},
                )

        logger.info(
            "Workbook read",
            output_format=opts.output_format.value,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return Success(projected)

    async def from_file(
        self, file: BinaryIO, options: ReaderOptions | None = None
    ) -> Result[Any]:
        """Read a workbook from a binary file-like object."""
        try:
            data = await asyncio.to_thread(file.read)
        except Exception as e:
            logger.error("Failed to read file object", error=str(e))
            return failure_from_exception(
                ReaderError(f"Failed to read file: {e}"), ErrorType.VALIDATION_ERROR
            )
        return await self.from_bytes(data, options)

    async def from_path(
        self, file_path: Path | str, options: ReaderOptions | None = None
    ) -> Result[Any]:
        """Read a workbook from the file system."""
        path = Path(file_path)
        if not path.exists():
            logger.error("Excel file not found", path=str(path))
            return failure_from_exception(
                ReaderError(
                    f"Excel file not found: {path}",
                    error_code=ErrorCode.FILE_NOT_FOUND,
                    details={"path": str(path)},
                )
            )
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            logger.error("Failed to read Excel file", path=str(path), error=str(e))
            return failure_from_exception(
                ReaderError(f"Failed to read {path}: {e}", details={"path": str(path)})
            )
        return await self.from_bytes(data, options)

    def project(
        self, workbook: Workbook, computed_wb: Workbook, options: ReaderOptions
    ) -> JsonWorkbook | DetailedFormat | FlatSheet | FlatWorkbook:
        """Project loaded workbooks into the shape selected by ``options``."""
        if options.output_format == OutputFormat.DETAILED:
            return self._to_detailed(workbook, computed_wb, options)
        if options.output_format == OutputFormat.FLAT:
            return self._to_flat(workbook, computed_wb, options)
        return self._to_worksheet(workbook, computed_wb, options)

    # ------------------------------------------------------------------ #
    # Projections
    # ------------------------------------------------------------------ #

    def _to_worksheet(
        self, workbook: Workbook, computed_wb: Workbook, options: ReaderOptions
    ) -> JsonWorkbook:
        sheets = [
            self._sheet_to_json(workbook.worksheets[index], computed_wb, index, options)
            for index in self._select_sheets(workbook, options.sheet_name)
        ]
        return JsonWorkbook(
            sheets=sheets,
            total_sheets=len(sheets),
            metadata=self._metadata(workbook, options.dates_as_iso),
        )

    def _sheet_to_json(
        self,
        sheet: Worksheet,
        computed_wb: Workbook,
        index: int,
        options: ReaderOptions,
    ) -> JsonSheet:
        rows: list[JsonRow] = []
        header_names: dict[int, str] | None = None
        max_columns = 0
        first_row, _, first_col, _ = self._bounds(sheet, options)

        for row_number, pairs in self._iter_range(sheet, computed_wb, options):
            cells: list[tuple[int, JsonCell]] = []
            for cell, computed_value in pairs:
                if cell.value in EMPTY_VALUES and not options.include_empty_rows:
                    continue
                converted = self._convert_cell(cell, computed_value, options)
                cells.append(
                    (
                        cell.column,
                        JsonCell(
                            value=converted.value,
                            type=converted.type,
                            reference=cell.coordinate,
                            formatted_value=converted.formatted_value,
                            formula=converted.formula,
                            comment=self._comment(cell),
                        ),
                    )
                )
            max_columns = max(max_columns, len(cells))

            if not cells and not options.include_empty_rows:
                continue

            if options.use_first_row_as_headers and row_number == first_row:
                header_names = {
                    column: self._header_name(
                        options.headers, column, first_col, json_cell.value
                    )
                    for column, json_cell in cells
                }
                continue

            data: dict[str, Any] | None = None
            if header_names is not None:
                data = {
                    header_names.get(column) or f"column_{column - first_col + 1}": (
                        json_cell.value
                    )
                    for column, json_cell in cells
                }
            rows.append(
                JsonRow(
                    row_number=row_number,
                    cells=[json_cell for _, json_cell in cells],
                    data=data,
                )
            )

        return JsonSheet(
            name=sheet.title,
            index=index,
            rows=rows,
            headers=list(header_names.values()) if header_names is not None else None,
            total_rows=len(rows),
            total_columns=max_columns,
        )

    def _to_detailed(
        self, workbook: Workbook, computed_wb: Workbook, options: ReaderOptions
    ) -> DetailedFormat:
        cells: list[DetailedCell] = []
        for index in self._select_sheets(workbook, options.sheet_name):
            sheet = workbook.worksheets[index]
            for row_number, pairs in self._iter_range(sheet, computed_wb, options):
                for cell, computed_value in pairs:
                    if cell.value in EMPTY_VALUES and not options.include_empty_rows:
                        continue
                    converted = self._convert_cell(cell, computed_value, options)
                    column_letter = get_column_letter(cell.column)
                    cells.append(
                        DetailedCell(
                            value=converted.value,
                            text="" if converted.value is None else str(converted.value),
                            column=cell.column,
                            column_letter=column_letter,
                            row=row_number,
                            reference=f"{column_letter}{row_number}",
                            sheet=sheet.title,
                            type=converted.type,
                            formatted_value=converted.formatted_value,
                            formula=converted.formula,
                            comment=self._comment(cell),
                        )
                    )
        return DetailedFormat(
            cells=cells,
            total_cells=len(cells),
            metadata=self._metadata(workbook, options.dates_as_iso),
        )

    def _to_flat(
        self, workbook: Workbook, computed_wb: Workbook, options: ReaderOptions
    ) -> FlatSheet | FlatWorkbook:
        indexes = self._select_sheets(workbook, options.sheet_name)
        if len(indexes) == 1:
            sheet = workbook.worksheets[indexes[0]]
            return self._sheet_to_flat(sheet, computed_wb, options)

        sheets = {
            workbook.worksheets[index].title: self._sheet_to_flat(
                workbook.worksheets[index], computed_wb, options
            )
            for index in indexes
        }
        return FlatWorkbook(
            sheets=sheets,
            total_sheets=len(sheets),
            metadata=self._metadata(workbook, options.dates_as_iso),
        )

    def _sheet_to_flat(
        self, sheet: Worksheet, computed_wb: Workbook, options: ReaderOptions
    ) -> FlatSheet:
        # Flat rows carry plain values only
        plain = ReaderOptions(dates_as_iso=options.dates_as_iso)
        first_row, _, first_col, _ = self._bounds(sheet, options)
        headers: list[str] | None = None
        data: list[dict[str, Any] | list[Any]] = []

        for row_number, pairs in self._iter_range(sheet, computed_wb, options):
            values = [
                self._convert_cell(cell, computed_value, plain).value
                for cell, computed_value in pairs
            ]
            if options.use_first_row_as_headers and row_number == first_row:
                headers = [
                    self._header_name(options.headers, first_col + offset, first_col, value)
                    for offset, value in enumerate(values)
                ]
                continue
            has_data = any(value not in EMPTY_VALUES for value in values)
            if not has_data and not options.include_empty_rows:
                continue
            if headers is not None:
                data.append(dict(zip(headers, values, strict=False)))
            else:
                data.append(values)

        return FlatSheet(data=data, headers=headers, sheet=sheet.title, total_rows=len(data))

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _select_sheets(workbook: Workbook, sheet_name: str | int | None) -> list[int]:
        """Return the 0-based indexes of the sheets to read."""
        if sheet_name is None:
            return list(range(len(workbook.worksheets)))
        if isinstance(sheet_name, int):
            if not 0 <= sheet_name < len(workbook.worksheets):
                raise ReaderError(
                    f"Sheet index {sheet_name} out of range",
                    error_code=ErrorCode.WORKSHEET_NOT_FOUND,
                    details={"sheet_name": sheet_name},
                )
            return [sheet_name]
        if sheet_name not in workbook.sheetnames:
            raise ReaderError(
                f"Sheet '{sheet_name}' not found in workbook",
                error_code=ErrorCode.WORKSHEET_NOT_FOUND,
                details={"sheet_name": sheet_name},
            )
        return [workbook.sheetnames.index(sheet_name)]

    @staticmethod
    def _bounds(sheet: Worksheet, options: ReaderOptions) -> tuple[int, int, int, int]:
        first_row = max(options.start_row, 1)
        last_row = options.end_row or sheet.max_row
        first_col = max(options.start_column, 1)
        last_col = options.end_column or sheet.max_column
        return first_row, last_row, first_col, last_col

    def _iter_range(
        self, sheet: Worksheet, computed_wb: Workbook, options: ReaderOptions
    ) -> Iterator[tuple[int, list[tuple[Cell, Any]]]]:
        """Yield each row number with (cell, cached value) pairs for the range."""
        first_row, last_row, first_col, last_col = self._bounds(sheet, options)
        if last_row < first_row or last_col < first_col:
            return
        computed_sheet = computed_wb[sheet.title]
        bounds = {
            "min_row": first_row,
            "max_row": last_row,
            "min_col": first_col,
            "max_col": last_col,
        }
        row_iter = sheet.iter_rows(**bounds)
        computed_iter = computed_sheet.iter_rows(**bounds, values_only=True)
        for row_number, (row_cells, computed_values) in enumerate(
            zip(row_iter, computed_iter, strict=True), start=first_row
        ):
            yield row_number, list(zip(row_cells, computed_values, strict=True))

    @staticmethod
    def _convert_cell(cell: Cell, computed_value: Any, options: ReaderOptions) -> _CellValue:
        """Map an openpyxl cell to a value and a human-readable type."""
        raw = cell.value
        formula: str | None = None

        if raw is None:
            value: Any = None
            value_type = "null"
        elif cell.data_type == "f":
            source = str(getattr(raw, "text", raw))
            value = computed_value if computed_value is not None else source
            if options.include_formulas:
                formula = source
                value_type = "formula"
            elif isinstance(computed_value, bool):
                value_type = "boolean"
            elif isinstance(computed_value, (int, float)):
                value_type = "number"
            elif isinstance(computed_value, str):
                value_type = "string"
            else:
                value_type = "unknown"
        elif getattr(cell, "hyperlink", None) is not None:
            value = raw if raw not in EMPTY_VALUES else cell.hyperlink.target
            value_type = "hyperlink"
        elif isinstance(raw, bool):
            value = raw
            value_type = "boolean"
        elif isinstance(raw, (int, float)):
            value = raw
            value_type = "number"
        elif isinstance(raw, (datetime, date, dt_time)):
            value = raw.isoformat() if options.dates_as_iso else raw
            value_type = "date"
        elif isinstance(raw, str):
            value = raw
            value_type = "string"
        else:
            value = raw
            value_type = "unknown"

        formatted_value = None
        if (
            options.include_formatting
            and value is not None
            and cell.number_format != "General"
        ):
            formatted_value = str(value)

        return _CellValue(
            value=value,
            type=value_type,
            formatted_value=formatted_value,
            formula=formula,
        )

    @staticmethod
    def _comment(cell: Cell) -> str | None:
        comment = getattr(cell, "comment", None)
        return comment.text if comment is not None else None

    @staticmethod
    def _header_name(
        overrides: list[str] | dict[int, str] | None,
        column: int,
        first_col: int,
        value: Any,
    ) -> str:
        """Resolve the header for a column: override, cell text, then a placeholder."""
        if isinstance(overrides, dict) and overrides.get(column):
            return overrides[column]
        offset = column - first_col
        if isinstance(overrides, list) and offset < len(overrides) and overrides[offset]:
            return overrides[offset]
        if value not in EMPTY_VALUES:
            return str(value)
        return f"column_{offset + 1}"

    @staticmethod
    def _metadata(workbook: Workbook, dates_as_iso: bool) -> dict[str, Any] | None:
        """Collect document properties, or None when none are set."""
        props = workbook.properties
        custom = {prop.name: prop.value for prop in workbook.custom_doc_props.props}
        company = custom.get("Company")
        metadata: dict[str, Any] = {
            "title": props.title,
            "author": props.creator,
            "company": company,
            "created": props.created,
            "modified": props.modified,
            "description": props.description,
        }
        if dates_as_iso:
            metadata = {
                key: value.isoformat() if isinstance(value, datetime) else value
                for key, value in metadata.items()
            }
        if all(value is None for value in metadata.values()):
            return None
        return metadata
