"""Worksheet layout engine.

A Worksheet stages header, sub-header, body and footer cells and, on
build, lays them out on an openpyxl sheet:

- header rows: one row per header, value in column 1, optionally merged
  across the sub-header column span
- sub-header rows: one row per nesting level; a parent spans its leaf
  columns and shallow leaves merge down to the last sub-header row
- body rows: siblings on one row in successive columns, children as a
  staircase (next row, one column to the right of their parent)
- footer rows: one row per footer, value in column 1, optionally merged
  across columns 1..merge_to

Content can be grouped into tables; tables after the first are separated
by two blank rows.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterable, Sequence
from typing import Any

from openpyxl import Workbook
from openpyxl.comments import Comment
from openpyxl.styles import Border, PatternFill, Side
from openpyxl.styles import Protection as XLProtection
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.datavalidation import DataValidation
from openpyxl.worksheet.worksheet import Worksheet as XLWorksheet

from han_excel.cells import (
    BaseCell,
    CellPosition,
    CellType,
    DataCell,
    DataValidationRule,
    FooterCell,
    HeaderCell,
)
from han_excel.config import EXCEL_MAX_COLUMNS, EXCEL_MAX_ROWS, settings
from han_excel.models import (
    TABLE_STRIPE_COLOR,
    BuildOptions,
    DefaultStyles,
    Table,
    WorksheetBuildStats,
    WorksheetConfig,
    WorksheetState,
)
from han_excel.result import Result, Success, failure
from han_excel.styles.converter import (
    apply_style,
    convert_color,
    convert_conditional_format,
    convert_style,
)
from han_excel.styles.style import Style
from han_excel.utils.exceptions import (
    CellError,
    ErrorCode,
    ErrorType,
    WorksheetStateError,
)
from han_excel.utils.logging import LogContext, get_logger

logger = get_logger(__name__)

TABLE_SPACING_ROWS = 2
_SIDES = ("top", "left", "bottom", "right")


def leaf_span(cell: HeaderCell) -> int:
    """Number of columns a header occupies: 1 for a leaf, else its leaves."""
    if not cell.children:
        return 1
    return sum(leaf_span(child) for child in cell.children)


def header_depth(cells: Sequence[HeaderCell]) -> int:
    """Number of rows needed to render a sub-header tree (at least 1)."""
    depth = 1
    for cell in cells:
        if cell.children:
            depth = max(depth, header_depth(cell.children) + 1)
    return depth


def column_span(cells: Sequence[HeaderCell]) -> int:
    return sum(leaf_span(cell) for cell in cells)


class Worksheet:
    """One sheet of a workbook: staged content plus its layout algorithm.

    Staging methods return the worksheet for chaining. Once built, staging
    raises WorksheetStateError; building again re-emits the same content.
    """

    def __init__(
        self,
        config: WorksheetConfig,
        *,
        max_rows: int = EXCEL_MAX_ROWS,
        max_columns: int = EXCEL_MAX_COLUMNS,
        default_styles: DefaultStyles | None = None,
    ) -> None:
        self.config = config
        self.max_rows = max_rows
        self.max_columns = max_columns
        self.default_styles = default_styles or DefaultStyles()

        self.tables: list[Table] = []
        self._active = self._implicit_table()

        self.state = WorksheetState.STAGING
        self.current_row = 1
        self.current_col = 1
        self.header_pointers: dict[str, CellPosition] = {}
        self.last_build_stats = WorksheetBuildStats()

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def is_built(self) -> bool:
        return self.state is WorksheetState.BUILT

    @property
    def headers(self) -> list[HeaderCell]:
        return self._active.headers

    @property
    def sub_headers(self) -> list[HeaderCell]:
        return self._active.sub_headers

    @property
    def body(self) -> list[list[DataCell]]:
        return self._active.body

    @property
    def footers(self) -> list[FooterCell]:
        return self._active.footers

    # ------------------------------------------------------------------ #
    # Staging
    # ------------------------------------------------------------------ #

    def _ensure_staging(self, operation: str) -> None:
        if self.state is WorksheetState.BUILT:
            raise WorksheetStateError(self.name, operation)

    def add_header(self, cell: HeaderCell) -> Worksheet:
        self._ensure_staging("add_header")
        self._active.headers.append(cell)
        return self

    def add_sub_headers(self, cells: Iterable[HeaderCell]) -> Worksheet:
        self._ensure_staging("add_sub_headers")
        self._active.sub_headers.extend(cells)
        return self

    def add_row(self, cells: DataCell | Sequence[DataCell]) -> Worksheet:
        """Stage one body row.

        A sequence is one row whose cells sit in successive columns.
        """
        self._ensure_staging("add_row")
        row = [cells] if isinstance(cells, DataCell) else list(cells)
        self._active.body.append(row)
        return self

    def add_footer(self, cells: FooterCell | Sequence[FooterCell]) -> Worksheet:
        """Stage footers; each footer cell becomes its own row."""
        self._ensure_staging("add_footer")
        if isinstance(cells, FooterCell):
            self._active.footers.append(cells)
        else:
            self._active.footers.extend(cells)
        return self

    def add_table(
        self,
        name: str | None = None,
        *,
        show_borders: bool = True,
        show_stripes: bool = True,
        headers: Sequence[HeaderCell] = (),
        sub_headers: Sequence[HeaderCell] = (),
        body: Sequence[Sequence[DataCell]] = (),
        footers: Sequence[FooterCell] = (),
    ) -> Worksheet:
        """Finish the table being staged and start a new one."""
        self._ensure_staging("add_table")
        if not self._active.is_empty:
            self.tables.append(self._active.snapshot())
        self._active = Table(
            name=name or f"Table_{len(self.tables) + 1}",
            headers=list(headers),
            sub_headers=list(sub_headers),
            body=[list(row) for row in body],
            footers=list(footers),
            show_borders=show_borders,
            show_stripes=show_stripes,
        )
        return self

    def finalize_table(self) -> Worksheet:
        """Move the table being staged into the finished tables."""
        self._ensure_staging("finalize_table")
        if not self._active.is_empty:
            self.tables.append(self._active.snapshot())
        self._active = self._implicit_table()
        return self

    def get_table(self, name: str) -> Table | None:
        for table in self.tables:
            if table.name == name:
                return table
        return None

    def _implicit_table(self) -> Table:
        return Table(
            name=f"Table_{len(self.tables) + 1}",
            show_borders=False,
            show_stripes=False,
        )

    def _tables_for_build(self) -> list[Table]:
        tables = list(self.tables)
        if not self._active.is_empty:
            tables.append(self._active)
        return tables

    # ------------------------------------------------------------------ #
    # Validation
    # ------------------------------------------------------------------ #

    def validate(self) -> Result[bool]:
        tables = self._tables_for_build()
        if not any(table.headers or table.body for table in tables):
            return failure(
                ErrorType.VALIDATION_ERROR,
                f'Worksheet "{self.name}" has no headers or data rows',
                details={
                    "worksheet_name": self.name,
                    "error_code": ErrorCode.EMPTY_WORKSHEET.value,
                },
            )
        return Success(True)

    # ------------------------------------------------------------------ #
    # Build
    # ------------------------------------------------------------------ #

    async def build(
        self, workbook: Workbook, options: BuildOptions | None = None
    ) -> XLWorksheet:
        """Emit the staged content as a new sheet of ``workbook``.

        Raises:
            CellError: If content falls outside the row or column limits.
        """
        opts = options or BuildOptions()
        stats = WorksheetBuildStats()
        self.header_pointers = {}

        with LogContext(worksheet=self.name):
            ws = workbook.create_sheet(title=self.name)
            self._configure_sheet(ws)

            row = 1
            for index, table in enumerate(self._tables_for_build()):
                if index > 0:
                    row += TABLE_SPACING_ROWS
                row = self._build_table(ws, table, row, opts, stats)
                await asyncio.sleep(0)

            self.current_row = row
            self._apply_auto_filter(ws)
            self.state = WorksheetState.BUILT
            self.last_build_stats = stats
            logger.debug(
                "Worksheet built",
                rows=stats.rows_written,
                cells=stats.cells_written,
                merges=stats.merges,
            )
        return ws

    def _configure_sheet(self, ws: XLWorksheet) -> None:
        config = self.config
        ws.sheet_format.defaultRowHeight = config.default_row_height
        ws.sheet_format.customHeight = True
        ws.sheet_format.defaultColWidth = config.default_col_width

        if config.tab_color is not None:
            tab_color = convert_color(config.tab_color)
            if tab_color is not None:
                ws.sheet_properties.tabColor = tab_color
        if config.hidden:
            ws.sheet_state = "hidden"
        ws.sheet_view.showGridLines = config.show_grid_lines
        if config.zoom is not None:
            ws.sheet_view.zoomScale = config.zoom
        if config.freeze_panes is not None:
            ws.freeze_panes = config.freeze_panes.reference
        if config.protection_password:
            ws.protection.password = config.protection_password
            ws.protection.sheet = True

        setup = config.page_setup
        if setup is None:
            return
        if setup.orientation:
            ws.page_setup.orientation = setup.orientation
        if setup.paper_size is not None:
            ws.page_setup.paperSize = setup.paper_size
        if setup.scale is not None:
            ws.page_setup.scale = setup.scale
        if setup.fit_to_page:
            ws.sheet_properties.pageSetUpPr.fitToPage = True
            if setup.fit_to_width is not None:
                ws.page_setup.fitToWidth = setup.fit_to_width
            if setup.fit_to_height is not None:
                ws.page_setup.fitToHeight = setup.fit_to_height
        ws.print_options.horizontalCentered = setup.horizontal_centered
        ws.print_options.verticalCentered = setup.vertical_centered
        if setup.margins is not None:
            for side in ("top", "left", "bottom", "right", "header", "footer"):
                value = getattr(setup.margins, side)
                if value is not None:
                    setattr(ws.page_margins, side, value)

    def _apply_auto_filter(self, ws: XLWorksheet) -> None:
        auto_filter = self.config.auto_filter
        if auto_filter is None:
            return
        end_row = auto_filter.end_row or ws.max_row
        end_column = auto_filter.end_column or ws.max_column
        ws.auto_filter.ref = (
            f"{get_column_letter(auto_filter.start_column)}{auto_filter.start_row}:"
            f"{get_column_letter(end_column)}{end_row}"
        )

    def _build_table(
        self,
        ws: XLWorksheet,
        table: Table,
        start_row: int,
        opts: BuildOptions,
        stats: WorksheetBuildStats,
    ) -> int:
        """Lay out one table from ``start_row``; return the next free row."""
        row = start_row
        span = max(1, column_span(table.sub_headers))

        started = time.perf_counter()
        for header in table.headers:
            self._write_cell(ws, row, 1, header, opts, stats, self.default_styles.header)
            self.header_pointers[header.key] = CellPosition(row, 1)
            if header.merge_cell:
                merge_to = header.merge_to or span
                self._merge(ws, row, 1, row, merge_to, stats)
            row += 1

        if table.sub_headers:
            row = self._build_sub_headers(ws, table.sub_headers, row, opts, stats)
        stats.timings.headers_time += time.perf_counter() - started

        started = time.perf_counter()
        positions = self._column_positions(table.sub_headers)
        body_start = row
        for cells in table.body:
            row = self._build_body_row(ws, cells, row, body_start, positions, opts, stats)

        for footer in table.footers:
            self._build_footer(ws, footer, row, positions, opts, stats)
            row += 1
        stats.timings.data_time += time.perf_counter() - started

        stats.rows_written += row - start_row
        if opts.include_styles and (table.show_borders or table.show_stripes):
            started = time.perf_counter()
            self._apply_table_style(ws, table, start_row, row - 1, span)
            stats.timings.styles_time += time.perf_counter() - started
        return row

    def _build_sub_headers(
        self,
        ws: XLWorksheet,
        cells: Sequence[HeaderCell],
        start_row: int,
        opts: BuildOptions,
        stats: WorksheetBuildStats,
    ) -> int:
        last_row = start_row + header_depth(cells) - 1
        self._emit_header_level(ws, cells, start_row, 1, last_row, None, opts, stats)
        return last_row + 1

    def _emit_header_level(
        self,
        ws: XLWorksheet,
        cells: Sequence[HeaderCell],
        row: int,
        col: int,
        last_row: int,
        parent_style: Style | None,
        opts: BuildOptions,
        stats: WorksheetBuildStats,
    ) -> None:
        for cell in cells:
            span = leaf_span(cell)
            style = cell.styles or parent_style
            self._write_cell(
                ws, row, col, cell, opts, stats, self.default_styles.subheader, style
            )
            self.header_pointers[cell.key] = CellPosition(row, col)
            if cell.children:
                if span > 1:
                    self._merge(ws, row, col, row, col + span - 1, stats)
                self._emit_header_level(
                    ws, cell.children, row + 1, col, last_row, style, opts, stats
                )
            elif row < last_row:
                self._merge(ws, row, col, last_row, col, stats)
            col += span

    @staticmethod
    def _column_positions(cells: Sequence[HeaderCell]) -> dict[str, int]:
        """Map every sub-header key to the first column it covers."""
        positions: dict[str, int] = {}

        def visit(level: Sequence[HeaderCell], col: int) -> None:
            for cell in level:
                positions.setdefault(cell.key, col)
                visit(cell.children, col)
                col += leaf_span(cell)

        visit(cells, 1)
        return positions

    def _build_body_row(
        self,
        ws: XLWorksheet,
        cells: Sequence[DataCell],
        row: int,
        body_start: int,
        positions: dict[str, int],
        opts: BuildOptions,
        stats: WorksheetBuildStats,
    ) -> int:
        """Emit one body row and its descendants; return the next free row.

        Siblings share ``row``. Descendants are emitted sibling by sibling,
        each subtree starting below the last row used by the previous one,
        so subtrees of neighbouring siblings never overlap.
        """
        placed: list[tuple[DataCell, int]] = []
        next_col = 1
        for cell in cells:
            col = next_col
            if cell.header is not None and cell.header in positions:
                col = positions[cell.header]
            self._write_data_cell(ws, cell, row, col, body_start, opts, stats)
            placed.append((cell, col))
            next_col = col + 1

        last_row = row
        for cell, col in placed:
            last_row = self._emit_children(ws, cell, last_row, col, body_start, opts, stats)
        return last_row + 1

    def _emit_tree(
        self,
        ws: XLWorksheet,
        cell: DataCell,
        row: int,
        col: int,
        body_start: int,
        opts: BuildOptions,
        stats: WorksheetBuildStats,
    ) -> int:
        """Write ``cell`` and its children as a staircase.

        Returns:
            The highest row index written by this subtree.
        """
        self._write_data_cell(ws, cell, row, col, body_start, opts, stats)
        return self._emit_children(ws, cell, row, col, body_start, opts, stats)

    def _emit_children(
        self,
        ws: XLWorksheet,
        cell: DataCell,
        last_row: int,
        col: int,
        body_start: int,
        opts: BuildOptions,
        stats: WorksheetBuildStats,
    ) -> int:
        """Each child goes on the row after ``last_row``, one column right of ``col``."""
        for child in cell.children:
            last_row = self._emit_tree(
                ws, child, last_row + 1, col + 1, body_start, opts, stats
            )
        return last_row

    def _write_data_cell(
        self,
        ws: XLWorksheet,
        cell: DataCell,
        row: int,
        col: int,
        body_start: int,
        opts: BuildOptions,
        stats: WorksheetBuildStats,
    ) -> None:
        xl_cell = self._write_cell(ws, row, col, cell, opts, stats, self.default_styles.data)
        style = cell.styles or self.default_styles.data
        if (
            opts.include_styles
            and style is not None
            and style.striped
            and (row - body_start) % 2 == 1
            and xl_cell.fill.fill_type is None
        ):
            xl_cell.fill = self._stripe_fill(TABLE_STRIPE_COLOR)

    def _build_footer(
        self,
        ws: XLWorksheet,
        footer: FooterCell,
        row: int,
        positions: dict[str, int],
        opts: BuildOptions,
        stats: WorksheetBuildStats,
    ) -> None:
        self._write_cell(ws, row, 1, footer, opts, stats, self.default_styles.footer)
        merge_end = 1
        if footer.merge_cell and footer.merge_to:
            merge_end = footer.merge_to
            self._merge(ws, row, 1, row, merge_end, stats)

        next_col = merge_end + 1
        for child in footer.children:
            col = positions.get(child.header or child.key, next_col)
            if col <= merge_end:
                col = next_col
            self._write_cell(ws, row, col, child, opts, stats, self.default_styles.footer)
            next_col = col + 1

    # ------------------------------------------------------------------ #
    # Cell emission
    # ------------------------------------------------------------------ #

    def _check_bounds(self, row: int, col: int) -> None:
        if row > self.max_rows:
            raise CellError(
                f"Row {row} exceeds the limit of {self.max_rows} rows "
                f'on worksheet "{self.name}"',
                error_code=ErrorCode.ROW_LIMIT_EXCEEDED,
                row=row,
                column=col,
            )
        if col > self.max_columns:
            raise CellError(
                f"Column {col} exceeds the limit of {self.max_columns} columns "
                f'on worksheet "{self.name}"',
                error_code=ErrorCode.COLUMN_LIMIT_EXCEEDED,
                row=row,
                column=col,
            )

    def _merge(
        self,
        ws: XLWorksheet,
        start_row: int,
        start_col: int,
        end_row: int,
        end_col: int,
        stats: WorksheetBuildStats,
    ) -> None:
        if end_row == start_row and end_col <= start_col:
            return
        self._check_bounds(end_row, end_col)
        ws.merge_cells(
            start_row=start_row,
            start_column=start_col,
            end_row=end_row,
            end_column=end_col,
        )
        stats.merges += 1

    def _write_cell(
        self,
        ws: XLWorksheet,
        row: int,
        col: int,
        cell: BaseCell,
        opts: BuildOptions,
        stats: WorksheetBuildStats,
        default_style: Style | None = None,
        style: Style | None = None,
    ) -> Any:
        self._check_bounds(row, col)
        xl_cell = ws.cell(row=row, column=col)
        self.current_col = col
        self._assign_value(xl_cell, cell, opts, stats)

        style = style or cell.styles or default_style
        if opts.include_styles and style is not None:
            converted = convert_style(style)
            if converted:
                apply_style(xl_cell, converted)
                stats.styles_applied += 1

        number_format = cell.resolved_number_format()
        if number_format is not None:
            xl_cell.number_format = number_format

        if cell.row_height is not None:
            ws.row_dimensions[row].height = cell.row_height
        if cell.col_width is not None:
            ws.column_dimensions[get_column_letter(col)].width = cell.col_width

        if cell.comment and opts.include_comments:
            xl_cell.comment = Comment(cell.comment, settings.default_author)

        if cell.validation is not None and opts.include_validation:
            ws.add_data_validation(self._data_validation(cell.validation, xl_cell.coordinate))

        if cell.protected is not None or cell.hidden is not None:
            xl_cell.protection = XLProtection(
                locked=cell.protected if cell.protected is not None else True,
                hidden=bool(cell.hidden),
            )

        if opts.include_conditional_formatting and style is not None:
            for entry in style.conditional_formats:
                rule = convert_conditional_format(entry, xl_cell.coordinate)
                if rule is not None:
                    ws.conditional_formatting.add(xl_cell.coordinate, rule)
                    stats.conditional_formats_used += 1

        stats.cells_written += 1
        return xl_cell

    @staticmethod
    def _assign_value(
        xl_cell: Any, cell: BaseCell, opts: BuildOptions, stats: WorksheetBuildStats
    ) -> None:
        formula = cell.formula
        if formula is None and cell.type is CellType.FORMULA and isinstance(cell.value, str):
            formula = cell.value
        if formula and opts.include_formulas:
            xl_cell.value = formula if formula.startswith("=") else f"={formula}"
            stats.formulas_used += 1
            return

        link = cell.link
        if link is None and cell.type is CellType.LINK and isinstance(cell.value, str):
            link = cell.value
        if link and link.strip():
            display = cell.mask or cell.value or link
            xl_cell.value = str(display)
            xl_cell.hyperlink = link
            return

        xl_cell.value = cell.value

    @staticmethod
    def _data_validation(rule: DataValidationRule, coordinate: str) -> DataValidation:
        formula1 = rule.formula1
        if isinstance(formula1, list):
            formula1 = '"' + ",".join(str(v) for v in formula1) + '"'
        elif (
            rule.type == "list"
            and isinstance(formula1, str)
            and not formula1.startswith(("=", '"'))
        ):
            formula1 = f'"{formula1}"'
        elif isinstance(formula1, str):
            formula1 = formula1.lstrip("=")

        dv = DataValidation(
            type=rule.type,
            operator=rule.operator,
            formula1=formula1,
            formula2=rule.formula2,
            allow_blank=rule.allow_blank,
            showErrorMessage=rule.show_error_message,
            errorTitle=rule.error_title,
            error=rule.error,
            promptTitle=rule.prompt_title,
            prompt=rule.prompt,
            showInputMessage=rule.prompt is not None,
        )
        dv.add(coordinate)
        return dv

    # ------------------------------------------------------------------ #
    # Table styling
    # ------------------------------------------------------------------ #

    @staticmethod
    def _stripe_fill(color: str) -> PatternFill:
        return PatternFill(fill_type="solid", fgColor=color, bgColor=color)

    @staticmethod
    def _has_border(xl_cell: Any) -> bool:
        # openpyxl leaves sides that were never set as None
        for name in _SIDES:
            side = getattr(xl_cell.border, name)
            if side is not None and side.style:
                return True
        return False

    def _apply_table_style(
        self, ws: XLWorksheet, table: Table, start_row: int, end_row: int, width: int
    ) -> None:
        """Add borders and stripes to cells of the table range that lack them."""
        side = Side(style="thin", color=table.border_color)
        border = Border(top=side, left=side, bottom=side, right=side)
        stripe = self._stripe_fill(table.stripe_color)

        for row in range(start_row, end_row + 1):
            striped_row = table.show_stripes and (row - start_row) % 2 == 1
            for col in range(1, width + 1):
                xl_cell = ws.cell(row=row, column=col)
                if table.show_borders and not self._has_border(xl_cell):
                    xl_cell.border = border
                if striped_row and xl_cell.fill.fill_type is None:
                    xl_cell.fill = stripe

    def __repr__(self) -> str:
        return f"Worksheet(name={self.name!r}, state={self.state.value})"

